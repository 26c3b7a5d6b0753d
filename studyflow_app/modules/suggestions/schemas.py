# File: studyflow_app/modules/suggestions/schemas.py
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from studyflow_app.core.error_handlers import ValidationError
from studyflow_app.core.repository import TaskRecord
from studyflow_app.modules.srs.schemas import DueReview, Priority


class SuggestionType(str, Enum):
    SRS_REVIEW = 'srs_review'
    OVERDUE_TASK = 'overdue_task'
    HIGH_PRIORITY = 'high_priority'
    TIME_BASED = 'time_based'


@dataclass(frozen=True)
class SuggestionMetadata:
    deck_id: Optional[int] = None
    task_id: Optional[int] = None
    due_date: Optional[datetime.datetime] = None
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'tags': list(self.tags)}
        if self.deck_id is not None:
            data['deck_id'] = self.deck_id
        if self.task_id is not None:
            data['task_id'] = self.task_id
        if self.due_date is not None:
            data['due_date'] = self.due_date.isoformat()
        return data


@dataclass(frozen=True)
class SmartSuggestion:
    """A derived recommendation. Never persisted; accepting one creates a task."""
    id: str
    title: str
    description: str
    type: SuggestionType
    priority: Priority
    estimated_duration: int
    reason: str
    metadata: SuggestionMetadata = field(default_factory=SuggestionMetadata)

    def __post_init__(self):
        if not self.reason or not self.reason.strip():
            raise ValueError(f'Suggestion {self.id!r} needs a non-empty reason')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'type': self.type.value,
            'priority': self.priority.value,
            'estimated_duration': self.estimated_duration,
            'reason': self.reason,
            'metadata': self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SmartSuggestion':
        """Rebuild a suggestion posted back by a client."""
        if not isinstance(data, dict):
            raise ValidationError('Suggestion payload must be an object')

        errors = {}
        for key in ('id', 'title', 'type', 'priority', 'reason'):
            if not data.get(key):
                errors[key] = 'missing'
        if errors:
            raise ValidationError('Invalid suggestion', errors=errors)

        try:
            suggestion_type = SuggestionType(data['type'])
            priority = Priority(data['priority'])
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        duration = data.get('estimated_duration') or 0
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            raise ValidationError('estimated_duration must be a non-negative integer',
                                  errors={'estimated_duration': duration})

        raw_meta = data.get('metadata') or {}
        if not isinstance(raw_meta, dict):
            raise ValidationError('metadata must be an object', errors={'metadata': 'invalid'})
        tags = raw_meta.get('tags') or []
        if not isinstance(tags, list):
            raise ValidationError('metadata.tags must be a list', errors={'tags': 'invalid'})
        due_date = raw_meta.get('due_date')
        if isinstance(due_date, str):
            try:
                due_date = datetime.datetime.fromisoformat(due_date)
            except ValueError as exc:
                raise ValidationError('metadata.due_date must be an ISO timestamp') from exc

        return cls(
            id=str(data['id']),
            title=str(data['title']),
            description=str(data.get('description') or ''),
            type=suggestion_type,
            priority=priority,
            estimated_duration=duration,
            reason=str(data['reason']),
            metadata=SuggestionMetadata(
                deck_id=raw_meta.get('deck_id'),
                task_id=raw_meta.get('task_id'),
                due_date=due_date,
                tags=[str(tag) for tag in tags],
            ),
        )


@dataclass(frozen=True)
class SuggestionSources:
    """Inputs of the ranker, one list per candidate source."""
    overdue_reviews: List[DueReview] = field(default_factory=list)
    overdue_tasks: List[TaskRecord] = field(default_factory=list)
    urgent_tasks: List[TaskRecord] = field(default_factory=list)
    today_reviews: List[DueReview] = field(default_factory=list)
