"""
Suggestion Ranker - merges candidate sources into one bounded, ordered list.

Sources in fixed precedence:
1. Overdue SRS reviews (always high)
2. Overdue pending tasks (high)
3. High/urgent pending tasks due in the next 24 hours (urgent -> high, high -> medium)
4. SRS reviews due today for decks not already overdue (deck priority)
5. Only when 1-4 produced nothing: one general study session, priority by time of day

The final sort is stable, so equal priorities keep source precedence.
"""

import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from studyflow_app.core.error_handlers import ValidationError
from studyflow_app.core.repository import TaskRecord
from studyflow_app.modules.srs.schemas import DueReview, Priority
from studyflow_app.utils.time_utils import ensure_aware
from ..schemas import SmartSuggestion, SuggestionMetadata, SuggestionSources, SuggestionType

DEFAULT_LIMIT = 3
MAX_OVERDUE_TASKS = 3
MAX_URGENT_TASKS = 2
MAX_TODAY_REVIEWS = 2

DEFAULT_TASK_DURATION = 30
MIN_REVIEW_DURATION = 15
MINUTES_PER_CARD = 2
GENERAL_SESSION_DURATION = 25

URGENT_WINDOW = datetime.timedelta(hours=24)
URGENT_PRIORITIES = ('urgent', 'high')

# (start_hour, end_hour, priority, reason); hours outside every range are late night
TIME_OF_DAY_RULES = (
    (6, 12, Priority.HIGH, 'Morning is ideal for focused study sessions'),
    (12, 17, Priority.MEDIUM, 'Afternoon is good for review and practice'),
    (17, 22, Priority.LOW, 'Evening is perfect for light review and planning'),
)
LATE_NIGHT = (Priority.LOW, 'Late night - consider lighter tasks or planning')


def format_suggestion_reason(reason: str) -> str:
    """Capitalize the first letter and make sure the reason ends with a period."""
    reason = (reason or '').strip()
    if not reason:
        return reason
    reason = reason[0].upper() + reason[1:]
    return reason if reason.endswith('.') else reason + '.'


def review_duration(due_count: int) -> int:
    return max(MIN_REVIEW_DURATION, due_count * MINUTES_PER_CARD)


def time_of_day_priority(hour: int) -> Tuple[Priority, str]:
    for start, end, priority, reason in TIME_OF_DAY_RULES:
        if start <= hour < end:
            return priority, reason
    return LATE_NIGHT


# ---------------------------------------------------------------------------
# Task selection
# ---------------------------------------------------------------------------

def select_overdue_tasks(tasks: Iterable[TaskRecord], now: datetime.datetime,
                         cap: int = MAX_OVERDUE_TASKS) -> List[TaskRecord]:
    """Pending tasks past their due date, oldest due first."""
    now = ensure_aware(now)
    overdue = [
        task for task in tasks
        if task.status == 'pending' and task.due_date is not None
        and ensure_aware(task.due_date) < now
    ]
    overdue.sort(key=lambda task: ensure_aware(task.due_date))
    return overdue[:cap]


def select_urgent_tasks(tasks: Iterable[TaskRecord], now: datetime.datetime,
                        cap: int = MAX_URGENT_TASKS) -> List[TaskRecord]:
    """Pending high/urgent tasks due within the next 24 hours, urgent first."""
    now = ensure_aware(now)
    window_end = now + URGENT_WINDOW
    urgent = [
        task for task in tasks
        if task.status == 'pending' and task.priority in URGENT_PRIORITIES
        and task.due_date is not None
        and now <= ensure_aware(task.due_date) < window_end
    ]
    urgent.sort(key=lambda task: (URGENT_PRIORITIES.index(task.priority), ensure_aware(task.due_date)))
    return urgent[:cap]


# ---------------------------------------------------------------------------
# Candidate builders
# ---------------------------------------------------------------------------

def overdue_review_suggestion(review: DueReview) -> SmartSuggestion:
    return SmartSuggestion(
        id=f'srs-overdue-{review.deck_id}',
        title=f'Review {review.deck_name}',
        description=f'{review.due_count} cards are overdue for review',
        type=SuggestionType.SRS_REVIEW,
        priority=Priority.HIGH,
        estimated_duration=review_duration(review.due_count),
        reason='Overdue SRS reviews are critical for retention',
        metadata=SuggestionMetadata(deck_id=review.deck_id, tags=['srs', 'overdue', 'high-priority']),
    )


def overdue_task_suggestion(task: TaskRecord, now: Optional[datetime.datetime] = None) -> SmartSuggestion:
    due_date = ensure_aware(task.due_date)
    shown = due_date.astimezone(now.tzinfo) if now is not None and now.tzinfo else due_date
    return SmartSuggestion(
        id=f'overdue-task-{task.task_id}',
        title=task.title,
        description=f'Overdue since {shown.date().isoformat()}',
        type=SuggestionType.OVERDUE_TASK,
        priority=Priority.HIGH,
        estimated_duration=task.estimated_duration or DEFAULT_TASK_DURATION,
        reason='This task is overdue and needs immediate attention',
        metadata=SuggestionMetadata(task_id=task.task_id, due_date=due_date, tags=['overdue', 'urgent']),
    )


def urgent_task_suggestion(task: TaskRecord) -> SmartSuggestion:
    return SmartSuggestion(
        id=f'high-priority-{task.task_id}',
        title=task.title,
        description='High priority task due today',
        type=SuggestionType.HIGH_PRIORITY,
        priority=Priority.HIGH if task.priority == 'urgent' else Priority.MEDIUM,
        estimated_duration=task.estimated_duration or DEFAULT_TASK_DURATION,
        reason='High priority tasks should be tackled early in the day',
        metadata=SuggestionMetadata(
            task_id=task.task_id,
            due_date=ensure_aware(task.due_date),
            tags=['high-priority', 'due-today'],
        ),
    )


def today_review_suggestion(review: DueReview) -> SmartSuggestion:
    return SmartSuggestion(
        id=f'srs-today-{review.deck_id}',
        title=f'Review {review.deck_name}',
        description=f'{review.due_count} cards due for review today',
        type=SuggestionType.SRS_REVIEW,
        priority=review.priority,
        estimated_duration=review_duration(review.due_count),
        reason='Regular SRS reviews maintain long-term retention',
        metadata=SuggestionMetadata(deck_id=review.deck_id, tags=['srs', 'due-today']),
    )


def fallback_suggestion(now: datetime.datetime) -> SmartSuggestion:
    priority, reason = time_of_day_priority(now.hour)
    return SmartSuggestion(
        id='general-study',
        title='General Study Session',
        description='Start a focused study session',
        type=SuggestionType.TIME_BASED,
        priority=priority,
        estimated_duration=GENERAL_SESSION_DURATION,
        reason=reason,
        metadata=SuggestionMetadata(tags=['general', 'study-session']),
    )


def collect_candidates(sources: SuggestionSources, now: datetime.datetime,
                       max_today_reviews: int = MAX_TODAY_REVIEWS) -> List[SmartSuggestion]:
    """
    Candidates from sources 1-4 in precedence order. Task lists are expected pre-selected.
    A deck already suggested as overdue is not suggested again as due today.
    """
    candidates = [overdue_review_suggestion(review) for review in sources.overdue_reviews]
    overdue_decks = {review.deck_id for review in sources.overdue_reviews}
    today_reviews = [review for review in sources.today_reviews if review.deck_id not in overdue_decks]
    candidates.extend(overdue_task_suggestion(task, now) for task in sources.overdue_tasks)
    candidates.extend(urgent_task_suggestion(task) for task in sources.urgent_tasks)
    candidates.extend(
        today_review_suggestion(review) for review in today_reviews[:max_today_reviews]
    )
    return candidates


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def validate_limit(limit) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError('limit must be an integer >= 1', errors={'limit': limit})
    return limit


def rank(candidates: Sequence[SmartSuggestion], limit: int = DEFAULT_LIMIT) -> List[SmartSuggestion]:
    """Stable sort by priority rank descending, then truncate to ``limit``."""
    validate_limit(limit)
    ordered = sorted(candidates, key=lambda suggestion: -suggestion.priority.rank)
    return ordered[:limit]


def build_suggestions(sources: SuggestionSources, now: datetime.datetime,
                      limit: int = DEFAULT_LIMIT,
                      max_today_reviews: int = MAX_TODAY_REVIEWS) -> List[SmartSuggestion]:
    """Full pipeline: candidates, fallback when empty, ranking. Never returns an empty list."""
    validate_limit(limit)
    candidates = collect_candidates(sources, now, max_today_reviews)
    if not candidates:
        candidates = [fallback_suggestion(now)]
    return rank(candidates, limit)
