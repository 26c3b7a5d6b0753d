"""Study tasks, read by the suggestion ranker and created from accepted suggestions."""

from __future__ import annotations

from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..db_instance import db


class Task(db.Model):
    __tablename__ = 'tasks'

    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'

    PRIORITIES = ('low', 'medium', 'high', 'urgent')
    TASK_TYPES = ('study_session', 'quick_task', 'recurring_plan')

    task_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    task_type = db.Column(db.String(50), nullable=False, default='quick_task')
    priority = db.Column(db.String(20), nullable=False, default='medium')
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    due_date = db.Column(db.DateTime(timezone=True), index=True)
    estimated_duration = db.Column(db.Integer)  # minutes
    linked_type = db.Column(db.String(20), nullable=False, default='none')
    linked_id = db.Column(db.Integer)
    tags = db.Column(JSON, nullable=True)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())
