"""Database models for the StudyFlow application."""

from ..db_instance import db
from .flashcard import Deck, Flashcard, ReviewLog
from .task import Task
from .user import User

__all__ = ["db", "User", "Deck", "Flashcard", "ReviewLog", "Task"]
