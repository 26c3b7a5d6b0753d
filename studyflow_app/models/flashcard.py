"""Decks, flashcards with their embedded review state, and the review log."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.sql import func

from ..db_instance import db

DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL = 1
DEFAULT_REPETITIONS = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Deck(db.Model):
    """Named collection of flashcards scheduled independently of other decks."""

    __tablename__ = 'decks'

    deck_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    flashcards = db.relationship('Flashcard', backref='deck', lazy=True, cascade='all, delete-orphan')


class Flashcard(db.Model):
    """
    A flashcard and its scheduling state.
    The state columns are only written by the study flow after a quality rating.
    """

    __tablename__ = 'flashcards'

    card_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('decks.deck_id'), nullable=True, index=True)
    front = db.Column(db.Text, nullable=False)
    back = db.Column(db.Text, nullable=False)

    # Review state
    ease_factor = db.Column(db.Float, nullable=False, default=DEFAULT_EASE_FACTOR)
    interval = db.Column(db.Integer, nullable=False, default=DEFAULT_INTERVAL)
    repetitions = db.Column(db.Integer, nullable=False, default=DEFAULT_REPETITIONS)
    next_review = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    review_logs = db.relationship('ReviewLog', backref='flashcard', lazy='dynamic', cascade='all, delete-orphan')


class ReviewLog(db.Model):
    """Append-only record of a quality rating. Never read back by the scheduler."""

    __tablename__ = 'review_logs'

    review_id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey('flashcards.card_id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    quality = db.Column(db.Integer, nullable=False)
    review_time = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
