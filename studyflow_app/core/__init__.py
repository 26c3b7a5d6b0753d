"""Core infrastructure shared across StudyFlow modules."""
