"""Resolve the user a service call acts on behalf of."""

from typing import Optional

from flask import has_request_context
from flask_login import current_user

from .error_handlers import NotAuthenticatedError


def resolve_user_id(user_id: Optional[int] = None) -> int:
    """
    Return ``user_id`` if given, otherwise the logged-in user's id.

    Raises:
        NotAuthenticatedError: no explicit id and no authenticated request user.
    """
    if user_id is not None:
        return user_id

    if has_request_context() and current_user and current_user.is_authenticated:
        return current_user.user_id

    raise NotAuthenticatedError()


def resolve_user_timezone(user_id: Optional[int] = None) -> Optional[str]:
    """Timezone name of the logged-in user when it matches ``user_id``."""
    if not has_request_context() or not current_user or not current_user.is_authenticated:
        return None
    if user_id is not None and current_user.user_id != user_id:
        return None
    return getattr(current_user, 'timezone', None)
