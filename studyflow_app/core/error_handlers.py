"""
Error Handlers for StudyFlow

Provides:
- The error taxonomy shared by every service
- Consistent JSON error response format
- Flask error handlers
"""

from flask import jsonify, request, current_app
from typing import Optional, Dict, Any


class StudyFlowError(Exception):
    """Base exception class for StudyFlow."""

    def __init__(
        self,
        message: str,
        code: str = 'UNKNOWN_ERROR',
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON response."""
        return {
            'success': False,
            'message': self.message,
            'code': self.code,
            'details': self.details
        }


class NotAuthenticatedError(StudyFlowError):
    """No current user context."""

    def __init__(self, message: str = 'User not authenticated'):
        super().__init__(
            message=message,
            code='NOT_AUTHENTICATED',
            status_code=401
        )


class InvalidQualityError(StudyFlowError):
    """Review quality outside 1-5."""

    def __init__(self, quality: Any):
        super().__init__(
            message=f'Quality must be an integer between 1 and 5, got {quality!r}',
            code='INVALID_QUALITY',
            status_code=400,
            details={'quality': quality if isinstance(quality, (int, float, str)) else repr(quality)}
        )


class DataAccessError(StudyFlowError):
    """Failure reported by the data store, message kept verbatim."""

    def __init__(self, message: str, operation: str = None):
        super().__init__(
            message=message,
            code='DATA_ACCESS_ERROR',
            status_code=502,
            details={'operation': operation} if operation else None
        )

    @classmethod
    def wrap(cls, exc: Exception, operation: str) -> 'DataAccessError':
        error = cls(str(exc), operation=operation)
        error.__cause__ = exc
        return error


class NotFoundError(StudyFlowError):
    """Resource not found."""

    def __init__(self, message: str = 'Resource not found', resource: str = None):
        super().__init__(
            message=message,
            code='NOT_FOUND',
            status_code=404,
            details={'resource': resource} if resource else None
        )


class ValidationError(StudyFlowError):
    """Input validation failed."""

    def __init__(self, message: str = 'Validation failed', errors: Dict = None):
        super().__init__(
            message=message,
            code='VALIDATION_ERROR',
            status_code=400,
            details={'errors': errors} if errors else None
        )


class MalformedCardStateError(StudyFlowError):
    """Persisted scheduling state violates its invariants."""

    def __init__(self, message: str, card_id: Any = None):
        super().__init__(
            message=message,
            code='MALFORMED_CARD_STATE',
            status_code=422,
            details={'card_id': card_id} if card_id is not None else None
        )


class SessionStateError(StudyFlowError):
    """Event not allowed in the review session's current state."""

    def __init__(self, message: str, state: str = None):
        super().__init__(
            message=message,
            code='INVALID_SESSION_STATE',
            status_code=409,
            details={'state': state} if state else None
        )


def error_response(
    message: str,
    code: str = 'ERROR',
    status_code: int = 400,
    details: Dict = None
) -> tuple:
    """Create a standardized error response."""
    error = {
        'success': False,
        'message': message,
        'code': code
    }
    if details:
        error['details'] = details

    return jsonify({'data': None, 'error': error}), status_code


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(StudyFlowError)
    def handle_studyflow_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{error.code}: {error.message}")
        else:
            current_app.logger.info(f"{error.code}: {error.message}")
        return jsonify({'data': None, 'error': error.to_dict()}), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        if request.path.startswith('/api/'):
            return error_response('Endpoint not found', 'NOT_FOUND', 404)
        return error

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception('Internal server error')
        if request.path.startswith('/api/'):
            return error_response('Internal server error', 'SERVER_ERROR', 500)
        return error
