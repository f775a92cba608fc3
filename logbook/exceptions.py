"""
Logbook workflow errors.

Every service raises one of these; none of them is swallowed inside the
engines. The API layer turns them into JSON error responses.
"""


class LogbookError(Exception):
    """Base class for all workflow errors."""
    code = 'error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'code': self.code, 'message': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(LogbookError):
    """Malformed input: title/task length, invalid or future date, bad field."""
    code = 'validation_error'

    def __init__(self, message, field=None):
        details = {'field': field} if field else {}
        super().__init__(message, **details)
        self.field = field


class AuthError(LogbookError):
    """No authenticated actor."""
    code = 'auth_required'


class ForbiddenError(LogbookError):
    """Actor lacks the role or assignment to act on this record."""
    code = 'forbidden'


class NotFoundError(LogbookError):
    """Entry or clearance record does not exist."""
    code = 'not_found'


class ConflictError(LogbookError):
    """Transition is not legal from the record's current state."""
    code = 'conflict'

    def __init__(self, message, current_state=None):
        details = {'current_state': current_state} if current_state else {}
        super().__init__(message, **details)
        self.current_state = current_state
