"""Custom exceptions for the Praetor commercial backend."""

class PraetorError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class ValidationError(PraetorError):
    """Raised when request input is malformed (missing field, bad number, non-positive total)."""
    def __init__(self, message, field=None, payload=None):
        payload = dict(payload or ())
        if field:
            payload['field'] = field
        super().__init__(message, 400, payload or None)
        self.field = field

class ConflictError(PraetorError):
    """Raised when a state-machine rule forbids the requested change."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)

class NotFoundError(PraetorError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class UnauthorizedError(PraetorError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)
