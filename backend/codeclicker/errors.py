"""Error taxonomy shared by services and routes.

Every error carries the HTTP status it maps to, so the app-level handler
can render any of them as ``{"error": message}`` without a lookup table.
"""


class ApiError(Exception):
    status_code = 500
    message = 'Server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationFailure(ApiError):
    status_code = 400
    message = 'Invalid request payload'


class Conflict(ApiError):
    # The public contract reports a taken username as a plain 400
    status_code = 400
    message = 'Username already taken'


class Unauthorized(ApiError):
    status_code = 401
    message = 'Invalid username or password'


class Unauthenticated(ApiError):
    status_code = 401
    message = 'Authentication token required'


class Forbidden(ApiError):
    status_code = 403
    message = 'Invalid or expired token'


class NotFound(ApiError):
    status_code = 404
    message = 'Not found'


class StoreFailure(ApiError):
    status_code = 500
    message = 'Server error'
