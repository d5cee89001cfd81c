"""
Error taxonomy for the API. Every error maps onto one HTTP status and is
rendered through the common {success, message, error} envelope.
"""


class ApiError(Exception):
    status_code = 500

    def __init__(self, message, error=None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_dict(self):
        body = {
            'success': False,
            'message': self.message
        }
        if self.error is not None:
            body['error'] = self.error
        return body


class ValidationError(ApiError):
    status_code = 400


class ConflictError(ApiError):
    status_code = 400


class MediaUploadError(ApiError):
    status_code = 400


class AuthenticationError(ApiError):
    status_code = 401


class AuthorizationError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404
