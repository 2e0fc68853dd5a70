"""Domain exceptions: each one carries the HTTP status it maps to.

Services raise these; the handlers registered in ``suivi.main`` turn them
into ``{"error": message}`` JSON bodies.
"""
from fastapi import status


class SuiviError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SuiviError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class DuplicateKey(SuiviError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Duplicate key"


class DuplicateReference(DuplicateKey):
    default_message = "This reference already exists"


class DuplicateLogin(DuplicateKey):
    default_message = "This login already exists"


class Unauthenticated(SuiviError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidCredentials(Unauthenticated):
    default_message = "Invalid credentials"


class Forbidden(SuiviError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(SuiviError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UnsupportedFileType(SuiviError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "File type not allowed"


class FileTooLarge(SuiviError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "File too large"


class InternalError(SuiviError):
    pass
