from typing import Optional


class DevEventError(Exception):
    """Base class for every error raised by the devevent core."""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ConfigurationError(DevEventError):
    status_code = 503


class DatabaseConnectionError(DevEventError, ConnectionError):
    status_code = 503


class NotFoundError(DevEventError):
    status_code = 404


# ---------- Validation ----------
class ValidationError(DevEventError):
    """A record was rejected before (or while) being written."""

    status_code = 400


class MissingFieldError(ValidationError):
    pass


class InvalidFormatError(ValidationError):
    pass


class InvalidValueError(ValidationError):
    pass


class NonEmptyConstraintError(ValidationError):
    pass


class ReferenceNotFoundError(ValidationError):
    status_code = 404


class UniquenessError(ValidationError):
    status_code = 409
