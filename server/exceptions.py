"""Custom exception classes for the ShortDrop server."""

from typing import Optional


class ShortDropError(Exception):
    """
    Base exception class for all ShortDrop errors.

    Subclasses carry the HTTP status and machine-readable code used by the
    exception handlers in server.main.
    """
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NoFileError(ShortDropError):
    """
    Raised when an upload request carries no file field.
    """
    status_code = 400
    code = "NO_FILE"
    default_message = "No file uploaded"


class ValidationFailedError(ShortDropError):
    """
    Raised when an uploaded file violates the size or type policy.
    """
    status_code = 400
    code = "VALIDATION_FAILED"
    default_message = "File validation failed"


class PayloadTooLargeError(ValidationFailedError):
    """
    Raised when the received payload exceeds the configured maximum size.
    """
    code = "PAYLOAD_TOO_LARGE"
    default_message = "File too large"


class UnsupportedTypeError(ValidationFailedError):
    """
    Raised when the declared MIME type is not in the allow-list.
    """
    code = "UNSUPPORTED_TYPE"
    default_message = "File type not allowed"


class RateLimitedError(ShortDropError):
    """
    Raised when a client exceeds its upload attempt window.
    """
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Too many upload attempts, please try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class RecordNotFoundError(ShortDropError):
    """
    Raised when a requested identifier is unknown or malformed.
    """
    status_code = 404
    code = "NOT_FOUND"
    default_message = "File not found"


class UploadFailedError(ShortDropError):
    """
    Raised when writing the file or persisting its metadata fails.
    """
    status_code = 500
    code = "UPLOAD_FAILED"
    default_message = "Upload failed"


class DuplicateIdentifierError(ShortDropError):
    """
    Raised by the metadata store when registering an id that already exists.
    """
    status_code = 500
    code = "UPLOAD_FAILED"
    default_message = "Upload failed"
