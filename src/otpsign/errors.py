"""
Domain-specific exceptions and error codes for otpsign.

Leaf components raise the exceptions below on contract violations.
The signing pipeline never lets them escape: it converts every failure
into an ErrorCode carried by a Result.
"""

from enum import Enum


class ErrorCode(Enum):
    """Error kinds reported at the pipeline boundary."""
    SUCCESS = "SUCCESS"
    INIT_SERVICE_ERROR = "INIT_SERVICE_ERROR"
    INVALID_USER_DATA = "INVALID_USER_DATA"
    INVALID_JSON = "INVALID_JSON"
    INVALID_AUTH_TOKEN = "INVALID_AUTH_TOKEN"
    FILE_IO_ERROR = "FILE_IO_ERROR"
    HTML_REPLACE_ERROR = "HTML_REPLACE_ERROR"
    PDF_GENERATION_ERROR = "PDF_GENERATION_ERROR"
    SMS_SEND_ERROR = "SMS_SEND_ERROR"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    STAMP_APPLICATION_ERROR = "STAMP_APPLICATION_ERROR"
    INVALID_CONFIG = "INVALID_CONFIG"
    CREDENTIALS_ERROR = "CREDENTIALS_ERROR"
    SERVICE_SHUTDOWN = "SERVICE_SHUTDOWN"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class OtpSignError(Exception):
    """Base exception for all otpsign errors."""
    pass


class ConfigError(OtpSignError):
    """Raised when the service configuration cannot be loaded."""
    pass


class IdentityError(OtpSignError):
    """Raised when signer identity data is malformed."""
    pass


class HashBindingError(OtpSignError, ValueError):
    """Raised when a composite hash cannot be computed or verified."""
    pass


class TemplateError(OtpSignError):
    """Raised when a template cannot be read or populated."""
    pass


class RenderError(OtpSignError):
    """Raised by rendering backends when HTML to PDF conversion fails."""
    pass


class StampError(OtpSignError):
    """Raised by stamping backends when a stamp cannot be applied."""
    pass


class MessagingError(OtpSignError):
    """Raised when the messaging provider cannot be reached or configured."""
    pass


class CredentialsError(MessagingError):
    """Raised when messaging credentials cannot be read or persisted."""
    pass


class LogSinkError(OtpSignError):
    """Raised when the log file cannot be opened."""
    pass


class ResultError(OtpSignError):
    """Raised when reading the value of an error Result."""
    pass
