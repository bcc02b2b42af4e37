"""Exception types raised while preparing and sending a message.

Each error carries a stable ``code`` next to its human-readable message.
They are all terminal: the entry point turns them into a failure envelope.
"""

from __future__ import annotations


class MailerError(RuntimeError):
    """Base class for every smtp-mailer failure."""

    code = "mailer_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RequestValidationError(MailerError):
    """Raised when caller input is missing a field or is malformed."""

    code = "invalid_request"


class SmtpConfigurationError(MailerError):
    """Raised when host, user or password cannot be resolved."""

    code = "missing_smtp_configuration"

    def __init__(self, message: str = "Missing SMTP configuration", missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])


class AttachmentDecodeError(MailerError):
    """Raised when attachment content is not valid base64."""

    code = "invalid_attachment"


class SmtpConnectionError(MailerError):
    """Raised when the relay cannot be reached or rejects authentication."""

    code = "smtp_connection_failed"


class SmtpSendError(MailerError):
    """Raised when the relay refuses the message."""

    code = "smtp_send_failed"
