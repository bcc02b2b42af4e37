"""Send a single email through an SMTP relay and report a result envelope.

This package accepts loosely shaped caller input, validates it, resolves the
SMTP relay configuration from the environment and delivers one message with
``aiosmtplib``. Every outcome, good or bad, is reported as a
``{success, data, error}`` envelope instead of an exception.

Example:
    Sending from async code::

        from smtp_mailer import send_email

        await send_email({"to": "a@b.com", "subject": "Hi", "body": "Hello"})

    Or from a script::

        from smtp_mailer import send_email_sync

        send_email_sync(['{"to": "a@b.com", "subject": "Hi", "body": "Hello"}'])
"""

from .core import process_request, send_email, send_email_sync

__all__ = ["process_request", "send_email", "send_email_sync"]
