"""Named loggers for smtp-mailer modules.

Library code never installs handlers. ``smtp_mailer.cli`` configures the root
logger once (level from ``MAILER_LOG_LEVEL``, output on stderr) so that the
JSON envelope on stdout stays clean.

Example:
    >>> logger = get_logger("SmtpSender")
    >>> logger.info("Message %s accepted by %s", "abc123", "smtp.example.com")
"""

import logging


def get_logger(name: str = "SmtpMailer") -> logging.Logger:
    """Return the logger for one mailer component.

    Args:
        name: Component name, e.g. "SmtpSender" or "SmtpConfigLoader".

    Returns:
        The shared ``logging.Logger`` registered under ``name``.
    """
    return logging.getLogger(name)
