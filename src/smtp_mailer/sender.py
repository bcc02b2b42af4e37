# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP delivery of a single validated request.

Every send opens its own connection, verifies it (connect, login, NOOP),
submits the message and closes the connection again. There is no pooling
and no retry: any failure is terminal for the call.

TLS behavior based on the ``secure`` flag:
- secure=True: implicit TLS from the first byte (typically port 465)
- secure=False: plain connect, upgraded with STARTTLS when the relay offers it

Example:
    Sending a request::

        sender = SmtpSender()
        result = await sender.send(request)
        print(result.message_id)
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import os
import re
import time
from collections.abc import Mapping
from email.message import EmailMessage

import aiosmtplib

from .config_loader import load_smtp_config
from .errors import AttachmentDecodeError, SmtpConnectionError, SmtpSendError
from .logger import get_logger
from .models import AttachmentPayload, EmailRequest, SendResult, SmtpConfig

DEFAULT_MIME_TYPE = "application/octet-stream"
DEFAULT_FILENAME = "file.bin"
MESSAGE_ID_PREFIX = "email_"

# Postfix: "2.0.0 Ok: queued as 4F2B81C0A3", Exim: "OK id=1qXyZa-0004Kc-2B"
_QUEUE_ID_PATTERNS = (
    re.compile(r"queued as\s+([^\s;,]+)", re.IGNORECASE),
    re.compile(r"\bid=([^\s;,]+)", re.IGNORECASE),
)


def decode_attachment(attachment: AttachmentPayload) -> bytes:
    """Decode base64 attachment content, tolerating whitespace and missing padding.

    Raises:
        AttachmentDecodeError: If the content is not valid base64.
    """
    content = "".join(attachment.content.split())
    padding_needed = 4 - (len(content) % 4)
    if padding_needed != 4:
        content += "=" * padding_needed
    try:
        return base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AttachmentDecodeError(
            f"Invalid base64 content for attachment {attachment.name or DEFAULT_FILENAME}: {e}"
        ) from e


def extract_message_id(response: str | None) -> str | None:
    """Pull the relay's queue id out of its final reply, if it has one."""
    if not response:
        return None
    for pattern in _QUEUE_ID_PATTERNS:
        match = pattern.search(response)
        if match:
            return match.group(1)
    return None


def fallback_message_id() -> str:
    """Local id for log correlation when the relay reports none."""
    return f"{MESSAGE_ID_PREFIX}{int(time.time() * 1000)}"


class SmtpSender:
    """Deliver one ``EmailRequest`` through the configured relay.

    Attributes:
        env: Environment mapping used to resolve configuration, or None for
            ``os.environ``.
        config_path: Optional INI file with an ``[smtp]`` section.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        config_path: str | os.PathLike[str] | None = None,
    ):
        self.env = env
        self.config_path = config_path
        self.logger = get_logger("SmtpSender")

    @staticmethod
    def build_message(request: EmailRequest, config: SmtpConfig) -> EmailMessage:
        """Build an EmailMessage from a validated request.

        The body goes to text/plain or text/html, never both. Attachments are
        base64-decoded here, so bad content fails before any connection is
        opened.

        Raises:
            AttachmentDecodeError: If an attachment is not valid base64.
        """
        msg = EmailMessage()
        msg["From"] = config.from_addr
        msg["To"] = request.to
        msg["Subject"] = request.subject
        if request.cc:
            msg["Cc"] = request.cc
        if request.bcc:
            msg["Bcc"] = request.bcc
        subtype = "html" if request.is_html else "plain"
        msg.set_content(request.body, subtype=subtype)

        for attachment in request.attachments or []:
            content = decode_attachment(attachment)
            mime_type = attachment.mime_type
            if mime_type and "/" in mime_type:
                maintype, subtype = mime_type.split("/", 1)
            else:
                maintype, subtype = DEFAULT_MIME_TYPE.split("/", 1)
            msg.add_attachment(
                content,
                maintype=maintype,
                subtype=subtype,
                filename=attachment.name or DEFAULT_FILENAME,
            )
        return msg

    async def _connect(self, config: SmtpConfig) -> aiosmtplib.SMTP:
        """Open and verify a connection: connect, login, NOOP.

        Raises:
            SmtpConnectionError: If the relay is unreachable or refuses login.
        """
        if config.secure:
            smtp = aiosmtplib.SMTP(hostname=config.host, port=config.port, use_tls=True, start_tls=False)
        else:
            # start_tls=None upgrades only when the relay advertises STARTTLS
            smtp = aiosmtplib.SMTP(hostname=config.host, port=config.port, use_tls=False, start_tls=None)
        try:
            await smtp.connect()
            await smtp.login(config.auth.user, config.auth.password)
            code, _ = await smtp.noop()
            if code != 250:
                raise SmtpConnectionError(f"SMTP verification failed: NOOP returned {code}")
        except SmtpConnectionError:
            await self._close(smtp)
            raise
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            await self._close(smtp)
            raise SmtpConnectionError(f"SMTP verification failed: {exc}") from exc
        return smtp

    async def _close(self, smtp: aiosmtplib.SMTP) -> None:
        try:
            await smtp.quit()
        except Exception as exc:
            self.logger.debug("Ignoring error while closing SMTP connection: %s", exc)
            smtp.close()

    async def send(self, request: EmailRequest, config: SmtpConfig | None = None) -> SendResult:
        """Send ``request`` and return the relay's message id.

        Args:
            request: Validated request.
            config: Relay configuration. Resolved from the environment when
                omitted.

        Returns:
            SendResult with the relay-assigned id, or a local ``email_<ms>``
            id when the relay does not report one.

        Raises:
            SmtpConfigurationError: If configuration is incomplete.
            AttachmentDecodeError: If an attachment is not valid base64.
            SmtpConnectionError: If connecting or logging in fails.
            SmtpSendError: If the relay refuses the message.
        """
        if config is None:
            config = load_smtp_config(self.env, self.config_path)
        msg = self.build_message(request, config)

        self.logger.debug(
            "Connecting to %s:%d (secure=%s) as %s", config.host, config.port, config.secure, config.auth.user
        )
        smtp = await self._connect(config)
        try:
            _refused, response = await smtp.send_message(msg, sender=config.from_addr)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            self.logger.error("SMTP send to %s failed: %s", request.to, exc)
            raise SmtpSendError(str(exc)) from exc
        finally:
            await self._close(smtp)

        message_id = extract_message_id(response) or fallback_message_id()
        self.logger.info("Message %s accepted by %s for %s", message_id, config.host, request.to)
        return SendResult(success=True, message_id=message_id, config=config.summary())
