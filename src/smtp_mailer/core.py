# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Entry point: normalize, configure, send, report.

``send_email`` is the single public operation. It never raises and never
returns a value; the outcome is handed to an emitter as a result envelope::

    {"success": true, "data": {...}, "error": null}
    {"success": false, "data": null, "error": "recipient required"}

``process_request`` does the same work but returns the envelope, which is
what tests and embedding applications usually want.

Example:
    Collecting the envelope instead of printing it::

        records = []
        await send_email(["a@b.com", "Hi", "Hello"], emit=records.append)
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from rich.console import Console

from .config_loader import load_smtp_config
from .errors import MailerError
from .logger import get_logger
from .models import ResultEnvelope, SendReport
from .normalizer import parse_request
from .sender import SmtpSender

Emitter = Callable[[dict[str, Any]], Any]

logger = get_logger("SmtpMailer")
console = Console()


def _utc_now_iso() -> str:
    """Return the current UTC timestamp as ISO-8601 string with 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def print_envelope(record: dict[str, Any]) -> None:
    """Default emitter: print the envelope as JSON on stdout."""
    console.print_json(json.dumps(record, default=str))


async def process_request(
    params: Any,
    *,
    env: Mapping[str, str] | None = None,
    config_path: str | os.PathLike[str] | None = None,
    sender: SmtpSender | None = None,
) -> ResultEnvelope:
    """Run one send and return its envelope.

    Validation and configuration errors are detected before any connection
    is attempted. Every failure, expected or not, becomes a failure envelope.

    Args:
        params: Caller input (mapping, one-element list with a mapping, or a
            list whose first element is a JSON string or the recipient).
        env: Environment mapping for configuration. Defaults to ``os.environ``.
        config_path: Optional INI file with an ``[smtp]`` section.
        sender: Sender to use. A fresh ``SmtpSender`` by default.

    Returns:
        ResultEnvelope describing the outcome.
    """
    try:
        request = parse_request(params)
        config = load_smtp_config(env, config_path)
        sender = sender or SmtpSender(env=env, config_path=config_path)
        result = await sender.send(request, config)
    except MailerError as exc:
        logger.warning("Email not sent (%s): %s", exc.code, exc)
        return ResultEnvelope.fail(str(exc))
    except Exception as exc:
        logger.exception("Unexpected error while sending email")
        return ResultEnvelope.fail(str(exc) or exc.__class__.__name__)

    report = SendReport(
        to=request.to,
        subject=request.subject,
        cc=request.cc,
        bcc=request.bcc,
        html=request.is_html,
        attachments=request.attachment_count,
        provider=request.provider,
        message_id=result.message_id,
        config=result.config,
        timestamp=_utc_now_iso(),
    )
    return ResultEnvelope.ok(report)


async def send_email(
    params: Any,
    *,
    emit: Emitter | None = None,
    env: Mapping[str, str] | None = None,
    config_path: str | os.PathLike[str] | None = None,
    sender: SmtpSender | None = None,
) -> None:
    """Send one email and emit its result envelope.

    Args:
        params: Caller input, see ``process_request``.
        emit: Callable receiving the envelope as a plain dict. Prints JSON to
            stdout by default.
        env: Environment mapping for configuration.
        config_path: Optional INI file with an ``[smtp]`` section.
        sender: Sender to use.
    """
    envelope = await process_request(params, env=env, config_path=config_path, sender=sender)
    record = envelope.to_dict()
    try:
        (emit or print_envelope)(record)
    except Exception:
        logger.exception("Failed to emit result envelope (success=%s)", record["success"])


def send_email_sync(params: Any, **kwargs: Any) -> None:
    """Blocking wrapper around ``send_email`` for scripts."""
    asyncio.run(send_email(params, **kwargs))
