# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Normalization and validation of caller input.

Callers hand over their parameters in one of a few loose shapes. This module
turns any of them into a single ``EmailRequest`` or raises
``RequestValidationError`` with a message naming the first problem found.
Nothing here touches the network.

Accepted shapes, checked in order:

1. A sequence whose first element is a string. The string is parsed as a
   JSON object; if that fails the elements are read positionally as
   ``(to, subject, body)``.
2. A one-element sequence holding a mapping, which is unwrapped.
3. A mapping.

Example:
    >>> req = parse_request(['{"to": "a@b.com", "subject": "Hi", "body": "Hello"}'])
    >>> req.to
    'a@b.com'
    >>> parse_request(["a@b.com", "Hi", "Hello"]).subject
    'Hi'
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from .errors import RequestValidationError
from .logger import get_logger
from .models import AttachmentPayload, EmailRequest

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SUPPORTED_PROVIDERS = {"smtp"}

# Canonical key first, then the legacy spelling.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "to": ("to", "para"),
    "subject": ("subject", "assunto"),
    "body": ("body", "mensagem"),
    "attachments": ("attachments", "anexos"),
}

logger = get_logger("RequestNormalizer")


def is_valid_address(value: Any) -> bool:
    """Return True if ``value`` looks like ``local@domain.tld``."""
    if value is None:
        return False
    return EMAIL_PATTERN.match(str(value)) is not None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def unwrap_params(params: Any) -> dict[str, Any]:
    """Reduce any accepted input shape to a plain dict.

    Raises:
        RequestValidationError: If ``params`` has none of the accepted shapes.
    """
    if isinstance(params, EmailRequest):
        return params.model_dump(by_alias=False)

    if _is_sequence(params) and params and isinstance(params[0], str):
        try:
            decoded = json.loads(params[0])
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded
        positional = list(params[:3]) + [None] * (3 - len(params[:3]))
        to, subject, body = positional
        return {"to": to, "subject": subject, "body": body}

    if _is_sequence(params) and len(params) == 1 and isinstance(params[0], Mapping):
        return dict(params[0])

    if isinstance(params, Mapping):
        return dict(params)

    raise RequestValidationError("invalid parameters")


def _pick(data: Mapping[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES.get(field, (field,)):
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_attachments(raw: Any) -> list[AttachmentPayload] | None:
    """Coerce raw attachment entries and drop those without content.

    A single mapping counts as a one-element collection. Entries that are
    not mappings are skipped.

    Returns:
        The surviving attachments, or None when there are none.
    """
    if raw is None:
        return None
    entries = [raw] if isinstance(raw, Mapping) else raw
    if not _is_sequence(entries):
        raise RequestValidationError("invalid attachments")

    attachments: list[AttachmentPayload] = []
    for entry in entries:
        if isinstance(entry, AttachmentPayload):
            attachment = entry
        elif isinstance(entry, Mapping):
            attachment = AttachmentPayload.model_validate(dict(entry))
        else:
            logger.debug("Skipping attachment entry of type %s", type(entry).__name__)
            continue
        if not attachment.content.strip():
            logger.debug("Dropping attachment %r without content", attachment.name)
            continue
        attachments.append(attachment)
    return attachments or None


def validate_fields(data: Mapping[str, Any]) -> None:
    """Run the ordered field checks; the first failure wins.

    Raises:
        RequestValidationError: Naming the offending field.
    """
    to = _pick(data, "to")
    if not to:
        raise RequestValidationError("recipient required")
    if not _pick(data, "subject"):
        raise RequestValidationError("subject required")
    if not _pick(data, "body"):
        raise RequestValidationError("message required")
    if not is_valid_address(to):
        raise RequestValidationError("invalid recipient address")
    cc = data.get("cc")
    if cc and not is_valid_address(cc):
        raise RequestValidationError("invalid CC address")
    bcc = data.get("bcc")
    if bcc and not is_valid_address(bcc):
        raise RequestValidationError("invalid BCC address")
    provider = data.get("provider")
    if provider and str(provider).lower() not in SUPPORTED_PROVIDERS:
        raise RequestValidationError(f"unsupported provider: {provider}")


def parse_request(params: Any) -> EmailRequest:
    """Turn caller input into a validated ``EmailRequest``.

    Args:
        params: Caller input in any of the accepted shapes.

    Returns:
        The canonical request.

    Raises:
        RequestValidationError: On the first missing or malformed field.
    """
    data = unwrap_params(params)
    validate_fields(data)

    canonical: dict[str, Any] = {
        "to": str(_pick(data, "to")),
        "subject": str(_pick(data, "subject")),
        "body": str(_pick(data, "body")),
        "cc": str(data["cc"]) if data.get("cc") else None,
        "bcc": str(data["bcc"]) if data.get("bcc") else None,
        "attachments": normalize_attachments(_pick(data, "attachments")),
    }
    for key in ("isHtml", "is_html", "html"):
        if data.get(key) is not None:
            canonical["is_html"] = data[key]
            break
    if data.get("provider"):
        canonical["provider"] = str(data["provider"]).lower()

    try:
        return EmailRequest.model_validate(canonical)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise RequestValidationError(f"invalid {location or 'request'}: {first.get('msg')}") from exc
