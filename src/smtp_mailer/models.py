# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for requests, relay configuration and result envelopes.

Models:
    - AttachmentPayload: One base64-encoded attachment.
    - EmailRequest: Canonical, validated email intent.
    - SmtpAuth / SmtpConfig: Relay connection settings resolved per call.
    - SendResult: Outcome of a single SMTP dispatch.
    - SendReport: Success payload reported to the caller.
    - ResultEnvelope: Discriminated success/failure record.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class AttachmentPayload(BaseModel):
    """Email attachment carried inline as base64.

    Both the ``name``/``content``/``mimeType`` and the
    ``nome``/``conteudo``/``tipo`` spellings are accepted on input.

    Attributes:
        name: Attachment filename.
        content: Base64-encoded content.
        mime_type: Optional MIME type passed through to the message.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Annotated[
        str,
        Field(default="", validation_alias=AliasChoices("name", "nome", "filename"),
              description="Attachment filename")
    ]
    content: Annotated[
        str,
        Field(default="", validation_alias=AliasChoices("content", "conteudo"),
              description="Base64-encoded content")
    ]
    mime_type: Annotated[
        str | None,
        Field(default=None, validation_alias=AliasChoices("mimeType", "mime_type", "tipo", "contentType"),
              description="MIME type override")
    ]

    @field_validator("name", "content", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> str:
        """Coerce any scalar to a string; ``None`` becomes empty."""
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("mime_type", mode="before")
    @classmethod
    def empty_mime_type_is_none(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        return str(v)


class EmailRequest(BaseModel):
    """Validated request to send one email.

    Attributes:
        to: Recipient address.
        subject: Email subject.
        body: Plain text or HTML body, depending on ``is_html``.
        cc: Optional CC address.
        bcc: Optional BCC address.
        is_html: Whether ``body`` is HTML.
        attachments: Attachments with non-empty content, or None.
        provider: Transport provider; only "smtp" exists.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    to: Annotated[str, Field(min_length=1, description="Recipient address")]
    subject: Annotated[str, Field(min_length=1, description="Email subject")]
    body: Annotated[str, Field(min_length=1, description="Email body content")]
    cc: Annotated[str | None, Field(default=None, description="CC address")]
    bcc: Annotated[str | None, Field(default=None, description="BCC address")]
    is_html: Annotated[
        bool,
        Field(default=False, validation_alias=AliasChoices("isHtml", "is_html", "html"),
              description="Send body as text/html")
    ]
    attachments: Annotated[
        list[AttachmentPayload] | None,
        Field(default=None, description="List of attachments")
    ]
    provider: Annotated[
        Literal["smtp"],
        Field(default="smtp", description="Transport provider")
    ]

    @property
    def attachment_count(self) -> int:
        return len(self.attachments or [])


class SmtpAuth(BaseModel):
    """Credentials used to log into the relay."""

    model_config = ConfigDict(populate_by_name=True)

    user: Annotated[str, Field(min_length=1, description="SMTP username")]
    password: Annotated[
        str,
        Field(min_length=1, validation_alias=AliasChoices("password", "pass"), description="SMTP password")
    ]


class SmtpConfig(BaseModel):
    """SMTP relay configuration, resolved fresh for every send.

    Attributes:
        host: Relay hostname.
        port: Relay port (587 unless configured).
        secure: Use implicit TLS from the first byte.
        auth: Login credentials.
        from_addr: Sender address; defaults to ``auth.user``.
    """

    model_config = ConfigDict(populate_by_name=True)

    host: Annotated[str, Field(min_length=1, description="SMTP server hostname")]
    port: Annotated[int, Field(default=587, ge=1, le=65535, description="SMTP server port")]
    secure: Annotated[bool, Field(default=False, description="Implicit TLS")]
    auth: SmtpAuth
    from_addr: Annotated[
        str | None,
        Field(default=None, alias="from", description="Sender address (default: auth.user)")
    ]

    @model_validator(mode="after")
    def default_sender_to_user(self) -> SmtpConfig:
        if not self.from_addr:
            self.from_addr = self.auth.user
        return self

    def summary(self) -> dict[str, Any]:
        """Return the non-secret part of the configuration."""
        return {
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "user": self.auth.user,
        }


class SendResult(BaseModel):
    """Outcome of a successful SMTP dispatch."""

    success: bool = True
    message_id: str
    config: dict[str, Any]


class SendReport(BaseModel):
    """Success payload echoed back to the caller."""

    model_config = ConfigDict(populate_by_name=True)

    to: str
    subject: str
    cc: str | None = None
    bcc: str | None = None
    html: bool = False
    attachments: Annotated[int, Field(default=0, ge=0, description="Attachments handed to the relay")]
    provider: str = "smtp"
    message_id: Annotated[str, Field(serialization_alias="messageId")]
    config: dict[str, Any]
    timestamp: Annotated[str, Field(description="ISO-8601 UTC timestamp")]


class ResultEnvelope(BaseModel):
    """Success/failure record emitted in place of a return value.

    Exactly one of ``data`` and ``error`` is set.
    """

    success: bool
    data: SendReport | None = None
    error: str | None = None

    @classmethod
    def ok(cls, report: SendReport) -> ResultEnvelope:
        return cls(success=True, data=report)

    @classmethod
    def fail(cls, error: str) -> ResultEnvelope:
        return cls(success=False, data=None, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict form, with camelCase keys where the wire format uses them."""
        return self.model_dump(by_alias=True)
