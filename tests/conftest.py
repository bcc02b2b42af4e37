"""Shared fixtures: a recording stand-in for ``aiosmtplib.SMTP`` and a relay environment."""

from __future__ import annotations

from typing import Any

import pytest

RELAY_ENV = {
    "SMTP_HOST": "smtp.example.com",
    "SMTP_PORT": "587",
    "SMTP_USER": "mailer@example.com",
    "SMTP_PASS": "secret",
}


class DummySMTP:
    def __init__(self, relay: "DummyRelay", hostname, port, use_tls=False, start_tls=None, **kwargs):
        self.relay = relay
        self.hostname = hostname
        self.port = port
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.login_credentials: tuple[str, str] | None = None
        self.connected = False
        self.closed = False
        self.sent: list[dict[str, Any]] = []

    async def connect(self):
        if self.relay.connect_error:
            raise self.relay.connect_error
        self.connected = True

    async def login(self, user, password):
        if self.relay.login_error:
            raise self.relay.login_error
        self.login_credentials = (user, password)

    async def noop(self):
        return self.relay.noop_code, "OK"

    async def send_message(self, message, sender=None, recipients=None, **_kwargs):
        if self.relay.send_error:
            raise self.relay.send_error
        self.sent.append({"message": message, "sender": sender})
        return {}, self.relay.response

    async def quit(self):
        self.closed = True

    def close(self):
        self.closed = True


class DummyRelay:
    """Factory installed in place of ``aiosmtplib.SMTP``; remembers every client."""

    def __init__(self):
        self.created: list[DummySMTP] = []
        self.response = "2.0.0 Ok: queued as abc123"
        self.noop_code = 250
        self.connect_error: Exception | None = None
        self.login_error: Exception | None = None
        self.send_error: Exception | None = None

    def __call__(self, **kwargs):
        smtp = DummySMTP(self, **kwargs)
        self.created.append(smtp)
        return smtp

    @property
    def messages(self) -> list:
        return [entry["message"] for smtp in self.created for entry in smtp.sent]


@pytest.fixture
def relay(monkeypatch):
    dummy = DummyRelay()
    monkeypatch.setattr("smtp_mailer.sender.aiosmtplib.SMTP", dummy)
    return dummy


@pytest.fixture
def relay_env():
    return dict(RELAY_ENV)


@pytest.fixture
def clean_environ(monkeypatch):
    """Remove every SMTP setting from the process environment."""
    from smtp_mailer.config_loader import CONFIG_PATH_ENV, SETTINGS

    for primary, fallback, _option in SETTINGS.values():
        monkeypatch.delenv(primary, raising=False)
        monkeypatch.delenv(fallback, raising=False)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    return monkeypatch
