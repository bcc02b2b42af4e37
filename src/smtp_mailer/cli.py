"""Command-line interface for smtp-mailer.

Usage:
    smtp-mailer send --to a@b.com --subject Hi --body Hello
    smtp-mailer send --to a@b.com --subject Report --body "<p>See attached</p>" \\
        --html --attach report.pdf --mime-type application/pdf
    smtp-mailer invoke '{"to": "a@b.com", "subject": "Hi", "body": "Hello"}'
    smtp-mailer invoke a@b.com Hi Hello
    smtp-mailer config

The result envelope is printed as JSON on stdout; logs go to stderr. The exit
status is 0 when the relay accepted the message and 1 otherwise.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table

from smtp_mailer.config_loader import SETTINGS, load_smtp_config
from smtp_mailer.core import process_request
from smtp_mailer.errors import SmtpConfigurationError

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Drive a mailer coroutine to completion from a click command."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Report a CLI-level error in red on stderr, away from the JSON output."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_json(data: Any) -> None:
    """Write a result envelope (or any JSON-able data) to stdout."""
    console.print_json(json.dumps(data, indent=2, default=str))


def configure_logging() -> None:
    log_level = os.getenv("MAILER_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def _read_attachments(paths: tuple[str, ...], mime_types: tuple[str, ...]) -> list[dict[str, Any]]:
    """Load files as base64 attachments; ``mime_types`` pairs up by position."""
    attachments = []
    for index, path in enumerate(paths):
        file_path = Path(path)
        attachments.append({
            "name": file_path.name,
            "content": base64.b64encode(file_path.read_bytes()).decode("ascii"),
            "mimeType": mime_types[index] if index < len(mime_types) else None,
        })
    return attachments


def _dispatch(params: Any, config_path: Optional[str]) -> None:
    envelope = run_async(process_request(params, config_path=config_path))
    print_json(envelope.to_dict())
    if not envelope.success:
        sys.exit(1)


@click.group()
@click.version_option(package_name="smtp-mailer")
def main():
    """Send a single email through an SMTP relay."""
    configure_logging()


@main.command("send")
@click.option("--to", "to", required=True, help="Recipient address.")
@click.option("--subject", "-s", required=True, help="Email subject.")
@click.option("--body", "-b", required=True, help="Message body.")
@click.option("--cc", default=None, help="CC address.")
@click.option("--bcc", default=None, help="BCC address.")
@click.option("--html", "is_html", is_flag=True, help="Send the body as HTML.")
@click.option("--attach", "-a", "attach", multiple=True,
              type=click.Path(exists=True, dir_okay=False), help="File to attach (repeatable).")
@click.option("--mime-type", "mime_types", multiple=True, help="MIME type of the matching --attach.")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="INI file with an [smtp] section.")
def send_cmd(to: str, subject: str, body: str, cc: Optional[str], bcc: Optional[str],
             is_html: bool, attach: tuple[str, ...], mime_types: tuple[str, ...],
             config_path: Optional[str]) -> None:
    """Send an email built from command-line options."""
    params: dict[str, Any] = {
        "to": to,
        "subject": subject,
        "body": body,
        "cc": cc,
        "bcc": bcc,
        "isHtml": is_html,
    }
    if attach:
        params["attachments"] = _read_attachments(attach, mime_types)
    _dispatch(params, config_path)


@main.command("invoke")
@click.argument("args", nargs=-1, required=True)
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="INI file with an [smtp] section.")
def invoke_cmd(args: tuple[str, ...], config_path: Optional[str]) -> None:
    """Send an email from raw arguments.

    ARGS is either a single JSON object or the positional values
    TO SUBJECT BODY.
    """
    _dispatch(list(args), config_path)


@main.command("config")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="INI file with an [smtp] section.")
def config_cmd(config_path: Optional[str]) -> None:
    """Show the resolved SMTP configuration."""
    try:
        config = load_smtp_config(config_path=config_path)
    except SmtpConfigurationError as exc:
        print_error(str(exc))
        sys.exit(1)

    table = Table(title="SMTP configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_column("Variables", style="dim")
    values = {
        "host": config.host,
        "port": str(config.port),
        "secure": "yes" if config.secure else "no",
        "user": config.auth.user,
        "password": "********",
        "from": config.from_addr or "",
    }
    for name, (primary, fallback, _option) in SETTINGS.items():
        table.add_row(name, values[name], f"{primary} / {fallback}")
    console.print(table)


if __name__ == "__main__":
    main()
