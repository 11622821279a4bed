"""Shared console, JSON emission and error reporting for CLI commands."""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from hcmstore.core.errors import HcmError
from hcmstore.service import HcmService

console = Console()


def service(ctx: typer.Context) -> HcmService:
    """The service built by the app callback (or a default one)."""
    svc = ctx.find_object(HcmService)
    if svc is None:
        svc = HcmService.from_config()
        ctx.obj = svc
    return svc


def emit_json(data: Any) -> None:
    """Print machine-readable JSON on stdout (no Rich markup or wrapping)."""
    typer.echo(json.dumps(data, indent=2, default=str))


def fail(exc: HcmError) -> NoReturn:
    """Report a storage error and exit non-zero."""
    console.print(f"[bold red]{exc.code}:[/bold red] {escape(exc.message)}")
    for key, value in exc.details.items():
        console.print(f"  [dim]{key}:[/dim] {escape(str(value))}")
    raise typer.Exit(code=1)
