"""``hcmstore hash`` — print the canonical content address of a JSON value."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from hcmstore.cli.output import console, emit_json, fail
from hcmstore.core.errors import HcmError
from hcmstore.core.hasher import canonicalize, content_address


def hash_cmd(
    value: str = typer.Argument(
        None,
        help="JSON text to hash. Omit when using --file.",
    ),
    file: Path = typer.Option(
        None,
        "--file",
        "-f",
        help="Read the JSON value from a file instead.",
        exists=True,
        dir_okay=False,
    ),
    show_canonical: bool = typer.Option(
        False,
        "--canonical",
        "-c",
        help="Also print the canonical serialization.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of text."),
) -> None:
    """Hash a JSON value exactly as the store does (key order independent)."""
    if file is not None:
        text = file.read_text(encoding="utf-8")
    elif value is not None:
        text = value
    else:
        raise typer.BadParameter("provide a JSON VALUE or --file")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"not valid JSON: {exc}") from exc

    try:
        canonical = canonicalize(parsed)
        address = content_address(parsed)
    except HcmError as exc:
        fail(exc)

    if as_json:
        emit_json({"hash": address, "canonical": canonical} if show_canonical else {"hash": address})
        return
    if show_canonical:
        console.print(canonical, markup=False, highlight=False, soft_wrap=True)
    typer.echo(address)
