"""Main Typer application — imports and registers all CLI commands.

Entry point: ``hcmstore`` (configured via pyproject.toml project.scripts).

Commands: hash, classify, search, profile, packs, artifact, missions, chat.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from hcmstore.cli.commands.hashing import hash_cmd
from hcmstore.cli.commands.missions import chat_cmd, missions_cmd
from hcmstore.cli.commands.records import artifact_cmd, packs_cmd, profile_cmd
from hcmstore.cli.commands.search import classify_cmd, search_cmd
from hcmstore.config import StoreConfig
from hcmstore.service import HcmService

app = typer.Typer(
    name="hcmstore",
    help="hcmstore: content-addressed, versioned JSON storage with scoped search.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    root: Path = typer.Option(
        None,
        "--root",
        "-R",
        help="Storage root (default: HCM_STORAGE_ROOT or .hcm).",
        file_okay=False,
    ),
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (default: HCM_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Build the service from settings, with command-line overrides."""
    config = StoreConfig() if root is None else StoreConfig(storage_root=root)
    _configure_logging(log_level or config.log_level)
    ctx.obj = HcmService.from_config(config)


# Register subcommands
app.command(name="hash", help="Print the content address of a JSON value.")(hash_cmd)
app.command(name="classify", help="Show the class and routing of a query.")(classify_cmd)
app.command(name="search", help="Scoped search over the storage tree.")(search_cmd)
app.command(name="profile", help="Show or list project profiles.")(profile_cmd)
app.command(name="packs", help="List a mission's packs.")(packs_cmd)
app.command(name="artifact", help="Inspect, verify or export an artifact.")(artifact_cmd)
app.command(name="missions", help="List missions or show one mission.")(missions_cmd)
app.command(name="chat", help="List chat threads or show a thread.")(chat_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
