"""``hcmstore classify`` / ``hcmstore search`` — the hindex router from the shell."""

from __future__ import annotations

import typer
from rich.table import Table

from hcmstore.cli.output import console, emit_json, fail, service
from hcmstore.core.errors import HcmError


def classify_cmd(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Free-text query to classify."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of text."),
) -> None:
    """Show which class and routing mode a query resolves to."""
    svc = service(ctx)
    try:
        classification = svc.call(svc.router.classify, query)
        routing_mode = svc.call(svc.router.get_routing, classification)
        scope = svc.call(svc.router.get_scope, classification)
    except HcmError as exc:
        fail(exc)

    if as_json:
        emit_json(
            {
                "classification": classification,
                "routing_mode": routing_mode,
                "scope": scope.model_dump() if scope else None,
            }
        )
        return
    console.print(f"[bold]Class:[/bold]   [cyan]{classification}[/cyan]")
    console.print(f"[bold]Routing:[/bold] {routing_mode}")
    if scope is None:
        console.print("[yellow]No scope defined[/yellow]")
        return
    for pattern in scope.include:
        console.print(f"  [green]+[/green] {pattern}")
    for pattern in scope.exclude:
        console.print(f"  [red]-[/red] {pattern}")


def search_cmd(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Free-text query."),
    space: str = typer.Option(None, "--space", "-s", help="Restrict to one space."),
    workspace: str = typer.Option(
        None, "--workspace", "-w", help="Restrict to one workspace (requires --space)."
    ),
    caller: str = typer.Option("cli", "--caller", help="Caller id recorded in logs."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """Classify a query and read every file in its scope."""
    if workspace and not space:
        raise typer.BadParameter("--workspace requires --space")
    svc = service(ctx)
    try:
        if space:
            result = svc.call(
                svc.spaces.search, space, query, workspace_id=workspace, caller_id=caller
            )
        else:
            result = svc.call(svc.router.search, query, caller)
    except HcmError as exc:
        fail(exc)

    if as_json:
        emit_json(result.model_dump(mode="json"))
        return

    table = Table(title=f"{result.classification} ({result.routing_mode or '-'})")
    table.add_column("Source", style="cyan")
    table.add_column("Kind")
    for hit in result.results:
        kind = "lines" if isinstance(hit.content, list) else type(hit.content).__name__
        table.add_row(hit.source, kind)
    console.print(table)
    if result.note:
        console.print(f"[yellow]{result.note}[/yellow]")
    console.print(f"[dim]{result.count} result(s)[/dim]")
