"""``hcmstore missions`` / ``chat`` — mission working state and chat threads."""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hcmstore.cli.output import console, emit_json, fail, service
from hcmstore.core.errors import HcmError


def missions_cmd(
    ctx: typer.Context,
    mission_id: str = typer.Argument(None, help="Mission to show. Omit to list missions."),
    business: str = typer.Option(
        None, "--business", "-b", help="Only missions of this business (or unassigned)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of text."),
) -> None:
    """List missions, or show status, journal tail and next actions for one."""
    svc = service(ctx)
    try:
        if mission_id is None:
            ids = svc.call(svc.missions.list_missions, business)
            if as_json:
                emit_json(ids)
                return
            if not ids:
                console.print("[dim]No missions found.[/dim]")
                return
            for mid in ids:
                console.print(f"  [cyan]{mid}[/cyan]")
            return
        context = svc.call(svc.missions.get_context, mission_id)
    except HcmError as exc:
        fail(exc)

    if as_json:
        emit_json(context.model_dump(mode="json"))
        return

    status = context.status
    console.print(
        Panel(
            "\n".join(
                [
                    f"[bold]Mission:[/bold] {context.mission_id}",
                    f"[bold]Phase:[/bold]   {status.get('phase', '-')}",
                    f"[bold]Status:[/bold]  {status.get('status', '-')}",
                    f"[bold]Health:[/bold]  {status.get('health', '-')}",
                    f"[bold]Journal:[/bold] {len(context.journal_tail)} recent entries",
                    f"[bold]Decisions:[/bold] {len(context.decisions)}",
                ]
            ),
            title="[bold]Mission[/bold]",
            border_style="green",
        )
    )
    if context.next_actions:
        table = Table(title="Next Actions")
        table.add_column("Action", style="cyan")
        table.add_column("Title")
        table.add_column("Status")
        for action in context.next_actions:
            table.add_row(
                str(action.get("action_id", "-")),
                escape(str(action.get("title", ""))),
                str(action.get("status", "-")),
            )
        console.print(table)


def chat_cmd(
    ctx: typer.Context,
    mission_id: str = typer.Argument(..., help="Mission owning the chat."),
    thread_id: str = typer.Argument(None, help="Thread to show. Omit to list threads."),
    limit: int = typer.Option(None, "--limit", "-n", help="Only the most recent N messages."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of text."),
) -> None:
    """List a mission's chat threads, or print one thread's messages."""
    svc = service(ctx)
    try:
        if thread_id is None:
            threads = svc.call(svc.chat.list_threads, mission_id)
            if as_json:
                emit_json(threads)
                return
            if not threads:
                console.print("[dim]No chat threads.[/dim]")
                return
            for tid in threads:
                console.print(f"  [cyan]{tid}[/cyan]")
            return
        messages = svc.call(svc.chat.list_messages, mission_id, thread_id, limit)
    except HcmError as exc:
        fail(exc)

    if as_json:
        emit_json(messages)
        return
    if not messages:
        console.print("[dim]No messages.[/dim]")
        return
    for message in messages:
        console.print(
            f"[dim]{message.get('timestamp', '')}[/dim] "
            f"[bold]{escape(str(message.get('role', '?')))}:[/bold] "
            f"{escape(str(message.get('content', '')))}"
        )
