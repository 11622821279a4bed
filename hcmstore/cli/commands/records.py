"""``hcmstore profile`` / ``packs`` / ``artifact`` — inspect stored records."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hcmstore.cli.output import console, emit_json, fail, service
from hcmstore.core.errors import HcmError


def profile_cmd(
    ctx: typer.Context,
    project_id: str = typer.Argument(
        None, help="Project to show. Omit to list every project profile."
    ),
    history: bool = typer.Option(
        False, "--history", "-H", help="List every stored version hash."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of text."),
) -> None:
    """Show a project profile, its version history, or all profiles."""
    svc = service(ctx)
    try:
        if project_id is None:
            summaries = svc.call(svc.profiles.list_profiles)
            if as_json:
                emit_json([s.model_dump(mode="json", exclude_none=True) for s in summaries])
                return
            table = Table(title="Project Profiles")
            table.add_column("Project", style="cyan")
            table.add_column("Name")
            table.add_column("Version", style="green")
            table.add_column("Created")
            for s in summaries:
                table.add_row(s.record_id, s.title, s.version_hash[7:19], s.created_at)
            console.print(table)
            return

        if history:
            versions = svc.call(svc.profiles.engine.list_versions, {"project_id": project_id})
            if as_json:
                emit_json(versions)
                return
            for version in versions:
                typer.echo(version)
            return

        doc = svc.call(svc.profiles.get, project_id)
    except HcmError as exc:
        fail(exc)

    if doc is None:
        console.print(f"[bold red]Profile not found:[/bold red] {project_id}")
        raise typer.Exit(code=1)
    if as_json:
        emit_json(doc)
        return
    meta = doc.get("meta", {})
    console.print(
        Panel(
            "\n".join(
                [
                    f"[bold]Project:[/bold]    {doc.get('project_id')}",
                    f"[bold]Name:[/bold]       {doc.get('profile', {}).get('project_name')}",
                    f"[bold]Version:[/bold]    {meta.get('version_hash')}",
                    f"[bold]Supersedes:[/bold] {meta.get('supersedes') or '-'}",
                    f"[bold]Created:[/bold]    {meta.get('created_at')}",
                ]
            ),
            title="[bold]Project Profile[/bold]",
            border_style="cyan",
        )
    )


def packs_cmd(
    ctx: typer.Context,
    mission_id: str = typer.Argument(..., help="Owner mission of the packs."),
    pack_type: str = typer.Option(None, "--type", "-t", help="Filter by pack type."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """List the packs stored for a mission."""
    svc = service(ctx)
    try:
        entries = svc.call(svc.packs.list_packs, mission_id, pack_type)
    except HcmError as exc:
        fail(exc)

    if as_json:
        emit_json([e.model_dump(mode="json", exclude_none=True) for e in entries])
        return
    if not entries:
        console.print("[dim]No packs stored.[/dim]")
        return
    table = Table(title=f"Packs for {mission_id}")
    table.add_column("Pack", style="cyan")
    table.add_column("Type")
    table.add_column("Hash", style="green")
    table.add_column("Stored")
    for entry in entries:
        table.add_row(
            entry.pack_id, entry.type or "-", (entry.hash or "")[:12], entry.stored_at or "-"
        )
    console.print(table)


def artifact_cmd(
    ctx: typer.Context,
    mission_id: str = typer.Argument(..., help="Owner mission of the artifact."),
    artifact_id: str = typer.Argument(..., help="Artifact id."),
    out: Path = typer.Option(
        None, "--out", "-o", help="Write the artifact content to this file.", dir_okay=False
    ),
    verify: bool = typer.Option(
        False, "--verify", "-V", help="Re-hash the blob and compare with its address."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit metadata as JSON."),
) -> None:
    """Show artifact metadata, optionally verify or export its content."""
    svc = service(ctx)
    try:
        bundle = svc.call(svc.artifacts.get_artifact, mission_id, artifact_id)
        if bundle is None:
            console.print(f"[bold red]Artifact not found:[/bold red] {artifact_id}")
            raise typer.Exit(code=1)
        blob_hash = bundle.meta.get("blob_hash")
        intact = (
            svc.call(svc.artifacts.verify, mission_id, blob_hash) if verify and blob_hash else None
        )
    except HcmError as exc:
        fail(exc)

    if out is not None:
        if bundle.content is None:
            console.print("[bold red]Blob missing for artifact.[/bold red]")
            raise typer.Exit(code=1)
        out.write_bytes(bundle.content)

    if as_json:
        payload = {"meta": bundle.meta}
        if verify:
            payload["verified"] = bool(intact)
        emit_json(payload)
    else:
        for key, value in bundle.meta.items():
            console.print(f"[bold]{key}:[/bold] {escape(str(value))}")
        if verify:
            status = "[green]intact[/green]" if intact else "[red]MISMATCH[/red]"
            console.print(f"[bold]verify:[/bold] {status}")

    if verify and not intact:
        raise typer.Exit(code=1)
