"""PlantMap CLI - async commands for operators.

Commands:
- init: Initialize database schema
- validate: Run startup validations
- import-layout: Store a plant layout file as a new version
- cycle-info: Show cycle and progress for a task type
- reset-cycle: Start the next cycle of a completed task type
- pending: List pending status requests
- history: Show archived cycles for a task type
- web serve: Run the FastAPI service
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.table import Table

from plantmap.config import get_config
from plantmap.core.audit_logger import log_action
from plantmap.cycles import CycleStateStore, fetch_cycle_history, get_cycle_info
from plantmap.db.connection import close_db, get_session, init_db
from plantmap.exceptions import PlantMapError
from plantmap.models import TaskType
from plantmap.registry import TrackerRegistry, load_registry, load_site_config, save_layout
from plantmap.review import fetch_pending_requests
from plantmap.startup_validation import StartupValidationError, run_all_validations

app = typer.Typer(
    name="plantmap",
    help="PlantMap - Tracker maintenance cycles and status approvals",
    no_args_is_help=True,
)
web_cli = typer.Typer(help="Web API")
app.add_typer(web_cli, name="web")

console = Console()


def _run(coro) -> None:
    """Run a coroutine and dispose the engine afterwards."""

    async def _wrapped():
        try:
            await coro
        finally:
            await close_db()

    asyncio.run(_wrapped())


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    if drop:
        console.print("[yellow]Dropping existing tables...[/yellow]")

    _run(init_db(drop=drop))
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def validate():
    """Check site configuration and database connectivity."""

    async def _validate():
        async with get_session() as session:
            await run_all_validations(session)

    try:
        _run(_validate())
    except StartupValidationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    console.print("[bold green]✓[/bold green] All validations passed")


@app.command(name="import-layout")
def import_layout(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Layout file (JSON/YAML)"),
    created_by: str = typer.Option("cli", "--by", help="Recorded author of this version"),
):
    """Store a plant layout as a new version.

    The file holds a list of {id, row, col, label} entries, or a mapping with
    a `structure` key containing that list.
    """
    with file.open(encoding="utf-8") as f:
        data = json.load(f) if file.suffix.lower() == ".json" else yaml.safe_load(f)
    structure = data.get("structure") if isinstance(data, dict) else data
    if not isinstance(structure, list) or not structure:
        console.print("[red]✗[/red] Layout file must contain a non-empty list of entries")
        raise typer.Exit(code=1)

    registry = TrackerRegistry.from_structure(structure, load_site_config())
    console.print(
        f"[bold]Importing layout:[/bold] {len(structure)} entries, "
        f"{len(registry.tracker_ids())} trackers"
    )

    async def _import():
        async with get_session() as session:
            version = await save_layout(session, structure, created_by=created_by)
            await log_action(
                None,
                "PLANT_LAYOUT_SAVE",
                created_by,
                resource_type="plant_layout",
                resource_id=str(version),
                details={"entries": len(structure), "source": str(file)},
                session=session,
            )
        console.print(f"[bold green]✓[/bold green] Saved layout version {version}")

    _run(_import())


@app.command(name="cycle-info")
def cycle_info(
    task: TaskType = typer.Argument(..., help="Task type"),
):
    """Show the current cycle and progress for a task type."""

    async def _info():
        async with get_session() as session:
            registry = await load_registry(session, load_site_config())
            info = await get_cycle_info(session, registry, task)

        table = Table(title=f"{task.label} cycle")
        table.add_column("Field", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Cycle", str(info["cycle_number"] or "not started"))
        table.add_row("Progress", f"{info['progress']:.2f}%")
        table.add_row("Done", str(info["done_count"]))
        table.add_row("Halfway", str(info["halfway_count"]))
        table.add_row("Not done", str(info["not_done_count"]))
        table.add_row("Trackers", str(info["total_count"]))
        table.add_row("Complete", "yes" if info["is_complete"] else "no")
        console.print(table)

    _run(_info())


@app.command(name="reset-cycle")
def reset_cycle(
    task: TaskType = typer.Argument(..., help="Task type"),
    reset_by: str = typer.Option(..., "--by", help="Admin performing the reset"),
):
    """Start the next cycle once every tracker is done."""

    async def _reset():
        async with get_session() as session:
            registry = await load_registry(session, load_site_config())
            state = await CycleStateStore(session, registry).reset_cycle(task, reset_by=reset_by)
            await log_action(
                None,
                "CYCLE_RESET",
                reset_by,
                resource_type="tracker_cycle",
                resource_id=f"{task.value}:{state.cycle_number}",
                details={"task_type": task.value, "cycle_number": state.cycle_number},
                session=session,
            )
        console.print(
            f"[bold green]✓[/bold green] {task.label} reset to cycle {state.cycle_number}"
        )

    try:
        _run(_reset())
    except PlantMapError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(code=1)


@app.command()
def pending(
    task: TaskType | None = typer.Option(None, "--task", help="Filter by task type"),
):
    """List pending status requests, newest first."""

    async def _pending():
        async with get_session() as session:
            requests = await fetch_pending_requests(session, task)

        if not requests:
            console.print("[dim]No pending requests[/dim]")
            return

        table = Table(title="Pending status requests")
        table.add_column("ID", style="dim")
        table.add_column("Task")
        table.add_column("State")
        table.add_column("Trackers")
        table.add_column("By")
        table.add_column("Submitted")
        for req in requests:
            table.add_row(
                str(req.id),
                req.task_type.label,
                req.requested_state.value,
                ", ".join(req.tracker_ids),
                req.submitted_by,
                req.submitted_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)

    _run(_pending())


@app.command()
def history(
    task: TaskType = typer.Argument(..., help="Task type"),
    year: int | None = typer.Option(None, "--year", help="Filter by year"),
):
    """Show archived cycles for a task type."""

    async def _history():
        async with get_session() as session:
            data = await fetch_cycle_history(session, task, year=year)

        table = Table(title=f"{task.label} cycles ({data['summary']['total_cycles']})")
        table.add_column("Cycle", justify="right")
        table.add_column("Month")
        table.add_column("Started")
        table.add_column("Completed")
        table.add_column("Days", justify="right")
        table.add_column("Reset by")
        for cycle in data["cycles"]:
            table.add_row(
                str(cycle["cycle_number"]),
                f"{cycle['month_name']} {cycle['year']}",
                (cycle["started_at"] or "")[:10],
                (cycle["completed_at"] or "-")[:10],
                "-" if cycle["duration_days"] is None else f"{cycle['duration_days']:.1f}",
                cycle["reset_by"] or "",
            )
        console.print(table)

    _run(_history())


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI service."""
    import uvicorn

    typer.echo(f"Starting PlantMap API on http://{host}:{port}")
    uvicorn.run("plantmap.web.app:app", host=host, port=port, reload=reload, workers=1)


def main():
    app()


if __name__ == "__main__":
    main()
