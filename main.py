"""
Portal Engine Admin CLI.

Bootstraps the dependency graph via constructor injection, initialises the
local SQLite schema and exposes the engine's admin actions as subcommands.
Every subsystem is wired here; no module-level globals.

Usage::

    python main.py approvals --status pending
    python main.py notify-upload '{"projectId": "p1", "filePath": "...", ...}'
    python main.py delete-customer <customer-id>
    python main.py sync
    python main.py status
"""

from __future__ import annotations

import atexit
import json
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from pydantic import BaseModel

from portal.config import AppConfig, get_config
from portal.database import DatabaseManager
from portal.logger import StructuredLogger, get_logger
from portal.models.enums import ApprovalStatus
from portal.models.service_models import CascadeReport
from portal.schema import initialize_schema
from portal.services import ServiceContainer, create_services

app = typer.Typer(
    help="Report approval and cascade administration for the project portal.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)


def _open_database(config: AppConfig) -> DatabaseManager:
    db = DatabaseManager.from_config(config, StructuredLogger(name="database"))
    # DatabaseManager.close() is idempotent; this covers hard exits.
    atexit.register(db.close)
    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
    return db


@contextmanager
def _engine() -> Iterator[ServiceContainer]:
    """Wire config -> database -> schema -> services; close the database on exit."""
    logger: StructuredLogger = get_logger("main")
    config = get_config()
    db = _open_database(config)
    try:
        yield create_services(db=db, config=config)
    finally:
        db.close()
        logger.info("Portal engine shut down.")


def _emit(model: BaseModel) -> None:
    typer.echo(model.model_dump_json(indent=2))


def _emit_cascade(report: CascadeReport) -> None:
    _emit(report)
    if not report.complete:
        typer.echo(
            f"{len(report.failed_steps)} step(s) failed; {report.kind} "
            f"{report.parent_id} kept. Re-run the command to retry.",
            err=True,
        )
        raise typer.Exit(code=1)


@app.command("approvals", help="List effective report approvals.")
def list_approvals(
    project: Optional[str] = typer.Option(None, "--project", help="Project id"),
    status: Optional[ApprovalStatus] = typer.Option(
        None, "--status", help="Effective status"
    ),
    search: Optional[str] = typer.Option(
        None, "--search", help="Customer number, email, project or file name"
    ),
) -> None:
    with _engine() as services:
        result = services["approval_service"].list_overview(
            project_id=project, status=status, search=search
        )
    if not result.success or result.data is None:
        typer.echo(result.error or "Failed to list approvals", err=True)
        raise typer.Exit(code=1)
    _emit(result.data)


@app.command("notify-upload", help="Route an upload notification from a JSON payload.")
def notify_upload(
    payload: str = typer.Argument(..., help="JSON object with the upload event"),
) -> None:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        typer.echo(f"Payload is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=2)

    with _engine() as services:
        result = services["notification_router"].handle_upload_notification(data)
    _emit(result)
    if not result.success:
        raise typer.Exit(code=2 if result.status_code == 400 else 1)


@app.command("delete-customer", help="Delete a customer and everything keyed to it.")
def delete_customer(customer_id: str = typer.Argument(...)) -> None:
    with _engine() as services:
        report = services["cascade_coordinator"].delete_customer(customer_id)
    _emit_cascade(report)


@app.command("delete-project", help="Delete a project, its files and their records.")
def delete_project(project_id: str = typer.Argument(...)) -> None:
    with _engine() as services:
        report = services["cascade_coordinator"].delete_project(project_id)
    _emit_cascade(report)


@app.command("delete-file", help="Delete one project file and its dependents.")
def delete_file(
    project_id: str = typer.Argument(...),
    file_id: str = typer.Argument(...),
) -> None:
    with _engine() as services:
        report = services["cascade_coordinator"].delete_file(project_id, file_id)
    _emit_cascade(report)


@app.command("delete-folder", help="Delete a catalog folder depth-first.")
def delete_folder(folder_id: str = typer.Argument(...)) -> None:
    with _engine() as services:
        report = services["cascade_coordinator"].delete_folder(folder_id)
    _emit_cascade(report)


@app.command("sync", help="Replay queued offline changes to Supabase.")
def sync(
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=1),
) -> None:
    with _engine() as services:
        synced = services["sync_service"].flush(batch_size=batch_size)
    typer.echo(f"Synced {synced} queued change(s).")


@app.command("status", help="Show store connectivity, mirror sizes and the sync queue.")
def status() -> None:
    db = _open_database(get_config())
    try:
        typer.echo(
            json.dumps(
                {
                    "online": db.is_online,
                    "sync_queue": db.queue_counts(),
                    "mirror": db.mirror_counts(),
                },
                indent=2,
            )
        )
    finally:
        db.close()


if __name__ == "__main__":
    app()
