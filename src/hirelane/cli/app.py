from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
import uvicorn

from hirelane.api.app import create_app
from hirelane.config import get_settings
from hirelane.core.coordinator import MutationOutcome
from hirelane.core.runtime import Runtime
from hirelane.db.init import init_database
from hirelane.logging_config import configure_logging

app = typer.Typer(help="Hirelane CLI")
jobs_app = typer.Typer(help="Job board commands")
candidates_app = typer.Typer(help="Candidate pipeline commands")

app.add_typer(jobs_app, name="jobs")
app.add_typer(candidates_app, name="candidates")


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _outcome(outcome: MutationOutcome) -> dict[str, Any]:
    return {
        "ok": outcome.ok,
        "status": outcome.status,
        "value": outcome.value,
        "notification": outcome.notification.model_dump() if outcome.notification else None,
    }


@app.command("init")
def init_cmd() -> None:
    """Open the store, upgrade its schema and seed it if it is empty."""
    configure_logging()
    store, result = init_database()
    try:
        _echo({"ok": True, "durable": store.is_durable, "schema_version": store.schema_version, **result.model_dump()})
    finally:
        store.close()


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    """Serve the mock API over HTTP."""
    configure_logging()
    settings = get_settings()
    store, _ = init_database(settings)
    try:
        app_instance = create_app(store, settings=settings)
        uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
    finally:
        store.close()


@jobs_app.command("list")
def jobs_list(
    page: int = typer.Option(1, "--page", min=1),
    page_size: int = typer.Option(10, "--page-size", min=1),
    search: str = typer.Option("", "--search"),
    status: str | None = typer.Option(None, "--status"),
) -> None:
    configure_logging()

    async def run() -> dict[str, Any]:
        async with Runtime() as runtime:
            result = await runtime.source.list_jobs(page=page, page_size=page_size, search=search, status=status)
            return result.model_dump()

    _echo(asyncio.run(run()))


@jobs_app.command("reorder")
def jobs_reorder(ids: list[int] = typer.Argument(..., help="Job ids in their new order")) -> None:
    """Reorder the listed jobs among their current positions."""
    configure_logging()

    async def run() -> dict[str, Any]:
        async with Runtime() as runtime:
            probe = await runtime.source.list_jobs(page=1, page_size=1)
            page = await runtime.coordinator.load_jobs(page=1, page_size=max(probe.total, 1))
            current = [job["id"] for job in page.data]
            missing = [job_id for job_id in ids if job_id not in current]
            if missing:
                raise typer.BadParameter(f"unknown job ids: {missing}")
            # Listed ids take the slots they already occupy; the rest stay put.
            slots = iter(ids)
            listed = set(ids)
            new_order = [next(slots) if job_id in listed else job_id for job_id in current]
            return _outcome(await runtime.coordinator.reorder_jobs(new_order))

    _echo(asyncio.run(run()))


@candidates_app.command("move")
def candidates_move(candidate_id: int, stage: str) -> None:
    """Move a candidate to another stage and record it on the timeline."""
    configure_logging()

    async def run() -> dict[str, Any]:
        async with Runtime() as runtime:
            return _outcome(await runtime.coordinator.move_candidate(candidate_id, stage))

    _echo(asyncio.run(run()))


@candidates_app.command("timeline")
def candidates_timeline(candidate_id: int) -> None:
    configure_logging()

    async def run() -> list[dict[str, Any]]:
        async with Runtime() as runtime:
            return await runtime.source.get_timeline(candidate_id)

    _echo(asyncio.run(run()))


if __name__ == "__main__":
    app()
