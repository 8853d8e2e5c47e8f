"""Command-line interface for Agent Studio."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from agent_studio import __version__
from agent_studio.ai.drafting import AIServiceError, StoryDrafter, build_provider
from agent_studio.config import PROVIDER_CHOICES, StudioConfig, load_config
from agent_studio.config_validation import validate_choice
from agent_studio.logging_utils import configure_logging, get_logger
from agent_studio.stories.catalog import builtin_workflows, get_workflow
from agent_studio.stories.models import StoryFilter, StoryStatus
from agent_studio.stories.persistence import load_snapshot, save_snapshot
from agent_studio.stories.sample_data import seed_sample_data
from agent_studio.stories.store import StoryStore
from agent_studio.stories.workflow import (
    WorkflowDefinition,
    WorkflowError,
    WorkflowSynchronizer,
    load_workflow_file,
)

app = typer.Typer(add_completion=False, no_args_is_help=True)
stories_app = typer.Typer(no_args_is_help=True)
workflows_app = typer.Typer(no_args_is_help=True)
console = Console()
logger = get_logger()

app.add_typer(stories_app, name="stories", help="Inspect stored stories.")
app.add_typer(workflows_app, name="workflows", help="Generate and synchronize workflow stories.")

DataFileOption = Annotated[
    Path | None,
    typer.Option(help="Snapshot file; defaults to AGENT_STUDIO_DATA_FILE."),
]


def _config() -> StudioConfig:
    try:
        return load_config()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _resolve_data_file(data_file: Path | None) -> Path:
    return data_file if data_file is not None else _config().data_file


def _open_store(data_file: Path) -> StoryStore:
    """Load the snapshot at ``data_file``, or start from sample data when it does not exist."""
    if data_file.exists():
        try:
            return load_snapshot(data_file)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    store = StoryStore()
    if _config().seed_sample_data:
        seed_sample_data(store)
    return store


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"agent-studio {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option(help="Write logs for this run to the given file."),
    ] = None,
    verbose: Annotated[bool, typer.Option(help="Log at DEBUG level.")] = False,
) -> None:
    """Agent Studio: stories, workflows and AI agents."""
    _ = version
    if log_file is not None:
        configure_logging(log_file=log_file, verbose=verbose)


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="TCP port to bind.")] = 8080,
    reload: Annotated[bool, typer.Option(help="Restart on code changes.")] = False,
    data_file: DataFileOption = None,
) -> None:
    """Run the HTTP API."""
    if port <= 0 or port > 65535:
        raise typer.BadParameter("port must be between 1 and 65535.")
    if data_file is not None:
        os.environ["AGENT_STUDIO_DATA_FILE"] = str(data_file)
    console.print(f"Serving Agent Studio API on http://{host}:{port}")
    uvicorn.run(
        "ui.backend.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def seed(
    data_file: DataFileOption = None,
    force: Annotated[bool, typer.Option(help="Overwrite an existing snapshot.")] = False,
) -> None:
    """Write a snapshot containing the sample project and stories."""
    target = _resolve_data_file(data_file)
    if target.exists() and not force:
        raise typer.BadParameter(f"{target} already exists; pass --force to overwrite.")
    store = StoryStore()
    seed_sample_data(store)
    save_snapshot(store, target)
    logger.info("Seeded sample data into %s.", target)
    console.print(f"Seeded {len(store.list_stories())} stories into {target}")


@stories_app.command("list")
def stories_list(
    status: Annotated[
        str | None,
        typer.Option(help="Only stories with this status."),
    ] = None,
    project_id: Annotated[
        str | None,
        typer.Option(help="Only stories of this project."),
    ] = None,
    data_file: DataFileOption = None,
) -> None:
    """List stories as a table."""
    try:
        wanted_status = StoryStatus(status) if status is not None else None
    except ValueError as exc:
        options = ", ".join(item.value for item in StoryStatus)
        raise typer.BadParameter(f"status must be one of: {options}.") from exc
    store = _open_store(_resolve_data_file(data_file))
    stories = store.list_stories(StoryFilter(project_id=project_id, status=wanted_status))
    if not stories:
        console.print("No stories found.")
        return
    table = Table(title="Stories")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Phase")
    for story in stories:
        table.add_row(
            story.id,
            story.title,
            story.type.value,
            story.priority.value,
            story.status.value,
            f"{story.progress}%",
            story.phase or "-",
        )
    console.print(table)


@stories_app.command("stats")
def stories_stats(data_file: DataFileOption = None) -> None:
    """Show story counts and effort totals."""
    statistics = _open_store(_resolve_data_file(data_file)).story_statistics()
    table = Table(title="Story Statistics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total", str(statistics.total))
    table.add_row("Done", str(statistics.done_count))
    table.add_row("Average progress", f"{statistics.average_progress:.1f}%")
    table.add_row("Estimated hours", str(statistics.total_estimated_hours))
    table.add_row("Actual hours", str(statistics.total_actual_hours))
    for status, count in statistics.by_status.items():
        table.add_row(f"Status: {status}", str(count))
    console.print(table)


@workflows_app.command("list")
def workflows_list() -> None:
    """List the built-in workflows."""
    table = Table(title="Workflows")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Phases")
    table.add_column("Duration")
    for workflow in builtin_workflows():
        table.add_row(
            workflow.id,
            workflow.name,
            ", ".join(phase.name for phase in workflow.phases),
            workflow.estimated_duration or "-",
        )
    console.print(table)


@workflows_app.command("apply")
def workflows_apply(
    workflow_id: Annotated[str, typer.Argument(help="Workflow identifier.")],
    project_id: Annotated[str, typer.Option(help="Project that owns the new stories.")],
    workflow_file: Annotated[
        Path | None,
        typer.Option(help="YAML or JSON workflow definition instead of a built-in one."),
    ] = None,
    data_file: DataFileOption = None,
) -> None:
    """Generate phase stories for a project from a workflow."""
    workflow = _resolve_workflow(workflow_id, workflow_file)
    target = _resolve_data_file(data_file)
    store = _open_store(target)
    if store.get_project(project_id) is None:
        raise typer.BadParameter(f"Project '{project_id}' not found.")
    stories = WorkflowSynchronizer(store).create_stories_from_workflow(
        workflow, project_id, workflow_id
    )
    store.link_project_to_workflow(project_id, workflow_id)
    save_snapshot(store, target)
    console.print(f"Created {len(stories)} stories from workflow '{workflow.name}'.")


@workflows_app.command("sync")
def workflows_sync(
    workflow_id: Annotated[str, typer.Argument(help="Workflow identifier.")],
    phase: Annotated[str, typer.Option(help="Name of the active phase.")],
    index: Annotated[int, typer.Option(help="Zero-based index of the active phase.")],
    total: Annotated[int, typer.Option(help="Number of phases in the workflow.")],
    data_file: DataFileOption = None,
) -> None:
    """Re-derive story status from the active workflow phase."""
    if index < 0:
        raise typer.BadParameter("index must be non-negative.")
    target = _resolve_data_file(data_file)
    store = _open_store(target)
    changed = WorkflowSynchronizer(store).sync_workflow_progress(workflow_id, phase, index, total)
    if changed:
        save_snapshot(store, target)
    console.print(f"Updated {len(changed)} stories.")


@app.command()
def draft(
    requirements: Annotated[str, typer.Argument(help="Free-text requirements (10-2000 chars).")],
    provider: Annotated[
        str | None,
        typer.Option(help="Model provider: mock or openai. Defaults to AGENT_STUDIO_PROVIDER."),
    ] = None,
    model: Annotated[str | None, typer.Option(help="Model name for the openai provider.")] = None,
) -> None:
    """Draft a user story from requirements and print it as JSON."""
    config = _config().with_overrides(provider=provider, model=model)
    try:
        validate_choice(config.provider, "provider", PROVIDER_CHOICES)
        drafter = StoryDrafter(build_provider(config))
        story = drafter.draft_story(requirements)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except AIServiceError as exc:
        console.print(f"[red]Story drafting failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print_json(json.dumps(story.to_dict()))


def _resolve_workflow(workflow_id: str, workflow_file: Path | None) -> WorkflowDefinition:
    if workflow_file is not None:
        try:
            return load_workflow_file(workflow_file)
        except WorkflowError as exc:
            raise typer.BadParameter(str(exc)) from exc
    workflow = get_workflow(workflow_id)
    if workflow is None:
        known = ", ".join(item.id for item in builtin_workflows())
        raise typer.BadParameter(f"Unknown workflow '{workflow_id}'. Known workflows: {known}.")
    return workflow
