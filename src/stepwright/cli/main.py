"""Command-line interface for stepwright."""

from __future__ import annotations

import asyncio
import functools
import json
import os
import sys
import warnings
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

# Suppress noisy messages before imports
os.environ.setdefault("PYMUPDF_SUGGEST_LAYOUT_ANALYZER", "0")
warnings.filterwarnings("ignore", category=UserWarning, module="pydantic")

import click
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

# Load .env file from current directory and parent directories
load_dotenv()

from click import Context

from stepwright.cli import ui
from stepwright.cli.console import get_console
from stepwright.cli.logging_config import print_version, setup_logging
from stepwright.config import ConfigManager, StepwrightConfig
from stepwright.exceptions import StepwrightError
from stepwright.knowledge import KnowledgeRepository
from stepwright.pipeline import ImportPipeline
from stepwright.projects import ProjectRepository
from stepwright.store import Storage
from stepwright.tracker import (
    ExecutionTracker,
    can_complete,
    current_step,
    last_completed_step,
    progress_percent,
)
from stepwright.utils.executor import shutdown_image_executor

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class CliState:
    """Per-invocation state shared by all commands."""

    config: StepwrightConfig
    manager: ConfigManager = field(default_factory=ConfigManager, repr=False)
    _storage: Storage | None = field(default=None, repr=False)

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            self._storage = Storage.from_config(self.config.store)
        return self._storage

    @property
    def projects(self) -> ProjectRepository:
        return ProjectRepository(self.storage.projects)

    @property
    def tracker(self) -> ExecutionTracker:
        return ExecutionTracker(self.storage.executions)

    @property
    def pipeline(self) -> ImportPipeline:
        return ImportPipeline(self.config, self.storage)


def handle_errors(func: F) -> F:
    """Report stepwright errors through the UI and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except StepwrightError as e:
            ui.error(type(e).__name__, detail=str(e))
            raise SystemExit(1) from e
        finally:
            shutdown_image_executor()

    return wrapper  # type: ignore[return-value]


def _print_messages(errors: list[str], warnings_: list[str]) -> None:
    for message in errors:
        ui.error(message)
    for message in warnings_:
        ui.warning(message)


# =============================================================================
# Main CLI app
# =============================================================================


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs.")
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.pass_context
def app(ctx: Context, config_path: Path | None, verbose: bool) -> None:
    """Turn document archives into step-by-step workflows and track their execution."""
    # Windows consoles default to a legacy code page
    if sys.platform == "win32" and hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    manager = ConfigManager()
    try:
        cfg = manager.load(config_path=config_path)
    except (ValueError, OSError) as e:
        ui.error("Invalid configuration", detail=str(e))
        raise SystemExit(1) from e

    setup_logging(
        verbose=verbose,
        log_dir=cfg.log.dir,
        log_level=cfg.log.level,
        rotation=cfg.log.rotation,
        retention=cfg.log.retention,
    )
    ctx.obj = CliState(config=cfg, manager=manager)


# =============================================================================
# Import commands
# =============================================================================


@app.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print text, placeholders and warnings as JSON.")
@click.pass_obj
@handle_errors
def extract(state: CliState, source: Path, as_json: bool) -> None:
    """Flatten a zip archive or PDF into text with image placeholders."""
    prepared = asyncio.run(state.pipeline.prepare(source))
    if as_json:
        payload = {
            "text": prepared.text,
            "placeholders": prepared.placeholders,
            "warnings": prepared.warnings,
        }
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    click.echo(prepared.text)
    for message in prepared.warnings:
        ui.warning(message)


@app.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the generated definition to this file instead of stdout.",
)
@click.pass_obj
@handle_errors
def generate(state: CliState, source: Path, output: Path | None) -> None:
    """Generate an import definition for SOURCE with the configured LLM."""
    pipeline = state.pipeline

    async def run() -> str:
        prepared = await pipeline.prepare(source)
        return await pipeline.generate(prepared)

    definition = asyncio.run(run())
    if output is None:
        click.echo(definition)
        return
    output.write_text(definition, encoding="utf-8")
    ui.success(f"Written {output}")


@app.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--definition",
    "-d",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML workflow definition to import.",
)
@click.option("--project", "-p", "project_id", required=True, help="Target project id.")
@click.option("--dry-run", is_flag=True, help="Validate only; store nothing.")
@click.pass_obj
@handle_errors
def import_cmd(
    state: CliState, source: Path, definition: Path, project_id: str, dry_run: bool
) -> None:
    """Import SOURCE as a workflow using a YAML definition."""
    state.projects.get_project(project_id)
    text = definition.read_text(encoding="utf-8")

    prepared, result, workflow = asyncio.run(
        state.pipeline.run(source, text, project_id, dry_run=dry_run)
    )
    _print_messages(result.errors, [*prepared.warnings, *result.warnings])

    if result.errors:
        ui.error(f"Import rejected with {len(result.errors)} error(s)")
        raise SystemExit(1)

    if workflow is None:
        ui.success(
            f"Valid: '{result.workflow.title}' with {len(result.workflow.tasks)} task(s)"
        )
        return
    ui.summary(f"Imported {workflow.id} '{workflow.title}' ({len(workflow.tasks)} tasks)")


# =============================================================================
# Projects and workflows
# =============================================================================


@app.group()
def project() -> None:
    """Project management commands."""
    pass


@project.command("list")
@click.pass_obj
@handle_errors
def project_list(state: CliState) -> None:
    """List projects and their workflows."""
    projects = state.projects.list_projects()
    if not projects:
        ui.info("No projects")
        return
    for item in projects:
        get_console().print(f"[bold]{item.id}[/]  {item.title}")
        for workflow in item.workflows:
            ui.info(f"{workflow.id}  {workflow.title} (v{workflow.version}, {len(workflow.tasks)} tasks)")


@project.command("create")
@click.argument("title")
@click.option("--description", default="", help="Project description.")
@click.pass_obj
@handle_errors
def project_create(state: CliState, title: str, description: str) -> None:
    """Create a project."""
    created = state.projects.add_project(title, description)
    ui.success(f"Created project {created.id}")


@app.group()
def workflow() -> None:
    """Workflow commands."""
    pass


@workflow.command("show")
@click.argument("workflow_id")
@click.pass_obj
@handle_errors
def workflow_show(state: CliState, workflow_id: str) -> None:
    """Show a workflow's tasks and linked knowledge items."""
    item = state.projects.find_workflow(workflow_id)
    knowledge = KnowledgeRepository(state.storage.knowledge)

    ui.title(f"{item.title} (v{item.version})")
    if item.description:
        ui.info(item.description)
    get_console().print(ui.task_table(item.tasks))
    for task in item.sorted_tasks():
        for linked in knowledge.resolve_links(task):
            ui.info(f"Step {task.step_number} links to {linked.title}")


@workflow.command("bump")
@click.argument("workflow_id")
@click.pass_obj
@handle_errors
def workflow_bump(state: CliState, workflow_id: str) -> None:
    """Start a new version of a workflow; progress restarts for the new version."""
    updated = state.projects.bump_version(workflow_id)
    ui.success(f"{updated.id} is now version {updated.version}")


# =============================================================================
# Execution
# =============================================================================


@app.group()
def run() -> None:
    """Track progress through the current version of a workflow."""
    pass


@run.command("status")
@click.argument("workflow_id")
@click.pass_obj
@handle_errors
def run_status(state: CliState, workflow_id: str) -> None:
    """Show completed, current and remaining steps."""
    item = state.projects.find_workflow(workflow_id)
    completed = state.tracker.completed_task_ids(item.id, item.version)
    current = current_step(item.tasks, completed)
    last = last_completed_step(item.tasks, completed)

    ui.title(f"{item.title} (v{item.version})")
    get_console().print(ui.task_table(item.tasks, completed, current.id if current else None))
    ui.info(f"Progress: {progress_percent(item.tasks, completed)}%")
    if last is not None:
        ui.info(f"Last completed: step {last.step_number} {last.title}")
    if current is None:
        ui.summary("All steps completed")
    else:
        ui.info(f"Current: step {current.step_number} {current.title}")


@run.command("complete")
@click.argument("workflow_id")
@click.argument("task_id", required=False)
@click.option("--force", is_flag=True, help="Complete a step out of order.")
@click.pass_obj
@handle_errors
def run_complete(
    state: CliState, workflow_id: str, task_id: str | None, force: bool
) -> None:
    """Complete TASK_ID, or the current step when omitted."""
    item = state.projects.find_workflow(workflow_id)
    tracker = state.tracker
    execution = tracker.get_or_create(item.id, item.version)
    completed = execution.completed_task_ids

    if task_id is None:
        current = current_step(item.tasks, completed)
        if current is None:
            ui.info("All steps are already completed")
            return
        task_id = current.id

    task = state.projects.get_task(item.id, task_id)
    if not force and task.id not in completed and not can_complete(item.tasks, completed, task.id):
        ui.error(
            f"Step {task.step_number} is not the current step",
            detail="Complete the steps in order or pass --force",
        )
        raise SystemExit(1)

    execution = tracker.complete(execution.id, task.id)
    ui.success(
        f"Completed step {task.step_number} {task.title} "
        f"({progress_percent(item.tasks, execution.completed_task_ids)}%)"
    )


@run.command("undo")
@click.argument("workflow_id")
@click.argument("task_id", required=False)
@click.pass_obj
@handle_errors
def run_undo(state: CliState, workflow_id: str, task_id: str | None) -> None:
    """Undo TASK_ID, or the most recent completion when omitted."""
    item = state.projects.find_workflow(workflow_id)
    before = state.tracker.completed_task_ids(item.id, item.version)
    execution = state.tracker.undo(item.id, item.version, task_id)
    after = execution.completed_task_ids if execution else []

    removed = [tid for tid in before if tid not in after]
    if not removed:
        ui.info("Nothing to undo")
        return
    ui.success(f"Undid {removed[0]}")


# =============================================================================
# Configuration
# =============================================================================


@app.group("config")
def config_group() -> None:
    """Inspect and change stepwright.json."""
    pass


@config_group.command("path")
@click.pass_obj
def config_path_cmd(state: CliState) -> None:
    """Show which configuration file is in use."""
    path = state.manager.config_path
    click.echo(str(path) if path else "defaults (no configuration file)")


@config_group.command("get")
@click.argument("key")
@click.pass_obj
def config_get(state: CliState, key: str) -> None:
    """Print the value at a dotted KEY such as image.max_size_kb."""
    value = state.manager.get(key)
    if value is None:
        ui.error(f"Key not found: {key}")
        raise SystemExit(1)
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    click.echo(json.dumps(value, indent=2) if isinstance(value, dict) else str(value))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.option(
    "--file",
    "target",
    type=click.Path(dir_okay=True, path_type=Path),
    default=None,
    help="Configuration file to write (defaults to the one in use).",
)
@click.pass_obj
def config_set(state: CliState, key: str, value: str, target: Path | None) -> None:
    """Set KEY to VALUE and save it. VALUE is read as YAML (true, 10, 0.5, text)."""
    manager = state.manager
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError as e:
        ui.error(f"Invalid value for {key}", detail=str(e))
        raise SystemExit(1) from e
    try:
        manager.set(key, parsed)
    except KeyError:
        ui.error(f"Key not found: {key}")
        raise SystemExit(1) from None

    try:
        StepwrightConfig.model_validate(manager.config.model_dump())
    except ValidationError as e:
        for err in e.errors():
            ui.error(f"Invalid value for {key}", detail=err["msg"])
        raise SystemExit(1) from e

    saved = manager.save(target)
    ui.success(f"Set {key} = {parsed!r} in {saved}")
