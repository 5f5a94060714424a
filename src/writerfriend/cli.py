"""Command line interface for WriterFriend."""

from __future__ import annotations

import difflib
import json
from collections import defaultdict
from pathlib import Path
from typing import Any, NoReturn, TextIO

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from writerfriend.catalog import Document, Folder, Project, Version
from writerfriend.config import ConfigError, ConfigManager, WriterFriendConfig, resolve_with_precedence
from writerfriend.errors import (
    CatalogError,
    CorruptMetadataError,
    CorruptTimelineError,
    FilesystemUnavailableError,
    ItemConflictError,
    NotFoundError,
    ProjectExistsError,
    TimelineExistsError,
    TransactionFailureError,
)
from writerfriend.logging_setup import configure_logging
from writerfriend.sync import ItemSyncReport, ProjectSyncReport
from writerfriend.timelines import TimelineSummary
from writerfriend.workspace import Workspace

console = Console()

_ERROR_CODES: tuple[tuple[type[BaseException], str], ...] = (
    (ConfigError, "config_error"),
    (NotFoundError, "not_found"),
    (CorruptMetadataError, "corrupt_metadata"),
    (CorruptTimelineError, "corrupt_timeline"),
    (FilesystemUnavailableError, "filesystem_unavailable"),
    (TransactionFailureError, "transaction_failure"),
    (CatalogError, "catalog_error"),
    (ProjectExistsError, "project_exists"),
    (ItemConflictError, "item_conflict"),
    (TimelineExistsError, "timeline_exists"),
    (ValueError, "invalid_argument"),
    (click.ClickException, "cli_error"),
)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _fail(exc: Exception, *, action: str, json_output: bool) -> NoReturn:
    """Translate a command failure into the CLI's error conventions.

    Args:
        exc: Exception raised by the command body.
        action: Short description of what the command was doing.
        json_output: Indicates whether JSON mode is active.
    """
    if isinstance(exc, click.Abort):
        raise exc
    for error_type, code in _ERROR_CODES:
        if isinstance(exc, error_type):
            message = exc.format_message() if isinstance(exc, click.ClickException) else str(exc)
            _handle_cli_error(message, code=code, json_output=json_output, original=exc)
    _handle_cli_error(
        f"Unexpected error while {action}: {exc}",
        code="internal_error",
        json_output=json_output,
        details={"exception": type(exc).__name__},
        original=exc,
    )


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at a dotted ``path`` inside ``target``, creating mappings as needed.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _config_manager(ctx: click.Context) -> ConfigManager:
    return ConfigManager(config_path=ctx.obj.get("config_path"))


def _load_config(ctx: click.Context) -> WriterFriendConfig:
    """Load configuration with the global ``--root`` flag applied and configure logging."""
    overrides: dict[str, Any] = {}
    root = ctx.obj.get("root")
    if root is not None:
        overrides["paths.projects_root"] = str(root)
    config = _config_manager(ctx).load(cli_overrides=overrides)

    verbose = ctx.obj.get("verbose", 0)
    level = {0: None, 1: "INFO"}.get(verbose, "DEBUG")
    configure_logging(config.logging, level_override=level)
    return config


def _json_enabled(ctx: click.Context, json_output: bool) -> bool:
    return json_output or bool(ctx.obj.get("json_default"))


def _open_workspace(ctx: click.Context) -> Workspace:
    config = _load_config(ctx)
    ctx.obj["json_default"] = config.cli.json_default
    ctx.obj["quiet"] = ctx.obj.get("quiet") or config.cli.quiet_default
    return Workspace(config)


def _emit(message: Any, ctx: click.Context, *, mode: str = "detail") -> None:
    """Print ``message`` unless quiet mode suppresses it; errors always print."""
    if ctx.obj.get("quiet") and mode != "error":
        return
    console.print(message)


def _project_table(projects: list[Project]) -> Table:
    table = Table(title="Projects")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Author")
    table.add_column("Path", overflow="fold")
    for project in projects:
        table.add_row(project.id, project.name, project.author_name, project.path)
    return table


def _item_tree(title: str, items: list[Folder | Document]) -> Tree:
    children: dict[str | None, list[Folder | Document]] = defaultdict(list)
    for item in items:
        children[item.parent_id].append(item)
    for siblings in children.values():
        siblings.sort(key=lambda item: item.order)

    tree = Tree(f"[bold]{title}[/bold]")

    def _add(node: Tree, parent_id: str | None) -> None:
        for item in children.get(parent_id, []):
            if isinstance(item, Folder):
                branch = node.add(f"[blue]{item.name}/[/blue] [dim]{item.id}[/dim]")
                _add(branch, item.id)
            else:
                node.add(f"{item.name} [dim]{item.id}[/dim]")

    _add(tree, None)
    return tree


def _emit_project_report(report: ProjectSyncReport, ctx: click.Context) -> None:
    for entry in report.skipped:
        _emit(f"[yellow]Skipped {entry.path}: {entry.reason}[/yellow]", ctx, mode="warning")
    if report.changed:
        _emit(
            "[green]Synchronized projects: "
            f"created={len(report.created)}, restored={len(report.restored)}, "
            f"updated={len(report.updated)}, deleted={len(report.deleted)}.[/green]",
            ctx,
            mode="summary",
        )


def _emit_item_report(report: ItemSyncReport, ctx: click.Context) -> None:
    for entry in report.skipped:
        _emit(f"[yellow]Skipped {entry.path}: {entry.reason}[/yellow]", ctx, mode="warning")
    _emit(
        f"[green]Project {report.project_id}: created={len(report.created)}, "
        f"updated={len(report.updated)}, deleted={len(report.deleted)}, "
        f"reordered={len(report.reordered)}.[/green]",
        ctx,
        mode="summary",
    )


def _version_table(versions: list[Version]) -> Table:
    table = Table(title="Versions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Timestamp")
    table.add_column("Description")
    for version in versions:
        table.add_row(version.id, version.timestamp.isoformat(), version.description or "")
    return table


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="writerfriend")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Projects root directory (overrides paths.projects_root).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file to use instead of ~/.writerfriend/config.yaml.",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def cli(
    ctx: click.Context,
    root: Path | None,
    config_path: Path | None,
    verbose: int,
    quiet: bool,
) -> None:
    """WriterFriend keeps your writing projects and their catalog in sync."""
    ctx.ensure_object(dict)
    ctx.obj.update(root=root, config_path=config_path, verbose=verbose, quiet=quiet)


# ---------------------------------------------------------------------- #
# Projects                                                               #
# ---------------------------------------------------------------------- #


@cli.group()
def projects() -> None:
    """List, create, inspect, and delete projects."""


@projects.command("list")
@click.option("--no-sync", is_flag=True, help="Read the catalog without scanning the projects root.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of a table.")
@click.pass_context
def projects_list(ctx: click.Context, no_sync: bool, json_output: bool) -> None:
    """Synchronize the catalog with the projects root and list every project."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            report = None if no_sync else workspace.sync_projects()
            listed = workspace.list_projects(sync=False)
            if json_output:
                payload: dict[str, Any] = {
                    "root": str(workspace.projects_root),
                    "projects": [project.model_dump(mode="json") for project in listed],
                }
                if report is not None:
                    payload["sync"] = report.model_dump(mode="json")
                console.print_json(data=payload)
                return
            if report is not None:
                _emit_project_report(report, ctx)
            if not listed:
                _emit(f"[yellow]No projects found under {workspace.projects_root}.[/yellow]", ctx)
                return
            _emit(_project_table(listed), ctx)
    except Exception as exc:
        _fail(exc, action="listing projects", json_output=json_output)


@projects.command("create")
@click.argument("name")
@click.option("--author", type=str, help="Author name (defaults to 'Author').")
@click.option("--description", type=str, help="Project description.")
@click.option("--json", "json_output", is_flag=True, help="Emit the created project as JSON.")
@click.pass_context
def projects_create(
    ctx: click.Context,
    name: str,
    author: str | None,
    description: str | None,
    json_output: bool,
) -> None:
    """Create a new project directory NAME under the projects root."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            project = workspace.create_project(name, author, description)
            if json_output:
                console.print_json(data={"project": project.model_dump(mode="json")})
                return
            _emit(f"[green]Created project {project.name} ({project.id}) at {project.path}.[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="creating the project", json_output=json_output)


@projects.command("show")
@click.argument("project_id")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of text.")
@click.pass_context
def projects_show(ctx: click.Context, project_id: str, json_output: bool) -> None:
    """Show the catalog row and metadata file of PROJECT_ID."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            project = workspace.get_project(project_id)
            descriptor = workspace.get_project_metadata(project_id)
            if json_output:
                console.print_json(
                    data={
                        "project": project.model_dump(mode="json"),
                        "metadata": descriptor.to_file_payload(),
                    }
                )
                return
            table = Table(show_header=False, title=f"Project {project.id}")
            table.add_column("Field", style="bold")
            table.add_column("Value", overflow="fold")
            table.add_row("Name", project.name)
            table.add_row("Author", project.author_name)
            table.add_row("Description", project.description or "")
            table.add_row("Created", project.created_date.isoformat())
            table.add_row("Path", project.path)
            _emit(table, ctx)
    except Exception as exc:
        _fail(exc, action="reading the project", json_output=json_output)


@projects.command("update")
@click.argument("project_id")
@click.option("--name", type=str, help="New display name.")
@click.option("--author", type=str, help="New author name.")
@click.option("--description", type=str, help="New description.")
@click.option("--json", "json_output", is_flag=True, help="Emit the updated project as JSON.")
@click.pass_context
def projects_update(
    ctx: click.Context,
    project_id: str,
    name: str | None,
    author: str | None,
    description: str | None,
    json_output: bool,
) -> None:
    """Rewrite the metadata file and catalog row of PROJECT_ID."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            project = workspace.update_project_metadata(
                project_id, name=name, author_name=author, description=description
            )
            if json_output:
                console.print_json(data={"project": project.model_dump(mode="json")})
                return
            _emit(f"[green]Updated project {project.id}.[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="updating the project", json_output=json_output)


@projects.command("delete")
@click.argument("project_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit the deleted project as JSON.")
@click.pass_context
def projects_delete(ctx: click.Context, project_id: str, yes: bool, json_output: bool) -> None:
    """Delete PROJECT_ID together with its directory."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            project = workspace.get_project(project_id)
            if not yes:
                click.confirm(
                    f"Delete {project.name} and everything under {project.path}?", abort=True
                )
            workspace.delete_project(project_id)
            if json_output:
                console.print_json(data={"deleted": project.model_dump(mode="json")})
                return
            _emit(f"[green]Deleted project {project.name} ({project.id}).[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="deleting the project", json_output=json_output)


# ---------------------------------------------------------------------- #
# Items                                                                  #
# ---------------------------------------------------------------------- #


@cli.command("open")
@click.argument("project_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the sync report and items as JSON.")
@click.pass_context
def open_project(ctx: click.Context, project_id: str, json_output: bool) -> None:
    """Reconcile PROJECT_ID's manuscript with its catalog and print the item tree."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            project = workspace.get_project(project_id)
            report = workspace.open_project(project_id)
            listed = workspace.list_items(project_id)
            if json_output:
                console.print_json(
                    data={
                        "sync": report.model_dump(mode="json"),
                        "items": [item.model_dump(mode="json") for item in listed],
                    }
                )
                return
            _emit_item_report(report, ctx)
            _emit(_item_tree(project.name, listed), ctx)
    except Exception as exc:
        _fail(exc, action="opening the project", json_output=json_output)


@cli.command("repair-order")
@click.argument("project_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the renumbered items as JSON.")
@click.pass_context
def repair_order_command(ctx: click.Context, project_id: str, json_output: bool) -> None:
    """Renumber PROJECT_ID's sibling groups to a dense 1..n sequence."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            changes = workspace.repair_order(project_id)
            if json_output:
                console.print_json(data={"project_id": project_id, "changes": changes})
                return
            _emit(f"[green]Renumbered {len(changes)} item(s).[/green]", ctx, mode="summary")
    except Exception as exc:
        _fail(exc, action="repairing order", json_output=json_output)


@cli.group()
def items() -> None:
    """Create, rename, move, reorder, and delete folders and documents."""


def _emit_item(item: Folder | Document, verb: str, ctx: click.Context, json_output: bool) -> None:
    if json_output:
        console.print_json(data={"item": item.model_dump(mode="json")})
        return
    _emit(f"[green]{verb} {item.type} {item.name} ({item.id}).[/green]", ctx)


@items.command("add-folder")
@click.argument("project_id")
@click.argument("name")
@click.option("--parent", "parent_id", type=str, help="Parent folder id (defaults to the root).")
@click.option("--json", "json_output", is_flag=True, help="Emit the new folder as JSON.")
@click.pass_context
def items_add_folder(
    ctx: click.Context, project_id: str, name: str, parent_id: str | None, json_output: bool
) -> None:
    """Create folder NAME in PROJECT_ID."""
    try:
        with _open_workspace(ctx) as workspace, workspace.items(project_id) as editor:
            json_output = _json_enabled(ctx, json_output)
            _emit_item(editor.create_folder(name, parent_id), "Created", ctx, json_output)
    except Exception as exc:
        _fail(exc, action="creating the folder", json_output=json_output)


@items.command("add-document")
@click.argument("project_id")
@click.argument("name")
@click.option("--parent", "parent_id", type=str, help="Parent folder id (defaults to the root).")
@click.option(
    "--from-file",
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Initial content copied from this file.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the new document as JSON.")
@click.pass_context
def items_add_document(
    ctx: click.Context,
    project_id: str,
    name: str,
    parent_id: str | None,
    source: Path | None,
    json_output: bool,
) -> None:
    """Create document NAME in PROJECT_ID."""
    try:
        content = source.read_bytes() if source is not None else b""
        with _open_workspace(ctx) as workspace, workspace.items(project_id) as editor:
            json_output = _json_enabled(ctx, json_output)
            document = editor.create_document(name, parent_id, content)
            _emit_item(document, "Created", ctx, json_output)
    except Exception as exc:
        _fail(exc, action="creating the document", json_output=json_output)


@items.command("rename")
@click.argument("project_id")
@click.argument("item_id")
@click.argument("new_name")
@click.option("--json", "json_output", is_flag=True, help="Emit the renamed item as JSON.")
@click.pass_context
def items_rename(
    ctx: click.Context, project_id: str, item_id: str, new_name: str, json_output: bool
) -> None:
    """Rename ITEM_ID to NEW_NAME on disk and in the catalog."""
    try:
        with _open_workspace(ctx) as workspace, workspace.items(project_id) as editor:
            json_output = _json_enabled(ctx, json_output)
            _emit_item(editor.rename_item(item_id, new_name), "Renamed", ctx, json_output)
    except Exception as exc:
        _fail(exc, action="renaming the item", json_output=json_output)


@items.command("move")
@click.argument("project_id")
@click.argument("item_id")
@click.option("--parent", "parent_id", type=str, help="Destination folder id (defaults to the root).")
@click.option("--json", "json_output", is_flag=True, help="Emit the moved item as JSON.")
@click.pass_context
def items_move(
    ctx: click.Context, project_id: str, item_id: str, parent_id: str | None, json_output: bool
) -> None:
    """Move ITEM_ID under another folder, appending it to its new siblings."""
    try:
        with _open_workspace(ctx) as workspace, workspace.items(project_id) as editor:
            json_output = _json_enabled(ctx, json_output)
            _emit_item(editor.move_item(item_id, parent_id), "Moved", ctx, json_output)
    except Exception as exc:
        _fail(exc, action="moving the item", json_output=json_output)


@items.command("reorder")
@click.argument("project_id")
@click.argument("item_id")
@click.argument("target_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the sibling order as JSON.")
@click.pass_context
def items_reorder(
    ctx: click.Context, project_id: str, item_id: str, target_id: str, json_output: bool
) -> None:
    """Put ITEM_ID at TARGET_ID's position among their siblings."""
    try:
        with _open_workspace(ctx) as workspace, workspace.items(project_id) as editor:
            json_output = _json_enabled(ctx, json_output)
            siblings = editor.reorder_item(item_id, target_id)
            if json_output:
                console.print_json(data={"order": [item.id for item in siblings]})
                return
            for item in siblings:
                _emit(f"{item.order}. {item.name} [dim]{item.id}[/dim]", ctx)
    except Exception as exc:
        _fail(exc, action="reordering items", json_output=json_output)


@items.command("delete")
@click.argument("project_id")
@click.argument("item_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit the deleted ids as JSON.")
@click.pass_context
def items_delete(
    ctx: click.Context, project_id: str, item_id: str, yes: bool, json_output: bool
) -> None:
    """Delete ITEM_ID and everything under it, on disk and in the catalog."""
    try:
        with _open_workspace(ctx) as workspace, workspace.items(project_id) as editor:
            json_output = _json_enabled(ctx, json_output)
            if not yes:
                click.confirm(f"Delete item {item_id} and its contents?", abort=True)
            deleted = editor.delete_item(item_id)
            if json_output:
                console.print_json(data={"deleted": deleted})
                return
            _emit(f"[green]Deleted {len(deleted)} item(s).[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="deleting the item", json_output=json_output)


# ---------------------------------------------------------------------- #
# Versions                                                               #
# ---------------------------------------------------------------------- #


@cli.command()
@click.argument("project_id")
@click.argument("document_id")
@click.option("--description", type=str, help="Note stored with the snapshot.")
@click.option("--json", "json_output", is_flag=True, help="Emit the new version as JSON.")
@click.pass_context
def snapshot(
    ctx: click.Context,
    project_id: str,
    document_id: str,
    description: str | None,
    json_output: bool,
) -> None:
    """Save an immutable copy of DOCUMENT_ID's current content."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            version = workspace.snapshot(project_id, document_id, description)
            if json_output:
                console.print_json(data={"version": version.model_dump(mode="json")})
                return
            _emit(f"[green]Saved version {version.id} of {document_id}.[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="saving the snapshot", json_output=json_output)


@cli.command()
@click.argument("project_id")
@click.argument("document_id")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of a table.")
@click.pass_context
def versions(ctx: click.Context, project_id: str, document_id: str, json_output: bool) -> None:
    """List the saved versions of DOCUMENT_ID, oldest first."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            listed = workspace.list_versions(project_id, document_id)
            if json_output:
                console.print_json(
                    data={"versions": [version.model_dump(mode="json") for version in listed]}
                )
                return
            if not listed:
                _emit(f"[yellow]No versions saved for {document_id}.[/yellow]", ctx)
                return
            _emit(_version_table(listed), ctx)
    except Exception as exc:
        _fail(exc, action="listing versions", json_output=json_output)


@cli.command("describe-version")
@click.argument("project_id")
@click.argument("version_id")
@click.argument("description")
@click.option("--json", "json_output", is_flag=True, help="Emit the updated version as JSON.")
@click.pass_context
def describe_version(
    ctx: click.Context, project_id: str, version_id: str, description: str, json_output: bool
) -> None:
    """Replace the description of VERSION_ID."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            version = workspace.update_version_description(project_id, version_id, description)
            if json_output:
                console.print_json(data={"version": version.model_dump(mode="json")})
                return
            _emit(f"[green]Updated description of version {version.id}.[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="updating the version", json_output=json_output)


# ---------------------------------------------------------------------- #
# Timelines                                                              #
# ---------------------------------------------------------------------- #


@cli.group()
def timelines() -> None:
    """Create, list, show, save, and delete a project's timeline graphs."""


def _timeline_table(listed: list[TimelineSummary]) -> Table:
    table = Table(title="Timelines")
    table.add_column("Name", style="cyan")
    table.add_column("Modified")
    for summary in listed:
        table.add_row(summary.name, summary.modified_date.isoformat())
    return table


@timelines.command("list")
@click.argument("project_id")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of a table.")
@click.pass_context
def timelines_list(ctx: click.Context, project_id: str, json_output: bool) -> None:
    """List the timelines of PROJECT_ID."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            listed = workspace.list_timelines(project_id)
            if json_output:
                console.print_json(
                    data={"timelines": [summary.model_dump(mode="json") for summary in listed]}
                )
                return
            if not listed:
                _emit(f"[yellow]Project {project_id} has no timelines.[/yellow]", ctx)
                return
            _emit(_timeline_table(listed), ctx)
    except Exception as exc:
        _fail(exc, action="listing timelines", json_output=json_output)


@timelines.command("create")
@click.argument("project_id")
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Emit the new timeline as JSON.")
@click.pass_context
def timelines_create(ctx: click.Context, project_id: str, name: str, json_output: bool) -> None:
    """Create an empty timeline NAME in PROJECT_ID."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            timeline = workspace.create_timeline(project_id, name)
            if json_output:
                console.print_json(data={"name": name.strip(), "timeline": timeline.model_dump()})
                return
            _emit(f"[green]Created timeline {name.strip()}.[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="creating the timeline", json_output=json_output)


@timelines.command("show")
@click.argument("project_id")
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Emit the graph as JSON.")
@click.pass_context
def timelines_show(ctx: click.Context, project_id: str, name: str, json_output: bool) -> None:
    """Print the nodes and edges of timeline NAME."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            timeline = workspace.read_timeline(project_id, name)
            if json_output:
                console.print_json(data={"nodes": timeline.nodes, "edges": timeline.edges})
                return
            _emit(f"[bold]{name}[/bold]: {len(timeline.nodes)} node(s), {len(timeline.edges)} edge(s)", ctx)
            for node in timeline.nodes:
                data = node.get("data")
                label = data.get("label") if isinstance(data, dict) else None
                _emit(f"  {node.get('id', '?')} {label or ''}".rstrip(), ctx)
    except Exception as exc:
        _fail(exc, action="reading the timeline", json_output=json_output)


@timelines.command("save")
@click.argument("project_id")
@click.argument("name")
@click.option(
    "--from-file",
    "source",
    type=click.File("r", encoding="utf-8"),
    required=True,
    help="JSON file with 'nodes' and 'edges' lists ('-' reads stdin).",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the saved timeline as JSON.")
@click.pass_context
def timelines_save(
    ctx: click.Context, project_id: str, name: str, source: TextIO, json_output: bool
) -> None:
    """Replace the nodes and edges of timeline NAME."""
    try:
        payload = json.load(source)
        if not isinstance(payload, dict):
            raise ValueError("Timeline input must be a JSON object with 'nodes' and 'edges'.")
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            timeline = workspace.save_timeline(
                project_id, name, payload.get("nodes", []), payload.get("edges", [])
            )
            if json_output:
                console.print_json(data={"timeline": timeline.model_dump()})
                return
            _emit(
                f"[green]Saved timeline {name} with {len(timeline.nodes)} node(s) "
                f"and {len(timeline.edges)} edge(s).[/green]",
                ctx,
            )
    except Exception as exc:
        _fail(exc, action="saving the timeline", json_output=json_output)


@timelines.command("delete")
@click.argument("project_id")
@click.argument("name")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit the deleted name as JSON.")
@click.pass_context
def timelines_delete(
    ctx: click.Context, project_id: str, name: str, yes: bool, json_output: bool
) -> None:
    """Delete timeline NAME from PROJECT_ID."""
    try:
        with _open_workspace(ctx) as workspace:
            json_output = _json_enabled(ctx, json_output)
            if not yes:
                click.confirm(f"Delete timeline {name}?", abort=True)
            workspace.delete_timeline(project_id, name)
            if json_output:
                console.print_json(data={"deleted": name})
                return
            _emit(f"[green]Deleted timeline {name}.[/green]", ctx)
    except Exception as exc:
        _fail(exc, action="deleting the timeline", json_output=json_output)


# ---------------------------------------------------------------------- #
# Configuration                                                          #
# ---------------------------------------------------------------------- #


@cli.group()
def config() -> None:
    """Manage WriterFriend configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = _config_manager(ctx)
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = _config_manager(ctx)
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'paths.projects_root'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=WriterFriendConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    # The header carries a timestamp; compare only the YAML body.
    diff = list(
        difflib.unified_diff(
            [line for line in before if not line.startswith("#")],
            [line for line in after if not line.startswith("#")],
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
@click.pass_context
def config_edit(ctx: click.Context) -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = _config_manager(ctx)
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=WriterFriendConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
