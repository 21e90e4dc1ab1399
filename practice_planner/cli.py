from __future__ import annotations

import json
import math
from typing import Any, Callable, NoReturn, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from practice_planner.core.allocate.allocate_plan import plan_total
from practice_planner.core.config import StoreConfig, configure_logging
from practice_planner.core.errors import (
    ActivityLoadError,
    ActivityValidationError,
    PracticeError,
    SessionError,
    StoreError,
)
from practice_planner.core.io.load_activities import load_activities
from practice_planner.core.lint.lint_activities import lint_activities
from practice_planner.core.model import ActivityNode
from practice_planner.core.session.session_plan import (
    SessionDraft,
    build_session,
    dump_session,
    load_session,
    save_session,
    session_payload,
    set_actual,
)
from practice_planner.core.store.activities import (
    add_activity,
    delete_activity,
    fetch_tree,
    open_store,
    update_activity,
)
from practice_planner.core.store.contracts import ActivityStore
from practice_planner.core.tree.build_tree import (
    breadcrumb,
    find_node_by_id,
    find_node_by_path,
    forest_to_dicts,
    with_weight,
)

app = typer.Typer(add_completion=False, no_args_is_help=True)

T = TypeVar("T")


@app.callback()
def _callback(
    ctx: typer.Context,
    store: Optional[str] = typer.Option(
        None,
        "--store",
        help="Local YAML store file (defaults to PRACTICE_STORE_FILE, then the remote store)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Deliberate practice planner."""
    config = StoreConfig.from_env(store_file=store)
    configure_logging(config.log_level, verbose=verbose)
    ctx.obj = config


@app.command("tree")
def tree_cmd(
    ctx: typer.Context,
    at: Optional[list[int]] = typer.Option(
        None, "--at", help="Show the subtree under this path of activity ids (repeatable)"
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Show the activity tree."""
    _check_format(format, "E_TREE_UNKNOWN_FORMAT")
    _, forest = _open(ctx)
    path_ids = at or []
    nodes = _nodes_at(forest, path_ids)

    if format == "json":
        payload = {
            "tool": "practice",
            "command": "tree",
            "at": path_ids,
            "breadcrumb": breadcrumb(forest, path_ids),
            "tree": forest_to_dicts(nodes),
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    title = " → ".join(breadcrumb(forest, path_ids)) or "Activities"
    _render_tree(title, nodes)


@app.command("plan")
def plan_cmd(
    ctx: typer.Context,
    minutes: float = typer.Option(..., "--minutes", "-m", help="Total minutes to allocate"),
    at: Optional[list[int]] = typer.Option(
        None, "--at", help="Plan only the subtree under this path of activity ids (repeatable)"
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    out: Optional[str] = typer.Option(
        None, "--out", help="Write a session draft (YAML) for `record` and `save`"
    ),
) -> None:
    """Allocate practice minutes across active activities by weight."""
    _check_format(format, "E_PLAN_UNKNOWN_FORMAT")
    if not math.isfinite(minutes):
        _fail(
            [
                ActivityValidationError(
                    code="E_PLAN_INVALID_BUDGET",
                    message=f"--minutes must be a finite number, got {minutes}",
                    path="minutes",
                )
            ],
            2,
        )
    if minutes < 0:
        _fail(
            [
                ActivityValidationError(
                    code="E_PLAN_NEGATIVE_BUDGET",
                    message=f"--minutes must not be negative, got {minutes:g}",
                    path="minutes",
                )
            ],
            2,
        )

    _, forest = _open(ctx)
    path_ids = at or []
    _nodes_at(forest, path_ids)

    draft = build_session(forest, _whole(minutes), path_ids)
    if out:
        dump_session(draft, out)

    if format == "json":
        payload = {"tool": "practice", "command": "plan", **session_payload(draft)}
        payload["allocated"] = plan_total(draft.entries)
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    title = f"Plan: {_whole(minutes)} min"
    crumbs = breadcrumb(forest, path_ids)
    if crumbs:
        title += " (" + " → ".join(crumbs) + ")"
    _render_plan(title, draft)
    if out:
        typer.echo(f"OK: wrote session draft to {out}")


@app.command("record")
def record_cmd(
    draft_path: str = typer.Argument(..., help="Session draft written by `plan --out`"),
    actual: list[str] = typer.Option(
        ..., "--actual", "-a", help="Actual minutes as ID=MINUTES (repeatable)"
    ),
) -> None:
    """Record actual minutes against a planned session."""
    draft = _guard(lambda: load_session(draft_path))

    errors: list[PracticeError] = []
    for item in actual:
        rid_text, sep, minutes_text = item.partition("=")
        try:
            rid = int(rid_text.strip())
        except ValueError:
            rid = None
        if not sep or rid is None:
            errors.append(
                ActivityValidationError(
                    code="E_RECORD_BAD_ACTUAL",
                    message=f"expected ID=MINUTES, got {item!r}",
                    path="actual",
                )
            )
            continue
        try:
            set_actual(draft, rid, minutes_text)
        except SessionError as e:
            errors.append(e)

    if errors:
        _fail(errors, 2)

    dump_session(draft, draft_path)
    _render_plan(f"Session: {_whole(draft.total_minutes)} min", draft)


@app.command("save")
def save_cmd(
    ctx: typer.Context,
    draft_path: str = typer.Argument(..., help="Session draft written by `plan --out`"),
) -> None:
    """Persist a planned session (planned vs. actual minutes)."""
    draft = _guard(lambda: load_session(draft_path))
    store = _guard(lambda: open_store(ctx.obj))
    result = _guard(lambda: save_session(store, draft))
    data = result.get("data") if isinstance(result, dict) else None
    session_id = data.get("id") if isinstance(data, dict) else None
    suffix = f" (id={session_id})" if session_id is not None else ""
    typer.echo(f"OK: session saved{suffix}")


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Activity name"),
    weight: float = typer.Option(1, "--weight", "-w", help="Relative weight among siblings"),
    parent: Optional[int] = typer.Option(None, "--parent", help="Parent activity id"),
) -> None:
    """Add an activity (with a default "Misc" child)."""
    _check_weight(weight)
    store, forest = _open(ctx)
    if parent is not None and find_node_by_id(forest, parent) is None:
        _fail(
            [
                StoreError(
                    code="E_UNKNOWN_ACTIVITY",
                    message=f"--parent references unknown id: {parent}",
                    path="parent",
                )
            ],
            2,
        )
    forest = _guard(lambda: add_activity(store, name, _whole(weight), parent))
    _render_tree("Activities", forest)


@app.command("set-weight")
def set_weight_cmd(
    ctx: typer.Context,
    activity_id: int = typer.Argument(..., help="Activity id"),
    weight: float = typer.Argument(..., help="New weight (0 disables the branch)"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show the tree with the new weight without saving"
    ),
) -> None:
    """Change an activity's weight."""
    _check_weight(weight)
    store, forest = _open(ctx)
    _require_activity(forest, activity_id)
    if dry_run:
        _render_tree("Activities (not saved)", with_weight(forest, activity_id, _whole(weight)))
        return
    forest = _guard(lambda: update_activity(store, forest, activity_id, weight=_whole(weight)))
    _render_tree("Activities", forest)


@app.command("rename")
def rename_cmd(
    ctx: typer.Context,
    activity_id: int = typer.Argument(..., help="Activity id"),
    name: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename an activity."""
    if not name.strip():
        _fail(
            [
                ActivityValidationError(
                    code="E_ACTIVITY_NAME_REQUIRED",
                    message="activity name must be a non-empty string",
                    path="name",
                )
            ],
            2,
        )
    store, forest = _open(ctx)
    _require_activity(forest, activity_id)
    forest = _guard(lambda: update_activity(store, forest, activity_id, name=name.strip()))
    _render_tree("Activities", forest)


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    activity_id: int = typer.Argument(..., help="Activity id"),
) -> None:
    """Delete an activity."""
    store, forest = _open(ctx)
    _require_activity(forest, activity_id)
    forest = _guard(lambda: delete_activity(store, forest, activity_id))
    _render_tree("Activities", forest)


@app.command("lint")
def lint_cmd(
    ctx: typer.Context,
    file: Optional[str] = typer.Option(
        None, "--file", help="Lint an exported activities file (.yaml/.yml/.json) instead of the store"
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Report data problems the tree builder silently tolerates."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")
    config: StoreConfig = ctx.obj
    if file:
        records = _guard(lambda: load_activities(file))
        source = file
    else:
        store = _guard(lambda: open_store(config))
        records = _guard(store.list_records)
        source = config.store_file or config.api_url
    errors = lint_activities(records, file=source)

    if format == "json":
        payload = {
            "tool": "practice",
            "command": "lint",
            "ok": not errors,
            "error_count": len(errors),
            "errors": [
                {
                    "code": e.code,
                    "message": e.message,
                    "file": e.file,
                    "path": e.path,
                    "severity": "warning",
                }
                for e in errors
            ],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        if errors:
            raise typer.Exit(code=2)
        return

    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo(f"OK: {len(records)} activities, lint passed")


def _open(ctx: typer.Context) -> tuple[ActivityStore, list[ActivityNode]]:
    store = _guard(lambda: open_store(ctx.obj))
    forest = _guard(lambda: fetch_tree(store))
    return store, forest


def _nodes_at(forest: list[ActivityNode], path_ids: list[int]) -> list[ActivityNode]:
    if not path_ids:
        return forest
    node = find_node_by_path(forest, path_ids)
    if node is None:
        _fail(
            [
                ActivityValidationError(
                    code="E_UNKNOWN_PATH",
                    message="--at does not resolve to an activity: "
                    + " / ".join(str(x) for x in path_ids),
                    path="at",
                )
            ],
            2,
        )
    return node.children


def _require_activity(forest: list[ActivityNode], activity_id: int) -> ActivityNode:
    node = find_node_by_id(forest, activity_id)
    if node is None:
        _fail(
            [
                StoreError(
                    code="E_UNKNOWN_ACTIVITY",
                    message=f"no activity with id {activity_id}",
                    path="id",
                )
            ],
            2,
        )
    return node


def _guard(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except (ActivityLoadError, StoreError) as e:
        _fail([e], 1)
    except (ActivityValidationError, SessionError) as e:
        _fail([e], 2)


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        _fail(
            [
                ActivityValidationError(
                    code=code,
                    message=f"unknown format: {format} (choose one of: text, json)",
                    path="format",
                )
            ],
            2,
        )


def _check_weight(weight: float) -> None:
    if not math.isfinite(weight):
        _fail(
            [
                ActivityValidationError(
                    code="E_INVALID_WEIGHT",
                    message=f"weight must be a finite number, got {weight}",
                    path="weight",
                )
            ],
            2,
        )
    if weight < 0:
        _fail(
            [
                ActivityValidationError(
                    code="E_NEGATIVE_WEIGHT",
                    message=f"weight must not be negative, got {weight:g}",
                    path="weight",
                )
            ],
            2,
        )


def _whole(value: float) -> float:
    # typer hands floats through; keep 60 as 60, not 60.0, in output.
    return int(value) if float(value).is_integer() else value


def _render_tree(title: str, nodes: list[ActivityNode]) -> None:
    root = Tree(f"[bold]{escape(title)}[/bold]")

    def add(branch: Tree, level: list[ActivityNode]) -> None:
        for n in level:
            name = escape(n.name) if n.is_active else f"[strike]{escape(n.name)}[/strike]"
            label = f"{name} [dim](id={n.relation_id}, weight={n.weight:g})[/dim]"
            add(branch.add(label), n.children)

    add(root, nodes)
    Console().print(root)


def _render_plan(title: str, draft: SessionDraft) -> None:
    if not draft.entries:
        typer.echo("No active activities to plan.")
        return
    table = Table(title=escape(title))
    table.add_column("ID", justify="right")
    table.add_column("Activity path")
    table.add_column("Suggested", justify="right")
    table.add_column("Actual", justify="right")
    for e in draft.entries:
        table.add_row(
            str(e.activity_relation_id),
            escape(" → ".join(e.path)),
            str(e.suggested_minutes),
            str(e.actual_minutes),
        )
    table.add_row(
        "",
        "Total",
        str(plan_total(draft.entries)),
        str(plan_total(draft.entries, actual=True)),
    )
    Console().print(table)


def _fail(errors: list[PracticeError], code: int) -> NoReturn:
    _print_errors(errors)
    raise typer.Exit(code=code)


def _print_errors(errors: list[Any]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="practice")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
