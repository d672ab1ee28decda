from __future__ import annotations

import typer

from ...infra.uow import session
from ...runtime import build_timeline_manager
from ...usecases import timeline_inspect as _uc_timeline
from ._common import echo_json, error_code, fail, wants_json

app = typer.Typer(name="timeline", help="Timeline inspection and repair")


def _run(ctx: typer.Context, json_output: bool, operation, **kwargs):
    """Run a timeline usecase inside one unit of work and return its result."""
    as_json = wants_json(ctx, json_output)
    timeline = build_timeline_manager()
    try:
        with session() as db:
            try:
                return operation(db, timeline=timeline, **kwargs)
            except ValueError as e:
                fail(str(e), json_output=as_json, code=error_code(str(e)))
    finally:
        timeline.gateway.shutdown()


@app.command("show")
def show_timeline(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Upcoming entries to show"),
    show_all: bool = typer.Option(False, "--all", help="Show the whole timeline"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the upcoming entries of a display's timeline."""
    result = _run(
        ctx, json_output, _uc_timeline.inspect_timeline, code=code, limit=limit, include_all=show_all
    )
    if wants_json(ctx, json_output):
        echo_json(result)
        return

    typer.echo(
        f"Display {result['code']}: {result['timeline_state']}, "
        f"position {result['timeline_position']}, loop {result['loop_count']}"
    )
    if not result["entries"]:
        typer.echo("  (no entries)")
    for entry in result["entries"]:
        marker = ">" if entry["timeline_position"] == result["timeline_position"] else " "
        typer.echo(
            f"{marker} {entry['timeline_position']:>4}  {entry['status']:<7}  {entry['video_id']}"
        )


@app.command("reset-position")
def reset_position(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Move the display's cursor back to the first entry."""
    result = _run(ctx, json_output, _uc_timeline.reset_timeline_position, code=code)
    if wants_json(ctx, json_output):
        echo_json(result)
    else:
        typer.echo(f"Timeline position reset for {result['code']}")


@app.command("repopulate")
def repopulate(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Rebuild the current loop from the assigned playlist."""
    result = _run(ctx, json_output, _uc_timeline.repopulate_timeline, code=code)
    if wants_json(ctx, json_output):
        echo_json(result)
    else:
        typer.echo(f"Timeline for {result['code']} rebuilt with {result['entries']} entries")


@app.command("stop")
def stop(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Clear the display's timeline and return it to idle."""
    result = _run(ctx, json_output, _uc_timeline.stop_display, code=code)
    if wants_json(ctx, json_output):
        echo_json(result)
    else:
        typer.echo(f"Display {result['code']} stopped ({result['cleared']} entries cleared)")
