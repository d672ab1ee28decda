from __future__ import annotations

import typer

from ...infra.uow import session
from ...runtime import build_timeline_manager
from ...usecases import display_add as _uc_display_add
from ...usecases import display_list as _uc_display_list
from ...usecases import display_show as _uc_display_show
from ...usecases import display_update as _uc_display_update
from ._common import echo_json, error_code, fail, wants_json

app = typer.Typer(name="display", help="Display registration and inspection")


@app.command("add")
def add_display(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Human-readable display name"),
    code: str | None = typer.Option(None, "--code", help="Display code (generated when omitted)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Register a display.

    Examples:
        reelcast display add --name "Lobby"
        reelcast display add --name "Cafe" --code CAFE01
    """
    as_json = wants_json(ctx, json_output)
    with session() as db:
        try:
            result = _uc_display_add.add_display(db, name=name, code=code)
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
    else:
        display = result["display"]
        typer.echo("Display created:")
        typer.echo(f"  Code: {display['code']}")
        typer.echo(f"  Name: {display['name']}")


@app.command("list")
def list_displays(
    ctx: typer.Context,
    include_inactive: bool = typer.Option(False, "--all", help="Include deactivated displays"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List displays with their online status."""
    with session() as db:
        result = _uc_display_list.list_displays(db, include_inactive=include_inactive)

    if wants_json(ctx, json_output):
        echo_json(result)
        return

    if not result["displays"]:
        typer.echo("No displays registered")
        return
    stats = result["stats"]
    typer.echo(
        f"Displays: {stats['total']} total, {stats['online']} online, {stats['playing']} playing"
    )
    for display in result["displays"]:
        online = "online" if display["isOnline"] else "offline"
        playlist = display["playlist_name"] or "-"
        typer.echo(
            f"  {display['code']}  {display['name']}  [{online}]  playlist: {playlist}  "
            f"position: {display['timeline_position']}  loop: {display['loop_count']}"
        )


@app.command("show")
def show_display(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show a display with its timeline state and progress."""
    as_json = wants_json(ctx, json_output)
    timeline = build_timeline_manager()
    try:
        with session() as db:
            try:
                result = _uc_display_show.show_display(db, code=code, timeline=timeline)
            except ValueError as e:
                fail(str(e), json_output=as_json, code=error_code(str(e)))
    finally:
        timeline.gateway.shutdown()

    if as_json:
        echo_json(result)
        return

    display = result["display"]
    typer.echo(f"Display {display['code']}: {display['name']}")
    typer.echo(f"  Online: {display['isOnline']}")
    typer.echo(f"  Status: {display['status']}  Playback: {display['playback_state']}")
    typer.echo(f"  Playlist: {display['playlist_name'] or '-'}")
    typer.echo(f"  Timeline: {result.get('timeline_state')}")
    typer.echo(f"  Pending commands: {result['pending_commands']}")
    progress = result.get("progress")
    if progress:
        block = progress["currentBlock"]
        overall = progress["overallProgress"]
        typer.echo(
            f"  Block: {block['name']} ({block['currentVideo']}/{block['totalVideos']})"
        )
        typer.echo(
            f"  Position: {overall['currentPosition']}/{overall['totalInCurrentLoop']}"
            f"  Loop: {overall['loopCount']}"
        )


@app.command("rename")
def rename_display(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    name: str = typer.Option(..., "--name", help="New display name"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Rename a display."""
    as_json = wants_json(ctx, json_output)
    with session() as db:
        try:
            result = _uc_display_update.rename_display(db, code=code, name=name)
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
    else:
        typer.echo(f"Display {result['display']['code']} renamed to {result['display']['name']}")


@app.command("deactivate")
def deactivate_display(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Deactivate a display; its history is kept."""
    as_json = wants_json(ctx, json_output)
    if not yes and not as_json:
        typer.confirm(f"Deactivate display {code}?", abort=True)
    with session() as db:
        try:
            result = _uc_display_update.deactivate_display(db, code=code)
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
    else:
        typer.echo(f"Display {result['code']} deactivated")
