from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import yaml

from ...infra.uow import session
from ...runtime import build_timeline_manager
from ...usecases import playlist_add as _uc_playlist_add
from ...usecases import playlist_assign as _uc_playlist_assign
from ...usecases import playlist_delete as _uc_playlist_delete
from ...usecases import playlist_list as _uc_playlist_list
from ...usecases import playlist_show as _uc_playlist_show
from ._common import echo_json, error_code, fail, wants_json

app = typer.Typer(name="playlist", help="Playlist and block management")


def parse_block(spec: str) -> dict[str, Any]:
    """Parse ``TERM:COUNT[:MODE[:FORMAT]]``; the term itself may contain colons."""
    parts = spec.split(":")
    for i in range(len(parts) - 1, 0, -1):
        if parts[i].strip().isdigit():
            term = ":".join(parts[:i]).strip()
            options = [p.strip() for p in parts[i + 1 :]]
            if len(options) > 2:
                break
            block: dict[str, Any] = {"search_term": term, "video_count": int(parts[i])}
            if options:
                block["fetch_mode"] = options[0] or None
            if len(options) > 1:
                block["video_format"] = options[1] or None
            return block
    raise ValueError(f"Invalid block {spec!r}; expected TERM:COUNT[:MODE[:FORMAT]]")


def _load_file(path: Path) -> dict[str, Any]:
    """Read a playlist definition: ``{"name", "loop", "blocks": [...]}``.

    ``.yaml``/``.yml`` files are parsed as YAML, anything else as JSON. Block
    keys may be snake_case or the camelCase used by the HTTP API.
    """
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not parse playlist file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Playlist file must contain a mapping")
    blocks = []
    for raw in data.get("blocks") or []:
        blocks.append(
            {
                "search_term": raw.get("search_term", raw.get("searchTerm")),
                "video_count": raw.get("video_count", raw.get("videoCount")),
                "fetch_mode": raw.get("fetch_mode", raw.get("fetchMode")),
                "video_format": raw.get("video_format", raw.get("format")),
            }
        )
    return {"name": data.get("name"), "loop": data.get("loop", True), "blocks": blocks}


@app.command("add")
def add_playlist(
    ctx: typer.Context,
    name: str | None = typer.Option(None, "--name", help="Playlist name"),
    blocks: list[str] = typer.Option(
        [], "--block", "-b", help="Block as TERM:COUNT[:MODE[:FORMAT]]; repeat in play order"
    ),
    from_file: Path | None = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="JSON or YAML playlist definition"
    ),
    loop: bool = typer.Option(True, "--loop/--no-loop", help="Restart when exhausted"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create a playlist from ordered blocks.

    Examples:
        reelcast playlist add --name Evening --block "sunset:3" --block "ocean -storm:2:newest:wide"
        reelcast playlist add --file evening.yaml
    """
    as_json = wants_json(ctx, json_output)
    try:
        if from_file is not None:
            definition = _load_file(from_file)
            name = name or definition["name"]
            loop = definition["loop"] if definition["loop"] is not None else loop
            parsed = definition["blocks"]
        else:
            parsed = [parse_block(spec) for spec in blocks]
    except (ValueError, OSError) as e:
        fail(str(e), json_output=as_json)

    with session() as db:
        try:
            result = _uc_playlist_add.add_playlist(db, name=name or "", blocks=parsed, loop=loop)
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
        return
    playlist = result["playlist"]
    typer.echo("Playlist created:")
    typer.echo(f"  ID: {playlist['id']}")
    typer.echo(f"  Name: {playlist['name']}")
    typer.echo(f"  Loop: {playlist['loop']}")
    for block in playlist["blocks"]:
        typer.echo(
            f"  [{block['block_order']}] {block['search_term']} x{block['video_count']} "
            f"({block['fetch_mode']}, {block['video_format']})"
        )


@app.command("list")
def list_playlists(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List playlists."""
    with session() as db:
        result = _uc_playlist_list.list_playlists(db)

    if wants_json(ctx, json_output):
        echo_json(result)
        return
    if not result["playlists"]:
        typer.echo("No playlists")
        return
    for playlist in result["playlists"]:
        typer.echo(
            f"  {playlist['id']}  {playlist['name']}  blocks: {playlist['total_blocks']}  "
            f"videos: {playlist['total_videos']}  loop: {playlist['loop']}"
        )


@app.command("show")
def show_playlist(
    ctx: typer.Context,
    playlist: str = typer.Argument(..., help="Playlist UUID or name"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show a playlist's blocks and the displays using it."""
    as_json = wants_json(ctx, json_output)
    with session() as db:
        try:
            result = _uc_playlist_show.show_playlist(db, playlist_identifier=playlist)
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
        return
    data = result["playlist"]
    typer.echo(f"Playlist {data['name']} ({data['id']})")
    for block in data["blocks"]:
        typer.echo(
            f"  [{block['block_order']}] {block['search_term']} x{block['video_count']}  "
            f"played {block['times_played']} times"
        )
    typer.echo(f"  Displays: {', '.join(result['displays']) or '-'}")


@app.command("delete")
def delete_playlist(
    ctx: typer.Context,
    playlist: str = typer.Argument(..., help="Playlist UUID or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Delete a playlist that no active display uses."""
    as_json = wants_json(ctx, json_output)
    if not yes and not as_json:
        typer.confirm(f"Delete playlist {playlist}?", abort=True)
    with session() as db:
        try:
            result = _uc_playlist_delete.delete_playlist(db, playlist_identifier=playlist)
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
    else:
        typer.echo(f"Playlist {result['id']} deleted")


@app.command("assign")
def assign_playlist(
    ctx: typer.Context,
    playlist: str = typer.Argument(..., help="Playlist UUID or name"),
    display: str = typer.Option(..., "--display", "-d", help="Display code"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Assign a playlist to a display and build its timeline."""
    as_json = wants_json(ctx, json_output)
    timeline = build_timeline_manager()
    try:
        with session() as db:
            try:
                result = _uc_playlist_assign.assign_playlist(
                    db, code=display, playlist_identifier=playlist, timeline=timeline
                )
            except ValueError as e:
                fail(str(e), json_output=as_json, code=error_code(str(e)))
    finally:
        timeline.gateway.shutdown()

    if as_json:
        echo_json(result)
    else:
        typer.echo(
            f"Playlist {result['playlist_name']} assigned to {result['code']}: "
            f"{result['entries']} timeline entries"
        )
