from __future__ import annotations

import json

import typer

from ...infra.uow import session
from ...usecases import command_send as _uc_command_send
from ._common import echo_json, error_code, fail, wants_json

app = typer.Typer(name="command", help="Queue commands for displays")


@app.command("send")
def send_command(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Display code"),
    command_type: str = typer.Argument(
        ..., help="play|pause|next|previous|seek|playVideo|mute|unmute"
    ),
    position: float | None = typer.Option(None, "--position", help="Seek position in seconds"),
    payload: str | None = typer.Option(None, "--payload", help="JSON payload object"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Queue a command for the display's next poll.

    Examples:
        reelcast command send LOBBY1 pause
        reelcast command send LOBBY1 seek --position 12.5
    """
    as_json = wants_json(ctx, json_output)
    try:
        data = json.loads(payload) if payload else {}
    except json.JSONDecodeError as e:
        fail(f"Invalid payload JSON: {e}", json_output=as_json)
    if not isinstance(data, dict):
        fail("Payload must be a JSON object", json_output=as_json)
    if position is not None:
        data["position"] = position

    with session() as db:
        try:
            result = _uc_command_send.send_command(
                db, code=code, command_type=command_type, payload=data or None
            )
        except ValueError as e:
            fail(str(e), json_output=as_json, code=error_code(str(e)))

    if as_json:
        echo_json(result)
    else:
        typer.echo(result["message"])
