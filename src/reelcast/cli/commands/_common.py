"""Helpers shared by the CLI command groups."""

from __future__ import annotations

import json
from typing import Any

import typer


def wants_json(ctx: typer.Context, json_output: bool) -> bool:
    return json_output or bool((ctx.obj or {}).get("json"))


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def fail(message: str, *, json_output: bool, code: str = "VALIDATION_ERROR") -> None:
    """Report an error and exit with status 1."""
    if json_output:
        echo_json({"status": "error", "code": code, "message": message})
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def error_code(error_msg: str) -> str:
    lowered = error_msg.lower()
    if "display not found" in lowered:
        return "DISPLAY_NOT_FOUND"
    if "playlist not found" in lowered:
        return "PLAYLIST_NOT_FOUND"
    if "timeline entry not found" in lowered:
        return "ENTRY_NOT_FOUND"
    if "already in use" in lowered:
        return "DISPLAY_CODE_DUPLICATE"
    return "VALIDATION_ERROR"
