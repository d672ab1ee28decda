from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..runtime.display_registry import DisplayRegistry
from .display_add import _registry, _resolve_display


def send_command(
    db: Session,
    *,
    code: str,
    command_type: str,
    payload: dict[str, Any] | None = None,
    registry: DisplayRegistry | None = None,
) -> dict[str, Any]:
    """Queue a command for delivery on the display's next poll.

    Raises:
        ValueError: If the display is unknown, the type is invalid, or a seek lacks a position
    """
    registry = _registry(registry)
    display = _resolve_display(db, code)
    command = registry.enqueue_command(db, display, command_type, payload)
    db.commit()

    return {
        "status": "queued",
        "code": display.code,
        "command_id": command.id,
        "type": command.command_type,
        "payload": command.payload or {},
        "message": f"Command {command.command_type} sent to display {display.code}",
    }


__all__ = ["send_command"]
