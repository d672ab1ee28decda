from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..runtime.display_registry import DisplayRegistry, serialize_display
from ..runtime.timeline_manager import TimelineManager
from .display_add import _registry, _resolve_display


def show_display(
    db: Session,
    *,
    code: str,
    timeline: TimelineManager | None = None,
    registry: DisplayRegistry | None = None,
) -> dict[str, Any]:
    """Show one display, with timeline state and progress when a manager is given.

    Raises:
        ValueError: If the display code is unknown
    """
    registry = _registry(registry)
    display = _resolve_display(db, code)

    result: dict[str, Any] = {
        "status": "ok",
        "display": serialize_display(display, is_online=registry.is_online(display)),
        "pending_commands": registry.count_pending(db, display),
    }
    if timeline is not None:
        result["timeline_state"] = timeline.timeline_state(db, display).value
        result["progress"] = timeline.get_timeline_progress(db, display)
    return result


__all__ = ["show_display"]
