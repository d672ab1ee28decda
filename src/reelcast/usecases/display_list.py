from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..runtime.display_registry import DisplayRegistry, serialize_display
from .display_add import _registry


def list_displays(
    db: Session,
    *,
    include_inactive: bool = False,
    registry: DisplayRegistry | None = None,
) -> dict[str, Any]:
    """List displays with derived online status and fleet stats."""
    registry = _registry(registry)
    displays = registry.list_displays(db, include_inactive=include_inactive)

    return {
        "status": "ok",
        "total": len(displays),
        "stats": registry.stats(db),
        "displays": [
            serialize_display(display, is_online=registry.is_online(display))
            for display in displays
        ],
    }


__all__ = ["list_displays"]
