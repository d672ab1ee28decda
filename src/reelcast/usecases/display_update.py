from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..runtime.display_registry import DisplayRegistry, serialize_display
from .display_add import _registry, _resolve_display


def rename_display(
    db: Session,
    *,
    code: str,
    name: str,
    registry: DisplayRegistry | None = None,
) -> dict[str, Any]:
    registry = _registry(registry)
    display = _resolve_display(db, code)
    registry.rename_display(db, display, name)
    db.commit()

    return {
        "status": "ok",
        "display": serialize_display(display, is_online=registry.is_online(display)),
    }


def deactivate_display(
    db: Session,
    *,
    code: str,
    registry: DisplayRegistry | None = None,
) -> dict[str, Any]:
    """Deactivate a display; its history and timeline rows are kept."""
    registry = _registry(registry)
    display = _resolve_display(db, code)
    registry.deactivate_display(db, display)
    db.commit()

    return {
        "status": "ok",
        "code": display.code,
        "is_active": display.is_active,
    }


__all__ = ["rename_display", "deactivate_display"]
