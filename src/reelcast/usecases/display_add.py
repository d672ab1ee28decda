from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.entities import Display
from ..infra.settings import settings
from ..runtime.display_registry import DisplayRegistry, serialize_display


def _registry(registry: DisplayRegistry | None = None) -> DisplayRegistry:
    return registry or DisplayRegistry(online_window_seconds=settings.online_window_seconds)


def _resolve_display(db: Session, code: str, *, include_inactive: bool = True) -> Display:
    """Look a display up by code; raises ValueError when unknown."""
    display = _registry().require_display(db, code)
    if not include_inactive and not display.is_active:
        raise ValueError(f"Display {display.code} is inactive")
    return display


def add_display(
    db: Session,
    *,
    name: str,
    code: str | None = None,
    registry: DisplayRegistry | None = None,
) -> dict[str, Any]:
    """Register a Display and return a contract-aligned dict.

    A six character code is generated when ``code`` is not given.
    """
    registry = _registry(registry)
    display = registry.create_display(db, name, code=code)
    db.commit()
    db.refresh(display)

    return {
        "status": "ok",
        "display": serialize_display(display, is_online=registry.is_online(display)),
    }


__all__ = ["add_display"]
