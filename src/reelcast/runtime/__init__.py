"""
Scheduling runtime: timeline manager, display registry and poll handler.

``build_poll_handler`` wires the three together from settings; the web app and
CLI share one instance per process.
"""

from __future__ import annotations

from ..content import ResolverGateway, build_gateway
from ..infra.settings import Settings, settings as _settings
from .display_registry import DisplayRegistry, PollReport
from .poll_handler import PollHandler
from .restart_guard import LoopRestartGuard
from .timeline_manager import TimelineManager

__all__ = [
    "DisplayRegistry",
    "LoopRestartGuard",
    "PollHandler",
    "PollReport",
    "TimelineManager",
    "build_poll_handler",
    "build_timeline_manager",
]


def build_timeline_manager(
    config: Settings | None = None, gateway: ResolverGateway | None = None
) -> TimelineManager:
    config = config or _settings
    return TimelineManager(
        gateway or build_gateway(config), history_window=config.history_window
    )


def build_poll_handler(
    config: Settings | None = None, gateway: ResolverGateway | None = None
) -> PollHandler:
    config = config or _settings
    registry = DisplayRegistry(online_window_seconds=config.online_window_seconds)
    return PollHandler(registry, build_timeline_manager(config, gateway))
