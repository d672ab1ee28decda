from __future__ import annotations

import pytest
from typer.testing import CliRunner

from reelcast.content.resolver import ResolverGateway
from reelcast.runtime.timeline_manager import TimelineManager


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_timeline(monkeypatch, resolver, guard):
    """Give CLI commands a timeline manager over the test catalog.

    Commands shut their gateway down when they finish, so each call gets a
    fresh one.
    """

    def build(config=None, gateway=None):
        return TimelineManager(ResolverGateway(resolver), guard=guard, history_window=50)

    for module in ("display", "playlist", "timeline"):
        monkeypatch.setattr(f"reelcast.cli.commands.{module}.build_timeline_manager", build)
    return build
