"""
Global test configuration for Reelcast.

Every test gets its own SQLite file database built from the model metadata; the
unit of work is pointed at it so usecases, CLI commands and API routes all share
the same store.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from reelcast.content.resolver import ResolverGateway  # noqa: E402
from reelcast.content.static_resolver import StaticContentResolver  # noqa: E402
from reelcast.domain.entities import Block, Display, Playlist  # noqa: E402
from reelcast.infra import db as db_module  # noqa: E402
from reelcast.runtime.display_registry import DisplayRegistry  # noqa: E402
from reelcast.runtime.poll_handler import PollHandler  # noqa: E402
from reelcast.runtime.restart_guard import LoopRestartGuard  # noqa: E402
from reelcast.runtime.timeline_manager import TimelineManager  # noqa: E402


def _video(video_id: str, text: str, width: int, height: int, day: int) -> dict:
    return {
        "id": video_id,
        "text": text,
        "permalink": f"https://example.test/p/{video_id}",
        "video_url": f"https://cdn.example.test/{video_id}.mp4",
        "video_url_md": f"https://cdn.example.test/{video_id}_md.mp4",
        "thumbnail_url": f"https://cdn.example.test/{video_id}.jpg",
        "width": width,
        "height": height,
        "posted_at": f"2025-01-{day:02d}T12:00:00+00:00",
        "username": "creator",
    }


CATALOG = [
    _video("sun-1", "golden sunset over the hills", 1920, 1080, 1),
    _video("sun-2", "sunset at the beach", 1080, 1920, 2),
    _video("sun-3", "city sunset timelapse", 1920, 1080, 3),
    _video("sun-4", "sunset clouds", 1280, 720, 4),
    _video("sun-5", "red sunset sky", 720, 1280, 5),
    _video("sun-6", "sunset over the lake", 1920, 1080, 6),
    _video("sea-1", "calm ocean waves", 1920, 1080, 7),
    _video("sea-2", "ocean sunrise", 1080, 1920, 8),
    _video("sea-3", "deep ocean reef", 1920, 1080, 9),
    _video("sea-4", "ocean storm at night", 1920, 1080, 10),
    _video("cat-1", "cat plays piano", 1080, 1080, 11),
]


@pytest.fixture
def catalog() -> list[dict]:
    return [dict(v) for v in CATALOG]


@pytest.fixture
def engine(tmp_path):
    engine = db_module.get_engine(f"sqlite:///{tmp_path / 'reelcast-test.db'}")
    db_module.init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def SessionTest(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture(autouse=True)
def _force_test_db(request, monkeypatch):
    """Point the unit of work at the per-test database when a test uses one."""
    if "SessionTest" in request.fixturenames:
        monkeypatch.setattr(db_module, "SessionLocal", request.getfixturevalue("SessionTest"))


@pytest.fixture
def db(SessionTest):
    session = SessionTest()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def resolver(catalog) -> StaticContentResolver:
    return StaticContentResolver(catalog, seed=7)


@pytest.fixture
def gateway(resolver):
    gateway = ResolverGateway(resolver, timeout_seconds=2.0)
    yield gateway
    gateway.shutdown()


@pytest.fixture
def guard() -> LoopRestartGuard:
    return LoopRestartGuard()


@pytest.fixture
def timeline(gateway, guard) -> TimelineManager:
    return TimelineManager(gateway, guard=guard, history_window=50)


@pytest.fixture
def registry() -> DisplayRegistry:
    return DisplayRegistry(online_window_seconds=30)


@pytest.fixture
def handler(registry, timeline) -> PollHandler:
    return PollHandler(registry, timeline)


def make_playlist(db, blocks, *, name="Evening", loop=True) -> Playlist:
    """Persist a playlist from ``[(search_term, video_count), ...]`` or block dicts."""
    playlist = Playlist(name=name, loop=loop)
    for order, spec in enumerate(blocks):
        if isinstance(spec, dict):
            playlist.blocks.append(Block(block_order=order, **spec))
        else:
            term, count = spec
            playlist.blocks.append(Block(block_order=order, search_term=term, video_count=count))
    db.add(playlist)
    db.commit()
    return playlist


def make_display(db, *, code="D1", name="Lobby", playlist=None) -> Display:
    display = Display(code=code, name=name, playlist=playlist)
    db.add(display)
    db.commit()
    return display


@pytest.fixture
def assigned_display(db, timeline):
    """Display D1 with the sunset x3 / ocean x2 looping playlist, populated."""
    playlist = make_playlist(db, [("sunset", 3), ("ocean", 2)])
    display = make_display(db, playlist=playlist)
    timeline.populate_timeline(db, display)
    return display


@pytest.fixture
def playlist_factory(db):
    return lambda blocks, **kwargs: make_playlist(db, blocks, **kwargs)


@pytest.fixture
def display_factory(db):
    return lambda **kwargs: make_display(db, **kwargs)
