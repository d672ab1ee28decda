"""
StaticContentResolver: Loads a JSON video catalog and satisfies the
ContentResolver protocol used by the timeline manager.

Usage:
    from reelcast.content.static_resolver import StaticContentResolver
    resolver = StaticContentResolver.from_file("config/videos.json")
    videos = resolver.resolve("sunset", 3)

The catalog file holds ``{"videos": [{"id": ..., "text": ..., ...}, ...]}``.
"""

from __future__ import annotations

import json
import random
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..shared.types import FetchMode, VideoFormat
from .resolver import Video, text_matches


class StaticContentResolver:
    """Read-only resolver backed by an in-memory list of videos."""

    def __init__(self, videos: Iterable[Video | dict[str, Any]], *, seed: int | None = None) -> None:
        self._videos: list[Video] = [
            v if isinstance(v, Video) else Video.from_dict(v) for v in videos
        ]
        self._random = random.Random(seed)

    @classmethod
    def from_file(cls, catalog_path: str | Path) -> StaticContentResolver:
        with open(Path(catalog_path)) as f:
            data = json.load(f)
        return cls(data.get("videos", []))

    def __len__(self) -> int:
        return len(self._videos)

    def resolve(
        self,
        search_term: str,
        count: int,
        *,
        mode: str = FetchMode.RANDOM.value,
        video_format: str = VideoFormat.MIXED.value,
        exclude_ids: Iterable[str] = (),
    ) -> list[Video]:
        if count <= 0:
            return []
        excluded = set(exclude_ids)
        candidates = [
            v
            for v in self._videos
            if v.id not in excluded
            and v.matches_format(video_format)
            and text_matches(v.text, search_term)
        ]
        if mode == FetchMode.NEWEST.value:
            candidates.sort(key=lambda v: v.posted_at or "", reverse=True)
            return candidates[:count]
        if len(candidates) <= count:
            self._random.shuffle(candidates)
            return candidates
        return self._random.sample(candidates, count)
