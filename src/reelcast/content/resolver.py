"""
Content resolution contract.

A ContentResolver turns a block's search term into candidate videos. It is an
external collaborator: it may return fewer videos than requested, must not raise
on "no results", and may be slow. The ResolverGateway bounds every call with a
timeout and absorbs resolver failures so timeline population never stalls on a
search.

Search term syntax follows the content store: whitespace-separated words are all
required, a word prefixed with ``-`` excludes posts containing it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..shared.types import FetchMode, VideoFormat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Video:
    """A candidate video returned by a content resolver."""

    id: str
    text: str = ""
    permalink: str | None = None
    video_url: str | None = None
    video_url_md: str | None = None
    thumbnail_url: str | None = None
    width: int | None = None
    height: int | None = None
    posted_at: str | None = None
    creator: dict[str, Any] = field(default_factory=dict)

    @property
    def is_wide(self) -> bool:
        return bool(self.width and self.height and self.width > self.height)

    @property
    def is_tall(self) -> bool:
        return bool(self.width and self.height and self.height > self.width)

    def matches_format(self, video_format: str) -> bool:
        """Whether this video satisfies a block's orientation filter.

        Videos without dimensions only satisfy ``mixed``.
        """
        if video_format == VideoFormat.WIDE.value:
            return self.is_wide
        if video_format == VideoFormat.TALL.value:
            return self.is_tall
        return True

    def to_snapshot(self) -> dict[str, Any]:
        """Denormalised payload stored on the timeline entry for the display."""
        return {
            "post": {
                "id": self.id,
                "text": self.text,
                "permalink": self.permalink,
                "posted_at": self.posted_at,
                "attachments": [
                    {
                        "width": self.width,
                        "height": self.height,
                        "encodings": {
                            "source": {"path": self.video_url},
                            "md": {"path": self.video_url_md},
                            "thumbnail": {"path": self.thumbnail_url},
                        },
                    }
                ],
            },
            "profile": dict(self.creator),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Video:
        """Build from a flat catalog record.

        Accepts ``creator`` as a nested dict or the flat ``username`` /
        ``display_name`` keys used by the catalog tables.
        """
        creator = data.get("creator")
        if creator is None:
            creator = {
                key: data[key]
                for key in ("creator_id", "username", "display_name", "profile_picture_url")
                if data.get(key) is not None
            }
        width = data.get("width")
        height = data.get("height")
        posted_at = data.get("posted_at")
        return cls(
            id=str(data["id"]),
            text=data.get("text") or "",
            permalink=data.get("permalink"),
            video_url=data.get("video_url"),
            video_url_md=data.get("video_url_md"),
            thumbnail_url=data.get("thumbnail_url"),
            width=int(width) if width is not None else None,
            height=int(height) if height is not None else None,
            posted_at=posted_at.isoformat() if hasattr(posted_at, "isoformat") else posted_at,
            creator=dict(creator),
        )


class ContentResolver(Protocol):
    """Resolves a search term to at most ``count`` candidate videos."""

    def resolve(
        self,
        search_term: str,
        count: int,
        *,
        mode: str = FetchMode.RANDOM.value,
        video_format: str = VideoFormat.MIXED.value,
        exclude_ids: Iterable[str] = (),
    ) -> list[Video]: ...


def parse_search_term(search_term: str) -> tuple[list[str], list[str]]:
    """Split a search term into (include_words, exclude_words)."""
    include: list[str] = []
    exclude: list[str] = []
    for word in search_term.split():
        if word.startswith("-") and len(word) > 1:
            exclude.append(word[1:])
        elif word != "-":
            include.append(word)
    return include, exclude


def widen_search_term(search_term: str) -> str | None:
    """Looser form of a search term, or None when it cannot be widened.

    Exclusion words are dropped and a multi-word phrase is reduced to its
    longest word.
    """
    include, exclude = parse_search_term(search_term)
    if not include:
        return None
    if len(include) > 1:
        widened = max(include, key=len)
    elif exclude:
        widened = include[0]
    else:
        return None
    if widened.strip().lower() == search_term.strip().lower():
        return None
    return widened


def text_matches(text: str, search_term: str) -> bool:
    """Case-insensitive containment check used by in-process resolvers."""
    include, exclude = parse_search_term(search_term)
    if not include:
        return False
    haystack = text.lower()
    if not all(word.lower() in haystack for word in include):
        return False
    return not any(word.lower() in haystack for word in exclude)


class ResolverGateway:
    """Bounded-time access to a ContentResolver.

    Each call runs on a small worker pool and is abandoned after
    ``timeout_seconds``; timeouts and resolver exceptions degrade to an empty
    result. The abandoned worker finishes in the background and its result is
    discarded.
    """

    def __init__(
        self,
        resolver: ContentResolver,
        *,
        timeout_seconds: float = 5.0,
        max_workers: int = 4,
    ) -> None:
        self.resolver = resolver
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="reelcast-resolver"
        )

    def resolve(
        self,
        search_term: str,
        count: int,
        *,
        mode: str = FetchMode.RANDOM.value,
        video_format: str = VideoFormat.MIXED.value,
        exclude_ids: Sequence[str] = (),
    ) -> list[Video]:
        if not search_term or count <= 0:
            return []
        future = self._executor.submit(
            self.resolver.resolve,
            search_term,
            count,
            mode=mode,
            video_format=video_format,
            exclude_ids=tuple(exclude_ids),
        )
        try:
            videos = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "Content resolver timed out after %.1fs for %r", self.timeout_seconds, search_term
            )
            return []
        except Exception:
            logger.exception("Content resolver failed for %r", search_term)
            return []
        return list(videos or [])[:count]

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
