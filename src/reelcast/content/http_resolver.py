"""
HTTP content resolver.

Talks to a remote search service exposing ``POST {base_url}/api/search`` with a
JSON body of ``q``, ``limit``, ``mode``, ``format`` and an ``exclude`` id list,
answering ``{"videos": [...]}`` (a bare list is accepted too). The exclusion list
carries the whole recent play history, so it travels in the body rather than
the query string.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..infra.exceptions import ResolverError
from ..shared.types import FetchMode, VideoFormat
from .resolver import Video

logger = logging.getLogger(__name__)


class HttpContentResolver:
    """ContentResolver backed by a remote search endpoint."""

    def __init__(self, base_url: str, *, timeout: float = 5.0, retries: int = 1) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.timeout = timeout
        self.session = self._create_session(retries)

    def _create_session(self, retries: int) -> requests.Session:
        """Create a requests session with a short retry policy."""
        session = requests.Session()
        retry_strategy = Retry(
            total=retries,
            backoff_factor=0.2,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json", "User-Agent": "reelcast"})
        return session

    def resolve(
        self,
        search_term: str,
        count: int,
        *,
        mode: str = FetchMode.RANDOM.value,
        video_format: str = VideoFormat.MIXED.value,
        exclude_ids: Iterable[str] = (),
    ) -> list[Video]:
        if not search_term.strip() or count <= 0:
            return []
        body: dict[str, Any] = {
            "q": search_term,
            "limit": count,
            "mode": mode,
            "format": video_format,
            "exclude": list(exclude_ids),
        }

        try:
            response = self.session.post(
                f"{self.base_url}/api/search", json=body, timeout=self.timeout
            )
            if response.status_code == 404:
                return []
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ResolverError(f"Search request failed for {search_term!r}: {e}") from e
        except ValueError as e:
            raise ResolverError(f"Search response was not JSON for {search_term!r}") from e

        items = data.get("videos", []) if isinstance(data, dict) else data
        videos = []
        for item in items or []:
            try:
                videos.append(Video.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Dropping malformed search result: %r", item)
        return videos[:count]
