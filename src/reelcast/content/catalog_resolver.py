"""
CatalogContentResolver: Production ContentResolver backed by the video catalog
database (the content store populated by the scanner, separate from the
scheduler's own store).

Matching rules:
  - every include word must appear in the post text (case-insensitive)
  - no exclude word (``-word``) may appear
  - ``wide`` / ``tall`` formats filter on the stored dimensions
  - ``exclude_ids`` are never returned

``newest`` orders by ``posted_at`` descending; ``random`` lets the database
shuffle with ``random()``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    and_,
    create_engine,
    func,
    not_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..infra.exceptions import ResolverError
from ..shared.types import FetchMode, VideoFormat
from .resolver import Video, parse_search_term

logger = logging.getLogger(__name__)

catalog_metadata = MetaData()

catalog_videos = Table(
    "catalog_videos",
    catalog_metadata,
    Column("id", String(255), primary_key=True),
    Column("text", Text, nullable=False, default=""),
    Column("permalink", Text),
    Column("video_url", Text),
    Column("video_url_md", Text),
    Column("thumbnail_url", Text),
    Column("width", Integer),
    Column("height", Integer),
    Column("posted_at", DateTime(timezone=True)),
    Column("creator_id", String(255)),
    Column("username", String(255)),
    Column("display_name", String(255)),
    Column("profile_picture_url", Text),
)


class CatalogContentResolver:
    """ContentResolver that queries the catalog table on every call.

    Usage:
        resolver = CatalogContentResolver.from_url(settings.content_database_url)
        videos = resolver.resolve("sunset -night", 5, mode="newest")
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str) -> CatalogContentResolver:
        return cls(create_engine(url, pool_pre_ping=True, future=True))

    def resolve(
        self,
        search_term: str,
        count: int,
        *,
        mode: str = FetchMode.RANDOM.value,
        video_format: str = VideoFormat.MIXED.value,
        exclude_ids: Iterable[str] = (),
    ) -> list[Video]:
        include, exclude = parse_search_term(search_term)
        if not include or count <= 0:
            return []

        t = catalog_videos
        conditions = [t.c.text.ilike(f"%{word}%") for word in include]
        conditions.extend(not_(t.c.text.ilike(f"%{word}%")) for word in exclude)
        if video_format == VideoFormat.WIDE.value:
            conditions.append(t.c.width > t.c.height)
        elif video_format == VideoFormat.TALL.value:
            conditions.append(t.c.height > t.c.width)
        excluded = list(exclude_ids)
        if excluded:
            conditions.append(t.c.id.notin_(excluded))

        stmt = select(t).where(and_(*conditions)).limit(count)
        if mode == FetchMode.NEWEST.value:
            stmt = stmt.order_by(t.c.posted_at.desc())
        else:
            stmt = stmt.order_by(func.random())

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise ResolverError(f"Catalog query failed for {search_term!r}: {e}") from e

        logger.debug("Catalog resolved %d/%d videos for %r", len(rows), count, search_term)
        return [Video.from_dict(dict(row)) for row in rows]
