"""
Content resolution adapters.

``build_resolver`` picks the configured adapter (static JSON catalog, catalog
database, or remote search service) and wraps it in a ResolverGateway.
"""

from __future__ import annotations

from ..infra.settings import Settings, settings as _settings
from .resolver import ContentResolver, ResolverGateway, Video

__all__ = ["ContentResolver", "ResolverGateway", "Video", "build_resolver", "build_gateway"]


def build_resolver(config: Settings | None = None) -> ContentResolver:
    """Instantiate the content resolver named by ``CONTENT_RESOLVER``."""
    config = config or _settings
    kind = config.content_resolver.lower()
    if kind == "catalog":
        from .catalog_resolver import CatalogContentResolver

        if not config.content_database_url:
            raise ValueError("CONTENT_DATABASE_URL is required for the catalog resolver")
        return CatalogContentResolver.from_url(config.content_database_url)
    if kind == "http":
        from .http_resolver import HttpContentResolver

        if not config.content_search_url:
            raise ValueError("CONTENT_SEARCH_URL is required for the http resolver")
        return HttpContentResolver(
            config.content_search_url, timeout=config.resolver_timeout_seconds
        )
    if kind == "static":
        from .static_resolver import StaticContentResolver

        if config.content_static_path:
            return StaticContentResolver.from_file(config.content_static_path)
        return StaticContentResolver([])
    raise ValueError(f"Unknown content resolver: {config.content_resolver}")


def build_gateway(config: Settings | None = None) -> ResolverGateway:
    config = config or _settings
    return ResolverGateway(build_resolver(config), timeout_seconds=config.resolver_timeout_seconds)
