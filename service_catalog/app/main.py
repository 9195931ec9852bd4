"""
Catalog service for the Reelhub Access Layer.
"""

import time
from typing import Callable, Dict, Optional

from fastapi import Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .adapters.tmdb_client import TMDBClient
from .caching.response_cache import ResponseCache
from .domain.aggregation import (
    discover_titles,
    forward_params,
    parse_media_type,
    preload_sections,
    random_title,
    require_param,
    search_titles,
    season_episodes,
    title_details,
)


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        tmdb_client: Optional[TMDBClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__("catalog", 3000, config=config)
        self.tmdb_client = tmdb_client or TMDBClient(
            self.config.tmdb_base_url,
            self.config.tmdb_api_key,
            timeout=self.config.tmdb_timeout_seconds,
            metrics=self.metrics,
        )
        self.response_cache = ResponseCache(
            default_ttl=self.config.cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
            collapse_inflight=self.config.cache_collapse_inflight,
            clock=clock,
            metrics=self.metrics,
            name="catalog",
        )

        self._setup_catalog_routes()
        self._setup_cache_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.catalog_service = self

    def _setup_catalog_routes(self):
        """Set up provider-backed routes."""
        cache = self.response_cache

        @self.app.get("/search")
        @cache.cached()
        async def search(request: Request, q: Optional[str] = Query(None)):
            """Search movies and TV shows by title."""
            return await search_titles(self.tmdb_client, require_param("q", q))

        @self.app.get("/details")
        @cache.cached()
        async def details(
            request: Request,
            id: Optional[str] = Query(None),
            type: Optional[str] = Query("movie"),
        ):
            """Title details, related titles and seasons."""
            tmdb_id = require_param("id", id)
            return await title_details(self.tmdb_client, parse_media_type(type), tmdb_id)

        @self.app.get("/episodes")
        @cache.cached()
        async def episodes(
            request: Request,
            tv_id: Optional[str] = Query(None),
            season: Optional[str] = Query(None),
        ):
            """Episodes of one season of a TV show."""
            show_id = require_param("tv_id", tv_id)
            season_number = require_param("season", season)
            return await season_episodes(self.tmdb_client, show_id, season_number)

        @self.app.get("/discover/{media_type}")
        @cache.cached()
        async def discover(request: Request, media_type: str, limit: Optional[int] = Query(None, ge=1)):
            """Discovery listing; query parameters are forwarded to the provider."""
            params = forward_params(request.query_params.multi_items(), exclude=("limit",))
            return await discover_titles(self.tmdb_client, parse_media_type(media_type), params, limit)

        @self.app.get("/preload")
        @cache.cached()
        async def preload(request: Request):
            """Homepage sections, fetched concurrently."""
            return await preload_sections(self.tmdb_client)

        @self.app.get("/random")
        async def random_pick(type: Optional[str] = Query("movie"), genreId: Optional[str] = Query(None)):
            """One random title. Never cached."""
            return await random_title(self.tmdb_client, parse_media_type(type), genreId)

    def _setup_cache_routes(self):
        """Set up cache introspection routes."""

        @self.app.get("/cache/stats")
        async def cache_stats():
            """Get response cache statistics."""
            return self.response_cache.stats()

        if not self.config.cache_admin_enabled:
            return

        # Admin route, off unless CATALOG_CACHE_ADMIN_ENABLED is set
        @self.app.delete("/cache")
        async def clear_cache():
            """Drop every cached response."""
            return {"cleared": self.response_cache.clear()}

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"tmdb": await self.tmdb_client.check_health()}

    async def _on_shutdown(self):
        await self.tmdb_client.close()


def create_app():
    """Create FastAPI application."""
    service = CatalogService()
    return service.app


def main():
    service = CatalogService()
    service.run()


if __name__ == "__main__":
    main()
