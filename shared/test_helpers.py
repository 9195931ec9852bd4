"""
Test helper functions and factory methods for the Reelhub Access Layer.
"""

from typing import Dict, Any, Optional, List
from unittest.mock import AsyncMock

from shared.config import ServiceConfig, get_config


class FakeClock:
    """Manually advanced wall clock for TTL tests."""

    __test__ = False

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestDataFactory:
    """Factory for provider-shaped test data."""

    __test__ = False

    @staticmethod
    def create_movie(tmdb_id: int = 268, title: str = "Batman", poster: Optional[str] = "/poster.jpg") -> Dict[str, Any]:
        """Create a provider movie item."""
        return {
            "id": tmdb_id,
            "title": title,
            "media_type": "movie",
            "poster_path": poster,
            "backdrop_path": "/backdrop.jpg",
            "release_date": "1989-06-23",
            "vote_average": 7.2,
            "overview": "The Dark Knight of Gotham City begins his war on crime.",
        }

    @staticmethod
    def create_show(tmdb_id: int = 2098, name: str = "Batman: The Animated Series", poster: Optional[str] = "/show.jpg") -> Dict[str, Any]:
        """Create a provider TV item."""
        return {
            "id": tmdb_id,
            "name": name,
            "media_type": "tv",
            "poster_path": poster,
            "first_air_date": "1992-09-05",
            "vote_average": 8.5,
            "overview": "Vowing to avenge the murder of his parents.",
        }

    @staticmethod
    def create_person(tmdb_id: int = 3894, name: str = "Christian Bale") -> Dict[str, Any]:
        """Create a provider person item (filtered out of title searches)."""
        return {"id": tmdb_id, "name": name, "media_type": "person", "profile_path": "/bale.jpg"}

    @staticmethod
    def create_details(
        tmdb_id: int = 268,
        runtime: Optional[int] = 126,
        episode_run_time: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        """Create a provider details body; TV shows use episode_run_time."""
        return {
            "id": tmdb_id,
            "runtime": runtime,
            "episode_run_time": episode_run_time or [],
            "genres": [{"id": 28, "name": "Action"}],
        }

    @staticmethod
    def create_movie_page(count: int = 3, total_pages: int = 1, start_id: int = 100) -> Dict[str, Any]:
        """Create a paginated provider result envelope."""
        results: List[Dict[str, Any]] = [
            TestDataFactory.create_movie(tmdb_id=start_id + index, title=f"Movie {index}")
            for index in range(count)
        ]
        return {"page": 1, "results": results, "total_pages": total_pages, "total_results": count * total_pages}


def create_fake_tmdb_client(responses: Optional[Dict[str, Any]] = None) -> AsyncMock:
    """Provider client double whose get() answers from a path -> body map."""
    responses = responses or {}
    client = AsyncMock()

    async def _get(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        body = responses[path]
        if isinstance(body, BaseException):
            raise body
        return body

    client.get = AsyncMock(side_effect=_get)
    client.close = AsyncMock(return_value=None)
    client.check_health = AsyncMock(return_value="ok")
    return client


def create_test_config(**overrides) -> ServiceConfig:
    """Catalog configuration that never reads provider credentials from the host."""
    settings: Dict[str, Any] = {"tmdb_api_key": "test-key", "log_level": "warning"}
    settings.update(overrides)
    return get_config("catalog", 3000, **settings)
