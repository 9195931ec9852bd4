"""
Aggregation handlers behind the catalog routes.

Each handler fetches one or more provider resources, filters and truncates
the result lists and returns a JSON-serializable value. Items keep the
provider's own field names. Failures are raised, never returned, so the
response cache can tell them apart from successes.
"""

import asyncio
import random
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from shared.errors import ValidationError


MEDIA_TYPES = ("movie", "tv")
MAX_DISCOVER_PAGES = 500
SECTION_SIZE = 10
MIN_RECOMMENDATIONS = 5

PRELOAD_SECTIONS: Dict[str, Tuple[str, str, Optional[Dict[str, Any]]]] = {
    "trending": ("movie", "trending/movie/day", None),
    "nowPlaying": ("movie", "movie/now_playing", None),
    "topRated": ("movie", "movie/top_rated", None),
    "editors": (
        "movie",
        "discover/movie",
        {"sort_by": "vote_average.desc", "vote_count.gte": 100, "include_adult": False},
    ),
    "upcoming": ("movie", "movie/upcoming", None),
    "tvTrending": ("tv", "trending/tv/day", None),
    "tvTopRated": ("tv", "tv/top_rated", None),
}


class Provider(Protocol):
    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        ...


def parse_media_type(value: Optional[str]) -> str:
    """Validate a movie/tv media type, defaulting to movie."""
    media_type = (value or "movie").lower()
    if media_type not in MEDIA_TYPES:
        raise ValidationError("Unsupported media type", details={"type": value})
    return media_type


def require_param(name: str, value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Missing required parameter '{name}'", details={"parameter": name})
    return value.strip()


def _titled(item: Dict[str, Any]) -> bool:
    return bool(item.get("id") and item.get("poster_path") and (item.get("title") or item.get("name")))


def _with_posters(items: Optional[List[Dict[str, Any]]], limit: Optional[int] = None) -> List[Dict[str, Any]]:
    kept = [item for item in items or [] if item.get("poster_path")]
    return kept if limit is None else kept[:limit]


async def search_titles(client: Provider, query: str) -> List[Dict[str, Any]]:
    """Multi-search restricted to movie and tv results."""
    data = await client.get("search/multi", {"query": query, "include_adult": False})
    return [item for item in data.get("results", []) if item.get("media_type") in MEDIA_TYPES]


async def title_details(client: Provider, media_type: str, tmdb_id: str) -> Dict[str, Any]:
    """Details with external ids and videos.

    Movies also get up to ten related titles: recommendations, or similar
    titles when fewer than five recommendations exist. TV shows drop the
    specials season.
    """
    detail_request = client.get(
        f"{media_type}/{tmdb_id}",
        {"append_to_response": "external_ids,videos"},
    )

    if media_type == "tv":
        details = await detail_request
        details["seasons"] = [
            season for season in details.get("seasons") or []
            if season.get("season_number") != 0
        ]
        return details

    details, recommendations = await asyncio.gather(
        detail_request,
        client.get(f"movie/{tmdb_id}/recommendations", {"page": 1}),
    )
    candidates = recommendations.get("results") or []
    if len(candidates) < MIN_RECOMMENDATIONS:
        similar = await client.get(f"movie/{tmdb_id}/similar", {"page": 1})
        candidates = similar.get("results") or []

    details["similar"] = _with_posters(candidates, SECTION_SIZE)
    return details


async def season_episodes(client: Provider, tv_id: str, season: str) -> List[Dict[str, Any]]:
    data = await client.get(f"tv/{tv_id}/season/{season}")
    return data.get("episodes") or []


async def discover_titles(
    client: Provider,
    media_type: str,
    params: Dict[str, Any],
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Provider discovery with caller parameters forwarded verbatim."""
    data = await client.get(f"discover/{media_type}", params)
    items = [item for item in data.get("results", []) if _titled(item)]
    return items if limit is None else items[:limit]


async def preload_sections(client: Provider) -> Dict[str, List[Dict[str, Any]]]:
    """Homepage sections with a runtime attached to every item.

    Section listings are fetched concurrently, truncated to ten items with
    a poster, then each distinct title's details are fetched concurrently
    for its runtime. Any failed sub-fetch fails the whole preload.
    """
    names = list(PRELOAD_SECTIONS)
    responses = await asyncio.gather(*(
        client.get(PRELOAD_SECTIONS[name][1], PRELOAD_SECTIONS[name][2])
        for name in names
    ))
    sections = {
        name: _with_posters(data.get("results"), SECTION_SIZE)
        for name, data in zip(names, responses)
    }

    titles = list(dict.fromkeys(
        (PRELOAD_SECTIONS[name][0], item["id"])
        for name, items in sections.items()
        for item in items
    ))
    details = await asyncio.gather(*(client.get(f"{media_type}/{tmdb_id}") for media_type, tmdb_id in titles))
    runtimes = {title: _runtime(data) for title, data in zip(titles, details)}

    for name, items in sections.items():
        media_type = PRELOAD_SECTIONS[name][0]
        for item in items:
            item["runtime"] = runtimes[(media_type, item["id"])]
    return sections


def _runtime(details: Dict[str, Any]) -> Optional[int]:
    # TV shows carry per-episode runtimes instead of a single runtime
    episode_runtimes = details.get("episode_run_time") or [None]
    return details.get("runtime") or episode_runtimes[0] or None


def forward_params(items: Iterable[Tuple[str, str]], exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Group query items for the provider, keeping every repeated value.

    A name seen once maps to its value, a repeated name to the list of its
    values in request order.
    """
    skipped = set(exclude)
    grouped: Dict[str, List[str]] = {}
    for name, value in items:
        if name not in skipped:
            grouped.setdefault(name, []).append(value)
    return {name: values[0] if len(values) == 1 else values for name, values in grouped.items()}


async def random_title(
    client: Provider,
    media_type: str,
    genre_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Optional[Dict[str, Any]]:
    """Pick one random title with a poster from a random discovery page."""
    rng = rng or random.Random()
    path = f"discover/{media_type}"
    params = {"with_genres": genre_id, "include_adult": False}

    first_page = await client.get(path, {**params, "page": 1})
    total_pages = min(first_page.get("total_pages") or 0, MAX_DISCOVER_PAGES)
    if total_pages < 1:
        return None

    page = rng.randint(1, total_pages)
    data = first_page if page == 1 else await client.get(path, {**params, "page": page})
    candidates = _with_posters(data.get("results"))
    if not candidates:
        return None
    return rng.choice(candidates)
