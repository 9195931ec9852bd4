"""
Domain helpers for the Catalog Service: the aggregation handlers that turn
provider resources into route payloads.
"""

from .aggregation import (
    MEDIA_TYPES,
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

__all__ = [
    "MEDIA_TYPES",
    "discover_titles",
    "forward_params",
    "parse_media_type",
    "preload_sections",
    "random_title",
    "require_param",
    "search_titles",
    "season_episodes",
    "title_details",
]
