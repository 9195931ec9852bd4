"""
Adapters package for the Catalog Service.

Contains the HTTP client wrapper for the metadata provider. Adapters
encapsulate:

- Base URLs, credentials and request shapes
- Retry policies and circuit breakers
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .tmdb_client import TMDBClient

__all__ = ["TMDBClient"]
