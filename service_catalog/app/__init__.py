"""
Catalog Service package for the Reelhub Access Layer.

The catalog service fronts the TMDB metadata provider for the client
application, adding:
- Response caching: in-process TTL + LRU cache keyed per request
- Retries and circuit-breaking for provider calls
- Structured request logging and Prometheus metrics

Structure:
- app.main: FastAPI app, routes, and cache wiring.
- app.adapters: HTTP client for the metadata provider.
- app.caching: Response cache and key derivation.
- app.domain: Aggregation handlers behind each route.
"""
