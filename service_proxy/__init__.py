"""
Tekton Hub proxy service package.

The proxy answers legacy Tekton Hub API calls with data fetched from
Artifact Hub:
- Catalog names and versions are translated in both directions
- Upstream responses are cached in memory with a TTL and size bound
- Upstream calls are retried on transient failures

Structure:
- app.main: FastAPI app, routes, lifecycle hooks and CLI entry point.
- app.adapters: Artifact Hub HTTP client.
- app.caching: In-memory response cache.
- app.translator: Version, catalog and response translation.
- app.models: Wire models for both APIs.
"""
