"""Adapters for external services."""

from .artifacthub_client import ArtifactHubClient, ArtifactHubError, SearchParams, build_search_query

__all__ = ["ArtifactHubClient", "ArtifactHubError", "SearchParams", "build_search_query"]
