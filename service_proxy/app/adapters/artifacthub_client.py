"""
Artifact Hub API client with retries and response caching.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from shared.config import ArtifactHubSettings
from shared.errors import ExternalServiceError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, retry_on_exception

from ..caching.response_cache import ResponseCache, make_fingerprint
from ..models.artifacthub import ArtifactHubPackage, ArtifactHubSearchResponse


USER_AGENT = "tekton-hub-proxy/1.0"
SEARCH_PATH = "/api/v1/packages/search"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ArtifactHubError(ExternalServiceError):
    """Upstream call failed after the retry policy gave up."""

    def __init__(self, message: str, upstream_status: Optional[int] = None, attempts: int = 1):
        self.upstream_status = upstream_status
        self.attempts = attempts
        super().__init__(
            "artifacthub",
            message,
            {"upstream_status": upstream_status, "attempts": attempts},
        )


class _RetryableResponse(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class _ClientErrorResponse(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SearchParams:
    query: str = ""
    kinds: List[int] = field(default_factory=list)
    categories: List[int] = field(default_factory=list)
    repositories: List[str] = field(default_factory=list)
    limit: int = 0
    offset: int = 0
    facets: bool = False


def build_search_query(params: SearchParams) -> str:
    """Encode search parameters as a query string sorted by key.

    Repeated keys keep their insertion order; non-positive limit and offset
    are omitted.
    """
    pairs: List[Tuple[str, str]] = []
    if params.query:
        pairs.append(("ts_query_web", params.query))
    pairs.extend(("kind", str(kind)) for kind in params.kinds)
    pairs.extend(("category", str(category)) for category in params.categories)
    pairs.extend(("repo", repo) for repo in params.repositories)
    if params.limit > 0:
        pairs.append(("limit", str(params.limit)))
    if params.offset > 0:
        pairs.append(("offset", str(params.offset)))
    if params.facets:
        pairs.append(("facets", "true"))

    pairs.sort(key=lambda pair: pair[0])
    return urlencode(pairs)


def _seconds(value: Union[timedelta, float, int]) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class ArtifactHubClient:
    """Async client for the subset of the Artifact Hub API the proxy needs.

    Successful decoded responses are cached when a cache is supplied; failures
    are never cached.
    """

    def __init__(
        self,
        base_url: str = "https://artifacthub.io",
        timeout: Union[timedelta, float] = 30.0,
        max_retries: int = 3,
        retry_backoff: Union[timedelta, float] = 1.0,
        cache: Optional[ResponseCache] = None,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_backoff = _seconds(retry_backoff)
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("proxy.artifacthub")

        self._client = httpx.AsyncClient(
            timeout=_seconds(timeout),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )
        self._retry_config = RetryConfig(
            max_attempts=max_retries + 1,
            base_delay=self.retry_backoff,
            max_delay=float("inf"),
            jitter=False,
            backoff_strategy="linear",
        )

    @classmethod
    def from_settings(
        cls,
        settings: ArtifactHubSettings,
        cache: Optional[ResponseCache] = None,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ArtifactHubClient":
        return cls(
            base_url=settings.base_url,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            retry_backoff=settings.retry_backoff,
            cache=cache,
            metrics=metrics,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_package(self, repo_kind: str, catalog: str, name: str, version: str) -> ArtifactHubPackage:
        """Fetch one exact package version."""
        url = f"{self.base_url}/api/v1/packages/{repo_kind}/{catalog}/{name}/{version}"
        fingerprint = make_fingerprint("package", repo_kind, catalog, name, version)
        return await self._cached_call(
            "get_package",
            fingerprint,
            url,
            ArtifactHubPackage,
            log_fields={"repo_kind": repo_kind, "catalog": catalog, "name": name, "version": version},
        )

    async def get_package_latest(self, repo_kind: str, catalog: str, name: str) -> ArtifactHubPackage:
        """Fetch the latest version of a package."""
        url = f"{self.base_url}/api/v1/packages/{repo_kind}/{catalog}/{name}"
        fingerprint = make_fingerprint("package-latest", repo_kind, catalog, name)
        return await self._cached_call(
            "get_package_latest",
            fingerprint,
            url,
            ArtifactHubPackage,
            log_fields={"repo_kind": repo_kind, "catalog": catalog, "name": name},
        )

    async def search_packages(self, params: SearchParams) -> ArtifactHubSearchResponse:
        query_string = build_search_query(params)
        url = f"{self.base_url}{SEARCH_PATH}?{query_string}" if query_string else f"{self.base_url}{SEARCH_PATH}"
        fingerprint = make_fingerprint("search", query_string)
        return await self._cached_call(
            "search_packages",
            fingerprint,
            url,
            ArtifactHubSearchResponse,
            log_fields={"query": params.query},
        )

    async def _cached_call(
        self,
        operation: str,
        fingerprint: str,
        url: str,
        model: Type[ModelT],
        log_fields: Dict[str, Any],
    ) -> ModelT:
        if self.cache is not None:
            cached, found = await self.cache.get(fingerprint)
            if found:
                self.logger.info("Cache hit", api_call=operation, **log_fields)
                self._count("cache_hits_total", operation=operation)
                return cached
            self._count("cache_misses_total", operation=operation)

        self.logger.debug("Making Artifact Hub API call", api_call=operation, url=url, **log_fields)

        start_time = time.time()
        try:
            result = await self._request(url, model)
        except ArtifactHubError as exc:
            self._count("upstream_requests_total", operation=operation, outcome="failure")
            self.logger.warning(
                "Artifact Hub API call failed",
                api_call=operation,
                upstream_status=exc.upstream_status,
                attempts=exc.attempts,
                error=exc.message,
                **log_fields,
            )
            raise
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "upstream_request_duration_seconds", time.time() - start_time, operation=operation
                )

        self._count("upstream_requests_total", operation=operation, outcome="success")

        if self.cache is not None:
            await self.cache.set(fingerprint, result)
            self.logger.info(
                "API call cached",
                api_call=operation,
                status="success",
                cache_size=await self.cache.size(),
                **log_fields,
            )
        else:
            self.logger.info("API call not cached", api_call=operation, status="success", **log_fields)

        return result

    async def _request(self, url: str, model: Type[ModelT]) -> ModelT:
        """GET ``url`` and decode into ``model`` under the retry policy.

        4xx responses stop immediately; transport and body decoding failures,
        other non-2xx statuses and undecodable payloads are retried.
        Redirects are followed by the underlying client.
        """
        attempts = 0

        @retry_on_exception(
            exceptions=(httpx.TransportError, httpx.DecodingError, _RetryableResponse),
            config=self._retry_config,
            on_retry=self._on_retry,
        )
        async def attempt_request() -> ModelT:
            nonlocal attempts
            attempts += 1
            return await self._fetch_once(url, model, attempts)

        try:
            return await attempt_request()
        except RetryError as exc:
            last = exc.last_exception
            raise ArtifactHubError(
                f"request failed after {exc.attempts} attempts: {last}",
                upstream_status=getattr(last, "status_code", None),
                attempts=exc.attempts,
            ) from last
        except _ClientErrorResponse as exc:
            raise ArtifactHubError(str(exc), upstream_status=exc.status_code, attempts=attempts) from exc
        except httpx.HTTPError as exc:
            # Non-transport client failures such as an invalid URL.
            raise ArtifactHubError(f"request failed: {exc}", attempts=attempts) from exc

    async def _fetch_once(self, url: str, model: Type[ModelT], attempt: int) -> ModelT:
        self.logger.debug("Making HTTP request", method="GET", url=url, attempt=attempt)

        response = await self._client.get(url)

        if not 200 <= response.status_code < 300:
            message = f"HTTP {response.status_code}: {response.text}"
            if 400 <= response.status_code < 500:
                raise _ClientErrorResponse(message, response.status_code)
            raise _RetryableResponse(message, response.status_code)

        try:
            parsed = model.model_validate_json(response.content)
        except PydanticValidationError as exc:
            raise _RetryableResponse(f"failed to decode response: {exc}") from exc

        self.logger.debug("Request successful", status_code=response.status_code)
        return parsed

    def _on_retry(self, attempt: int, exc: Exception) -> None:
        self._count("upstream_retries_total")

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
