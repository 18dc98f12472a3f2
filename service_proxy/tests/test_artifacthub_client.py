"""
Unit tests for the Artifact Hub client.
"""

import json
from urllib.parse import parse_qsl, urlsplit
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from shared.errors import ExternalServiceError
from service_proxy.app.adapters.artifacthub_client import (
    ArtifactHubClient,
    ArtifactHubError,
    SearchParams,
    build_search_query,
)
from service_proxy.app.caching.response_cache import ResponseCache, make_fingerprint
from service_proxy.app.models.artifacthub import ArtifactHubPackage, ArtifactHubSearchResponse


PACKAGE_PAYLOAD = {
    "package_id": "f2a1c3",
    "name": "git-clone",
    "display_name": "git clone",
    "description": "Clone a git repository",
    "version": "0.9.0",
    "ts": 1700000000,
    "repository": {"name": "tekton-catalog-tasks", "kind": 12, "url": "https://github.com/tektoncd/catalog"},
    "keywords": ["git", "scm"],
    "data": {"manifestRaw": "apiVersion: tekton.dev/v1\nkind: Task\n", "pipelines.minVersion": "0.38.0"},
}

SEARCH_PAYLOAD = {
    "packages": [
        {"package_id": "p1", "name": "git-clone", "version": "0.9.0", "repository": {"name": "tekton-catalog-tasks", "kind": 12}},
        {"package_id": "p2", "name": "buildah", "version": "0.6.1", "repository": {"name": "tekton-catalog-tasks", "kind": 12}},
    ],
    "facets": None,
}


class RecordingHandler:
    """MockTransport handler replaying a list of responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def make_client(handler, **kwargs):
    kwargs.setdefault("retry_backoff", 0)
    return ArtifactHubClient(
        base_url="https://artifacthub.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestBuildSearchQuery:
    """Search query encoding."""

    def test_empty_params(self):
        assert build_search_query(SearchParams()) == ""

    def test_keys_sorted_and_repeats_kept_in_order(self):
        params = SearchParams(
            query="git clone",
            kinds=[12, 13],
            categories=[4],
            repositories=["tekton-catalog-tasks", "community"],
            limit=50,
            offset=10,
            facets=True,
        )

        assert build_search_query(params) == (
            "category=4&facets=true&kind=12&kind=13&limit=50&offset=10"
            "&repo=tekton-catalog-tasks&repo=community&ts_query_web=git+clone"
        )

    def test_non_positive_limit_and_offset_omitted(self):
        query = build_search_query(SearchParams(kinds=[12], limit=0, offset=-1))

        assert query == "kind=12"


class TestArtifactHubClientRequests:
    """HTTP exchange and retry behaviour."""

    @pytest.mark.asyncio
    async def test_get_package_success(self):
        handler = RecordingHandler([httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler)

        try:
            package = await client.get_package("tekton-task", "tekton-catalog-tasks", "git-clone", "0.9.0")
        finally:
            await client.close()

        assert isinstance(package, ArtifactHubPackage)
        assert package.name == "git-clone"
        assert package.data.manifest_raw.startswith("apiVersion")
        assert package.data.pipelines_min_version == "0.38.0"

        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/v1/packages/tekton-task/tekton-catalog-tasks/git-clone/0.9.0"
        assert request.headers["User-Agent"] == "tekton-hub-proxy/1.0"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_get_package_latest_path(self):
        handler = RecordingHandler([httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler)

        try:
            await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert handler.requests[0].url.path == "/api/v1/packages/tekton-task/tekton-catalog-tasks/git-clone"

    @pytest.mark.asyncio
    async def test_search_packages(self):
        handler = RecordingHandler([httpx.Response(200, json=SEARCH_PAYLOAD)])
        client = make_client(handler)
        params = SearchParams(query="git", kinds=[12, 13], repositories=["tekton-catalog-tasks"], limit=1000)

        try:
            result = await client.search_packages(params)
        finally:
            await client.close()

        assert isinstance(result, ArtifactHubSearchResponse)
        assert [package.name for package in result.packages] == ["git-clone", "buildah"]
        assert result.facets == []

        request = handler.requests[0]
        assert request.url.path == "/api/v1/packages/search"
        assert parse_qsl(urlsplit(str(request.url)).query) == [
            ("kind", "12"),
            ("kind", "13"),
            ("limit", "1000"),
            ("repo", "tekton-catalog-tasks"),
            ("ts_query_web", "git"),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [1, 2, 3])
    async def test_server_errors_retried_until_success(self, failures):
        handler = RecordingHandler(
            [httpx.Response(503, text="unavailable")] * failures + [httpx.Response(200, json=PACKAGE_PAYLOAD)]
        )
        client = make_client(handler, max_retries=3)

        try:
            package = await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert package.name == "git-clone"
        assert len(handler.requests) == 1 + failures

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_retries(self):
        handler = RecordingHandler([httpx.Response(500, text="boom")])
        client = make_client(handler, max_retries=2)

        try:
            with pytest.raises(ArtifactHubError) as exc_info:
                await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert len(handler.requests) == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.upstream_status == 500
        assert isinstance(exc_info.value, ExternalServiceError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 404, 429])
    async def test_client_errors_not_retried(self, status_code):
        handler = RecordingHandler([httpx.Response(status_code, text="nope"), httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler, max_retries=3)

        try:
            with pytest.raises(ArtifactHubError) as exc_info:
                await client.get_package("tekton-task", "tekton-catalog-tasks", "missing", "1.0.0")
        finally:
            await client.close()

        assert len(handler.requests) == 1
        assert exc_info.value.upstream_status == status_code
        assert exc_info.value.attempts == 1

    @pytest.mark.asyncio
    async def test_client_error_after_server_error_stops(self):
        handler = RecordingHandler([
            httpx.Response(502, text="bad gateway"),
            httpx.Response(404, text="not found"),
            httpx.Response(200, json=PACKAGE_PAYLOAD),
        ])
        client = make_client(handler, max_retries=3)

        try:
            with pytest.raises(ArtifactHubError) as exc_info:
                await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert len(handler.requests) == 2
        assert exc_info.value.attempts == 2
        assert exc_info.value.upstream_status == 404

    @pytest.mark.asyncio
    async def test_transport_errors_retried(self):
        handler = RecordingHandler([
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json=PACKAGE_PAYLOAD),
        ])
        client = make_client(handler, max_retries=1)

        try:
            package = await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert package.name == "git-clone"
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_body_decoding_errors_retried(self):
        """A body that fails content decoding is retried like a transport failure."""
        handler = RecordingHandler([
            httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not-gzip"),
            httpx.Response(200, json=PACKAGE_PAYLOAD),
        ])
        client = make_client(handler, max_retries=1)

        try:
            package = await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert package.name == "git-clone"
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_redirects_followed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            handler.requests.append(request)
            if request.url.scheme == "http":
                return httpx.Response(301, headers={"Location": str(request.url.copy_with(scheme="https"))})
            return httpx.Response(200, json=PACKAGE_PAYLOAD)

        handler.requests = []
        client = ArtifactHubClient(
            base_url="http://artifacthub.test",
            max_retries=3,
            retry_backoff=0,
            transport=httpx.MockTransport(handler),
        )

        try:
            package = await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert package.name == "git-clone"
        assert [request.url.scheme for request in handler.requests] == ["http", "https"]

    @pytest.mark.asyncio
    async def test_decode_errors_retried(self):
        handler = RecordingHandler([
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json=PACKAGE_PAYLOAD),
        ])
        client = make_client(handler, max_retries=1)

        try:
            package = await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert package.name == "git-clone"
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self):
        handler = RecordingHandler([httpx.Response(503, text="unavailable")])
        client = make_client(handler, max_retries=0)

        try:
            with pytest.raises(ArtifactHubError):
                await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_backoff_is_linear(self):
        handler = RecordingHandler([httpx.Response(503, text="unavailable")])
        client = make_client(handler, max_retries=3, retry_backoff=0.5)

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            try:
                with pytest.raises(ArtifactHubError):
                    await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
            finally:
                await client.close()

        assert [call.args[0] for call in mock_sleep.await_args_list] == [0.5, 1.0, 1.5]

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            ArtifactHubClient(max_retries=-1)


class TestArtifactHubClientCaching:
    """Interaction with the response cache."""

    @pytest.fixture
    def cache(self):
        return ResponseCache(ttl_seconds=300, max_size=100)

    @pytest.mark.asyncio
    async def test_cache_hit_skips_network(self, cache):
        handler = RecordingHandler([httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler, cache=cache)

        try:
            first = await client.get_package("tekton-task", "tekton-catalog-tasks", "git-clone", "0.9.0")
            second = await client.get_package("tekton-task", "tekton-catalog-tasks", "git-clone", "0.9.0")
        finally:
            await client.close()

        assert second is first
        assert len(handler.requests) == 1
        key = make_fingerprint("package", "tekton-task", "tekton-catalog-tasks", "git-clone", "0.9.0")
        assert (await cache.get(key))[1] is True

    @pytest.mark.asyncio
    async def test_latest_and_exact_use_separate_keys(self, cache):
        handler = RecordingHandler([httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler, cache=cache)

        try:
            await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
            await client.get_package("tekton-task", "tekton-catalog-tasks", "git-clone", "0.9.0")
        finally:
            await client.close()

        assert len(handler.requests) == 2
        assert await cache.size() == 2

    @pytest.mark.asyncio
    async def test_search_cached_by_query_string(self, cache):
        handler = RecordingHandler([httpx.Response(200, json=SEARCH_PAYLOAD)])
        client = make_client(handler, cache=cache)

        try:
            await client.search_packages(SearchParams(query="git", kinds=[12]))
            await client.search_packages(SearchParams(query="git", kinds=[12]))
            await client.search_packages(SearchParams(query="git", kinds=[13]))
        finally:
            await client.close()

        assert len(handler.requests) == 2
        key = make_fingerprint("search", "kind=12&ts_query_web=git")
        assert (await cache.get(key))[1] is True

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, cache):
        handler = RecordingHandler([httpx.Response(404, text="not found"), httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler, cache=cache)

        try:
            with pytest.raises(ArtifactHubError):
                await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
            assert await cache.size() == 0

            package = await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert package.name == "git-clone"
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_no_cache_always_calls_upstream(self):
        handler = RecordingHandler([httpx.Response(200, json=PACKAGE_PAYLOAD)])
        client = make_client(handler)

        try:
            await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
            await client.get_package_latest("tekton-task", "tekton-catalog-tasks", "git-clone")
        finally:
            await client.close()

        assert len(handler.requests) == 2


class TestArtifactHubModels:
    """Decoding tolerance."""

    def test_nulls_fall_back_to_defaults(self):
        payload = dict(PACKAGE_PAYLOAD, keywords=None, readme=None, available_versions=None)

        package = ArtifactHubPackage.model_validate_json(json.dumps(payload))

        assert package.keywords == []
        assert package.readme == ""
        assert package.available_versions == []

    def test_unknown_fields_ignored(self):
        package = ArtifactHubPackage.model_validate({"name": "x", "security_report_summary": {"low": 1}})

        assert package.name == "x"
