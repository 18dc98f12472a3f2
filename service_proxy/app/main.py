"""
Tekton Hub compatibility proxy backed by Artifact Hub.
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from fastapi import Query, Response
from fastapi.responses import HTMLResponse
from pydantic import ValidationError as PydanticValidationError

from shared.base_service import BaseService
from shared.config import ConfigError, ProxyConfig, load_config, parse_duration
from shared.errors import (
    NotFoundError,
    NotImplementedFeatureError,
    ServiceError,
    ValidationError,
)
from shared.logging import configure_logging, get_logger

from .adapters.artifacthub_client import ArtifactHubClient, ArtifactHubError, SearchParams
from .caching.response_cache import ResponseCache
from .landing import render_landing_page
from .models.artifacthub import ArtifactHubPackage
from .models.tektonhub import TektonHubCatalog, TektonHubCatalogResponse
from .translator.catalog import CatalogTranslator
from .translator.response import REPO_KIND_PIPELINE, REPO_KIND_TASK, ResponseTranslator
from .translator.version import VersionTranslator


DEFAULT_LIST_LIMIT = 1000
CATALOG_PROVIDER = "github"
CATALOG_TYPE = "community"
CATALOG_URL = "https://github.com/tektoncd/catalog"
YAML_MEDIA_TYPE = "application/x-yaml"

_KIND_CODES = {"task": REPO_KIND_TASK, "pipeline": REPO_KIND_PIPELINE}


def _parse_limit(raw: Optional[str]) -> int:
    # Unparseable or non-positive limits fall back to the default.
    try:
        limit = int(raw) if raw else 0
    except ValueError:
        return DEFAULT_LIST_LIMIT
    return limit if limit > 0 else DEFAULT_LIST_LIMIT


def _parse_id(raw: str, message: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(message)


class ProxyService(BaseService):
    """Serves the legacy Tekton Hub API by translating to Artifact Hub."""

    def __init__(self, config: Optional[ProxyConfig] = None, transport=None):
        super().__init__("proxy", config)

        self.version_translator = VersionTranslator()
        self.catalog_translator = CatalogTranslator(self.config.catalog_mappings)
        self.response_translator = ResponseTranslator(self.version_translator)

        cache_settings = self.config.artifacthub.cache
        self.cache: Optional[ResponseCache] = None
        if cache_settings.enabled:
            self.cache = ResponseCache(
                cache_settings.ttl.total_seconds(),
                cache_settings.max_size,
                metrics=self.metrics,
            )

        self.artifacthub_client = ArtifactHubClient.from_settings(
            self.config.artifacthub,
            cache=self.cache,
            metrics=self.metrics,
            transport=transport,
        )
        self.app.state.proxy_service = self

        @self.app.on_event("startup")
        async def _startup():
            if self.cache:
                await self.cache.start()
            self.logger.info(
                "Proxy service started",
                artifacthub_url=self.config.artifacthub.base_url,
                catalog_mappings=dict(self.catalog_translator.available_mappings()),
                cache_enabled=self.cache is not None,
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            if self.cache:
                await self.cache.stop()
            await self.artifacthub_client.close()
            self.logger.info("Proxy service stopped")

        if self.config.landing_page.enabled:
            self._setup_landing_page()
        self._setup_catalog_routes()
        self._setup_resource_routes()

    def _setup_landing_page(self):
        cache_ttl = self.config.artifacthub.cache.ttl if self.cache else None
        page = render_landing_page(cache_ttl)

        @self.app.get("/", response_class=HTMLResponse, include_in_schema=False)
        async def landing_page():
            return HTMLResponse(content=page)

    def _setup_catalog_routes(self):
        """Catalog listing and search routes."""

        @self.app.get("/v1/catalogs")
        async def list_catalogs():
            catalogs = [
                TektonHubCatalog(
                    id=index,
                    name=name,
                    provider=CATALOG_PROVIDER,
                    type=CATALOG_TYPE,
                    url=CATALOG_URL,
                )
                for index, name in enumerate(self.catalog_translator.available_mappings(), start=1)
            ]
            return TektonHubCatalogResponse(data=catalogs).to_dict()

        @self.app.get("/v1/resources")
        async def list_resources(limit: Optional[str] = None):
            params = SearchParams(
                kinds=[REPO_KIND_TASK, REPO_KIND_PIPELINE],
                repositories=list(self.catalog_translator.available_mappings().values()),
                limit=_parse_limit(limit),
            )
            return await self._search(params, "failed to list resources")

        @self.app.get("/v1/query")
        async def query_resources(
            name: str = "",
            catalogs: Optional[List[str]] = Query(default=None),
            kinds: Optional[List[str]] = Query(default=None),
            categories: Optional[List[str]] = Query(default=None),
            tags: Optional[List[str]] = Query(default=None),
            limit: Optional[str] = None,
        ):
            params = SearchParams(query=name, limit=_parse_limit(limit))

            if catalogs:
                params.repositories = [self.catalog_translator.to_upstream(catalog) for catalog in catalogs]
            else:
                params.repositories = list(self.catalog_translator.available_mappings().values())

            if kinds:
                # Unknown kinds are dropped; an all-unknown list means no kind filter.
                params.kinds = [_KIND_CODES[kind.lower()] for kind in kinds if kind.lower() in _KIND_CODES]
            else:
                params.kinds = [REPO_KIND_TASK, REPO_KIND_PIPELINE]

            for terms in (categories, tags):
                if terms:
                    params.query = " ".join(filter(None, [params.query, " ".join(terms)]))

            self.logger.debug(
                "Search parameters",
                query=params.query,
                kinds=params.kinds,
                repositories=params.repositories,
                limit=params.limit,
            )
            return await self._search(params, "failed to query resources")

    def _setup_resource_routes(self):
        """Single-resource routes; fixed suffixes are registered before ``{version}``."""

        @self.app.get("/v1/resource/version/{version_id}")
        async def get_resource_by_version_id(version_id: str):
            _parse_id(version_id, "invalid version ID")
            raise NotImplementedFeatureError("resource lookup by version ID not implemented")

        @self.app.get("/v1/resource/{resource_id}/versions")
        async def get_resource_versions_by_id(resource_id: str):
            _parse_id(resource_id, "invalid resource ID")
            raise NotImplementedFeatureError("resource versions lookup by ID not implemented")

        @self.app.get("/v1/resource/{resource_id}")
        async def get_resource_by_id(resource_id: str):
            _parse_id(resource_id, "invalid resource ID")
            raise NotImplementedFeatureError("resource lookup by ID not implemented")

        @self.app.get("/v1/resource/{catalog}/{kind}/{name}/raw")
        async def get_latest_resource_raw(catalog: str, kind: str, name: str):
            package = await self._fetch_package(catalog, kind, name, None, "resource not found")
            return Response(content=package.data.manifest_raw, media_type=YAML_MEDIA_TYPE)

        @self.app.get("/v1/resource/{catalog}/{kind}/{name}")
        async def get_resource(catalog: str, kind: str, name: str):
            package = await self._fetch_package(catalog, kind, name, None, "resource not found")
            resource = self.response_translator.package_to_resource(package, self.catalog_translator)
            return {"data": resource.to_dict()}

        @self.app.get("/v1/resource/{catalog}/{kind}/{name}/{version}/yaml")
        async def get_resource_yaml(catalog: str, kind: str, name: str, version: str):
            package = await self._fetch_package(catalog, kind, name, version, "resource not found")
            return self.response_translator.package_to_yaml(package).to_dict()

        @self.app.get("/v1/resource/{catalog}/{kind}/{name}/{version}/readme")
        async def get_resource_readme(catalog: str, kind: str, name: str, version: str):
            package = await self._fetch_package(catalog, kind, name, version, "resource not found")
            return self.response_translator.package_to_readme(package).to_dict()

        @self.app.get("/v1/resource/{catalog}/{kind}/{name}/{version}/raw")
        async def get_resource_raw(catalog: str, kind: str, name: str, version: str):
            package = await self._fetch_package(catalog, kind, name, version, "resource not found")
            return Response(content=package.data.manifest_raw, media_type=YAML_MEDIA_TYPE)

        @self.app.get("/v1/resource/{catalog}/{kind}/{name}/{version}")
        async def get_resource_version(catalog: str, kind: str, name: str, version: str):
            package = await self._fetch_package(catalog, kind, name, version, "resource version not found")
            resource_version = self.response_translator.package_to_resource_version(
                package, self.catalog_translator, version
            )
            return {"data": resource_version.to_dict()}

    async def _fetch_package(
        self,
        catalog: str,
        kind: str,
        name: str,
        version: Optional[str],
        not_found_message: str,
    ) -> ArtifactHubPackage:
        """Latest package when ``version`` is None, else the exact version."""
        upstream_catalog = self.catalog_translator.to_upstream(catalog)
        repo_kind = self.catalog_translator.kind_to_repo_kind(kind)

        self.logger.info(
            "Translation details",
            original_catalog=catalog,
            translated_catalog=upstream_catalog,
            original_kind=kind,
            translated_repo_kind=repo_kind,
            name=name,
            version=version,
        )

        try:
            if version is None:
                return await self.artifacthub_client.get_package_latest(repo_kind, upstream_catalog, name)
            upstream_version = self.version_translator.to_upstream(version)
            return await self.artifacthub_client.get_package(repo_kind, upstream_catalog, name, upstream_version)
        except ArtifactHubError as exc:
            self.logger.error(
                "Failed to get package from Artifact Hub",
                repo_kind=repo_kind,
                catalog=upstream_catalog,
                name=name,
                error=exc.message,
            )
            raise NotFoundError(not_found_message) from exc

    async def _search(self, params: SearchParams, failure_message: str) -> Dict[str, Any]:
        try:
            search_result = await self.artifacthub_client.search_packages(params)
        except ArtifactHubError as exc:
            self.logger.error("Failed to search packages", error=exc.message)
            raise ServiceError(failure_message) from exc

        response = self.response_translator.search_to_resources(search_result, self.catalog_translator)
        return response.to_dict()

    async def _check_dependencies(self) -> Dict[str, Any]:
        if self.cache is None:
            return {"cache": "disabled"}
        stats = await self.cache.stats()
        return {"cache": "ok", "cache_size": stats["size"], "cache_max_size": stats["max_size"]}


def create_app(config: Optional[ProxyConfig] = None):
    """Create FastAPI application."""
    service = ProxyService(config)
    return service.app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tekton-hub-proxy",
        description="Serve the Tekton Hub API from Artifact Hub.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", default=None, help="Path to config file")
    parser.add_argument("--port", type=int, default=None, help="Server port (overrides config)")
    parser.add_argument("--bind", default=None, help="Bind address (overrides config)")
    parser.add_argument(
        "--disable-landing-page", action="store_true", help="Disable the landing page at root path (/)"
    )
    parser.add_argument("--disable-cache", action="store_true", help="Disable API response caching")
    parser.add_argument(
        "--cache-ttl", default=None, help="Cache TTL duration, e.g. 5m or 10m (overrides config)"
    )
    parser.add_argument(
        "--cache-max-size", type=int, default=None, help="Maximum number of cache entries (overrides config)"
    )
    return parser


def apply_cli_overrides(config: ProxyConfig, args: argparse.Namespace) -> ProxyConfig:
    """Apply command-line flags on top of file and environment values."""
    logger = get_logger("proxy.cli")

    if args.debug:
        config.logging.level = "debug"
    if args.port:
        config.server.port = args.port
    if args.bind:
        config.server.host = args.bind
    if args.disable_landing_page:
        config.landing_page.enabled = False
    if args.disable_cache:
        config.artifacthub.cache.enabled = False

    if args.cache_ttl:
        try:
            ttl = parse_duration(args.cache_ttl)
        except ValueError as exc:
            logger.warning("Invalid cache TTL, using config value", value=args.cache_ttl, error=str(exc))
        else:
            if ttl.total_seconds() > 0:
                config.artifacthub.cache.ttl = ttl
            else:
                logger.warning("Invalid cache TTL, using config value", value=args.cache_ttl)

    if args.cache_max_size is not None:
        if args.cache_max_size > 0:
            config.artifacthub.cache.max_size = args.cache_max_size
        else:
            logger.warning("Invalid cache max size, using config value", value=args.cache_max_size)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (ConfigError, PydanticValidationError) as exc:
        print(f"Failed to load configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging("proxy", "debug" if args.debug else config.logging.level, config.logging.format)
    config = apply_cli_overrides(config, args)

    service = ProxyService(config)
    service.logger.info(
        "Starting Tekton Hub proxy",
        host=config.server.host,
        port=config.server.port,
        cache_enabled=config.artifacthub.cache.enabled,
        landing_page_enabled=config.landing_page.enabled,
    )
    service.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
