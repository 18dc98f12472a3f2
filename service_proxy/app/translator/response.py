"""
Conversion of Artifact Hub payloads into Tekton Hub response models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from shared.errors import ConversionError
from shared.logging import get_logger

from ..models.artifacthub import (
    ArtifactHubPackage,
    ArtifactHubPackageData,
    ArtifactHubPackageSummary,
    ArtifactHubSearchResponse,
)
from ..models.tektonhub import (
    TektonHubCatalog,
    TektonHubCategory,
    TektonHubPlatform,
    TektonHubReadmeData,
    TektonHubReadmeResponse,
    TektonHubResource,
    TektonHubResourcesResponse,
    TektonHubResourceVersion,
    TektonHubTag,
    TektonHubVersionSummary,
    TektonHubYamlData,
    TektonHubYamlResponse,
)
from .catalog import CatalogTranslator
from .version import VersionTranslator


REPO_KIND_TASK = 12
REPO_KIND_PIPELINE = 13

DEFAULT_PROVIDER = "github"
DEFAULT_PLATFORM = "linux/amd64"
DEFAULT_RATING = 4.0
MAX_CATEGORIES = 5

RESOURCE_ID_MODULUS = 1_000_000
CATALOG_ID_MODULUS = 1_000

_INT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63


def _wrap_int64(value: int) -> int:
    value &= _INT64_MASK
    return value - (1 << 64) if value & _INT64_SIGN else value


def string_hash_id(text: str, modulus: int) -> int:
    """Deterministic small id from a string (31-multiplier hash, int64 arithmetic)."""
    value = 0
    for char in text:
        value = _wrap_int64(value * 31 + ord(char))
    value = _wrap_int64(-value) if value < 0 else value
    # Truncated remainder; only the int64 minimum stays negative here.
    remainder = abs(value) % modulus
    return -remainder if value < 0 else remainder


def repo_kind_to_kind(repo_kind: int) -> str:
    if repo_kind == REPO_KIND_PIPELINE:
        return "pipeline"
    return "task"


class ResponseTranslator:
    """Build Tekton Hub resources from Artifact Hub packages."""

    def __init__(self, version_translator: Optional[VersionTranslator] = None):
        self.version_translator = version_translator or VersionTranslator()
        self.logger = get_logger("proxy.translator.response")

    def package_to_resource(
        self, package: ArtifactHubPackage, catalog_translator: CatalogTranslator
    ) -> TektonHubResource:
        self.logger.debug("Converting Artifact Hub package to Tekton Hub resource", package_name=package.name)

        try:
            return self._build_resource(package, catalog_translator)
        except (ValueError, OverflowError, OSError) as exc:
            # Model validation errors and out-of-range timestamps.
            raise ConversionError(details={"package": package.name, "reason": str(exc)}) from exc

    def _build_resource(
        self, package: ArtifactHubPackage, catalog_translator: CatalogTranslator
    ) -> TektonHubResource:
        catalog_name = catalog_translator.to_external(package.repository.name)
        kind = repo_kind_to_kind(package.repository.kind)
        hub_url_path = f"{catalog_name}/{kind}/{package.name}"
        hub_raw_url_path = f"/{catalog_name}/{kind}/{package.name}/raw"
        platforms = [TektonHubPlatform(id=1, name=DEFAULT_PLATFORM)]

        versions = [
            TektonHubVersionSummary(id=index, version=self.version_translator.to_external(available.version))
            for index, available in enumerate(package.available_versions, start=1)
        ]

        latest_version = TektonHubResourceVersion(
            id=1,
            version=self.version_translator.to_external(package.version),
            display_name=package.display_name,
            description=package.description,
            min_pipelines_version=package.data.pipelines_min_version,
            raw_url=package.content_url,
            web_url=package.content_url,
            updated_at=datetime.fromtimestamp(package.ts, tz=timezone.utc),
            platforms=platforms,
            hub_url_path=hub_url_path,
            hub_raw_url_path=hub_raw_url_path,
            deprecated=package.deprecated,
        )

        return TektonHubResource(
            id=string_hash_id(package.package_id, RESOURCE_ID_MODULUS),
            name=package.name,
            kind=kind,
            catalog=TektonHubCatalog(
                id=string_hash_id(package.repository.name, CATALOG_ID_MODULUS),
                name=catalog_name,
                provider=DEFAULT_PROVIDER,
                type="official" if package.repository.official else "community",
                url=package.repository.url,
            ),
            categories=self._keywords_to_categories(package.keywords),
            tags=[TektonHubTag(id=index, name=keyword) for index, keyword in enumerate(package.keywords, start=1)],
            platforms=platforms,
            rating=DEFAULT_RATING,
            latest_version=latest_version,
            versions=versions,
            hub_url_path=hub_url_path,
            hub_raw_url_path=hub_raw_url_path,
        )

    def package_to_resource_version(
        self,
        package: ArtifactHubPackage,
        catalog_translator: CatalogTranslator,
        requested_version: str,
    ) -> TektonHubResourceVersion:
        """Resource version view; echoes the version string the caller asked for."""
        resource = self.package_to_resource(package, catalog_translator)
        latest = resource.latest_version
        return latest.model_copy(update={"version": requested_version, "resource": resource})

    def package_to_yaml(self, package: ArtifactHubPackage) -> TektonHubYamlResponse:
        return TektonHubYamlResponse(data=TektonHubYamlData(yaml=package.data.manifest_raw))

    def package_to_readme(self, package: ArtifactHubPackage) -> TektonHubReadmeResponse:
        return TektonHubReadmeResponse(
            data=TektonHubReadmeData(readme=package.readme, yaml=package.data.manifest_raw)
        )

    def search_to_resources(
        self, search: ArtifactHubSearchResponse, catalog_translator: CatalogTranslator
    ) -> TektonHubResourcesResponse:
        """Convert search hits, skipping any that fail conversion."""
        resources: List[TektonHubResource] = []
        for summary in search.packages:
            try:
                resources.append(self.package_to_resource(self.summary_to_package(summary), catalog_translator))
            except ConversionError as exc:
                self.logger.warning("Failed to convert package, skipping", package=summary.name, error=exc.message)

        return TektonHubResourcesResponse(data=resources)

    @staticmethod
    def summary_to_package(summary: ArtifactHubPackageSummary) -> ArtifactHubPackage:
        """Promote a search hit to a package; keywords and manifest stay empty."""
        return ArtifactHubPackage(
            package_id=summary.package_id,
            name=summary.name,
            normalized_name=summary.normalized_name,
            logo_image_id=summary.logo_image_id,
            display_name=summary.display_name,
            description=summary.description,
            version=summary.version,
            app_version=summary.app_version,
            deprecated=summary.deprecated,
            signed=summary.signed,
            official=summary.official,
            cncf=summary.cncf,
            ts=summary.ts,
            repository=summary.repository,
            keywords=[],
            data=ArtifactHubPackageData(),
        )

    @staticmethod
    def _keywords_to_categories(keywords: List[str]) -> List[TektonHubCategory]:
        return [
            TektonHubCategory(id=index, name=keyword)
            for index, keyword in enumerate(keywords[:MAX_CATEGORIES], start=1)
        ]
