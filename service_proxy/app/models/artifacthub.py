"""
Artifact Hub API response models.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ArtifactHubModel(BaseModel):
    """Base model tolerant of the nulls and extra fields Artifact Hub returns."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Missing and null fields both fall back to the declared defaults.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ArtifactHubRepository(ArtifactHubModel):
    repository_id: str = ""
    kind: int = 0
    name: str = ""
    display_name: str = ""
    url: str = ""
    verified_publisher: bool = False
    official: bool = False
    cncf: Optional[bool] = None
    private: bool = False
    scanner_disabled: bool = False
    user_alias: str = ""
    organization_name: str = ""
    organization_display_name: str = ""


class ArtifactHubVersion(ArtifactHubModel):
    version: str = ""
    contains_security_updates: bool = False
    prerelease: bool = False
    ts: int = 0


class ArtifactHubLink(ArtifactHubModel):
    url: str = ""
    name: str = ""


class ArtifactHubMaintainer(ArtifactHubModel):
    maintainer_id: str = ""
    name: str = ""
    email: str = ""


class ArtifactHubContainerImage(ArtifactHubModel):
    image: str = ""
    name: str = ""
    whitelisted: bool = False


class ArtifactHubPackageData(ArtifactHubModel):
    manifest_raw: str = Field(default="", alias="manifestRaw")
    pipelines_min_version: str = Field(default="", alias="pipelines.minVersion")


class ArtifactHubPackage(ArtifactHubModel):
    """Full package document from ``/api/v1/packages/...``."""

    package_id: str = ""
    name: str = ""
    normalized_name: str = ""
    logo_image_id: str = ""
    display_name: str = ""
    description: str = ""
    version: str = ""
    app_version: str = ""
    license: str = ""
    deprecated: bool = False
    signed: bool = False
    official: bool = False
    cncf: Optional[bool] = None
    ts: int = 0
    repository: ArtifactHubRepository = Field(default_factory=ArtifactHubRepository)
    latest_version: str = ""
    available_versions: List[ArtifactHubVersion] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    home_url: str = ""
    readme: str = ""
    links: List[ArtifactHubLink] = Field(default_factory=list)
    maintainers: List[ArtifactHubMaintainer] = Field(default_factory=list)
    containers_images: List[ArtifactHubContainerImage] = Field(default_factory=list)
    has_values_schema: bool = False
    has_changelog: bool = False
    content_url: str = ""
    contains_security_updates: bool = False
    prerelease: bool = False
    data: ArtifactHubPackageData = Field(default_factory=ArtifactHubPackageData)


class ArtifactHubPackageSummary(ArtifactHubModel):
    """Package entry inside a search response."""

    package_id: str = ""
    name: str = ""
    normalized_name: str = ""
    logo_image_id: str = ""
    display_name: str = ""
    description: str = ""
    version: str = ""
    app_version: str = ""
    deprecated: bool = False
    signed: bool = False
    official: bool = False
    cncf: Optional[bool] = None
    ts: int = 0
    repository: ArtifactHubRepository = Field(default_factory=ArtifactHubRepository)
    stars: int = 0
    category: int = 0


class ArtifactHubFacetOption(ArtifactHubModel):
    id: Union[str, int] = ""
    name: str = ""
    total: int = 0
    filter_key: str = ""


class ArtifactHubFacet(ArtifactHubModel):
    title: str = ""
    filter_key: str = ""
    options: List[ArtifactHubFacetOption] = Field(default_factory=list)


class ArtifactHubSearchResponse(ArtifactHubModel):
    """Response of ``/api/v1/packages/search``."""

    packages: List[ArtifactHubPackageSummary] = Field(default_factory=list)
    facets: List[ArtifactHubFacet] = Field(default_factory=list)
