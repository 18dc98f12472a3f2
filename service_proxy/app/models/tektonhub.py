"""
Tekton Hub (legacy API) response models.

Field names follow the legacy JSON exactly; serialize with
``model_dump(by_alias=True, mode="json")``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TektonHubModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self):
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class TektonHubCatalog(TektonHubModel):
    id: int
    name: str
    provider: str
    type: str
    url: str


class TektonHubCategory(TektonHubModel):
    id: int
    name: str


class TektonHubTag(TektonHubModel):
    id: int
    name: str


class TektonHubPlatform(TektonHubModel):
    id: int
    name: str


class TektonHubVersionSummary(TektonHubModel):
    id: int
    version: str


class TektonHubResourceVersion(TektonHubModel):
    id: int
    version: str
    display_name: str = Field(alias="displayName")
    description: str
    min_pipelines_version: str = Field(alias="minPipelinesVersion")
    raw_url: str = Field(alias="rawURL")
    web_url: str = Field(alias="webURL")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.fromtimestamp(0, tz=timezone.utc),
        alias="updatedAt",
    )
    platforms: List[TektonHubPlatform] = Field(default_factory=list)
    hub_url_path: str = Field(alias="hubURLPath")
    hub_raw_url_path: str = Field(alias="hubRawURLPath")
    resource: Optional["TektonHubResource"] = None
    deprecated: bool = False


class TektonHubResource(TektonHubModel):
    id: int
    name: str
    kind: str
    catalog: TektonHubCatalog
    categories: List[TektonHubCategory] = Field(default_factory=list)
    tags: List[TektonHubTag] = Field(default_factory=list)
    platforms: List[TektonHubPlatform] = Field(default_factory=list)
    rating: float
    latest_version: Optional[TektonHubResourceVersion] = Field(default=None, alias="latestVersion")
    versions: List[TektonHubVersionSummary] = Field(default_factory=list)
    hub_url_path: str = Field(alias="hubURLPath")
    hub_raw_url_path: str = Field(alias="hubRawURLPath")


TektonHubResourceVersion.model_rebuild()


class TektonHubCatalogResponse(TektonHubModel):
    data: List[TektonHubCatalog] = Field(default_factory=list)


class TektonHubResourceResponse(TektonHubModel):
    data: TektonHubResource


class TektonHubResourceVersionResponse(TektonHubModel):
    data: TektonHubResourceVersion


class TektonHubResourcesResponse(TektonHubModel):
    data: List[TektonHubResource] = Field(default_factory=list)


class TektonHubYamlData(TektonHubModel):
    yaml: str


class TektonHubYamlResponse(TektonHubModel):
    data: TektonHubYamlData


class TektonHubReadmeData(TektonHubModel):
    readme: str
    yaml: str


class TektonHubReadmeResponse(TektonHubModel):
    data: TektonHubReadmeData
