"""
Wire models for both sides of the proxy.

- artifacthub: upstream Artifact Hub payloads (validated on decode)
- tektonhub: legacy Tekton Hub response shapes
"""

from .artifacthub import (
    ArtifactHubPackage,
    ArtifactHubPackageData,
    ArtifactHubPackageSummary,
    ArtifactHubRepository,
    ArtifactHubSearchResponse,
    ArtifactHubVersion,
)
from .tektonhub import (
    TektonHubCatalog,
    TektonHubCatalogResponse,
    TektonHubReadmeResponse,
    TektonHubResource,
    TektonHubResourceResponse,
    TektonHubResourceVersion,
    TektonHubResourceVersionResponse,
    TektonHubResourcesResponse,
    TektonHubYamlResponse,
)

__all__ = [
    "ArtifactHubPackage",
    "ArtifactHubPackageData",
    "ArtifactHubPackageSummary",
    "ArtifactHubRepository",
    "ArtifactHubSearchResponse",
    "ArtifactHubVersion",
    "TektonHubCatalog",
    "TektonHubCatalogResponse",
    "TektonHubReadmeResponse",
    "TektonHubResource",
    "TektonHubResourceResponse",
    "TektonHubResourceVersion",
    "TektonHubResourceVersionResponse",
    "TektonHubResourcesResponse",
    "TektonHubYamlResponse",
]
