"""
Catalog name mapping between Tekton Hub and Artifact Hub.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple, Union

from shared.config import CatalogMappingSettings
from shared.logging import get_logger


REPO_KIND_PREFIX = "tekton-"

CatalogPair = Union[CatalogMappingSettings, Tuple[str, str]]


class CatalogTranslator:
    """Translate catalog names using the static mapping table.

    Names are assumed unique in both directions; when the table repeats a
    name the last pair wins. Unmapped names pass through unchanged because
    the legacy API accepts ad-hoc catalogs.
    """

    def __init__(self, catalog_mappings: Iterable[CatalogPair]):
        self.logger = get_logger("proxy.translator.catalog")

        forward = {}
        reverse = {}
        for mapping in catalog_mappings:
            tekton_hub, artifact_hub = self._unpack(mapping)
            forward[tekton_hub] = artifact_hub
            reverse[artifact_hub] = tekton_hub

        self._mappings: Mapping[str, str] = MappingProxyType(forward)
        self._reverse_mappings: Mapping[str, str] = MappingProxyType(reverse)

    @staticmethod
    def _unpack(mapping: CatalogPair) -> Tuple[str, str]:
        if isinstance(mapping, CatalogMappingSettings):
            return mapping.tekton_hub, mapping.artifact_hub
        tekton_hub, artifact_hub = mapping
        return tekton_hub, artifact_hub

    def to_upstream(self, catalog: str) -> str:
        """Map a Tekton Hub catalog to its Artifact Hub repository name."""
        return self._translate(catalog, self._mappings, "tekton_to_artifacthub")

    def to_external(self, repository: str) -> str:
        """Map an Artifact Hub repository name back to a Tekton Hub catalog."""
        return self._translate(repository, self._reverse_mappings, "artifacthub_to_tekton")

    def _translate(self, name: str, table: Mapping[str, str], direction: str) -> str:
        translated = table.get(name)
        if translated is not None:
            self.logger.debug(
                "Catalog mapping found",
                direction=direction,
                input=name,
                output=translated,
                status="mapped",
            )
            return translated

        self.logger.debug(
            "No catalog mapping found, using original name",
            direction=direction,
            input=name,
            status="passthrough",
        )
        return name

    def available_mappings(self) -> Mapping[str, str]:
        """Read-only view of the Tekton Hub -> Artifact Hub table."""
        return self._mappings

    @staticmethod
    def kind_to_repo_kind(kind: str) -> str:
        """Artifact Hub repository kind for a Tekton kind ("task" -> "tekton-task")."""
        return f"{REPO_KIND_PREFIX}{kind}"
