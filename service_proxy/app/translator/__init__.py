"""Translation between the Tekton Hub and Artifact Hub vocabularies."""

from .catalog import CatalogTranslator
from .response import ResponseTranslator
from .version import SemanticVersion, VersionTranslator, parse_version

__all__ = [
    "CatalogTranslator",
    "ResponseTranslator",
    "SemanticVersion",
    "VersionTranslator",
    "parse_version",
]
