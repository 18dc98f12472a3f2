"""
Version translation between Tekton Hub and Artifact Hub.

Tekton Hub publishes simplified versions (``0.4``) while Artifact Hub stores
full semantic versions (``0.4.0``). Translation is best effort: anything that
cannot be understood is passed through untouched rather than rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from shared.errors import InvalidVersionError
from shared.logging import get_logger


# Leading major.minor[.patch] shape, not anchored at the end.
_VERSION_SHAPE = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?")

_SEMVER_PATTERN = re.compile(
    r"^v?(?P<segments>[0-9]+(?:\.[0-9]+)*?)"
    r"(?:-(?P<pre>[0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|-?(?P<pre_alpha>[A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*))?$"
)

_MIN_SEGMENTS = 3


@dataclass(frozen=True)
class SemanticVersion:
    """A parsed semantic version; segments are padded to at least three."""

    segments: Tuple[int, ...]
    prerelease: str = ""
    metadata: str = ""

    @classmethod
    def parse(cls, text: str) -> "SemanticVersion":
        match = _SEMVER_PATTERN.match(text)
        if match is None:
            raise InvalidVersionError(text)

        segments: List[int] = [int(part) for part in match.group("segments").split(".")]
        while len(segments) < _MIN_SEGMENTS:
            segments.append(0)

        return cls(
            segments=tuple(segments),
            prerelease=match.group("pre") or match.group("pre_alpha") or "",
            metadata=match.group("metadata") or "",
        )

    def __str__(self) -> str:
        text = ".".join(str(segment) for segment in self.segments)
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def compare(self, other: "SemanticVersion") -> int:
        """Three-way comparison; build metadata is ignored."""
        width = max(len(self.segments), len(other.segments))
        mine = self.segments + (0,) * (width - len(self.segments))
        theirs = other.segments + (0,) * (width - len(other.segments))
        if mine != theirs:
            return 1 if mine > theirs else -1

        if self.prerelease == other.prerelease:
            return 0
        # A release sorts after any of its pre-releases.
        if not self.prerelease:
            return 1
        if not other.prerelease:
            return -1
        return _compare_prereleases(self.prerelease, other.prerelease)


def _compare_prereleases(left: str, right: str) -> int:
    left_parts = left.split(".")
    right_parts = right.split(".")

    for mine, theirs in zip(left_parts, right_parts):
        if mine == theirs:
            continue
        mine_numeric = mine.isdigit()
        theirs_numeric = theirs.isdigit()
        if mine_numeric and theirs_numeric:
            return 1 if int(mine) > int(theirs) else -1
        if mine_numeric != theirs_numeric:
            # Numeric identifiers have lower precedence than alphanumeric ones.
            return -1 if mine_numeric else 1
        return 1 if mine > theirs else -1

    if len(left_parts) == len(right_parts):
        return 0
    return 1 if len(left_parts) > len(right_parts) else -1


def parse_version(text: str) -> Optional[SemanticVersion]:
    """Parse ``text``, returning None when it is not a semantic version."""
    try:
        return SemanticVersion.parse(text)
    except InvalidVersionError:
        return None


class VersionTranslator:
    """Bidirectional translation between simplified and full versions."""

    def __init__(self):
        self.logger = get_logger("proxy.translator.version")

    def to_upstream(self, version: str) -> str:
        """Translate a Tekton Hub version into an Artifact Hub version."""
        if not version:
            return ""

        if self._is_full_semver(version):
            self.logger.debug(
                "Version already full semver",
                direction="tekton_to_artifacthub",
                input=version,
                status="unchanged_full_semver",
            )
            return version

        if self._is_simplified_semver(version):
            converted = f"{version}.0"
            self.logger.debug(
                "Converted simplified version",
                direction="tekton_to_artifacthub",
                input=version,
                output=converted,
                status="converted_simplified_to_full",
            )
            return converted

        parsed = parse_version(version)
        if parsed is None:
            self.logger.debug(
                "Invalid version format, using as-is",
                direction="tekton_to_artifacthub",
                input=version,
                status="invalid_passthrough",
            )
            return version

        normalized = str(parsed)
        self.logger.debug(
            "Normalized version",
            direction="tekton_to_artifacthub",
            input=version,
            output=normalized,
            status="normalized",
        )
        return normalized

    def to_external(self, version: str) -> str:
        """Translate an Artifact Hub version into a Tekton Hub version."""
        if not version:
            return ""

        parsed = parse_version(version)
        if parsed is None:
            self.logger.warning("Invalid version format, using as-is", version=version)
            return version

        # Simplifying a pre-release would be lossy.
        if parsed.prerelease:
            return version

        segments = parsed.segments
        if len(segments) >= 3 and segments[2] == 0:
            simplified = f"{segments[0]}.{segments[1]}"
            self.logger.debug(
                "Converted full semver to simplified semver",
                artifacthub_version=version,
                tekton_version=simplified,
            )
            return simplified

        return version

    def validate(self, version: str) -> None:
        """Raise InvalidVersionError unless ``version`` is empty or parses."""
        if not version:
            return
        SemanticVersion.parse(version)

    def compare(self, left: str, right: str) -> int:
        """Compare two versions, returning -1, 0 or 1."""
        return SemanticVersion.parse(left).compare(SemanticVersion.parse(right))

    @staticmethod
    def _is_full_semver(version: str) -> bool:
        match = _VERSION_SHAPE.match(version)
        return match is not None and match.group(3) is not None

    @staticmethod
    def _is_simplified_semver(version: str) -> bool:
        match = _VERSION_SHAPE.match(version)
        return match is not None and match.group(3) is None and version.count(".") == 1
