"""Artifact coordinates."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from versioning.models import VERSION_RELEASE


@dataclass(frozen=True)
class Coordinate:
    """Immutable ``group:artifact[:classifier]:version`` identity.

    ``version`` holds a version expression: an exact version, a range, a
    ``{regex}`` or one of the symbolic tokens.
    """

    group_id: str
    artifact_id: str
    classifier: Optional[str] = None
    version: str = VERSION_RELEASE

    def __post_init__(self):
        object.__setattr__(self, "group_id", (self.group_id or "").strip())
        object.__setattr__(self, "artifact_id", (self.artifact_id or "").strip())
        object.__setattr__(self, "classifier", (self.classifier or "").strip() or None)
        object.__setattr__(self, "version", (self.version or "").strip() or VERSION_RELEASE)
        if not self.group_id or not self.artifact_id:
            raise ValueError("Coordinate requires both groupId and artifactId")

    @classmethod
    def parse(cls, text: str) -> "Coordinate":
        """Parse ``group:artifact[:classifier]:version``.

        A lone ``group`` doubles as the artifact id and a missing version
        defaults to RELEASE. Everything after the third colon is the version.
        """
        parts = (text or "").strip().split(":", 3)
        if not parts[0]:
            raise ValueError(f"Invalid artifact coordinate '{text}'")
        if len(parts) == 1:
            return cls(parts[0], parts[0])
        if len(parts) == 2:
            return cls(parts[0], parts[1])
        if len(parts) == 3:
            return cls(parts[0], parts[1], None, parts[2])
        return cls(parts[0], parts[1], parts[2], parts[3])

    @property
    def id(self) -> str:
        """Versionless identity: ``group:artifact[:classifier]``."""
        if self.classifier:
            return f"{self.group_id}:{self.artifact_id}:{self.classifier}"
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def path(self) -> str:
        return f"{self.id}:{self.version}"

    def with_version(self, version: str) -> "Coordinate":
        return replace(self, version=version)

    def __str__(self) -> str:
        return self.path
