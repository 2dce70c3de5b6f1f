"""Value types shared by the resolver components."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .coordinate import Coordinate

ROOT_PROFILE_ID = "#root"


class Scope(Enum):
    """Dependency scopes."""

    COMPILE = "compile"
    PROVIDED = "provided"
    RUNTIME = "runtime"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Scope"]:
        """Map a raw ``<scope>`` value; None when absent or unknown."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class RepositoryKind(Enum):
    """Origin of a repository definition."""

    GLOBAL = "global"
    LOCAL = "local"
    CUSTOM = "custom"
    POM = "pom"


@dataclass(frozen=True)
class Exclusion:
    """``group:artifact`` prefix removed from a dependency's closure."""

    group_id: str
    artifact_id: str

    def matches(self, coordinate: Coordinate) -> bool:
        return (self.group_id in ("*", coordinate.group_id)
                and self.artifact_id in ("*", coordinate.artifact_id))

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


@dataclass(frozen=True)
class Dependency:
    """One dependency entry of a descriptor."""

    coordinate: Coordinate
    scope: Scope = Scope.COMPILE
    optional: bool = False
    exclusions: Tuple[Exclusion, ...] = ()

    @property
    def group_id(self) -> str:
        return self.coordinate.group_id

    @property
    def artifact_id(self) -> str:
        return self.coordinate.artifact_id

    @property
    def version(self) -> str:
        return self.coordinate.version

    def is_excluded(self, coordinate: Coordinate) -> bool:
        return any(e.matches(coordinate) for e in self.exclusions)

    def __str__(self) -> str:
        return f"{self.coordinate.path} ({self.scope.value}{', optional' if self.optional else ''})"


@dataclass(frozen=True)
class License:
    name: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class Credentials:
    user: Optional[str] = None
    password: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(user={self.user!r}, password={'***' if self.password else None})"


@dataclass
class RepositoryConfig:
    """Persistable repository definition (built-in or user-declared)."""

    id: str
    url: str
    name: Optional[str] = None
    description: Optional[str] = None
    order: int = 0
    enabled: bool = True
    scopes: List[str] = field(default_factory=list)
    credentials: Optional[Credentials] = None
    snapshot: bool = False


@dataclass
class Profile:
    """Build profile; the root profile holds a descriptor's top-level data."""

    id: str
    active: bool
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    dependency_management: List[Dependency] = field(default_factory=list)
    repositories: list = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_PROFILE_ID

    def find_management(self, group_id: str, artifact_id: str) -> Optional[Dependency]:
        for dep in self.dependency_management:
            if dep.group_id == group_id and dep.artifact_id == artifact_id:
                return dep
        return None


@dataclass
class ArtifactMetadata:
    """Published versions of one versionless coordinate in one repository."""

    coordinate: Coordinate
    versions: List[str] = field(default_factory=list)
    latest_version: Optional[str] = None
    release_version: Optional[str] = None
    last_update: Optional[datetime] = None
    snapshot_versions: List[str] = field(default_factory=list)
