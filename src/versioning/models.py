"""Data models for version expressions."""

from dataclasses import dataclass
from enum import Enum

VERSION_RELEASE = "RELEASE"
VERSION_LATEST = "LATEST"
VERSION_SNAPSHOT = "SNAPSHOT"
SYMBOLIC_VERSIONS = (VERSION_RELEASE, VERSION_LATEST, VERSION_SNAPSHOT)


class ExpressionKind(Enum):
    """How a version expression is evaluated."""
    EXACT = "exact"
    RANGE = "range"
    REGEX = "regex"
    SYMBOLIC = "symbolic"


@dataclass(frozen=True)
class VersionExpression:
    """Classified version expression."""
    raw: str
    kind: ExpressionKind

    @property
    def needs_metadata(self) -> bool:
        """True when the expression cannot be answered without a version list."""
        return self.kind is not ExpressionKind.EXACT

    def __str__(self) -> str:
        return self.raw


class VersionExpressionError(ValueError):
    """Base class for version evaluation failures."""


class InvalidVersionExpression(VersionExpressionError):
    """Malformed regex or range syntax."""


class NoMatchingVersion(VersionExpressionError):
    """The expression does not designate any version."""


class EmptyVersionList(VersionExpressionError):
    """A lookup needed the published version list and it was empty."""
