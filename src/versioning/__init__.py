"""Version expression evaluation: exact versions, ranges, regex and symbolic tokens."""

from .expression import filter_versions, matches, select, version_from_range
from .maven_version import MavenVersion, compare_versions, find_latest_version, is_beta_version
from .models import (
    EmptyVersionList,
    ExpressionKind,
    InvalidVersionExpression,
    NoMatchingVersion,
    SYMBOLIC_VERSIONS,
    VERSION_LATEST,
    VERSION_RELEASE,
    VERSION_SNAPSHOT,
    VersionExpression,
    VersionExpressionError,
)
from .parser import is_pattern, is_regex, is_symbolic, parse_version_expression
from .version_range import Restriction, VersionRange

__all__ = [
    "EmptyVersionList",
    "ExpressionKind",
    "InvalidVersionExpression",
    "MavenVersion",
    "NoMatchingVersion",
    "Restriction",
    "SYMBOLIC_VERSIONS",
    "VERSION_LATEST",
    "VERSION_RELEASE",
    "VERSION_SNAPSHOT",
    "VersionExpression",
    "VersionExpressionError",
    "VersionRange",
    "compare_versions",
    "filter_versions",
    "find_latest_version",
    "is_beta_version",
    "is_pattern",
    "is_regex",
    "is_symbolic",
    "matches",
    "parse_version_expression",
    "select",
]
