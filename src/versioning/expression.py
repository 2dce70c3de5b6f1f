"""Version expression evaluation against a published version list."""

import logging
import re
from typing import Iterable, List, Optional, Sequence

from .maven_version import find_latest_version, is_beta_version
from .models import (
    EmptyVersionList,
    ExpressionKind,
    InvalidVersionExpression,
    NoMatchingVersion,
    VERSION_LATEST,
    VERSION_RELEASE,
    VersionExpression,
)
from .parser import is_pattern, parse_version_expression
from .version_range import VersionRange

logger = logging.getLogger(__name__)


def _compile(expr: VersionExpression):
    try:
        return re.compile(expr.raw[1:-1])
    except re.error as exc:
        raise InvalidVersionExpression(f"Bad version pattern: {expr.raw} ({exc})") from exc


def _range(expr: VersionExpression) -> VersionRange:
    return VersionRange.from_spec(expr.raw)


def version_from_range(spec: str) -> str:
    """Pick the version a range designates without consulting any list.

    The recommended version wins, then the lower bound of the first
    restriction.

    Raises:
        InvalidVersionExpression: malformed range.
        NoMatchingVersion: the range has neither.
    """
    version_range = VersionRange.from_spec(spec)
    if version_range.recommended is not None:
        chosen = str(version_range.recommended)
    elif version_range.restrictions and version_range.restrictions[0].lower is not None:
        chosen = str(version_range.restrictions[0].lower)
    else:
        raise NoMatchingVersion(f"Range {spec} has no lower bound or recommended version")
    if is_pattern(chosen):
        raise InvalidVersionExpression(f"Bad version specification: {spec}")
    return chosen


def select(
    expr,
    available: Sequence[str],
    release_version: Optional[str] = None,
    latest_version: Optional[str] = None,
) -> str:
    """Resolve ``expr`` to one concrete version.

    Args:
        expr: Raw string or VersionExpression.
        available: Published versions, in repository order.
        release_version: Repository's notion of the current release.
        latest_version: Repository's notion of the latest deployment.

    Returns:
        str: A concrete version, never a pattern or symbolic token.

    Raises:
        InvalidVersionExpression: malformed regex or range.
        NoMatchingVersion: a range designates no version.
        EmptyVersionList: the fallback needed ``available`` and it was empty.
    """
    if not isinstance(expr, VersionExpression):
        expr = parse_version_expression(expr)

    chosen: Optional[str] = None
    if expr.kind is ExpressionKind.EXACT:
        return expr.raw
    if expr.kind is ExpressionKind.REGEX:
        pattern = _compile(expr)
        chosen = find_latest_version(v for v in available if pattern.fullmatch(v))
    elif expr.kind is ExpressionKind.RANGE:
        chosen = version_from_range(expr.raw)
    elif expr.raw == VERSION_RELEASE:
        chosen = release_version
        if chosen and is_beta_version(chosen):
            logger.debug("Ignoring pre-release %s as release version", chosen)
            chosen = None
    elif expr.raw == VERSION_LATEST:
        chosen = latest_version

    if not chosen:
        if not available:
            raise EmptyVersionList(f"No versions available for '{expr.raw}'")
        chosen = find_latest_version(available)
    return chosen


def matches(version: str, expr) -> bool:
    """Test one version against an expression.

    Regex expressions use full-match and ranges use range membership. A plain
    version matches itself and any dotted or dashed extension of itself, so
    ``1.8`` matches ``1.8.0_292``. Malformed expressions match nothing.
    """
    if not isinstance(expr, VersionExpression):
        expr = parse_version_expression(expr)
    try:
        if expr.kind is ExpressionKind.REGEX:
            return _compile(expr).fullmatch(version) is not None
        if expr.kind is ExpressionKind.RANGE:
            return _range(expr).contains(version)
    except InvalidVersionExpression as exc:
        logger.debug("%s", exc)
        return False
    if expr.kind is ExpressionKind.SYMBOLIC:
        return False
    return version == expr.raw or version.startswith(expr.raw + ".") or \
        version.startswith(expr.raw + "_") or version.startswith(expr.raw + "-")


def filter_versions(versions: Iterable[str], expr) -> List[str]:
    """Return the members of ``versions`` matching ``expr``, order preserved.

    Non-pattern expressions return every version.

    Raises:
        InvalidVersionExpression: malformed regex or range.
    """
    if not isinstance(expr, VersionExpression):
        expr = parse_version_expression(expr)
    versions = list(versions)
    if expr.kind is ExpressionKind.REGEX:
        pattern = _compile(expr)
        return [v for v in versions if pattern.fullmatch(v)]
    if expr.kind is ExpressionKind.RANGE:
        version_range = _range(expr)
        return [v for v in versions if version_range.contains(v)]
    return versions
