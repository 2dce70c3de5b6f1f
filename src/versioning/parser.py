"""Version expression classification."""

from .models import ExpressionKind, SYMBOLIC_VERSIONS, VersionExpression


def is_symbolic(expr: str) -> bool:
    """True for the RELEASE, LATEST and SNAPSHOT tokens."""
    return expr in SYMBOLIC_VERSIONS


def is_regex(expr: str) -> bool:
    return len(expr) >= 2 and expr.startswith("{") and expr.endswith("}")


def is_pattern(expr: str) -> bool:
    """True when ``expr`` needs the published version list to be evaluated.

    Symbolic tokens are not patterns by this test; callers check them first.
    """
    if not expr:
        return False
    return (expr[0] in "[({" or expr[-1] in "])}" or "," in expr)


def parse_version_expression(raw: str) -> VersionExpression:
    """Classify a raw version string."""
    expr = (raw or "").strip()
    if is_symbolic(expr):
        kind = ExpressionKind.SYMBOLIC
    elif is_regex(expr):
        kind = ExpressionKind.REGEX
    elif is_pattern(expr):
        kind = ExpressionKind.RANGE
    else:
        kind = ExpressionKind.EXACT
    return VersionExpression(raw=expr, kind=kind)
