"""Maven version range parsing and membership.

Some range examples:

* ``1.0``              version 1.0 (recommended), everything allowed
* ``[1.0,2.0)``        1.0 included up to 2.0 excluded
* ``[1.0,2.0]``        1.0 to 2.0, both included
* ``[1.5,)``           1.5 and higher
* ``(,1.0],[1.2,)``    up to 1.0 included, and 1.2 or higher
* ``[1.2]``            exactly 1.2
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .maven_version import MavenVersion
from .models import InvalidVersionExpression


@dataclass(frozen=True)
class Restriction:
    """One interval of a version range."""

    lower: Optional[MavenVersion]
    lower_inclusive: bool
    upper: Optional[MavenVersion]
    upper_inclusive: bool

    def contains(self, version: MavenVersion) -> bool:
        if self.lower is not None:
            c = self.lower.compare(version)
            if c > 0 or (c == 0 and not self.lower_inclusive):
                return False
        if self.upper is not None:
            c = self.upper.compare(version)
            if c < 0 or (c == 0 and not self.upper_inclusive):
                return False
        return True

    def __str__(self) -> str:
        if self.lower is not None and self.lower == self.upper and self.lower_inclusive and self.upper_inclusive:
            return f"[{self.lower}]"
        return "{}{},{}{}".format(
            "[" if self.lower_inclusive else "(",
            self.lower if self.lower is not None else "",
            self.upper if self.upper is not None else "",
            "]" if self.upper_inclusive else ")",
        )


EVERYTHING = Restriction(None, False, None, False)


class VersionRange:
    """Parsed range: a list of restrictions plus an optional recommended version."""

    def __init__(self, recommended: Optional[MavenVersion], restrictions: List[Restriction]):
        self.recommended = recommended
        self.restrictions = restrictions

    @classmethod
    def from_spec(cls, spec: str) -> "VersionRange":
        """Parse a version range such as ``[1.0,2.0)``.

        Raises:
            InvalidVersionExpression: malformed or self-contradicting range.
        """
        if spec is None:
            raise InvalidVersionExpression("Empty version range")
        restrictions: List[Restriction] = []
        process = spec.strip()
        upper_bound: Optional[MavenVersion] = None
        recommended: Optional[MavenVersion] = None

        while process.startswith("[") or process.startswith("("):
            index1 = process.find(")")
            index2 = process.find("]")
            index = index2
            if index2 < 0 or (0 <= index1 < index2):
                if index1 >= 0:
                    index = index1
            if index < 0:
                raise InvalidVersionExpression(f"Unbounded range: {spec}")

            restriction = cls._parse_restriction(process[:index + 1], spec)
            if upper_bound is not None:
                if restriction.lower is None or restriction.lower < upper_bound:
                    raise InvalidVersionExpression(f"Ranges overlap: {spec}")
            restrictions.append(restriction)
            upper_bound = restriction.upper

            process = process[index + 1:].strip()
            if process.startswith(","):
                process = process[1:].strip()

        if process:
            if restrictions:
                raise InvalidVersionExpression(
                    f"Only fully-qualified sets allowed in multiple set scenario: {spec}")
            recommended = MavenVersion(process)
            restrictions.append(EVERYTHING)

        return cls(recommended, restrictions)

    @staticmethod
    def _parse_restriction(text: str, spec: str) -> Restriction:
        lower_inclusive = text.startswith("[")
        upper_inclusive = text.endswith("]")
        inner = text[1:-1].strip()

        if "," not in inner:
            if not (lower_inclusive and upper_inclusive):
                raise InvalidVersionExpression(f"Single version must be surrounded by []: {spec}")
            if not inner:
                raise InvalidVersionExpression(f"Empty version in range: {spec}")
            version = MavenVersion(inner)
            return Restriction(version, True, version, True)

        lower_text, upper_text = (part.strip() for part in inner.split(",", 1))
        if lower_text == upper_text:
            raise InvalidVersionExpression(f"Range cannot have identical boundaries: {spec}")
        lower = MavenVersion(lower_text) if lower_text else None
        upper = MavenVersion(upper_text) if upper_text else None
        if lower is not None and upper is not None and upper < lower:
            raise InvalidVersionExpression(f"Range defies version ordering: {spec}")
        return Restriction(lower, lower_inclusive, upper, upper_inclusive)

    def contains(self, version) -> bool:
        if not isinstance(version, MavenVersion):
            version = MavenVersion(version)
        return any(r.contains(version) for r in self.restrictions)

    def __str__(self) -> str:
        if self.recommended is not None:
            return str(self.recommended)
        return ",".join(str(r) for r in self.restrictions)
