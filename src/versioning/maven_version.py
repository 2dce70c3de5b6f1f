"""Maven version ordering.

Implements the ComparableVersion algorithm Maven uses to order version
strings: numeric segments compare as integers, qualifiers compare by their
well-known rank (alpha < beta < milestone < rc < snapshot < release < sp) and
unknown qualifiers sort after all known ones, lexically.
"""
from __future__ import annotations

from functools import total_ordering
from typing import Iterable, List, Optional, Union

QUALIFIERS = ["alpha", "beta", "milestone", "rc", "snapshot", "", "sp"]
ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
RELEASE_INDEX = str(QUALIFIERS.index(""))
_PRERELEASE = set(QUALIFIERS[:QUALIFIERS.index("")])


class _Qualifier(str):
    """String item of a parsed version."""

    @classmethod
    def make(cls, value: str, followed_by_digit: bool) -> "_Qualifier":
        if followed_by_digit and len(value) == 1:
            value = {"a": "alpha", "b": "beta", "m": "milestone"}.get(value, value)
        return cls(ALIASES.get(value, value))

    def comparable(self) -> str:
        if self in QUALIFIERS:
            return str(QUALIFIERS.index(self))
        return f"{len(QUALIFIERS)}-{self}"


Item = Union[int, _Qualifier, list]


def _is_null(item: Item) -> bool:
    if isinstance(item, int):
        return item == 0
    if isinstance(item, _Qualifier):
        return item.comparable() == RELEASE_INDEX
    return len(item) == 0


def _parse_item(is_digit: bool, text: str) -> Item:
    return int(text) if is_digit else _Qualifier.make(text, False)


def _normalize(items: list) -> None:
    for i in range(len(items) - 1, -1, -1):
        if _is_null(items[i]):
            del items[i]
        elif not isinstance(items[i], list):
            break


def parse_items(version: str) -> list:
    """Split ``version`` into Maven's nested item list."""
    text = version.lower()
    items: list = []
    current = items
    stack = [items]
    is_digit = False
    start = 0

    for i, c in enumerate(text):
        if c == ".":
            current.append(0 if i == start else _parse_item(is_digit, text[start:i]))
            start = i + 1
        elif c == "-":
            current.append(0 if i == start else _parse_item(is_digit, text[start:i]))
            start = i + 1
            sub: list = []
            current.append(sub)
            current = sub
            stack.append(sub)
        elif c.isdigit():
            if not is_digit and i > start:
                current.append(_Qualifier.make(text[start:i], True))
                start = i
                sub = []
                current.append(sub)
                current = sub
                stack.append(sub)
            is_digit = True
        else:
            if is_digit and i > start:
                current.append(_parse_item(True, text[start:i]))
                start = i
                sub = []
                current.append(sub)
                current = sub
                stack.append(sub)
            is_digit = False

    if len(text) > start:
        current.append(_parse_item(is_digit, text[start:]))

    while stack:
        _normalize(stack.pop())
    return items


def _compare(left: Optional[Item], right: Optional[Item]) -> int:
    """Compare two items; ``right`` may be None (padding)."""
    if isinstance(left, int):
        if right is None:
            return 0 if left == 0 else 1
        if isinstance(right, int):
            return (left > right) - (left < right)
        return 1

    if isinstance(left, _Qualifier):
        if right is None:
            lc = left.comparable()
            return (lc > RELEASE_INDEX) - (lc < RELEASE_INDEX)
        if isinstance(right, int):
            return -1
        if isinstance(right, _Qualifier):
            lc, rc = left.comparable(), right.comparable()
            return (lc > rc) - (lc < rc)
        return -1

    # left is a list
    if right is None:
        return 0 if not left else _compare(left[0], None)
    if isinstance(right, int):
        return -1
    if isinstance(right, _Qualifier):
        return 1
    for i in range(max(len(left), len(right))):
        l_item = left[i] if i < len(left) else None
        r_item = right[i] if i < len(right) else None
        if l_item is None:
            result = 0 if r_item is None else -_compare(r_item, None)
        else:
            result = _compare(l_item, r_item)
        if result:
            return result
    return 0


@total_ordering
class MavenVersion:
    """Version string ordered the way Maven orders it."""

    __slots__ = ("value", "_items")

    def __init__(self, value: str):
        self.value = value
        self._items = parse_items(value)

    def compare(self, other: "MavenVersion") -> int:
        return _compare(self._items, other._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MavenVersion):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: "MavenVersion") -> bool:
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(repr(self._items))

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"MavenVersion({self.value!r})"


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 comparing two version strings."""
    return MavenVersion(a).compare(MavenVersion(b))


def find_latest_version(versions: Iterable[str]) -> Optional[str]:
    """Return the highest version in ``versions``, or None when empty."""
    latest: Optional[MavenVersion] = None
    for v in versions:
        candidate = MavenVersion(v)
        if latest is None or candidate > latest:
            latest = candidate
    return latest.value if latest is not None else None


def sort_versions(versions: Iterable[str], reverse: bool = False) -> List[str]:
    return sorted(versions, key=MavenVersion, reverse=reverse)


def _qualifiers(items: list):
    for item in items:
        if isinstance(item, list):
            yield from _qualifiers(item)
        elif isinstance(item, _Qualifier):
            yield item


def is_beta_version(version: str) -> bool:
    """True when ``version`` carries a pre-release qualifier (alpha, beta, rc...)."""
    return any(q in _PRERELEASE for q in _qualifiers(parse_items(version)))
