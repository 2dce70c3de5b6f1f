"""Per-call resolution state threaded through recursive lookups."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from common.monitor import NULL_MONITOR

from .errors import CyclicReferenceError


@dataclass(frozen=True)
class ResolveContext:
    """Registry, monitor and the chain of coordinate paths being resolved."""

    registry: object
    monitor: object = NULL_MONITOR
    chain: Tuple[str, ...] = ()

    @property
    def cancelled(self) -> bool:
        return self.monitor.is_cancelled()

    def enter(self, path: str) -> "ResolveContext":
        """Return a context one level deeper.

        Raises:
            CyclicReferenceError: ``path`` is already being resolved.
        """
        if path in self.chain:
            raise CyclicReferenceError(path, self.chain + (path,))
        return ResolveContext(self.registry, self.monitor, self.chain + (path,))
