"""Resolution failures."""

from common.http_client import TransportError


class ResolutionError(Exception):
    """Base class for failures scoped to one resolution call."""


class DescriptorParseError(ResolutionError):
    """A descriptor document could not be read or parsed."""


class CyclicReferenceError(ResolutionError):
    """A coordinate reappeared in its own parent/import chain."""

    def __init__(self, path: str, chain):
        super().__init__(f"Cyclic reference to {path} via {' -> '.join(chain)}")
        self.path = path
        self.chain = tuple(chain)


__all__ = ["CyclicReferenceError", "DescriptorParseError", "ResolutionError", "TransportError"]
