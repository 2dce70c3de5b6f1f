"""Maven registry package.

This package resolves Maven-layout artifact coordinates:
- coordinate.py / models.py: value types
- metadata.py: published versions from maven-metadata.xml or directory listings
- descriptor.py: POM parsing with parent, profile and BOM import merging
- repository.py: one repository with its cache and kind-specific layout
- registry.py: ordered multi-repository resolution and negative-result memo
- settings.py: persistence of user-declared repositories
"""

from .coordinate import Coordinate
from .descriptor import Descriptor, DescriptorResolver
from .errors import CyclicReferenceError, DescriptorParseError, ResolutionError, TransportError
from .metadata import ArtifactMetadataResolver
from .models import (
    ArtifactMetadata,
    Credentials,
    Dependency,
    Exclusion,
    License,
    Profile,
    RepositoryConfig,
    RepositoryKind,
    Scope,
)
from .registry import Registry
from .repository import Repository

__all__ = [
    "ArtifactMetadata",
    "ArtifactMetadataResolver",
    "Coordinate",
    "Credentials",
    "CyclicReferenceError",
    "Dependency",
    "Descriptor",
    "DescriptorParseError",
    "DescriptorResolver",
    "Exclusion",
    "License",
    "Profile",
    "Registry",
    "Repository",
    "RepositoryConfig",
    "RepositoryKind",
    "ResolutionError",
    "Scope",
    "TransportError",
]
