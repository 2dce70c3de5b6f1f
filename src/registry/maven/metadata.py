"""Artifact metadata: published versions of a versionless coordinate."""
from __future__ import annotations

import logging
import re
import threading
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from common.http_client import TransportError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from versioning import (
    EmptyVersionList,
    VERSION_SNAPSHOT,
    filter_versions,
    find_latest_version,
    parse_version_expression,
    select,
)

from . import xml_tree
from .coordinate import Coordinate
from .models import ArtifactMetadata

logger = logging.getLogger(__name__)

_HREF = re.compile(r'href="([^"]+)"')
_TIMESTAMP = re.compile(r"(\d{4})(\d\d)(\d\d)\.?(\d\d)(\d\d)(\d\d)")


def _parse_last_update(value: Optional[str], legacy: Optional[str]) -> Optional[datetime]:
    """Interpret ``<lastUpdate>`` (epoch millis) or ``<lastUpdated>`` (yyyyMMddHHmmss)."""
    if value:
        try:
            return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            logger.warning("Invalid lastUpdate value '%s'", value)
    if legacy:
        m = _TIMESTAMP.match(legacy)
        if m:
            return datetime(*map(int, m.groups()), tzinfo=timezone.utc)
        logger.warning("Invalid lastUpdated value '%s'", legacy)
    return None


def _snapshot_values(coordinate: Coordinate, root) -> List[str]:
    values = []
    for el in root.iter("snapshotVersion"):
        value = xml_tree.text(el, "value")
        if not value:
            continue
        classifier = xml_tree.text(el, "classifier")
        if classifier is not None and classifier != coordinate.classifier:
            continue
        extension = xml_tree.text(el, "extension")
        if extension is not None and extension != "jar":
            continue
        values.append(value)
    return values


def parse_metadata(coordinate: Coordinate, data: bytes) -> ArtifactMetadata:
    """Project a maven-metadata.xml document onto ArtifactMetadata.

    Every ``<version>`` outside ``<snapshotVersion>`` blocks is collected in
    document order; duplicates are kept. Timestamped ``<snapshotVersion>``
    values are kept only for jar files carrying the coordinate's classifier.

    Raises:
        ET.ParseError: malformed XML.
    """
    root = xml_tree.parse_document(data)
    versions = [
        el.text.strip()
        for el in xml_tree.iter_outside(root, "version", "snapshotVersion")
        if el.text and el.text.strip()
    ]
    return ArtifactMetadata(
        coordinate=coordinate,
        versions=versions,
        latest_version=xml_tree.text(root, ".//latest"),
        release_version=xml_tree.text(root, ".//release"),
        last_update=_parse_last_update(
            xml_tree.text(root, ".//lastUpdate"),
            xml_tree.text(root, ".//lastUpdated"),
        ),
        snapshot_versions=_snapshot_values(coordinate, root),
    )


def parse_directory_listing(listing: str) -> List[str]:
    """Scrape ``href="..."`` anchors of a directory index as version names."""
    versions = []
    for href in _HREF.findall(listing):
        name = href.rstrip("/")
        name = name.rsplit("/", 1)[-1]
        if not name or name == "..":
            continue
        versions.append(name)
    return versions


class ArtifactMetadataResolver:
    """Loads and caches the metadata of one coordinate in one repository.

    Metadata is fetched at most once per instance. A failed load leaves an
    empty version list rather than raising; lookups needing a concrete
    version fail later if nothing is available.
    """

    def __init__(
        self,
        repository,
        coordinate: Coordinate,
        is_version_ignored: Optional[Callable[[str], bool]] = None,
    ):
        self.repository = repository
        self.coordinate = coordinate
        self._is_version_ignored = is_version_ignored
        self._metadata = ArtifactMetadata(coordinate)
        self._loaded = False
        self._snapshots: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    def base_path(self) -> str:
        """Repository-relative directory of the versionless artifact."""
        return f"{self.coordinate.group_id.replace('.', '/')}/{self.coordinate.artifact_id}/"

    def load(self, monitor) -> ArtifactMetadata:
        """(Re)load metadata from the repository."""
        with self._lock:
            return self._load(monitor)

    def _load(self, monitor) -> ArtifactMetadata:
        if monitor.is_cancelled():
            return self._metadata
        monitor.report_progress(f"Load metadata {self.coordinate.id}", 1)
        metadata_path = self.base_path() + Constants.MAVEN_METADATA_XML
        try:
            data = self.repository.read_resource(metadata_path, monitor)
            metadata = parse_metadata(self.coordinate, data)
        except ET.ParseError as exc:
            logger.warning("Error parsing artifact metadata of %s: %s", self.coordinate.id, exc)
            metadata = self._load_listing()
        except (TransportError, OSError) as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "Metadata not available, trying directory listing",
                    extra=extra_context(
                        event="fallback", component="metadata", action="load",
                        target=self.coordinate.id, repository=self.repository.id, error=str(exc)
                    )
                )
            metadata = self._load_listing()

        metadata.versions = [v for v in metadata.versions if not self._ignored(v)]
        self._metadata = metadata
        self._loaded = True
        return metadata

    def _load_listing(self) -> ArtifactMetadata:
        try:
            listing = self.repository.read_listing(self.base_path())
        except (TransportError, OSError) as exc:
            logger.debug("No directory listing for %s in %s: %s", self.coordinate.id, self.repository.id, exc)
            return ArtifactMetadata(self.coordinate)
        return ArtifactMetadata(self.coordinate, versions=parse_directory_listing(listing))

    def _ignored(self, version: str) -> bool:
        if self._is_version_ignored is None:
            return False
        return self._is_version_ignored(
            f"{self.coordinate.group_id}:{self.coordinate.artifact_id}:{version}")

    def metadata(self, monitor) -> ArtifactMetadata:
        """Return cached metadata, loading it on first use."""
        with self._lock:
            if not self._loaded:
                self._load(monitor)
            return self._metadata

    def list_versions(self, version_expr: Optional[str], monitor) -> List[str]:
        """Published versions, filtered by ``version_expr`` when it is a pattern.

        Raises:
            InvalidVersionExpression: malformed regex or range.
        """
        versions = self.metadata(monitor).versions
        if not version_expr:
            return list(versions)
        return filter_versions(versions, version_expr)

    def resolve_version(self, version_expr: str, monitor) -> str:
        """Turn ``version_expr`` into a concrete version.

        Exact versions are returned without touching metadata. In a snapshot
        repository the ``SNAPSHOT`` token picks the highest ``-SNAPSHOT``
        version.

        Raises:
            VersionExpressionError: no concrete version can be chosen.
        """
        expr = parse_version_expression(version_expr)
        if not expr.needs_metadata:
            return expr.raw
        metadata = self.metadata(monitor)
        if expr.raw == VERSION_SNAPSHOT and getattr(self.repository, "snapshot", False):
            chosen = find_latest_version(v for v in metadata.versions if is_snapshot_version(v))
            if not chosen:
                raise EmptyVersionList(f"No snapshot versions of {self.coordinate.id}")
            return chosen
        return select(expr, metadata.versions, metadata.release_version, metadata.latest_version)

    def snapshot_version(self, version: str, monitor) -> str:
        """Timestamped build of a ``-SNAPSHOT`` version, e.g. ``1.0-20240101.120000-3``.

        Read from the version's own maven-metadata.xml, once per version.

        Raises:
            EmptyVersionList: the version lists no snapshot builds.
        """
        with self._lock:
            value = self._snapshots.get(version)
            if value is not None:
                return value
            monitor.report_progress(f"Load snapshot metadata {self.coordinate.id}:{version}", 1)
            metadata_path = f"{self.base_path()}{version}/{Constants.MAVEN_METADATA_XML}"
            try:
                data = self.repository.read_resource(metadata_path, monitor)
                values = parse_metadata(self.coordinate, data).snapshot_versions
            except ET.ParseError as exc:
                logger.warning("Error parsing snapshot metadata of %s:%s: %s", self.coordinate.id, version, exc)
                values = []
            except (TransportError, OSError) as exc:
                logger.debug("No snapshot metadata for %s:%s in %s: %s",
                             self.coordinate.id, version, self.repository.id, exc)
                values = []
            value = find_latest_version(values)
            if not value:
                raise EmptyVersionList(f"Artifact {self.coordinate.id}:{version} has empty snapshot version list")
            self._snapshots[version] = value
            return value


def is_snapshot_version(version: str) -> bool:
    return version.endswith("-" + VERSION_SNAPSHOT)
