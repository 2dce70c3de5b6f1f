"""Tests for artifact metadata loading and version listing."""

from datetime import datetime, timezone

import pytest

from common.monitor import ProgressMonitor
from registry.maven import Coordinate, Repository, RepositoryKind
from registry.maven.metadata import ArtifactMetadataResolver, parse_directory_listing, parse_metadata
from versioning import EmptyVersionList, InvalidVersionExpression

from conftest import CENTRAL, FakeTransport, metadata_url, metadata_xml

COORD = Coordinate("org.example", "lib")

SNAPSHOT_METADATA = (
    "<metadata><version>1.0-SNAPSHOT</version><versioning><snapshotVersions>"
    "<snapshotVersion><extension>pom</extension><value>1.0-20240105.000000-5</value></snapshotVersion>"
    "<snapshotVersion><extension>jar</extension><value>1.0-20240101.000000-1</value></snapshotVersion>"
    "<snapshotVersion><extension>jar</extension><value>1.0-20240102.000000-2</value></snapshotVersion>"
    "<snapshotVersion><classifier>sources</classifier><extension>jar</extension>"
    "<value>1.0-20240103.000000-3</value></snapshotVersion>"
    "</snapshotVersions></versioning></metadata>"
)


def _resolver(transport, tmp_path, ignored=None, snapshot=False, coordinate=COORD):
    repo = Repository("central", CENTRAL, RepositoryKind.GLOBAL, transport=transport, cache_root=tmp_path,
                      snapshot=snapshot)
    return ArtifactMetadataResolver(repo, coordinate, ignored)


class TestParseMetadata:
    """maven-metadata.xml projection."""

    def test_versions_latest_release(self):
        """Versions keep document order; latest, release and lastUpdate are read."""
        md = parse_metadata(COORD, metadata_xml(["1.0", "1.1", "1.0"], latest="1.1", release="1.1",
                                                last_update="1700000000000").encode())
        assert md.versions == ["1.0", "1.1", "1.0"]
        assert md.latest_version == "1.1"
        assert md.release_version == "1.1"
        assert md.last_update == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_snapshot_versions_skipped(self):
        """Versions inside snapshotVersion blocks are not listed."""
        xml = (
            "<metadata><versioning><snapshotVersions><snapshotVersion>"
            "<version>1.0-20200101.000000-1</version></snapshotVersion></snapshotVersions>"
            "<versions><version>1.0-SNAPSHOT</version></versions>"
            "<lastUpdated>20200101123456</lastUpdated></versioning></metadata>"
        )
        md = parse_metadata(COORD, xml.encode())
        assert md.versions == ["1.0-SNAPSHOT"]
        assert md.last_update == datetime(2020, 1, 1, 12, 34, 56, tzinfo=timezone.utc)

    def test_snapshot_values_filtered(self):
        """Only jar builds with the coordinate's classifier are kept."""
        md = parse_metadata(COORD, SNAPSHOT_METADATA.encode())
        assert md.snapshot_versions == ["1.0-20240101.000000-1", "1.0-20240102.000000-2"]
        sources = parse_metadata(Coordinate("org.example", "lib", "sources"), SNAPSHOT_METADATA.encode())
        assert sources.snapshot_versions == ["1.0-20240103.000000-3"]

    def test_directory_listing(self):
        """Directory anchors become version names."""
        listing = (
            '<a href="../">../</a>\n<a href="1.0/">1.0/</a>\n'
            '<a href="https://host/x/lib/2.0/">2.0/</a>\n<a href="maven-metadata.xml">m</a>'
        )
        assert parse_directory_listing(listing) == ["1.0", "2.0", "maven-metadata.xml"]


class TestResolver:
    """ArtifactMetadataResolver loading rules."""

    def test_loads_once(self, tmp_path):
        """Metadata is fetched once and reused for every filter."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"): metadata_xml(["1.0", "2.0"])})
        resolver = _resolver(transport, tmp_path)
        monitor = ProgressMonitor()
        assert resolver.list_versions(None, monitor) == ["1.0", "2.0"]
        assert resolver.list_versions("[1.5,)", monitor) == ["2.0"]
        assert transport.count(metadata_url(CENTRAL, "org.example", "lib")) == 1
        assert resolver.loaded

    def test_fallback_to_listing(self, tmp_path):
        """Missing metadata falls back to the directory listing."""
        transport = FakeTransport({
            CENTRAL + "org/example/lib/": '<a href="1.0/">1.0/</a><a href="1.1/">1.1/</a>',
        })
        resolver = _resolver(transport, tmp_path)
        assert resolver.list_versions(None, ProgressMonitor()) == ["1.0", "1.1"]

    def test_malformed_metadata_falls_back(self, tmp_path):
        """Malformed metadata falls back to the directory listing."""
        transport = FakeTransport({
            metadata_url(CENTRAL, "org.example", "lib"): "<metadata><versioning>",
            CENTRAL + "org/example/lib/": '<a href="3.0/">3.0/</a>',
        })
        resolver = _resolver(transport, tmp_path)
        assert resolver.list_versions(None, ProgressMonitor()) == ["3.0"]

    def test_everything_missing_gives_empty_list(self, tmp_path):
        """With no source at all the version list is empty."""
        resolver = _resolver(FakeTransport(), tmp_path)
        assert resolver.list_versions(None, ProgressMonitor()) == []
        assert resolver.loaded

    def test_ignored_versions_removed(self, tmp_path):
        """Ignored versions are dropped after load."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"): metadata_xml(["1.0", "1.1", "2.0"])})
        resolver = _resolver(transport, tmp_path, lambda path: path.startswith("org.example:lib:1."))
        assert resolver.list_versions(None, ProgressMonitor()) == ["2.0"]

    def test_cancelled_monitor_skips_load(self, tmp_path):
        """A cancelled monitor loads nothing."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"): metadata_xml(["1.0"])})
        resolver = _resolver(transport, tmp_path)
        monitor = ProgressMonitor()
        monitor.cancel()
        assert resolver.list_versions(None, monitor) == []
        assert not resolver.loaded
        assert transport.calls == []

    def test_resolve_version(self, tmp_path):
        """Exact versions skip metadata; others are selected from it."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"):
                                   metadata_xml(["1.0", "2.0-beta"], latest="2.0-beta", release="2.0-beta")})
        resolver = _resolver(transport, tmp_path)
        monitor = ProgressMonitor()
        assert resolver.resolve_version("1.5", monitor) == "1.5"
        assert transport.calls == []
        assert resolver.resolve_version("LATEST", monitor) == "2.0-beta"
        assert resolver.resolve_version("{1\\..*}", monitor) == "1.0"

    def test_invalid_filter(self, tmp_path):
        """A malformed filter raises."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"): metadata_xml(["1.0"])})
        resolver = _resolver(transport, tmp_path)
        with pytest.raises(InvalidVersionExpression):
            resolver.list_versions("{(}", ProgressMonitor())


class TestSnapshotMetadata:
    """Per-version metadata of snapshot repositories."""

    def test_snapshot_version_loaded_once(self, tmp_path):
        """The newest jar build is read from the version's own metadata once."""
        url = CENTRAL + "org/example/lib/1.0-SNAPSHOT/maven-metadata.xml"
        transport = FakeTransport({url: SNAPSHOT_METADATA})
        resolver = _resolver(transport, tmp_path, snapshot=True)
        monitor = ProgressMonitor()
        assert resolver.snapshot_version("1.0-SNAPSHOT", monitor) == "1.0-20240102.000000-2"
        assert resolver.snapshot_version("1.0-SNAPSHOT", monitor) == "1.0-20240102.000000-2"
        assert transport.count(url) == 1

    def test_snapshot_version_missing(self, tmp_path):
        """No per-version metadata means no timestamped build."""
        resolver = _resolver(FakeTransport(), tmp_path, snapshot=True)
        with pytest.raises(EmptyVersionList):
            resolver.snapshot_version("1.0-SNAPSHOT", ProgressMonitor())

    def test_snapshot_token_in_snapshot_repository(self, tmp_path):
        """SNAPSHOT picks the highest -SNAPSHOT version of a snapshot repository."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"):
                                   metadata_xml(["1.0-SNAPSHOT", "2.0", "1.5-SNAPSHOT"])})
        resolver = _resolver(transport, tmp_path, snapshot=True)
        assert resolver.resolve_version("SNAPSHOT", ProgressMonitor()) == "1.5-SNAPSHOT"

    def test_snapshot_token_without_snapshots(self, tmp_path):
        """A snapshot repository without -SNAPSHOT versions has nothing to pick."""
        transport = FakeTransport({metadata_url(CENTRAL, "org.example", "lib"): metadata_xml(["2.0"])})
        resolver = _resolver(transport, tmp_path, snapshot=True)
        with pytest.raises(EmptyVersionList):
            resolver.resolve_version("SNAPSHOT", ProgressMonitor())
