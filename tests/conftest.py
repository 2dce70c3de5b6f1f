"""Shared fixtures: in-memory transport and POM/metadata builders."""

import threading

import pytest

from common.http_client import TransportError
from registry.maven import Registry

CENTRAL = "https://repo.example.org/maven2/"


class FakeTransport:
    """Serves canned bytes by URL and counts every request."""

    def __init__(self, resources=None, delay_event=None):
        self.resources = dict(resources or {})
        self.calls = []
        self.delay_event = delay_event
        self._lock = threading.Lock()

    def add(self, url, body):
        self.resources[url] = body.encode("utf-8") if isinstance(body, str) else body

    def count(self, url):
        with self._lock:
            return self.calls.count(url)

    def __call__(self, url, credentials=None):
        with self._lock:
            self.calls.append(url)
        if self.delay_event is not None:
            self.delay_event.wait(5)
        if url not in self.resources:
            raise TransportError(f"GET {url} returned 404", url=url, status_code=404)
        data = self.resources[url]
        return data.encode("utf-8") if isinstance(data, str) else data


def metadata_xml(versions, latest=None, release=None, last_update=None):
    parts = ["<metadata><groupId>g</groupId><artifactId>a</artifactId><versioning>"]
    if latest:
        parts.append(f"<latest>{latest}</latest>")
    if release:
        parts.append(f"<release>{release}</release>")
    parts.append("<versions>")
    parts.extend(f"<version>{v}</version>" for v in versions)
    parts.append("</versions>")
    if last_update:
        parts.append(f"<lastUpdate>{last_update}</lastUpdate>")
    parts.append("</versioning></metadata>")
    return "".join(parts)


def pom_xml(group, artifact, version, body="", parent=None, packaging=None):
    parent_xml = ""
    if parent:
        pg, pa, pv = parent
        parent_xml = f"<parent><groupId>{pg}</groupId><artifactId>{pa}</artifactId><version>{pv}</version></parent>"
    packaging_xml = f"<packaging>{packaging}</packaging>" if packaging else ""
    return (
        '<?xml version="1.0"?>'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">'
        f"{parent_xml}<groupId>{group}</groupId><artifactId>{artifact}</artifactId>"
        f"<version>{version}</version>{packaging_xml}{body}</project>"
    )


def artifact_url(base, group, artifact, version, ext="pom"):
    return f"{base}{group.replace('.', '/')}/{artifact}/{version}/{artifact}-{version}.{ext}"


def metadata_url(base, group, artifact):
    return f"{base}{group.replace('.', '/')}/{artifact}/maven-metadata.xml"


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_registry(tmp_path, transport):
    """Factory for a Registry isolated under tmp_path."""

    def _make(builtin=None, **kwargs):
        kwargs.setdefault("data_dir", tmp_path / "data")
        kwargs.setdefault("local_repository", str(tmp_path / "m2"))
        kwargs.setdefault("transport", transport)
        kwargs.setdefault("ignored_versions", [])
        if builtin is None:
            builtin = [{"id": "central", "url": CENTRAL, "order": 0}]
        return Registry(builtin_repositories=builtin, **kwargs)

    return _make


@pytest.fixture
def registry(make_registry):
    return make_registry()


def publish(transport, base, group, artifact, version, body="", parent=None, packaging=None, metadata=True):
    """Serve a POM (and, by default, single-version metadata) from ``base``."""
    transport.add(artifact_url(base, group, artifact, version),
                  pom_xml(group, artifact, version, body, parent, packaging))
    if metadata:
        transport.add(metadata_url(base, group, artifact),
                      metadata_xml([version], latest=version, release=version))
