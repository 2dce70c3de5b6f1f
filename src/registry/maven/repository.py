"""Artifact repositories and their on-disk cache layout."""
from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import urlsplit
from urllib.request import url2pathname

from common import http_client
from common.http_client import TransportError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from constants import data_dir
from versioning import InvalidVersionExpression, VersionExpressionError

from .context import ResolveContext
from .coordinate import Coordinate
from .descriptor import Descriptor, DescriptorResolver
from .errors import DescriptorParseError
from .metadata import ArtifactMetadataResolver, is_snapshot_version
from .models import Credentials, RepositoryConfig, RepositoryKind

logger = logging.getLogger(__name__)

FILE_JAR = "jar"
FILE_POM = "pom"

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_INCOMPLETE = object()


def version_file_name(coordinate: Coordinate, version: str, file_type: str) -> str:
    """``artifact-version[-classifier].ext``; the classifier only applies to jars."""
    name = f"{coordinate.artifact_id}-{version}"
    if file_type == FILE_JAR and coordinate.classifier:
        name += f"-{coordinate.classifier}"
    return f"{name}.{file_type}"


def artifact_dir(coordinate: Coordinate, version: str) -> str:
    """Repository-relative directory holding one artifact version."""
    return f"{coordinate.group_id.replace('.', '/')}/{coordinate.artifact_id}/{version}/"


class RemoteLayout:
    """Registered remote repository: fetch over HTTP, cache under its id."""

    def should_fetch_remotely(self) -> bool:
        return True

    def cache_dir_for(self, repository: "Repository") -> Path:
        return repository.cache_root / repository.id

    def resolve_location(self, repository: "Repository", relative_path: str) -> str:
        return repository.url + relative_path

    def cached_file(self, repository: "Repository", coordinate: Coordinate, version: str, file_type: str) -> Path:
        return self.cache_dir_for(repository) / coordinate.group_id / version_file_name(coordinate, version, file_type)

    def read(self, repository: "Repository", relative_path: str) -> bytes:
        return repository.transport(self.resolve_location(repository, relative_path), repository.credentials)

    def read_listing(self, repository: "Repository", relative_dir: str) -> str:
        return self.read(repository, relative_dir).decode("utf-8", errors="replace")


class ExternalLayout(RemoteLayout):
    """Repository declared inside a descriptor: cache per host and path."""

    def cache_dir_for(self, repository: "Repository") -> Path:
        parts = urlsplit(repository.url)
        segments = [_UNSAFE.sub("_", s) for s in parts.path.split("/") if s]
        return repository.cache_root.joinpath("external", _UNSAFE.sub("_", parts.netloc or "local"), *segments)


class LocalLayout:
    """Maven-layout directory on disk, read in place and never fetched."""

    def should_fetch_remotely(self) -> bool:
        return False

    def cache_dir_for(self, repository: "Repository") -> Path:
        return repository.local_root

    def resolve_location(self, repository: "Repository", relative_path: str) -> str:
        return str(repository.local_root / relative_path)

    def cached_file(self, repository: "Repository", coordinate: Coordinate, version: str, file_type: str) -> Path:
        return repository.local_root / artifact_dir(coordinate, version) / version_file_name(coordinate, version, file_type)

    def read(self, repository: "Repository", relative_path: str) -> bytes:
        path = Path(self.resolve_location(repository, relative_path))
        if not path.is_file():
            raise TransportError(f"{path} not found", url=str(path))
        return path.read_bytes()

    def read_listing(self, repository: "Repository", relative_dir: str) -> str:
        path = Path(self.resolve_location(repository, relative_dir))
        if not path.is_dir():
            raise TransportError(f"{path} is not a directory", url=str(path))
        return "\n".join(f'<a href="{child.name}/">{child.name}/</a>'
                         for child in sorted(path.iterdir()) if child.is_dir())


_LAYOUTS = {
    RepositoryKind.GLOBAL: RemoteLayout(),
    RepositoryKind.CUSTOM: RemoteLayout(),
    RepositoryKind.POM: ExternalLayout(),
    RepositoryKind.LOCAL: LocalLayout(),
}


class _ArtifactState:
    """Per-id cache: metadata resolver plus resolved descriptors by version."""

    def __init__(self, metadata: ArtifactMetadataResolver):
        self.metadata = metadata
        self.descriptors: Dict[str, Descriptor] = {}


class Repository:
    """One addressable source of artifacts.

    Owns a per-coordinate-id cache of metadata and resolved descriptors.
    Only successful resolutions are cached. Concurrent lookups of the same
    coordinate share one in-flight build.
    """

    def __init__(
        self,
        repo_id: str,
        url: str,
        kind: RepositoryKind = RepositoryKind.CUSTOM,
        name: Optional[str] = None,
        description: Optional[str] = None,
        order: int = 0,
        enabled: bool = True,
        scopes: Optional[Iterable[str]] = None,
        credentials: Optional[Credentials] = None,
        transport: Optional[Callable] = None,
        cache_root: Optional[Path] = None,
        snapshot: bool = False,
    ):
        if not url.endswith("/"):
            url += "/"
        self.id = repo_id
        self.url = url
        self.kind = kind
        self.name = name or repo_id
        self.description = description
        self.order = order
        self.enabled = enabled
        self.scopes = set(scopes or ())
        self.credentials = credentials
        self.snapshot = snapshot
        self.cache_root = Path(cache_root) if cache_root is not None else data_dir() / "maven"
        self._transport = transport
        self._layout = _LAYOUTS[kind]
        self._lock = threading.Lock()
        self._artifacts: Dict[str, _ArtifactState] = {}
        self._inflight: Dict[str, Future] = {}

    @classmethod
    def from_config(cls, config: RepositoryConfig, kind: RepositoryKind, **kwargs) -> "Repository":
        return cls(
            config.id,
            config.url,
            kind,
            name=config.name,
            description=config.description,
            order=config.order,
            enabled=config.enabled,
            scopes=config.scopes,
            credentials=config.credentials,
            snapshot=config.snapshot,
            **kwargs
        )

    def to_config(self) -> RepositoryConfig:
        return RepositoryConfig(
            id=self.id,
            url=self.url,
            name=self.name,
            description=self.description,
            order=self.order,
            enabled=self.enabled,
            scopes=sorted(self.scopes),
            credentials=self.credentials,
            snapshot=self.snapshot,
        )

    def __repr__(self) -> str:
        return f"Repository({self.id!r}, {safe_url(self.url)!r}, {self.kind.value})"

    @property
    def transport(self) -> Callable:
        return self._transport or http_client.fetch

    @property
    def local_root(self) -> Path:
        """Filesystem root of a local repository (``file:`` URL or plain path)."""
        parts = urlsplit(self.url)
        if parts.scheme == "file":
            return Path(url2pathname(parts.path))
        return Path(self.url)

    def matches_scope(self, group_id: str) -> bool:
        """True when this repository may serve ``group_id``."""
        return not self.scopes or group_id in self.scopes

    def local_cache_dir(self) -> Path:
        return self._layout.cache_dir_for(self)

    # -- raw access --

    def read_resource(self, relative_path: str, monitor=None) -> bytes:
        """Read a repository-relative resource.

        Raises:
            TransportError: resource missing or unreachable.
        """
        with Timer() as t:
            data = self._layout.read(self, relative_path)
        if is_debug_enabled(logger):
            logger.debug("Resource read", extra=extra_context(
                event="read", component="repository", repository=self.id,
                target=relative_path, duration_ms=t.duration_ms()))
        return data

    def read_listing(self, relative_dir: str) -> str:
        return self._layout.read_listing(self, relative_dir)

    def is_snapshot_build(self, version: str) -> bool:
        """True when ``version`` is fetched as a timestamped build from here."""
        return self.snapshot and self._layout.should_fetch_remotely() and is_snapshot_version(version)

    def _file_version(self, coordinate: Coordinate, version: str, monitor) -> str:
        if not self.is_snapshot_build(version):
            return version
        with self._lock:
            state = self._artifacts.get(coordinate.id)
        metadata = state.metadata if state is not None else ArtifactMetadataResolver(self, coordinate)
        return metadata.snapshot_version(version, monitor)

    def artifact_file(self, coordinate: Coordinate, version: str, file_type: str, monitor) -> Path:
        """Local path of an artifact file, downloading it into the cache if needed.

        A ``-SNAPSHOT`` version in a snapshot repository is fetched as its
        latest timestamped build from the ``-SNAPSHOT`` directory.

        Raises:
            TransportError: not cached and not fetchable.
            EmptyVersionList: a snapshot version without timestamped builds.
        """
        file_version = self._file_version(coordinate, version, monitor)
        path = self._layout.cached_file(self, coordinate, file_version, file_type)
        if path.is_file():
            return path
        if not self._layout.should_fetch_remotely():
            raise TransportError(f"{path} not found", url=str(path))
        monitor.report_progress(f"Download {coordinate.id}:{file_version} ({file_type})", 1)
        remote_name = version_file_name(coordinate, file_version, file_type)
        data = self.read_resource(artifact_dir(coordinate, version) + remote_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".download-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp, path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return path

    def read_descriptor(self, coordinate: Coordinate, monitor) -> bytes:
        return self.artifact_file(coordinate, coordinate.version, FILE_POM, monitor).read_bytes()

    # -- resolution --

    def _state(self, coordinate: Coordinate, context: ResolveContext) -> _ArtifactState:
        with self._lock:
            state = self._artifacts.get(coordinate.id)
            if state is None:
                is_ignored = getattr(context.registry, "is_version_ignored", None)
                state = _ArtifactState(ArtifactMetadataResolver(self, coordinate, is_ignored))
                self._artifacts[coordinate.id] = state
            return state

    def _discard(self, coordinate: Coordinate, state: _ArtifactState) -> None:
        with self._lock:
            if self._artifacts.get(coordinate.id) is state and not state.descriptors:
                del self._artifacts[coordinate.id]

    def list_versions(self, coordinate: Coordinate, version_expr: Optional[str], context: ResolveContext) -> List[str]:
        """Published versions of ``coordinate`` here, filtered by ``version_expr``.

        Raises:
            InvalidVersionExpression: malformed regex or range.
        """
        return self._state(coordinate, context).metadata.list_versions(version_expr, context.monitor)

    def find_artifact(self, coordinate: Coordinate, context: ResolveContext) -> Optional[Descriptor]:
        """Resolve ``coordinate`` in this repository only.

        Returns None when the artifact is not available here. Failures are
        never cached, so a later call retries. A build cut short by
        cancellation is returned to its caller only.

        Raises:
            CyclicReferenceError: the concrete coordinate is already being
                resolved higher up the same chain.
        """
        if context.cancelled:
            return None
        state = self._state(coordinate, context)
        try:
            version = state.metadata.resolve_version(coordinate.version, context.monitor)
            if self.is_snapshot_build(version) and not context.cancelled:
                state.metadata.snapshot_version(version, context.monitor)
        except InvalidVersionExpression as exc:
            logger.error("Bad version expression for %s: %s", coordinate, exc)
            self._discard(coordinate, state)
            return None
        except VersionExpressionError as exc:
            logger.debug("No version of %s in %s: %s", coordinate, self.id, exc)
            self._discard(coordinate, state)
            return None
        if context.cancelled:
            return None

        concrete = coordinate.with_version(version)
        inner = context if concrete.path in context.chain[-1:] else context.enter(concrete.path)
        key = concrete.path
        while True:
            with self._lock:
                cached = state.descriptors.get(version)
                if cached is not None:
                    return cached
                future = self._inflight.get(key)
                owner = future is None
                if owner:
                    future = Future()
                    self._inflight[key] = future
            if owner:
                break
            shared = future.result()
            if shared is not _INCOMPLETE:
                return shared
            # owner was cancelled mid-build
            if context.cancelled:
                return None

        descriptor: Optional[Descriptor] = None
        complete = False
        try:
            descriptor = self._build(concrete, inner)
            complete = not inner.cancelled
        finally:
            with self._lock:
                self._inflight.pop(key, None)
                if complete and descriptor is not None and self._artifacts.get(coordinate.id) is state:
                    state.descriptors[version] = descriptor
            future.set_result(descriptor if complete else _INCOMPLETE)
        if descriptor is None:
            self._discard(coordinate, state)
        return descriptor

    def _build(self, coordinate: Coordinate, context: ResolveContext) -> Optional[Descriptor]:
        if context.cancelled:
            return None
        try:
            return DescriptorResolver(self, coordinate, context).resolve()
        except (TransportError, OSError, DescriptorParseError, VersionExpressionError) as exc:
            if is_debug_enabled(logger):
                logger.debug("Artifact not resolved", extra=extra_context(
                    event="lookup", component="repository", outcome="absent",
                    repository=self.id, target=coordinate.path, error=str(exc)))
            return None

    def reset_artifact(self, coordinate: Coordinate) -> None:
        """Forget everything cached for ``coordinate``'s id."""
        with self._lock:
            self._artifacts.pop(coordinate.id, None)
