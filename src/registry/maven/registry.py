"""Repository registry: ordered multi-repository artifact resolution."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from common.logging_utils import extra_context, is_debug_enabled, Timer
from common.monitor import NULL_MONITOR
from constants import Constants, data_dir as default_data_dir
from versioning import VersionExpressionError

from . import settings
from .context import ResolveContext
from .coordinate import Coordinate
from .descriptor import Descriptor
from .models import RepositoryConfig, RepositoryKind
from .repository import FILE_JAR, Repository

logger = logging.getLogger(__name__)

LOCAL_REPOSITORY_ID = "local"


def _identity(value: Optional[str]) -> Optional[str]:
    return value


class Registry:
    """Ordered set of repositories plus the negative-result memo.

    Repositories are loaded lazily on first use: built-in ones from
    configuration, then the local repository, then the custom ones from the
    settings file. They are searched in ``order``.
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        settings_path: Optional[Path] = None,
        builtin_repositories: Optional[Iterable[dict]] = None,
        transport: Optional[Callable] = None,
        ignored_versions: Optional[Iterable[str]] = None,
        password_codec=None,
        local_repository: Optional[str] = None,
    ):
        self.data_dir = Path(data_dir) if data_dir is not None else default_data_dir()
        self.settings_path = Path(settings_path) if settings_path else self.data_dir / Constants.SETTINGS_FILE
        self._builtin = list(builtin_repositories) if builtin_repositories is not None else None
        self._transport = transport
        self._ignored = list(ignored_versions) if ignored_versions is not None else None
        encode, decode = password_codec or (_identity, _identity)
        self._encode: Callable = encode
        self._decode: Callable = decode
        self._local_path = local_repository
        self._lock = threading.RLock()
        self._initialized = False
        self._repositories: List[Repository] = []
        self._local: Optional[Repository] = None
        self._external: Dict[str, Repository] = {}
        self._not_found: Set[str] = set()

    # -- initialization --

    def _new_repository(self, config: RepositoryConfig, kind: RepositoryKind) -> Repository:
        return Repository.from_config(
            config, kind, transport=self._transport, cache_root=self.data_dir / "maven")

    def _init(self) -> None:
        with self._lock:
            if self._initialized:
                return
            builtin = self._builtin if self._builtin is not None else Constants.BUILTIN_REPOSITORIES
            for entry in builtin:
                config = RepositoryConfig(
                    id=entry.get("id") or entry["url"],
                    url=entry["url"],
                    name=entry.get("name"),
                    description=entry.get("description"),
                    order=int(entry.get("order", 0)),
                    enabled=bool(entry.get("enabled", True)),
                    scopes=list(entry.get("scopes") or []),
                    snapshot=bool(entry.get("snapshot", False)),
                )
                self._repositories.append(self._new_repository(config, RepositoryKind.GLOBAL))

            local_path = Path(self._local_path or Constants.LOCAL_REPOSITORY).expanduser().absolute()
            self._local = self._new_repository(
                RepositoryConfig(LOCAL_REPOSITORY_ID, local_path.as_uri(), name="Local repository", order=-1),
                RepositoryKind.LOCAL,
            )

            for config in settings.load_repositories(self.settings_path, decode=self._decode):
                if self._find(config.id) is not None:
                    logger.warning("Duplicate repository id '%s' in %s, skipped", config.id, self.settings_path)
                    continue
                self._repositories.append(self._new_repository(config, RepositoryKind.CUSTOM))

            self._repositories.sort(key=lambda r: r.order)
            self._initialized = True
            logger.debug("Registry initialized with %d repositories", len(self._repositories))

    def _find(self, repo_id: str) -> Optional[Repository]:
        for repo in self._repositories:
            if repo.id == repo_id:
                return repo
        return None

    @property
    def repositories(self) -> List[Repository]:
        """Registered repositories in search order (local excluded)."""
        self._init()
        with self._lock:
            return list(self._repositories)

    @property
    def local_repository(self) -> Repository:
        self._init()
        return self._local

    def find_repository(self, repo_id: str) -> Optional[Repository]:
        self._init()
        with self._lock:
            if self._local is not None and self._local.id == repo_id:
                return self._local
            return self._find(repo_id)

    def external_repository(self, repo_id: str, url: str, name: Optional[str] = None) -> Repository:
        """Repository declared inside a descriptor, shared per URL."""
        if not url.endswith("/"):
            url += "/"
        with self._lock:
            repo = self._external.get(url)
            if repo is None:
                repo = self._new_repository(RepositoryConfig(repo_id, url, name=name), RepositoryKind.POM)
                self._external[url] = repo
            return repo

    def is_version_ignored(self, path: str) -> bool:
        """True when ``group:artifact:version`` starts with an ignored prefix."""
        ignored = self._ignored if self._ignored is not None else Constants.IGNORED_VERSIONS
        return any(path.startswith(prefix) for prefix in ignored)

    # -- resolution --

    def resolve(
        self,
        coordinate: Coordinate,
        referencing: Optional[Descriptor] = None,
        monitor=None,
    ) -> Optional[Descriptor]:
        """Resolve ``coordinate`` to a merged descriptor, or None when unavailable."""
        context = ResolveContext(self, monitor or NULL_MONITOR)
        with Timer() as t:
            descriptor = self.resolve_in_context(coordinate, referencing, context)
        if is_debug_enabled(logger):
            logger.debug("Resolve finished", extra=extra_context(
                event="resolve", component="registry", target=coordinate.path,
                outcome="found" if descriptor is not None else "absent",
                repository=getattr(descriptor.repository, "id", None) if descriptor else None,
                duration_ms=t.duration_ms()))
        return descriptor

    def resolve_in_context(
        self,
        coordinate: Coordinate,
        referencing: Optional[Descriptor],
        context: ResolveContext,
    ) -> Optional[Descriptor]:
        """Resolve within an ongoing resolution (parent or import lookup).

        Raises:
            CyclicReferenceError: ``coordinate`` is already being resolved
                higher up the chain.
        """
        self._init()
        path = coordinate.path
        with self._lock:
            if path in self._not_found:
                logger.debug("%s is memoized as not found", path)
                return None
            repositories = list(self._repositories)
            local = self._local
        if context.cancelled:
            return None
        inner = context.enter(path)

        tried: Set[str] = set()
        tried_ids: List[str] = []
        candidates: List[Repository] = []
        if referencing is not None and referencing.repository is not None:
            candidates.append(referencing.repository)
        candidates.extend(r for r in repositories if r.enabled)
        if referencing is not None:
            candidates.extend(referencing.get_active_repositories())
        if local is not None:
            candidates.append(local)

        for repo in candidates:
            if repo.url in tried or not repo.matches_scope(coordinate.group_id):
                continue
            tried.add(repo.url)
            tried_ids.append(repo.id)
            descriptor = repo.find_artifact(coordinate, inner)
            if descriptor is not None:
                return descriptor
            if context.cancelled:
                return None

        logger.debug("Artifact %s not found in %s", path, ", ".join(tried_ids) or "no repository")
        with self._lock:
            self._not_found.add(path)
        return None

    def list_versions(self, coordinate: Coordinate, version_expr: Optional[str] = None, monitor=None) -> List[str]:
        """Versions of ``coordinate`` from the first repository that has any.

        Raises:
            InvalidVersionExpression: malformed regex or range.
        """
        self._init()
        context = ResolveContext(self, monitor or NULL_MONITOR)
        with self._lock:
            repositories = [r for r in self._repositories if r.enabled] + [self._local]
        for repo in repositories:
            if not repo.matches_scope(coordinate.group_id):
                continue
            if context.cancelled:
                break
            versions = repo.list_versions(coordinate, version_expr, context)
            if versions:
                return versions
        return []

    def reset_artifact_info(self, coordinate: Coordinate) -> None:
        """Drop cached state and not-found entries for ``coordinate``'s id."""
        self._init()
        prefix = coordinate.id + ":"
        with self._lock:
            self._not_found = {p for p in self._not_found if not p.startswith(prefix)}
            repositories = list(self._repositories) + [self._local] + list(self._external.values())
        for repo in repositories:
            repo.reset_artifact(coordinate)

    def download(self, coordinate: Coordinate, monitor=None) -> Optional[Path]:
        """Resolve ``coordinate`` and return the local path of its jar.

        Returns None when the artifact can't be resolved or its jar fetched.
        Descriptor-only artifacts (packaging ``pom``) have no jar.
        """
        monitor = monitor or NULL_MONITOR
        descriptor = self.resolve(coordinate, monitor=monitor)
        if descriptor is None:
            return None
        if descriptor.packaging == "pom":
            logger.warning("%s has packaging 'pom', nothing to download", descriptor.path)
            return None
        try:
            return descriptor.repository.artifact_file(
                descriptor.coordinate, descriptor.coordinate.version, FILE_JAR, monitor)
        except (OSError, VersionExpressionError) as exc:
            logger.error("Can't download %s from %s: %s", descriptor.path, descriptor.repository.id, exc)
            return None

    # -- configuration --

    def set_custom_repositories(self, configs: Iterable[RepositoryConfig]) -> None:
        """Replace user-declared repositories and forget negative results."""
        self._init()
        with self._lock:
            kept = [r for r in self._repositories if r.kind is not RepositoryKind.CUSTOM]
            for config in configs:
                if any(r.id == config.id for r in kept):
                    logger.warning("Repository id '%s' is already in use, skipped", config.id)
                    continue
                kept.append(self._new_repository(config, RepositoryKind.CUSTOM))
            kept.sort(key=lambda r: r.order)
            self._repositories = kept
            self._not_found.clear()

    def save_configuration(self) -> None:
        """Persist user-declared repositories to the settings file.

        Raises:
            OSError: the file could not be written.
        """
        self._init()
        with self._lock:
            configs = [r.to_config() for r in self._repositories if r.kind is RepositoryKind.CUSTOM]
        settings.save_repositories(self.settings_path, configs, encode=self._encode)
