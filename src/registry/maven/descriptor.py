"""Artifact descriptors (POM files) and the resolver that builds them.

A descriptor is built in three passes over the parsed document:

1. profiles: activation, properties and declared repositories;
2. parent: resolved through the registry, which may consult the repositories
   declared in pass 1;
3. dependency management and dependencies of every active profile, with
   property interpolation, management defaults and BOM imports.

Merged views (effective dependencies, management lookup, active
repositories) are computed on demand by walking the parent chain.
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from versioning import matches

from . import xml_tree
from .context import ResolveContext
from .coordinate import Coordinate
from .errors import CyclicReferenceError, DescriptorParseError, ResolutionError
from .models import (
    ROOT_PROFILE_ID,
    Dependency,
    Exclusion,
    License,
    Profile,
    Scope,
)

logger = logging.getLogger(__name__)

_PROPERTY_REF = re.compile(r"\$\{([^}]+)\}")
_EFFECTIVE_SCOPES = (Scope.COMPILE, Scope.RUNTIME)

PACKAGING_JAR = "jar"
PACKAGING_POM = "pom"


class Descriptor:
    """Resolved descriptor of one artifact version."""

    def __init__(self, repository, coordinate: Coordinate, packaging: str = PACKAGING_JAR):
        self.repository = repository
        self.coordinate = coordinate
        self.version = coordinate.version
        self.packaging = packaging
        self.name: Optional[str] = None
        self.description: Optional[str] = None
        self.url: Optional[str] = None
        self.parent: Optional["Descriptor"] = None
        self.licenses: List[License] = []
        self.profiles: List[Profile] = []
        self.imports: List["Descriptor"] = []

    @property
    def id(self) -> str:
        return self.coordinate.id

    @property
    def path(self) -> str:
        return self.coordinate.path

    def __repr__(self) -> str:
        return f"Descriptor({self.path!r} @ {getattr(self.repository, 'id', None)})"

    def chain(self) -> Iterator["Descriptor"]:
        """Yield this descriptor, then its ancestors."""
        d: Optional[Descriptor] = self
        while d is not None:
            yield d
            d = d.parent

    def active_profiles(self) -> List[Profile]:
        return [p for p in self.profiles if p.active]

    @property
    def root_profile(self) -> Profile:
        return self.profiles[0]

    # -- properties --

    def property_sources(self) -> List[Tuple[str, Mapping[str, str]]]:
        """Named property sources, highest precedence first.

        1. project fields (``project.groupId``, ``project.artifactId``,
           ``project.version`` and ``project.parent.*`` when a parent exists);
        2. properties of every active profile of this descriptor, then of
           each ancestor in turn. The nearest definition wins.
        """
        project = {
            "project.groupId": self.coordinate.group_id,
            "project.artifactId": self.coordinate.artifact_id,
            "project.version": self.version,
        }
        if self.parent is not None:
            project["project.parent.groupId"] = self.parent.coordinate.group_id
            project["project.parent.artifactId"] = self.parent.coordinate.artifact_id
            project["project.parent.version"] = self.parent.version
        sources: List[Tuple[str, Mapping[str, str]]] = [("project", project)]
        for d in self.chain():
            for profile in d.active_profiles():
                if profile.properties:
                    sources.append((f"{d.path}#{profile.id}", profile.properties))
        return sources

    def get_property(self, name: str) -> Optional[str]:
        for _, values in self.property_sources():
            if name in values:
                return values[name]
        return None

    def interpolate(self, value: Optional[str]) -> Optional[str]:
        """Replace ``${name}`` references; unknown references are left as-is."""
        if not value or "${" not in value:
            return value
        sources = self.property_sources()

        def lookup(name: str) -> Optional[str]:
            for _, values in sources:
                if name in values:
                    return values[name]
            return None

        def expand(text: str, visiting: frozenset) -> str:
            def repl(m: "re.Match") -> str:
                name = m.group(1)
                resolved = lookup(name)
                if resolved is None or name in visiting:
                    return m.group(0)
                return expand(resolved, visiting | {name})
            return _PROPERTY_REF.sub(repl, text)

        return expand(value, frozenset())

    # -- merged views --

    def find_management(self, group_id: str, artifact_id: str) -> Optional[Dependency]:
        """Find the managed entry for ``group_id:artifact_id``.

        Searches own active profiles, then imported descriptors (depth first),
        then the parent. The first match wins.
        """
        for profile in self.active_profiles():
            found = profile.find_management(group_id, artifact_id)
            if found is not None:
                return found
        for imported in self.imports:
            found = imported.find_management(group_id, artifact_id)
            if found is not None:
                return found
        if self.parent is not None:
            return self.parent.find_management(group_id, artifact_id)
        return None

    def get_dependencies(self) -> List[Dependency]:
        """Effective dependencies: active profiles of self, then of each ancestor.

        Not de-duplicated and not exclusion-filtered.
        """
        result: List[Dependency] = []
        for d in self.chain():
            for profile in d.active_profiles():
                result.extend(profile.dependencies)
        return result

    def get_active_repositories(self) -> list:
        """Repositories declared by active profiles along the parent chain.

        De-duplicated by id; the declaration closest to this descriptor wins.
        """
        seen: Dict[str, object] = {}
        for d in self.chain():
            for profile in d.active_profiles():
                for repo in profile.repositories:
                    seen.setdefault(repo.id, repo)
        return list(seen.values())

    def to_dict(self, include_dependencies: bool = False) -> dict:
        """JSON-friendly summary."""
        data = {
            "id": self.id,
            "version": self.version,
            "packaging": self.packaging,
            "name": self.name,
            "description": self.description,
            "url": self.url,
            "repository": getattr(self.repository, "id", None),
            "parent": self.parent.path if self.parent is not None else None,
            "licenses": [{"name": lic.name, "url": lic.url} for lic in self.licenses],
            "profiles": [{"id": p.id, "active": p.active} for p in self.profiles],
            "imports": [i.path for i in self.imports],
        }
        if include_dependencies:
            data["dependencies"] = [
                {
                    "coordinate": dep.coordinate.path,
                    "scope": dep.scope.value,
                    "optional": dep.optional,
                    "exclusions": [str(e) for e in dep.exclusions],
                }
                for dep in self.get_dependencies()
            ]
        return data


class DescriptorResolver:
    """Builds the Descriptor of one concrete coordinate from one repository."""

    def __init__(self, repository, coordinate: Coordinate, context: ResolveContext):
        self.repository = repository
        self.coordinate = coordinate
        self.context = context

    def resolve(self) -> Descriptor:
        """Load, parse and merge the descriptor.

        Raises:
            TransportError: the document could not be fetched.
            DescriptorParseError: the document is not valid XML.
        """
        data = self.repository.read_descriptor(self.coordinate, self.context.monitor)
        try:
            root = xml_tree.parse_document(data)
        except ET.ParseError as exc:
            raise DescriptorParseError(f"Error parsing descriptor {self.coordinate.path}: {exc}") from exc

        descriptor = Descriptor(
            self.repository,
            self.coordinate,
            xml_tree.text(root, "packaging") or PACKAGING_JAR,
        )
        version = xml_tree.text(root, "version")
        if version and "${" not in version:
            descriptor.version = version
        descriptor.name = xml_tree.compact_text(root, "name")
        descriptor.description = xml_tree.compact_text(root, "description")
        descriptor.url = xml_tree.text(root, "url")
        descriptor.licenses = [
            License(xml_tree.compact_text(el, "name"), xml_tree.text(el, "url"))
            for el in xml_tree.children(root, "licenses/license")
        ]

        profile_elements = [(Profile(ROOT_PROFILE_ID, True), root)]
        for el in xml_tree.children(root, "profiles/profile"):
            profile_id = xml_tree.text(el, "id") or f"profile-{len(profile_elements)}"
            profile_elements.append((Profile(profile_id, self._is_active(el)), el))

        for profile, el in profile_elements:
            descriptor.profiles.append(profile)
            if profile.active:
                profile.properties = xml_tree.properties(el.find("properties"))
        for profile, el in profile_elements:
            if profile.active:
                profile.repositories = self._parse_repositories(descriptor, el)

        self._resolve_parent(descriptor, root)

        for profile, el in profile_elements:
            if not profile.active:
                continue
            self._parse_dependencies(descriptor, profile, el.find("dependencyManagement/dependencies"), True)
            self._parse_dependencies(descriptor, profile, el.find("dependencies"), False)
        return descriptor

    # -- profiles --

    def _is_active(self, profile_el: ET.Element) -> bool:
        activation = profile_el.find("activation")
        if activation is None:
            return False
        active = bool(xml_tree.flag(activation, "activeByDefault"))
        jdk = xml_tree.text(activation, "jdk")
        if jdk:
            negated = jdk.startswith("!")
            active = matches(Constants.JDK_VERSION, jdk[1:] if negated else jdk) != negated
        property_name = xml_tree.text(activation, "property/name")
        if property_name and property_name.startswith("!"):
            active = True
        return active

    def _parse_repositories(self, descriptor: Descriptor, profile_el: ET.Element) -> list:
        repositories = []
        for el in xml_tree.children(profile_el, "repositories/repository"):
            repo_id = xml_tree.text(el, "id")
            url = descriptor.interpolate(xml_tree.text(el, "url"))
            if not repo_id or not url or "${" in url:
                logger.debug("Skipping repository declaration without id/url in %s", descriptor.path)
                continue
            repositories.append(self.context.registry.external_repository(
                repo_id, url, xml_tree.compact_text(el, "name")))
        return repositories

    # -- parent --

    def _resolve_parent(self, descriptor: Descriptor, root: ET.Element) -> None:
        parent_el = root.find("parent")
        if parent_el is None:
            return
        group_id = xml_tree.text(parent_el, "groupId")
        artifact_id = xml_tree.text(parent_el, "artifactId")
        version = xml_tree.text(parent_el, "version")
        if not group_id or not artifact_id:
            logger.warning("Incomplete parent reference in %s", descriptor.path)
            return
        parent_coordinate = Coordinate(group_id, artifact_id, None, version)
        try:
            descriptor.parent = self.context.registry.resolve_in_context(
                parent_coordinate, descriptor, self.context)
        except CyclicReferenceError as exc:
            logger.warning("Parent of %s not resolved: %s", descriptor.path, exc)
            return
        except ResolutionError as exc:
            logger.warning("Parent %s of %s not resolved: %s", parent_coordinate, descriptor.path, exc)
            return
        if descriptor.parent is None:
            logger.warning("Parent %s of %s not found", parent_coordinate, descriptor.path)

    # -- dependencies --

    def _parse_dependencies(
        self,
        descriptor: Descriptor,
        profile: Profile,
        block: Optional[ET.Element],
        management: bool,
    ) -> None:
        if block is None:
            return
        for el in block.findall("dependency"):
            group_id = descriptor.interpolate(xml_tree.text(el, "groupId"))
            artifact_id = descriptor.interpolate(xml_tree.text(el, "artifactId"))
            if not group_id or not artifact_id:
                logger.warning("Dependency without groupId/artifactId in %s, skipped", descriptor.path)
                continue
            classifier = descriptor.interpolate(xml_tree.text(el, "classifier"))
            version = descriptor.interpolate(xml_tree.text(el, "version"))

            managed = descriptor.find_management(group_id, artifact_id)
            scope = Scope.parse(descriptor.interpolate(xml_tree.text(el, "scope")))
            if scope is None:
                scope = managed.scope if managed is not None else Scope.COMPILE
            optional = xml_tree.flag(el, "optional")
            if optional is None:
                optional = managed.optional if managed is not None else False

            if management and scope is Scope.IMPORT:
                self._import(descriptor, Coordinate(group_id, artifact_id, classifier, version), version)
                continue
            if not management and (optional or scope not in _EFFECTIVE_SCOPES):
                if is_debug_enabled(logger):
                    logger.debug("Dependency %s:%s (%s%s) not part of effective closure of %s",
                                 group_id, artifact_id, scope.value,
                                 ", optional" if optional else "", descriptor.path)
                continue

            if not version and managed is not None:
                version = managed.version
            if not version:
                logger.warning("Can't resolve version of dependency %s:%s in %s, skipped",
                               group_id, artifact_id, descriptor.path)
                continue

            exclusions = list(self._parse_exclusions(descriptor, el))
            if managed is not None:
                exclusions.extend(e for e in managed.exclusions if e not in exclusions)

            dependency = Dependency(
                Coordinate(group_id, artifact_id, classifier, version),
                scope,
                optional,
                tuple(exclusions),
            )
            if management:
                profile.dependency_management.append(dependency)
            else:
                profile.dependencies.append(dependency)

    @staticmethod
    def _parse_exclusions(descriptor: Descriptor, el: ET.Element):
        for ex in xml_tree.children(el, "exclusions/exclusion"):
            group_id = descriptor.interpolate(xml_tree.text(ex, "groupId"))
            artifact_id = descriptor.interpolate(xml_tree.text(ex, "artifactId"))
            if group_id and artifact_id:
                yield Exclusion(group_id, artifact_id)

    def _import(self, descriptor: Descriptor, coordinate: Coordinate, version: Optional[str]) -> None:
        if not version:
            logger.warning("Import %s in %s has no version, skipped", coordinate.id, descriptor.path)
            return
        try:
            imported = self.context.registry.resolve_in_context(coordinate, descriptor, self.context)
        except ResolutionError as exc:
            logger.warning("Import %s in %s not resolved: %s", coordinate, descriptor.path, exc)
            return
        if imported is None:
            logger.warning("Import %s in %s not found, skipped", coordinate, descriptor.path)
            return
        if is_debug_enabled(logger):
            logger.debug("Imported dependency management", extra=extra_context(
                event="import", component="descriptor", target=imported.path, source=descriptor.path))
        descriptor.imports.append(imported)
