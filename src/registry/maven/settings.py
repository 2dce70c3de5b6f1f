"""Persistence of user-declared repositories.

Format::

    <maven>
      <repository id="..." order="0" enabled="true" url="..." name="..."
                  description="..." auth-user="..." auth-password="..."
                  snapshot="false">
        <scope group="org.example"/>
      </repository>
    </maven>
"""
from __future__ import annotations

import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .models import Credentials, RepositoryConfig

logger = logging.getLogger(__name__)

TAG_ROOT = "maven"
TAG_REPOSITORY = "repository"
TAG_SCOPE = "scope"


def load_repositories(path: Path, decode: Optional[Callable] = None) -> List[RepositoryConfig]:
    """Read repository definitions from ``path``.

    A missing file yields an empty list; so does a malformed one, after a
    warning. Entries without id or url are skipped.
    """
    path = Path(path)
    if not path.is_file():
        return []
    try:
        root = ET.parse(str(path)).getroot()
    except (ET.ParseError, OSError) as exc:
        logger.warning("Can't read repository settings %s: %s", path, exc)
        return []

    configs = []
    for el in root.findall(TAG_REPOSITORY):
        repo_id = (el.get("id") or "").strip()
        url = (el.get("url") or "").strip()
        if not repo_id or not url:
            logger.warning("Repository without id or url in %s, skipped", path)
            continue
        try:
            order = int(el.get("order") or 0)
        except ValueError:
            logger.warning("Invalid order '%s' for repository '%s'", el.get("order"), repo_id)
            order = 0
        credentials = None
        user = el.get("auth-user")
        if user:
            password = el.get("auth-password")
            credentials = Credentials(user, decode(password) if decode and password else password)
        configs.append(RepositoryConfig(
            id=repo_id,
            url=url,
            name=el.get("name"),
            description=el.get("description"),
            order=order,
            enabled=(el.get("enabled") or "true").lower() != "false",
            scopes=[s.get("group") for s in el.findall(TAG_SCOPE) if s.get("group")],
            credentials=credentials,
            snapshot=(el.get("snapshot") or "false").lower() == "true",
        ))
    return configs


def save_repositories(path: Path, configs: Iterable[RepositoryConfig], encode: Optional[Callable] = None) -> None:
    """Write repository definitions to ``path``, replacing it atomically.

    Raises:
        OSError: the file could not be written.
    """
    path = Path(path)
    root = ET.Element(TAG_ROOT)
    for config in configs:
        attrs = {
            "id": config.id,
            "order": str(config.order),
            "enabled": "true" if config.enabled else "false",
            "url": config.url,
        }
        if config.name:
            attrs["name"] = config.name
        if config.description:
            attrs["description"] = config.description
        if config.snapshot:
            attrs["snapshot"] = "true"
        if config.credentials is not None and config.credentials.user:
            attrs["auth-user"] = config.credentials.user
            password = config.credentials.password
            if password:
                attrs["auth-password"] = encode(password) if encode else password
        el = ET.SubElement(root, TAG_REPOSITORY, attrs)
        for group in config.scopes:
            ET.SubElement(el, TAG_SCOPE, {"group": group})

    ET.indent(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".settings-")
    try:
        with os.fdopen(fd, "wb") as fh:
            ET.ElementTree(root).write(fh, encoding="utf-8", xml_declaration=True)
        os.replace(tmp, path)
    except OSError:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.debug("Saved %d repositories to %s", len(root), path)
