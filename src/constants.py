"""Constants used in the project."""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    NOT_FOUND = 3
    INVALID_INPUT = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MAVEN_CENTRAL_URL = "https://repo1.maven.org/maven2/"
    MAVEN_METADATA_XML = "maven-metadata.xml"
    SETTINGS_FILE = "maven-repositories.xml"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    ENV_CONFIG = "MVNRESOLVE_CONFIG"
    ENV_DATA_DIR = "MVNRESOLVE_DATA_DIR"
    ENV_LOG_LEVEL = "MVNRESOLVE_LOG_LEVEL"

    DATA_DIR = os.path.join(os.path.expanduser("~"), ".local", "share", "mvnresolve")

    # Built-in repositories, loaded before user-declared ones
    BUILTIN_REPOSITORIES = [
        {
            "id": "maven-central",
            "name": "Maven Central",
            "url": MAVEN_CENTRAL_URL,
            "order": 0,
        },
    ]

    # "group:artifact:version" prefixes never offered as candidates
    IGNORED_VERSIONS = []

    # Maven-layout directory served as the local repository
    LOCAL_REPOSITORY = os.path.join(os.path.expanduser("~"), ".m2", "repository")

    # Platform version matched against <activation><jdk> clauses
    JDK_VERSION = "17"


def _config_candidates(explicit: Optional[str] = None):
    """Yield config file paths in precedence order."""
    if explicit:
        yield explicit
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        yield env_path
    yield os.path.join(os.getcwd(), "mvnresolve.yml")
    yield os.path.join(os.path.expanduser("~"), ".config", "mvnresolve", "mvnresolve.yml")


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first readable YAML config file.

    Returns:
        dict: Parsed configuration, or an empty dict when no file is usable.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    for candidate in _config_candidates(path):
        if not candidate or not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                cfg = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Unable to read config file %s: %s", candidate, exc)
            continue
        if isinstance(cfg, dict):
            logger.debug("Loaded configuration from %s", candidate)
            return cfg
        logger.warning("Ignoring config file %s: top-level mapping expected", candidate)
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply a parsed configuration mapping onto Constants."""
    http = cfg.get("http")
    if isinstance(http, dict):
        if http.get("timeout") is not None:
            Constants.REQUEST_TIMEOUT = int(http["timeout"])
        if http.get("retries") is not None:
            Constants.HTTP_RETRY_MAX = max(1, int(http["retries"]))
    repos = cfg.get("repositories")
    if isinstance(repos, list):
        Constants.BUILTIN_REPOSITORIES = [r for r in repos if isinstance(r, dict) and r.get("url")]
    ignored = cfg.get("ignored_versions")
    if isinstance(ignored, list):
        Constants.IGNORED_VERSIONS = [str(v) for v in ignored]
    if cfg.get("jdk_version") is not None:
        Constants.JDK_VERSION = str(cfg["jdk_version"])
    if cfg.get("local_repository"):
        Constants.LOCAL_REPOSITORY = os.path.expanduser(str(cfg["local_repository"]))
    if cfg.get("data_dir"):
        Constants.DATA_DIR = os.path.expanduser(str(cfg["data_dir"]))

    # Environment wins over file configuration
    env_data_dir = os.environ.get(Constants.ENV_DATA_DIR)
    if env_data_dir:
        Constants.DATA_DIR = env_data_dir


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML and environment into Constants."""
    cfg = _load_yaml_config(path)
    apply_config(cfg)
    return cfg


def data_dir() -> Path:
    """Return the per-installation data directory."""
    return Path(Constants.DATA_DIR)
