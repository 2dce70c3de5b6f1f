"""Tests for YAML/env configuration loading."""

import os

import pytest

from constants import Constants, apply_config, data_dir, load_config


@pytest.fixture(autouse=True)
def restore_constants(monkeypatch, tmp_path):
    for name in ("REQUEST_TIMEOUT", "HTTP_RETRY_MAX", "BUILTIN_REPOSITORIES", "IGNORED_VERSIONS",
                 "JDK_VERSION", "DATA_DIR", "LOCAL_REPOSITORY"):
        monkeypatch.setattr(Constants, name, getattr(Constants, name))
    monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
    monkeypatch.delenv(Constants.ENV_DATA_DIR, raising=False)
    monkeypatch.chdir(tmp_path)


def test_apply_config():
    """Every config key updates its constant."""
    apply_config({
        "http": {"timeout": 5, "retries": 0},
        "repositories": [{"id": "mirror", "url": "https://mirror/"}, {"id": "broken"}],
        "ignored_versions": ["com.bad:lib:"],
        "jdk_version": 11,
        "data_dir": "~/mvn-data",
        "local_repository": "/opt/m2",
    })
    assert Constants.REQUEST_TIMEOUT == 5
    assert Constants.HTTP_RETRY_MAX == 1
    assert Constants.BUILTIN_REPOSITORIES == [{"id": "mirror", "url": "https://mirror/"}]
    assert Constants.IGNORED_VERSIONS == ["com.bad:lib:"]
    assert Constants.JDK_VERSION == "11"
    assert Constants.DATA_DIR == os.path.expanduser("~/mvn-data")
    assert Constants.LOCAL_REPOSITORY == "/opt/m2"


def test_env_data_dir_wins(monkeypatch, tmp_path):
    """The data dir environment variable beats the file."""
    monkeypatch.setenv(Constants.ENV_DATA_DIR, str(tmp_path / "env"))
    apply_config({"data_dir": "/ignored"})
    assert data_dir() == tmp_path / "env"


def test_load_config_from_file(tmp_path):
    """An explicit config path is loaded."""
    cfg_file = tmp_path / "custom.yml"
    cfg_file.write_text("jdk_version: '1.8'\nhttp:\n  timeout: 9\n", encoding="utf-8")
    cfg = load_config(str(cfg_file))
    assert cfg["jdk_version"] == "1.8"
    assert Constants.JDK_VERSION == "1.8"
    assert Constants.REQUEST_TIMEOUT == 9


def test_load_config_from_cwd(tmp_path):
    """mvnresolve.yml in the working directory is found."""
    (tmp_path / "mvnresolve.yml").write_text("ignored_versions: ['x:y:']\n", encoding="utf-8")
    load_config()
    assert Constants.IGNORED_VERSIONS == ["x:y:"]


def test_invalid_yaml_ignored(tmp_path, caplog):
    """Invalid YAML is logged and ignored."""
    bad = tmp_path / "bad.yml"
    bad.write_text("http: [unclosed\n", encoding="utf-8")
    assert load_config(str(bad)) == {}
    assert "Unable to read config file" in caplog.text


def test_non_mapping_ignored(tmp_path):
    """A non-mapping document is ignored."""
    listing = tmp_path / "list.yml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    assert load_config(str(listing)) == {}
