"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from devlog.config import (
    Config,
    LeaseConfig,
    deep_merge,
    dict_to_config,
    load_config,
)
from devlog.config import paths as config_paths
from devlog.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point user and system config lookups at empty temp locations."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setattr(config_paths, "get_system_config_path", lambda: None)
    for name in ("DEVLOG_PATH", "DEVLOG_LOG", "DEVLOG_LEASE_MINUTES"):
        monkeypatch.delenv(name, raising=False)
    root = tmp_path / "devlog"
    (root / ".devlog").mkdir(parents=True)
    return root


def write_project_config(root: Path, text: str) -> None:
    (root / ".devlog" / "config.yaml").write_text(text, encoding="utf-8")


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test that nested dicts are recursively merged."""
        base = {"lease": {"duration_minutes": 30, "heartbeat_interval_minutes": 10}}
        override = {"lease": {"duration_minutes": 60}}
        result = deep_merge(base, override)
        assert result["lease"]["duration_minutes"] == 60
        assert result["lease"]["heartbeat_interval_minutes"] == 10

    def test_none_does_not_override(self) -> None:
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        assert deep_merge({"items": [1, 2, 3]}, {"items": [4, 5]}) == {"items": [4, 5]}

    def test_base_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert "devlog" in str(path)

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/devlog/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config path respects XDG_CONFIG_HOME."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")

        path = get_user_config_path()
        assert path == Path("/home/test/.config-custom/devlog/config.yaml")

    def test_project_config_path(self) -> None:
        path = get_project_config_path("/srv/shared/devlog")
        assert path == Path("/srv/shared/devlog/.devlog/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """System first, project last."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        paths = get_config_paths(root="/project")
        assert len(paths) == 3
        assert "etc" in paths[0].parts
        assert "project" in paths[2].parts

    def test_no_project_path_without_root(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert len(get_config_paths()) == 2


class TestConfigLoading:
    """Test configuration loading."""

    def test_defaults(self, isolated_config: Path) -> None:
        config = load_config(root=isolated_config)
        assert isinstance(config, Config)
        assert config.lease.duration_minutes == 30.0
        assert config.lease.heartbeat_interval == 10.0
        assert config.tracking.idle_threshold_minutes == 5.0
        assert config.storage.root is None

    def test_project_config(self, isolated_config: Path) -> None:
        write_project_config(
            isolated_config,
            """
lease:
  duration_minutes: 12
  heartbeat_interval_minutes: 3
tracking:
  idle_threshold_minutes: 0
""",
        )
        config = load_config(root=isolated_config)
        assert config.lease.duration_minutes == 12.0
        assert config.lease.heartbeat_interval == 3.0
        assert config.tracking.idle_threshold_minutes == 0.0

    def test_user_layer_below_project(self, isolated_config: Path, tmp_path: Path) -> None:
        user_dir = tmp_path / "xdg" / "devlog"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text(
            "lease:\n  duration_minutes: 45\nstorage:\n  guard_timeout: 2\n", encoding="utf-8"
        )
        write_project_config(isolated_config, "lease:\n  duration_minutes: 20\n")

        config = load_config(root=isolated_config)
        assert config.lease.duration_minutes == 20.0
        assert config.storage.guard_timeout == 2.0

    def test_env_overrides_files(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        write_project_config(isolated_config, "lease:\n  duration_minutes: 20\n")
        monkeypatch.setenv("DEVLOG_LEASE_MINUTES", "50")
        monkeypatch.setenv("DEVLOG_PATH", "/srv/devlog")
        monkeypatch.setenv("DEVLOG_LOG", "/tmp/devlog.log")

        config = load_config(root=isolated_config)
        assert config.lease.duration_minutes == 50.0
        assert config.storage.root == "/srv/devlog"
        assert config.logging.file == "/tmp/devlog.log"

    def test_non_numeric_env_ignored(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEVLOG_LEASE_MINUTES", "soon")
        assert load_config(root=isolated_config).lease.duration_minutes == 30.0

    def test_explicit_overrides_win(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEVLOG_LEASE_MINUTES", "50")
        config = load_config(root=isolated_config, overrides={"lease": {"duration_minutes": 5}})
        assert config.lease.duration_minutes == 5.0

    def test_invalid_yaml_uses_defaults(self, isolated_config: Path) -> None:
        write_project_config(isolated_config, "invalid: yaml: :")
        assert load_config(root=isolated_config).lease.duration_minutes == 30.0

    def test_extra_sections_preserved(self, isolated_config: Path) -> None:
        write_project_config(isolated_config, "dashboard:\n  port: 8080\n")
        config = load_config(root=isolated_config)
        assert config.extra == {"dashboard": {"port": 8080}}


class TestValidation:
    def test_heartbeat_defaults_to_third_of_lease(self) -> None:
        assert LeaseConfig(duration_minutes=9).heartbeat_interval == 3.0

    def test_non_positive_lease_rejected(self) -> None:
        with pytest.raises(ValueError, match="duration_minutes"):
            dict_to_config({"lease": {"duration_minutes": 0}})

    def test_heartbeat_must_be_shorter_than_lease(self) -> None:
        with pytest.raises(ValueError, match="shorter"):
            dict_to_config({"lease": {"duration_minutes": 10, "heartbeat_interval_minutes": 10}})

    def test_negative_idle_threshold_rejected(self) -> None:
        with pytest.raises(ValueError, match="idle"):
            dict_to_config({"tracking": {"idle_threshold_minutes": -1}})

    def test_bad_guard_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="guard_timeout"):
            dict_to_config({"storage": {"guard_timeout": 0}})
