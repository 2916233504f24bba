"""Tests for twinsync.config_loader -- hierarchical config loading."""

import textwrap

import pytest
import yaml

from twinsync.config_loader import (
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    interpolate_env_vars,
    load_hierarchical_config,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run with an empty CWD and HOME and no explicit config path."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("TWINSYNC_CONFIG", raising=False)
    monkeypatch.chdir(work)
    return work, home


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("SYNC_ROOT", "/data")
        assert interpolate_env_vars("${SYNC_ROOT}/src") == "/data/src"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ:-newest}") == "newest"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("STRATEGY_X", "dest-wins")
        assert interpolate_env_vars("${STRATEGY_X:-newest}") == "dest-wins"

    def test_unterminated_left_alone(self):
        assert interpolate_env_vars("${OPEN") == "${OPEN"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("BACKUP", "/mnt/b")
        data = {"sync": {"destination": "${BACKUP}", "dry_run": True}}
        assert _interpolate_recursive(data) == {
            "sync": {"destination": "/mnt/b", "dry_run": True}
        }


# -------------------------------------------------------------------------
# !include
# -------------------------------------------------------------------------


class TestIncludes:
    def test_relative_include(self, tmp_path):
        (tmp_path / "logging.yml").write_text("level: DEBUG\n")
        main = tmp_path / "config.yml"
        main.write_text("logging: !include logging.yml\n")

        assert _load_yaml_with_includes(main) == {"logging": {"level": "DEBUG"}}

    def test_missing_include(self, tmp_path):
        main = tmp_path / "config.yml"
        main.write_text("sync: !include nowhere.yml\n")

        with pytest.raises(FileNotFoundError, match="Include file not found"):
            _load_yaml_with_includes(main)

    def test_circular_include(self, tmp_path):
        (tmp_path / "a.yml").write_text("x: !include b.yml\n")
        (tmp_path / "b.yml").write_text("y: !include a.yml\n")

        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(tmp_path / "a.yml")

    def test_global_safe_loader_untouched(self):
        assert "!include" not in yaml.SafeLoader.yaml_constructors


# -------------------------------------------------------------------------
# Discovery and merge
# -------------------------------------------------------------------------


class TestDiscovery:
    def test_nothing_found(self, isolated):
        assert discover_config_files() == []
        assert load_hierarchical_config() == {}

    def test_precedence_order(self, isolated, monkeypatch, tmp_path):
        work, home = isolated
        explicit = tmp_path / "explicit.yml"
        explicit.write_text("{}\n")
        (work / ".twinsync").mkdir()
        project = work / ".twinsync" / "config.yml"
        project.write_text("{}\n")
        (home / ".config" / "twinsync").mkdir(parents=True)
        global_cfg = home / ".config" / "twinsync" / "config.yml"
        global_cfg.write_text("{}\n")
        monkeypatch.setenv("TWINSYNC_CONFIG", str(explicit))

        found = discover_config_files()

        assert found[0] == explicit.resolve()
        assert found[1:] == [project, global_cfg]


class TestLoadHierarchicalConfig:
    def test_project_replaces_global_sections(self, isolated):
        work, home = isolated
        (home / ".config" / "twinsync").mkdir(parents=True)
        (home / ".config" / "twinsync" / "config.yml").write_text(
            textwrap.dedent(
                """\
                sync:
                  conflict_strategy: newest
                logging:
                  level: DEBUG
                """
            )
        )
        (work / ".twinsync").mkdir()
        (work / ".twinsync" / "config.yml").write_text(
            textwrap.dedent(
                """\
                sync:
                  source: ./a
                """
            )
        )

        merged = load_hierarchical_config()

        # Top-level sections are replaced, not deep-merged
        assert merged["sync"] == {"source": "./a"}
        assert merged["logging"] == {"level": "DEBUG"}

    def test_interpolates_after_merge(self, isolated, monkeypatch):
        work, _ = isolated
        monkeypatch.setenv("MY_DST", "/backup")
        (work / ".twinsync").mkdir()
        (work / ".twinsync" / "config.yaml").write_text(
            "sync:\n  destination: ${MY_DST}\n"
        )

        assert load_hierarchical_config() == {
            "sync": {"destination": "/backup"}
        }

    def test_non_dict_root_skipped(self, isolated):
        work, _ = isolated
        (work / ".twinsync").mkdir()
        (work / ".twinsync" / "config.yml").write_text("- a\n- b\n")

        assert load_hierarchical_config() == {}

    def test_malformed_yaml_raises(self, isolated):
        work, _ = isolated
        (work / ".twinsync").mkdir()
        (work / ".twinsync" / "config.yml").write_text("sync: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()
