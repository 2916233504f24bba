"""Tests for twinsync.config -- run configuration precedence."""

import pytest

from twinsync.config import Config, load_config, validate_config
from twinsync.sync.models import ConflictStrategy

_ENV_VARS = (
    "TWINSYNC_SOURCE",
    "TWINSYNC_DESTINATION",
    "TWINSYNC_STRATEGY",
    "TWINSYNC_EXCLUDE",
    "TWINSYNC_DRY_RUN",
    "TWINSYNC_VERBOSE",
    "TWINSYNC_LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Tests for load_config() precedence and validation."""

    def test_cli_arguments(self, trees):
        src, dst = trees
        config = load_config(
            source=str(src),
            destination=str(dst),
            strategy="newest",
            dry_run=True,
            exclude=r"\.bak$",
            log_file="run.log",
        )

        assert isinstance(config, Config)
        assert config.source == src
        assert config.destination == dst
        assert config.strategy is ConflictStrategy.NEWEST
        assert config.dry_run is True
        assert config.verbose is False
        assert config.exclude.search("x.bak")
        assert config.log_file == "run.log"

    def test_defaults(self, trees):
        config = load_config(*map(str, trees))

        assert config.strategy is ConflictStrategy.PROMPT
        assert config.dry_run is False
        assert config.exclude is None
        assert config.log_file.startswith("twinsync_")
        assert config.log_file.endswith(".log")

    def test_env_fills_missing_cli_values(self, trees, monkeypatch):
        src, dst = trees
        monkeypatch.setenv("TWINSYNC_SOURCE", str(src))
        monkeypatch.setenv("TWINSYNC_DESTINATION", str(dst))
        monkeypatch.setenv("TWINSYNC_STRATEGY", "dest-wins")
        monkeypatch.setenv("TWINSYNC_DRY_RUN", "yes")

        config = load_config()

        assert config.source == src
        assert config.strategy is ConflictStrategy.DEST_WINS
        assert config.dry_run is True

    def test_cli_beats_env_beats_yaml(self, trees, monkeypatch):
        src, dst = trees
        monkeypatch.setenv("TWINSYNC_STRATEGY", "dest-wins")
        fallbacks = {"conflict_strategy": "newest", "exclude": "^skip/"}

        from_env = load_config(
            str(src), str(dst), yaml_fallbacks=fallbacks
        )
        from_cli = load_config(
            str(src), str(dst), strategy="keep-both", yaml_fallbacks=fallbacks
        )

        assert from_env.strategy is ConflictStrategy.DEST_WINS
        assert from_env.exclude.pattern == "^skip/"
        assert from_cli.strategy is ConflictStrategy.KEEP_BOTH

    def test_env_false_overrides_yaml_true(self, trees, monkeypatch):
        monkeypatch.setenv("TWINSYNC_VERBOSE", "0")
        config = load_config(
            *map(str, trees), yaml_fallbacks={"verbose": True}
        )
        assert config.verbose is False

    def test_yaml_endpoints(self, trees):
        src, dst = trees
        config = load_config(
            yaml_fallbacks={"source": str(src), "destination": str(dst)}
        )
        assert (config.source, config.destination) == (src, dst)

    def test_log_file_env_beats_yaml(self, trees, monkeypatch):
        monkeypatch.setenv("TWINSYNC_LOG_FILE", "env.log")
        fallbacks = {"log_file": "yaml.log"}

        from_env = load_config(*map(str, trees), yaml_fallbacks=fallbacks)
        from_cli = load_config(
            *map(str, trees), log_file="cli.log", yaml_fallbacks=fallbacks
        )

        assert from_env.log_file == "env.log"
        assert from_cli.log_file == "cli.log"

    def test_log_file_from_yaml(self, trees):
        config = load_config(
            *map(str, trees), yaml_fallbacks={"log_file": "yaml.log"}
        )
        assert config.log_file == "yaml.log"

    def test_missing_source(self):
        with pytest.raises(ValueError, match="Source directory not given"):
            load_config()

    def test_missing_destination(self, trees):
        with pytest.raises(
            ValueError, match="Destination directory not given"
        ):
            load_config(str(trees[0]))

    def test_unknown_strategy(self, trees):
        with pytest.raises(ValueError, match="is not recognised"):
            load_config(*map(str, trees), strategy="coin-flip")

    def test_bad_exclude(self, trees):
        with pytest.raises(ValueError, match="not a valid regular expression"):
            load_config(*map(str, trees), exclude="(")

    def test_nonexistent_endpoint(self, tmp_path, trees):
        with pytest.raises(ValueError, match="does not exist"):
            load_config(str(tmp_path / "missing"), str(trees[1]))


class TestValidateConfig:
    def test_resolves_relative_paths(self, trees, monkeypatch):
        src, dst = trees
        monkeypatch.chdir(src.parent)
        config = Config(source="src", destination="dst")

        validate_config(config)

        assert config.source == src
        assert config.destination == dst

    def test_same_endpoint_rejected(self, trees):
        src, _ = trees
        with pytest.raises(ValueError, match="same directory"):
            validate_config(Config(source=src, destination=src))

    def test_nested_endpoint_rejected(self, trees):
        src, _ = trees
        inner = src / "inner"
        inner.mkdir()
        with pytest.raises(ValueError, match="must not be nested"):
            validate_config(Config(source=src, destination=inner))

    def test_symlink_to_same_directory_rejected(self, trees, tmp_path):
        src, _ = trees
        alias = tmp_path / "alias"
        alias.symlink_to(src, target_is_directory=True)
        with pytest.raises(ValueError, match="same directory"):
            validate_config(Config(source=src, destination=alias))
