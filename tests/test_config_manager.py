"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from imgopt.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    ConfigManager,
    ImgoptConfig,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_default_path_expands_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    assert manager.config_path == DEFAULT_CONFIG_PATH.expanduser()
    assert manager.config_path == tmp_path / ".imgopt" / "config.yaml"


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path.exists()
    text = path.read_text(encoding="utf-8")
    assert "imgopt configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, ImgoptConfig)
    assert config.optimization.quality == 80


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text(
        "optimization:\n  quality: 60\n  workers: 2\n", encoding="utf-8"
    )

    env = {"IMGOPT__OPTIMIZATION__QUALITY": "70", "IMGOPT__LOGGING__LEVEL": "DEBUG"}
    cli = {"optimization.quality": 90}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.optimization.workers == 2
    assert config.logging.level == "DEBUG"
    # CLI overrides take precedence over environment
    assert config.optimization.quality == 90


def test_environment_is_read_from_constructor_mapping(tmp_path: Path) -> None:
    manager = ConfigManager(
        tmp_path / "config.yaml", env={"IMGOPT__CLI__QUIET_DEFAULT": "true", "OTHER": "x"}
    )

    config = manager.load()

    assert config.cli.quiet_default is True


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_out_of_range_quality_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=ImgoptConfig(),
            file_overrides={"optimization": {"quality": 101}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=ImgoptConfig(), cli_overrides={"llm.model": "x"})

