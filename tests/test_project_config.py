"""Tests for reading a project's declared asset patterns."""

from pathlib import Path

import pytest

from imgopt.config import ConfigError, ProjectConfigReader


def test_reads_patterns_from_app_json(tmp_path: Path) -> None:
    (tmp_path / "app.json").write_text(
        '{"expo": {"name": "demo", "assetBundlePatterns": ["assets/**/*", "img/*.png"]}}',
        encoding="utf-8",
    )

    patterns = ProjectConfigReader().read_asset_patterns(tmp_path)

    assert patterns == ["assets/**/*", "img/*.png"]


def test_reads_top_level_patterns_from_app_json(tmp_path: Path) -> None:
    (tmp_path / "app.json").write_text('{"assetBundlePatterns": ["**/*"]}', encoding="utf-8")

    assert ProjectConfigReader().read_asset_patterns(tmp_path) == ["**/*"]


def test_falls_back_to_project_yaml(tmp_path: Path) -> None:
    (tmp_path / "imgopt.yaml").write_text(
        "asset_bundle_patterns:\n  - static/*.jpg\n", encoding="utf-8"
    )

    assert ProjectConfigReader().read_asset_patterns(tmp_path) == ["static/*.jpg"]


def test_app_json_takes_priority_over_yaml(tmp_path: Path) -> None:
    (tmp_path / "app.json").write_text('{"expo": {"assetBundlePatterns": ["a/*"]}}', encoding="utf-8")
    (tmp_path / "imgopt.yaml").write_text("asset_bundle_patterns: ['b/*']\n", encoding="utf-8")

    assert ProjectConfigReader().read_asset_patterns(tmp_path) == ["a/*"]


def test_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="No project configuration"):
        ProjectConfigReader().read_asset_patterns(tmp_path)


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '["assets/*"]',
        '{"expo": {"name": "demo"}}',
        '{"expo": {"assetBundlePatterns": "assets/*"}}',
        '{"expo": {"assetBundlePatterns": ["ok", 3]}}',
        '{"expo": "nope"}',
    ],
)
def test_malformed_app_json_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / "app.json").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        ProjectConfigReader().read_asset_patterns(tmp_path)


def test_malformed_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / "imgopt.yaml").write_text("asset_bundle_patterns: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        ProjectConfigReader().read_asset_patterns(tmp_path)


@pytest.mark.parametrize("filename", ["app.json", "imgopt.yaml"])
def test_undecodable_config_raises(tmp_path: Path, filename: str) -> None:
    (tmp_path / filename).write_bytes(b"\xff\xfe{}")

    with pytest.raises(ConfigError):
        ProjectConfigReader().read_asset_patterns(tmp_path)
