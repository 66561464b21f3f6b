"""Project-level asset pattern discovery."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import yaml

from .exceptions import ConfigError

APP_JSON_FILENAME = "app.json"
PROJECT_YAML_FILENAME = "imgopt.yaml"


class ProjectConfigReader:
    """Read the asset bundle patterns a project declares.

    `app.json` is consulted first (`expo.assetBundlePatterns` or a top-level
    `assetBundlePatterns`), then `imgopt.yaml` (`asset_bundle_patterns`).
    """

    def read_asset_patterns(self, project_root: Path) -> list[str]:
        """Return the declared glob patterns for the project.

        Args:
            project_root: Root directory of the project.

        Returns:
            list[str]: Glob patterns relative to the project root.

        Raises:
            ConfigError: If no project config exists or the patterns are malformed.
        """
        app_json = project_root / APP_JSON_FILENAME
        if app_json.exists():
            data = self._load(app_json, json.loads, json.JSONDecodeError)
            section = data.get("expo", data)
            if not isinstance(section, dict):
                raise ConfigError(f"{app_json}: 'expo' must be a mapping.")
            return self._validate(section.get("assetBundlePatterns"), app_json)

        project_yaml = project_root / PROJECT_YAML_FILENAME
        if project_yaml.exists():
            data = self._load(project_yaml, yaml.safe_load, yaml.YAMLError)
            return self._validate(data.get("asset_bundle_patterns"), project_yaml)

        raise ConfigError(
            f"No project configuration found in {project_root}; "
            f"expected {APP_JSON_FILENAME} or {PROJECT_YAML_FILENAME}."
        )

    def _load(
        self, path: Path, parse: Callable[[str], Any], error_type: type[Exception]
    ) -> dict[str, Any]:
        try:
            data = parse(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Could not read {path}: {exc}") from exc
        except (error_type, UnicodeDecodeError) as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level.")
        return data

    def _validate(self, patterns: Any, source: Path) -> list[str]:
        if patterns is None:
            raise ConfigError(f"{source} does not declare any asset bundle patterns.")
        if not isinstance(patterns, list) or not all(isinstance(item, str) for item in patterns):
            raise ConfigError(f"{source}: asset bundle patterns must be a list of strings.")
        return list(patterns)


__all__ = ["ProjectConfigReader", "APP_JSON_FILENAME", "PROJECT_YAML_FILENAME"]
