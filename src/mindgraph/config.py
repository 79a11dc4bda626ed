"""Project configuration loading.

A project directory holds a ``mindgraph.yaml``::

    name: my-map
    version: 1
    document: map.mmap
    view:
      dev_mode: false
      dev_url: http://localhost:5173
      dist_path: dist/index.html

Environment variables override the file for the view settings
(``MINDGRAPH_DEV_MODE``, ``MINDGRAPH_DEV_URL``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from mindgraph.graph.document import DEFAULT_SUFFIX

CONFIG_FILENAME = "mindgraph.yaml"

# Default configuration values
DEFAULT_DEV_URL = "http://localhost:5173"
DEFAULT_DIST_PATH = "dist/index.html"
DEFAULT_DOCUMENT = f"map{DEFAULT_SUFFIX}"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in _TRUTHY


@dataclass
class ViewConfig:
    """Where the rendering frontend is loaded from.

    In dev mode the view is served by a frontend dev server; otherwise the
    built bundle is loaded from disk, relative to the project directory.

    Attributes:
        dev_mode: Load the view from the dev server.
        dev_url: Dev server URL.
        dist_path: Built frontend entry point, relative to the project root.
    """

    dev_mode: bool = False
    dev_url: str = DEFAULT_DEV_URL
    dist_path: str = DEFAULT_DIST_PATH

    def effective_dev_mode(self) -> bool:
        """Dev mode after applying MINDGRAPH_DEV_MODE."""
        override = _env_flag("MINDGRAPH_DEV_MODE")
        return self.dev_mode if override is None else override

    def frontend_url(self, project_path: Path | None = None) -> str:
        """Return the URL the view should be loaded from.

        Args:
            project_path: Base for a relative ``dist_path``. Defaults to cwd.
        """
        if self.effective_dev_mode():
            return os.getenv("MINDGRAPH_DEV_URL") or self.dev_url

        dist = Path(self.dist_path)
        if not dist.is_absolute():
            dist = (project_path or Path()).absolute() / dist
        return dist.as_uri()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ViewConfig:
        return cls(
            dev_mode=bool(data.get("dev_mode", False)),
            dev_url=str(data.get("dev_url", DEFAULT_DEV_URL)),
            dist_path=str(data.get("dist_path", DEFAULT_DIST_PATH)),
        )


@dataclass
class ProjectConfig:
    """Configuration for a mindgraph project."""

    name: str
    version: int = 1
    document: str = DEFAULT_DOCUMENT
    view: ViewConfig = field(default_factory=ViewConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary containing config fields.

        Returns:
            ProjectConfig instance.
        """
        return cls(
            name=data.get("name", "unnamed"),
            version=data.get("version", 1),
            document=data.get("document", DEFAULT_DOCUMENT),
            view=ViewConfig.from_dict(dict(data.get("view") or {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "document": self.document,
            "view": {
                "dev_mode": self.view.dev_mode,
                "dev_url": self.view.dev_url,
                "dist_path": self.view.dist_path,
            },
        }

    def document_path(self, project_path: Path) -> Path:
        return project_path / self.document


class ProjectConfigError(Exception):
    """Raised when project configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load project config at {path}: {reason}")


def load_project_config(project_path: Path) -> ProjectConfig:
    """Load project configuration from mindgraph.yaml.

    Args:
        project_path: Path to the project root directory.

    Returns:
        ProjectConfig instance.

    Raises:
        ProjectConfigError: If config cannot be loaded.
    """
    config_path = project_path / CONFIG_FILENAME

    if not config_path.exists():
        raise ProjectConfigError(config_path, "File not found")

    yaml = YAML()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise ProjectConfigError(config_path, "Empty file")

        return ProjectConfig.from_dict(dict(data))
    except Exception as e:
        if isinstance(e, ProjectConfigError):
            raise
        raise ProjectConfigError(config_path, str(e)) from e


def load_project_config_or_default(project_path: Path) -> ProjectConfig:
    """Like load_project_config, but a missing file yields defaults."""
    if not (project_path / CONFIG_FILENAME).exists():
        return create_default_config(project_path.absolute().name or "unnamed")
    return load_project_config(project_path)


def create_default_config(name: str) -> ProjectConfig:
    """Create a default project configuration."""
    return ProjectConfig(name=name)


def write_project_config(config: ProjectConfig, project_path: Path) -> Path:
    """Write *config* to ``{project_path}/mindgraph.yaml``."""
    config_file = project_path / CONFIG_FILENAME
    yaml_writer = YAML()
    yaml_writer.default_flow_style = False
    with config_file.open("w", encoding="utf-8") as f:
        yaml_writer.dump(config.to_dict(), f)
    return config_file
