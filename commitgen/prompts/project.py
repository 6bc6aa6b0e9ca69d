"""Project metadata included as context in every prompt."""

import json
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectInfo:
    name: str
    description: str = ""

    def describe(self) -> str:
        if self.description:
            return f"Project: {self.name} ({self.description})"
        return f"Project: {self.name}"


def load_project_info(root: Path) -> ProjectInfo:
    """Read name/description from pyproject.toml or package.json, else use the directory name."""
    pyproject = root / 'pyproject.toml'
    if pyproject.is_file():
        try:
            with open(pyproject, 'rb') as f:
                project = tomllib.load(f).get('project', {})
            if project.get('name'):
                return ProjectInfo(project['name'], str(project.get('description', '')))
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning("Could not read %s: %s", pyproject, e)

    package_json = root / 'package.json'
    if package_json.is_file():
        try:
            with open(package_json, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict) and data.get('name'):
                return ProjectInfo(str(data['name']), str(data.get('description', '')))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read %s: %s", package_json, e)

    return ProjectInfo(root.name)
