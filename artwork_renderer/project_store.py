"""
YAML-backed project storage.

Each project lives in its own directory under ARTWORK_STORE_DIR:

  <store>/<project_id>/project.yml    name, feed URL
  <store>/<project_id>/template.yml   base artwork + style
  <store>/<project_id>/episodes.yml   episode list
"""

import re
import secrets
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ruamel.yaml import YAML

from .constants import logger, STORE_DIR
from .errors import ConfigurationError, StorageError
from .models import PersistedEpisode
from .style import ProjectTemplate

PROJECT_FILE = 'project.yml'
TEMPLATE_FILE = 'template.yml'
EPISODES_FILE = 'episodes.yml'

_PROJECT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def _write_yaml(path: Path, data: Any) -> None:
    """Write data to a YAML file, replacing it atomically."""
    yaml_parser = YAML()
    yaml_parser.default_flow_style = False
    tmp_path = path.with_name(path.name + '.tmp')
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, 'w', encoding='utf-8') as f:
            yaml_parser.dump(data, f)
        tmp_path.replace(path)
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


def _read_yaml(path: Path, default: Any = None) -> Any:
    """Read a YAML file, returning default when it does not exist."""
    if not path.exists():
        return default
    yaml_parser = YAML()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml_parser.load(f)
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e
    return default if data is None else data


def new_id() -> str:
    return secrets.token_hex(6)


class YamlProjectStore:
    """Projects, templates and episodes kept as YAML files on disk."""

    def __init__(self, base_path: Path = STORE_DIR):
        self.base_path = Path(base_path)
        self._lock = threading.RLock()

    def _project_dir(self, project_id: str) -> Path:
        if not project_id or not _PROJECT_ID_PATTERN.match(project_id):
            raise ConfigurationError(f"Invalid project id: {project_id!r}")
        return self.base_path / project_id

    def _require_project(self, project_id: str) -> Path:
        project_dir = self._project_dir(project_id)
        if not (project_dir / PROJECT_FILE).exists():
            raise ConfigurationError(f"Project not found: {project_id}")
        return project_dir

    # ========================================================================
    # Projects
    # ========================================================================

    def create_project(self, name: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = project_id or new_id()
        project_dir = self._project_dir(project_id)
        with self._lock:
            if (project_dir / PROJECT_FILE).exists():
                raise ConfigurationError(f"Project already exists: {project_id}")
            project = {
                'id': project_id,
                'name': name,
                'feed_url': None,
                'created_at': datetime.now(timezone.utc).isoformat(),
            }
            _write_yaml(project_dir / PROJECT_FILE, project)
        logger.info(f"PROJECT_CREATED id={project_id} name={name!r}")
        return project

    def list_projects(self) -> List[Dict[str, Any]]:
        if not self.base_path.exists():
            return []
        projects = []
        for project_file in sorted(self.base_path.glob(f'*/{PROJECT_FILE}')):
            projects.append(dict(_read_yaml(project_file, {})))
        return projects

    def get_project(self, project_id: str) -> Dict[str, Any]:
        project_dir = self._require_project(project_id)
        return dict(_read_yaml(project_dir / PROJECT_FILE, {}))

    def update_project(self, project_id: str, **changes: Any) -> Dict[str, Any]:
        with self._lock:
            project_dir = self._require_project(project_id)
            project = dict(_read_yaml(project_dir / PROJECT_FILE, {}))
            project.update(changes)
            _write_yaml(project_dir / PROJECT_FILE, project)
        return project

    # ========================================================================
    # Templates
    # ========================================================================

    def get_template(self, project_id: str) -> Optional[ProjectTemplate]:
        project_dir = self._require_project(project_id)
        data = _read_yaml(project_dir / TEMPLATE_FILE)
        if data is None:
            return None
        return ProjectTemplate.from_dict(dict(data))

    def save_template(self, project_id: str, template: ProjectTemplate) -> ProjectTemplate:
        with self._lock:
            project_dir = self._require_project(project_id)
            _write_yaml(project_dir / TEMPLATE_FILE, template.to_dict())
        logger.info(f"TEMPLATE_SAVED project={project_id} base={template.base_artwork_url}")
        return template

    # ========================================================================
    # Episodes
    # ========================================================================

    def _load_episodes(self, project_dir: Path) -> List[PersistedEpisode]:
        raw = _read_yaml(project_dir / EPISODES_FILE, [])
        return [PersistedEpisode.from_dict(dict(item)) for item in raw]

    def _save_episodes(self, project_dir: Path, episodes: List[PersistedEpisode]) -> None:
        _write_yaml(project_dir / EPISODES_FILE, [episode.to_dict() for episode in episodes])

    def list_episodes(self, project_id: str) -> List[PersistedEpisode]:
        with self._lock:
            return self._load_episodes(self._require_project(project_id))

    def get_episode(self, project_id: str, episode_id: str) -> Optional[PersistedEpisode]:
        for episode in self.list_episodes(project_id):
            if episode.id == episode_id:
                return episode
        return None

    def add_episodes(self, project_id: str, episodes: Iterable[PersistedEpisode]) -> int:
        with self._lock:
            project_dir = self._require_project(project_id)
            stored = self._load_episodes(project_dir)
            added = 0
            for episode in episodes:
                episode.project_id = project_id
                stored.append(episode)
                added += 1
            self._save_episodes(project_dir, stored)
        return added

    def update_episode(self, project_id: str, episode_id: str, **changes: Any) -> PersistedEpisode:
        """Apply field changes to one episode and persist them."""
        return self.update_episodes(project_id, {episode_id: changes})[0]

    def update_episodes(
        self,
        project_id: str,
        changes_by_id: Dict[str, Dict[str, Any]]
    ) -> List[PersistedEpisode]:
        """Apply field changes to several episodes in one write."""
        with self._lock:
            project_dir = self._require_project(project_id)
            stored = self._load_episodes(project_dir)
            by_id = {episode.id: episode for episode in stored}

            missing = [episode_id for episode_id in changes_by_id if episode_id not in by_id]
            if missing:
                raise ConfigurationError(f"Episodes not found in project {project_id}: {', '.join(missing)}")

            updated = []
            for episode_id, changes in changes_by_id.items():
                episode = by_id[episode_id]
                for name, value in changes.items():
                    if not hasattr(episode, name) or name in ('id', 'project_id'):
                        raise ConfigurationError(f"Unknown episode field: {name}")
                    setattr(episode, name, value)
                updated.append(episode)

            self._save_episodes(project_dir, stored)
        return updated

    def clear_episodes(self, project_id: str) -> int:
        with self._lock:
            project_dir = self._require_project(project_id)
            count = len(self._load_episodes(project_dir))
            self._save_episodes(project_dir, [])
        logger.info(f"EPISODES_CLEARED project={project_id} count={count}")
        return count
