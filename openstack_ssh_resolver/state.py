"""Cached provider ids for named instances, persisted as a JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .exceptions import StateError
from .resolver.lookup import InstanceHandle

logger = logging.getLogger(__name__)


class InstanceStateStore:
    """Maps instance names to the provider ids seen for them."""

    def __init__(self, path: str | Path):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, name: str) -> str | None:
        return self._load().get(name)

    def set(self, name: str, instance_id: str) -> None:
        ids = self._load()
        if ids.get(name) == instance_id:
            return
        ids[name] = instance_id
        self._save(ids)
        logger.debug("Cached id %s for %s", instance_id, name, extra={"instance": name, "instance_id": instance_id})

    def clear(self, name: str) -> None:
        """Forget the cached id for ``name``; a no-op if none is cached."""
        ids = self._load()
        if ids.pop(name, None) is None:
            return
        self._save(ids)
        logger.info("Cleared cached id for %s", name, extra={"instance": name})

    def handle_for(self, name: str, instance_id: str | None = None) -> InstanceHandle:
        """Build a handle, preferring an explicit id over the cached one."""
        return InstanceHandle(name=name, id=instance_id or self.get(name))

    def _load(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (OSError, ValueError) as exc:
            raise StateError(f"Could not read state file {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StateError(f"State file {self._path} must contain a JSON object")
        return {str(k): str(v) for k, v in data.items() if v}

    def _save(self, ids: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(ids, indent=2, sort_keys=True) + "\n")
        except OSError as exc:
            raise StateError(f"Could not write state file {self._path}: {exc}") from exc
