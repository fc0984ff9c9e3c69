# ==============================================================================
# Client Storage Implementations
# ==============================================================================
"""
ClientStorage adapters for the capture agent.

- FileClientStorage: JSON object on disk, survives process restarts
- MemoryClientStorage: dict-backed, lives as long as the agent
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from clicktrail.base.storage import ClientStorage

logger = logging.getLogger(__name__)


class FileClientStorage(ClientStorage):
    """
    ClientStorage persisted as a JSON object in a single file.

    Writes go to a temporary file that is renamed over the target, so a
    crash mid-write never leaves a truncated store behind.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        try:
            data = json.loads(self._path.read_text())
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable client storage %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".storage-")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
            os.replace(tmp, self._path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class MemoryClientStorage(ClientStorage):
    """ClientStorage held in a dict."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)
