"""
Persistence capability for client-side state.

Client state (follow list, watched set, cached feed) is saved under fixed
storage names through a small load/save interface, injected into the state
objects rather than reached through globals.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
import json
import os
import tempfile

from ..logging_conf import get_logger

logger = get_logger(__name__)

# Fixed storage names
CHANNELS_KEY = "channel_ids"
WATCHED_KEY = "watched_videos"
FEED_CACHE_KEY = "feed_cache"


class Storage(ABC):
    """Simple JSON key-value persistence."""

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Return the saved value, or None when nothing is saved."""

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Persist a JSON-compatible value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Forget a key."""


class MemoryStorage(Storage):
    """Storage that lives only as long as the process."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def load(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(Storage):
    """
    One JSON file per key inside a state directory.

    Writes go through a temp file and an atomic rename so a crash never
    leaves a half-written file behind. Unreadable files load as None.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("storage_read_error", key=key, error=str(e))
            return None

    def save(self, key: str, value: Any) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
