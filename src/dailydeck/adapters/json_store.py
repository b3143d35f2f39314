"""File-based JSON state store adapter."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a state document can't be read or written."""


class JsonFileStore:
    """
    JSON file state storage.

    Implements StateStore protocol. Each resource gets its own <key>.json file,
    replaced atomically on save.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Can't create data directory {self.data_dir}: {e}") from e

    def _path_for_key(self, key: str) -> Path:
        """Get the file path for a resource key."""
        if not key or "/" in key or key.startswith("."):
            raise StorageError(f"Invalid resource key: {key!r}")
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> Any | None:
        """Load a document. Returns None if not found."""
        path = self._path_for_key(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt state file {path}: {e}") from e

    def save(self, key: str, data: Any) -> None:
        """Write/overwrite a document."""
        path = self._path_for_key(key)
        try:
            payload = json.dumps(data, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Can't serialize {key}: {e}") from e

        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved {key} to {path}")

    def exists(self, key: str) -> bool:
        """Check if a document has been saved."""
        return self._path_for_key(key).exists()
