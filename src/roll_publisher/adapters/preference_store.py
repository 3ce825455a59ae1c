"""File-backed preference storage."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from roll_publisher.services.credentials import PreferenceStore

_logger = logging.getLogger(__name__)


@dataclass
class JsonFilePreferenceStore(PreferenceStore):
    """Preference store persisted as a single JSON object on disk."""

    path: Path
    _values: dict[str, object] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._values = self._read()

    def get(self, key: str) -> object | None:
        """Return the stored value for a key."""
        return self._values.get(key)

    def set(self, key: str, value: object) -> None:
        """Store a value and flush to disk."""
        self._values[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        """Remove a key and flush to disk."""
        if self._values.pop(key, None) is not None:
            self._flush()

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            _logger.warning("Preferences file %s is unreadable; starting empty", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._values, handle, indent=2, sort_keys=True)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
