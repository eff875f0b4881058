"""JSON document storage adapter: implements StoragePort.

All collections live in one file (``{"posts": [...]}``) so the database can
be copied or inspected as a single document.
"""

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Dict


def _log(msg: str):
    print(msg, file=sys.stderr)


class JsonStorage:
    """File-based JSON storage implementing StoragePort protocol."""

    def __init__(self, path: str = "db.json"):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> Dict[str, list]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            _log(f"[JsonStorage] {self._path} unreadable, starting empty: {e}")
            return {}
        return raw if isinstance(raw, dict) else {}

    def load(self, key: str) -> list:
        value = self._read_document().get(key, [])
        return value if isinstance(value, list) else []

    def save(self, key: str, data: list) -> None:
        document = self._read_document()
        document[key] = data
        content = json.dumps(document, ensure_ascii=False, indent=2)
        # Atomic write
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, str(self._path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
