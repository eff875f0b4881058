"""Key/value settings file (``.env``) backing the /api/config endpoints."""

import os
from pathlib import Path
from typing import Dict

from dotenv import dotenv_values, set_key

from insta_sake.config import EDITABLE_SETTINGS, apply_setting


class SettingsFile:
    """Reads and updates the dotenv file the server was started with."""

    def __init__(self, path: str = ".env"):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Dict[str, str]:
        """Return file values; the process environment when there is no file."""
        if not self._path.exists():
            return dict(os.environ)
        return {k: v for k, v in dotenv_values(self._path).items() if v is not None}

    def public_view(self) -> Dict[str, object]:
        values = self.read()

        def pick(env_name: str) -> str:
            return values.get(env_name) or os.environ.get(env_name, "")

        view: Dict[str, object] = {"hasConfig": bool(pick("ACCESS_TOKEN"))}
        for field_name, (env_name, _) in EDITABLE_SETTINGS.items():
            view[field_name] = pick(env_name)
        return view

    def update(self, changes: Dict[str, str]) -> None:
        """Write the provided settings (keyed by API field name) to disk.

        Values are persisted as given, including empty strings; only
        non-empty values are pushed into the running process.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch(exist_ok=True)
        for field_name, value in changes.items():
            if field_name not in EDITABLE_SETTINGS or value is None:
                continue
            env_name, _ = EDITABLE_SETTINGS[field_name]
            set_key(str(self._path), env_name, value, quote_mode="never")
            if value:
                apply_setting(env_name, value)
