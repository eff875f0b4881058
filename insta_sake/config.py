"""Configuration and shared settings."""

__version__ = "0.1.0"

import os
import sys
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


CONFIG = {
    "port": _int_env("PORT", 3001),
    # Local storage
    "db_file": os.getenv("DB_FILE", "db.json"),
    "uploads_dir": os.getenv("UPLOADS_DIR", "uploads"),
    "dist_dir": os.getenv("DIST_DIR", "dist"),
    "settings_file": os.getenv("SETTINGS_FILE", ".env"),
    # Shared-secret login; empty disables auth
    "app_password": os.getenv("APP_PASSWORD", ""),
    # Instagram (Meta Graph API)
    "access_token": os.getenv("ACCESS_TOKEN", ""),
    "instagram_user_id": os.getenv("INSTAGRAM_USER_ID", ""),
    "public_url": os.getenv("PUBLIC_URL", ""),
    "base_url": os.getenv("BASE_URL", ""),
    # AI services
    "openai_api_key": os.getenv("OPENAI_API_KEY", ""),
    "remove_bg_api_key": os.getenv("REMOVE_BG_API_KEY", ""),
    # Cloudinary (image hosting)
    "cloudinary_cloud_name": os.getenv("CLOUDINARY_CLOUD_NAME", ""),
    "cloudinary_api_key": os.getenv("CLOUDINARY_API_KEY", ""),
    "cloudinary_api_secret": os.getenv("CLOUDINARY_API_SECRET", ""),
    "cloudinary_folder": os.getenv("CLOUDINARY_FOLDER", "insta-sake"),
    # Dispatcher
    "scheduler_interval_seconds": _int_env("SCHEDULER_INTERVAL_SECONDS", 60),
    "post_limit": _int_env("POST_LIMIT", 100),
}

# Settings exposed through /api/config: request field -> (env var, CONFIG key)
EDITABLE_SETTINGS = {
    "accessToken": ("ACCESS_TOKEN", "access_token"),
    "instagramId": ("INSTAGRAM_USER_ID", "instagram_user_id"),
    "publicUrl": ("BASE_URL", "base_url"),
    "openAiKey": ("OPENAI_API_KEY", "openai_api_key"),
    "removeBgKey": ("REMOVE_BG_API_KEY", "remove_bg_api_key"),
}


def apply_setting(env_name: str, value: str) -> None:
    """Push a changed setting into the live process (os.environ + CONFIG)."""
    os.environ[env_name] = value
    for env_var, config_key in EDITABLE_SETTINGS.values():
        if env_var == env_name:
            CONFIG[config_key] = value
            return


def public_base_url() -> str:
    """Base URL used to expose local uploads; PUBLIC_URL wins over BASE_URL."""
    return CONFIG.get("public_url") or CONFIG.get("base_url") or ""


# ── Typed config ────────────────────────────────────────────


@dataclass
class CloudinaryConfig:
    cloud_name: str = ""
    api_key: str = ""
    api_secret: str = ""
    folder: str = "insta-sake"

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


@dataclass
class AppConfig:
    """Typed snapshot of CONFIG taken at startup.

    Instagram, OpenAI and remove.bg credentials are not part of it: they can be
    changed through /api/config, so their clients read the live CONFIG dict.
    """

    port: int = 3001
    db_file: str = "db.json"
    uploads_dir: str = "uploads"
    dist_dir: str = "dist"
    settings_file: str = ".env"
    app_password: str = ""
    scheduler_interval_seconds: int = 60
    post_limit: int = 100
    cloudinary: CloudinaryConfig = field(default_factory=CloudinaryConfig)

    @property
    def auth_required(self) -> bool:
        return bool(self.app_password)

    @classmethod
    def from_env(cls, config: Optional[Dict] = None) -> "AppConfig":
        """Create AppConfig from CONFIG (or an explicit dict with the same keys)."""
        c = CONFIG if config is None else config
        return cls(
            port=c["port"],
            db_file=c["db_file"],
            uploads_dir=c["uploads_dir"],
            dist_dir=c["dist_dir"],
            settings_file=c["settings_file"],
            app_password=c["app_password"],
            scheduler_interval_seconds=c["scheduler_interval_seconds"],
            post_limit=c["post_limit"],
            cloudinary=CloudinaryConfig(
                cloud_name=c["cloudinary_cloud_name"],
                api_key=c["cloudinary_api_key"],
                api_secret=c["cloudinary_api_secret"],
                folder=c["cloudinary_folder"],
            ),
        )
