"""Post record and schedule-time parsing."""

from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

STATUS_SCHEDULED = "scheduled"
STATUS_POSTED = "posted"
STATUS_FAILED = "failed"

_WIRE_NAMES = {
    "image_path": "imagePath",
    "schedule_time": "scheduleTime",
    "created_at": "createdAt",
    "posted_at": "postedAt",
    "media_id": "mediaId",
}
_FIELD_NAMES = {v: k for k, v in _WIRE_NAMES.items()}


@dataclass
class ScheduledPost:
    id: int  # epoch milliseconds at creation
    image_path: str  # https URL or path relative to the server root
    caption: str
    schedule_time: str  # ISO-8601 as submitted
    status: str = STATUS_SCHEDULED  # "scheduled" | "posted" | "failed"
    created_at: str = ""
    posted_at: Optional[str] = None
    error: Optional[str] = None
    media_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """camelCase form used on the wire and on disk."""
        return {_WIRE_NAMES.get(k, k): v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduledPost":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _FIELD_NAMES.get(key, key)
            if name in known:
                kwargs[name] = value
        kwargs["id"] = int(kwargs["id"])
        kwargs.setdefault("image_path", "")
        kwargs.setdefault("caption", "")
        kwargs.setdefault("schedule_time", "")
        if kwargs.get("error") is not None and not isinstance(kwargs["error"], str):
            kwargs["error"] = str(kwargs["error"])
        return cls(**kwargs)

    def created_sort_key(self) -> float:
        """Creation time in ms; falls back to the id for records without one."""
        if self.created_at:
            try:
                return parse_schedule_time(self.created_at).timestamp() * 1000
            except ValueError:
                pass
        return float(self.id)


def parse_schedule_time(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    A trailing ``Z`` is accepted. Naive values are read as server-local time.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("schedule time is empty")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def iso_utc(dt: datetime) -> str:
    """JavaScript-style ISO string: UTC, millisecond precision, ``Z`` suffix."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
