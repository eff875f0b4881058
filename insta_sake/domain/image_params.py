"""Form parameters for the studio and label image endpoints, clamped to safe ranges."""

from dataclasses import dataclass
from typing import Optional

STUDIO_TONES = {
    "warm": ("#fbf7f0", "#efe7dd"),
    "neutral": ("#f6f6f6", "#e9e9e9"),
    "cool": ("#f2f6fb", "#e3e9f2"),
}


def _clamp(value, low, high):
    return max(low, min(high, value))


def _float(raw: Optional[str], default: float) -> float:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return default if value != value else value  # NaN


def _int(raw: Optional[str], default: int) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        # "12.7" -> 12, like parseInt
        try:
            return int(_float(raw, float(default)))
        except OverflowError:
            return default


@dataclass
class CleanParams:
    tone: str = "warm"
    brightness: float = 1.0
    shadow: bool = True
    subject_scale: float = 1.0
    offset_x: int = 0
    offset_y: int = 0
    shadow_strength: float = 0.35

    @property
    def colors(self):
        return STUDIO_TONES.get(self.tone, STUDIO_TONES["warm"])

    @classmethod
    def from_form(
        cls,
        bg_tone: Optional[str] = None,
        brightness: Optional[str] = None,
        shadow: Optional[str] = None,
        subject_scale: Optional[str] = None,
        offset_x: Optional[str] = None,
        offset_y: Optional[str] = None,
        shadow_strength: Optional[str] = None,
    ) -> "CleanParams":
        return cls(
            tone=(bg_tone or "warm").strip().lower(),
            brightness=_clamp(_float(brightness, 1.0), 0.85, 1.15),
            shadow=(shadow or "true").strip().lower() != "false",
            subject_scale=_clamp(_float(subject_scale, 1.0), 0.7, 1.2),
            offset_x=_clamp(_int(offset_x, 0), -160, 160),
            offset_y=_clamp(_int(offset_y, 0), -160, 160),
            shadow_strength=_clamp(_float(shadow_strength, 0.35), 0.1, 0.8),
        )


@dataclass
class LabelParams:
    width: int = 1000
    height: int = 1400
    margin: float = 0.08
    background: str = "transparent"  # "transparent" | "white"

    @classmethod
    def from_form(
        cls,
        width: Optional[str] = None,
        height: Optional[str] = None,
        margin: Optional[str] = None,
        background: Optional[str] = None,
    ) -> "LabelParams":
        mode = (background or "transparent").strip().lower()
        return cls(
            width=_clamp(_int(width, 1000), 512, 2048),
            height=_clamp(_int(height, 1400), 512, 2048),
            margin=_clamp(_float(margin, 0.08), 0.0, 0.2),
            background="white" if mode == "white" else "transparent",
        )
