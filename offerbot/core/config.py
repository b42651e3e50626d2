"""Configuration models and YAML loader for the offer clicker."""

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_MS = 1000

DEFAULT_CATEGORIES: tuple[str, ...] = ("JustGrab", "Plus", "6 seats", "Premium", "Executive")


class TimeMode(str, Enum):
    RANDOM = "Random"
    MANUAL = "Manual"


class AirportPolicy(str, Enum):
    """How airport sub-criteria are recognized in offer text.

    strict: parenthetical direction markers, e.g. "(To KLIA)" / "(From KLIA)".
    loose:  the bare airport keyword anywhere in the text, either direction.
    """

    STRICT = "strict"
    LOOSE = "loose"


def _lenient_float(value: Any) -> float | None:
    """Parse user-entered numeric text. Unparsable input becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            logger.warning("Ignoring unparsable number %r", value)
            return None
    if not math.isfinite(parsed):
        logger.warning("Ignoring non-finite number %r", value)
        return None
    return parsed


class JobTarget(BaseModel):
    """Per-category fine filters. Ignored entirely while disabled."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    wants_origin_airport: bool = False
    wants_destination_airport: bool = False
    min_price_enabled: bool = False
    min_price: float | None = None
    max_distance_enabled: bool = False
    max_distance_km: float | None = None

    @field_validator("min_price", "max_distance_km", mode="before")
    @classmethod
    def parse_number(cls, v: Any) -> float | None:
        return _lenient_float(v)


class Configuration(BaseModel):
    """The user's acceptance intent plus the service-enabled flag.

    Frozen: the snapshot store replaces it whole, never mutates it.
    """

    model_config = ConfigDict(frozen=True)

    service_enabled: bool = False
    category_filters: dict[str, bool] = Field(
        default_factory=lambda: dict.fromkeys(DEFAULT_CATEGORIES, False),
    )
    per_category_target: dict[str, JobTarget] = Field(default_factory=dict)
    time_mode: TimeMode = TimeMode.RANDOM
    manual_hours: frozenset[int] = frozenset()
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    airport_policy: AirportPolicy = AirportPolicy.STRICT
    to_airport_marker: str = "(To KLIA)"
    from_airport_marker: str = "(From KLIA)"
    airport_keyword: str = "KLIA"

    @field_validator("manual_hours", mode="before")
    @classmethod
    def selected_hours(cls, v: Any) -> Any:
        """Accept either a set of hours or an hour -> checked mapping."""
        if isinstance(v, dict):
            return frozenset(int(hour) for hour, checked in v.items() if checked)
        return v

    @field_validator("manual_hours")
    @classmethod
    def hours_in_range(cls, v: frozenset[int]) -> frozenset[int]:
        bad = sorted(h for h in v if not 0 <= h <= 23)
        if bad:
            msg = f"manual_hours must be within 0..23, got {bad}"
            raise ValueError(msg)
        return v

    @field_validator("refresh_interval_ms", mode="before")
    @classmethod
    def interval_or_default(cls, v: Any) -> int:
        parsed = _lenient_float(v)
        if parsed is None or parsed <= 0:
            logger.warning(
                "Invalid refresh interval %r, using %d ms", v, DEFAULT_REFRESH_INTERVAL_MS,
            )
            return DEFAULT_REFRESH_INTERVAL_MS
        return int(parsed)


class TimingConfig(BaseModel):
    """Delays (seconds) for the recovery and refresh timer lines."""

    recovery_timeout_s: float = Field(default=5.0, gt=0)
    poll_interval_s: float = Field(default=2.0, gt=0)
    unavailable_backoff_s: float = Field(default=5.0, gt=0)
    force_refresh_settle_s: float = Field(default=2.0, ge=0)
    tree_poll_interval_s: float = Field(default=0.5, gt=0)
    refresh_jitter: float = Field(default=0.2, ge=0.0, lt=1.0)


class GestureConfig(BaseModel):
    """Floating control surface touch classification."""

    long_press_s: float = Field(default=1.0, gt=0)
    drag_tolerance_px: float = Field(default=10.0, ge=0)


class MarkerConfig(BaseModel):
    """Texts and resource ids that identify the target application's screens."""

    booking_confirmed: str = "Booking is confirmed!"
    close: str = "Close"
    confirm: str = "Confirm"
    accept: str = "Accept"
    error_texts: list[str] = Field(
        default_factory=lambda: ["Slots are fully reserved", "Request timed out"],
    )
    planner: str = "Booking Planner"
    cancel: str = "Cancel"
    back_description: str = "Back"
    candidate_id: str = "com.grabtaxi.driver2:id/unified_item_layout"
    back_button_id: str = "com.grabtaxi.driver2:id/jobs_toolbar_left_icon"


class DeviceConfig(BaseModel):
    """Host platform binding."""

    backend: str = "adb"
    adb_path: str = "adb"
    serial: str = ""
    swipe_duration_ms: int = Field(default=200, ge=1)
    command_timeout_s: float = Field(default=15.0, gt=0)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    acceptance: Configuration = Field(default_factory=Configuration)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    gesture: GestureConfig = Field(default_factory=GestureConfig)
    markers: MarkerConfig = Field(default_factory=MarkerConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
