"""Acceptance criteria for job offers.

Check order (first failing step rejects):
  1. Category gate     — an enabled category name appears in the text
  2. Pickup-hour gate  — Manual time mode with hours selected
  3. Category target   — absent or disabled target accepts here
  4. Distance limit    — skipped when the destination-airport option is on
  5. Sub-criteria      — origin airport OR destination airport OR minimum fare
  6. No sub-criteria selected accepts anything in the category
"""

import logging

from pydantic import BaseModel, ConfigDict

from offerbot.core.config import AirportPolicy, Configuration, JobTarget, TimeMode
from offerbot.pipeline.parsers import extract_distance_km, extract_hour, extract_price

logger = logging.getLogger(__name__)


class MatchReport(BaseModel):
    """Verdict plus the fields the matcher read, for inspection output."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str
    category: str | None = None
    hour: int | None = None
    price: float | None = None
    distance_km: float | None = None


def find_category(text: str, config: Configuration) -> str | None:
    """First enabled category whose name appears in `text` (case-insensitive)."""
    text_lower = text.lower()
    for name, enabled in config.category_filters.items():
        if enabled and name.strip() and name.lower() in text_lower:
            return name
    return None


def matches(text: str, config: Configuration) -> bool:
    """Return True if the offer described by `text` should be accepted."""
    return explain(text, config).accepted


def explain(text: str, config: Configuration) -> MatchReport:
    """Run the full check chain and report why the offer passed or failed."""
    hour = extract_hour(text)
    price = extract_price(text)
    distance = extract_distance_km(text)

    def verdict(accepted: bool, reason: str, category: str | None = None) -> MatchReport:
        logger.debug("%s: %s", "ACCEPT" if accepted else "REJECT", reason)
        return MatchReport(
            accepted=accepted,
            reason=reason,
            category=category,
            hour=hour,
            price=price,
            distance_km=distance,
        )

    # Step 1: category gate
    category = find_category(text, config)
    if category is None:
        return verdict(False, "no enabled category in text")

    # Step 2: pickup-hour gate
    if config.time_mode == TimeMode.MANUAL and config.manual_hours:
        if hour is None or hour not in config.manual_hours:
            return verdict(False, f"pickup hour {hour} not selected", category)

    # Step 3: category target
    target = config.per_category_target.get(category)
    if target is None or not target.enabled:
        return verdict(True, "category matched, no target filters", category)

    # Step 4: distance limit
    if not _within_distance(target, distance):
        return verdict(False, f"distance {distance} km over limit", category)

    # Steps 5-6: sub-criteria, any one suffices
    criteria_selected = (
        target.wants_origin_airport
        or target.wants_destination_airport
        or target.min_price_enabled
    )
    if not criteria_selected:
        return verdict(True, "category target has no sub-criteria", category)

    origin, destination = _airport_hits(text, config)
    origin_match = target.wants_origin_airport and origin
    destination_match = target.wants_destination_airport and destination
    price_match = (
        target.min_price_enabled
        and price is not None
        and target.min_price is not None
        and price >= target.min_price
    )
    if origin_match or destination_match or price_match:
        hits = [
            name for name, hit in (
                ("origin airport", origin_match),
                ("destination airport", destination_match),
                ("minimum fare", price_match),
            ) if hit
        ]
        return verdict(True, "matched " + ", ".join(hits), category)
    return verdict(False, "no selected sub-criterion matched", category)


def _within_distance(target: JobTarget, distance: float | None) -> bool:
    """Distance limit check. An unparsable limit makes the filter inapplicable."""
    if not target.max_distance_enabled or target.wants_destination_airport:
        return True
    if target.max_distance_km is None:
        return True
    return distance is not None and distance <= target.max_distance_km


def _airport_hits(text: str, config: Configuration) -> tuple[bool, bool]:
    """(origin, destination) airport signals under the configured policy."""
    text_lower = text.lower()
    if config.airport_policy == AirportPolicy.LOOSE:
        hit = config.airport_keyword.lower() in text_lower
        return hit, hit
    return (
        config.to_airport_marker.lower() in text_lower,
        config.from_airport_marker.lower() in text_lower,
    )
