"""
Rate card pricing for booking requests.

A booking's amount is frozen when the request is created, from the model's
published rate for the requested service type:

    hourly services:  total = rate * duration_hours   (when a duration is given)
    everything else:  total = rate                     (flat)

The "other" service type has no rate field of its own; it is quoted at the
lowest hourly rate the model publishes, or 0 when none is set.
"""

import math
from typing import Any, Mapping, Optional, Tuple

# service_type -> rate field on the model profile
SERVICE_RATE_FIELDS: dict[str, str] = {
    "photoshoot_hourly": "photoshoot_hourly_rate",
    "photoshoot_half_day": "photoshoot_half_day_rate",
    "photoshoot_full_day": "photoshoot_full_day_rate",
    "promo": "promo_hourly_rate",
    "brand_ambassador": "brand_ambassador_daily_rate",
    "private_event": "private_event_hourly_rate",
    "social_companion": "social_companion_hourly_rate",
    "meet_greet": "meet_greet_rate",
}

SERVICE_LABELS: dict[str, str] = {
    "photoshoot_hourly": "Photoshoot (Hourly)",
    "photoshoot_half_day": "Photoshoot (Half-Day)",
    "photoshoot_full_day": "Photoshoot (Full-Day)",
    "promo": "Promo Modeling",
    "brand_ambassador": "Brand Ambassador",
    "private_event": "Private Event",
    "social_companion": "Social Companion",
    "meet_greet": "Meet & Greet",
    "other": "Other",
}

HOURLY_SERVICE_TYPES = frozenset({"photoshoot_hourly", "promo", "private_event", "social_companion"})

# Rates considered when quoting the "other" service type
OTHER_FALLBACK_FIELDS = (
    "photoshoot_hourly_rate",
    "promo_hourly_rate",
    "private_event_hourly_rate",
    "social_companion_hourly_rate",
)


def _rate_of(rates: Any, field: str) -> Optional[int]:
    if isinstance(rates, Mapping):
        return rates.get(field)
    return getattr(rates, field, None)


def is_known_service(service_type: str) -> bool:
    return service_type in SERVICE_LABELS


def quoted_rate(rates: Any, service_type: str) -> int:
    """Return the rate a model charges for a service type.

    Args:
        rates: A model profile, or any mapping keyed by rate field name.
        service_type: One of the keys of SERVICE_LABELS.

    Raises:
        ValueError: If the service type is unknown.
    """
    if not is_known_service(service_type):
        raise ValueError(f"Unknown service type '{service_type}'")

    if service_type == "other":
        defined = [r for r in (_rate_of(rates, f) for f in OTHER_FALLBACK_FIELDS) if r]
        return min(defined) if defined else 0

    return _rate_of(rates, SERVICE_RATE_FIELDS[service_type]) or 0


def total_amount(rate: int, service_type: str, duration_hours: Optional[float] = None) -> int:
    """Compute the booking total for a quoted rate.

    Fractional hours are rounded up to the next whole coin.
    """
    if duration_hours and service_type in HOURLY_SERVICE_TYPES:
        return int(math.ceil(rate * duration_hours))
    return rate


def price_booking(rates: Any, service_type: str, duration_hours: Optional[float] = None) -> Tuple[int, int]:
    """Return (quoted_rate, total_amount) for a booking request."""
    rate = quoted_rate(rates, service_type)
    return rate, total_amount(rate, service_type, duration_hours)
