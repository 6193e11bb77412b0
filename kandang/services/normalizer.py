"""
Smart Kandang - Reading normalizer
Turns a decoded telemetry payload into a canonical reading
"""

import math
from dataclasses import dataclass
from typing import Any

from kandang.core.errors import MalformedPayload

# Accepted spellings for gas concentration, in order of preference.
# Older firmware sends "amonia".
GAS_FIELDS = ("gas_ppm", "amonia")


@dataclass(frozen=True)
class CanonicalReading:
    """Normalized reading, ready for storage and evaluation."""

    temperature: float
    gas_ppm: float
    humidity: float | None = None


def _as_number(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise MalformedPayload(f"Field '{field}' is not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedPayload(f"Field '{field}' is not numeric: {value!r}") from None
    if not math.isfinite(number):
        raise MalformedPayload(f"Field '{field}' is not finite: {value!r}")
    return number


def normalize_reading(payload: Any) -> CanonicalReading:
    """
    Build a canonical reading from a decoded payload.

    Devices send either a single object or a list of objects; only the
    first element of a list is used.

    Raises:
        MalformedPayload: payload shape or required fields are wrong
    """
    if isinstance(payload, list):
        if not payload:
            raise MalformedPayload("Empty payload list")
        payload = payload[0]

    if not isinstance(payload, dict):
        raise MalformedPayload(f"Unrecognized payload format: {type(payload).__name__}")

    if "temperature" not in payload:
        raise MalformedPayload("Missing 'temperature'")

    gas_field = next((name for name in GAS_FIELDS if name in payload), None)
    if gas_field is None:
        raise MalformedPayload("Missing 'gas_ppm' / 'amonia'")

    humidity = payload.get("humidity")

    return CanonicalReading(
        temperature=_as_number(payload["temperature"], "temperature"),
        gas_ppm=_as_number(payload[gas_field], gas_field),
        humidity=_as_number(humidity, "humidity") if humidity is not None else None,
    )
