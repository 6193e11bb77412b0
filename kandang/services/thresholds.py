"""
Smart Kandang - Threshold evaluation
"""

from dataclasses import dataclass

from kandang.services.normalizer import CanonicalReading


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of evaluating one reading against a device's limits."""

    temperature_breached: bool
    gas_breached: bool
    message: str | None = None

    @property
    def alert(self) -> bool:
        return self.message is not None


def format_value(value) -> str:
    """Full value as sent by the device; integral floats lose the trailing .0"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def evaluate(reading: CanonicalReading, device) -> ThresholdResult:
    """
    Compare a reading with the device thresholds.

    Temperature wins: when both limits are exceeded only the temperature
    alert is produced. The gas breach is still reported in the result flags.
    """
    name = device.device_name or device.device_id

    temp_limit = device.threshold_temp
    gas_limit = device.threshold_gas
    temp_breached = temp_limit is not None and reading.temperature > temp_limit
    gas_breached = gas_limit is not None and reading.gas_ppm > gas_limit

    message = None
    if temp_breached:
        message = f"PERINGATAN! Suhu di {name} mencapai {format_value(reading.temperature)}°C."
    elif gas_breached:
        message = f"PERINGATAN! Kadar gas di {name} mencapai {format_value(reading.gas_ppm)} PPM."

    return ThresholdResult(
        temperature_breached=temp_breached,
        gas_breached=gas_breached,
        message=message,
    )
