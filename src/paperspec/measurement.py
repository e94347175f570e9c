"""
Measurement domain model.

Defines the value-with-unit types handed over by forms and by the document
extractor, before they are normalized to canonical units.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass

from .units import (
    InvalidMeasurement,
    SmoothnessMethod,
    UnsupportedUnit,
    bekk_to_pps,
    convert,
    get_smoothness_method,
    pps_to_bekk,
    validate_value,
)


def _read_pair(raw: typing.Any, field_name: str) -> tuple[typing.Any, typing.Any] | None:
    """
    Pull (value, unit) out of a raw `{value, unit} | None` object.
    Returns None when the object or its value is absent.
    """
    if raw is None:
        return None
    if not isinstance(raw, typing.Mapping):
        raise InvalidMeasurement(
            f"{field_name} must be an object with 'value' and 'unit', got {type(raw).__name__}", value=raw
        )
    value = raw.get("value")
    if value is None:
        return None
    return value, raw.get("unit")


@dataclass(frozen=True)
class Measurement:
    """
    A reading in a unit of its quantity family.

    Attributes:
        value: Non-negative magnitude as reported.
        unit: Unit token as reported (e.g. 'N/15mm', 'gf', 'mil').
    """

    value: float
    unit: str

    def __post_init__(self):
        validate_value(self.value, "measurement")

    def to_canonical(self, family: str) -> float:
        """Value in the canonical unit of `family` (thickness, tensile, tear or stiffness)."""
        return convert(family, self.value, self.unit)

    @classmethod
    def from_raw(cls, raw: typing.Any, field_name: str = "measurement") -> "Measurement | None":
        """
        Build from a `{"value": ..., "unit": ...}` mapping.
        A None mapping or a None value means the reading is absent.
        """
        pair = _read_pair(raw, field_name)
        if pair is None:
            return None
        value, unit = pair
        return cls(value=value, unit=unit)


@dataclass(frozen=True)
class SmoothnessReading:
    """
    A surface smoothness reading together with the instrument that produced it.

    Bekk seconds and PPS micrometers run in opposite directions (smoother paper has a
    higher Bekk and a lower PPS), so the reading is kept with its unit and method
    instead of being collapsed into one scalar.

    Attributes:
        value: Non-negative reading.
        unit: 'sec', 'ml/min' or 'µm'.
        method: Instrument; derived from the unit when omitted.
    """

    value: float
    unit: str
    method: SmoothnessMethod | None = None

    def __post_init__(self):
        validate_value(self.value, "smoothness")

        implied = get_smoothness_method(self.unit)
        if self.method is None:
            object.__setattr__(self, "method", implied)
            return

        method = self.method
        if not isinstance(method, SmoothnessMethod):
            method = SmoothnessMethod.from_label(method)
        if method is not implied:
            raise UnsupportedUnit(
                f"Smoothness unit {self.unit!r} is not reported by the {method.value} method",
                unit=self.unit,
                family="smoothness",
            )
        object.__setattr__(self, "method", method)

    def as_bekk(self) -> float:
        """Equivalent Bekk reading in seconds."""
        if self.method is SmoothnessMethod.BEKK:
            return self.value
        if self.method is SmoothnessMethod.PPS:
            return pps_to_bekk(self.value)
        raise UnsupportedUnit(
            "Bendtsen readings have no defined Bekk equivalent", unit=self.unit, family="smoothness"
        )

    def as_pps(self) -> float:
        """Equivalent PPS reading in micrometers."""
        if self.method is SmoothnessMethod.PPS:
            return self.value
        if self.method is SmoothnessMethod.BEKK:
            return bekk_to_pps(self.value)
        raise UnsupportedUnit(
            "Bendtsen readings have no defined PPS equivalent", unit=self.unit, family="smoothness"
        )

    @classmethod
    def from_raw(cls, raw: typing.Any, field_name: str = "smoothness") -> "SmoothnessReading | None":
        """Build from a `{"value", "unit", "method"}` mapping; None when absent."""
        pair = _read_pair(raw, field_name)
        if pair is None:
            return None
        value, unit = pair
        return cls(value=value, unit=unit, method=raw.get("method"))
