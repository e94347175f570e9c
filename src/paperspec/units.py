"""
Unit conversion engine.

Normalizes paper-testing measurements reported in heterogeneous industry units to
one canonical unit per quantity family:

    thickness (caliper) -> µm
    tensile strength    -> kN/m
    tear strength       -> mN
    stiffness           -> mN·m

Smoothness has no canonical unit. Bekk (seconds) and PPS (micrometers) readings are
related by an empirical power law and can be converted into each other; Bendtsen
(ml/min) is kept as reported.

Every function here is pure: no state, no I/O, no logging. Invalid input is reported
immediately with one of two errors:

- InvalidMeasurement: the value is negative, non-finite, not a number, or (for the
  smoothness relation) not strictly positive.
- UnsupportedUnit: the unit token is not part of the family's closed vocabulary.
"""

from __future__ import annotations

import math
import numbers
from enum import Enum
from types import MappingProxyType
from typing import Mapping

# ------------------
# Physical constants
# ------------------

STANDARD_GRAVITY = 9.80665  # m/s², gram-force and kilogram-force
POUND_FORCE_N = 4.44822
INCH_M = 0.0254
STRIP_WIDTH_M = 0.015  # tensile strips are 15 mm wide

# pps = 18.65 / bekk ** (1/3)
BEKK_PPS_COEFFICIENT = 18.65


# ------
# Errors
# ------


class InvalidMeasurement(ValueError):
    """Raised when a measurement value is physically impossible for its family."""

    def __init__(self, message: str, value: object = None, family: str | None = None):
        super().__init__(message)
        self.value = value
        self.family = family


class UnsupportedUnit(ValueError):
    """Raised when a unit token is not in a family's closed vocabulary."""

    def __init__(self, message: str, unit: object = None, family: str | None = None):
        super().__init__(message)
        self.unit = unit
        self.family = family


# ----------------------
# Smoothness instruments
# ----------------------


class SmoothnessMethod(str, Enum):
    """
    Instruments for measuring paper surface smoothness.
    Each one reports in its own unit; only Bekk and PPS are interconvertible.
    """

    BEKK = "Bekk"
    BENDTSEN = "Bendtsen"
    PPS = "PPS"

    @classmethod
    def from_label(cls, label: str) -> "SmoothnessMethod":
        """
        Convert a method name as written in a data sheet ("bekk", " PPS ") into the enum.
        """
        key = str(label).strip().casefold()
        for method in cls:
            if method.value.casefold() == key:
                return method
        raise UnsupportedUnit(f"Unknown smoothness method: {label!r}", unit=label, family="smoothness")


# ------------------------------------
# Factor tables (read-only at runtime)
# ------------------------------------

THICKNESS_TO_MICRON: Mapping[str, float] = MappingProxyType({
    "µm": 1.0,
    "mm": 1000.0,
    "mil": 25.4,
    "inch": 25400.0,
})

TENSILE_TO_KN_M: Mapping[str, float] = MappingProxyType({
    "kN/m": 1.0,
    "N/15mm": 1 / STRIP_WIDTH_M / 1000,
    "kgf/15mm": STANDARD_GRAVITY / STRIP_WIDTH_M / 1000,
    "lb/in": POUND_FORCE_N / INCH_M / 1000,
})

TEAR_TO_MN: Mapping[str, float] = MappingProxyType({
    "mN": 1.0,
    "gf": STANDARD_GRAVITY,
    "cN": 10.0,
})

STIFFNESS_TO_MN_M: Mapping[str, float] = MappingProxyType({
    "mN·m": 1.0,
    "gf·cm": 0.0981,
    "mN·mm": 0.001,
})

SMOOTHNESS_UNIT_METHODS: Mapping[str, SmoothnessMethod] = MappingProxyType({
    "sec": SmoothnessMethod.BEKK,
    "ml/min": SmoothnessMethod.BENDTSEN,
    "µm": SmoothnessMethod.PPS,
})

FAMILY_FACTORS: Mapping[str, Mapping[str, float]] = MappingProxyType({
    "thickness": THICKNESS_TO_MICRON,
    "tensile": TENSILE_TO_KN_M,
    "tear": TEAR_TO_MN,
    "stiffness": STIFFNESS_TO_MN_M,
})

CANONICAL_UNITS: Mapping[str, str] = MappingProxyType({
    "thickness": "µm",
    "tensile": "kN/m",
    "tear": "mN",
    "stiffness": "mN·m",
})


# ----------
# Validation
# ----------


def validate_value(value: object, family: str) -> float:
    """Reject anything that is not a finite, non-negative real number; return the value."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidMeasurement(
            f"{family} value must be a number, got {type(value).__name__}", value=value, family=family
        )
    try:
        number = float(value)
    except OverflowError:
        raise InvalidMeasurement(f"{family} value is out of range", value=value, family=family) from None
    if not math.isfinite(number):
        raise InvalidMeasurement(f"{family} value must be finite, got {value!r}", value=value, family=family)
    if number < 0:
        raise InvalidMeasurement(f"{family} value must be non-negative, got {value!r}", value=value, family=family)
    return value


def _finite(result: float, value: object, family: str) -> float:
    # a valid reading can still leave the float range once scaled
    if not math.isfinite(result):
        raise InvalidMeasurement(
            f"{family} value {value!r} is out of range after conversion", value=value, family=family
        )
    return result


def _factor(unit: object, family: str) -> float:
    table = FAMILY_FACTORS[family]
    # non-string tokens (None, numbers) can never be keys of the table
    if not isinstance(unit, str) or unit not in table:
        raise UnsupportedUnit(
            f"Invalid {family} unit: {unit!r} (expected one of {sorted(table)})", unit=unit, family=family
        )
    return table[unit]


def _convert(value: float, unit: str, family: str) -> float:
    checked = float(validate_value(value, family))
    return _finite(checked * _factor(unit, family), value, family)


# -------------------
# Linear conversions
# -------------------


def convert_thickness(value: float, unit: str) -> float:
    """Convert a caliper reading in µm, mm, mil or inch to micrometers."""
    return _convert(value, unit, "thickness")


def convert_tensile(value: float, unit: str) -> float:
    """
    Convert a tensile strength reading to kN/m.

    Strip readings (N/15mm, kgf/15mm) are divided by the 0.015 m strip width and
    scaled from N to kN; lb/in goes through pound-force and inch in SI first.
    """
    return _convert(value, unit, "tensile")


def convert_tear(value: float, unit: str) -> float:
    """Convert a tear strength reading in mN, gf or cN to millinewtons."""
    return _convert(value, unit, "tear")


def convert_stiffness(value: float, unit: str) -> float:
    """Convert a bending stiffness reading in mN·m, gf·cm or mN·mm to mN·m."""
    return _convert(value, unit, "stiffness")


def convert(family: str, value: float, unit: str) -> float:
    """
    Dispatch to the conversion function of a linear family
    ("thickness", "tensile", "tear" or "stiffness").
    """
    if family not in FAMILY_FACTORS:
        raise ValueError(f"Unknown measurement family: {family!r} (expected one of {sorted(FAMILY_FACTORS)})")
    return _convert(value, unit, family)


def supported_units(family: str) -> tuple[str, ...]:
    """Unit tokens accepted for a family, canonical unit first."""
    if family == "smoothness":
        return tuple(SMOOTHNESS_UNIT_METHODS)
    try:
        return tuple(FAMILY_FACTORS[family])
    except KeyError:
        raise ValueError(f"Unknown measurement family: {family!r}")


# Names used by the persistence layer
convert_to_micrometers = convert_thickness
convert_to_kn_per_meter = convert_tensile
convert_to_millinewtons = convert_tear


# ----------
# Smoothness
# ----------


def _check_positive(value: object, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidMeasurement(f"{what} must be a finite number, got {value!r}", value=value, family="smoothness")
    try:
        number = float(value)
    except OverflowError:
        raise InvalidMeasurement(f"{what} is out of range", value=value, family="smoothness") from None
    if not math.isfinite(number):
        raise InvalidMeasurement(f"{what} must be a finite number, got {value!r}", value=value, family="smoothness")
    if number <= 0:
        raise InvalidMeasurement(f"{what} must be positive, got {value!r}", value=value, family="smoothness")
    return number


def bekk_to_pps(bekk_seconds: float) -> float:
    """
    Equivalent PPS roughness (µm) of a Bekk smoothness reading (seconds).

    Empirical inverse-cube-root relation: pps = 18.65 / bekk ** (1/3).
    Higher Bekk means smoother paper, which means lower PPS.
    """
    seconds = _check_positive(bekk_seconds, "Bekk smoothness")
    return _finite(BEKK_PPS_COEFFICIENT / seconds ** (1 / 3), bekk_seconds, "smoothness")


def pps_to_bekk(pps_micrometers: float) -> float:
    """Inverse of bekk_to_pps: bekk = (18.65 / pps) ** 3."""
    micrometers = _check_positive(pps_micrometers, "PPS roughness")
    try:
        bekk = (BEKK_PPS_COEFFICIENT / micrometers) ** 3
    except OverflowError:
        bekk = math.inf
    return _finite(bekk, pps_micrometers, "smoothness")


def get_smoothness_method(unit: str) -> SmoothnessMethod:
    """Instrument implied by a smoothness unit: sec -> Bekk, ml/min -> Bendtsen, µm -> PPS."""
    if not isinstance(unit, str) or unit not in SMOOTHNESS_UNIT_METHODS:
        raise UnsupportedUnit(
            f"Invalid smoothness unit: {unit!r} (expected one of {sorted(SMOOTHNESS_UNIT_METHODS)})",
            unit=unit,
            family="smoothness",
        )
    return SMOOTHNESS_UNIT_METHODS[unit]
