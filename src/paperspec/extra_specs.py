"""
Free-form extra specifications.

Data sheets list properties that have no dedicated column (porosity, ash content,
...). They are stored as a key/value bag; numeric text becomes a number.
"""

import math
import typing


def parse_numeric_value(value: typing.Any) -> typing.Any:
    """
    Turn numeric text into a number, leave anything else untouched.

    "12" -> 12, " 1.5 " -> 1.5, "" -> "", "n/a" -> "n/a", "inf" -> "inf".
    Non-string values are returned as-is.
    """
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    if not trimmed or "_" in trimmed:
        return value
    try:
        number = float(trimmed)
    except ValueError:
        return value
    if not math.isfinite(number):
        return value
    if number.is_integer() and "." not in trimmed and "e" not in trimmed.lower():
        return int(number)
    return number


def transform_extra_specs_to_record(
    entries: typing.Iterable[typing.Any],
) -> dict[str, typing.Any]:
    """
    Collapse form-style entries into a dict.

    Entries are `{"key": ..., "value": ...}` mappings or `(key, value)` pairs.
    Keys are trimmed, blank keys dropped, values run through parse_numeric_value.
    Later duplicates win.
    """
    record: dict[str, typing.Any] = {}
    for entry in entries:
        if isinstance(entry, typing.Mapping):
            key, value = entry.get("key"), entry.get("value")
        else:
            key, value = entry
        trimmed_key = str(key).strip() if key is not None else ""
        if trimmed_key:
            record[trimmed_key] = parse_numeric_value(value)
    return record


def normalize_extra_specs(raw: typing.Any) -> dict[str, typing.Any]:
    """
    Accept either a mapping or a list of entries and return a clean dict.
    None gives an empty dict.
    """
    if raw is None:
        return {}
    if isinstance(raw, typing.Mapping):
        return transform_extra_specs_to_record(raw.items())
    if isinstance(raw, (list, tuple)):
        return transform_extra_specs_to_record(raw)
    raise ValueError(f"extra_specs must be an object or a list of entries, got {type(raw).__name__}")
