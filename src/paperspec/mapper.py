import abc
import numbers
import re
import typing

import pandas as pd

from stairval.notepad import Notepad

from .extra_specs import parse_numeric_value
from .product_spec import (
    MEASUREMENT_FIELDS,
    SCALAR_FIELDS,
    CategoryHint,
    ProductRecord,
    ProductSpec,
    normalize_product,
    normalize_spec,
)
from .units import InvalidMeasurement

# Minimal required columns (after renaming) to treat a sheet as a spec sheet
SPEC_KEY_COLUMNS = {"mill_name", "product_name", "gsm"}

# Columns describing the product rather than one GSM variant
PRODUCT_COLUMNS = {"mill_name", "product_name", "category_hint", "test_standards", "notes"}

SMOOTHNESS_COLUMNS = {"smoothness", "smoothness_unit", "smoothness_method"}

# When a measurement has no "<field>_unit" column, MD and CD share one unit column
SHARED_UNIT_COLUMNS = {
    "caliper": "caliper_unit",
    "tensile_md": "tensile_unit",
    "tensile_cd": "tensile_unit",
    "tear_md": "tear_unit",
    "tear_cd": "tear_unit",
    "stiffness_md": "stiffness_unit",
    "stiffness_cd": "stiffness_unit",
    "smoothness": "smoothness_unit",
}

# Every column with a dedicated meaning; anything else ends up in extra_specs
RESERVED_COLUMNS = (
    PRODUCT_COLUMNS
    | SMOOTHNESS_COLUMNS
    | {"gsm"}
    | set(MEASUREMENT_FIELDS)
    | {f"{field_name}_unit" for field_name in MEASUREMENT_FIELDS}
    | set(SHARED_UNIT_COLUMNS.values())
    | set(SCALAR_FIELDS)
)

_STANDARDS_SEPARATOR = re.compile(r"[;,\n]")


class TableMapper(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def apply_mapping(
            self, tables: dict[str, pd.DataFrame], notepad: Notepad
    ) -> typing.Sequence[ProductRecord]:
        # return fully-assembled product records, not intermediate rows.
        raise NotImplementedError


class DefaultMapper(TableMapper):
    def __init__(self, strict: bool = False):
        """
        - False: a row that fails conversion is dropped, the rest of its product is kept
        - True : a row that fails conversion drops its whole product
        Failures are logged as ERRORS either way.
        """
        self.strict = strict

    def apply_mapping(
            self, tables: dict[str, pd.DataFrame], notepad: Notepad
    ) -> list[ProductRecord]:
        """
        Process:
        1) skip sheets without the spec key columns
        2) convert each row to a canonical ProductSpec
        3) group specs per (mill, product) in order of first appearance
        4) build one ProductRecord per product
        """
        grouped: dict[tuple[str, str], dict[str, typing.Any]] = {}

        for sheet_name, df in tables.items():
            missing = SPEC_KEY_COLUMNS - set(df.columns)
            if missing:
                notepad.add_warning(f"Skipping sheet {sheet_name!r}: missing required columns: {sorted(missing)}")
                continue
            if df.columns.duplicated().any():
                repeated = sorted(set(df.columns[df.columns.duplicated()]))
                notepad.add_error(f"Skipping sheet {sheet_name!r}: repeated columns: {repeated}")
                continue
            for column in df.attrs.get("duplicate_columns", []):
                notepad.add_warning(f"Sheet {sheet_name!r}: repeated column {column!r} ignored, first one kept")

            header_units = df.attrs.get("header_units", {})
            for index, row in df.iterrows():
                key = (self._name_or_dash(row.get("mill_name")), self._name_or_dash(row.get("product_name")))
                bundle = grouped.setdefault(key, {"row": row, "specs": [], "failed": False})

                spec = self.parse_spec_row(row, header_units, sheet_name, index, notepad)
                if spec is None:
                    bundle["failed"] = True
                else:
                    bundle["specs"].append(spec)

        return self._build_products(grouped, notepad)

    def map_documents(
            self, documents: typing.Iterable[typing.Mapping[str, typing.Any]], notepad: Notepad
    ) -> list[ProductRecord]:
        """
        Map documents from the extractor (one product each, see normalize_product).
        Strict mode rejects a document on its first bad spec; otherwise only that spec is dropped.
        """
        products: list[ProductRecord] = []
        for doc_index, document in enumerate(documents):

            def report(spec_index: int, error: ValueError, doc_index=doc_index) -> None:
                notepad.add_error(f"Document {doc_index}, spec {spec_index}: {error}")

            try:
                products.append(normalize_product(document, on_spec_error=None if self.strict else report))
            except ValueError as e:
                notepad.add_error(f"Document {doc_index}: {e}")
        return products

    @staticmethod
    def _is_blank(value: typing.Any) -> bool:
        # Handle None, NaN, NaT, pandas NA, and empty/whitespace-only strings
        if isinstance(value, str):
            return not value.strip()
        return value is None or bool(pd.isna(value))

    @staticmethod
    def _to_text(value: typing.Any) -> str | None:
        """Trimmed text of a cell; None for blank cells."""
        if DefaultMapper._is_blank(value):
            return None
        return str(value).strip()

    @staticmethod
    def _to_number(value: typing.Any) -> float | None:
        """
        Numeric cell parsing:
        - blank -> None
        - ints/floats (numpy included) -> float
        - numeric text (e.g. ' 80 ', '1e3') -> float
        - anything else raises InvalidMeasurement
        """
        if DefaultMapper._is_blank(value):
            return None
        if isinstance(value, (bool, str)) or not isinstance(value, numbers.Real):
            parsed = parse_numeric_value(str(value))
            if isinstance(parsed, str):
                raise InvalidMeasurement(f"not a number: {value!r}", value=value)
            return float(parsed)
        return float(value)

    @staticmethod
    def _to_python(value: typing.Any) -> typing.Any:
        """Plain Python value for an extra-spec cell (numpy scalars unwrapped, text parsed)."""
        if isinstance(value, str):
            return parse_numeric_value(value.strip())
        if isinstance(value, numbers.Number) and hasattr(value, "item"):
            return value.item()
        if isinstance(value, (bool, int, float)):
            return value
        return str(value)

    @staticmethod
    def _name_or_dash(value: typing.Any) -> str:
        return DefaultMapper._to_text(value) or "-"

    @staticmethod
    def _measurement_cell(
            row: pd.Series, field_name: str, header_units: typing.Mapping[str, str]
    ) -> dict[str, typing.Any] | None:
        """
        Build the `{value, unit}` object of one measurement column.
        Unit lookup order: "<field>_unit" column, shared unit column, unit written in the header.
        No unit found leaves unit None, which the converter rejects.
        """
        value = DefaultMapper._to_number(row.get(field_name))
        if value is None:
            return None
        unit = (
            DefaultMapper._to_text(row.get(f"{field_name}_unit"))
            or DefaultMapper._to_text(row.get(SHARED_UNIT_COLUMNS[field_name]))
            or header_units.get(field_name)
        )
        return {"value": value, "unit": unit}

    @staticmethod
    def build_raw_spec(row: pd.Series, header_units: typing.Mapping[str, str]) -> dict[str, typing.Any]:
        """
        Turn one sheet row into the raw spec shape accepted by normalize_spec.
        Raises ValueError for cells that cannot be read as numbers.
        """
        raw: dict[str, typing.Any] = {"gsm": DefaultMapper._to_number(row.get("gsm"))}

        for field_name in MEASUREMENT_FIELDS:
            raw[field_name] = DefaultMapper._measurement_cell(row, field_name, header_units)

        smoothness = DefaultMapper._measurement_cell(row, "smoothness", header_units)
        if smoothness is not None:
            smoothness["method"] = DefaultMapper._to_text(row.get("smoothness_method"))
        raw["smoothness"] = smoothness

        for field_name in SCALAR_FIELDS:
            raw[field_name] = DefaultMapper._to_number(row.get(field_name))

        raw["extra_specs"] = {
            column: DefaultMapper._to_python(value)
            for column, value in row.items()
            if column not in RESERVED_COLUMNS and not DefaultMapper._is_blank(value)
        }
        return raw

    @staticmethod
    def parse_spec_row(
            row: pd.Series,
            header_units: typing.Mapping[str, str],
            sheet_name: str,
            index: typing.Any,
            notepad: Notepad,
    ) -> ProductSpec | None:
        """
        Parse a single sheet row into a canonical ProductSpec.
        Returns None (and records an error) if any value or unit is rejected.
        """
        try:
            return normalize_spec(DefaultMapper.build_raw_spec(row, header_units))
        except (ValueError, TypeError) as e:
            notepad.add_error(f"Sheet {sheet_name!r}, row {index}: {e}")
            return None

    @staticmethod
    def _split_standards(value: typing.Any) -> list[str]:
        text = DefaultMapper._to_text(value)
        if text is None:
            return []
        return [part.strip() for part in _STANDARDS_SEPARATOR.split(text) if part.strip()]

    def _build_products(
            self, grouped: dict[tuple[str, str], dict[str, typing.Any]], notepad: Notepad
    ) -> list[ProductRecord]:
        products: list[ProductRecord] = []
        for (mill_name, product_name), bundle in grouped.items():
            label = f"{mill_name!r} / {product_name!r}"
            if bundle["failed"] and self.strict:
                notepad.add_error(f"Product {label}: skipped because one or more rows were rejected")
                continue
            if not bundle["specs"]:
                continue

            seen_gsm: set[float] = set()
            for spec in bundle["specs"]:
                if spec.gsm in seen_gsm:
                    notepad.add_warning(f"Product {label}: GSM {spec.gsm:g} listed more than once")
                seen_gsm.add(spec.gsm)

            first_row = bundle["row"]
            try:
                category_hint = CategoryHint.from_label(self._to_text(first_row.get("category_hint")))
            except ValueError as e:
                notepad.add_warning(f"Product {label}: {e}; filed under {CategoryHint.SPECIALTY.value}")
                category_hint = CategoryHint.SPECIALTY

            products.append(
                ProductRecord(
                    mill_name=mill_name,
                    product_name=product_name,
                    specs=bundle["specs"],
                    category_hint=category_hint,
                    test_standards=self._split_standards(first_row.get("test_standards")),
                    notes=self._to_text(first_row.get("notes")),
                )
            )
        return products
