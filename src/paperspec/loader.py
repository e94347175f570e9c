import json
import logging
import re
import typing

import pandas as pd

# Column aliases seen in mill spreadsheets → canonical column names
RENAME_MAP = {
    # identity columns
    "mill": "mill_name",
    "manufacturer": "mill_name",
    "product": "product_name",
    "name": "product_name",
    "grade": "product_name",
    "grammage": "gsm",
    "basis_weight": "gsm",
    "category": "category_hint",
    # measurement columns
    "thickness": "caliper",
    "thickness_unit": "caliper_unit",
    "cobb": "cobb_60",
    "cobb60": "cobb_60",
    "smoothness_instrument": "smoothness_method",
}

_HEADER_UNIT = re.compile(r"\((?P<unit>[^()]+)\)\s*$")


def load_sheets_as_tables(workbook_path: str) -> dict[str, pd.DataFrame]:
    """
    Read each worksheet into a DataFrame:
      - first row = header
      - normalize all headers to snake_case lowercase
      - apply renames from RENAME_MAP
      - drop rows that are completely empty
    """

    excel = pd.ExcelFile(workbook_path, engine="openpyxl")
    tables: dict[str, pd.DataFrame] = {}

    for sheet_name in excel.sheet_names:
        df = pd.read_excel(excel, sheet_name=sheet_name, header=0, engine="openpyxl")
        raw_headers = df.columns.astype(str).str.strip()

        # CLEAN & NORMALIZE headers:
        df.columns = (
            raw_headers
            .str.replace(r"\s*\(.*?\)", "", regex=True)  # drop any "(…)"
            .str.replace(r"\s+", "_", regex=True)  # spaces → underscore
            .str.replace(":", "", regex=False)  # drop colons
            .str.lower()
        )

        # apply specific renames (e.g. "thickness" → "caliper"), never clobbering a real column
        renames: dict[str, str] = {}
        for orig, target in RENAME_MAP.items():
            if orig in df.columns and target not in df.columns and target not in renames.values():
                renames[orig] = target
        df = df.rename(columns=renames)

        # "Mill Name" and "Mill Name (company)" both clean to mill_name; the first one wins
        duplicated = df.columns.duplicated()
        duplicate_columns = sorted(set(df.columns[duplicated]))
        if duplicate_columns:
            logging.warning(f"Sheet {sheet_name!r}: ignoring repeated columns {duplicate_columns}")

        # keep the unit written in a header, e.g. "Tensile MD (kN/m)" → {"tensile_md": "kN/m"}
        header_units = {}
        for raw, column, repeated in zip(raw_headers, df.columns, duplicated):
            match = _HEADER_UNIT.search(raw)
            if match and not repeated:
                header_units[column] = match.group("unit").strip()

        table = df.loc[:, ~duplicated].dropna(how="all")
        table.attrs["header_units"] = header_units
        table.attrs["duplicate_columns"] = duplicate_columns
        tables[sheet_name] = table
        logging.debug(f"Sheet {sheet_name!r}: {len(table.columns)} columns, {len(table)} rows")

    return tables


def load_extracted_document(json_path: str) -> list[dict[str, typing.Any]]:
    """
    Read the JSON handed over by the document extractor.
    A single document object is wrapped in a list.
    """
    with open(json_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list) and all(isinstance(item, dict) for item in payload):
        return payload
    raise ValueError(f"{json_path}: expected a document object or a list of documents")
