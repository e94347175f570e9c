"""
Command‑line interface for the paperspec toolkit.
Converts single readings, and normalizes spec workbooks or extractor JSON
into canonical-unit product records.
"""

import click
import json
import logging
import os
import pandas as pd
import pathlib
import re
import sys
import typing

from collections import namedtuple
from datetime import datetime
from stairval.notepad import create_notepad

from .loader import load_extracted_document, load_sheets_as_tables
from .mapper import SHARED_UNIT_COLUMNS, SPEC_KEY_COLUMNS, DefaultMapper
from .measurement import SmoothnessReading
from .product_spec import MEASUREMENT_FIELDS, ProductRecord
from .units import CANONICAL_UNITS, FAMILY_FACTORS, SMOOTHNESS_UNIT_METHODS, SmoothnessMethod, convert, supported_units

AuditEntry = namedtuple("AuditEntry", ["step", "sheet", "message", "level"])

# Where timestamped output folders are created unless -o is given
_OUTPUT_ROOT = os.getenv("PAPERSPEC_OUTPUT_DIR", "paperspec_output")


@click.group()
def main():
    """paperspec: normalize paper technical data sheet measurements to canonical units."""
    pass


@main.command(name="convert", context_settings={"ignore_unknown_options": True})
@click.argument("family", type=click.Choice(sorted(FAMILY_FACTORS)))
@click.argument("value", type=float)
@click.argument("unit")
@click.option("--precision", default=6, show_default=True, help="significant digits to print")
def convert_reading(family: str, value: float, unit: str, precision: int):
    """
    Convert one reading, e.g. `paperspec convert tensile 15 N/15mm`.
    """
    try:
        result = convert(family, value, unit)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"{result:.{precision}g} {CANONICAL_UNITS[family]}")


@main.command(name="smoothness", context_settings={"ignore_unknown_options": True})
@click.argument("value", type=float)
@click.option(
    "-u",
    "--unit",
    default="sec",
    show_default=True,
    type=click.Choice(list(SMOOTHNESS_UNIT_METHODS)),
    help="unit of VALUE: sec (Bekk) or µm (PPS)",
)
@click.option("--precision", default=4, show_default=True, help="significant digits to print")
def smoothness_equivalent(value: float, unit: str, precision: int):
    """
    Print the equivalent of a Bekk reading in PPS, or of a PPS reading in Bekk.
    """
    try:
        reading = SmoothnessReading(value=value, unit=unit)
        if reading.method is SmoothnessMethod.BEKK:
            click.echo(f"{reading.as_pps():.{precision}g} µm (PPS)")
        else:
            click.echo(f"{reading.as_bekk():.{precision}g} sec (Bekk)")
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command(name="parse-excel")
@click.option(
    "-e",
    "--excel-path",
    "excel_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to the Excel workbook",
)
@click.option(
    "-o",
    "--output-dir",
    "output_root",
    default=None,
    type=click.Path(file_okay=False),
    help="where to create the timestamped output folder (default: $PAPERSPEC_OUTPUT_DIR or ./paperspec_output)",
)
@click.option("--strict/--no-strict", default=False, help="Drop a whole product when any of its rows is rejected (default: drop only the row).")
@click.option("--verbose", is_flag=True, help="Show preprocessing steps and debug logs")
@click.option("--log-file-path", type=click.Path(dir_okay=False, writable=True), help="Append timestamped logs to this file")
def parse_excel(excel_file: str, output_root: typing.Optional[str], strict: bool, verbose: bool, log_file_path: typing.Optional[str]):
    """
    Read each sheet with spec columns (mill_name, product_name, gsm, ...),
    convert every measurement to its canonical unit, and write one JSON file per product.
    """
    _configure_logging(verbose, log_file_path)
    logging.info(f"Beginning parse of '{excel_file}'")

    # 1) Read all sheets into DataFrames
    tables = _read_sheets(excel_file)

    # optionally audit preprocessing
    if verbose:
        _echo_audit(preprocess(tables))

    # 2) Apply mapping to get product records and collect issues
    notepad = create_notepad("products")
    products = DefaultMapper(strict=strict).apply_mapping(tables, notepad)

    # 3) Report any errors or warnings, then write
    _report_issues(notepad)
    _finish(products, output_root)


@main.command(name="parse-json")
@click.option(
    "-j",
    "--json-path",
    "json_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to a JSON document (or list of documents) from the TDS extractor",
)
@click.option(
    "-o",
    "--output-dir",
    "output_root",
    default=None,
    type=click.Path(file_okay=False),
    help="where to create the timestamped output folder (default: $PAPERSPEC_OUTPUT_DIR or ./paperspec_output)",
)
@click.option("--strict/--no-strict", default=False, help="Reject a whole document when any of its specs is rejected (default: drop only the spec).")
@click.option("--verbose", is_flag=True, help="Show debug logs")
@click.option("--log-file-path", type=click.Path(dir_okay=False, writable=True), help="Append timestamped logs to this file")
def parse_json(json_file: str, output_root: typing.Optional[str], strict: bool, verbose: bool, log_file_path: typing.Optional[str]):
    """
    Normalize documents produced by the TDS extractor and write one JSON file per product.
    """
    _configure_logging(verbose, log_file_path)
    logging.info(f"Beginning parse of '{json_file}'")

    try:
        documents = load_extracted_document(json_file)
    except (OSError, ValueError) as e:
        logging.error(f"Failed to read '{json_file}': {e}")
        click.echo(f"Error: cannot read {json_file}: {e}", err=True)
        sys.exit(1)
    logging.debug(f"Loaded {len(documents)} documents")

    notepad = create_notepad("documents")
    products = DefaultMapper(strict=strict).map_documents(documents, notepad)

    _report_issues(notepad)
    _finish(products, output_root)


@main.command(name="audit-excel")
@click.option(
    "-e",
    "--excel-path",
    "excel_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to the Excel workbook",
)
@click.option("-r", "--raw-json", "raw_json", is_flag=True, help="print the audit as JSON")
def audit_excel(excel_file: str, raw_json: bool):
    """
    Check headers, sheet classification and unit tokens without converting anything.
    """
    entries = preprocess(_read_sheets(excel_file))

    if raw_json:
        click.echo(json.dumps([entry._asdict() for entry in entries], ensure_ascii=False, indent=2))
        return

    rows = [("SHEET", "STEP", "LEVEL", "MESSAGE")] + [(e.sheet, e.step, e.level.upper(), e.message) for e in entries]
    widths = [max(len(row[i]) for row in rows) for i in range(3)]
    for sheet, step, level, message in rows:
        click.echo(f"{sheet:<{widths[0]}}  {step:<{widths[1]}}  {level:<{widths[2]}}  {message}")


def _configure_logging(verbose: bool, log_file_path: typing.Optional[str]) -> None:
    # configure logging
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
            force=True,
        )


def _read_sheets(excel_file: str) -> dict[str, pd.DataFrame]:
    # read each worksheet into a DataFrame
    try:
        tables = load_sheets_as_tables(excel_file)
    except (OSError, ValueError) as e:
        logging.error(f"Failed to read '{excel_file}': {e}")
        click.echo(f"Error: cannot read {excel_file}: {e}", err=True)
        sys.exit(1)
    logging.debug(f"Loaded sheets: {list(tables.keys())}")
    return tables


def _echo_audit(entries: list[AuditEntry]) -> None:
    indent = "              "
    click.echo("")
    for entry in entries:
        line = f"{entry.step:20} {entry.sheet:15} {entry.message}"
        # color by level
        if entry.level == "error":
            colored = click.style(line, fg="red")
        elif entry.level in ("warn", "warning"):
            colored = click.style(line, fg="yellow")
        else:
            colored = click.style(line, fg="cyan")
        click.echo(indent + colored)
    click.echo("")  # a blank line before mapping output


def _report_issues(notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in mapping:")
        for err in notepad.errors():
            logging.error(f"{err}")
            click.echo(f"- {err}")
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in mapping:")
        for w in notepad.warnings():
            logging.warning(f"{w}")
            click.echo(f"- {w}")


def _finish(products: list[ProductRecord], output_root: typing.Optional[str]) -> None:
    output_dir = _prepare_output_dir(output_root)
    _write_products(products, output_dir)

    spec_count = sum(len(product.specs) for product in products)
    logging.info(f"Wrote {len(products)} products ({spec_count} specs) to {output_dir}")
    click.echo(f"Wrote {len(products)} product files to {output_dir}")
    click.echo(f"Created {len(products)} product records")
    click.echo(f"Created {spec_count} spec records")


def _prepare_output_dir(output_root: typing.Optional[str] = None) -> pathlib.Path:
    # use YYYY-MM-DD_HH-MM-SS for human-readable timestamps
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    root = pathlib.Path(output_root or _OUTPUT_ROOT)
    if not root.is_absolute():
        root = pathlib.Path.cwd() / root
    output_dir = root / timestamp / "products"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _slug(text: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "-", text).strip("-").lower()
    return slug or "unnamed"


def _write_products(products: list[ProductRecord], output_dir: pathlib.Path) -> None:
    # one JSON file per product, numbered to keep products with equal names apart
    for index, product in enumerate(products, start=1):
        path = output_dir / f"{index:03d}_{_slug(product.mill_name)}_{_slug(product.product_name)}.json"
        with open(path, "w", encoding="utf-8") as out_f:
            json.dump(product.to_record(), out_f, ensure_ascii=False, indent=2)


def preprocess(tables: dict[str, pd.DataFrame]) -> list[AuditEntry]:
    """
    Run lightweight audits on each sheet:
      - header normalization
      - sheet classification
      - unit tokens of every measurement column that holds data
    """
    families = dict(MEASUREMENT_FIELDS, smoothness="smoothness")
    entries: list[AuditEntry] = []

    # Step 1: header counts
    for name, df in tables.items():
        entries.append(AuditEntry(
            step="normalize-headers",
            sheet=name,
            message=f"{len(df.columns)} cols, {len(df)} rows",
            level="info",
        ))

    # Step 2: classify
    spec_sheets = []
    for name, df in tables.items():
        missing = sorted(SPEC_KEY_COLUMNS - set(df.columns))
        if missing:
            entries.append(AuditEntry(
                step="classify-sheet",
                sheet=name,
                message=f"skip (missing {', '.join(missing)})",
                level="warn",
            ))
        else:
            spec_sheets.append(name)
            entries.append(AuditEntry(step="classify-sheet", sheet=name, message="spec", level="info"))

    # Step 3: unit tokens
    for name in spec_sheets:
        df = tables[name]
        header_units = df.attrs.get("header_units", {})
        for field_name, family in families.items():
            if field_name not in df.columns or df[field_name].dropna().empty:
                continue
            allowed = set(supported_units(family))
            tokens: set[str] = set()
            for column in dict.fromkeys((f"{field_name}_unit", SHARED_UNIT_COLUMNS[field_name])):
                if column in df.columns:
                    tokens |= {str(v).strip() for v in df[column].dropna() if str(v).strip()}
            if field_name in header_units:
                tokens.add(header_units[field_name])

            if not tokens:
                entries.append(AuditEntry(
                    step="unit-check",
                    sheet=name,
                    message=f"{field_name}: no unit column or header unit",
                    level="error",
                ))
            for token in sorted(tokens - allowed):
                entries.append(AuditEntry(
                    step="unit-check",
                    sheet=name,
                    message=f"{field_name}: unsupported {family} unit {token!r}",
                    level="error",
                ))
    return entries


if __name__ == "__main__":
    main()
