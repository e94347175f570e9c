import glob
import json
import logging
import os
import re

import pandas as pd
import pytest
from click.testing import CliRunner

from paperspec.__main__ import main


@pytest.fixture(autouse=True)
def reset_logging():
    # commands attach handlers to the root logger; drop them between tests
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def _written_products(output_root) -> list[str]:
    return sorted(glob.glob(os.path.join(str(output_root), "*", "products", "*.json")))


def test_parse_excel_creates_records(spec_workbook, tmp_path):
    """
    Runs `paperspec parse-excel` on a small workbook and checks the counts and the files written.
    """
    out = tmp_path / "out"
    runner = CliRunner()
    result = runner.invoke(main, ["parse-excel", "-e", spec_workbook, "-o", str(out)])
    assert result.exit_code == 0, result.output

    m1 = re.search(r"Created (\d+) product records", result.output)
    assert m1, f"Missing product line in output:\n{result.output}"
    assert int(m1.group(1)) == 2

    m2 = re.search(r"Created (\d+) spec records", result.output)
    assert m2, f"Missing spec line in output:\n{result.output}"
    assert int(m2.group(1)) == 3

    # the Notes sheet is reported, not fatal
    assert "Warnings found in mapping:" in result.output
    assert "Errors found in mapping:" not in result.output

    files = _written_products(out)
    assert [os.path.basename(f) for f in files] == [
        "001_nordic-paper_kraft-sack.json",
        "002_sun-mill_offset-white.json",
    ]
    with open(files[0], encoding="utf-8") as fh:
        record = json.load(fh)
    assert record["category_hint"] == "Kraft"
    assert record["specs"][0]["tensile_md"] == pytest.approx(66.67, abs=0.01)


def test_parse_excel_reports_rejected_rows(tmp_path):
    df = pd.DataFrame({
        "Mill": ["M", "M"],
        "Product": ["P", "P"],
        "GSM": [80, 90],
        "Tear MD": [64, 70],
        "Tear Unit": ["gf", "lbf"],
    })
    path = tmp_path / "bad.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        df.to_excel(w, sheet_name="Specs", index=False)

    runner = CliRunner()
    result = runner.invoke(main, ["parse-excel", "-e", str(path), "-o", str(tmp_path / "out")])
    assert result.exit_code == 0, result.output
    assert "Errors found in mapping:" in result.output
    assert "'lbf'" in result.output
    assert "Created 1 spec records" in result.output

    strict = runner.invoke(main, ["parse-excel", "-e", str(path), "-o", str(tmp_path / "strict"), "--strict"])
    assert strict.exit_code == 0, strict.output
    assert "Created 0 product records" in strict.output


def test_parse_excel_verbose_shows_audit(spec_workbook, tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, ["parse-excel", "-e", spec_workbook, "-o", str(tmp_path), "--verbose"])
    assert result.exit_code == 0, result.output
    assert "classify-sheet" in result.output


def test_parse_excel_log_file(spec_workbook, tmp_path):
    log_file = tmp_path / "run.log"
    runner = CliRunner()
    result = runner.invoke(
        main, ["parse-excel", "-e", spec_workbook, "-o", str(tmp_path), "--log-file-path", str(log_file)]
    )
    assert result.exit_code == 0, result.output
    content = log_file.read_text(encoding="utf-8")
    assert "Beginning parse of" in content
    assert "INFO" in content


def test_parse_excel_missing_file():
    runner = CliRunner()
    result = runner.invoke(main, ["parse-excel", "-e", "does-not-exist.xlsx"])
    assert result.exit_code == 2


def test_parse_json_creates_records(extracted_json, tmp_path):
    out = tmp_path / "out"
    runner = CliRunner()
    result = runner.invoke(main, ["parse-json", "-j", extracted_json, "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "Created 1 product records" in result.output
    assert "Created 2 spec records" in result.output

    files = _written_products(out)
    assert len(files) == 1
    with open(files[0], encoding="utf-8") as fh:
        record = json.load(fh)
    assert record["test_standards"] == ["ISO 534", "ISO 1924-2"]
    assert record["specs"][0]["tear_md"] == pytest.approx(627.6, abs=0.1)
    assert record["specs"][0]["smoothness_method"] == "Bekk"


def test_parse_json_rejects_bad_payload(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(main, ["parse-json", "-j", str(path), "-o", str(tmp_path)])
    assert result.exit_code == 1
    assert "Error" in result.output
