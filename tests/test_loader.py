import json

import pandas as pd
import pytest

from paperspec.loader import load_extracted_document, load_sheets_as_tables


def test_headers_are_normalized_and_renamed(spec_workbook):
    tables = load_sheets_as_tables(spec_workbook)
    assert list(tables) == ["Specs", "Notes"]

    columns = list(tables["Specs"].columns)
    assert columns == [
        "mill_name",
        "product_name",
        "gsm",
        "caliper",
        "caliper_unit",
        "tensile_md",
        "tensile_cd",
        "tensile_unit",
        "smoothness",
        "smoothness_unit",
        "stiffness_md",
        "brightness",
        "porosity",
        "category_hint",
    ]
    assert list(tables["Notes"].columns) == ["remark"]


def test_units_in_headers_are_kept(spec_workbook):
    tables = load_sheets_as_tables(spec_workbook)
    assert tables["Specs"].attrs["header_units"] == {"stiffness_md": "mN·m", "brightness": "%"}
    assert tables["Notes"].attrs["header_units"] == {}


def test_rename_never_clobbers_a_column(tmp_path):
    df = pd.DataFrame({
        "Product": ["Kraft Sack"],
        "Name": ["Sack 70"],
        "Mill Name": ["Nordic Paper"],
        "Mill": ["NP"],
    })
    path = tmp_path / "wb.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        df.to_excel(w, sheet_name="S", index=False)

    table = load_sheets_as_tables(str(path))["S"]
    assert list(table.columns) == ["product_name", "name", "mill_name", "mill"]
    assert table.iloc[0]["product_name"] == "Kraft Sack"


def test_empty_rows_are_dropped(tmp_path):
    df = pd.DataFrame({"Mill": ["A", None, "B"], "GSM": [80, None, 90]})
    path = tmp_path / "wb.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        df.to_excel(w, sheet_name="S", index=False)

    table = load_sheets_as_tables(str(path))["S"]
    assert len(table) == 2
    assert list(table["mill_name"]) == ["A", "B"]


def test_load_extracted_document_wraps_a_single_object(extracted_json):
    documents = load_extracted_document(extracted_json)
    assert len(documents) == 1
    assert documents[0]["product_name"] == "Kraft Sack 70"
    assert documents[0]["specs"][0]["stiffness_md"]["unit"] == "gf·cm"


def test_load_extracted_document_list(tmp_path, extracted_document):
    path = tmp_path / "docs.json"
    path.write_text(json.dumps([extracted_document, extracted_document]), encoding="utf-8")
    assert len(load_extracted_document(str(path))) == 2


@pytest.mark.parametrize("payload", [[1, 2], "text", 3])
def test_load_extracted_document_rejects_other_shapes(tmp_path, payload):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError):
        load_extracted_document(str(path))


def test_repeated_headers_keep_the_first_column(tmp_path):
    df = pd.DataFrame({
        "Mill Name": ["Nordic Paper"],
        "Mill Name (company)": ["Nordic Paper AB"],
        "Product": ["Kraft Sack"],
        "GSM": [80],
        "Tear MD (gf)": [64],
        "Tear MD (cN)": [6],
    })
    path = tmp_path / "wb.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        df.to_excel(w, sheet_name="S", index=False)

    table = load_sheets_as_tables(str(path))["S"]
    assert list(table.columns) == ["mill_name", "product_name", "gsm", "tear_md"]
    assert table.iloc[0]["mill_name"] == "Nordic Paper"
    assert table.attrs["header_units"] == {"tear_md": "gf"}
    assert table.attrs["duplicate_columns"] == ["mill_name", "tear_md"]
