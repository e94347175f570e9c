import json

import pandas as pd
import pytest


@pytest.fixture
def extracted_document() -> dict:
    """
    A document as handed over by the TDS extractor: one product, two GSM variants.
    """
    return {
        "mill_name": "Nordic Paper",
        "product_name": "Kraft Sack 70",
        "category_hint": "Kraft",
        "specs": [
            {
                "gsm": 70,
                "caliper": {"value": 0.105, "unit": "mm"},
                "tensile_md": {"value": 1000, "unit": "N/15mm"},
                "tensile_cd": {"value": 4.2, "unit": "kN/m"},
                "tear_md": {"value": 64, "unit": "gf"},
                "tear_cd": None,
                "smoothness": {"value": 40, "unit": "sec", "method": "Bekk"},
                "stiffness_md": {"value": 100, "unit": "gf·cm"},
                "brightness": None,
                "cobb_60": 28,
            },
            {
                "gsm": 80,
                "caliper": {"value": 4.5, "unit": "mil"},
                "tensile_md": {"value": 10, "unit": "kgf/15mm"},
            },
        ],
        "test_standards": ["ISO 534", "ISO 1924-2", 7],
        "notes": "Values are typical.",
    }


@pytest.fixture
def extracted_json(tmp_path, extracted_document) -> str:
    path = tmp_path / "extracted.json"
    path.write_text(json.dumps(extracted_document, ensure_ascii=False), encoding="utf-8")
    return str(path)


@pytest.fixture
def spec_workbook(tmp_path) -> str:
    """
    A tiny workbook with one spec sheet (two products, three rows) and one unrelated sheet.
    Headers are written the way mills write them; the loader normalizes them.
    """
    specs = pd.DataFrame({
        "Mill": ["Nordic Paper", "Nordic Paper", "Sun Mill"],
        "Product Name": ["Kraft Sack", "Kraft Sack", "Offset White"],
        "GSM": [70, 80, 90],
        "Thickness": [0.105, 0.12, 110],
        "Thickness Unit": ["mm", "mm", "µm"],
        "Tensile MD": [1000, 1100, 5.5],
        "Tensile CD": [600, 650, 3.1],
        "Tensile Unit": ["N/15mm", "N/15mm", "kN/m"],
        "Smoothness": [40, 45, 4.5],
        "Smoothness Unit": ["sec", "sec", "µm"],
        "Stiffness MD (mN·m)": [None, None, 0.8],
        "Brightness (%)": [None, None, 92],
        "Porosity": ["12", "15", None],
        "Category": ["Kraft", "Kraft", "UWF"],
    })
    notes = pd.DataFrame({"Remark": ["checked by QA"]})

    path = tmp_path / "specs.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        specs.to_excel(w, sheet_name="Specs", index=False)
        notes.to_excel(w, sheet_name="Notes", index=False)
    return str(path)
