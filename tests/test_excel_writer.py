from io import BytesIO

from openpyxl import load_workbook

from excel_writer import (
    AMOUNT_FORMAT,
    OKU_FORMAT,
    PL_SHEET,
    SANKEY_SHEET,
    SEGMENT_SHEET,
    generate_pl_workbook,
    workbook_filename,
    write_pl_workbook,
)
from sankey_flow import build_sankey_rows


def _load(data):
    rows = build_sankey_rows(data)
    return load_workbook(BytesIO(generate_pl_workbook(data, rows))), rows


def test_sheets(sample_pl):
    wb, _ = _load(sample_pl)
    assert wb.sheetnames == [PL_SHEET, SEGMENT_SHEET, SANKEY_SHEET]


def test_pl_sheet(sample_pl):
    wb, _ = _load(sample_pl)
    ws = wb[PL_SHEET]
    assert ws["A1"].value == "サンプル工業株式会社 2025年3月期"
    assert ws["A2"].value == "連結損益計算書"
    assert ws["D2"].value == "(単位: 百万円)"
    assert [c.value for c in ws[4]] == ["科目", "English", "当期", "前期"]
    assert [ws.cell(row=5, column=c).value for c in range(1, 5)] == ["売上高", "Revenue", 100000, 94000]
    assert ws["C5"].number_format == AMOUNT_FORMAT
    assert ws["A5"].font.bold
    assert ws["A6"].alignment.indent == 1
    assert ws["A17"].value == "親会社株主に帰属する当期純利益"


def test_segment_sheet(sample_pl):
    wb, _ = _load(sample_pl)
    ws = wb[SEGMENT_SHEET]
    names = [ws.cell(row=r, column=1).value for r in range(4, 7)]
    assert names == ["機械事業", "素材事業", "サービス事業"]
    assert ws["B4"].value == 62000


def test_sankey_sheet(sample_pl):
    wb, rows = _load(sample_pl)
    ws = wb[SANKEY_SHEET]
    assert ws.max_row == 4 + len(rows)
    assert [ws.cell(row=5, column=c).value for c in range(1, 5)] == ["機械事業", "売上高", 620.0, 580.0]
    assert ws["C5"].number_format == OKU_FORMAT


def test_write_to_disk(sample_pl, tmp_path):
    path = write_pl_workbook(sample_pl, build_sankey_rows(sample_pl), tmp_path / "out" / "pl.xlsx")
    assert path.exists() and path.stat().st_size > 0


def test_workbook_filename(make_payload):
    from schema import validate_pl_data

    payload = make_payload()
    payload["fiscal_period"] = "2025/3期"
    assert workbook_filename(validate_pl_data(payload)) == "テスト株式会社_2025_3期_PL.xlsx"
