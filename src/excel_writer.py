from __future__ import annotations
from io import BytesIO
from pathlib import Path
from typing import List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from schema import PlData, SankeyRow

PL_SHEET = "損益計算書"
SEGMENT_SHEET = "セグメント"
SANKEY_SHEET = "Sankeyテーブル"

AMOUNT_FORMAT = "#,##0"
OKU_FORMAT = "#,##0.0"

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2563EB", end_color="2563EB", fill_type="solid")
TOTAL_FONT = Font(bold=True)
TOTAL_BORDER = Border(top=Side(style="thin"))

# (フィールド名, 字下げ) 字下げ項目は加減算要素、それ以外は段階利益
PL_LAYOUT: List[tuple[str, bool]] = [
    ("revenue", False),
    ("cost_of_sales", True),
    ("gross_profit", False),
    ("sga_expenses", True),
    ("operating_income", False),
    ("non_operating_income", True),
    ("non_operating_expenses", True),
    ("ordinary_income", False),
    ("extraordinary_income", True),
    ("extraordinary_losses", True),
    ("income_before_tax", False),
    ("income_tax", True),
    ("net_income", False),
]


def _write_header(ws: Worksheet, row_idx: int, headers: Sequence[str], widths: Sequence[int]) -> None:
    for col_idx, header in enumerate(headers, 1):
        cell = ws.cell(row=row_idx, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = widths[col_idx - 1]


def _write_pl_sheet(ws: Worksheet, data: PlData) -> None:
    ws.title = PL_SHEET
    ws.cell(row=1, column=1, value=f"{data.company_name} {data.fiscal_period}").font = Font(bold=True, size=14)
    ws.merge_cells("A1:D1")
    info = ws.cell(row=2, column=1, value=f"{'連結' if data.consolidated else '単体'}損益計算書")
    info.font = Font(italic=True, size=11)
    ws.cell(row=2, column=4, value=f"(単位: {data.currency_unit})").font = Font(italic=True, size=11)

    _write_header(ws, 4, ["科目", "English", "当期", "前期"], [35, 25, 18, 18])

    row_idx = 5
    for field, indent in PL_LAYOUT:
        item = getattr(data, field)
        ws.cell(row=row_idx, column=1, value=item.label_ja)
        ws.cell(row=row_idx, column=2, value=item.label_en)
        for col_idx, amount in ((3, item.amount_this_year), (4, item.amount_last_year)):
            ws.cell(row=row_idx, column=col_idx, value=amount).number_format = AMOUNT_FORMAT
        if indent:
            ws.cell(row=row_idx, column=1).alignment = Alignment(indent=1)
        else:
            for col_idx in range(1, 5):
                cell = ws.cell(row=row_idx, column=col_idx)
                cell.font = TOTAL_FONT
                cell.border = TOTAL_BORDER
        row_idx += 1


def _write_segment_sheet(ws: Worksheet, data: PlData) -> None:
    ws.cell(row=1, column=1, value=f"セグメント別売上高 (単位: {data.currency_unit})").font = Font(bold=True)
    _write_header(ws, 3, ["セグメント", "当期", "前期"], [30, 18, 18])
    row_idx = 4
    for seg in data.segments:
        ws.cell(row=row_idx, column=1, value=seg.name)
        ws.cell(row=row_idx, column=2, value=seg.amount_this_year).number_format = AMOUNT_FORMAT
        ws.cell(row=row_idx, column=3, value=seg.amount_last_year).number_format = AMOUNT_FORMAT
        row_idx += 1


def _write_sankey_sheet(ws: Worksheet, rows: Sequence[SankeyRow]) -> None:
    ws.cell(row=1, column=1, value="Sankey Diagram用テーブル (単位: 億円)").font = Font(bold=True)
    ws.cell(row=2, column=1, value="営業外収益・特別利益の加算要素を調整済み").font = Font(italic=True, size=10)
    _write_header(ws, 4, ["Source", "Target", "当期", "前期"], [30, 30, 16, 16])
    row_idx = 5
    for row in rows:
        ws.cell(row=row_idx, column=1, value=row.source)
        ws.cell(row=row_idx, column=2, value=row.target)
        ws.cell(row=row_idx, column=3, value=row.amount_this_year).number_format = OKU_FORMAT
        ws.cell(row=row_idx, column=4, value=row.amount_last_year).number_format = OKU_FORMAT
        row_idx += 1


def build_pl_workbook(data: PlData, rows: Sequence[SankeyRow]) -> Workbook:
    wb = Workbook()
    _write_pl_sheet(wb.active, data)
    _write_segment_sheet(wb.create_sheet(SEGMENT_SHEET), data)
    _write_sankey_sheet(wb.create_sheet(SANKEY_SHEET), rows)
    return wb


def generate_pl_workbook(data: PlData, rows: Sequence[SankeyRow]) -> bytes:
    buffer = BytesIO()
    build_pl_workbook(data, rows).save(buffer)
    return buffer.getvalue()


def write_pl_workbook(data: PlData, rows: Sequence[SankeyRow], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(generate_pl_workbook(data, rows))
    return path


def workbook_filename(data: PlData) -> str:
    safe = "".join(ch if ch not in '\\/:*?"<>|' else "_" for ch in f"{data.company_name}_{data.fiscal_period}")
    return f"{safe}_PL.xlsx"
