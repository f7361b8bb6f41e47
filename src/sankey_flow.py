"""
P/Lデータ → Sankey用テーブル（億円）の変換

営業外収益・特別利益は下流の合計へ直接流入するため、
本流（営業利益→経常利益、経常利益→税引前利益）から同額を差し引いて二重計上を防ぐ。
"""
from __future__ import annotations
import math
from typing import Dict, List, Literal, Sequence, Tuple

from schema import PlData, PlLineItem, SankeyRow

Language = Literal["ja", "en"]

# 億円に換算するための除数
UNIT_DIVISOR: Dict[str, int] = {
    "百万円": 100,
    "千円": 100_000,
    "円": 100_000_000,
}

CANONICAL_LABELS: Dict[str, Tuple[str, str]] = {
    "revenue": ("売上高", "Revenue"),
    "cost_of_sales": ("売上原価", "Cost of Sales"),
    "gross_profit": ("売上総利益", "Gross Profit"),
    "sga_expenses": ("販売費及び一般管理費", "SGA Expenses"),
    "operating_income": ("営業利益", "Operating Income"),
    "non_operating_income": ("営業外収益", "Non-operating Income"),
    "non_operating_expenses": ("営業外費用", "Non-operating Expenses"),
    "ordinary_income": ("経常利益", "Ordinary Income"),
    "extraordinary_income": ("特別利益", "Extraordinary Income"),
    "extraordinary_losses": ("特別損失", "Extraordinary Losses"),
    "income_before_tax": ("税金等調整前当期純利益", "Income Before Tax"),
    "income_tax": ("法人税等", "Income Tax"),
    "net_income": ("当期純利益", "Net Income"),
}


def to_oku(amount: float, unit: str) -> float:
    """金額を億円に換算し、小数第1位で四捨五入（0.5は切り上げ）"""
    divisor = UNIT_DIVISOR.get(unit)
    if divisor is None:
        return amount
    return math.floor(amount * 10 / divisor + 0.5) / 10


def _oku_pair(item, unit: str) -> Tuple[float, float]:
    return to_oku(item.amount_this_year, unit), to_oku(item.amount_last_year, unit)


def balanced_inflow(total: PlLineItem, additives: Sequence[PlLineItem], unit: str) -> Tuple[float, float]:
    """加算要素を差し引いた本流の流入額 (当期, 前期)。負値は0に丸める"""
    this_year, last_year = _oku_pair(total, unit)
    for item in additives:
        add_this, add_last = _oku_pair(item, unit)
        this_year -= add_this
        last_year -= add_last
    return max(0.0, round(this_year, 1)), max(0.0, round(last_year, 1))


def line_label(data: PlData, field: str, language: Language = "ja") -> str:
    item: PlLineItem = getattr(data, field)
    ja, en = CANONICAL_LABELS[field]
    if language == "en":
        return item.label_en.strip() or en
    return item.label_ja.strip() or ja


class _RowBuilder:
    def __init__(self, data: PlData, language: Language) -> None:
        self.data = data
        self.unit = data.currency_unit
        self.language = language
        self.rows: List[SankeyRow] = []

    def label(self, field: str) -> str:
        return line_label(self.data, field, self.language)

    def add(self, source: str, target: str, amounts: Tuple[float, float]) -> None:
        self.rows.append(
            SankeyRow(source=source, target=target, amount_this_year=amounts[0], amount_last_year=amounts[1])
        )

    def direct(self, source_field: str, target_field: str) -> None:
        amounts = _oku_pair(getattr(self.data, target_field), self.unit)
        self.add(self.label(source_field), self.label(target_field), amounts)

    def conditional(self, source_field: str, target_field: str, item_field: str) -> None:
        amounts = _oku_pair(getattr(self.data, item_field), self.unit)
        if amounts[0] > 0 or amounts[1] > 0:
            self.add(self.label(source_field), self.label(target_field), amounts)

    def balanced(self, source_field: str, target_field: str, additive_fields: Sequence[str]) -> None:
        additives = [getattr(self.data, f) for f in additive_fields]
        amounts = balanced_inflow(getattr(self.data, target_field), additives, self.unit)
        self.add(self.label(source_field), self.label(target_field), amounts)


def build_sankey_rows(data: PlData, language: Language = "ja") -> List[SankeyRow]:
    """Sankey用テーブルを固定順で生成する"""
    b = _RowBuilder(data, language)
    revenue_label = b.label("revenue")

    for seg in data.segments:
        b.add(seg.name, revenue_label, _oku_pair(seg, b.unit))

    b.direct("revenue", "cost_of_sales")
    b.direct("revenue", "gross_profit")
    b.direct("gross_profit", "sga_expenses")
    b.direct("gross_profit", "operating_income")

    b.conditional("operating_income", "non_operating_expenses", "non_operating_expenses")
    b.conditional("non_operating_income", "ordinary_income", "non_operating_income")
    b.balanced("operating_income", "ordinary_income", ["non_operating_income"])

    b.conditional("ordinary_income", "extraordinary_losses", "extraordinary_losses")
    b.conditional("extraordinary_income", "income_before_tax", "extraordinary_income")
    b.balanced("ordinary_income", "income_before_tax", ["extraordinary_income"])

    b.direct("income_before_tax", "income_tax")
    b.direct("income_before_tax", "net_income")
    return b.rows


def check_segment_total(data: PlData, tolerance: float = 0.05) -> List[str]:
    """セグメント合計と売上高の乖離が許容幅を超える年度について警告文を返す"""
    warnings: List[str] = []
    years = (
        ("当期", "amount_this_year"),
        ("前期", "amount_last_year"),
    )
    for year_label, attr in years:
        revenue = getattr(data.revenue, attr)
        seg_total = sum(getattr(seg, attr) for seg in data.segments)
        if revenue == 0:
            if seg_total != 0:
                warnings.append(f"{year_label}: 売上高が0ですがセグメント合計は{seg_total:,}{data.currency_unit}です")
            continue
        gap = (seg_total - revenue) / abs(revenue)
        if abs(gap) > tolerance:
            warnings.append(
                f"{year_label}: セグメント合計 {seg_total:,}{data.currency_unit} が"
                f"売上高 {revenue:,}{data.currency_unit} と {gap:+.1%} 乖離しています"
            )
    return warnings
