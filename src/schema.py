from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError
from typing import Any, Dict, List, Literal, Optional, Union

from errors import SchemaError

Amount = Union[StrictInt, StrictFloat]
CurrencyUnit = Literal["百万円", "千円", "円"]
Year = Literal["this_year", "last_year"]


class PlLineItem(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    label_ja: StrictStr
    label_en: StrictStr
    amount_this_year: Amount
    amount_last_year: Amount


class Segment(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name: StrictStr
    amount_this_year: Amount
    amount_last_year: Amount


class PlData(BaseModel):
    """決算短信から抽出した損益計算書（当期・前期）"""

    model_config = ConfigDict(frozen=True)

    company_name: StrictStr
    fiscal_period: StrictStr
    currency_unit: CurrencyUnit
    consolidated: StrictBool
    segments: List[Segment] = Field(min_length=1)

    revenue: PlLineItem
    cost_of_sales: PlLineItem
    gross_profit: PlLineItem
    sga_expenses: PlLineItem
    operating_income: PlLineItem
    non_operating_income: PlLineItem
    non_operating_expenses: PlLineItem
    ordinary_income: PlLineItem
    extraordinary_income: PlLineItem
    extraordinary_losses: PlLineItem
    income_before_tax: PlLineItem
    income_tax: PlLineItem
    net_income: PlLineItem


LINE_ITEM_FIELDS = (
    "revenue",
    "cost_of_sales",
    "gross_profit",
    "sga_expenses",
    "operating_income",
    "non_operating_income",
    "non_operating_expenses",
    "ordinary_income",
    "extraordinary_income",
    "extraordinary_losses",
    "income_before_tax",
    "income_tax",
    "net_income",
)


class SankeyRow(BaseModel):
    """Sankey用テーブルの1行（金額は億円）"""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    amount_this_year: float
    amount_last_year: float


class SankeyNode(BaseModel):
    id: str
    label: str
    color: str
    x: Optional[float] = None
    y: Optional[float] = None


class SankeyLink(BaseModel):
    source: int
    target: int
    value: float
    color: Optional[str] = None


class SankeyChartData(BaseModel):
    year: Year = "this_year"
    nodes: List[SankeyNode] = Field(default_factory=list)
    links: List[SankeyLink] = Field(default_factory=list)


class DocMeta(BaseModel):
    doc_id: str
    filename: str
    pages: int


class PipelineResult(BaseModel):
    meta: DocMeta
    pl_data: PlData
    rows: List[SankeyRow]
    warnings: List[str] = Field(default_factory=list)
    outputs: Dict[str, str] = Field(default_factory=dict)


def _format_loc(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def validate_pl_data(raw: Any) -> PlData:
    """未検証の抽出結果を PlData に変換する。最初の不一致を SchemaError で報告"""
    if isinstance(raw, PlData):
        return raw
    try:
        return PlData.model_validate(raw)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        first = errors[0]
        message = f"{_format_loc(first['loc'])}: {first['msg']}"
        raise SchemaError(message, errors=errors) from exc
