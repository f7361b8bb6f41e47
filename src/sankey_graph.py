from __future__ import annotations
from typing import Dict, List, Sequence, Tuple

from errors import InternalConsistencyError
from schema import SankeyChartData, SankeyLink, SankeyNode, SankeyRow

PROFIT_COLOR = "#16a34a"
COST_COLOR = "#dc2626"
NEUTRAL_COLOR = "#6b7280"

SEGMENT_X = 0.01
DEFAULT_POSITION = (0.01, 0.5)
LINK_ALPHA = 0.35

# 左から右へ: 売上 → 粗利 → 営業 → 経常 → 税前 → 純利益。利益系は上段、費用系は下段
# 部分一致は宣言順で先勝ち（「税金等調整前当期純利益」は「純利益」より先に判定）
NODE_POSITIONS: List[Tuple[str, Tuple[float, float]]] = [
    ("売上高", (0.18, 0.40)),
    ("売上収益", (0.18, 0.40)),
    ("売上原価", (0.36, 0.85)),
    ("売上総利益", (0.36, 0.30)),
    ("販売費及び一般管理費", (0.54, 0.70)),
    ("営業外収益", (0.54, 0.05)),
    ("営業外費用", (0.72, 0.60)),
    ("営業利益", (0.54, 0.22)),
    ("経常利益", (0.72, 0.18)),
    ("特別利益", (0.72, 0.04)),
    ("特別損失", (0.86, 0.55)),
    ("税金等調整前", (0.86, 0.16)),
    ("税引前", (0.86, 0.16)),
    ("法人税", (0.99, 0.45)),
    ("純利益", (0.99, 0.12)),
    ("Revenue", (0.18, 0.40)),
    ("Cost of Sales", (0.36, 0.85)),
    ("Gross Profit", (0.36, 0.30)),
    ("SGA", (0.54, 0.70)),
    ("Non-operating Income", (0.54, 0.05)),
    ("Non-operating Expenses", (0.72, 0.60)),
    ("Operating Income", (0.54, 0.22)),
    ("Ordinary Income", (0.72, 0.18)),
    ("Extraordinary Income", (0.72, 0.04)),
    ("Extraordinary Losses", (0.86, 0.55)),
    ("Income Before Income Tax", (0.86, 0.16)),
    ("Income Before Tax", (0.86, 0.16)),
    ("Income Tax", (0.99, 0.45)),
    ("Net Income", (0.99, 0.12)),
]

NODE_COLORS: List[Tuple[str, str]] = [
    ("売上高", "#4b5563"),
    ("売上原価", "#dc2626"),
    ("売上総利益", "#16a34a"),
    ("販売費及び一般管理費", "#ea580c"),
    ("営業利益", "#0d9488"),
    ("営業外収益", "#38bdf8"),
    ("営業外費用", "#f472b6"),
    ("経常利益", "#059669"),
    ("特別利益", "#06b6d4"),
    ("特別損失", "#e11d48"),
    ("税金等調整前当期純利益", "#4f46e5"),
    ("法人税等", "#d97706"),
    ("当期純利益", "#15803d"),
]

PROFIT_KEYWORDS = [
    "売上総利益", "営業利益", "経常利益", "純利益", "営業外収益", "特別利益", "税引前", "税金等調整前",
    "gross profit", "operating income", "ordinary income", "net income",
    "non-operating income", "extraordinary income", "income before tax", "income before income tax",
]

COST_KEYWORDS = [
    "売上原価", "販売費", "一般管理費", "営業外費用", "特別損失", "法人税",
    "cost of sales", "sga", "non-operating expenses", "extraordinary losses", "income tax",
]


def _match_table(label: str, table: Sequence[Tuple[str, object]]):
    lowered = label.lower()
    for key, value in table:
        if lowered == key.lower():
            return value
    for key, value in table:
        key = key.lower()
        if key in lowered or lowered in key:
            return value
    return None


def node_position(label: str) -> Tuple[float, float]:
    if not label:
        return DEFAULT_POSITION
    position = _match_table(label, NODE_POSITIONS)
    return position if position is not None else DEFAULT_POSITION


def node_color(label: str) -> str:
    """完全一致 → 部分一致 → キーワード判定 → 既定色"""
    if label:
        color = _match_table(label, NODE_COLORS)
        if color is not None:
            return color
    lowered = label.lower()
    if any(kw in lowered for kw in PROFIT_KEYWORDS):
        return PROFIT_COLOR
    if any(kw in lowered for kw in COST_KEYWORDS):
        return COST_COLOR
    return NEUTRAL_COLOR


def link_color(hex_color: str, alpha: float = LINK_ALPHA) -> str:
    value = hex_color.lstrip("#")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r}, {g}, {b}, {alpha})"


def segment_positions(count: int) -> List[float]:
    if count <= 0:
        return []
    if count == 1:
        return [0.40]
    step = 0.90 / (count - 1)
    return [round(0.05 + i * step, 4) for i in range(count)]


def discover_labels(rows: Sequence[SankeyRow]) -> List[str]:
    seen: Dict[str, None] = {}
    for row in rows:
        seen.setdefault(row.source, None)
        seen.setdefault(row.target, None)
    return list(seen)


def segment_labels(rows: Sequence[SankeyRow]) -> List[str]:
    """一度もターゲットにならないラベル（=セグメント）を出現順で返す

    営業外収益・特別利益のような本流外の流入元もここに含まれ、左端の列に並ぶ。
    """
    targets = {row.target for row in rows}
    return [label for label in discover_labels(rows) if label not in targets]


def build_sankey_graph(rows: Sequence[SankeyRow], use_this_year: bool = True) -> SankeyChartData:
    labels = discover_labels(rows)
    segments = segment_labels(rows)
    segment_y = dict(zip(segments, segment_positions(len(segments))))

    nodes: List[SankeyNode] = []
    for label in labels:
        if label in segment_y:
            x, y = SEGMENT_X, segment_y[label]
        else:
            x, y = node_position(label)
        nodes.append(SankeyNode(id=label, label=label, color=node_color(label), x=x, y=y))

    index = {node.id: i for i, node in enumerate(nodes)}
    links: List[SankeyLink] = []
    for row in rows:
        value = row.amount_this_year if use_this_year else row.amount_last_year
        if value <= 0:
            continue
        source = index.get(row.source)
        target = index.get(row.target)
        if source is None or target is None:
            raise InternalConsistencyError(f"未登録のノードを参照しています: {row.source} → {row.target}")
        links.append(
            SankeyLink(source=source, target=target, value=value, color=link_color(nodes[target].color))
        )

    for link in links:
        if not link.value > 0:
            raise InternalConsistencyError(f"エッジの値が正ではありません: {link.value}")

    return SankeyChartData(
        year="this_year" if use_this_year else "last_year",
        nodes=nodes,
        links=links,
    )
