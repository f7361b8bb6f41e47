from __future__ import annotations
from pathlib import Path
from typing import Sequence

import plotly.graph_objects as go

from sankey_graph import build_sankey_graph
from schema import SankeyChartData, SankeyRow

YEAR_LABELS = {"this_year": "当期", "last_year": "前期"}


def build_sankey_trace(graph: SankeyChartData, visible: bool = True) -> go.Sankey:
    return go.Sankey(
        name=YEAR_LABELS[graph.year],
        visible=visible,
        arrangement="snap",
        orientation="h",
        valueformat=",.1f",
        valuesuffix=" 億円",
        node=dict(
            pad=20,
            thickness=24,
            line=dict(color="white", width=1),
            label=[n.label for n in graph.nodes],
            color=[n.color for n in graph.nodes],
            x=[n.x for n in graph.nodes],
            y=[n.y for n in graph.nodes],
            hovertemplate="%{label}<br>%{value:,.1f} 億円<extra></extra>",
        ),
        link=dict(
            source=[link.source for link in graph.links],
            target=[link.target for link in graph.links],
            value=[link.value for link in graph.links],
            color=[link.color for link in graph.links],
            hovertemplate="%{source.label} → %{target.label}<br>%{value:,.1f} 億円<extra></extra>",
        ),
    )


def _apply_layout(fig: go.Figure, title: str) -> None:
    fig.update_layout(
        title=dict(text=title, font=dict(size=16)),
        font=dict(family="system-ui, sans-serif", size=12),
        margin=dict(l=20, r=20, t=60, b=20),
        height=560,
        paper_bgcolor="white",
    )


def build_sankey_figure(graph: SankeyChartData, title: str) -> go.Figure:
    fig = go.Figure(build_sankey_trace(graph))
    _apply_layout(fig, f"{title}（{YEAR_LABELS[graph.year]}）")
    return fig


def build_year_toggle_figure(rows: Sequence[SankeyRow], title: str) -> go.Figure:
    """当期・前期を切り替えボタン付きで1枚のFigureに描画"""
    this_year = build_sankey_graph(rows, use_this_year=True)
    last_year = build_sankey_graph(rows, use_this_year=False)

    fig = go.Figure([
        build_sankey_trace(this_year, visible=True),
        build_sankey_trace(last_year, visible=False),
    ])
    _apply_layout(fig, title)
    fig.update_layout(
        updatemenus=[
            dict(
                type="buttons",
                direction="right",
                x=1.0,
                y=1.12,
                xanchor="right",
                showactive=True,
                buttons=[
                    dict(label=YEAR_LABELS["this_year"], method="update", args=[{"visible": [True, False]}]),
                    dict(label=YEAR_LABELS["last_year"], method="update", args=[{"visible": [False, True]}]),
                ],
            )
        ]
    )
    return fig


def write_sankey_html(fig: go.Figure, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(path.as_posix(), include_plotlyjs="cdn", full_html=True)
    return path
