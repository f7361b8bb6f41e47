from __future__ import annotations
from pathlib import Path
from typing import List, Sequence
from jinja2 import Environment, FileSystemLoader, select_autoescape
from schema import LINE_ITEM_FIELDS, PlData, SankeyRow

DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def format_amount(value: float | None, unit: str | None = None) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, float) and not value.is_integer():
        formatted = f"{value:,.2f}"
    else:
        formatted = f"{int(value):,}"
    return f"{formatted}{unit or ''}"


def format_oku(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.1f}"


def render_report(
    data: PlData,
    rows: Sequence[SankeyRow],
    warnings: List[str] | None = None,
    template_dir: Path | None = None,
) -> str:
    env = Environment(
        loader=FileSystemLoader((template_dir or DEFAULT_TEMPLATE_DIR).as_posix()),
        autoescape=select_autoescape(),
    )
    env.filters['format_amount'] = format_amount
    env.filters['format_oku'] = format_oku

    tpl = env.get_template("report.md.j2")
    line_items = [getattr(data, field) for field in LINE_ITEM_FIELDS]
    return tpl.render(data=data, line_items=line_items, rows=rows, warnings=warnings or [])


def render_markdown(
    data: PlData,
    rows: Sequence[SankeyRow],
    out_path: Path,
    warnings: List[str] | None = None,
    template_dir: Path | None = None,
) -> None:
    md = render_report(data, rows, warnings, template_dir)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(md, encoding="utf-8")
