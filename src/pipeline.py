from __future__ import annotations
from pathlib import Path
import json, os, time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ai_client import BaseAIClient, get_ai_client
from ai_utils import summarize_usage
from excel_writer import workbook_filename, write_pl_workbook
from md_renderer import render_markdown
from pdf_utils import check_pdf, extract_text_per_page, save_json, save_jsonl, sha256_file
from pl_extractor import extract_pl_from_pages
from prompt_loader import PromptLoader
from sankey_flow import Language, build_sankey_rows, check_segment_total
from sankey_graph import build_sankey_graph
from sankey_renderer import build_sankey_figure, build_year_toggle_figure, write_sankey_html
from schema import DocMeta, PipelineResult, PlData, validate_pl_data


@dataclass
class Paths:
    root: Path
    extracted: Path
    outputs: Path
    logs: Path


def ensure_dirs(root: Path) -> Paths:
    paths = Paths(
        root=root,
        extracted=root / "extracted",
        outputs=root / "outputs",
        logs=root / "logs",
    )
    for p in [paths.extracted, paths.outputs, paths.logs]:
        p.mkdir(parents=True, exist_ok=True)
    return paths


def segment_tolerance() -> float:
    return float(os.getenv("PL_SANKEY_SEGMENT_TOLERANCE", "0.05"))


def write_outputs(
    pl_data: PlData,
    paths: Paths,
    meta: DocMeta,
    language: Language = "ja",
    year: str = "both",
    runlog_extra: Optional[Dict[str, Any]] = None,
) -> PipelineResult:
    """検証済みP/Lから Sankeyテーブル・Excel・HTML・Markdown を出力"""
    save_json(pl_data.model_dump(), paths.extracted / "pl_data.json")

    rows = build_sankey_rows(pl_data, language=language)
    save_json([row.model_dump() for row in rows], paths.extracted / "sankey_rows.json")

    warnings = check_segment_total(pl_data, tolerance=segment_tolerance())
    for w in warnings:
        print(f"[WARNING] {w}")

    title = f"{pl_data.company_name} {pl_data.fiscal_period} 損益フロー"
    xlsx_path = write_pl_workbook(pl_data, rows, paths.outputs / workbook_filename(pl_data))
    if year == "both":
        fig = build_year_toggle_figure(rows, title)
    else:
        fig = build_sankey_figure(build_sankey_graph(rows, use_this_year=(year == "this")), title)
    html_path = write_sankey_html(fig, paths.outputs / "sankey.html")
    md_path = paths.outputs / "report.md"
    render_markdown(pl_data, rows, md_path, warnings=warnings)

    outputs = {
        "xlsx": xlsx_path.as_posix(),
        "html": html_path.as_posix(),
        "markdown": md_path.as_posix(),
    }
    runlog: Dict[str, Any] = {
        "ts": int(time.time()),
        "doc_id": meta.doc_id,
        "filename": meta.filename,
        "pages": meta.pages,
        "language": language,
        "year": year,
        "rows": len(rows),
        "warnings": warnings,
        "outputs": outputs,
    }
    runlog.update(runlog_extra or {})
    (paths.logs / "run.json").write_text(json.dumps(runlog, indent=2, ensure_ascii=False), encoding="utf-8")

    return PipelineResult(meta=meta, pl_data=pl_data, rows=rows, warnings=warnings, outputs=outputs)


def run_pipeline(
    pdf_path: Path,
    outdir: Path,
    ai_provider: str = "mock",
    language: Language = "ja",
    ai_client: Optional[BaseAIClient] = None,
    year: str = "both",
) -> PipelineResult:
    check_pdf(pdf_path)
    paths = ensure_dirs(outdir)
    file_hash = sha256_file(pdf_path)

    print("[INFO] PDFからテキストを抽出中...")
    pages = extract_text_per_page(pdf_path)
    save_jsonl(pages, paths.extracted / "pages.jsonl")

    client = ai_client or get_ai_client(ai_provider)
    prompt_loader = PromptLoader()
    print("[INFO] 損益計算書データを抽出中...")
    pl_data = extract_pl_from_pages(pages, client, prompt_loader)

    meta = DocMeta(doc_id=file_hash[:12], filename=pdf_path.name, pages=len(pages))
    extra = {
        "file_hash": file_hash,
        "ai_provider": ai_provider,
        "model": getattr(client, "model_name", None),
        "prompt_version": prompt_loader.get_prompt_version(),
        "tokens": summarize_usage(client.last_usage),
    }
    return write_outputs(pl_data, paths, meta, language=language, year=year, runlog_extra=extra)


def run_from_json(json_path: Path, outdir: Path, language: Language = "ja", year: str = "both") -> PipelineResult:
    """抽出済みのP/L JSONから出力のみを生成"""
    raw = json.loads(json_path.read_text(encoding="utf-8"))
    pl_data = validate_pl_data(raw)
    paths = ensure_dirs(outdir)
    meta = DocMeta(doc_id=sha256_file(json_path)[:12], filename=json_path.name, pages=0)
    return write_outputs(pl_data, paths, meta, language=language, year=year, runlog_extra={"source": "json"})


def summarize_rows(result: PipelineResult) -> List[str]:
    return [
        f"{row.source} → {row.target}: {row.amount_this_year:,.1f} / {row.amount_last_year:,.1f}"
        for row in result.rows
    ]
