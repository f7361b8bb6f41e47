import json

import fitz  # PyMuPDF
import pytest

from ai_client import MockAIClient
from errors import MissingSegmentDataError, SchemaError
from main import main
from pipeline import run_from_json, run_pipeline


@pytest.fixture
def pl_json(tmp_path, mock_payload):
    path = tmp_path / "pl.json"
    path.write_text(json.dumps(mock_payload, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "tanshin.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "FY2025 Q4 earnings report")
    doc.save(path.as_posix())
    doc.close()
    return path


def _assert_outputs(outdir, result):
    for key in ("xlsx", "html", "markdown"):
        assert (outdir / "outputs").exists()
        assert result.outputs[key]
    assert (outdir / "outputs" / "サンプル工業株式会社_2025年3月期_PL.xlsx").exists()
    assert (outdir / "outputs" / "sankey.html").exists()
    assert (outdir / "outputs" / "report.md").exists()
    rows = json.loads((outdir / "extracted" / "sankey_rows.json").read_text(encoding="utf-8"))
    assert len(rows) == len(result.rows)


def test_run_from_json(tmp_path, pl_json):
    outdir = tmp_path / "out"
    result = run_from_json(pl_json, outdir)
    _assert_outputs(outdir, result)
    assert result.warnings == []
    runlog = json.loads((outdir / "logs" / "run.json").read_text(encoding="utf-8"))
    assert runlog["source"] == "json"
    assert runlog["rows"] == len(result.rows)


def test_run_from_json_english(tmp_path, pl_json):
    result = run_from_json(pl_json, tmp_path / "out", language="en")
    assert result.rows[0].target == "Revenue"


def test_run_from_json_reports_segment_gap(tmp_path, mock_payload, capsys):
    mock_payload["segments"] = [{"name": "機械事業", "amount_this_year": 50000, "amount_last_year": 94000}]
    path = tmp_path / "gap.json"
    path.write_text(json.dumps(mock_payload, ensure_ascii=False), encoding="utf-8")
    result = run_from_json(path, tmp_path / "out")
    assert len(result.warnings) == 1
    assert "[WARNING] 当期" in capsys.readouterr().out
    assert "注意事項" in (tmp_path / "out" / "outputs" / "report.md").read_text(encoding="utf-8")


def test_invalid_json_writes_nothing(tmp_path, mock_payload):
    del mock_payload["income_tax"]
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(mock_payload), encoding="utf-8")
    with pytest.raises(SchemaError):
        run_from_json(path, tmp_path / "out")
    assert not (tmp_path / "out").exists()


def test_run_pipeline_with_mock_client(tmp_path, pdf_file):
    outdir = tmp_path / "out"
    result = run_pipeline(pdf_file, outdir, ai_provider="mock", ai_client=MockAIClient())
    _assert_outputs(outdir, result)
    assert result.meta.pages == 1
    assert result.meta.filename == "tanshin.pdf"
    assert (outdir / "extracted" / "pages.jsonl").exists()
    runlog = json.loads((outdir / "logs" / "run.json").read_text(encoding="utf-8"))
    assert runlog["model"] == "mock"
    assert len(runlog["prompt_version"]) == 12


def test_run_pipeline_without_segments(tmp_path, pdf_file, mock_payload):
    mock_payload["segments"] = []
    with pytest.raises(MissingSegmentDataError):
        run_pipeline(pdf_file, tmp_path / "out", ai_client=MockAIClient(mock_payload))
    assert not list((tmp_path / "out" / "outputs").glob("*.xlsx"))


def test_run_pipeline_rejects_non_pdf(tmp_path):
    path = tmp_path / "report.txt"
    path.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="PDF"):
        run_pipeline(path, tmp_path / "out")


def test_main_json(tmp_path, pl_json, capsys):
    code = main(["--json", str(pl_json), "--outdir", str(tmp_path / "out"), "--show-rows"])
    out = capsys.readouterr().out
    assert code == 0
    assert out.startswith("Done.")
    assert "営業利益 → 経常利益: 93.0 / 78.5" in out


def test_main_reports_errors(tmp_path, mock_payload, capsys):
    mock_payload["currency_unit"] = "円（千）"
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(mock_payload, ensure_ascii=False), encoding="utf-8")
    code = main(["--json", str(path), "--outdir", str(tmp_path / "out")])
    assert code == 1
    assert "エラー: currency_unit" in capsys.readouterr().err


def test_single_year_html(tmp_path, pl_json):
    outdir = tmp_path / "out"
    run_from_json(pl_json, outdir, year="last")
    runlog = json.loads((outdir / "logs" / "run.json").read_text(encoding="utf-8"))
    assert runlog["year"] == "last"
    assert (outdir / "outputs" / "sankey.html").stat().st_size > 0
