from __future__ import annotations
import json
import re
from pathlib import Path
from typing import Any, List, Optional

from ai_client import BaseAIClient
from errors import ExtractionError, MissingSegmentDataError
from pdf_utils import extract_text_per_page
from prompt_loader import PromptLoader
from schema import PlData, validate_pl_data

CODE_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
CODE_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def parse_ai_json(text: Optional[str]) -> Any:
    """AI応答テキストからJSONを取り出す（マークダウンのコードフェンスは除去）"""
    if not text or not text.strip():
        raise ExtractionError("AIからテキスト応答がありませんでした")
    json_str = text.strip()
    if json_str.startswith("```"):
        json_str = CODE_FENCE_CLOSE.sub("", CODE_FENCE_OPEN.sub("", json_str))
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"AI応答をJSONとして解析できませんでした: {exc.msg} (line {exc.lineno})") from exc


def check_segments(parsed: Any) -> None:
    if isinstance(parsed, dict) and not parsed.get("segments"):
        raise MissingSegmentDataError()


def extract_pl_from_pages(
    pages: List[dict],
    ai_client: BaseAIClient,
    prompt_loader: Optional[PromptLoader] = None,
) -> PlData:
    loader = prompt_loader or PromptLoader()
    prompt = loader.create_extraction_prompt(pages)
    raw_text = ai_client.extract_pl(prompt)
    parsed = parse_ai_json(raw_text)
    check_segments(parsed)
    return validate_pl_data(parsed)


def extract_pl_from_pdf(
    pdf_path: Path,
    ai_client: BaseAIClient,
    prompt_loader: Optional[PromptLoader] = None,
) -> PlData:
    pages = extract_text_per_page(pdf_path)
    return extract_pl_from_pages(pages, ai_client, prompt_loader)
