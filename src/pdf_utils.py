from __future__ import annotations
import fitz  # PyMuPDF
from pathlib import Path
from typing import Any
import hashlib
import json

MAX_PDF_BYTES = 20 * 1024 * 1024


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(8192), b''):
            h.update(chunk)
    return h.hexdigest()


def check_pdf(path: Path) -> None:
    """アップロードされたファイルがPDFとして処理可能か確認"""
    if not path.exists():
        raise FileNotFoundError(path)
    if path.suffix.lower() != '.pdf':
        raise ValueError("PDFファイルのみ対応しています")
    if path.stat().st_size > MAX_PDF_BYTES:
        raise ValueError("ファイルサイズは20MB以下にしてください")


def extract_text_per_page(pdf_path: Path) -> list[dict]:
    doc = fitz.open(pdf_path)
    pages = []
    for i, page in enumerate(doc, start=1):
        text = page.get_text('text') or ''
        pages.append({'page': i, 'text': text})
    doc.close()
    return pages


def save_jsonl(lines: list[dict], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        for obj in lines:
            f.write(json.dumps(obj, ensure_ascii=False) + '\n')


def save_json(obj: Any, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding='utf-8')
