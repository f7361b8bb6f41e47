from __future__ import annotations
from pathlib import Path
from typing import Dict, List
import hashlib

EXTRACTION_PROMPT_FILE = "pl_extraction.md"


class PromptLoader:
    """プロンプトファイルを読み込むクラス"""

    def __init__(self, prompt_dir: Path | None = None, max_pages: int = 30):
        self.prompt_dir = Path(prompt_dir) if prompt_dir else Path(__file__).parent.parent / "prompt"
        self.max_pages = max_pages
        self._cache: Dict[str, str] = {}
        self._version_cache: Dict[str, str] = {}

    def _resolve(self, filename: str) -> Path:
        return self.prompt_dir / filename

    def load_prompt(self, filename: str) -> str:
        if filename in self._cache:
            return self._cache[filename]
        prompt_path = self._resolve(filename)
        if not prompt_path.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_path}")
        text = prompt_path.read_text(encoding="utf-8")
        self._cache[filename] = text
        return text

    def load_extraction_prompt(self) -> str:
        return self.load_prompt(EXTRACTION_PROMPT_FILE)

    def get_prompt_version(self, filename: str = EXTRACTION_PROMPT_FILE) -> str:
        if filename in self._version_cache:
            return self._version_cache[filename]
        content = self.load_prompt(filename)
        digest = hashlib.sha256(content.encode("utf-8")).hexdigest()[:12]
        self._version_cache[filename] = digest
        return digest

    def _collect_text_snippet(self, pages: List[dict]) -> str:
        snippet = ""
        for page in pages[:self.max_pages]:
            snippet += f"--- ページ {page['page']} ---\n"
            snippet += page.get("text", "") + "\n\n"
        return snippet

    def create_extraction_prompt(self, pages: List[dict]) -> str:
        base_prompt = self.load_extraction_prompt()
        sections = [
            base_prompt,
            "## 決算短信のテキスト内容\n" + self._collect_text_snippet(pages),
            "上記のテキストから損益計算書とセグメント情報を抽出し、指定のJSON形式のみを返してください。",
        ]
        return "\n".join(section for section in sections if section)
