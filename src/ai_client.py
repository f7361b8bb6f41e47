from __future__ import annotations
import json
import os
import time
from typing import Dict, Any, Optional
from abc import ABC, abstractmethod
from dotenv import load_dotenv

from ai_utils import completion_kwargs, create_openai_client, extract_usage

# .envファイルを読み込み
load_dotenv()


MOCK_PL_DATA: Dict[str, Any] = {
    "company_name": "サンプル工業株式会社",
    "fiscal_period": "2025年3月期",
    "currency_unit": "百万円",
    "consolidated": True,
    "segments": [
        {"name": "機械事業", "amount_this_year": 62000, "amount_last_year": 58000},
        {"name": "素材事業", "amount_this_year": 31000, "amount_last_year": 30500},
        {"name": "サービス事業", "amount_this_year": 9000, "amount_last_year": 7800},
    ],
    "revenue": {"label_ja": "売上高", "label_en": "Revenue", "amount_this_year": 100000, "amount_last_year": 94000},
    "cost_of_sales": {"label_ja": "売上原価", "label_en": "Cost of Sales", "amount_this_year": 70000, "amount_last_year": 66500},
    "gross_profit": {"label_ja": "売上総利益", "label_en": "Gross Profit", "amount_this_year": 30000, "amount_last_year": 27500},
    "sga_expenses": {"label_ja": "販売費及び一般管理費", "label_en": "SGA Expenses", "amount_this_year": 20000, "amount_last_year": 19000},
    "operating_income": {"label_ja": "営業利益", "label_en": "Operating Income", "amount_this_year": 10000, "amount_last_year": 8500},
    "non_operating_income": {"label_ja": "営業外収益", "label_en": "Non-operating Income", "amount_this_year": 1200, "amount_last_year": 900},
    "non_operating_expenses": {"label_ja": "営業外費用", "label_en": "Non-operating Expenses", "amount_this_year": 700, "amount_last_year": 650},
    "ordinary_income": {"label_ja": "経常利益", "label_en": "Ordinary Income", "amount_this_year": 10500, "amount_last_year": 8750},
    "extraordinary_income": {"label_ja": "特別利益", "label_en": "Extraordinary Income", "amount_this_year": 300, "amount_last_year": 0},
    "extraordinary_losses": {"label_ja": "特別損失", "label_en": "Extraordinary Losses", "amount_this_year": 800, "amount_last_year": 450},
    "income_before_tax": {"label_ja": "税金等調整前当期純利益", "label_en": "Income Before Tax", "amount_this_year": 10000, "amount_last_year": 8300},
    "income_tax": {"label_ja": "法人税等", "label_en": "Income Tax", "amount_this_year": 3100, "amount_last_year": 2600},
    "net_income": {"label_ja": "親会社株主に帰属する当期純利益", "label_en": "Net Income", "amount_this_year": 6900, "amount_last_year": 5700},
}


class BaseAIClient(ABC):
    """AI APIクライアントのベースクラス"""

    def __init__(self) -> None:
        self.last_usage: Optional[Dict[str, Any]] = None
        self.model_name: str = "unknown"

    def reset_usage(self) -> None:
        self.last_usage = None

    @abstractmethod
    def extract_pl(self, prompt: str) -> str:
        """P/Lデータ（JSON文字列）を抽出"""
        raise NotImplementedError


class MockAIClient(BaseAIClient):
    """テスト用のモックAIクライアント"""

    def __init__(self, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__()
        self.model_name = "mock"
        self.payload = payload if payload is not None else MOCK_PL_DATA

    def _set_mock_usage(self) -> None:
        self.last_usage = {
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
            "prompt_tokens_details": {"cached_tokens": 0},
        }

    def extract_pl(self, prompt: str) -> str:
        self._set_mock_usage()
        return "```json\n" + json.dumps(self.payload, ensure_ascii=False, indent=2) + "\n```"


class OpenAIClient(BaseAIClient):
    """OpenAI APIクライアント"""

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Any = None) -> None:
        super().__init__()
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key and client is None:
            raise ValueError("OpenAI API key is required")

        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o")
        self.model_name = self.model
        self.max_retries = int(os.getenv("OPENAI_MAX_RETRIES", "4"))
        self.retry_backoff = float(os.getenv("OPENAI_RETRY_BACKOFF", "1.8"))

        import openai  # type: ignore

        self._openai = openai
        self._client = client or create_openai_client(self.api_key)
        print(f"Using OpenAI model: {self.model}")

    def _should_retry(self, error: Exception) -> bool:
        status = getattr(error, "status_code", None) or getattr(error, "http_status", None)
        if status in self.RETRYABLE_STATUS:
            return True
        error_type = type(error).__name__
        return error_type in {"RateLimitError", "APITimeoutError"}

    def _chat_completion(self, prompt: str) -> str:
        self.reset_usage()
        kwargs = completion_kwargs(prompt, self.model)
        print(f"[DEBUG] Model: {self.model}, Prompt length: {len(prompt)} chars")
        attempt = 0
        delay = 1.0
        while True:
            try:
                response = self._client.chat.completions.create(**kwargs)
                content = response.choices[0].message.content if response.choices else None
                if not content or not content.strip():
                    finish_reason = response.choices[0].finish_reason if response.choices else None
                    raise ValueError(f"OpenAI returned empty response content (finish_reason: {finish_reason})")
                self.last_usage = extract_usage(response)
                return content
            except self._openai.RateLimitError:  # type: ignore[attr-defined]
                attempt += 1
                if attempt > self.max_retries:
                    raise
                print(f"[WARNING] Rate limited. Retrying in {delay:.1f}s ({attempt}/{self.max_retries})")
                time.sleep(delay)
                delay *= self.retry_backoff
            except self._openai.APIError as exc:  # type: ignore[attr-defined]
                if not self._should_retry(exc):
                    raise
                attempt += 1
                if attempt > self.max_retries:
                    raise
                print(f"[WARNING] OpenAI API error: {exc}. Retrying in {delay:.1f}s ({attempt}/{self.max_retries})")
                time.sleep(delay)
                delay *= self.retry_backoff

    def extract_pl(self, prompt: str) -> str:
        return self._chat_completion(prompt)


def get_ai_client(provider: str = "mock") -> BaseAIClient:
    """AIクライアントを取得"""
    if provider == "openai":
        return OpenAIClient()
    if provider == "mock":
        return MockAIClient()
    raise ValueError(f"Unsupported AI provider: {provider}")
