"""
AI呼び出しの共通ユーティリティ関数
GPT-5のパラメータ制限に統一対応
"""
import os
from typing import Any, Dict, List, Optional
from openai import OpenAI

SYSTEM_PROMPT = "あなたは決算短信から数値を正確に抽出する専門家です。指定されたJSONのみを返してください。"


def create_openai_client(api_key: Optional[str] = None) -> OpenAI:
    """OpenAIクライアントを作成"""
    api_key = api_key or os.getenv('OPENAI_API_KEY')
    if not api_key:
        raise ValueError("OpenAI API key is required")
    return OpenAI(api_key=api_key)


def extraction_max_tokens(model: str) -> int:
    # GPT-5は推論トークンを消費するため大きめに確保
    if model.startswith("gpt-5"):
        return 16000
    return 8192


def build_messages(prompt: str) -> List[Dict[str, str]]:
    cleaned_prompt = prompt.strip()
    if not cleaned_prompt:
        raise ValueError("Empty prompt provided")
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": cleaned_prompt},
    ]


def completion_kwargs(
    prompt: str,
    model: str,
    max_tokens: Optional[int] = None,
    temperature: float = 0.0,
) -> Dict[str, Any]:
    """
    chat.completions.create に渡す引数を組み立てる

    Args:
        prompt: プロンプトテキスト
        model: 使用するモデル
        max_tokens: 最大トークン数（省略時はモデルに応じて決定）
        temperature: 温度パラメータ（GPT-5では無視される）

    Returns:
        create() のキーワード引数
    """
    kwargs: Dict[str, Any] = {
        "model": model,
        "messages": build_messages(prompt),
        "max_completion_tokens": max_tokens or extraction_max_tokens(model),
        "response_format": {"type": "json_object"},
    }
    # GPT-5ではtemperatureはデフォルト値1のみサポート
    if not model.startswith("gpt-5"):
        kwargs["temperature"] = temperature
    return kwargs


def extract_usage(response: Any) -> Dict[str, Any]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return {}
    data: Dict[str, Any] = {
        "prompt_tokens": getattr(usage, "prompt_tokens", None),
        "completion_tokens": getattr(usage, "completion_tokens", None),
        "total_tokens": getattr(usage, "total_tokens", None),
    }
    details = getattr(usage, "prompt_tokens_details", None)
    if details:
        # `details` may be a pydantic model or dict-like object
        if hasattr(details, "model_dump"):
            data["prompt_tokens_details"] = details.model_dump()
        elif hasattr(details, "to_dict"):
            data["prompt_tokens_details"] = details.to_dict()
        else:
            data["prompt_tokens_details"] = dict(details)
    else:
        data["prompt_tokens_details"] = {"cached_tokens": 0}
    return data


def summarize_usage(usage: Optional[Dict[str, Any]]) -> Dict[str, int]:
    tokens = {'input': 0, 'cached_input': 0, 'output': 0, 'total': 0}
    if not usage:
        return tokens
    for key, target in (('prompt_tokens', 'input'), ('completion_tokens', 'output'), ('total_tokens', 'total')):
        value = usage.get(key)
        if isinstance(value, int):
            tokens[target] = value
    details = usage.get('prompt_tokens_details')
    if isinstance(details, dict):
        cached = details.get('cached_tokens')
        if isinstance(cached, int):
            tokens['cached_input'] = cached
    return tokens
