from __future__ import annotations
from typing import Any, Dict, List, Optional


class PlSankeyError(Exception):
    """P/L → Sankey 処理の基底例外"""


class SchemaError(PlSankeyError, ValueError):
    """P/Lデータがスキーマに適合しない"""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class MissingSegmentDataError(PlSankeyError):
    """抽出は成功したがセグメント情報が空"""

    DEFAULT_MESSAGE = (
        "セグメント情報が見つかりませんでした。"
        "この決算短信にはセグメント別の売上情報が含まれていない可能性があります。"
    )

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.DEFAULT_MESSAGE)


class ExtractionError(PlSankeyError):
    """AI応答からP/Lデータを取り出せない"""


class InternalConsistencyError(PlSankeyError, RuntimeError):
    """フロー構築の不変条件違反（正しいコードでは発生しない）"""
