from __future__ import annotations
import copy
from typing import Any, Dict

import pytest

from ai_client import MOCK_PL_DATA
from sankey_flow import CANONICAL_LABELS
from schema import PlData, validate_pl_data


def _zero_payload() -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "company_name": "テスト株式会社",
        "fiscal_period": "2025年3月期",
        "currency_unit": "百万円",
        "consolidated": True,
        "segments": [{"name": "A", "amount_this_year": 0, "amount_last_year": 0}],
    }
    for field, (ja, en) in CANONICAL_LABELS.items():
        payload[field] = {"label_ja": ja, "label_en": en, "amount_this_year": 0, "amount_last_year": 0}
    return payload


@pytest.fixture
def make_payload():
    """全項目0の雛形に (当期, 前期) の金額を上書きした dict を返す"""

    def _make(segments=None, **amounts) -> Dict[str, Any]:
        payload = _zero_payload()
        if segments is not None:
            payload["segments"] = [
                {"name": name, "amount_this_year": this, "amount_last_year": last}
                for name, this, last in segments
            ]
        for field, (this, last) in amounts.items():
            payload[field]["amount_this_year"] = this
            payload[field]["amount_last_year"] = last
        return payload

    return _make


@pytest.fixture
def make_pl(make_payload):
    def _make(segments=None, **amounts) -> PlData:
        return validate_pl_data(make_payload(segments=segments, **amounts))

    return _make


@pytest.fixture
def mock_payload() -> Dict[str, Any]:
    return copy.deepcopy(MOCK_PL_DATA)


@pytest.fixture
def sample_pl(mock_payload) -> PlData:
    return validate_pl_data(mock_payload)
