"""Shared test fixtures for IDP brain tests."""

import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))


class StubCompletion:
    """Completion capability that replays canned replies and records calls."""

    def __init__(self, *replies):
        self._replies = list(replies)
        self.calls: list[dict] = []

    def complete(self, prompt, image_bytes=None, mime_type=None):
        self.calls.append({"prompt": prompt, "image_bytes": image_bytes, "mime_type": mime_type})
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def stub_completion():
    return StubCompletion


@pytest.fixture
def sample_ocr_text() -> str:
    """Plain OCR output of a small balance sheet."""
    return (
        "宏達科技股份有限公司\n"
        "統一編號：04595257\n"
        "資產負債表  2024年12月31日\n"
        "資產總額        1,100\n"
        "負債總額          600\n"
        "權益總額          400\n"
    )


@pytest.fixture
def balanced_record_data() -> dict:
    """NLP reply for a document whose figures are all consistent."""
    return {
        "document_type": "資產負債表",
        "company_info": {
            "name": "宏達科技股份有限公司",
            "tax_id": "04595257",
            "address": None,
            "contact": None,
        },
        "financial_data": {
            "revenue": "5,000,000",
            "cost": "3,000,000",
            "gross_profit": "2,000,000",
            "operating_expenses": "800,000",
            "operating_income": "1,200,000",
            "net_income": "950,000",
            "total_assets": "1,000",
            "total_liabilities": "600",
            "total_equity": "400",
        },
        "date_info": {
            "document_date": "2024-12-31",
            "period_start": "2024-01-01",
            "period_end": "2024-12-31",
        },
        "other_fields": [],
        "uncertain_items": [],
    }


@pytest.fixture
def unbalanced_nlp_reply(balanced_record_data: dict) -> str:
    """NLP reply whose balance sheet is off by 100."""
    data = json.loads(json.dumps(balanced_record_data))
    data["financial_data"]["total_assets"] = "1,100"
    return json.dumps(data, ensure_ascii=False)


@pytest.fixture
def sample_image_bytes() -> bytes:
    """A small PNG page with a few dark bars standing in for text lines."""
    import cv2

    img = np.full((400, 300, 3), 235, dtype=np.uint8)
    cv2.rectangle(img, (20, 40), (280, 55), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 90), (250, 105), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 140), (220, 155), (30, 30, 30), -1)

    _, buf = cv2.imencode(".png", img)
    return buf.tobytes()


@pytest.fixture
def invalid_bytes() -> bytes:
    """Non-image bytes for testing graceful degradation."""
    return b"this is not an image file at all"
