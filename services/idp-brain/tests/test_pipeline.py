"""End-to-end pipeline tests with a stubbed completion capability."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import pipeline
from completion_client import ApiError, TransportError
from models import FinancialFieldsRecord, NlpError, ProcessingResult, ProgressEvent
from pipeline import iter_processing, mime_type_for, process_document


class TestProcessDocument:
    def test_unbalanced_balance_sheet_fails_validation(
        self, stub_completion, sample_ocr_text: str, unbalanced_nlp_reply: str,
    ):
        completion = stub_completion(sample_ocr_text, unbalanced_nlp_reply)
        result = process_document(b"page", "image/png", "statement.png", completion)

        assert result.ocr.raw_text == sample_ocr_text
        assert isinstance(result.nlp, FinancialFieldsRecord)
        assert result.validation.status == "failed"
        assert [e.type for e in result.validation.errors] == ["accounting_equation"]
        assert result.summary.error_count == 1
        assert result.summary.validation_status == "failed"

    def test_nlp_prompt_embeds_ocr_text(self, stub_completion, sample_ocr_text: str, balanced_record_data: dict):
        completion = stub_completion(sample_ocr_text, json.dumps(balanced_record_data))
        result = process_document(b"page", "application/pdf", "statement.pdf", completion)

        assert result.validation.status == "passed"
        assert completion.calls[0]["image_bytes"] == b"page"
        assert completion.calls[0]["mime_type"] == "application/pdf"
        assert sample_ocr_text in completion.calls[1]["prompt"]

    def test_unparseable_nlp_reply_skips_validation(self, stub_completion):
        completion = stub_completion("some text", "not json at all")
        result = process_document(b"page", "image/png", "scan.png", completion)

        assert isinstance(result.nlp, NlpError)
        assert result.validation.status == "skipped"
        assert result.summary.document_type == "unknown"
        dumped = result.model_dump(mode="json")
        assert set(dumped["nlp"]) == {"error", "raw_response"}

    def test_empty_ocr_text_does_not_crash(self, stub_completion):
        completion = stub_completion("", "{}")
        result = process_document(b"page", "image/png", "blank.png", completion)

        assert result.ocr.confidence == 0
        assert result.validation.status == "passed"
        assert not any(result.validation.checks_performed.values())

    def test_serialized_record_keeps_null_fields(self, stub_completion):
        completion = stub_completion("text", '{"document_type": "invoice"}')
        dumped = process_document(b"page", "image/png", "a.png", completion).model_dump(mode="json")

        assert dumped["nlp"]["company_info"]["tax_id"] is None
        assert dumped["nlp"]["financial_data"]["total_assets"] is None

    def test_transport_error_aborts(self, stub_completion):
        completion = stub_completion(TransportError("Cannot reach completion service"))
        with pytest.raises(TransportError):
            process_document(b"page", "image/png", "a.png", completion)

    def test_api_error_during_nlp_aborts(self, stub_completion):
        completion = stub_completion("text", ApiError(429, "Quota exceeded"))
        with pytest.raises(ApiError, match="Quota exceeded"):
            process_document(b"page", "image/png", "a.png", completion)


class TestIterProcessing:
    def test_events_then_result(self, stub_completion, sample_ocr_text: str, unbalanced_nlp_reply: str):
        completion = stub_completion(sample_ocr_text, unbalanced_nlp_reply)
        items = list(iter_processing(b"page", "image/png", "a.png", completion))

        events = items[:-1]
        assert all(isinstance(e, ProgressEvent) for e in events)
        assert isinstance(items[-1], ProcessingResult)

        percents = [e.percent for e in events]
        assert percents == sorted(percents)
        assert all(0 <= p <= 100 for p in percents)
        assert [e.stage_name for e in events] == [
            "ocr_start", "ocr_done", "nlp_start", "nlp_done",
            "validation_start", "validation_done", "complete",
        ]

    def test_closing_early_skips_remaining_calls(self, stub_completion, sample_ocr_text: str):
        completion = stub_completion(sample_ocr_text, "{}")
        stages = iter_processing(b"page", "image/png", "a.png", completion)

        for event in stages:
            if event.stage_name == "ocr_done":
                break
        stages.close()

        assert len(completion.calls) == 1

    def test_streaming_and_direct_results_match(self, stub_completion, sample_ocr_text: str, unbalanced_nlp_reply: str):
        streamed = list(iter_processing(
            b"page", "image/png", "a.png", stub_completion(sample_ocr_text, unbalanced_nlp_reply),
        ))[-1]
        direct = process_document(b"page", "image/png", "a.png", stub_completion(sample_ocr_text, unbalanced_nlp_reply))

        assert streamed.model_dump() == direct.model_dump()
        assert streamed.validation.checks_performed["operating_income_check"] is True


class TestPreprocessingHook:
    def test_disabled_by_default(self, stub_completion, sample_image_bytes: bytes):
        completion = stub_completion("text", "{}")
        process_document(sample_image_bytes, "image/png", "a.png", completion)
        assert completion.calls[0]["image_bytes"] == sample_image_bytes

    def test_enabled_for_images(self, stub_completion):
        completion = stub_completion("text", "{}")
        with patch.object(pipeline.settings, "IMAGE_PREPROCESSING", True), \
                patch.object(pipeline, "preprocess", return_value=(b"cleaned", "image/png")) as prep:
            process_document(b"raw", "image/jpeg", "a.jpg", completion)

        prep.assert_called_once_with(b"raw", "image/jpeg")
        assert completion.calls[0]["image_bytes"] == b"cleaned"
        assert completion.calls[0]["mime_type"] == "image/png"

    def test_pdf_never_preprocessed(self, stub_completion):
        completion = stub_completion("text", "{}")
        with patch.object(pipeline.settings, "IMAGE_PREPROCESSING", True), \
                patch.object(pipeline, "preprocess") as prep:
            process_document(b"%PDF-1.7", "application/pdf", "a.pdf", completion)

        prep.assert_not_called()


class TestMimeTypeFor:
    @pytest.mark.parametrize("filename, expected", [
        ("scan.JPG", "image/jpeg"),
        ("scan.jpeg", "image/jpeg"),
        ("page.png", "image/png"),
        ("fax.tiff", "image/tiff"),
        ("report.pdf", "application/pdf"),
        ("notes.txt", "application/octet-stream"),
        ("no_extension", "application/octet-stream"),
    ])
    def test_mapping(self, filename: str, expected: str):
        assert mime_type_for(filename) == expected
