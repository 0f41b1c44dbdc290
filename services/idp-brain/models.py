"""Pydantic models for the extraction-and-validation pipeline.

Financial-fields records come straight from a model reply, so every field is
optional and missing keys, explicit nulls, and bare JSON numbers are all
normalised here at the deserialization boundary.
"""

import json
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer


def _stringify(value):
    # Keep the model's formatting for strings; numbers become their text form.
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def _item_list(value, bare_key: str) -> list:
    """Normalise an auxiliary list; items that are not objects land under ``bare_key``."""
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [
        item if isinstance(item, (dict, BaseModel)) else {bare_key: _stringify(item)}
        for item in value
    ]


class _ReplyModel(BaseModel):
    """Base for records parsed from model output."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def coerce_scalars(cls, value):
        return _stringify(value)


class CompanyInfo(_ReplyModel):
    name: str | None = None
    tax_id: str | None = None
    address: str | None = None
    contact: str | None = None


class FinancialData(_ReplyModel):
    revenue: str | None = None
    cost: str | None = None
    gross_profit: str | None = None
    operating_expenses: str | None = None
    operating_income: str | None = None
    net_income: str | None = None
    total_assets: str | None = None
    total_liabilities: str | None = None
    total_equity: str | None = None


class DateInfo(_ReplyModel):
    document_date: str | None = None
    period_start: str | None = None
    period_end: str | None = None


class OtherField(_ReplyModel):
    field_name: str | None = None
    value: str | None = None
    location: str | None = None


class UncertainItem(_ReplyModel):
    field: str | None = None
    original_value: str | None = None
    reason: str | None = None


class FinancialFieldsRecord(BaseModel):
    """Structured fields extracted from a financial document."""

    model_config = ConfigDict(extra="ignore")

    document_type: str | None = None
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    financial_data: FinancialData = Field(default_factory=FinancialData)
    date_info: DateInfo = Field(default_factory=DateInfo)
    other_fields: list[OtherField] = []
    uncertain_items: list[UncertainItem] = []

    @field_validator("document_type", mode="before")
    @classmethod
    def coerce_document_type(cls, value):
        return _stringify(value)

    @field_validator("company_info", "financial_data", "date_info", mode="before")
    @classmethod
    def null_section(cls, value):
        return {} if value is None else value

    @field_validator("other_fields", mode="before")
    @classmethod
    def other_field_list(cls, value):
        return _item_list(value, "value")

    @field_validator("uncertain_items", mode="before")
    @classmethod
    def uncertain_item_list(cls, value):
        return _item_list(value, "reason")


class NlpError(BaseModel):
    """NLP reply that could not be turned into a FinancialFieldsRecord."""

    error: str
    raw_response: str


NlpResult = NlpError | FinancialFieldsRecord


class OcrResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw_text: str
    confidence: float


class Finding(BaseModel):
    """A validation error or warning. Unset optional members are not serialized."""

    type: str
    severity: Literal["high", "medium", "low"]
    message: str | None = None
    expected: str | None = None
    actual: str | None = None
    difference: str | None = None
    field: str | None = None
    value: str | None = None
    reason: str | None = None

    @model_serializer(mode="wrap")
    def drop_unset(self, handler):
        return {k: v for k, v in handler(self).items() if v is not None}


class ValidationReport(BaseModel):
    status: Literal["passed", "failed", "skipped"]
    errors: list[Finding] = []
    warnings: list[Finding] = []
    checks_performed: dict[str, bool] = {}
    reason: str | None = None

    @model_serializer(mode="wrap")
    def drop_reason(self, handler):
        data = handler(self)
        if data.get("reason") is None:
            data.pop("reason", None)
        return data


class Summary(BaseModel):
    processing_status: Literal["completed"] = "completed"
    ocr_confidence: float
    document_type: str
    validation_status: str
    error_count: int
    warning_count: int
    key_findings: list[str] = []


class ProcessingResult(BaseModel):
    ocr: OcrResult
    nlp: NlpError | FinancialFieldsRecord
    validation: ValidationReport
    summary: Summary


class ProgressEvent(BaseModel):
    stage_name: str
    message: str
    percent: int


class ProcessingMeta(BaseModel):
    original_filename: str
    file_size: int
    mime_type: str
    processing_time_seconds: float
    timestamp: str


class ProcessResponse(BaseModel):
    success: bool = True
    data: ProcessingResult
    meta: ProcessingMeta
