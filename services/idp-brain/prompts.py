"""Prompts for the OCR and field-extraction stages.

Documents are typically Taiwanese financial statements and invoices, so the
extraction template names the usual Traditional Chinese labels next to each
key.
"""

UNCERTAIN_MARKER = "[?]"

OCR_PROMPT = f"""You are a professional OCR system. Carefully analyze this document image and extract all visible text.

Follow these rules:
1. Preserve the original layout and structure of the document.
2. If text is blurry, infer the most likely content.
3. Mark every character or word you are not sure about with {UNCERTAIN_MARKER} right after it.
4. Pay special attention to digits. Do not confuse easily mixed characters such as 0 and O, 1 and l, 3 and 8.
5. Recognize table structures and keep their columns aligned.

Output the recognized text as plain text, keeping the original layout."""

_SCHEMA_TEMPLATE = """{
    "document_type": "document type, e.g. financial statement, invoice, balance sheet (資產負債表), income statement (損益表)",
    "company_info": {
        "name": "company name (公司名稱)",
        "tax_id": "business registration number (統一編號)",
        "address": "address (地址)",
        "contact": "contact details (聯絡方式)"
    },
    "financial_data": {
        "revenue": "operating revenue (營業收入)",
        "cost": "operating costs (營業成本)",
        "gross_profit": "gross profit (毛利)",
        "operating_expenses": "operating expenses (營業費用)",
        "operating_income": "operating income (營業利益)",
        "net_income": "net income (淨利)",
        "total_assets": "total assets (資產總額)",
        "total_liabilities": "total liabilities (負債總額)",
        "total_equity": "total equity (權益總額)"
    },
    "date_info": {
        "document_date": "document date (文件日期)",
        "period_start": "period start (期間起始)",
        "period_end": "period end (期間結束)"
    },
    "other_fields": [
        {"field_name": "field name", "value": "value", "location": "where the field appears in the document"}
    ],
    "uncertain_items": [
        {"field": "field", "original_value": "value as read", "reason": "why it is uncertain"}
    ]
}"""

_EXTRACTION_RULES = """Important:
1. Keep numbers in their original format, including thousands separators.
2. If a field is not present, set it to null.
3. Capture every numeric field, even ones not listed above, under other_fields.
4. Flag any value that may be wrong under uncertain_items.

CRITICAL OUTPUT RULES:
- Return ONLY a single valid JSON object. No other text before or after.
- Do NOT wrap in code fences or add any markdown formatting.
- Start the reply with { and end it with }."""


def build_extraction_prompt(raw_text: str) -> str:
    """Embed OCR output into the structured-extraction prompt."""
    return (
        "You are a professional financial document analysis system. "
        "Analyze the document content below and extract the key financial fields.\n\n"
        "Document content:\n---\n"
        f"{raw_text}\n"
        "---\n\n"
        "Return the analysis as JSON with the following fields (where present):\n\n"
        f"{_SCHEMA_TEMPLATE}\n\n"
        f"{_EXTRACTION_RULES}"
    )
