"""Short human-readable digest of a processed document."""

from models import NlpError, NlpResult, OcrResult, Summary, ValidationReport


def build_summary(ocr: OcrResult, nlp_result: NlpResult, report: ValidationReport) -> Summary:
    key_findings: list[str] = []
    document_type = "unknown"

    if not isinstance(nlp_result, NlpError):
        if nlp_result.document_type is not None:
            document_type = nlp_result.document_type
        company = nlp_result.company_info
        financial = nlp_result.financial_data

        if company.name is not None:
            key_findings.append(f"Company name: {company.name}")
        if company.tax_id is not None:
            key_findings.append(f"Tax ID: {company.tax_id}")
        if financial.revenue is not None:
            key_findings.append(f"Revenue: {financial.revenue}")
        if financial.net_income is not None:
            key_findings.append(f"Net income: {financial.net_income}")

    return Summary(
        ocr_confidence=ocr.confidence,
        document_type=document_type,
        validation_status=report.status,
        error_count=len(report.errors),
        warning_count=len(report.warnings),
        key_findings=key_findings,
    )
