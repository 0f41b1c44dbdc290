"""Rule-based consistency checks over extracted financial fields.

Each identity check needs all of its inputs to parse as numbers; when one is
missing the check is skipped and recorded as not performed rather than
reported as a failure. Tolerance is 1% of the larger compared magnitude and
a difference equal to the tolerance passes.
"""

import logging

from models import Finding, FinancialFieldsRecord, NlpError, NlpResult, ValidationReport
from numbers_fmt import format_number, parse_number
from tax_id import clean_tax_id, validate_tax_id

logger = logging.getLogger(__name__)

TOLERANCE_RATIO = 0.01

DEFAULT_UNCERTAIN_FIELD = "unknown"
DEFAULT_UNCERTAIN_REASON = "OCR not confident"


def validate(nlp_result: NlpResult) -> ValidationReport:
    """Run every check against *nlp_result* and collect errors and warnings."""
    if isinstance(nlp_result, NlpError):
        return ValidationReport(status="skipped", reason="NLP analysis failed")

    errors: list[Finding] = []
    warnings: list[Finding] = []

    equation_ran, finding = _check_accounting_equation(nlp_result)
    if finding:
        errors.append(finding)

    gross_ran, finding = _check_gross_profit(nlp_result)
    if finding:
        errors.append(finding)

    operating_ran, finding = _check_operating_income(nlp_result)
    if finding:
        warnings.append(finding)

    warnings.extend(_uncertain_item_warnings(nlp_result))

    tax_id_ran, finding = _check_tax_id(nlp_result)
    if finding:
        warnings.append(finding)

    report = ValidationReport(
        status="failed" if errors else "passed",
        errors=errors,
        warnings=warnings,
        checks_performed={
            "accounting_equation": equation_ran,
            "gross_profit_check": gross_ran,
            "operating_income_check": operating_ran,
            "tax_id_check": tax_id_ran,
        },
    )
    logger.info(
        "Validation %s: %d errors, %d warnings",
        report.status, len(errors), len(warnings),
    )
    return report


def _check_accounting_equation(record: FinancialFieldsRecord) -> tuple[bool, Finding | None]:
    """Assets = Liabilities + Equity."""
    data = record.financial_data
    assets = parse_number(data.total_assets)
    liabilities = parse_number(data.total_liabilities)
    equity = parse_number(data.total_equity)

    if assets is None or liabilities is None or equity is None:
        return False, None

    expected = liabilities + equity
    difference = abs(assets - expected)
    tolerance = max(assets, expected) * TOLERANCE_RATIO
    if difference <= tolerance:
        return True, None

    return True, Finding(
        type="accounting_equation",
        message=(
            f"Accounting equation out of balance: assets ({format_number(assets)}) "
            f"!= liabilities ({format_number(liabilities)}) + equity ({format_number(equity)})"
        ),
        expected=format_number(expected),
        actual=format_number(assets),
        difference=format_number(difference),
        severity="high",
    )


def _check_gross_profit(record: FinancialFieldsRecord) -> tuple[bool, Finding | None]:
    """Gross profit = Revenue - Cost."""
    data = record.financial_data
    revenue = parse_number(data.revenue)
    cost = parse_number(data.cost)
    gross_profit = parse_number(data.gross_profit)

    if revenue is None or cost is None or gross_profit is None:
        return False, None

    expected = revenue - cost
    difference = abs(gross_profit - expected)
    tolerance = max(abs(gross_profit), abs(expected)) * TOLERANCE_RATIO
    if difference <= tolerance:
        return True, None

    return True, Finding(
        type="gross_profit_calculation",
        message=(
            f"Gross profit mismatch: revenue ({format_number(revenue)}) "
            f"- cost ({format_number(cost)}) != gross profit ({format_number(gross_profit)})"
        ),
        expected=format_number(expected),
        actual=format_number(gross_profit),
        difference=format_number(difference),
        severity="high",
    )


def _check_operating_income(record: FinancialFieldsRecord) -> tuple[bool, Finding | None]:
    """Operating income = Gross profit - Operating expenses. Advisory only."""
    data = record.financial_data
    gross_profit = parse_number(data.gross_profit)
    operating_expenses = parse_number(data.operating_expenses)
    operating_income = parse_number(data.operating_income)

    if gross_profit is None or operating_expenses is None or operating_income is None:
        return False, None

    expected = gross_profit - operating_expenses
    difference = abs(operating_income - expected)
    tolerance = max(abs(operating_income), abs(expected)) * TOLERANCE_RATIO
    if difference <= tolerance:
        return True, None

    return True, Finding(
        type="operating_income_calculation",
        message=(
            f"Operating income may be wrong: gross profit ({format_number(gross_profit)}) "
            f"- operating expenses ({format_number(operating_expenses)}) "
            f"!= operating income ({format_number(operating_income)})"
        ),
        expected=format_number(expected),
        actual=format_number(operating_income),
        difference=format_number(difference),
        severity="medium",
    )


def _uncertain_item_warnings(record: FinancialFieldsRecord) -> list[Finding]:
    warnings = []
    for item in record.uncertain_items:
        field = item.field if item.field is not None else DEFAULT_UNCERTAIN_FIELD
        reason = item.reason if item.reason is not None else DEFAULT_UNCERTAIN_REASON
        warnings.append(Finding(
            type="uncertain_value",
            message=f"Uncertain value for {field}: {reason}",
            field=field,
            value=item.original_value if item.original_value is not None else "",
            reason=reason,
            severity="medium",
        ))
    return warnings


def _check_tax_id(record: FinancialFieldsRecord) -> tuple[bool, Finding | None]:
    raw = record.company_info.tax_id
    if raw is None:
        return False, None

    cleaned = clean_tax_id(raw)
    if len(cleaned) != 8:
        return True, Finding(
            type="tax_id_format",
            message="Business registration number should be 8 digits",
            value=raw,
            severity="medium",
        )

    if not validate_tax_id(cleaned):
        return True, Finding(
            type="tax_id_checksum",
            message="Business registration number failed checksum validation",
            value=raw,
            severity="low",
        )

    return True, None
