"""
Export Formatters for Claims.

Provides CSV, JSON and plain-text report formatting for the export
endpoints.
"""

import csv
import io
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from src.core.enums import ExportFormat
from src.schemas.claim import Claim, format_timestamp
from src.utils.formatters import DEFAULT_CURRENCY_SYMBOL

CSV_HEADERS = [
    "Claim ID",
    "Patient Name",
    "Policy Number",
    "Claim Date",
    "Status",
    "Total Bills",
    "Advance Paid",
    "Settlement Amount",
    "Pending Amount",
    "Number of Bills",
    "Created At",
    "Updated At",
]

REPORT_RULE = "=" * 50
SECTION_RULE = "-" * 30


class JSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for claim data.

    Handles Decimal, datetime, date, and Enum types.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, datetime):
            return format_timestamp(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def format_claims_as_csv(claims: Iterable[Claim]) -> str:
    """
    Format claims as CSV, one row per claim.

    Amounts have two decimals; claim date is YYYY-MM-DD and timestamps are
    ISO-8601 with milliseconds.
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADERS)

    for claim in claims:
        writer.writerow(
            [
                claim.id,
                claim.patient_name,
                claim.policy_number,
                claim.claim_date.date().isoformat(),
                claim.status.display_name,
                _money(claim.total_bill_amount),
                _money(claim.advance_paid),
                _money(claim.settlement_amount),
                _money(claim.pending_amount),
                claim.bill_count,
                format_timestamp(claim.created_at),
                format_timestamp(claim.updated_at),
            ]
        )

    return output.getvalue()


def format_claims_as_json(claims: Iterable[Claim]) -> str:
    """Format claims as a JSON array of stored records."""
    return json.dumps(
        [claim.to_record() for claim in claims],
        cls=JSONEncoder,
        indent=2,
        ensure_ascii=False,
    )


def format_claim_report(
    claim: Claim,
    generated_at: Optional[datetime] = None,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> str:
    """Plain-text report for a single claim."""
    generated_at = generated_at or datetime.now()

    def money(value: Decimal) -> str:
        return f"{currency_symbol}{value:.2f}"

    lines = [
        "INSURANCE CLAIM REPORT",
        REPORT_RULE,
        "",
        "PATIENT INFORMATION",
        SECTION_RULE,
        f"Patient Name: {claim.patient_name}",
        f"Policy Number: {claim.policy_number}",
        f"Claim Date: {claim.claim_date.date().isoformat()}",
        f"Current Status: {claim.status.display_name}",
        "",
        "BILLS",
        SECTION_RULE,
    ]

    if not claim.bills:
        lines.append("No bills added")
    for number, bill in enumerate(claim.bills, start=1):
        lines.append(f"{number}. {bill.description}: {money(bill.amount)}")

    lines += [
        "",
        "FINANCIAL SUMMARY",
        SECTION_RULE,
        f"Total Bill Amount: {money(claim.total_bill_amount)}",
        f"Advance Paid: {money(claim.advance_paid)}",
        f"Settlement Amount: {money(claim.settlement_amount)}",
        f"Pending Amount: {money(claim.pending_amount)}",
        "",
        "TIMESTAMPS",
        SECTION_RULE,
        f"Created: {format_timestamp(claim.created_at)}",
        f"Last Updated: {format_timestamp(claim.updated_at)}",
        "",
        REPORT_RULE,
        f"Generated on: {format_timestamp(generated_at)}",
    ]
    return "\n".join(lines) + "\n"


_EXTENSIONS = {
    ExportFormat.JSON: "json",
    ExportFormat.CSV: "csv",
    ExportFormat.TEXT: "txt",
}

_CONTENT_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.TEXT: "text/plain",
}


def generate_filename(
    format: ExportFormat,
    claim: Optional[Claim] = None,
    timestamp: Optional[datetime] = None,
) -> str:
    """
    Generate a filename for the export.

    Args:
        format: Export format
        claim: The claim for a single-claim report
        timestamp: Export time for collection exports (default: now)

    Returns:
        Filename with extension
    """
    extension = _EXTENSIONS[format]
    if claim is not None:
        return f"claim_{claim.policy_number}_report.{extension}"
    timestamp = timestamp or datetime.now()
    return f"insurance_claims_{int(timestamp.timestamp() * 1000)}.{extension}"


def get_content_type(format: ExportFormat) -> str:
    """
    Get the Content-Type header for the export format.

    Args:
        format: Export format

    Returns:
        MIME type string
    """
    return _CONTENT_TYPES[format]
