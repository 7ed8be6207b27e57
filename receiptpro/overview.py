"""HTML dashboard over everything held in the key-value store."""
from __future__ import annotations

import html
import json
from typing import Any, Dict, Iterable, List, Mapping

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from receiptpro.dependencies.services import (
    get_invoice_service,
    get_preference_service,
    get_profile_service,
    get_receipt_service,
)
from receiptpro.routes.errors import to_http_exception
from receiptpro.schemas.documents import DocumentStats, Invoice, Receipt
from receiptpro.schemas.profile import BusinessProfile
from receiptpro.services import DocumentService, PreferenceService, ProfileService
from receiptpro.services.exceptions import ServiceError
from receiptpro.services.formatting import format_currency, format_date

router = APIRouter()


def _stringify(value: Any) -> str:
    """Return a JSON-friendly string representation for table cells."""
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return str(value)
    return json.dumps(value, default=str)


def _build_table(title: str, rows: Iterable[Mapping[str, Any]]) -> str:
    row_list: List[Dict[str, Any]] = [dict(row) for row in rows]
    section_parts = [f"<section><h2>{html.escape(title)}</h2>"]
    if not row_list:
        section_parts.append("<p>No records found.</p></section>")
        return "".join(section_parts)

    columns: List[str] = []
    for row in row_list:
        for key in row.keys():
            if key not in columns:
                columns.append(key)

    header = "".join(f"<th>{html.escape(column)}</th>" for column in columns)
    body_rows: List[str] = []
    for row in row_list:
        cells = [f"<td>{html.escape(_stringify(row.get(column)))}</td>" for column in columns]
        body_rows.append("<tr>" + "".join(cells) + "</tr>")
    section_parts.append(
        "<table><thead><tr>"
        + header
        + "</tr></thead><tbody>"
        + "".join(body_rows)
        + "</tbody></table></section>"
    )
    return "".join(section_parts)


def _profile_rows(profiles: Iterable[BusinessProfile], current_id: str | None) -> List[Dict[str, Any]]:
    return [
        {
            "name": profile.name,
            "email": profile.email,
            "phone": profile.phone,
            "city": profile.city,
            "country": profile.country,
            "current": profile.id == current_id,
        }
        for profile in profiles
    ]


def _receipt_rows(receipts: Iterable[Receipt], date_format: str) -> List[Dict[str, Any]]:
    return [
        {
            "number": receipt.receipt_number,
            "customer": receipt.customer.name,
            "date": format_date(receipt.transaction_date, date_format),
            "payment": receipt.payment_method.value,
            "status": receipt.status.value,
            "total": format_currency(receipt.totals.total, receipt.currency),
        }
        for receipt in receipts
    ]


def _invoice_rows(invoices: Iterable[Invoice], date_format: str) -> List[Dict[str, Any]]:
    return [
        {
            "number": invoice.invoice_number,
            "client": invoice.client.name,
            "issued": format_date(invoice.issue_date, date_format),
            "due": format_date(invoice.due_date, date_format),
            "status": invoice.status.value,
            "total": format_currency(invoice.totals.total, invoice.currency),
        }
        for invoice in invoices
    ]


def _stats_rows(stats: Iterable[DocumentStats]) -> List[Dict[str, Any]]:
    return [
        {
            "document": item.document_type.value,
            "count": item.total_documents,
            "revenue": ", ".join(
                format_currency(amount, currency) for currency, amount in item.currency_breakdown.items()
            ),
            "by_status": item.status_counts,
        }
        for item in stats
    ]


@router.get("/overview", response_class=HTMLResponse)
async def view_overview(
    profiles: ProfileService = Depends(get_profile_service),
    preferences: PreferenceService = Depends(get_preference_service),
    receipts: DocumentService = Depends(get_receipt_service),
    invoices: DocumentService = Depends(get_invoice_service),
) -> HTMLResponse:
    """Render stored profiles, documents and dashboard totals as HTML tables."""
    try:
        date_format = (await preferences.get()).date_format
        current = await profiles.get_current()
        sections = [
            _build_table("Dashboard", _stats_rows([await receipts.stats(), await invoices.stats()])),
            _build_table(
                "Business Profiles",
                _profile_rows(await profiles.list(), current.id if current else None),
            ),
            _build_table("Receipts", _receipt_rows(await receipts.list(), date_format)),
            _build_table("Invoices", _invoice_rows(await invoices.list(), date_format)),
        ]
    except ServiceError as exc:
        raise to_http_exception(exc) from exc

    sections_html = "".join(sections)
    html_content = f"""
    <html>
        <head>
            <title>ReceiptPro Overview</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 2rem; }}
                h1 {{ text-align: center; }}
                section {{ margin-bottom: 2rem; }}
                table {{ border-collapse: collapse; width: 100%; }}
                th, td {{ border: 1px solid #ccc; padding: 0.5rem; text-align: left; }}
                th {{ background-color: #f0f0f0; }}
                tbody tr:nth-child(even) {{ background-color: #fafafa; }}
            </style>
        </head>
        <body>
            <h1>ReceiptPro Overview</h1>
            {sections_html}
        </body>
    </html>
    """

    return HTMLResponse(content=html_content)
