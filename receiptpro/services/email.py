from __future__ import annotations

import logging
from typing import Optional

from receiptpro.clients.emailjs import EmailJSClient
from receiptpro.schemas.documents import AnyDocument, Invoice, Receipt
from receiptpro.schemas.email import EmailConfig, EmailTemplateParams
from receiptpro.services.exceptions import DownstreamServiceError
from receiptpro.services.formatting import format_currency, format_date, humanize
from receiptpro.services.inflight import InFlightGuard, sends_in_flight

logger = logging.getLogger(__name__)

LONG_DATE = "MMMM dd, yyyy"


def default_receipt_message(receipt: Receipt) -> str:
    profile = receipt.business_profile
    notes = f"\nAdditional Notes:\n{receipt.notes}" if receipt.notes else ""
    return f"""Dear {receipt.customer.name},

Thank you for your purchase! Please find attached your receipt {receipt.receipt_number} for your recent transaction.

Receipt Details:
- Receipt Number: {receipt.receipt_number}
- Transaction Date: {format_date(receipt.transaction_date, LONG_DATE)}
- Payment Method: {humanize(receipt.payment_method.value)}
- Total Amount: {format_currency(receipt.totals.total, receipt.currency)}
{notes}

Thank you for choosing {profile.name}! We appreciate your business.

Best regards,
{profile.name}
{profile.email}
{profile.phone}""".rstrip()


def default_invoice_message(invoice: Invoice) -> str:
    notes = f"\nAdditional Notes:\n{invoice.notes}" if invoice.notes else ""
    return f"""Dear {invoice.client.name},

I hope this email finds you well. Please find attached invoice {invoice.invoice_number} for the services/products provided.

Invoice Details:
- Invoice Number: {invoice.invoice_number}
- Total Amount: {format_currency(invoice.totals.total, invoice.currency)}
- Due Date: {format_date(invoice.due_date, LONG_DATE)}
{notes}

Please don't hesitate to contact us if you have any questions regarding this invoice.

Thank you for your business!

Best regards,
{invoice.business_profile.name}"""


def default_message(record: AnyDocument) -> str:
    if isinstance(record, Receipt):
        return default_receipt_message(record)
    if isinstance(record, Invoice):
        return default_invoice_message(record)
    raise TypeError(f"Unsupported document {type(record).__name__}")


def build_template_params(record: AnyDocument, custom_message: Optional[str] = None) -> EmailTemplateParams:
    profile = record.business_profile
    label = record.document_type.value.capitalize()
    return EmailTemplateParams(
        to_email=record.counterparty.email,
        to_name=record.counterparty.name,
        from_name=profile.name,
        from_email=profile.email,
        subject=f"{label} {record.number} from {profile.name}",
        message=custom_message or default_message(record),
        document_number=record.number,
        document_total=format_currency(record.totals.total, record.currency),
        document_date=format_date(record.document_date, LONG_DATE),
        business_name=profile.name,
    )


class EmailDispatcher:
    """Sends a finalized document to its counterparty through EmailJS."""

    def __init__(self, client: EmailJSClient, *, guard: InFlightGuard = sends_in_flight) -> None:
        self._client = client
        self._guard = guard

    async def send(
        self, record: AnyDocument, config: EmailConfig, custom_message: Optional[str] = None
    ) -> bool:
        """Returns ``True`` only when the service accepted the message.

        Delivery and configuration failures are logged and reported as
        ``False``; a concurrent send of the same document raises
        ``OperationInProgressError``.
        """

        with self._guard.hold(record.id):
            if not config.is_complete:
                logger.warning("E-mail configuration is incomplete; not sending %s", record.number)
                return False
            if not record.counterparty.email:
                logger.warning("No recipient address on %s", record.number)
                return False

            params = build_template_params(record, custom_message)
            try:
                status = await self._client.send(
                    service_id=config.service_id,
                    template_id=config.template_id,
                    public_key=config.public_key,
                    template_params=params.model_dump(),
                )
            except DownstreamServiceError as exc:
                logger.warning("Sending %s to %s failed: %s", record.number, params.to_email, exc)
                return False

            sent = status == 200
            if sent:
                logger.info("Sent %s to %s", record.number, params.to_email)
            else:
                logger.warning("E-mail service answered %s for %s", status, record.number)
            return sent
