from typing import Optional

from fastapi import APIRouter, Depends, Response

from receiptpro.dependencies.services import (
    get_email_dispatcher,
    get_pdf_exporter,
    get_preference_service,
    get_invoice_service,
)
from receiptpro.routes.errors import to_http_exception
from receiptpro.schemas.documents import (
    DocumentStats,
    Invoice,
    InvoiceDraft,
    InvoiceListResponse,
    TotalsRequest,
    TotalsResponse,
)
from receiptpro.schemas.email import EmailSendRequest, EmailSendResponse
from receiptpro.services import DocumentService, EmailDispatcher, PdfExporter, PreferenceService
from receiptpro.services.documents import compute_totals
from receiptpro.services.exceptions import ServiceError

router = APIRouter()


@router.get("/new", response_model=InvoiceDraft)
async def new_invoice(service: DocumentService = Depends(get_invoice_service)):
    try:
        return await service.new_draft()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/totals", response_model=TotalsResponse)
async def invoice_totals(req: TotalsRequest):
    return compute_totals(req)


@router.post("", response_model=Invoice)
async def save_invoice(
    req: InvoiceDraft,
    service: DocumentService = Depends(get_invoice_service),
):
    try:
        return await service.save(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    search: Optional[str] = None,
    status: Optional[str] = None,
    service: DocumentService = Depends(get_invoice_service),
):
    try:
        items = await service.list(search=search, status=status)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return InvoiceListResponse(total=len(items), items=items)


@router.get("/stats", response_model=DocumentStats)
async def invoice_stats(service: DocumentService = Depends(get_invoice_service)):
    try:
        return await service.stats()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{invoice_id}", response_model=Invoice)
async def get_invoice(
    invoice_id: str,
    service: DocumentService = Depends(get_invoice_service),
):
    try:
        return await service.get(invoice_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{invoice_id}", response_model=Invoice)
async def update_invoice(
    invoice_id: str,
    req: InvoiceDraft,
    service: DocumentService = Depends(get_invoice_service),
):
    try:
        await service.get(invoice_id)
        return await service.save(req.model_copy(update={"id": invoice_id}))
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(
    invoice_id: str,
    service: DocumentService = Depends(get_invoice_service),
):
    try:
        await service.delete(invoice_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)


@router.get("/{invoice_id}/pdf")
async def export_invoice_pdf(
    invoice_id: str,
    service: DocumentService = Depends(get_invoice_service),
    exporter: PdfExporter = Depends(get_pdf_exporter),
):
    try:
        record = await service.get(invoice_id)
        result = await exporter.export(record)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(
        content=result.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Page-Count": str(result.page_count),
            "X-Export-Fallback": "true" if result.used_fallback else "false",
        },
    )


@router.post("/{invoice_id}/email", response_model=EmailSendResponse)
async def email_invoice(
    invoice_id: str,
    req: Optional[EmailSendRequest] = None,
    service: DocumentService = Depends(get_invoice_service),
    preferences: PreferenceService = Depends(get_preference_service),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    try:
        record = await service.get(invoice_id)
        config = await preferences.get_email_config()
        sent = await dispatcher.send(record, config, req.message if req else None)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    if not sent:
        return EmailSendResponse(
            sent=False,
            message="Failed to send email. Please check your email configuration and try again.",
        )
    return EmailSendResponse(sent=True, message=f"Invoice sent to {record.client.email}")
