from typing import Optional

from fastapi import APIRouter, Depends, Response

from receiptpro.dependencies.services import (
    get_email_dispatcher,
    get_pdf_exporter,
    get_preference_service,
    get_receipt_service,
)
from receiptpro.routes.errors import to_http_exception
from receiptpro.schemas.documents import (
    DocumentStats,
    Receipt,
    ReceiptDraft,
    ReceiptListResponse,
    TotalsRequest,
    TotalsResponse,
)
from receiptpro.schemas.email import EmailSendRequest, EmailSendResponse
from receiptpro.services import DocumentService, EmailDispatcher, PdfExporter, PreferenceService
from receiptpro.services.documents import compute_totals
from receiptpro.services.exceptions import ServiceError

router = APIRouter()


@router.get("/new", response_model=ReceiptDraft)
async def new_receipt(service: DocumentService = Depends(get_receipt_service)):
    try:
        return await service.new_draft()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/totals", response_model=TotalsResponse)
async def receipt_totals(req: TotalsRequest):
    return compute_totals(req)


@router.post("", response_model=Receipt)
async def save_receipt(
    req: ReceiptDraft,
    service: DocumentService = Depends(get_receipt_service),
):
    try:
        return await service.save(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=ReceiptListResponse)
async def list_receipts(
    search: Optional[str] = None,
    status: Optional[str] = None,
    service: DocumentService = Depends(get_receipt_service),
):
    try:
        items = await service.list(search=search, status=status)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ReceiptListResponse(total=len(items), items=items)


@router.get("/stats", response_model=DocumentStats)
async def receipt_stats(service: DocumentService = Depends(get_receipt_service)):
    try:
        return await service.stats()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{receipt_id}", response_model=Receipt)
async def get_receipt(
    receipt_id: str,
    service: DocumentService = Depends(get_receipt_service),
):
    try:
        return await service.get(receipt_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{receipt_id}", response_model=Receipt)
async def update_receipt(
    receipt_id: str,
    req: ReceiptDraft,
    service: DocumentService = Depends(get_receipt_service),
):
    try:
        await service.get(receipt_id)
        return await service.save(req.model_copy(update={"id": receipt_id}))
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{receipt_id}", status_code=204)
async def delete_receipt(
    receipt_id: str,
    service: DocumentService = Depends(get_receipt_service),
):
    try:
        await service.delete(receipt_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)


@router.get("/{receipt_id}/pdf")
async def export_receipt_pdf(
    receipt_id: str,
    service: DocumentService = Depends(get_receipt_service),
    exporter: PdfExporter = Depends(get_pdf_exporter),
):
    try:
        record = await service.get(receipt_id)
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


@router.post("/{receipt_id}/email", response_model=EmailSendResponse)
async def email_receipt(
    receipt_id: str,
    req: Optional[EmailSendRequest] = None,
    service: DocumentService = Depends(get_receipt_service),
    preferences: PreferenceService = Depends(get_preference_service),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    try:
        record = await service.get(receipt_id)
        config = await preferences.get_email_config()
        sent = await dispatcher.send(record, config, req.message if req else None)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    if not sent:
        return EmailSendResponse(
            sent=False,
            message="Failed to send email. Please check your email configuration and try again.",
        )
    return EmailSendResponse(sent=True, message=f"Receipt sent to {record.customer.email}")
