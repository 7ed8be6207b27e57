from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from receiptpro.clients.emailjs import EmailJSClient
from receiptpro.config import Settings, get_settings
from receiptpro.schemas.documents import DocumentType
from receiptpro.services import (
    DataService,
    DocumentService,
    EmailDispatcher,
    PdfExporter,
    PreferenceService,
    ProfileService,
)
from receiptpro.services.store import get_store


@lru_cache(maxsize=1)
def get_email_client_cached() -> EmailJSClient:
    settings = get_settings()
    return EmailJSClient(
        str(settings.email_api_url),
        timeout=settings.email_timeout,
    )


def get_email_client(settings: Settings = Depends(get_settings)) -> EmailJSClient:
    return get_email_client_cached()


def get_profile_service() -> ProfileService:
    return ProfileService(get_store())


def get_preference_service() -> PreferenceService:
    return PreferenceService(get_store())


def get_receipt_service() -> DocumentService:
    return DocumentService(DocumentType.RECEIPT, store=get_store())


def get_invoice_service() -> DocumentService:
    return DocumentService(DocumentType.INVOICE, store=get_store())


def get_data_service() -> DataService:
    return DataService(get_store())


async def get_pdf_exporter(
    preferences: PreferenceService = Depends(get_preference_service),
    settings: Settings = Depends(get_settings),
) -> PdfExporter:
    current = await preferences.get()
    return PdfExporter(oversampling=settings.pdf_oversampling, date_format=current.date_format)


def get_email_dispatcher(
    client: EmailJSClient = Depends(get_email_client),
) -> EmailDispatcher:
    return EmailDispatcher(client)
