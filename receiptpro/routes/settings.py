from fastapi import APIRouter, Depends

from receiptpro.dependencies.services import get_preference_service
from receiptpro.routes.errors import to_http_exception
from receiptpro.schemas.email import EmailConfig
from receiptpro.schemas.settings import Preferences
from receiptpro.services import PreferenceService
from receiptpro.services.exceptions import ServiceError

router = APIRouter()


@router.get("", response_model=Preferences)
async def get_preferences(service: PreferenceService = Depends(get_preference_service)):
    try:
        return await service.get()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("", response_model=Preferences)
async def save_preferences(
    req: Preferences,
    service: PreferenceService = Depends(get_preference_service),
):
    try:
        return await service.save(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/email", response_model=EmailConfig)
async def get_email_config(service: PreferenceService = Depends(get_preference_service)):
    try:
        return await service.get_email_config()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/email", response_model=EmailConfig)
async def save_email_config(
    req: EmailConfig,
    service: PreferenceService = Depends(get_preference_service),
):
    try:
        return await service.save_email_config(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
