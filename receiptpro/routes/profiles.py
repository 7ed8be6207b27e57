from typing import Optional

from fastapi import APIRouter, Depends, Response

from receiptpro.dependencies.services import get_profile_service
from receiptpro.routes.errors import to_http_exception
from receiptpro.schemas.profile import (
    BusinessProfile,
    BusinessProfileListResponse,
    BusinessProfileRequest,
)
from receiptpro.services import ProfileService
from receiptpro.services.exceptions import ServiceError

router = APIRouter()


@router.get("", response_model=BusinessProfileListResponse)
async def list_profiles(service: ProfileService = Depends(get_profile_service)):
    try:
        profiles = await service.list()
        current = await service.get_current()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return BusinessProfileListResponse(
        total=len(profiles),
        current_profile_id=current.id if current else None,
        items=profiles,
    )


@router.post("", response_model=BusinessProfile)
async def save_profile(
    req: BusinessProfileRequest,
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.save(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/current", response_model=Optional[BusinessProfile])
async def get_current_profile(service: ProfileService = Depends(get_profile_service)):
    try:
        return await service.get_current()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/current/{profile_id}", response_model=BusinessProfile)
async def set_current_profile(
    profile_id: str,
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.set_current(profile_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{profile_id}", response_model=BusinessProfile)
async def get_profile(
    profile_id: str,
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.get(profile_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{profile_id}", status_code=204)
async def delete_profile(
    profile_id: str,
    service: ProfileService = Depends(get_profile_service),
):
    try:
        await service.delete(profile_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)
