from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from receiptpro.dependencies.services import get_data_service
from receiptpro.routes.errors import to_http_exception
from receiptpro.services import DataService
from receiptpro.services.exceptions import ServiceError

router = APIRouter()


@router.get("/export")
async def export_data(service: DataService = Depends(get_data_service)):
    """Download every stored collection as one JSON backup."""

    try:
        export = await service.export_all()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return JSONResponse(
        content=export.model_dump(mode="json"),
        headers={"Content-Disposition": f'attachment; filename="{service.backup_filename()}"'},
    )


@router.delete("", status_code=204)
async def clear_data(service: DataService = Depends(get_data_service)):
    try:
        await service.clear_all()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)
