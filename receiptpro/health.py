# receiptpro/health.py
from fastapi import APIRouter

from receiptpro.config import get_settings

router = APIRouter()


@router.get("/health")
def health():
    return {"ok": True, "app": get_settings().app_name}
