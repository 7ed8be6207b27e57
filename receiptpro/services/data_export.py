from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable

from receiptpro.schemas.export import DataExport
from receiptpro.services.preferences import PreferenceService
from receiptpro.services.store import DataStore, get_store

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_backup_filename(export_date: date) -> str:
    return f"receiptpro-data-{export_date:%Y-%m-%d}.json"


class DataService:
    """Whole-store backup and wipe."""

    def __init__(
        self,
        store: DataStore | None = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store or get_store()
        self._clock = clock

    async def export_all(self) -> DataExport:
        now = self._clock()
        export = DataExport(
            receipts=await self._store.receipts.get_all(),
            invoices=await self._store.invoices.get_all(),
            business_profiles=await self._store.profiles.get_all(),
            current_profile=await self._store.current_profile.get(),
            settings=await PreferenceService(self._store).get(),
            export_date=now.isoformat(),
        )
        logger.info(
            "Exported %s receipt(s), %s invoice(s) and %s profile(s)",
            len(export.receipts),
            len(export.invoices),
            len(export.business_profiles),
        )
        return export

    def backup_filename(self) -> str:
        return build_backup_filename(self._clock().date())

    async def clear_all(self) -> None:
        self._store.clear()
        logger.warning("Cleared all stored data")
