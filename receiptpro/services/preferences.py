from __future__ import annotations

import logging

from receiptpro.schemas.email import EmailConfig
from receiptpro.schemas.settings import Preferences
from receiptpro.services.store import DataStore, get_store

logger = logging.getLogger(__name__)


class PreferenceService:
    def __init__(self, store: DataStore | None = None) -> None:
        self._store = store or get_store()

    async def get(self) -> Preferences:
        return await self._store.preferences.get() or Preferences()

    async def save(self, preferences: Preferences) -> Preferences:
        logger.info("Saving preferences (currency=%s, template=%s)", preferences.currency, preferences.default_template.value)
        return await self._store.preferences.save(preferences)

    async def get_email_config(self) -> EmailConfig:
        return await self._store.email.get() or EmailConfig()

    async def save_email_config(self, config: EmailConfig) -> EmailConfig:
        logger.info("Saving e-mail configuration (complete=%s)", config.is_complete)
        return await self._store.email.save(config)
