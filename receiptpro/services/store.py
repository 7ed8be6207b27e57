from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from receiptpro.config import get_settings
from receiptpro.schemas.documents import Invoice, Receipt
from receiptpro.schemas.email import EmailConfig
from receiptpro.schemas.profile import BusinessProfile
from receiptpro.schemas.settings import Preferences
from receiptpro.services.storage import (
    CollectionRepository,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    SingletonRepository,
    StorageKeys,
)

logger = logging.getLogger(__name__)


@dataclass
class DataStore:
    backend: KeyValueStore
    profiles: CollectionRepository[BusinessProfile]
    current_profile: SingletonRepository[BusinessProfile]
    receipts: CollectionRepository[Receipt]
    invoices: CollectionRepository[Invoice]
    preferences: SingletonRepository[Preferences]
    email: SingletonRepository[EmailConfig]

    def clear(self) -> None:
        self.backend.clear()


def build_store(backend: KeyValueStore) -> DataStore:
    return DataStore(
        backend=backend,
        profiles=CollectionRepository(backend, StorageKeys.BUSINESS_PROFILES, BusinessProfile),
        current_profile=SingletonRepository(backend, StorageKeys.CURRENT_PROFILE, BusinessProfile),
        receipts=CollectionRepository(backend, StorageKeys.RECEIPTS, Receipt),
        invoices=CollectionRepository(backend, StorageKeys.INVOICES, Invoice),
        preferences=SingletonRepository(backend, StorageKeys.SETTINGS, Preferences),
        email=SingletonRepository(backend, StorageKeys.EMAIL_SETTINGS, EmailConfig),
    )


_store: Optional[DataStore] = None


def get_store() -> DataStore:
    global _store
    if _store is None:
        settings = get_settings()
        if settings.use_memory_store:
            backend: KeyValueStore = MemoryStore()
            logger.info("Using in-memory key-value store")
        else:
            backend = JsonFileStore(settings.data_path)
            logger.info("Using key-value store at %s", settings.data_path)
        _store = build_store(backend)
    return _store


def reset_store(backend: KeyValueStore | None = None) -> None:
    """Drop the process-wide store; the next ``get_store`` rebuilds it."""

    global _store
    _store = build_store(backend) if backend is not None else None
