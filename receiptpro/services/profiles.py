from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from receiptpro.schemas.profile import BusinessProfile, BusinessProfileRequest
from receiptpro.services.exceptions import DocumentValidationError, NotFoundError
from receiptpro.services.store import DataStore, get_store

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProfileService:
    """Business profiles and the single "current" profile pointer."""

    def __init__(self, store: DataStore | None = None) -> None:
        self._store = store or get_store()

    async def list(self) -> List[BusinessProfile]:
        return await self._store.profiles.get_all()

    async def get(self, profile_id: str) -> BusinessProfile:
        profile = await self._store.profiles.get(profile_id)
        if profile is None:
            raise NotFoundError(f"Business profile {profile_id} not found")
        return profile

    async def save(self, request: BusinessProfileRequest) -> BusinessProfile:
        """Create or update a profile and make it the current one."""

        errors = []
        if not request.name.strip():
            errors.append("Business name is required")
        if not request.email.strip():
            errors.append("Business email is required")
        if errors:
            raise DocumentValidationError(errors)

        now = _utc_now()
        existing = await self._store.profiles.get(request.id) if request.id else None
        profile = BusinessProfile(
            **request.model_dump(exclude={"id"}),
            id=existing.id if existing else (request.id or uuid4().hex),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self._store.profiles.upsert(profile)
        await self._store.current_profile.save(profile)
        logger.info("Saved business profile %s (%s)", profile.id, profile.name)
        return profile

    async def delete(self, profile_id: str) -> None:
        removed = await self._store.profiles.delete(profile_id)
        if not removed:
            raise NotFoundError(f"Business profile {profile_id} not found")
        current = await self._store.current_profile.get()
        if current is not None and current.id == profile_id:
            await self._store.current_profile.clear()
            logger.info("Deleted the current business profile %s; no default remains", profile_id)

    async def get_current(self) -> Optional[BusinessProfile]:
        return await self._store.current_profile.get()

    async def set_current(self, profile_id: str) -> BusinessProfile:
        profile = await self.get(profile_id)
        await self._store.current_profile.save(profile)
        return profile

    async def default_profile(self) -> Optional[BusinessProfile]:
        """Profile used to prefill a new document: current, else the first one."""

        current = await self.get_current()
        if current is not None:
            return current
        profiles = await self.list()
        return profiles[0] if profiles else None
