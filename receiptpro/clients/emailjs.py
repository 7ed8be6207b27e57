from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from receiptpro.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)


class EmailJSClient:
    """Async HTTP client for the EmailJS REST send endpoint."""

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = str(api_url)
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "text/plain, application/json",
        }
        self._client: Optional[httpx.AsyncClient] = None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = self._build_client()
        return self._client

    async def send(
        self,
        *,
        service_id: str,
        template_id: str,
        public_key: str,
        template_params: Dict[str, Any],
    ) -> int:
        """Post one message; returns the HTTP status of a successful call."""

        payload = {
            "service_id": service_id,
            "template_id": template_id,
            "user_id": public_key,
            "template_params": template_params,
        }
        client = await self._ensure_client()
        try:
            response = await client.post(self._api_url, json=payload)
            response.raise_for_status()
            return response.status_code
        except httpx.HTTPStatusError as exc:
            logger.error(
                "E-mail service returned error %s: %s",
                exc.response.status_code,
                exc.response.text,
            )
            raise DownstreamServiceError(
                "E-mail service returned an error response",
                status_code=exc.response.status_code,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Unable to reach e-mail service: %s", exc)
            raise DownstreamServiceError(
                "Unable to reach e-mail service", status_code=None, cause=exc
            ) from exc
