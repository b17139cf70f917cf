"""Client for the application settings document (``/settings/app``)."""

import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from parish_admin.api.http import ApiError, NotFoundError, decode_json, raise_for_api_error
from parish_admin.schemas.setup import FALLBACK_SETUP, SETUP_DEFAULT_ID, merge_setup_with_fallback, strip_id

logger = logging.getLogger(__name__)


class SetupClient:
    """Read, seed and update the settings document.

    Every method returns the document without its ``id``.
    """

    base = "/settings"

    def __init__(self, client: httpx.AsyncClient, document_id: str = SETUP_DEFAULT_ID):
        self.client = client
        self.document_id = document_id

    @property
    def _item_url(self) -> str:
        return f"{self.base}/{quote(self.document_id, safe='')}"

    async def list_documents(self) -> list[dict]:
        response = await self.client.get(self.base, params={"_": int(time.time() * 1000)})
        raise_for_api_error(response)
        try:
            data = decode_json(response)
        except ApiError:
            return []
        return data if isinstance(data, list) else []

    async def get(self) -> dict[str, Any]:
        """Settings merged over the fallback seed."""
        response = await self.client.get(self._item_url)
        raise_for_api_error(response)
        return merge_setup_with_fallback(strip_id(decode_json(response)))

    async def get_or_seed(self) -> dict[str, Any]:
        """Settings, creating the document from the fallback seed on a 404.

        Raises:
            ApiError: Any failure other than the document being absent.
        """
        try:
            return await self.get()
        except NotFoundError:
            logger.info("Settings document %r missing; seeding defaults", self.document_id)
            await self.create(FALLBACK_SETUP)
            return merge_setup_with_fallback(FALLBACK_SETUP)

    async def create(self, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        body = {"id": self.document_id, **(payload if payload is not None else FALLBACK_SETUP)}
        response = await self.client.post(self.base, json=body)
        raise_for_api_error(response)
        return strip_id(decode_json(response))

    async def update(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Replace the settings document (PUT)."""
        body = {"id": self.document_id, **strip_id(payload)}
        response = await self.client.put(self._item_url, json=body)
        raise_for_api_error(response)
        return strip_id(decode_json(response))
