"""REST clients for families, events and registrations.

Each resource is plain JSON CRUD keyed by ``id``. Clients return the raw
API-shaped dicts; mapping to UI forms is the controllers' job.
"""

import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from parish_admin.api.http import ApiError, decode_json, raise_for_api_error

logger = logging.getLogger(__name__)


class ResourceClient:
    """CRUD client for one REST collection.

    Args:
        client: Shared AsyncClient (see ``create_http_client``).
        base: Collection path, e.g. ``/families``.
    """

    base: str = ""

    def __init__(self, client: httpx.AsyncClient, base: str | None = None):
        self.client = client
        if base is not None:
            self.base = base

    def _item_url(self, record_id: str) -> str:
        return f"{self.base}/{quote(str(record_id), safe='')}"

    async def list(self) -> list[dict]:
        """All records; a body that is not a JSON array is treated as empty."""
        response = await self.client.get(self.base, params={"_": int(time.time() * 1000)})
        raise_for_api_error(response)
        try:
            data = decode_json(response)
        except ApiError:
            return []
        if not isinstance(data, list):
            logger.warning("GET %s returned %s instead of a list", self.base, type(data).__name__)
            return []
        return data

    async def get(self, record_id: str) -> dict:
        response = await self.client.get(self._item_url(record_id))
        raise_for_api_error(response)
        return decode_json(response)

    async def create(self, payload: dict[str, Any]) -> dict:
        response = await self.client.post(self.base, json=payload)
        raise_for_api_error(response)
        return decode_json(response)

    async def update(self, record_id: str, payload: dict[str, Any], replace: bool = False) -> dict:
        """Send a partial update (PATCH), or a full replacement (PUT) when ``replace``."""
        method = "PUT" if replace else "PATCH"
        response = await self.client.request(method, self._item_url(record_id), json=payload)
        raise_for_api_error(response)
        return decode_json(response)

    async def remove(self, record_id: str) -> bool:
        response = await self.client.delete(self._item_url(record_id))
        raise_for_api_error(response)
        return True


class FamiliesClient(ResourceClient):
    base = "/families"


class EventsClient(ResourceClient):
    base = "/events"


class RegistrationsClient(ResourceClient):
    base = "/registrations"
