"""Async REST clients for the backend resources."""

from dataclasses import dataclass

import httpx

from parish_admin.api.http import ApiError, NotFoundError, create_http_client
from parish_admin.api.resources import EventsClient, FamiliesClient, RegistrationsClient, ResourceClient
from parish_admin.api.setup import SetupClient
from parish_admin.schemas.setup import SETUP_DEFAULT_ID


@dataclass
class ApiClients:
    """Every resource client sharing one AsyncClient."""

    http: httpx.AsyncClient
    families: FamiliesClient
    events: EventsClient
    registrations: RegistrationsClient
    setup: SetupClient

    @classmethod
    def from_http(cls, http: httpx.AsyncClient, setup_document_id: str = SETUP_DEFAULT_ID) -> "ApiClients":
        return cls(
            http=http,
            families=FamiliesClient(http),
            events=EventsClient(http),
            registrations=RegistrationsClient(http),
            setup=SetupClient(http, setup_document_id),
        )

    async def aclose(self) -> None:
        await self.http.aclose()


__all__ = [
    "ApiClients",
    "ApiError",
    "EventsClient",
    "FamiliesClient",
    "NotFoundError",
    "RegistrationsClient",
    "ResourceClient",
    "SetupClient",
    "create_http_client",
]
