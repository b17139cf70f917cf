"""Composition root: one admin session wiring API clients, options and controllers."""

import logging

import httpx

from parish_admin.api import ApiClients, ApiError, create_http_client
from parish_admin.config import Settings, settings as default_settings
from parish_admin.controllers.base import AppState
from parish_admin.controllers.events import EventsController
from parish_admin.controllers.families import FamiliesController
from parish_admin.controllers.registrations import RegistrationsController
from parish_admin.controllers.rosters import RostersController
from parish_admin.forms.options import Options
from parish_admin.utils.status import StatusBus, StatusLevel

logger = logging.getLogger(__name__)


class AdminSession:
    """Everything a volunteer's session needs, sharing one Options instance.

    Controllers read each other's rows through accessors, so the
    registrations controller always sees the latest events and families.

    Args:
        http: AsyncClient to use; one is built from ``config`` when omitted.
        config: Settings; defaults to the module-level settings.
        status: Status bus shared by every controller.
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        config: Settings | None = None,
        status: StatusBus | None = None,
    ):
        self.config = config or default_settings
        self.clients = ApiClients.from_http(http or create_http_client(self.config), self.config.setup_document_id)
        self.options = Options()
        self.app = AppState(status=status, read_only=self.config.read_only)

        self.events = EventsController(self.app, self.options, self.clients.events, self.config)
        self.registrations = RegistrationsController(
            self.app,
            self.options,
            self.clients.registrations,
            self.config,
            get_event_rows=lambda: self.events.rows,
            get_family_rows=lambda: self.families.rows,
        )
        self.families = FamiliesController(
            self.app,
            self.options,
            self.clients.families,
            self.config,
            get_registration_rows=lambda: self.registrations.rows,
        )
        self.rosters = RostersController(
            self.app,
            self.options,
            self.config,
            get_registration_rows=lambda: self.registrations.rows,
            get_event_rows=lambda: self.events.rows,
            get_family_rows=lambda: self.families.rows,
        )

    async def load_settings(self) -> dict:
        """Fetch (or seed) the settings document and refresh every option list.

        Falls back to the built-in seed when the backend cannot be reached.
        """
        try:
            setup = await self.clients.setup.get_or_seed()
        except (ApiError, httpx.HTTPError):
            logger.exception("Loading settings failed; using built-in defaults")
            self.app.set_status("Failed to load settings; using defaults.", StatusLevel.WARN, 3000)
            return self.options.setup
        self.options.update(setup)
        return self.options.setup

    async def start(self) -> None:
        """Load settings, then every list, then build the roster."""
        await self.load_settings()
        await self.events.load()
        await self.families.load()
        await self.registrations.load()
        await self.rosters.load()
        logger.info(
            "Session ready: %d events, %d families, %d registrations",
            len(self.events.rows),
            len(self.families.rows),
            len(self.registrations.rows),
        )

    async def aclose(self) -> None:
        await self.clients.aclose()
