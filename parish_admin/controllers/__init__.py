"""Per-resource controllers holding list, filter and form state."""

from parish_admin.controllers.base import AppState, FormController, ListController, Mode, Section
from parish_admin.controllers.events import EventsController
from parish_admin.controllers.families import FamiliesController
from parish_admin.controllers.registrations import RegistrationsController
from parish_admin.controllers.rosters import RostersController

__all__ = [
    "AppState",
    "EventsController",
    "FamiliesController",
    "FormController",
    "ListController",
    "Mode",
    "RegistrationsController",
    "RostersController",
    "Section",
]
