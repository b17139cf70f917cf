"""Tests for the REST clients against the in-memory backend."""

import httpx
import pytest
import pytest_asyncio

from parish_admin.api import ApiError, NotFoundError, create_http_client
from parish_admin.api.resources import FamiliesClient
from parish_admin.api.setup import SetupClient
from parish_admin.controllers import AppState, FamiliesController
from parish_admin.schemas.setup import FALLBACK_SETUP


class TestResourceClient:
    @pytest.mark.asyncio
    async def test_list_busts_caches(self, clients, backend, family):
        backend.seed("families", [family])

        rows = await clients.families.list()

        assert [r["id"] for r in rows] == [family["id"]]
        request = backend.last("GET")
        assert request.path == "/families"
        assert request.query["_"].isdigit()
        assert request.headers["cache-control"] == "no-cache"
        assert request.headers["pragma"] == "no-cache"

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, clients):
        with pytest.raises(NotFoundError) as exc_info:
            await clients.events.get("E:NOPE")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_ids_are_url_encoded(self, clients, backend, admin_event):
        backend.seed("events", [admin_event])

        event = await clients.events.get("E:ADM")

        assert event["title"] == "Security Fee"
        assert backend.last("GET").path == "/events/E:ADM"

    @pytest.mark.asyncio
    async def test_create_and_remove(self, clients, backend):
        created = await clients.registrations.create({"id": "R:1", "familyId": "F:1"})
        assert created["id"] == "R:1"
        assert "R:1" in backend.store["registrations"]

        assert await clients.registrations.remove("R:1") is True
        assert backend.store["registrations"] == {}

    @pytest.mark.asyncio
    async def test_update_patches_by_default(self, clients, backend, family):
        backend.seed("families", [family])

        updated = await clients.families.update(family["id"], {"parishNumber": "P-200"})

        assert backend.requests[-1].method == "PATCH"
        assert updated["parishNumber"] == "P-200"
        assert updated["address"]["city"] == "Garden Grove"

    @pytest.mark.asyncio
    async def test_update_replace_puts(self, clients, backend, family):
        backend.seed("families", [family])

        updated = await clients.families.update(family["id"], {"parishNumber": "P-300"}, replace=True)

        assert backend.requests[-1].method == "PUT"
        assert updated == {"id": family["id"], "parishNumber": "P-300"}

    @pytest.mark.asyncio
    async def test_server_errors(self, clients, backend):
        backend.fail_with = 500
        with pytest.raises(ApiError) as exc_info:
            await clients.events.list()
        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, NotFoundError)


class TestSetupClient:
    @pytest.mark.asyncio
    async def test_get_or_seed_creates_missing_document(self, clients, backend):
        document = await clients.setup.get_or_seed()

        assert document["levels"] == FALLBACK_SETUP["levels"]
        assert backend.store["settings"]["app"]["id"] == "app"
        assert [r.method for r in backend.requests] == ["GET", "POST"]

    @pytest.mark.asyncio
    async def test_get_merges_partial_document(self, clients, backend):
        backend.seed("settings", [{"id": "app", "programs": [{"key": "BPH", "value": "BPH", "label": "Parents"}]}])

        document = await clients.setup.get()

        assert "id" not in document
        assert document["programs"][0]["label"] == "Parents"
        assert document["eventTypes"] == FALLBACK_SETUP["eventTypes"]

    @pytest.mark.asyncio
    async def test_update_replaces_document(self, clients, backend):
        backend.seed("settings", [{"id": "app", **FALLBACK_SETUP}])

        result = await clients.setup.update({"id": "ignored", "programs": []})

        assert backend.requests[-1].method == "PUT"
        assert result == {"programs": []}
        assert backend.store["settings"]["app"] == {"id": "app", "programs": []}

    @pytest.mark.asyncio
    async def test_get_or_seed_propagates_other_errors(self, clients, backend):
        backend.fail_with = 503
        with pytest.raises(ApiError):
            await clients.setup.get_or_seed()


@pytest_asyncio.fixture
async def html_http(test_settings):
    """Client whose backend answers every request with an HTML page."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>", headers={"Content-Type": "text/html"})

    async with create_http_client(test_settings, transport=httpx.MockTransport(handler)) as client:
        yield client


class TestNonJsonBodies:
    @pytest.mark.asyncio
    async def test_list_degrades_to_no_rows(self, html_http):
        assert await FamiliesClient(html_http).list() == []
        assert await SetupClient(html_http).list_documents() == []

    @pytest.mark.asyncio
    async def test_single_record_calls_raise_api_error(self, html_http):
        families = FamiliesClient(html_http)
        with pytest.raises(ApiError) as exc_info:
            await families.get("F:1")
        assert exc_info.value.status_code == 200
        with pytest.raises(ApiError):
            await families.create({"id": "F:1"})
        with pytest.raises(ApiError):
            await SetupClient(html_http).get()

    @pytest.mark.asyncio
    async def test_controller_load_survives(self, html_http, options, test_settings):
        app = AppState()
        controller = FamiliesController(app, options, FamiliesClient(html_http), test_settings)

        assert await controller.load() == []
        assert controller.rows == []
