"""Pytest configuration and shared fixtures.

This module provides:
- An in-memory FastAPI backend exposing generic ``/{resource}`` CRUD
- An httpx client wired to it through ``ASGITransport``
- Options, app state and sample families/events/registrations
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException, Request
from httpx import ASGITransport

from parish_admin.api import ApiClients, create_http_client
from parish_admin.config import Settings
from parish_admin.controllers.base import AppState
from parish_admin.forms.options import Options
from parish_admin.utils.helpers import get_current_school_year

TEST_BASE_URL = "http://test"


# =============================================================================
# Fake backend
# =============================================================================


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]


@dataclass
class FakeBackend:
    """JSON CRUD store shaped like the real backend.

    ``store[resource][id] -> record``; ``requests`` records every call.
    """

    store: dict[str, dict[str, dict]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)
    fail_with: int | None = None

    def seed(self, resource: str, records: list[dict]) -> None:
        bucket = self.store.setdefault(resource, {})
        for record in records:
            bucket[record["id"]] = dict(record)

    def last(self, method: str) -> RecordedRequest:
        return [r for r in self.requests if r.method == method][-1]

    def build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.requests.append(
                RecordedRequest(
                    method=request.method,
                    path=request.url.path,
                    query=dict(request.query_params),
                    headers={k.lower(): v for k, v in request.headers.items()},
                )
            )
            return await call_next(request)

        def bucket(resource: str) -> dict[str, dict]:
            if backend.fail_with:
                raise HTTPException(status_code=backend.fail_with, detail="forced failure")
            return backend.store.setdefault(resource, {})

        def existing(resource: str, item_id: str) -> dict:
            records = bucket(resource)
            if item_id not in records:
                raise HTTPException(status_code=404, detail="Not found")
            return records[item_id]

        @app.get("/{resource}")
        async def list_records(resource: str) -> list[dict]:
            return list(bucket(resource).values())

        @app.get("/{resource}/{item_id}")
        async def get_record(resource: str, item_id: str) -> dict:
            return existing(resource, item_id)

        @app.post("/{resource}", status_code=201)
        async def create_record(resource: str, request: Request) -> dict:
            body: dict[str, Any] = await request.json()
            records = bucket(resource)
            body.setdefault("id", f"{resource}-{len(records) + 1}")
            records[body["id"]] = body
            return body

        @app.put("/{resource}/{item_id}")
        async def replace_record(resource: str, item_id: str, request: Request) -> dict:
            existing(resource, item_id)
            body = await request.json()
            body["id"] = item_id
            bucket(resource)[item_id] = body
            return body

        @app.patch("/{resource}/{item_id}")
        async def patch_record(resource: str, item_id: str, request: Request) -> dict:
            record = existing(resource, item_id)
            record.update(await request.json())
            return record

        @app.delete("/{resource}/{item_id}")
        async def delete_record(resource: str, item_id: str) -> dict:
            existing(resource, item_id)
            del bucket(resource)[item_id]
            return {}

        return app


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(api_base_url=TEST_BASE_URL, read_only=False)


@pytest_asyncio.fixture
async def http(backend, test_settings):
    """AsyncClient talking to the fake backend."""
    client = create_http_client(test_settings, transport=ASGITransport(app=backend.build_app()))
    async with client:
        yield client


@pytest.fixture
def clients(http) -> ApiClients:
    return ApiClients.from_http(http)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def options() -> Options:
    return Options()


@pytest.fixture
def app_state() -> AppState:
    return AppState()


@pytest.fixture
def school_year() -> int:
    return get_current_school_year()


@pytest.fixture
def open_window() -> tuple[str, str]:
    """ISO open/end dates bracketing today."""
    today = date.today()
    return (today - timedelta(days=5)).isoformat(), (today + timedelta(days=30)).isoformat()


@pytest.fixture
def admin_event(school_year, open_window) -> dict:
    return {
        "id": "E:ADM",
        "programId": "BPH",
        "eventType": "ADM",
        "title": "Security Fee",
        "year": school_year,
        "level": "PF",
        "openDate": open_window[0],
        "endDate": open_window[1],
        "fees": [{"code": "SECF", "amount": 20}, {"code": "NPMF", "amount": 30}, {"code": "REGF", "amount": 10}],
        "prerequisites": [],
    }


@pytest.fixture
def tntt_event(school_year, open_window) -> dict:
    return {
        "id": "E:TNTT",
        "programId": "TNTT",
        "eventType": "REG",
        "title": "TNTT Registration",
        "year": school_year,
        "level": "PC",
        "openDate": open_window[0],
        "endDate": open_window[1],
        "fees": [{"code": "REGF", "amount": 50}],
        "prerequisites": [{"eventId": "E:ADM"}],
    }


@pytest.fixture
def family(school_year) -> dict:
    """API-shaped family with two parents and two children."""
    return {
        "id": "F:0001-0001-0001",
        "parishMember": True,
        "parishNumber": "P-100",
        "address": {"street": "1 Main St", "city": "Garden Grove", "state": "CA", "zip": "92840"},
        "contacts": [
            {
                "lastName": "Nguyen",
                "firstName": "Mai",
                "middle": "",
                "relationship": "Mother",
                "phone": "7141234567",
                "email": "mai@example.com",
                "isEmergency": True,
            },
            {
                "lastName": "Nguyen",
                "firstName": "Binh",
                "middle": "Van",
                "relationship": "Father",
                "phone": "7147654321",
                "email": "",
                "isEmergency": False,
            },
        ],
        "children": [
            {
                "childId": "S:1",
                "lastName": "Nguyen",
                "firstName": "An",
                "middle": "",
                "saintName": "Teresa",
                "dob": f"{school_year - 10}-03-04",
                "allergies": ["peanut"],
                "isNameException": False,
                "exceptionNotes": "",
            },
            {
                "childId": "S:2",
                "lastName": "Nguyen",
                "firstName": "Bao",
                "middle": "",
                "saintName": "Peter",
                "dob": f"{school_year - 8}-11-20",
                "allergies": [],
                "isNameException": False,
                "exceptionNotes": "",
            },
        ],
        "notes": [],
    }


@pytest.fixture
def admin_registration(admin_event, family) -> dict:
    return {
        "id": "R:ADM",
        "familyId": family["id"],
        "eventId": admin_event["id"],
        "status": "paid",
        "event": {
            "title": admin_event["title"],
            "year": admin_event["year"],
            "programId": "BPH",
            "eventType": "ADM",
        },
        "children": [],
        "payments": [],
        "contacts": [{"name": "Nguyen, Mai", "relationship": "Mother", "phone": "(714) 123-4567"}],
    }
