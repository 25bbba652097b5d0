"""Functional test bootstrap.

Builds a fresh FastAPI app per test with an explicit configuration and a
submission client whose transport is an ``httpx.MockTransport``; no test
ever reaches a real submission service. In-memory state and the event
buffer are cleared around every test.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from dynaform.config import AdminConfig, AppConfig, FillSessionsConfig, SubmissionConfig, UploadsConfig
from dynaform.logic import events as _events
from dynaform.logic import inmemory_state as _mem
from dynaform.logic.submission_client import SubmissionClient
from dynaform.main import create_app

ADMIN_KEY = "functional-admin-key"
SUBMISSION_BASE_URL = "http://submissions.test/api"


class SubmissionStub:
    """Records submission requests and answers with a configurable response."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.status_code = 201
        self.body: Dict[str, Any] = {"id": "sub_001"}
        self.raise_error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture(autouse=True)
def clean_state():
    _events.EVENT_BUFFER.clear()
    _mem.clear_all()
    yield
    _events.EVENT_BUFFER.clear()
    _mem.clear_all()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        submission=SubmissionConfig(base_url=SUBMISSION_BASE_URL, timeout_seconds=5),
        admin=AdminConfig(api_key=ADMIN_KEY, session_ttl_seconds=600),
        uploads=UploadsConfig(max_bytes=1024),
        fill_sessions=FillSessionsConfig(max_sessions=5),
    )


@pytest.fixture
def submission_stub() -> SubmissionStub:
    return SubmissionStub()


@pytest.fixture
def client(app_config: AppConfig, submission_stub: SubmissionStub) -> TestClient:
    submission_client = SubmissionClient(SUBMISSION_BASE_URL, transport=httpx.MockTransport(submission_stub))
    app = create_app(config=app_config, submission_client=submission_client, enable_test_support=True)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client: TestClient) -> Dict[str, str]:
    resp = client.post("/api/v1/auth/sessions", json={"apiKey": ADMIN_KEY, "subject": "tester"})
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def contact_schema() -> Dict[str, Any]:
    """A form with one branching radio field, as served by the forms service."""
    return {
        "title": "Contact",
        "description": "How should we reach you?",
        "isActive": True,
        "fields": [
            {"name": "full_name", "label": "Full Name", "type": "text", "required": True},
            {
                "name": "contact_method",
                "label": "Contact Method",
                "type": "radio",
                "required": True,
                "options": ["Email", "Phone"],
                "conditionalFields": {
                    "Email": [
                        {"name": "email_address", "label": "Email Address", "type": "email", "required": True},
                    ],
                    "Phone": [
                        {"name": "phone_number", "label": "Phone Number", "type": "text", "required": True},
                        {"name": "best_time", "label": "Best Time", "type": "select", "options": ["Morning", "Evening"]},
                    ],
                },
            },
            {"name": "age", "label": "Age", "type": "number", "validation": {"min": 18, "max": 99}},
            {"name": "newsletter", "label": "Newsletter", "type": "checkbox"},
        ],
    }


@pytest.fixture
def schema_factory() -> Callable[..., Any]:
    from dynaform.models.field_definition import FormSchema

    def _build(fields: List[Dict[str, Any]], title: str = "Form", **extra: Any) -> FormSchema:
        return FormSchema.model_validate({"title": title, "fields": fields, **extra})

    return _build
