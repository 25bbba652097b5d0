"""Behave environment hooks for form service integration tests.

When ``TEST_BASE_URL`` is set the scenarios run against that live API with
an ``httpx.Client``; the deployment decides where submissions go. Otherwise
the app is built in-process and driven through ``TestClient`` with the
submission service replaced by an ``httpx.MockTransport`` stub, so the
features can run anywhere without network access.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List

import httpx
from fastapi.testclient import TestClient

from dynaform.config import AdminConfig, AppConfig, FillSessionsConfig, SubmissionConfig, UploadsConfig
from dynaform.logic.submission_client import SubmissionClient
from dynaform.main import create_app

IN_PROCESS_ADMIN_KEY = "integration-admin-key"
IN_PROCESS_SUBMISSION_URL = "http://submissions.integration/api"


class SubmissionRecorder:
    """Stand-in submission service for in-process runs."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.status_code = 201
        self.body: Dict[str, Any] = {"id": "sub_int_001"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


def before_all(context: Any) -> None:
    base_url = os.getenv("TEST_BASE_URL", "").strip().rstrip("/")
    context.api_prefix = os.getenv("TEST_API_PREFIX", "/api/v1")
    if base_url:
        context.live = True
        context.admin_key = os.environ.get("ADMIN_API_KEY", "dev-admin-key")
        context.http = httpx.Client(base_url=base_url, timeout=10.0)
        context.submission_recorder = None
        print(f"[env] running against live API at {base_url}")
        return

    context.live = False
    context.admin_key = IN_PROCESS_ADMIN_KEY
    context.submission_recorder = SubmissionRecorder()
    config = AppConfig(
        submission=SubmissionConfig(base_url=IN_PROCESS_SUBMISSION_URL),
        admin=AdminConfig(api_key=IN_PROCESS_ADMIN_KEY),
        uploads=UploadsConfig(max_bytes=64 * 1024),
        fill_sessions=FillSessionsConfig(max_sessions=100),
    )
    submission_client = SubmissionClient(
        IN_PROCESS_SUBMISSION_URL, transport=httpx.MockTransport(context.submission_recorder)
    )
    app = create_app(config=config, submission_client=submission_client, enable_test_support=True)
    context.http = TestClient(app)
    context.http.__enter__()


def before_scenario(context: Any, scenario: Any) -> None:
    if context.live and "in_process" in scenario.effective_tags:
        scenario.skip("needs the stubbed submission service")
        return
    context.vars = {}
    context.last_response = None
    resp = context.http.post("/__test__/reset-state")
    assert resp.status_code in (204, 404), f"reset-state failed: {resp.status_code}"
    recorder = getattr(context, "submission_recorder", None)
    if recorder is not None:
        recorder.requests.clear()
        recorder.status_code = 201
        recorder.body = {"id": "sub_int_001"}


def after_all(context: Any) -> None:
    http = getattr(context, "http", None)
    if http is None:
        return
    if getattr(context, "live", False):
        http.close()
    else:
        http.__exit__(None, None, None)
