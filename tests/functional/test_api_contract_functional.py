"""Functional HTTP contract tests for the FastAPI surface.

Every request goes through ``TestClient`` against an app whose submission
client talks to an ``httpx.MockTransport`` stub.
"""

from __future__ import annotations

import json
from typing import Any, Dict

import httpx

from dynaform.http.problem import PROBLEM_MEDIA_TYPE

API = "/api/v1"


def _open_session(client, schema: Dict[str, Any], form_id: str = "form_001") -> Dict[str, Any]:
    resp = client.post(f"{API}/fill-sessions", json={"formId": form_id, "schema": schema})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _fill_valid(client, session_id: str) -> None:
    resp = client.put(
        f"{API}/fill-sessions/{session_id}/values",
        json={"values": {"full_name": "Ada", "contact_method": "Email", "contact_method_email_address": "ada@lovelace.org"}},
    )
    assert resp.status_code == 200, resp.text


# -----------------------------
# Service surface
# -----------------------------

def test_health_reports_in_memory_counts(client, contact_schema):
    _open_session(client, contact_schema)
    body = client.get("/health").json()
    assert body == {"status": "ok", "fill_sessions": 1, "editors": 0}


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get("/health", headers={"X-Request-Id": "req-123"})
    generated = client.get("/health")
    assert echoed.headers["x-request-id"] == "req-123"
    assert generated.headers["x-request-id"]


def test_compile_returns_effective_fields_rules_and_initial_values(client, contact_schema):
    resp = client.post(f"{API}/forms/compile", json={"schema": contact_schema, "selection": {"contact_method": "Phone"}})
    assert resp.status_code == 200
    body = resp.json()
    names = [f["name"] for f in body["fields"]]
    assert names == ["full_name", "contact_method", "contact_method_phone_number", "contact_method_best_time", "age", "newsletter"]
    assert body["fields"][2]["parent"] == "contact_method"
    assert body["initial_values"]["newsletter"] is False
    rules = {r["name"]: r for r in body["rules"]}
    assert rules["age"]["checks"] == ["number", "min", "max"]


def test_compile_rejects_unknown_field_kind(client):
    resp = client.post(f"{API}/forms/compile", json={"schema": {"title": "T", "fields": [{"name": "a", "label": "A", "type": "colour"}]}})
    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)


_NO_OPTIONS = {"title": "T", "fields": [{"name": "c", "label": "Choice", "type": "radio", "required": True, "options": []}]}


def test_compile_rejects_choice_field_without_options(client):
    resp = client.post(f"{API}/forms/compile", json={"schema": _NO_OPTIONS})
    assert resp.status_code == 422
    assert resp.json()["code"] == "SCHEMA_MALFORMED"


def test_fill_session_is_not_opened_for_choice_field_without_options(client):
    """Verifies an option-less radio is rejected rather than accepting any answer."""
    resp = client.post(f"{API}/fill-sessions", json={"formId": "f", "schema": _NO_OPTIONS})
    assert resp.status_code == 422
    assert resp.json()["code"] == "SCHEMA_MALFORMED"
    # Assert: nothing was stored
    assert client.get("/health").json()["fill_sessions"] == 0


# -----------------------------
# Fill sessions
# -----------------------------

def test_selection_change_returns_visibility_delta(client, contact_schema):
    session_id = _open_session(client, contact_schema)["session_id"]
    client.post(f"{API}/fill-sessions/{session_id}/selection", json={"name": "contact_method", "option": "Email"})
    client.put(f"{API}/fill-sessions/{session_id}/values", json={"values": {"contact_method_email_address": "ada@lovelace.org"}})

    resp = client.post(f"{API}/fill-sessions/{session_id}/selection", json={"name": "contact_method", "option": "Phone"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["visibility_delta"] == {
        "now_visible": ["contact_method_phone_number", "contact_method_best_time"],
        "now_hidden": ["contact_method_email_address"],
        "suppressed_values": ["contact_method_email_address"],
    }
    assert "contact_method_email_address" not in body["session"]["values"]


def test_selection_on_text_field_is_conflict(client, contact_schema):
    session_id = _open_session(client, contact_schema)["session_id"]
    resp = client.post(f"{API}/fill-sessions/{session_id}/selection", json={"name": "full_name", "option": "x"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "FIELD_NOT_SELECTABLE"


def test_unknown_session_is_not_found(client):
    resp = client.get(f"{API}/fill-sessions/nope")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)
    assert resp.json()["code"] == "FILL_SESSION_NOT_FOUND"


def test_validate_reports_field_errors(client, contact_schema):
    session_id = _open_session(client, contact_schema)["session_id"]
    client.put(f"{API}/fill-sessions/{session_id}/values", json={"values": {"age": 17}})
    body = client.post(f"{API}/fill-sessions/{session_id}/validate").json()
    assert body["valid"] is False
    assert body["errors"] == {
        "full_name": "Full Name is required",
        "contact_method": "Contact Method is required",
        "age": "Age must be at least 18",
    }


def test_submit_invalid_form_is_rejected_without_calling_service(client, contact_schema, submission_stub):
    session_id = _open_session(client, contact_schema)["session_id"]
    resp = client.post(f"{API}/fill-sessions/{session_id}/submit")
    assert resp.status_code == 422
    assert resp.json()["code"] == "FORM_INVALID"
    assert {"path": "full_name", "message": "Full Name is required"} in resp.json()["errors"]
    assert submission_stub.requests == []


def test_submit_sends_answers_and_publishes_event(client, contact_schema, submission_stub):
    """Verifies a valid session posts qualified answers as JSON and reports success."""
    session_id = _open_session(client, contact_schema)["session_id"]
    _fill_valid(client, session_id)

    resp = client.post(f"{API}/fill-sessions/{session_id}/submit")

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["submitted"] is True
    assert body["response"] == {"id": "sub_001"}
    sent = json.loads(submission_stub.requests[0].content)
    assert sent["formId"] == "form_001"
    assert {"name": "contact_method_email_address", "value": "ada@lovelace.org"} in sent["answers"]
    events = client.get("/__test__/events").json()
    assert events[-1]["type"] == "form.submitted"
    # Assert: the guard is released after the request
    assert client.get(f"{API}/fill-sessions/{session_id}").json()["in_flight"] is False


def test_submit_with_uploaded_file_is_multipart(client, submission_stub):
    schema = {"title": "Apply", "fields": [{"name": "resume", "label": "Resume", "type": "file", "required": True}]}
    session_id = _open_session(client, schema)["session_id"]
    upload = client.put(
        f"{API}/fill-sessions/{session_id}/files/resume",
        files={"file": ("cv.pdf", b"%PDF-1.7", "application/pdf")},
    )
    assert upload.status_code == 200
    assert upload.json()["values"]["resume"]["filename"] == "cv.pdf"

    resp = client.post(f"{API}/fill-sessions/{session_id}/submit")

    assert resp.status_code == 200, resp.text
    assert resp.json()["files"] == ["resume"]
    request = submission_stub.requests[0]
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'filename="cv.pdf"' in request.content


def test_oversized_upload_is_rejected(client):
    schema = {"title": "Apply", "fields": [{"name": "resume", "label": "Resume", "type": "file"}]}
    session_id = _open_session(client, schema)["session_id"]
    resp = client.put(f"{API}/fill-sessions/{session_id}/files/resume", files={"file": ("big.bin", b"x" * 2048)})
    assert resp.status_code == 413
    assert resp.json()["code"] == "UPLOAD_TOO_LARGE"


def test_upload_is_read_with_a_bound(client, mocker):
    """Verifies an upload at the limit is accepted and never read past limit + 1 bytes."""
    from starlette.datastructures import UploadFile

    read = mocker.spy(UploadFile, "read")
    schema = {"title": "Apply", "fields": [{"name": "resume", "label": "Resume", "type": "file"}]}
    session_id = _open_session(client, schema)["session_id"]
    resp = client.put(f"{API}/fill-sessions/{session_id}/files/resume", files={"file": ("cv.pdf", b"x" * 1024)})
    assert resp.status_code == 200, resp.text
    assert resp.json()["values"]["resume"]["size"] == 1024
    # Assert: the route asked for limit + 1 bytes, not the whole stream
    assert read.call_args.args[-1] == 1025


def test_upload_to_non_file_field_is_conflict(client, contact_schema):
    session_id = _open_session(client, contact_schema)["session_id"]
    resp = client.put(f"{API}/fill-sessions/{session_id}/files/full_name", files={"file": ("a.txt", b"a")})
    assert resp.status_code == 409
    assert resp.json()["code"] == "FIELD_KIND_MISMATCH"


def test_rejected_submission_maps_errors_to_fields(client, contact_schema, submission_stub):
    submission_stub.status_code = 400
    submission_stub.body = {"errors": [{"path": "contact_method_email_address", "msg": "Email Address is already registered"}, "Quota exceeded"]}
    session_id = _open_session(client, contact_schema)["session_id"]
    _fill_valid(client, session_id)

    resp = client.post(f"{API}/fill-sessions/{session_id}/submit")

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "SUBMISSION_REJECTED"
    assert body["field_errors"] == {"contact_method_email_address": "Email Address is already registered"}
    assert body["unmapped"] == ["Quota exceeded"]


def test_unreachable_service_is_retryable_bad_gateway(client, contact_schema, submission_stub):
    submission_stub.raise_error = httpx.ConnectError("connection refused")
    session_id = _open_session(client, contact_schema)["session_id"]
    _fill_valid(client, session_id)

    resp = client.post(f"{API}/fill-sessions/{session_id}/submit")

    assert resp.status_code == 502
    assert resp.json()["retryable"] is True
    assert client.get("/__test__/events").json()[-1]["type"] == "form.submission_failed"


def test_inactive_form_cannot_be_opened(client, contact_schema):
    contact_schema["isActive"] = False
    resp = client.post(f"{API}/fill-sessions", json={"formId": "f", "schema": contact_schema})
    assert resp.status_code == 409
    assert resp.json()["code"] == "FORM_INACTIVE"


def test_session_limit_is_enforced(client, contact_schema):
    for _ in range(5):
        _open_session(client, contact_schema)
    resp = client.post(f"{API}/fill-sessions", json={"formId": "f", "schema": contact_schema})
    assert resp.status_code == 503
    assert resp.json()["code"] == "FILL_SESSION_LIMIT_REACHED"


def test_reset_and_delete_session(client, contact_schema):
    session_id = _open_session(client, contact_schema)["session_id"]
    _fill_valid(client, session_id)
    reset = client.post(f"{API}/fill-sessions/{session_id}/reset").json()
    assert reset["values"]["full_name"] == ""
    assert reset["selection"] == {}
    assert client.delete(f"{API}/fill-sessions/{session_id}").status_code == 204
    assert client.get(f"{API}/fill-sessions/{session_id}").status_code == 404


# -----------------------------
# Admin sessions and authoring
# -----------------------------

def test_admin_session_requires_correct_key(client):
    resp = client.post(f"{API}/auth/sessions", json={"apiKey": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "ADMIN_SESSION_INVALID"


def test_authoring_requires_bearer_token(client, contact_schema):
    assert client.post(f"{API}/authoring/schemas/check", json=contact_schema).status_code == 401
    resp = client.post(f"{API}/authoring/schemas/check", json=contact_schema, headers={"Authorization": "Bearer forged"})
    assert resp.status_code == 401


def test_revoked_admin_session_is_rejected(client, admin_headers, contact_schema):
    assert client.delete(f"{API}/auth/sessions", headers=admin_headers).status_code == 204
    assert client.post(f"{API}/authoring/schemas/check", json=contact_schema, headers=admin_headers).status_code == 401


def test_schema_check_reports_issues(client, admin_headers):
    schema = {"title": "", "fields": [{"name": "pick", "label": "Pick", "type": "radio", "options": []}]}
    body = client.post(f"{API}/authoring/schemas/check", json=schema, headers=admin_headers).json()
    assert body["ok"] is False
    paths = {i["path"] for i in body["issues"]}
    assert {"title", "fields[0].options"} <= paths


def test_editor_lifecycle(client, admin_headers):
    """Verifies create, add, edit, move, branch and export through the editor routes."""
    created = client.post(
        f"{API}/authoring/editors",
        json={"title": "Survey", "fields": [{"name": "full_name", "label": "Full Name", "type": "text", "required": True}]},
        headers=admin_headers,
    )
    assert created.status_code == 201
    editor_id = created.json()["editor_id"]
    base = f"{API}/authoring/editors/{editor_id}"

    added = client.post(f"{base}/fields", json={"type": "radio", "label": "Contact Method", "options": ["Email", "Phone"], "position": 1}, headers=admin_headers)
    assert added.status_code == 201
    identity = added.json()["identity"]
    assert added.json()["name"] == "contact_method"

    patched = client.patch(f"{base}/fields/{identity}", json={"required": True}, headers=admin_headers)
    assert patched.json()["required"] is True

    moved = client.post(f"{base}/fields/{identity}/move", json={"position": 9}, headers=admin_headers).json()
    assert moved["position"] == 2
    assert moved["order"] == ["field-full_name", identity]

    branched = client.put(
        f"{base}/fields/{identity}/branches/Email",
        json={"fields": [{"label": "Email Address", "type": "email", "required": True}]},
        headers=admin_headers,
    )
    assert branched.status_code == 200
    assert branched.json()["conditionalFields"]["Email"][0]["name"] == "email_address"

    exported = client.post(f"{base}/schema", headers=admin_headers)
    assert exported.status_code == 200
    schema = exported.json()["schema"]
    assert [f["name"] for f in schema["fields"]] == ["full_name", "contact_method"]
    assert all("identity" not in f for f in schema["fields"])

    # Assert: the exported schema can be filled out straight away
    session = _open_session(client, schema)
    assert session["fields"][1]["name"] == "contact_method"


def test_export_with_blocking_issues_is_unprocessable(client, admin_headers):
    editor_id = client.post(f"{API}/authoring/editors", json={"title": "Empty"}, headers=admin_headers).json()["editor_id"]
    resp = client.post(f"{API}/authoring/editors/{editor_id}/schema", headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "SCHEMA_MALFORMED"
    assert resp.json()["errors"] == [{"path": "fields", "message": "At least one field is required"}]


def test_editor_errors(client, admin_headers):
    assert client.get(f"{API}/authoring/editors/nope", headers=admin_headers).status_code == 404
    editor_id = client.post(f"{API}/authoring/editors", json={"title": "T"}, headers=admin_headers).json()["editor_id"]
    missing = client.delete(f"{API}/authoring/editors/{editor_id}/fields/ghost", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "FIELD_NOT_FOUND"
    text = client.post(f"{API}/authoring/editors/{editor_id}/fields", json={"type": "text", "label": "Notes"}, headers=admin_headers).json()
    resp = client.put(f"{API}/authoring/editors/{editor_id}/fields/{text['identity']}/branches/x", json={"fields": []}, headers=admin_headers)
    assert resp.status_code == 409


def test_reset_state_clears_everything(client, contact_schema):
    _open_session(client, contact_schema)
    assert client.post("/__test__/reset-state").status_code == 204
    assert client.get("/health").json()["fill_sessions"] == 0
    assert client.get("/__test__/events").json() == []


def test_events_feed_reads_incrementally(client, contact_schema):
    session_id = _open_session(client, contact_schema)["session_id"]
    client.post(f"{API}/fill-sessions/{session_id}/selection", json={"name": "contact_method", "option": "Email"})
    first = client.get("/__test__/events").json()
    client.post(f"{API}/fill-sessions/{session_id}/reset")
    newer = client.get("/__test__/events", params={"after": first[-1]["seq"]}).json()
    assert [e["type"] for e in first] == ["fill_session.selection_changed"]
    assert [e["type"] for e in newer] == ["fill_session.reset"]
