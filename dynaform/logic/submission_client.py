"""Async transport to the submission service.

Sends ``{formId, answers}`` as JSON, or as a multipart body (``formId``,
``answers`` as a JSON string, one file part per file-valued field) when the
submission carries files. This is the only suspension point of a fill
session; cancelling the awaiting task abandons the request and leaves no
client-side state behind.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import json
import logging

import httpx

from dynaform.logic.errors import SubmissionRejectedError, SubmissionTransportError
from dynaform.models.answers import Submission

logger = logging.getLogger(__name__)

SUBMISSIONS_PATH = "/submissions"
DEFAULT_ERROR_MESSAGE = "Error submitting form. Please try again."


def build_request_kwargs(submission: Submission) -> Dict[str, Any]:
    """Keyword arguments for ``httpx.AsyncClient.post`` carrying ``submission``."""
    if not submission.is_multipart:
        return {"json": submission.json_body()}
    answers = [a.model_dump() for a in submission.answers]
    files: List[tuple] = [
        (payload.name, (payload.file.filename, payload.file.content, payload.file.content_type))
        for payload in submission.files
    ]
    return {"data": {"formId": submission.form_id, "answers": json.dumps(answers)}, "files": files}


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"error": response.text}


class SubmissionClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.headers = dict(headers or {})
        self._transport = transport

    async def submit(self, submission: Submission) -> Dict[str, Any]:
        """Deliver ``submission``; return the service's JSON body on success.

        Raises ``SubmissionTransportError`` (retryable) for network failures
        and 5xx responses, ``SubmissionRejectedError`` for 4xx responses.
        """
        kwargs = build_request_kwargs(submission)
        logger.info(
            "submission_send form_id=%s answers=%s files=%s multipart=%s",
            submission.form_id,
            len(submission.answers),
            len(submission.files),
            submission.is_multipart,
        )
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                headers=self.headers,
                transport=self._transport,
            ) as client:
                response = await client.post(SUBMISSIONS_PATH, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("submission_transport_error form_id=%s error=%s", submission.form_id, exc)
            raise SubmissionTransportError(f"submission service unreachable: {exc}") from exc

        body = _response_body(response)
        if response.status_code >= 500:
            logger.warning("submission_server_error form_id=%s status=%s", submission.form_id, response.status_code)
            raise SubmissionTransportError(
                f"submission service failed with status {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            errors = body.get("errors") if isinstance(body, dict) else None
            if not isinstance(errors, list) or not errors:
                message = (body.get("error") or body.get("message")) if isinstance(body, dict) else None
                errors = [message or DEFAULT_ERROR_MESSAGE]
            logger.info(
                "submission_rejected form_id=%s status=%s errors=%s",
                submission.form_id,
                response.status_code,
                len(errors),
            )
            raise SubmissionRejectedError(errors, status_code=response.status_code)
        logger.info("submission_accepted form_id=%s status=%s", submission.form_id, response.status_code)
        return body if isinstance(body, dict) else {"data": body}


__all__ = ["SUBMISSIONS_PATH", "build_request_kwargs", "SubmissionClient"]
