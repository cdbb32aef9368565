"""Report submission: context capture, body encoding and the POST itself.

A draft with a screenshot goes out as multipart form data; anything else is
sent as a flat JSON object.  The outcome is returned as one of three result
types so the caller decides how to present it:

* ``Submitted``: the endpoint accepted the report (any 2xx).
* ``ServerRejected``: the endpoint answered with a non-success status.
* ``TransportFailed``: the request never got a response.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from bugreport.models.draft import ReportDraft
from bugreport.models.report import SubmissionContext
from bugreport.services.error_log import ErrorLogBuffer, get_buffer

logger = logging.getLogger(__name__)

CONTEXT_ERRORS = 20


@dataclass(frozen=True)
class Submitted:
    status_code: int


@dataclass(frozen=True)
class ServerRejected:
    status_code: int
    detail: str


@dataclass(frozen=True)
class TransportFailed:
    detail: str


SubmissionResult = Submitted | ServerRejected | TransportFailed


def build_context(
    page_url: str,
    user_agent: str,
    buffer: ErrorLogBuffer | None = None,
) -> SubmissionContext:
    """Snapshot the environment and the most recent captured errors."""
    buffer = buffer if buffer is not None else get_buffer()
    return SubmissionContext(
        page_url=page_url,
        user_agent=user_agent,
        timestamp=datetime.now(timezone.utc).isoformat(),
        recent_errors=buffer.snapshot(CONTEXT_ERRORS),
    )


def encode_submission(draft: ReportDraft, context: SubmissionContext) -> dict[str, Any]:
    """Build the ``httpx`` request arguments for a draft.

    The context is always serialized to a JSON string first; the JSON body
    parses it back so ``context`` arrives as a nested object.
    """
    fields: dict[str, Any] = draft.form_fields()
    context_json = context.model_dump_json(by_alias=True, exclude_none=True)

    if draft.screenshot is not None:
        shot = draft.screenshot
        return {
            "data": {**fields, "context": context_json},
            "files": {"screenshot": (shot.filename, shot.content, shot.content_type)},
        }

    fields["context"] = json.loads(context_json)
    return {
        "json": fields,
        "headers": {"Content-Type": "application/json"},
    }


def _failure_detail(resp: httpx.Response) -> str:
    """Status text and body text of a rejected submission."""
    reason = resp.reason_phrase
    text = resp.text.strip()
    if reason and text:
        return f"{reason}: {text}"
    return reason or text or f"HTTP {resp.status_code}"


async def submit_report(
    client: httpx.AsyncClient,
    endpoint: str,
    draft: ReportDraft,
    context: SubmissionContext,
) -> SubmissionResult:
    """POST a draft to ``endpoint``. Never raises for HTTP-level failures."""
    request_kwargs = encode_submission(draft, context)
    try:
        resp = await client.post(endpoint, **request_kwargs)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        detail = str(e) or type(e).__name__
        logger.error("Report submission to %s failed: %s", endpoint, detail)
        return TransportFailed(detail=detail)

    if resp.is_success:
        logger.info("Report submitted to %s (%d)", endpoint, resp.status_code)
        return Submitted(status_code=resp.status_code)

    detail = _failure_detail(resp)
    logger.warning(
        "Report submission to %s rejected with %d: %s",
        endpoint,
        resp.status_code,
        detail[:200],
    )
    return ServerRejected(status_code=resp.status_code, detail=detail)
