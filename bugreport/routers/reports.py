"""Report store endpoints — create, list, view."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from bugreport.models.report import Report, ReportCreate, ReportList
from bugreport.services.report_store import (
    MAX_LIST_SIZE,
    create_report,
    get_report,
    get_screenshot,
    list_reports,
)

router = APIRouter(prefix="/reports", tags=["reports"])
logger = logging.getLogger(__name__)

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def _read_submission(
    request: Request,
) -> tuple[dict[str, Any], tuple[str, bytes, str] | None]:
    """Split a JSON or form body into text fields and an optional screenshot."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        fields = {k: v for k, v in form.items() if not isinstance(v, UploadFile)}
        screenshot = None
        upload = form.get("screenshot")
        if isinstance(upload, UploadFile) and upload.filename:
            content = await upload.read()
            if content:
                screenshot = (
                    upload.filename,
                    content,
                    upload.content_type or "application/octet-stream",
                )
        return fields, screenshot

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=422, detail="Request body must be JSON or multipart form data"
        )
    if not isinstance(payload, dict):
        raise HTTPException(status_code=422, detail="Request body must be an object")
    # JSON submissions never carry a file
    payload.pop("screenshot", None)
    return payload, None


@router.post("", response_model=Report, status_code=201)
async def submit_report(request: Request):
    """Create a report from a widget submission."""
    fields, screenshot = await _read_submission(request)

    try:
        submission = ReportCreate.model_validate(fields)
    except ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        logger.info("Rejected report submission: %s", errors)
        raise HTTPException(status_code=422, detail=errors)

    try:
        report = await create_report(submission, screenshot)
    except Exception as e:
        logger.error("Report storage failed: %s", e)
        raise HTTPException(
            status_code=500, detail="Failed to store report. Please try again."
        )
    return report


@router.get("", response_model=ReportList)
async def list_recent_reports(
    limit: int = Query(
        default=MAX_LIST_SIZE,
        ge=1,
        le=MAX_LIST_SIZE,
        description="Maximum number of reports to return, newest first",
    ),
):
    """List the most recently created reports."""
    try:
        return await list_reports(limit=limit)
    except Exception as e:
        logger.error("Report listing failed: %s", e)
        raise HTTPException(status_code=503, detail="Report store unavailable")


@router.get("/{report_id}", response_model=Report)
async def get_report_by_id(report_id: str):
    """Get a single report by ID."""
    report = await get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("/{report_id}/screenshot")
async def get_report_screenshot(report_id: str):
    """Download the screenshot attached to a report."""
    report = await get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    shot = await get_screenshot(report)
    if shot is None:
        raise HTTPException(status_code=404, detail="Screenshot not found")
    content, content_type = shot
    return Response(content=content, media_type=content_type)
