"""Maintainer dashboard — server-rendered report list and detail pages."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse

from bugreport.services.report_store import MAX_LIST_SIZE, get_report, list_reports
from bugreport.services.viewer import (
    render_page,
    render_report_detail,
    render_report_list,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])
logger = logging.getLogger(__name__)


@router.get("", response_class=HTMLResponse)
async def dashboard():
    """Newest reports, up to the list cap."""
    try:
        index = await list_reports(limit=MAX_LIST_SIZE)
    except Exception as e:
        logger.error("Dashboard could not read reports: %s", e)
        body = '<div class="error">Failed to load reports: Report store unavailable</div>'
        return HTMLResponse(render_page("Bug Reports", body), status_code=503)
    return HTMLResponse(render_page("Bug Reports", render_report_list(index.reports)))


@router.get("/reports/{report_id}", response_class=HTMLResponse)
async def report_detail(report_id: str):
    """A single report with its captured diagnostics."""
    report = await get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return HTMLResponse(render_page(f"Report {report.id}", render_report_detail(report)))
