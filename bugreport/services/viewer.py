"""Read-only report viewer: one fetch per mount, rendered to HTML."""

import html
import logging
from enum import Enum

import httpx

from bugreport.models.report import Report
from bugreport.services.http_client import get_shared_client
from bugreport.services.report_store import MAX_LIST_SIZE

logger = logging.getLogger(__name__)

LOADING_TEXT = "Loading Reports..."
EMPTY_TEXT = "No Reports Found"


class ViewerState(Enum):
    LOADING = "loading"
    ERROR = "error"
    LOADED = "loaded"


class ReportViewer:
    """Fetches the newest reports from the store and renders them.

    The store owns ordering; reports are rendered in the order received.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        endpoint: str = "/api/reports",
        limit: int = MAX_LIST_SIZE,
    ) -> None:
        self._client = client
        self.endpoint = endpoint
        self.limit = min(limit, MAX_LIST_SIZE)
        self.state = ViewerState.LOADING
        self.reports: list[Report] = []
        self.error: str | None = None
        self._mounted = False

    async def mount(self) -> None:
        """Fetch the report list once. Later calls are no-ops."""
        if self._mounted:
            return
        self._mounted = True

        client = self._client if self._client is not None else get_shared_client()
        try:
            resp = await client.get(self.endpoint, params={"limit": str(self.limit)})
            resp.raise_for_status()
            data = resp.json()
            if isinstance(data, dict):
                items = data.get("reports", data.get("items", []))
            else:
                items = data
            self.reports = [Report(**item) for item in items]
        except Exception as e:
            logger.warning("Failed to load reports from %s: %s", self.endpoint, e)
            self.error = f"Failed to load reports: {e}"
            self.state = ViewerState.ERROR
            return

        logger.debug("Fetched %d reports", len(self.reports))
        self.state = ViewerState.LOADED

    def render(self) -> str:
        """HTML fragment for the current state."""
        if self.state is ViewerState.LOADING:
            return f'<div class="loading">{LOADING_TEXT}</div>'
        if self.state is ViewerState.ERROR:
            return f'<div class="error">{html.escape(self.error or "")}</div>'
        return render_report_list(self.reports)


def _format_created(report: Report) -> str:
    return report.created.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _page_link(url: str | None) -> str:
    if not url:
        return "N/A"
    escaped = html.escape(url)
    if not url.lower().startswith(("http://", "https://")):
        return escaped
    return f'<a href="{escaped}" target="_blank" rel="noopener noreferrer">{escaped}</a>'


def render_report_item(report: Report) -> str:
    """One ``<li>`` summarising a report."""
    rid = html.escape(report.id)
    return (
        f'<li class="report" data-id="{rid}">'
        '<div class="report-header">'
        f'<span class="category">{html.escape(report.category)}</span>'
        f'<span class="severity severity-{html.escape(report.severity)}">'
        f"{html.escape(report.severity)}</span>"
        "</div>"
        f'<p class="description">{html.escape(report.description)}</p>'
        '<div class="meta">'
        f"<div><strong>Submitted:</strong> {_format_created(report)}</div>"
        f"<div><strong>Page URL:</strong> {_page_link(report.page_url)}</div>"
        f"<div><strong>Email:</strong> {html.escape(report.email or 'N/A')}</div>"
        f'<div><a href="/dashboard/reports/{rid}">Details</a></div>'
        "</div>"
        "</li>"
    )


def render_report_list(reports: list[Report]) -> str:
    """The report list, or the empty notice."""
    if not reports:
        return f'<div class="empty">{EMPTY_TEXT}</div>'
    items = "".join(render_report_item(r) for r in reports)
    return f'<ul class="reports">{items}</ul>'


def render_report_detail(report: Report) -> str:
    """Full view of a single report, including captured diagnostics."""
    rid = html.escape(report.id)
    parts = [
        f'<article class="report-detail" data-id="{rid}">',
        f"<h3>{html.escape(report.category)} &middot; "
        f'<span class="severity severity-{html.escape(report.severity)}">'
        f"{html.escape(report.severity)}</span></h3>",
        f'<p class="description">{html.escape(report.description)}</p>',
        "<dl>",
        f"<dt>Submitted</dt><dd>{_format_created(report)}</dd>",
        f"<dt>Page URL</dt><dd>{_page_link(report.page_url)}</dd>",
        f"<dt>Email</dt><dd>{html.escape(report.email or 'N/A')}</dd>",
        f"<dt>User agent</dt><dd>{html.escape(report.user_agent or 'N/A')}</dd>",
        "</dl>",
    ]
    if report.console_snippet:
        parts.append(
            f'<pre class="console">{html.escape(report.console_snippet)}</pre>'
        )
    if report.screenshot:
        parts.append(
            f'<img class="screenshot" src="/api/reports/{rid}/screenshot" '
            f'alt="{html.escape(report.screenshot)}">'
        )
    parts.append("</article>")
    return "".join(parts)


def render_page(title: str, body: str) -> str:
    """Wrap a fragment in a minimal standalone HTML document."""
    escaped = html.escape(title)
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{escaped}</title></head>"
        f"<body><main><h2>{escaped}</h2>{body}</main></body></html>"
    )
