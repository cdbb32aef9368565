"""Tests for the report viewer and the dashboard pages."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from azure.core.exceptions import HttpResponseError
from httpx import ASGITransport, AsyncClient

from bugreport.models.report import Report, ReportList
from bugreport.services.viewer import (
    EMPTY_TEXT,
    LOADING_TEXT,
    ReportViewer,
    ViewerState,
    render_report_detail,
    render_report_item,
)


def _report_data(report_id: str, description: str = "button broken", **kw) -> dict:
    data = {
        "id": report_id,
        "category": "bug",
        "severity": "high",
        "description": description,
        "pageUrl": "https://app.example.com/settings",
        "consent": True,
        "created": "2026-10-01T12:00:00Z",
        "updated": "2026-10-01T12:00:00Z",
    }
    data.update(kw)
    return data


def _viewer(handler) -> ReportViewer:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://test"
    )
    return ReportViewer(client=client)


class TestReportViewer:
    """Tests for ReportViewer mount/render."""

    def test_renders_loading_before_mount(self):
        viewer = _viewer(lambda request: httpx.Response(200, json={"reports": []}))
        assert viewer.state is ViewerState.LOADING
        assert LOADING_TEXT in viewer.render()

    @pytest.mark.asyncio
    async def test_empty_list_renders_notice(self):
        viewer = _viewer(
            lambda request: httpx.Response(200, json={"reports": [], "total": 0})
        )

        await viewer.mount()

        assert viewer.state is ViewerState.LOADED
        assert EMPTY_TEXT in viewer.render()
        assert "<li" not in viewer.render()

    @pytest.mark.asyncio
    async def test_renders_items_in_received_order(self):
        items = [
            _report_data("aaaaaaaaaaaaaaa", "first", created="2026-10-01T10:00:00Z"),
            _report_data("bbbbbbbbbbbbbbb", "second", created="2026-10-03T10:00:00Z"),
            _report_data("ccccccccccccccc", "third", created="2026-10-02T10:00:00Z"),
        ]
        viewer = _viewer(
            lambda request: httpx.Response(200, json={"reports": items, "total": 3})
        )

        await viewer.mount()
        html = viewer.render()

        assert html.count("<li") == 3
        assert html.index("first") < html.index("second") < html.index("third")

    @pytest.mark.asyncio
    async def test_requests_two_hundred_newest(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"reports": []})

        viewer = _viewer(handler)
        await viewer.mount()
        await viewer.mount()

        (request,) = seen
        assert request.url.path == "/api/reports"
        assert request.url.params["limit"] == "200"

    @pytest.mark.asyncio
    async def test_server_error_renders_message(self):
        viewer = _viewer(lambda request: httpx.Response(500, text="boom"))

        await viewer.mount()

        assert viewer.state is ViewerState.ERROR
        assert viewer.render().startswith('<div class="error">Failed to load reports')

    @pytest.mark.asyncio
    async def test_transport_error_renders_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("store unreachable", request=request)

        viewer = _viewer(handler)
        await viewer.mount()

        assert viewer.state is ViewerState.ERROR
        assert "store unreachable" in viewer.render()

    @pytest.mark.asyncio
    async def test_accepts_plain_list_payload(self):
        viewer = _viewer(
            lambda request: httpx.Response(200, json=[_report_data("aaaaaaaaaaaaaaa")])
        )

        await viewer.mount()

        assert len(viewer.reports) == 1


class TestRendering:
    """Tests for HTML rendering helpers."""

    def test_item_escapes_user_content(self):
        report = Report(**_report_data("aaaaaaaaaaaaaaa", "<script>x</script>"))
        html = render_report_item(report)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_item_missing_email_shows_na(self):
        report = Report(**_report_data("aaaaaaaaaaaaaaa"))
        assert "<strong>Email:</strong> N/A" in render_report_item(report)

    def test_non_http_page_url_is_not_linked(self):
        report = Report(**_report_data("aaaaaaaaaaaaaaa", pageUrl="javascript:alert(1)"))
        assert "href=\"javascript" not in render_report_item(report)

    def test_detail_includes_diagnostics(self):
        report = Report(
            **_report_data(
                "aaaaaaaaaaaaaaa",
                userAgent="test-agent/1.0",
                consoleSnippet="t1 console.error bad",
                screenshot="shot.png",
            )
        )
        html = render_report_detail(report)
        assert "test-agent/1.0" in html
        assert "t1 console.error bad" in html
        assert "/api/reports/aaaaaaaaaaaaaaa/screenshot" in html


async def test_dashboard_page_lists_reports(mock_settings, mocker):
    mocker.patch(
        "bugreport.routers.dashboard.list_reports",
        new_callable=AsyncMock,
        return_value=ReportList(
            reports=[Report(**_report_data("aaaaaaaaaaaaaaa"))], total=1
        ),
    )

    from bugreport.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/dashboard")

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert response.text.count("<li") == 1


async def test_dashboard_page_empty(mock_settings, mocker):
    mocker.patch(
        "bugreport.routers.dashboard.list_reports",
        new_callable=AsyncMock,
        return_value=ReportList(reports=[], total=0),
    )

    from bugreport.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/dashboard")

    assert EMPTY_TEXT in response.text


async def test_dashboard_detail_not_found(mock_settings, mocker):
    mocker.patch(
        "bugreport.routers.dashboard.get_report",
        new_callable=AsyncMock,
        return_value=None,
    )

    from bugreport.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/dashboard/reports/abc123def456ghi")

    assert response.status_code == 404


async def test_dashboard_page_storage_failure(mock_settings, mocker):
    mocker.patch(
        "bugreport.routers.dashboard.list_reports",
        new_callable=AsyncMock,
        side_effect=HttpResponseError("throttled"),
    )

    from bugreport.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/dashboard")

    assert response.status_code == 503
    assert "Failed to load reports" in response.text
    assert EMPTY_TEXT not in response.text


async def test_viewer_reports_store_failure(mock_settings, mocker):
    container = MagicMock()
    container.get_blob_client.return_value.download_blob.side_effect = (
        HttpResponseError("throttled")
    )
    mocker.patch(
        "bugreport.services.report_store._get_container_client",
        return_value=container,
    )

    from bugreport.main import app

    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    viewer = ReportViewer(client=client)
    await viewer.mount()
    await client.aclose()

    assert viewer.state is ViewerState.ERROR
    assert viewer.reports == []
    assert viewer.render().startswith('<div class="error">Failed to load reports')
    assert EMPTY_TEXT not in viewer.render()
