"""Submit or list bug reports from the command line.

Drives the same widget the in-app integrations use, without a UI.

Usage:
    python -m scripts.submit_report submit "Button does nothing" --severity high
    python -m scripts.submit_report submit "Crash on save" --screenshot shot.png
    python -m scripts.submit_report list --limit 20
"""

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

from bugreport.config import get_settings
from bugreport.models.draft import Screenshot
from bugreport.services import error_log
from bugreport.services.http_client import close_shared_client
from bugreport.services.viewer import ReportViewer, ViewerState
from bugreport.services.widget import (
    Invalid,
    PageEnvironment,
    ReportWidget,
    WidgetConfig,
    WidgetState,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def _load_screenshot(path: str) -> Screenshot:
    file_path = Path(path)
    content_type, _ = mimetypes.guess_type(file_path.name)
    return Screenshot(
        filename=file_path.name,
        content=file_path.read_bytes(),
        content_type=content_type or "application/octet-stream",
    )


async def _submit(args: argparse.Namespace) -> int:
    widget = ReportWidget(
        PageEnvironment(url=args.page_url),
        WidgetConfig(endpoint=args.endpoint),
    )
    widget.open()
    draft = widget.draft
    if draft is None:
        print("Widget did not open")
        return 1
    draft.category = args.category
    draft.severity = args.severity
    draft.description = args.description
    draft.email = args.email or ""
    draft.consent = True
    if args.screenshot:
        draft.screenshot = _load_screenshot(args.screenshot)

    outcome = await widget.submit()
    if isinstance(outcome, Invalid):
        print(f"Not sent: {outcome.detail}")
        return 1
    if widget.state is WidgetState.SUBMITTED:
        print(widget.acknowledgement)
        return 0
    for notice in widget.notices:
        print(notice)
    return 1


async def _list(args: argparse.Namespace) -> int:
    viewer = ReportViewer(endpoint=args.endpoint, limit=args.limit)
    await viewer.mount()
    if viewer.state is ViewerState.ERROR:
        print(viewer.error)
        return 1
    if not viewer.reports:
        print("No Reports Found")
        return 0
    for report in viewer.reports:
        print(
            f"{report.created:%Y-%m-%d %H:%M}  {report.id}  "
            f"[{report.category}/{report.severity}]  {report.description[:60]}"
        )
    return 0


def _parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    submit = sub.add_parser("submit", help="Send a report")
    submit.add_argument("description")
    submit.add_argument("--category", choices=["bug", "idea", "other"], default="bug")
    submit.add_argument("--severity", choices=["high", "med", "low"], default="low")
    submit.add_argument("--email")
    submit.add_argument("--screenshot", help="Path to an image to attach")
    submit.add_argument("--page-url", default="cli://submit_report")
    submit.add_argument("--endpoint", default=settings.endpoint)

    listing = sub.add_parser("list", help="Print the newest reports")
    listing.add_argument("--limit", type=int, default=50)
    listing.add_argument("--endpoint", default=settings.endpoint)
    return parser


async def main() -> int:
    args = _parser().parse_args()
    error_log.install()
    try:
        if args.command == "submit":
            return await _submit(args)
        return await _list(args)
    finally:
        await close_shared_client()
        error_log.uninstall()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
