"""Headless bug report widget.

The widget owns the report form's state machine and leaves rendering to the
host (a GUI, a terminal UI, a test).  The host calls the transition methods
in response to user input and renders ``state``, ``draft``, the submit
control (``submit_enabled`` / ``submit_label``), ``notices`` and
``acknowledgement``.

    CLOSED --open()--> OPEN --submit()--> SUBMITTING --> SUBMITTED
                        ^                     |
                        +----- failure -------+

``close()`` (also cancel, background click, Escape) returns to CLOSED from
any state and discards the draft.
"""

import logging
import platform
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import httpx
from pydantic import BaseModel

from bugreport.config import get_settings
from bugreport.models.draft import ReportDraft, ReportValidationError
from bugreport.services.error_log import ErrorLogBuffer, format_snippet, get_buffer
from bugreport.services.http_client import get_shared_client
from bugreport.services.submission import (
    ServerRejected,
    Submitted,
    SubmissionResult,
    TransportFailed,
    build_context,
    submit_report,
)

logger = logging.getLogger(__name__)

WIDGET_VERSION = "0.1.0"
SNIPPET_ERRORS = 10

SUBMIT_LABEL = "Send report"
SENDING_LABEL = "Sending..."
THANK_YOU = "Thanks, your report was submitted."


class WidgetState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


def default_user_agent() -> str:
    return (
        f"bugreport-widget/{WIDGET_VERSION} "
        f"({platform.system()} {platform.release()}) "
        f"Python/{platform.python_version()} httpx/{httpx.__version__}"
    )


@dataclass
class PageEnvironment:
    """Where the widget is running: the current page and the client identity."""

    url: str
    user_agent: str = field(default_factory=default_user_agent)


class WidgetConfig(BaseModel):
    """Per-deployment widget configuration."""

    endpoint: str = "/api/reports"


@dataclass(frozen=True)
class Invalid:
    """The draft failed local validation; nothing was sent."""

    detail: str


SubmitOutcome = Invalid | SubmissionResult


class ReportWidget:
    """Report capture state machine bound to one page."""

    def __init__(
        self,
        page: PageEnvironment,
        config: WidgetConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        buffer: ErrorLogBuffer | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self.page = page
        self.config = config or WidgetConfig(endpoint=get_settings().endpoint)
        self._client = client
        self._buffer = buffer
        self._notify = notify

        self.state = WidgetState.CLOSED
        self.draft: ReportDraft | None = None
        self.submit_enabled = True
        self.submit_label = SUBMIT_LABEL
        self.notices: list[str] = []
        self.acknowledgement: str | None = None

        # Bumped on open/close so a response for a closed session is dropped
        self._session = 0

    @property
    def buffer(self) -> ErrorLogBuffer:
        return self._buffer if self._buffer is not None else get_buffer()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_shared_client()

    # -- open / close -------------------------------------------------

    def open(self) -> None:
        """Start a new session with a fresh draft. No-op unless closed."""
        if self.state is not WidgetState.CLOSED:
            return
        self._session += 1
        self.draft = ReportDraft(
            page_url=self.page.url,
            console_snippet=format_snippet(self.buffer.snapshot(SNIPPET_ERRORS)),
        )
        self.acknowledgement = None
        self.notices.clear()
        self.state = WidgetState.OPEN

    def close(self) -> None:
        """Discard the draft and close. Any in-flight response is ignored."""
        if self.state is WidgetState.CLOSED:
            return
        if self.state is WidgetState.SUBMITTING:
            logger.info("Report widget closed while a submission was in flight")
        self._session += 1
        self.draft = None
        self.acknowledgement = None
        self._reset_submit_control()
        self.state = WidgetState.CLOSED

    def cancel(self) -> None:
        self.close()

    def overlay_click(self, on_background: bool) -> None:
        """Clicks on the backdrop close the widget; clicks inside do not."""
        if on_background:
            self.close()

    def key_press(self, key: str) -> None:
        if key == "Escape":
            self.close()

    # -- submit -------------------------------------------------------

    async def submit(self) -> SubmitOutcome | None:
        """Validate and send the current draft.

        Returns None when there is nothing to submit (not open, or a
        submission is already in flight).
        """
        if self.state is not WidgetState.OPEN or not self.submit_enabled:
            return None
        draft = self.draft
        if draft is None:
            return None

        try:
            draft.validate_for_submit()
        except ReportValidationError as e:
            self._alert(str(e))
            return Invalid(detail=str(e))

        session = self._session
        self.state = WidgetState.SUBMITTING
        self.submit_enabled = False
        self.submit_label = SENDING_LABEL

        result: SubmissionResult
        try:
            context = build_context(self.page.url, self.page.user_agent, self.buffer)
            result = await submit_report(
                self.client, self.config.endpoint, draft, context
            )
        except Exception as e:
            logger.exception("Unexpected error sending report")
            result = TransportFailed(detail=str(e) or type(e).__name__)
        finally:
            if session == self._session:
                self._reset_submit_control()

        if session != self._session:
            logger.info("Ignoring submission result for a closed report session")
            return result

        if isinstance(result, Submitted):
            self.draft = None
            self.acknowledgement = THANK_YOU
            self.state = WidgetState.SUBMITTED
        elif isinstance(result, (ServerRejected, TransportFailed)):
            self._alert(f"Failed to send report: {result.detail}")
            self.state = WidgetState.OPEN
        return result

    # -- helpers ------------------------------------------------------

    def _reset_submit_control(self) -> None:
        self.submit_enabled = True
        self.submit_label = SUBMIT_LABEL

    def _alert(self, message: str) -> None:
        self.notices.append(message)
        if self._notify is not None:
            self._notify(message)
