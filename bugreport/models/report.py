"""Bug report data models."""

import json
from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from bugreport.models.captured_error import CapturedError

Category = Literal["bug", "idea", "other"]
Severity = Literal["high", "med", "low"]

MAX_DESCRIPTION_LENGTH = 500

# Older widget builds sent display labels instead of stored values
_SEVERITY_ALIASES = {"medium": "med"}


class _CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmissionContext(_CamelModel):
    """Environment captured alongside every submission."""

    page_url: str = ""
    user_agent: str = ""
    timestamp: str
    recent_errors: list[CapturedError] = []


class ReportCreate(_CamelModel):
    """Incoming report, as POSTed by the widget (JSON or multipart)."""

    category: Category
    severity: Severity
    description: str = Field(..., max_length=MAX_DESCRIPTION_LENGTH)
    email: EmailStr | None = None
    page_url: str | None = None
    user_agent: str | None = None
    console_snippet: str | None = None
    # Unchecked form checkboxes are simply absent
    consent: bool = Field(False, validate_default=True)
    context: dict[str, Any] | None = None

    @field_validator("category", "severity", mode="before")
    @classmethod
    def _normalize_choice(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _SEVERITY_ALIASES.get(value, value)
        return value

    @field_validator("description")
    @classmethod
    def _require_description(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Description is required")
        return value

    @field_validator("email", "page_url", "user_agent", "console_snippet", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("page_url")
    @classmethod
    def _check_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("pageUrl must be an absolute URL")
        return value

    @field_validator("consent")
    @classmethod
    def _require_consent(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Consent is required to submit this report")
        return value

    @field_validator("context", mode="before")
    @classmethod
    def _parse_context(cls, value: Any) -> Any:
        """Multipart submissions carry the context as a JSON string."""
        if isinstance(value, str):
            if not value.strip():
                return None
            return json.loads(value)
        return value

    def resolved_user_agent(self) -> str | None:
        """Top-level userAgent, falling back to the one in the context."""
        if self.user_agent:
            return self.user_agent
        if self.context:
            agent = self.context.get("userAgent")
            if isinstance(agent, str) and agent:
                return agent
        return None


class Report(_CamelModel):
    """A persisted report record."""

    id: str
    category: Category
    severity: Severity
    description: str
    email: str | None = None
    screenshot: str | None = None
    page_url: str | None = None
    user_agent: str | None = None
    console_snippet: str | None = None
    consent: bool = False
    created: datetime
    updated: datetime


class ReportList(BaseModel):
    """Newest-first report listing."""

    reports: list[Report]
    total: int
