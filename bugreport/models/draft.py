"""In-progress report edited inside an open widget session."""

from dataclasses import dataclass
from typing import get_args

from bugreport.models.report import MAX_DESCRIPTION_LENGTH, Category, Severity


class ReportValidationError(ValueError):
    """A draft failed a local check and must not be sent."""


@dataclass(frozen=True)
class Screenshot:
    """A single attached image file."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class ReportDraft:
    """Form state for one widget session.

    ``page_url`` is filled in by the widget and is not user-editable.
    ``console_snippet`` is pre-filled from the error log buffer but may be
    edited before sending.
    """

    page_url: str
    category: Category = "bug"
    severity: Severity = "low"
    description: str = ""
    email: str = ""
    screenshot: Screenshot | None = None
    console_snippet: str = ""
    consent: bool = False

    def validate_for_submit(self) -> None:
        """Raise ReportValidationError unless the draft may be sent."""
        if self.category not in get_args(Category):
            raise ReportValidationError(f"Unknown category: {self.category!r}")
        if self.severity not in get_args(Severity):
            raise ReportValidationError(f"Unknown severity: {self.severity!r}")
        if not self.description.strip():
            raise ReportValidationError("Description is required")
        if len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ReportValidationError(
                f"Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer"
            )
        if not self.consent:
            raise ReportValidationError("Consent is required to submit this report")

    def form_fields(self) -> dict[str, str]:
        """Text form fields in wire order. Unchecked consent is omitted."""
        fields = {
            "category": self.category,
            "severity": self.severity,
            "description": self.description,
            "pageUrl": self.page_url,
            "email": self.email,
        }
        if self.consent:
            fields["consent"] = "on"
        fields["consoleSnippet"] = self.console_snippet
        return fields
