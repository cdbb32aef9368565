"""Captured error records held by the error log buffer."""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class CapturedError(BaseModel):
    """A single intercepted error. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    time: str
    type: Literal["console.error", "uncaught"]
    message: str | None = None
    filename: str | None = None
    lineno: int | None = None
    colno: int | None = None
    stack: str | None = None
    args: tuple[str, ...] = ()
    request_id: str | None = None
