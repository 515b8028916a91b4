"""Domain exceptions for the market assistant core.

All project exceptions inherit from ``MarketAssistantError`` so callers can
catch the full family with a single ``except`` clause when needed.  LLM
transport and schema errors live in :mod:`market_assistant.infrastructure.llm`
and derive from the same base.
"""

from __future__ import annotations

from typing import Any

from .enums import StageName


class MarketAssistantError(Exception):
    """Base exception for all market assistant errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class UnknownRoleError(MarketAssistantError, KeyError):
    """Raised when an analyst role name is not in the catalog.

    This is a programmer error: role names are fixed at startup.
    """

    def __init__(
        self,
        name: str,
        available: tuple[str, ...] = (),
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"Unknown analyst role {name!r}"
        if available:
            message += f"; available: {', '.join(available)}"
        super().__init__(message, details)
        self.name = name
        self.available = available

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class StageFailure(MarketAssistantError):
    """Raised by a selection pipeline stage.

    Always carries which stage failed and the underlying cause (schema
    validation, external screening error, timeout or cancellation).  The
    cause is also chained as ``__cause__`` by the raising stage.
    """

    def __init__(
        self,
        stage: StageName,
        cause: BaseException | None = None,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        if not message:
            message = f"{stage.value} failed"
            if cause is not None:
                message += f": {cause}"
        super().__init__(message, details)
        self.stage = stage
        self.cause = cause


class InvalidRequestError(MarketAssistantError):
    """Raised when a selection request is rejected before the pipeline runs."""

    def __init__(
        self,
        message: str = "Invalid selection request",
        field_name: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field_name = field_name
