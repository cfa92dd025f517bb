"""Domain exceptions for the generation pipeline and cast management.

Every error carries the HTTP status the API layer answers with. Only
``AccountingError`` is never surfaced to callers: the orchestrator logs it
after an artifact has already been persisted.
"""

from __future__ import annotations

from typing import Any


class StudioError(RuntimeError):
    """Base class for errors that map to a structured error response."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        """Return the ``{"status": "error", ...}`` body for this error."""
        return {"status": "error", "message": self.message}


class ValidationError(StudioError):
    """Missing or malformed identifiers or content."""

    status_code = 400


class NotFoundError(StudioError):
    """Project, studio, chapter, block, cast member or allocation is absent."""

    status_code = 404


class InsufficientCreditsError(StudioError):
    """Available credits do not cover the estimated cost."""

    status_code = 402

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Insufficient credits. Required: {required}, Available: {available}")
        self.required = required
        self.available = available

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update({"required": self.required, "available": self.available})
        return payload


class UpstreamSynthesisError(StudioError):
    """The text-to-speech provider failed or answered with a non-success status."""

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        provider_status: int | None = None,
        node_index: int | None = None,
    ) -> None:
        # Provider 4xx answers (bad voice id, quota) are passed through as-is.
        status = provider_status if provider_status and 400 <= provider_status < 500 else None
        super().__init__(message, status_code=status)
        self.provider_status = provider_status
        self.node_index = node_index

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.node_index is not None:
            payload["node_index"] = self.node_index
        if self.provider_status is not None:
            payload["provider_status"] = self.provider_status
        return payload


class SnapshotUnavailableError(UpstreamSynthesisError):
    """No snapshot appeared after a conversion within the polling budget."""

    status_code = 504


class PersistenceError(StudioError):
    """Storage upload or document write failed."""

    status_code = 500


class AccountingError(StudioError):
    """A credit ledger update failed."""

    status_code = 500
