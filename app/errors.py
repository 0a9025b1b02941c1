"""
app/errors.py

Error taxonomy shared by the ESG pipeline services and the API layer.

Partial failures (a skipped row, field or rule) are not exceptions: they are
logged and reported inside the step result.  Everything raised from here
aborts the step that raised it.
"""

from __future__ import annotations


class PipelineError(Exception):
    """
    Base class for step-level failures with a user-safe message.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class BadRequestError(PipelineError):
    """Raised for unusable configuration: no rules, no field mappings, malformed formulas."""

    status_code = 400


class UnauthorizedError(PipelineError):
    """Raised when the caller's organization cannot be resolved."""

    status_code = 401


class NotFoundError(PipelineError):
    """Raised when a referenced profile or organization does not exist."""

    status_code = 404


class IntegrityViolationError(PipelineError):
    """
    Raised when an audit chain has broken links.

    Chains are never repaired automatically.
    """

    status_code = 409

    def __init__(self, message: str, *, broken_links: list[dict] | None = None) -> None:
        super().__init__(message)
        self.broken_links = list(broken_links or [])


class AuditImmutabilityError(RuntimeError):
    """Raised when code attempts to update or delete a persisted audit entry."""
