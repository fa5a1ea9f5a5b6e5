"""
Error taxonomy for provider calls.

Every upstream failure is a ProviderError; the subclass tells callers which
stage broke. Routes map all of them to 502, the aggregator turns them into
user-facing messages.
"""
from typing import Any, List, Optional


class ProviderError(Exception):
    """An upstream calculator could not produce a usable result."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
        issues: Optional[List[Any]] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code
        self.details = details
        self.issues = issues

    def to_response_body(self) -> dict:
        body = {"error": self.message}
        if self.status_code is not None:
            body["status"] = self.status_code
        if self.details:
            body["details"] = self.details
        if self.issues:
            body["issues"] = self.issues
        return body


class UpstreamUnreachableError(ProviderError):
    """Network failure before any response arrived."""


class UpstreamStatusError(ProviderError):
    """Provider answered with a non-2xx status."""


class UpstreamShapeError(ProviderError):
    """Provider answered, but not in the shape we parse."""


class ProfileIncompleteError(Exception):
    """Profile cannot produce payloads. Carries the message shown to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def to_friendly_error(label: str, error: BaseException) -> str:
    if isinstance(error, UpstreamUnreachableError):
        return f"{label} is unreachable right now."
    if isinstance(error, ProviderError):
        return error.message
    return f"{label} is unavailable right now."


def format_validation_issues(exc) -> List[dict]:
    """Flatten a pydantic ValidationError into field-level issues."""
    issues = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        issues.append({
            "field": ".".join(loc) if loc else "form",
            "message": error.get("msg", "Invalid value"),
        })
    return issues
