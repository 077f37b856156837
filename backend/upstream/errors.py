"""Failure taxonomy for talking to the Polymarket Gamma API."""

from __future__ import annotations


class UpstreamError(Exception):
    """Base class for upstream failures."""


class UpstreamUnavailable(UpstreamError):
    """Raised when the upstream cannot be reached or answers unusably."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedUpstreamData(UpstreamError):
    """Raised when a record sub-field cannot be decoded."""

    def __init__(self, field_name: str, value: object) -> None:
        super().__init__(f"Could not decode upstream field {field_name!r}")
        self.field_name = field_name
        self.value = value
