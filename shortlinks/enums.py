"""Shared enums for the link shortener.

This module defines all status, state and code enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import IntEnum, StrEnum

__all__ = ["Address", "FailureCode", "HealthStatus", "RequestState", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def from_str(cls, value: str) -> "HealthStatus":
        """Safely parse from string, falling back to UNHEALTHY for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNHEALTHY


class Address(StrEnum):
    """Gateway addresses a request can be sent to."""

    FIND_BY_ID = "shortlinks.persistence.find_by_id"
    SAVE = "shortlinks.persistence.save"


class FailureCode(IntEnum):
    """Typed failure codes carried by gateway failure replies."""

    RESOURCE_UNAVAILABLE = 1
    INVALID_REQUEST = 2
    INTERNAL_ERROR = 3
    NOT_FOUND = 4


class RequestState(StrEnum):
    """Lifecycle of a single gateway request."""

    RECEIVED = "received"
    VALIDATED = "validated"
    EXECUTING = "executing"
    REPLIED = "replied"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.REPLIED, RequestState.FAILED)


class RequestStatus(StrEnum):
    """Request outcome values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    ERROR = "error"

    @classmethod
    def from_code(cls, code: FailureCode) -> "RequestStatus":
        return {
            FailureCode.RESOURCE_UNAVAILABLE: cls.UNAVAILABLE,
            FailureCode.INVALID_REQUEST: cls.VALIDATION_ERROR,
            FailureCode.INTERNAL_ERROR: cls.ERROR,
            FailureCode.NOT_FOUND: cls.NOT_FOUND,
        }[code]
