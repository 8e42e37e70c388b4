"""Exceptions raised by the store and the messaging gateway.

Classes:
    ShortLinksError:
        Generic base class for all link shortener exceptions.

    StoreError:
        Raised for unexpected faults inside the store (failure code 3).

    StoreUnavailableError:
        Raised when no pooled connection can be obtained or the backend
        dropped it (failure code 1). Safe to retry later.

    ReplyFailure:
        Raised to a gateway caller when its request failed. Carries the
        typed failure code and a short message.

Example:
    >>> from shortlinks.enums import FailureCode
    >>> raise ReplyFailure(FailureCode.NOT_FOUND, "url not found")
    Traceback (most recent call last):
        ...
    shortlinks.exceptions.ReplyFailure: [4] url not found
"""

from shortlinks.enums import FailureCode

__all__ = ["ReplyFailure", "ShortLinksError", "StoreError", "StoreUnavailableError"]


class ShortLinksError(Exception):
    """Generic base class for link shortener exceptions."""

    pass


class StoreError(ShortLinksError):
    """Exception raised for unexpected faults in the store."""

    pass


class StoreUnavailableError(StoreError):
    """Exception raised when the backend or its connection pool cannot serve a request.

    e.g. pool exhausted, connection refused, connection dropped mid-query.
    """

    pass


class ReplyFailure(ShortLinksError):
    """Failure reply delivered to a gateway caller."""

    def __init__(self, code: FailureCode, message: str) -> None:
        self.code = FailureCode(code)
        self.message = message
        super().__init__(f"[{self.code.value}] {message}")
