"""
Error taxonomy for access key resolution.

Every failure raised by the resolver is exactly one of:

- AccessKeyInvalid: the key or the fetched body is malformed
- SessionConfigFetchFailed: the request for a dynamic key could not complete
- SessionConfigError: the key server explicitly declared an error

Wrapped lower-level failures are kept on ``__cause__``.
"""

from typing import Sequence


class AccessKeyError(Exception):
    """Base class for access key resolution failures."""
    pass


class AccessKeyInvalid(AccessKeyError):
    """Raised when an access key or fetched body is structurally invalid."""
    pass


class MissingFieldsError(AccessKeyInvalid):
    """Raised when a server document lacks one or more mandatory fields."""

    def __init__(self, fields: Sequence[str]):
        self.fields = list(fields)
        super().__init__(f"Missing JSON fields: {', '.join(self.fields)}.")


class SessionConfigFetchFailed(AccessKeyError):
    """Raised when fetching a dynamic access key fails at the transport level."""
    pass


class SessionConfigError(AccessKeyError):
    """Raised when the key server returns an explicit error message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
