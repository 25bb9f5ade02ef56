"""
Exceptions raised by the archive checker.

Probe functions (live checks, Wayback lookups) never raise; they fold failures
into status strings. These exceptions cover the places where a caller has to
decide what to do: the citation source and the Save Page Now client.
"""

from http.client import responses as HTTP_REASONS


# Maximum number of payload characters kept for diagnostics
PAYLOAD_SNIPPET_LENGTH = 240


def truncate_payload(payload: str, limit: int = PAYLOAD_SNIPPET_LENGTH) -> str:
    """Trim an upstream response body to a short diagnostic snippet."""
    if len(payload) > limit:
        return payload[:limit] + "..."
    return payload


class WikiArchiveCheckerError(Exception):
    """Base exception for project-level errors."""


class CitationSourceError(WikiArchiveCheckerError):
    """
    Raised when the wikitext (or external links list) for a page cannot be fetched or decoded.

    Args:
        message: Short description of the failing step
        status: HTTP status of the upstream response, 0 if none was received
        payload: Raw response body; only a snippet is kept
    """

    def __init__(self, message: str, status: int = 0, payload: str = ""):
        self.message = message
        self.status = status
        self.payload = truncate_payload(payload)
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message]
        if self.status:
            parts.append(HTTP_REASONS.get(self.status, str(self.status)))
        if self.payload:
            parts.append(self.payload)
        return ": ".join(parts)


class SnapshotError(WikiArchiveCheckerError):
    """Base class for Save Page Now failures."""


class RateLimitedError(SnapshotError):
    """SPN answered 429."""

    def __init__(self, message: str = "rate limited, try again later"):
        super().__init__(message)


class InvalidCredentialsError(SnapshotError):
    """SPN rejected the access/secret key pair (401 or 403)."""

    def __init__(self, message: str = "invalid credentials"):
        super().__init__(message)


class MissingCredentialsError(SnapshotError):
    """No access/secret key pair was supplied."""

    def __init__(self, message: str = "credentials required"):
        super().__init__(message)


class SnapshotHTTPError(SnapshotError):
    """Any other non-200 answer from the SPN submission endpoint."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"SPN error: HTTP {status}")


class InvalidResponseError(SnapshotError):
    """The SPN status endpoint returned something that is not a JSON object."""

    def __init__(self, message: str = "invalid response from SPN"):
        super().__init__(message)


class RateLimitWaitCancelled(SnapshotError):
    """The caller cancelled while waiting for the submission rate limiter."""

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"rate limit wait cancelled: {reason}")
