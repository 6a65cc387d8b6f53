from __future__ import annotations


class ThingsError(Exception):
    """Base class for domain errors raised by services and repositories."""


class ValidationError(ThingsError, ValueError):
    """Input is malformed or misses required fields."""


class InvalidArchive(ValidationError):
    """Uploaded archive bundle has no usable `things` envelope."""


class AccessDenied(ThingsError):
    """Requesting identity is not on the note's access list."""


class NotFound(ThingsError):
    """Requested record does not exist."""


class DuplicateProfile(ThingsError):
    """Directory lookup matched more than one entry."""


class UpstreamUnavailable(ThingsError):
    """Storage or directory collaborator failed."""


class ProbeFailure(ThingsError):
    """A single link probe failed. Never leaves the link classifier."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"probe failed for {url}: {reason}")
        self.url = url
        self.reason = reason
