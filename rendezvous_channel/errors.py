"""Client error types for rendezvous channel interactions."""

from __future__ import annotations


class RendezvousClientError(Exception):
    """Base error for rendezvous client failures."""


class RendezvousConfigError(RendezvousClientError):
    """Session cannot proceed: no channel, or the relay response is unusable."""


class RendezvousTimeout(RendezvousClientError):
    """Timeout while communicating with the relay or homeserver."""


class RendezvousConnectionError(RendezvousClientError):
    """Network connection to the relay or homeserver failed."""


class RendezvousResponseError(RendezvousClientError):
    """HTTP response error from the homeserver."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
