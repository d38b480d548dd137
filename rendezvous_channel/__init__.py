"""Client for MSC4108 insecure rendezvous channels."""

__version__ = "0.1.0"

from .discovery import (
    CapabilityProvider,
    HomeserverCapabilities,
    resolve_create_endpoint,
)
from .errors import (
    RendezvousClientError,
    RendezvousConfigError,
    RendezvousConnectionError,
    RendezvousResponseError,
    RendezvousTimeout,
)
from .http import FetchFn, RendezvousHttpClient, RendezvousResponse
from .protocol import RendezvousFailureReason
from .session import RendezvousChannelSession, RendezvousFailureListener

__all__ = [
    "CapabilityProvider",
    "FetchFn",
    "HomeserverCapabilities",
    "RendezvousChannelSession",
    "RendezvousClientError",
    "RendezvousConfigError",
    "RendezvousConnectionError",
    "RendezvousFailureListener",
    "RendezvousFailureReason",
    "RendezvousHttpClient",
    "RendezvousResponse",
    "RendezvousResponseError",
    "RendezvousTimeout",
    "__version__",
    "resolve_create_endpoint",
]
