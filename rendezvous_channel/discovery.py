"""Homeserver capability discovery for rendezvous channel creation."""

from __future__ import annotations

import logging
from typing import Any, Final, Protocol

import aiohttp

from .errors import (
    RendezvousConnectionError,
    RendezvousResponseError,
    RendezvousTimeout,
)
from .protocol import CREATE_FEATURES, build_rendezvous_endpoint

_LOGGER = logging.getLogger(__name__)

DEFAULT_DISCOVERY_TIMEOUT: Final = 10.0


class CapabilityProvider(Protocol):
    """Source of unstable feature flags for a homeserver."""

    base_url: str

    async def does_server_support_unstable_feature(self, feature: str) -> bool: ...


class HomeserverCapabilities:
    """Reads ``unstable_features`` from a homeserver's versions endpoint."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        *,
        timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
    ) -> None:
        self._session = session
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._unstable_features: dict[str, bool] | None = None

    async def fetch_unstable_features(self) -> dict[str, bool]:
        """Fetch and cache the unstable feature map.

        Raises:
            RendezvousResponseError: If the homeserver returns non-200 status
            RendezvousTimeout: If the request times out
            RendezvousConnectionError: If the network request fails
        """
        if self._unstable_features is not None:
            return self._unstable_features

        url = f"{self.base_url}/_matrix/client/versions"
        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    raise RendezvousResponseError(
                        resp.status, "Versions request failed with non-200 response"
                    )
                data: dict[str, Any] = await resp.json()
        except TimeoutError as err:
            raise RendezvousTimeout("Versions request timed out") from err
        except aiohttp.ClientError as err:
            raise RendezvousConnectionError("Versions request failed") from err

        features = data.get("unstable_features") or {}
        self._unstable_features = {
            str(name): value is True for name, value in features.items()
        }
        return self._unstable_features

    async def does_server_support_unstable_feature(self, feature: str) -> bool:
        """Return True when the homeserver advertises ``feature`` as enabled."""
        features = await self.fetch_unstable_features()
        return features.get(feature, False)


async def resolve_create_endpoint(
    client: CapabilityProvider | None, fallback: str | None
) -> str | None:
    """Pick the endpoint used to create a new rendezvous channel.

    The homeserver's own rendezvous endpoint is preferred. Discovery failures
    are logged and treated as the feature being absent.
    """
    if client is not None:
        try:
            for feature in CREATE_FEATURES:
                if await client.does_server_support_unstable_feature(feature):
                    return build_rendezvous_endpoint(client.base_url, feature)
        except Exception as err:  # Providers may raise anything
            _LOGGER.warning("Failed to get unstable features: %s", err)

    return fallback
