"""HTTP transport capability for rendezvous relays."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final, Protocol

import aiohttp

from .errors import RendezvousConnectionError, RendezvousTimeout

DEFAULT_REQUEST_TIMEOUT: Final = 30.0


def _decode_body(raw: bytes, charset: str | None) -> str:
    """Decode a body leniently; control updates may carry arbitrary bytes."""
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class RendezvousResponse:
    """Relay response with its body already read."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    url: str | None = None
    body: str = ""

    async def text(self) -> str:
        """Return the response body."""
        return self.body


class FetchFn(Protocol):
    """Transport capability used by a rendezvous session."""

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str] | None = None,
        data: str | bytes | None = None,
    ) -> RendezvousResponse: ...


class RendezvousHttpClient:
    """aiohttp-backed transport for rendezvous relay requests.

    The client can share a caller's ``aiohttp.ClientSession``. Without one it
    creates its own on first use and closes it in :meth:`close`.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str] | None = None,
        data: str | bytes | None = None,
    ) -> RendezvousResponse:
        """Issue a request and read the whole body.

        Raises:
            RendezvousTimeout: If the request times out
            RendezvousConnectionError: If the network request fails
        """
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                headers=dict(headers or {}),
                data=data,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                body = _decode_body(await resp.read(), resp.charset)
                return RendezvousResponse(
                    status=resp.status,
                    headers=resp.headers,
                    url=str(resp.url) if resp.url is not None else None,
                    body=body,
                )
        except TimeoutError as err:
            raise RendezvousTimeout(f"{method} {url} timed out") from err
        except aiohttp.ClientError as err:
            raise RendezvousConnectionError(f"{method} {url} failed") from err

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
