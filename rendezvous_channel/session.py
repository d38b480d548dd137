"""Client session for an MSC4108 insecure rendezvous channel.

A channel is a single relay-hosted resource that two devices take turns
writing to. One side creates it with a POST and shares its URL out of band;
afterwards both sides replace its contents with conditional PUTs and long-poll
it with conditional GETs. The relay expires the channel on its own schedule.

This is a prototype of an unstable protocol and may change without notice.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Final

import aiohttp

from .discovery import CapabilityProvider, resolve_create_endpoint
from .errors import RendezvousConfigError
from .http import FetchFn, RendezvousHttpClient, RendezvousResponse
from .protocol import (
    HEADER_CONTENT_TYPE,
    HEADER_ETAG,
    HEADER_EXPIRES,
    HEADER_LOCATION,
    RendezvousFailureReason,
    build_read_headers,
    build_write_headers,
    is_payload_content_type,
    parse_expires,
    resolve_location,
)

_LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL: Final = 1.0

RendezvousFailureListener = Callable[
    [RendezvousFailureReason], Awaitable[None] | None
]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RendezvousChannelSession:
    """Send and receive opaque payloads over a rendezvous relay channel.

    Usage:
        async with RendezvousChannelSession(
            client=capabilities,
            fallback_rz_server="https://rz.example.org/",
            on_failure=handle_failure,
        ) as channel:
            await channel.send(offer)
            answer = await channel.receive()

    A session is driven by a single task. ``cancel`` may be called from
    elsewhere; a pending ``receive`` notices it before its next poll.
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        client: CapabilityProvider | None = None,
        fallback_rz_server: str | None = None,
        on_failure: RendezvousFailureListener | None = None,
        fetch_fn: FetchFn | None = None,
        http_session: aiohttp.ClientSession | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize session.

        Args:
            url: Existing channel URL; skips channel creation
            client: Homeserver capability provider used to find the relay
            fallback_rz_server: Creation endpoint used when discovery yields none
            on_failure: Listener notified with the reason on cancellation
            fetch_fn: Transport override, used instead of aiohttp
            http_session: aiohttp session for the default transport
            poll_interval: Delay between polls in ``receive`` (seconds)
            sleep: Coroutine function used to wait between polls
            clock: Returns the current aware time, for expiry checks
        """
        self._url = url
        self._client = client
        self._fallback_rz_server = fallback_rz_server
        self.on_failure = on_failure

        self._owned_transport: RendezvousHttpClient | None = None
        if fetch_fn is None:
            self._owned_transport = RendezvousHttpClient(http_session)
            fetch_fn = self._owned_transport
        self._fetch: FetchFn = fetch_fn

        self._poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

        self._etag: str | None = None
        self._expires_at: datetime | None = None
        self._ready = False
        self._cancelled = False
        self._cancel_reason: RendezvousFailureReason | None = None

    async def __aenter__(self) -> RendezvousChannelSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def url(self) -> str | None:
        """Channel URL, once created or supplied."""
        return self._url

    @property
    def etag(self) -> str | None:
        """Last version tag seen from the relay."""
        return self._etag

    @property
    def expires_at(self) -> datetime | None:
        """Relay-declared channel expiry."""
        return self._expires_at

    @property
    def ready(self) -> bool:
        """Whether the channel has been created and not cancelled."""
        return self._ready

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def cancel_reason(self) -> RendezvousFailureReason | None:
        return self._cancel_reason

    async def close(self) -> None:
        """Release the transport this session created, if any."""
        if self._owned_transport is not None:
            await self._owned_transport.close()

    async def send(self, data: str | bytes) -> None:
        """Write ``data`` to the channel, creating the channel on first use.

        Raises:
            RendezvousConfigError: If no creation endpoint is available, or the
                relay does not return the new channel's location
        """
        if self._cancelled:
            return

        method = "PUT" if self._url else "POST"
        uri = self._url or await resolve_create_endpoint(
            self._client, self._fallback_rz_server
        )
        if not uri:
            raise RendezvousConfigError("Invalid rendezvous URI")

        headers = build_write_headers(self._etag)
        _LOGGER.debug(
            "=> %s %s (length %d) if-match: %s", method, uri, len(data), self._etag
        )

        res = await self._fetch(uri, method=method, headers=headers, data=data)
        if res.status == 404:
            await self.cancel(RendezvousFailureReason.UNKNOWN)
            return

        self._etag = res.headers.get(HEADER_ETAG)
        _LOGGER.debug("Received etag: %s", self._etag)

        if method == "POST":
            self._handle_created(res, uri)

    def _handle_created(self, res: RendezvousResponse, uri: str) -> None:
        location = res.headers.get(HEADER_LOCATION)
        if not location:
            raise RendezvousConfigError("No rendezvous URI given")

        expires = parse_expires(res.headers.get(HEADER_EXPIRES))
        if expires is not None:
            self._expires_at = expires

        # Transports that do not track redirects leave url unset
        base_url = res.url or uri
        self._url = resolve_location(location, base_url)
        self._ready = True
        _LOGGER.info("Rendezvous channel created at %s", self._url)

    async def receive(self) -> str | None:
        """Wait for the next payload written by the other party.

        Returns:
            The payload, or None if the session was cancelled while waiting

        Raises:
            RendezvousConfigError: If the channel does not exist yet
        """
        if not self._url:
            raise RendezvousConfigError("Rendezvous not set up")

        while True:
            if self._cancelled:
                return None

            headers = build_read_headers(self._etag)
            _LOGGER.debug("=> GET %s if-none-match: %s", self._url, self._etag)
            poll = await self._fetch(self._url, method="GET", headers=headers)

            if poll.status == 404:
                await self.cancel(RendezvousFailureReason.UNKNOWN)
                return None

            # The relay expires the channel; no client-side deadline here
            if not is_payload_content_type(poll.headers.get(HEADER_CONTENT_TYPE)):
                self._etag = poll.headers.get(HEADER_ETAG)
            elif poll.status == 200:
                self._etag = poll.headers.get(HEADER_ETAG)
                text = await poll.text()
                _LOGGER.debug(
                    "Received payload of length %d with etag %s", len(text), self._etag
                )
                return text

            await self._sleep(self._poll_interval)

    async def cancel(self, reason: RendezvousFailureReason) -> None:
        """Terminate the session and notify the failure listener.

        Only the first call has any effect. A user decline also deletes the
        channel on the relay, ignoring any failure to do so.
        """
        if self._cancelled:
            _LOGGER.debug(
                "Ignoring cancel(%s): already cancelled (%s)",
                reason.value,
                self._cancel_reason.value if self._cancel_reason else None,
            )
            return

        if (
            reason is RendezvousFailureReason.UNKNOWN
            and self._expires_at is not None
            and self._expires_at < self._clock()
        ):
            reason = RendezvousFailureReason.EXPIRED

        _LOGGER.info("Rendezvous cancelled: %s", reason.value)
        self._cancelled = True
        self._cancel_reason = reason
        self._ready = False

        try:
            if self.on_failure:
                result = self.on_failure(reason)
                if inspect.isawaitable(result):
                    await result
        finally:
            if self._url and reason is RendezvousFailureReason.USER_DECLINED:
                await self._delete_channel(self._url)

    async def _delete_channel(self, url: str) -> None:
        try:
            await self._fetch(url, method="DELETE")
        except Exception as err:  # Relay may be unreachable
            _LOGGER.warning("Failed to delete rendezvous channel: %s", err)
