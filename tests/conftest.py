"""Pytest configuration and fixtures for rendezvous_channel tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from multidict import CIMultiDict

from rendezvous_channel import RendezvousResponse


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def fetch_fn() -> AsyncMock:
    """Transport double; set side_effect to a list of RendezvousResponse."""
    return AsyncMock()


@pytest.fixture
def sleep() -> AsyncMock:
    """Zero-delay stand-in for asyncio.sleep that records each wait."""
    return AsyncMock(return_value=None)


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | None = None,
    text_data: str | None = None,
    read_data: bytes | None = None,
    charset: str | None = None,
    headers: dict[str, str] | None = None,
    url: str | None = None,
) -> AsyncMock:
    """Create a configured mock aiohttp response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call
        read_data: Raw body returned from read(); defaults to encoded text_data
        charset: Charset declared by the response
        headers: Response headers
        url: Effective response URL

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.headers = CIMultiDict(headers or {})
    response.url = url

    if json_data is not None:
        response.json.return_value = json_data
    response.text.return_value = text_data if text_data is not None else ""
    if read_data is None:
        read_data = (text_data or "").encode()
    response.read.return_value = read_data
    response.charset = charset

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def relay_response(
    status: int = 200,
    *,
    etag: str | None = None,
    content_type: str | None = None,
    location: str | None = None,
    expires: str | None = None,
    url: str | None = None,
    body: str = "",
) -> RendezvousResponse:
    """Build a RendezvousResponse as a relay would send it."""
    headers: dict[str, str] = {}
    if etag is not None:
        headers["etag"] = etag
    if content_type is not None:
        headers["content-type"] = content_type
    if location is not None:
        headers["location"] = location
    if expires is not None:
        headers["expires"] = expires
    return RendezvousResponse(
        status=status, headers=CIMultiDict(headers), url=url, body=body
    )
