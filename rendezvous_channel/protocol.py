"""Wire-level helpers for the MSC4108 rendezvous channel.

Header construction for the conditional create/update/read requests,
resolution of the channel location returned by the relay, and parsing of the
relay-declared expiry.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Final

from yarl import URL

_LOGGER = logging.getLogger(__name__)

CONTENT_TYPE: Final = "text/plain"

HEADER_CONTENT_TYPE: Final = "content-type"
HEADER_IF_MATCH: Final = "if-match"
HEADER_IF_NONE_MATCH: Final = "if-none-match"
HEADER_ETAG: Final = "etag"
HEADER_LOCATION: Final = "location"
HEADER_EXPIRES: Final = "expires"

CLIENT_PREFIX_UNSTABLE: Final = "/_matrix/client/unstable"

# Probed in this order; the first advertised feature wins.
MSC3886_FEATURE: Final = "org.matrix.msc3886"
MSC4108_FEATURE: Final = "org.matrix.msc4108"
CREATE_FEATURES: tuple[str, ...] = (MSC3886_FEATURE, MSC4108_FEATURE)


class RendezvousFailureReason(Enum):
    """Reasons a rendezvous session can terminate."""

    USER_DECLINED = "user_declined"
    OTHER_DEVICE_NOT_SIGNED_IN = "other_device_not_signed_in"
    OTHER_DEVICE_ALREADY_SIGNED_IN = "other_device_already_signed_in"
    UNKNOWN = "unknown"
    EXPIRED = "expired"
    USER_CANCELLED = "user_cancelled"
    INVALID_CODE = "invalid_code"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    DATA_MISMATCH = "data_mismatch"
    UNSUPPORTED_TRANSPORT = "unsupported_transport"
    HOMESERVER_LACKS_SUPPORT = "homeserver_lacks_support"


def build_rendezvous_endpoint(base_url: str, feature: str) -> str:
    """Return the channel creation endpoint for an unstable feature."""
    return f"{base_url.rstrip('/')}{CLIENT_PREFIX_UNSTABLE}/{feature}/rendezvous"


def build_write_headers(etag: str | None) -> dict[str, str]:
    """Headers for a create or update request.

    The ``if-match`` precondition is only sent once a version tag is known.
    """
    headers = {HEADER_CONTENT_TYPE: CONTENT_TYPE}
    if etag:
        headers[HEADER_IF_MATCH] = etag
    return headers


def build_read_headers(etag: str | None) -> dict[str, str]:
    """Headers for a conditional poll of the channel."""
    if not etag:
        return {}
    return {HEADER_IF_NONE_MATCH: etag}


def is_payload_content_type(value: str | None) -> bool:
    """Return True when a Content-Type header denotes an opaque text payload."""
    if not value:
        return False
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type == CONTENT_TYPE


def resolve_location(location: str, base_url: str) -> str:
    """Resolve a possibly relative Location header against the request base.

    The base is treated as a directory, so ``https://rz.example/rz`` with a
    location of ``abc`` yields ``https://rz.example/rz/abc``.
    """
    if not base_url.endswith("/"):
        base_url = f"{base_url}/"
    return str(URL(base_url).join(URL(location)))


def parse_expires(value: str | None) -> datetime | None:
    """Parse an HTTP-date Expires header into an aware datetime."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        _LOGGER.debug("Ignoring unparseable expires header: %s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
