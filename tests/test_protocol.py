"""Tests for rendezvous wire helpers."""

from __future__ import annotations

from datetime import UTC, datetime

from rendezvous_channel.protocol import (
    RendezvousFailureReason,
    build_read_headers,
    build_rendezvous_endpoint,
    build_write_headers,
    is_payload_content_type,
    parse_expires,
    resolve_location,
)


class TestHeaders:
    def test_write_headers_without_etag(self):
        assert build_write_headers(None) == {"content-type": "text/plain"}

    def test_write_headers_with_etag(self):
        assert build_write_headers("abc") == {
            "content-type": "text/plain",
            "if-match": "abc",
        }

    def test_read_headers(self):
        assert build_read_headers(None) == {}
        assert build_read_headers("abc") == {"if-none-match": "abc"}


class TestContentType:
    def test_matches_plain_text(self):
        assert is_payload_content_type("text/plain")
        assert is_payload_content_type("Text/Plain; charset=UTF-8")

    def test_rejects_other_types(self):
        assert not is_payload_content_type(None)
        assert not is_payload_content_type("")
        assert not is_payload_content_type("application/json")


class TestResolveLocation:
    def test_relative_to_directory_base(self):
        assert (
            resolve_location("abc", "https://rz.example.org/rz/")
            == "https://rz.example.org/rz/abc"
        )

    def test_base_without_trailing_slash(self):
        assert (
            resolve_location("abc", "https://rz.example.org/rz")
            == "https://rz.example.org/rz/abc"
        )

    def test_absolute_path(self):
        assert (
            resolve_location("/other/abc", "https://rz.example.org/rz")
            == "https://rz.example.org/other/abc"
        )

    def test_absolute_url(self):
        assert (
            resolve_location("https://elsewhere.example/x", "https://rz.example.org/")
            == "https://elsewhere.example/x"
        )


class TestParseExpires:
    def test_http_date(self):
        assert parse_expires("Mon, 19 Oct 2026 12:00:00 GMT") == datetime(
            2026, 10, 19, 12, 0, tzinfo=UTC
        )

    def test_result_is_aware(self):
        parsed = parse_expires("Mon, 19 Oct 2026 12:00:00 -0000")
        assert parsed is not None
        assert parsed.tzinfo is not None

    def test_missing_or_invalid(self):
        assert parse_expires(None) is None
        assert parse_expires("") is None
        assert parse_expires("soon") is None


def test_endpoint_for_feature():
    assert (
        build_rendezvous_endpoint("https://matrix.example.org/", "org.matrix.msc4108")
        == "https://matrix.example.org/_matrix/client/unstable/"
        "org.matrix.msc4108/rendezvous"
    )


def test_failure_reason_values():
    assert RendezvousFailureReason.UNKNOWN.value == "unknown"
    assert RendezvousFailureReason.EXPIRED.value == "expired"
    assert RendezvousFailureReason.USER_DECLINED.value == "user_declined"
