"""Tests for failure types and user-facing messages."""

import pytest

from raidcue import DecodeFailure, HttpStatusFailure, NetworkFailure, user_message


class TestUserMessage:
    @pytest.mark.parametrize(
        "status, expected",
        [
            (401, "Not authorized."),
            (404, "Requested resource not found."),
            (429, "Too many requests. Slow down a bit."),
            (500, "Server error. Please try again later."),
        ],
    )
    def test_known_statuses(self, status, expected):
        err = HttpStatusFailure(message=f"Request failed {status}", status=status)
        assert user_message(err) == expected

    def test_other_status_uses_failure_message(self):
        err = HttpStatusFailure(message="Request failed 418", status=418)
        assert user_message(err) == "Request failed 418"

    def test_status_without_message(self):
        assert user_message(HttpStatusFailure(message="", status=418)) == "HTTP error 418"

    def test_network_failure(self):
        err = NetworkFailure(message="Request cancelled", cancelled=True)
        assert user_message(err) == "Request cancelled"
        assert err.status is None

    def test_plain_exception_and_fallbacks(self):
        assert user_message(RuntimeError("boom")) == "boom"
        assert user_message(RuntimeError()) == "RuntimeError error"
        assert user_message("already text") == "already text"
        assert user_message(None) == "Unknown error"


class TestFailureShape:
    def test_str_is_message(self):
        err = DecodeFailure(message="Response was not valid JSON", url="https://x.test/a", status=200)
        assert str(err) == "Response was not valid JSON"
        assert err.kind == "decode"

    def test_kinds_are_distinct(self):
        kinds = {
            HttpStatusFailure(message="a").kind,
            NetworkFailure(message="b").kind,
            DecodeFailure(message="c").kind,
        }
        assert kinds == {"http_status", "network", "decode"}

    def test_failures_compare_by_identity(self):
        first = HttpStatusFailure(message="Request failed 500", status=500)
        second = HttpStatusFailure(message="Request failed 500", status=500)

        assert first != second
        assert first == first
        assert len({first, second, NetworkFailure(message="x", timed_out=True)}) == 3
