"""
Unit tests for the access-log line decoder.
"""

import json

import pytest
from inflight.records import (
    RECORD_FIELDS,
    MalformedFields,
    NotRequestLine,
    RequestRecord,
    TooFewFields,
    decode_line,
)
from inflight.records.decoder import adjust_start_nanos, encode_url
from inflight.utils.durations import MILLISECOND, SECOND


def make_line(
    end="2016/01/03 23:39:23",
    start="03/Jan/2016:23:39:22 +0000",
    url="/query?db=sphere&q=show+databases",
    user_agent="curl/7.35.0",
    request_id="id-1",
    duration="10.5ms",
):
    return (
        f"[http] {end} 172.17.0.13 - admin [{start}] GET {url} HTTP/1.1 200 365 "
        f"https://grafana.example.com/dashboard/db/fleet-view {user_agent} {request_id} {duration}"
    )


class TestDecodeLine:
    """Test decoding of complete lines."""

    def test_fields(self):
        """Test that every token lands in the right field."""
        record = decode_line(make_line(user_agent="Mozilla/5.0 (X11; Linux x86_64)"))
        assert record.ip == "172.17.0.13"
        assert record.user == "admin"
        assert record.method == "GET"
        assert record.protocol == "HTTP/1.1"
        assert record.status == 200
        assert record.content_length == 365
        assert record.referrer == "https://grafana.example.com/dashboard/db/fleet-view"
        assert record.user_agent == "Mozilla/5.0 (X11; Linux x86_64)"
        assert record.request_id == "id-1"
        assert record.duration_ms == 10

    def test_start_shift_is_capped(self):
        """A short request is moved half of the capped 999ms slack forward."""
        record = decode_line(make_line(duration="10.5ms"))
        assert record.to_row()["startedAt"] == "2016-01-03 23:39:22.499"

    def test_start_shift_uses_remaining_slack(self):
        """end 23:39:23.999 - start 23:39:22 - 1500ms leaves 499ms, half is added."""
        record = decode_line(make_line(duration="1500ms"))
        assert record.to_row()["startedAt"] == "2016-01-03 23:39:22.249"
        assert record.duration_ms == 1500

    def test_no_shift_when_duration_exceeds_gap(self):
        """Test no shift when duration exceeds gap."""
        record = decode_line(make_line(duration="2.5s"))
        assert record.to_row()["startedAt"] == "2016-01-03 23:39:22.000"

    def test_zero_duration_clamped(self):
        """Test that a zero duration becomes one millisecond."""
        record = decode_line(make_line(duration="0s"))
        assert record.duration_ms == 1

    def test_start_keeps_logged_offset(self):
        """The start time is rendered in the offset it was logged with."""
        record = decode_line(
            make_line(end="2016/01/03 22:39:23", start="03/Jan/2016:23:39:22 +0100", duration="5s")
        )
        assert record.to_row()["startedAt"] == "2016-01-03 23:39:22.000"

    def test_row_has_all_fields(self):
        """Test row has all fields."""
        row = decode_line(make_line()).to_row()
        assert list(row) == RECORD_FIELDS

    def test_row_round_trip_keeps_identity_fields(self):
        """Test row round trip keeps identity fields."""
        record = decode_line(make_line())
        decoded = RequestRecord.from_row(record.to_row())
        assert decoded.request_id == record.request_id
        assert decoded.duration_ms == record.duration_ms
        assert decoded.status == 200


class TestDecodeErrors:
    """Test error classification."""

    def test_not_http(self):
        """Test not http."""
        with pytest.raises(NotRequestLine):
            decode_line("[query] 2016/01/03 23:39:23 SELECT 1")

    def test_too_few_tokens(self):
        """Test too few tokens."""
        with pytest.raises(TooFewFields) as exc_info:
            decode_line("[http] 2016/01/03 23:39:23 172.17.0.13")
        assert isinstance(exc_info.value, MalformedFields)

    def test_bad_status(self):
        """Test a non-numeric status."""
        line = make_line().replace(" 200 ", " OK ")
        with pytest.raises(MalformedFields):
            decode_line(line)

    def test_status_out_of_range(self):
        """Test status out of range."""
        line = make_line().replace(" 200 ", " 70000 ")
        with pytest.raises(MalformedFields):
            decode_line(line)

    def test_bad_duration(self):
        """Test an invalid duration."""
        with pytest.raises(MalformedFields):
            decode_line(make_line(duration="fast"))

    def test_bad_timestamp(self):
        """Test an invalid start timestamp."""
        with pytest.raises(MalformedFields):
            decode_line(make_line(start="03/Foo/2016:23:39:22 +0000"))

    def test_bad_path_escape(self):
        """Test an invalid percent escape in the path."""
        with pytest.raises(MalformedFields):
            decode_line(make_line(url="/query%zz"))


class TestAdjustStart:
    """Test the start time midpoint adjustment directly."""

    def test_cap(self):
        """Test that the shift is capped at 999ms."""
        start = 100 * SECOND
        end = 101 * SECOND
        assert adjust_start_nanos(start, end, MILLISECOND) == start + 999 * MILLISECOND // 2

    def test_integer_halving(self):
        """Test integer halving."""
        start = 100 * SECOND
        end = 101 * SECOND
        duration = 1500 * MILLISECOND + 1
        # delta = 1999ms - 1500ms - 1ns
        assert adjust_start_nanos(start, end, duration) == start + (499 * MILLISECOND - 1) // 2


class TestEncodeUrl:
    """Test URL to JSON encoding."""

    def test_path_and_query(self):
        """Test path and query."""
        encoded = json.loads(encode_url("/query?db=sphere&q=select+1&u=admin"))
        assert encoded == {"path": "/query", "query": {"db": "sphere", "q": "select 1", "u": "admin"}}

    def test_repeated_keys_become_lists(self):
        """Test repeated keys become lists."""
        encoded = json.loads(encode_url("/write?tag=a&tag=b&empty="))
        assert encoded["query"] == {"tag": ["a", "b"], "empty": ""}

    def test_unparseable_query_kept_raw(self):
        """Test unparseable query kept raw."""
        encoded = json.loads(encode_url("/q?a=1;b=2"))
        assert encoded == {"path": "/q", "rawQuery": "a=1;b=2"}

    def test_fragment_and_html_escaping(self):
        """Test fragment and html escaping."""
        text = encode_url("/p%3Cx%3E?a=%26#frag")
        assert "<" not in text and "&" not in text
        assert "\\u003c" in text
        assert json.loads(text) == {"path": "/p<x>", "query": {"a": "&"}, "fragment": "frag"}

    def test_compact_sorted_output(self):
        """Test compact sorted output."""
        assert encode_url("/ping") == '{"path":"/ping","query":{}}'
