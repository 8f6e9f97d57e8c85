"""Decoder for InfluxDB ``[http]`` access-log lines.

Example line (wrapped)::

    [http] 2016/01/03 23:39:23 172.17.0.13 - admin [03/Jan/2016:23:39:22 +0000]
    GET /query?db=sphere&q=show+databases HTTP/1.1 200 365
    https://grafana.example.com/dashboard/db/fleet-view Mozilla/5.0 (X11)
    377d9379-b273-11e5-bdcd-000000000000 892.850592ms

The first timestamp is when the request finished (second granularity, UTC),
the bracketed one when it started.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Union
from urllib.parse import parse_qsl, unquote, urlsplit

from ..utils.durations import MILLISECOND, SECOND, parse_go_duration
from ..utils.timestamps import datetime_from_nanos, datetime_to_nanos
from .models import RequestRecord

logger = logging.getLogger(__name__)

LINE_PREFIX = "[http]"
MIN_TOKENS = 17
LOG_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"
LOG_TIMESTAMP_FORMAT_2 = "%d/%b/%Y:%H:%M:%S %z"

# cap on how far the start time may be shifted towards the logged end
MAX_START_SHIFT = 999 * MILLISECOND

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class DecodeError(ValueError):
    """A line could not be decoded into a request record."""
    pass


class NotRequestLine(DecodeError):
    """The line is not an HTTP access-log entry."""

    def __init__(self, message: str = "not an http record"):
        super().__init__(message)


class MalformedFields(DecodeError):
    """An HTTP access-log entry with fields that could not be parsed."""
    pass


class TooFewFields(MalformedFields):
    """An HTTP access-log entry with fewer tokens than the format requires."""

    def __init__(self, count: int):
        super().__init__(f"invalid number of tokens: {count}")
        self.count = count


def decode_line(line: str) -> RequestRecord:
    """Decode one access-log line.

    Raises:
        NotRequestLine: if the line does not start with ``[http]``
        TooFewFields: if the line has fewer than 17 tokens
        MalformedFields: if any field fails to parse
    """
    if not line.startswith(LINE_PREFIX):
        raise NotRequestLine()
    tokens = line.split(" ")
    ntokens = len(tokens)
    if ntokens < MIN_TOKENS:
        raise TooFewFields(ntokens)

    end_timestamp = _parse_time(tokens[1] + " " + tokens[2], LOG_TIMESTAMP_FORMAT)
    end_timestamp = end_timestamp.replace(tzinfo=timezone.utc)
    start_timestamp = _parse_time(
        (tokens[6] + " " + tokens[7]).strip("[]"), LOG_TIMESTAMP_FORMAT_2
    )

    ip = tokens[3]
    user = tokens[5]
    method = tokens[8]
    url = encode_url(tokens[9])
    protocol = tokens[10]
    status = _parse_uint(tokens[11], 16, "status")
    content_length = _parse_uint(tokens[12], 32, "content length")
    referrer = tokens[13]
    user_agent = " ".join(tokens[14:ntokens - 2])
    request_id = tokens[ntokens - 2]

    try:
        duration = parse_go_duration(tokens[ntokens - 1])
    except ValueError as e:
        raise MalformedFields(str(e)) from e
    if duration < MILLISECOND:
        duration = MILLISECOND

    start_nanos = adjust_start_nanos(
        datetime_to_nanos(start_timestamp), datetime_to_nanos(end_timestamp), duration
    )

    return RequestRecord(
        started_at=datetime_from_nanos(start_nanos, start_timestamp.tzinfo),
        duration_ms=duration // MILLISECOND,
        method=method,
        ip=ip,
        user=user,
        url=url,
        protocol=protocol,
        status=status,
        content_length=content_length,
        referrer=referrer,
        user_agent=user_agent,
        request_id=request_id,
    )


def adjust_start_nanos(start: int, end: int, duration: int) -> int:
    """Move the start time towards the midpoint of the unlogged sub-second gap.

    The end time is logged with whole-second precision, so the request really
    finished somewhere in ``[end, end + 1s)``. Half of the slack between that
    bound and the reported duration, capped at 999ms, is added to the start.
    """
    end = _round_to_second(end) + SECOND - MILLISECOND
    delta = end - start - duration
    if delta > MAX_START_SHIFT:
        delta = MAX_START_SHIFT
    if delta > 0:
        start += delta // 2
    return start


def encode_url(raw: str) -> str:
    """Encode a request URL as compact JSON: path, query map and fragment."""
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in raw):
        raise MalformedFields(f"invalid control character in URL {raw!r}")
    parts = urlsplit(raw)
    if _BAD_ESCAPE.search(parts.path) or _BAD_ESCAPE.search(parts.fragment):
        raise MalformedFields(f"invalid URL escape in {raw!r}")

    encoded: Dict[str, Union[str, Dict]] = {"path": unquote(parts.path)}
    query = _parse_query(parts.query)
    if query is None:
        encoded["rawQuery"] = parts.query
    else:
        encoded["query"] = query
    if parts.fragment:
        encoded["fragment"] = unquote(parts.fragment)

    text = json.dumps(encoded, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def _parse_query(raw_query: str):
    if ";" in raw_query or _BAD_ESCAPE.search(raw_query):
        return None
    values: Dict[str, List[str]] = {}
    for key, value in parse_qsl(raw_query, keep_blank_values=True):
        values.setdefault(key, []).append(value)
    return {key: v[0] if len(v) == 1 else v for key, v in values.items()}


def _parse_time(text: str, fmt: str) -> datetime:
    try:
        return datetime.strptime(text, fmt)
    except ValueError as e:
        raise MalformedFields(f"cannot parse timestamp {text!r}: {e}") from e


def _parse_uint(text: str, bits: int, name: str) -> int:
    if not (text.isascii() and text.isdigit()) or int(text) >= 1 << bits:
        raise MalformedFields(f"invalid {name} {text!r}")
    return int(text)


def _round_to_second(nanos: int) -> int:
    # half-way values round up
    return (nanos + SECOND // 2) // SECOND * SECOND
