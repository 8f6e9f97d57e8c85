"""Data models for decoded request records."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..utils.timestamps import EPOCH, format_millis, parse_started_at_millis

STARTED_AT = "startedAt"
DURATION = "duration"
STATUS = "status"
URL = "url"
CONTENT_LENGTH = "contentLength"
IP = "ip"
USER = "user"
METHOD = "method"
PROTOCOL = "protocol"
REFERRER = "referrer"
REQUEST_ID = "requestId"
USER_AGENT = "userAgent"

RECORD_FIELDS: List[str] = [
    STARTED_AT,
    DURATION,
    STATUS,
    URL,
    CONTENT_LENGTH,
    IP,
    USER,
    METHOD,
    PROTOCOL,
    REFERRER,
    REQUEST_ID,
    USER_AGENT,
]


@dataclass(frozen=True)
class RequestRecord:
    """One decoded access-log entry."""

    started_at: datetime
    duration_ms: int
    method: str = ""
    ip: str = ""
    user: str = ""
    url: str = ""  # JSON encoded path and query
    protocol: str = ""
    status: int = 0
    content_length: int = 0
    referrer: str = ""
    user_agent: str = ""
    request_id: str = ""

    def to_row(self) -> Dict[str, str]:
        """Encode as a CSV row keyed by ``RECORD_FIELDS``."""
        return {
            STARTED_AT: format_millis(self.started_at),
            DURATION: str(self.duration_ms),
            STATUS: str(self.status),
            URL: self.url,
            CONTENT_LENGTH: str(self.content_length),
            IP: self.ip,
            USER: self.user,
            METHOD: self.method,
            PROTOCOL: self.protocol,
            REFERRER: self.referrer,
            REQUEST_ID: self.request_id,
            USER_AGENT: self.user_agent,
        }

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "RequestRecord":
        """Decode a CSV row leniently: unparseable numbers become zero and an
        unparseable ``startedAt`` becomes the epoch."""
        millis = parse_started_at_millis(row.get(STARTED_AT, ""))
        started_at = EPOCH if millis is None else EPOCH + timedelta(milliseconds=millis)
        return cls(
            started_at=started_at,
            duration_ms=_uint(row.get(DURATION)),
            method=row.get(METHOD, ""),
            ip=row.get(IP, ""),
            user=row.get(USER, ""),
            url=row.get(URL, ""),
            protocol=row.get(PROTOCOL, ""),
            status=_uint(row.get(STATUS)),
            content_length=_uint(row.get(CONTENT_LENGTH)),
            referrer=row.get(REFERRER, ""),
            user_agent=row.get(USER_AGENT, ""),
            request_id=row.get(REQUEST_ID, ""),
        )


def _uint(value: Optional[str]) -> int:
    if value and value.isascii() and value.isdigit():
        return int(value)
    return 0
