"""Request record model and access-log decoding."""

from .decoder import DecodeError, MalformedFields, NotRequestLine, TooFewFields, decode_line
from .models import RECORD_FIELDS, REQUEST_ID, STARTED_AT, DURATION, RequestRecord

__all__ = [
    "DecodeError",
    "MalformedFields",
    "NotRequestLine",
    "TooFewFields",
    "decode_line",
    "RECORD_FIELDS",
    "REQUEST_ID",
    "STARTED_AT",
    "DURATION",
    "RequestRecord",
]
