"""Wire codecs for the two timestamp formats used by the Wave API.

* ``Date``: ``YYYY-MM-DD``
* ``DateTime``: ``YYYY-MM-DDTHH:MM:SS+00:00``

The ``+00:00`` offset is a literal on both sides. Parsing rejects any other
offset, and formatting writes ``+00:00`` whatever ``tzinfo`` the value holds,
so convert to UTC before assigning a timestamp to a record.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator

from waveapps.errors import ParseError, RangeError

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S+00:00"

# strptime accepts single-digit fields; the wire format does not
_DATE_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_DATETIME_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}\+00:00")


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def _check_year(value: Any) -> None:
    year = value.year
    if year < 0 or year >= 10000:
        raise RangeError("year outside of range [0,9999]")


def parse_datetime(text: str) -> datetime:
    """Parse a ``DateTime`` string, surrounding JSON quotes optional."""
    raw = _strip_quotes(text)
    if not _DATETIME_SHAPE.fullmatch(raw):
        raise ParseError(f"cannot parse {raw!r} as {DATETIME_FORMAT}")
    try:
        parsed = datetime.strptime(raw, DATETIME_FORMAT)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"cannot parse {raw!r} as {DATETIME_FORMAT}") from exc
    return parsed.replace(tzinfo=timezone.utc)


def format_datetime(value: datetime) -> str:
    _check_year(value)
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}+00:00"
    )


def parse_date(text: str) -> date:
    """Parse a ``Date`` string, surrounding JSON quotes optional."""
    raw = _strip_quotes(text)
    if not _DATE_SHAPE.fullmatch(raw):
        raise ParseError(f"cannot parse {raw!r} as {DATE_FORMAT}")
    try:
        return datetime.strptime(raw, DATE_FORMAT).date()
    except (TypeError, ValueError) as exc:
        raise ParseError(f"cannot parse {raw!r} as {DATE_FORMAT}") from exc


def format_date(value: date) -> str:
    _check_year(value)
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _validate_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return parse_datetime(value)
    raise ParseError(f"expected a timestamp string, got {type(value).__name__}")


def _validate_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date(value)
    raise ParseError(f"expected a date string, got {type(value).__name__}")


DateTime = Annotated[
    datetime,
    PlainValidator(_validate_datetime),
    PlainSerializer(format_datetime, return_type=str),
]

Date = Annotated[
    date,
    PlainValidator(_validate_date),
    PlainSerializer(format_date, return_type=str),
]
