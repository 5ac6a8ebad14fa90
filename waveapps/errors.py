"""Exceptions raised by the Wave client.

Transport failures (DNS, connection refused, timeouts, TLS) are not wrapped:
they surface as the ``requests.RequestException`` raised by the session.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import requests


class WaveError(Exception):
    """Base class for every error raised by this package."""


class InvalidURLError(WaveError, ValueError):
    """A resource path could not be parsed as a relative URL reference."""

    def __init__(self, url: str, reason: str, op: str = "parse") -> None:
        self.op = op
        self.url = url
        self.reason = reason
        super().__init__(f"{op} {url}: {reason}")


class SerializationError(WaveError, ValueError):
    """A request body could not be encoded as JSON."""


class ParseError(WaveError, ValueError):
    """A timestamp did not match the expected wire format."""


class RangeError(WaveError, ValueError):
    """A timestamp cannot be represented on the wire."""


class DecodeError(WaveError, ValueError):
    """A successful response body did not decode into the expected shape."""

    def __init__(self, message: str, response: Optional[requests.Response] = None) -> None:
        self.response = response
        super().__init__(message)


class ErrorResponse(WaveError):
    """The API answered with a status outside the 2xx range.

    The raw response is kept on ``response`` with its body already buffered,
    so ``body``/``response.text`` can be read again after the fact. ``message``
    comes from an ``{"error": {"message": ...}}`` body and is empty when the
    body has any other shape.
    """

    def __init__(self, response: requests.Response) -> None:
        self.response = response
        self.message = _error_message(response.content)
        super().__init__(str(self))

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def body(self) -> bytes:
        return self.response.content

    def __str__(self) -> str:
        request = self.response.request
        method = request.method if request is not None else ""
        url = request.url if request is not None else self.response.url
        return f"{method} {url}: {self.response.status_code} {self.message}"


def _error_message(content: bytes) -> str:
    if not content:
        return ""
    try:
        payload: Any = json.loads(content)
    except ValueError:
        return ""
    if not isinstance(payload, dict):
        return ""
    error = payload.get("error")
    if not isinstance(error, dict):
        return ""
    message = error.get("message")
    return message if isinstance(message, str) else ""
