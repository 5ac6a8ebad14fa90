"""Request/response plumbing shared by every Wave resource service."""

from __future__ import annotations

import json
import logging
import platform
import re
from typing import Any, Optional, Tuple
from urllib.parse import parse_qs, urljoin, urlsplit

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

from waveapps import __version__
from waveapps.errors import DecodeError, ErrorResponse, InvalidURLError, SerializationError
from waveapps.fields import WaveModel
from waveapps.services import (
    AccountsService,
    BusinessesService,
    CountriesService,
    CurrenciesService,
    CustomersService,
    ProductsService,
    UsersService,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.waveapps.com/"
USER_AGENT = (
    f"waveapps/{__version__} "
    f"(Python {platform.python_version()}; {platform.system().lower()}/{platform.machine()})"
)

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")


def parse_relative(path: str) -> str:
    """Validate ``path`` as a relative URL reference and return it unchanged.

    ``urljoin`` accepts anything, so the checks that would make a strict URL
    parser fail are done here before the path reaches the base URL.
    """
    match = _BAD_ESCAPE.search(path)
    if match:
        raise InvalidURLError(path, f"invalid URL escape {path[match.start():match.start() + 3]!r}")
    if _CONTROL.search(path):
        raise InvalidURLError(path, "invalid control character in URL")
    first_segment = path.split("?", 1)[0].split("/", 1)[0]
    if ":" in first_segment:
        raise InvalidURLError(path, "first path segment in URL cannot contain colon")
    return path


class Response:
    """Raw ``requests.Response`` plus pagination values derived from the body.

    Unknown attributes are looked up on the raw response, so ``status_code``,
    ``headers``, ``content`` and ``json()`` work directly on this object.
    """

    def __init__(self, raw: requests.Response) -> None:
        self.raw = raw
        self.current_page = 0
        self.next_page = 0
        self.previous_page = 0
        self.total_count = 0

    def __getattr__(self, name: str) -> Any:
        if name == "raw":
            raise AttributeError(name)
        return getattr(self.raw, name)

    def __repr__(self) -> str:
        return f"<Response [{self.raw.status_code}] page={self.current_page}>"

    def populate_page_values(
        self, next_url: Optional[str], previous_url: Optional[str], total_count: int
    ) -> None:
        self.total_count = total_count
        if next_url is not None:
            self.next_page = _page_number(next_url)
        if previous_url is not None:
            self.previous_page = _page_number(previous_url)

        if next_url is None and previous_url is None:
            self.current_page = 1
        elif previous_url is not None:
            # also covers both cursors being present
            self.current_page = self.previous_page + 1
        else:
            self.current_page = self.next_page - 1


def _page_number(cursor: str) -> int:
    try:
        query = urlsplit(cursor).query
    except ValueError as exc:
        raise InvalidURLError(cursor, str(exc)) from exc
    values = parse_qs(query).get("page")
    if not values:
        return 0
    try:
        return int(values[0])
    except ValueError:
        return 0


class _PageEnvelope(BaseModel):
    next: Optional[str] = None
    previous: Optional[str] = None
    total_count: Optional[int] = None


def check_response(raw: requests.Response) -> None:
    """Raise ``ErrorResponse`` unless the status code is in the 2xx range."""
    if 200 <= raw.status_code <= 299:
        return
    raise ErrorResponse(raw)


class Client:
    """Entry point to the Wave API.

    ``session`` must already authenticate its requests (see
    ``waveapps.transport.authorized_session``); when omitted a plain
    ``requests.Session`` is used, which only reaches public endpoints.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = USER_AGENT,
        timeout: Optional[float] = None,
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout

        self.accounts = AccountsService(self)
        self.businesses = BusinessesService(self)
        self.countries = CountriesService(self)
        self.currencies = CurrenciesService(self)
        self.customers = CustomersService(self)
        self.products = ProductsService(self)
        self.users = UsersService(self)

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, value: str) -> None:
        if not value.endswith("/"):
            raise ValueError(f"base URL must end with '/': {value!r}")
        self._base_url = value

    def new_request(
        self, method: str, path: str, body: Any = None, *, partial: bool = False
    ) -> requests.PreparedRequest:
        """Build a request for ``path`` resolved against ``base_url``.

        ``path`` is relative and has no leading slash. A ``WaveModel`` body
        is sent as its complete payload, or only its present fields when
        ``partial`` is set; anything else goes through ``json``.
        """
        url = urljoin(self.base_url, parse_relative(path))
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        data = None
        if body is not None:
            data = _encode_body(body, partial)
            headers["Content-Type"] = "application/json"
        request = requests.Request(method, url, headers=headers, data=data)
        return self.session.prepare_request(request)

    def do(
        self,
        request: requests.PreparedRequest,
        target: Optional[TypeAdapter] = None,
        *,
        paginated: bool = False,
    ) -> Tuple[Any, Response]:
        """Send ``request`` and decode the body with ``target``.

        Returns ``(decoded, response)``; ``decoded`` is ``None`` when no
        target is given. When ``paginated`` is set the body must also be a
        list envelope, from which the page numbers are derived.
        """
        settings = self.session.merge_environment_settings(request.url, {}, None, None, None)
        logger.debug("%s %s", request.method, request.url)
        raw = self.session.send(request, timeout=self.timeout, **settings)
        logger.debug("%s %s -> %s", request.method, request.url, raw.status_code)

        response = Response(raw)
        check_response(raw)

        decoded = None
        if target is not None:
            decoded = _decode(raw, target)
        if paginated:
            envelope = _decode(raw, TypeAdapter(_PageEnvelope))
            response.populate_page_values(envelope.next, envelope.previous, envelope.total_count or 0)
            logger.debug(
                "page %d (next=%d, previous=%d, total=%d)",
                response.current_page,
                response.next_page,
                response.previous_page,
                response.total_count,
            )
        return decoded, response


def _encode_body(body: Any, partial: bool) -> bytes:
    try:
        if isinstance(body, WaveModel):
            payload = body.partial_payload() if partial else body.complete_payload()
        else:
            payload = body
        return json.dumps(payload).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"cannot encode request body: {exc}") from exc


def _decode(raw: requests.Response, target: TypeAdapter) -> Any:
    try:
        return target.validate_json(raw.content)
    except ValidationError as exc:
        raise DecodeError(f"cannot decode response from {raw.url}: {exc}", raw) from exc
