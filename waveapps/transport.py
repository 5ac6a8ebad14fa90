"""Session helpers: bearer-token authentication and a replaying transport."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.auth import AuthBase

logger = logging.getLogger(__name__)


class BearerAuth(AuthBase):
    def __init__(self, access_token: str, token_type: str = "Bearer") -> None:
        self.access_token = access_token
        self.token_type = token_type

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"{self.token_type} {self.access_token}"
        return request


class CachingAdapter(BaseAdapter):
    """Wrap a transport adapter and replay responses per ``"<METHOD> <URL>"``.

    Redirect responses are passed through without being stored. Each instance
    owns its cache, so mount a fresh one per session or test run.
    """

    def __init__(self, adapter: Optional[BaseAdapter] = None) -> None:
        super().__init__()
        self.adapter = adapter if adapter is not None else HTTPAdapter()
        self._cache: Dict[str, requests.Response] = {}

    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        key = f"{request.method} {request.url}"
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Found %r in cache", key)
            return cached

        logger.debug("Not in cache; making round trip for %r", key)
        response = self.adapter.send(request, **kwargs)
        if response.status_code < 300 or response.status_code >= 400:
            # read the body now so the stored response can be replayed
            response.content
            self._cache[key] = response
            logger.debug("Storing in cache: %r", key)
        return response

    def clear(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self.adapter.close()


def authorized_session(
    access_token: str, *, token_type: str = "Bearer", cache: bool = False
) -> requests.Session:
    """A ``requests.Session`` that sends ``Authorization: <type> <token>``.

    With ``cache`` set, the session replays earlier responses for repeated
    requests (see ``CachingAdapter``).
    """
    session = requests.Session()
    session.auth = BearerAuth(access_token, token_type)
    if cache:
        adapter = CachingAdapter()
        session.mount("https://", adapter)
        session.mount("http://", adapter)
    return session
