"""Optional query parameters accepted by LIST and GET operations.

Every field defaults to ``None``, which leaves the parameter out of the query
string so the API default applies. ``False`` is sent as ``false``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, Optional
from urllib.parse import urlencode


def _encode(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class QueryOptions:
    def to_params(self) -> Dict[str, str]:
        return {
            f.name: _encode(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
            if getattr(self, f.name) is not None
        }


def add_options(path: str, options: Optional[QueryOptions]) -> str:
    """Append ``options`` to ``path`` as a query string with sorted keys."""
    if options is None:
        return path
    params = options.to_params()
    if not params:
        return path
    return f"{path}?{urlencode(sorted(params.items()))}"


@dataclass
class PageOptions(QueryOptions):
    page: Optional[int] = None
    page_size: Optional[int] = None


@dataclass
class BusinessListOptions(PageOptions):
    pass


@dataclass
class CustomerListOptions(PageOptions):
    pass


@dataclass
class ProductListOptions(PageOptions):
    # API defaults: active_only=true, embed_accounts=false
    active_only: Optional[bool] = None
    embed_accounts: Optional[bool] = None


@dataclass
class ProductGetOptions(QueryOptions):
    embed_accounts: Optional[bool] = None
