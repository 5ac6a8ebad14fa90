#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "requests>=2.32.0",
#     "pydantic>=2.6",
#     "tabulate>=0.9.0",
#     "pyyaml>=6.0.1",
# ]
# ///
"""Wave CLI.

Runs the OAuth2 authorization-code flow, caches the token, and prints one
Wave resource listing selected by flag.

Usage examples:
    ./scripts/wave_cli.py -id <client id> -secret <client secret> -businesses
    ./scripts/wave_cli.py -access <token> -products=<business id> -page 2 -pageSize 10
    ./scripts/wave_cli.py -format yaml -country=CA
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import time
import uuid
import webbrowser
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlparse

import requests
from pydantic import BaseModel
from tabulate import tabulate

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from waveapps import (  # noqa: E402
    DEFAULT_BASE_URL,
    BusinessListOptions,
    Client,
    CustomerListOptions,
    ErrorResponse,
    ProductListOptions,
    WaveError,
)
from waveapps.transport import authorized_session  # noqa: E402

# Prevent BrokenPipeError when piping output
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_DFL)

AUTH_ENDPOINT = "https://api.waveapps.com/oauth2/authorize/"
TOKEN_ENDPOINT = "https://api.waveapps.com/oauth2/token/"
DEFAULT_ENV_FILE = Path(".env")
DEFAULT_CACHE_FILE = Path("cache.json")
DEFAULT_SCOPE = "basic"
DEFAULT_PORT = 9001

logger = logging.getLogger("wave_cli")


@dataclass
class OAuthTokens:
    access_token: str
    refresh_token: str = ""
    expires_at: float = 0.0  # epoch seconds, 0 = unknown
    token_type: str = "Bearer"

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "OAuthTokens":
        expires_in = payload.get("expires_in", 0)
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token", ""),
            expires_at=time.time() + expires_in - 30 if expires_in else 0.0,  # buffer to refresh early
            token_type=payload.get("token_type", "Bearer"),
        )

    def is_expired(self) -> bool:
        return bool(self.expires_at) and time.time() >= self.expires_at


@dataclass
class AppConfig:
    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    redirect_uri: str = ""
    scope: str = DEFAULT_SCOPE
    base_url: str = DEFAULT_BASE_URL
    cache_file: Path = DEFAULT_CACHE_FILE
    debug: bool = False
    request_timeout: float = 30.0


class TokenStore:
    """JSON token cache (the ``-cache`` file)."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Optional[OAuthTokens]:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text())
        except json.JSONDecodeError as exc:
            raise SystemExit(f"Token cache {self.path} is not valid JSON: {exc}") from exc
        if not raw.get("access_token"):
            return None
        return OAuthTokens(
            access_token=raw["access_token"],
            refresh_token=raw.get("refresh_token", ""),
            expires_at=float(raw.get("expires_at", 0.0)),
            token_type=raw.get("token_type", "Bearer"),
        )

    def save(self, tokens: OAuthTokens) -> None:
        payload = {
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
            "expires_at": tokens.expires_at,
            "token_type": tokens.token_type,
        }
        self.path.write_text(json.dumps(payload, indent=2) + "\n")


def load_env_file(path: Path) -> Dict[str, str]:
    env: Dict[str, str] = {}
    if not path.exists():
        return env
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        env[key.strip()] = value.strip()
    return env


def load_config(args: argparse.Namespace) -> AppConfig:
    """Flags win over process environment, which wins over the .env file."""
    env_lookup = {**load_env_file(Path(args.env_file)), **os.environ}

    def pick(flag_value: Optional[str], key: str, default: str = "") -> str:
        if flag_value:
            return flag_value
        return env_lookup.get(key) or default

    timeout_raw = env_lookup.get("WAVE_HTTP_TIMEOUT")
    try:
        timeout = float(args.timeout or timeout_raw or 30.0)
    except ValueError as exc:
        raise SystemExit(f"Invalid WAVE_HTTP_TIMEOUT: {timeout_raw!r}") from exc

    return AppConfig(
        client_id=pick(args.id, "WAVE_CLIENT_ID"),
        client_secret=pick(args.secret, "WAVE_CLIENT_SECRET"),
        access_token=pick(args.access, "WAVE_ACCESS_TOKEN"),
        redirect_uri=pick(None, "WAVE_REDIRECT_URI", f"http://127.0.0.1:{args.port}/"),
        scope=pick(args.scope, "WAVE_SCOPE", DEFAULT_SCOPE),
        base_url=pick(args.base_url, "WAVE_BASE_URL", DEFAULT_BASE_URL),
        cache_file=Path(args.cache),
        debug=args.debug,
        request_timeout=timeout,
    )


def build_auth_url(config: AppConfig, state: str) -> str:
    params = {
        "response_type": "code",
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "scope": config.scope,
        "state": state,
    }
    return f"{AUTH_ENDPOINT}?{urlencode(params)}"


def exchange_code_for_token(config: AppConfig, code: str) -> OAuthTokens:
    payload = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": config.redirect_uri,
    }
    return _token_request(config, payload)


def refresh_access_token(config: AppConfig, tokens: OAuthTokens) -> OAuthTokens:
    payload = {
        "grant_type": "refresh_token",
        "refresh_token": tokens.refresh_token,
    }
    refreshed = _token_request(config, payload)
    if not refreshed.refresh_token:
        refreshed.refresh_token = tokens.refresh_token
    return refreshed


def _token_request(config: AppConfig, payload: Dict[str, Any]) -> OAuthTokens:
    data = {**payload, "client_id": config.client_id, "client_secret": config.client_secret}
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/x-www-form-urlencoded",
    }
    resp = requests.post(TOKEN_ENDPOINT, data=data, headers=headers, timeout=config.request_timeout)

    if resp.status_code >= 400:
        debug_lines: List[str] = []
        debug_lines.append(f"grant_type={payload.get('grant_type')}, redirect_uri={payload.get('redirect_uri')}")
        debug_lines.append(f"status={resp.status_code} {resp.reason}")
        debug_lines.append(f"content-type: {resp.headers.get('Content-Type')}")
        debug_lines.append(f"body: {resp.text}")
        detail = " | ".join(debug_lines)
        raise SystemExit(
            "Token request failed. Check credentials and redirect URI. "
            + (detail if config.debug else f"Status {resp.status_code}. Enable -debug for details.")
        )

    logger.debug("Token request succeeded: status=%s", resp.status_code)
    return OAuthTokens.from_response(resp.json())


class _AuthHandler(BaseHTTPRequestHandler):
    server: HTTPServer  # type: ignore[assignment]

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        params = parse_qs(parsed.query)
        code = params.get("code", [None])[0]
        state = params.get("state", [None])[0]
        self.server.auth_code = code  # type: ignore[attr-defined]
        self.server.auth_state = state  # type: ignore[attr-defined]
        msg = "Authorization received. You may close this window." if code else "Authorization failed."
        self.send_response(200)
        self.end_headers()
        self.wfile.write(msg.encode())

    def log_message(self, fmt: str, *args: Any) -> None:  # silence default logging
        return


def run_local_server(port: int) -> Tuple[Optional[str], Optional[str]]:
    server = HTTPServer(("127.0.0.1", port), _AuthHandler)
    server.auth_code = None  # type: ignore[attr-defined]
    server.auth_state = None  # type: ignore[attr-defined]
    try:
        server.handle_request()
    finally:
        server.server_close()
    return server.auth_code, server.auth_state  # type: ignore[attr-defined]


def start_auth_flow(config: AppConfig, port: int, open_browser: bool) -> OAuthTokens:
    """Browser flow with a local callback, or a pasted code when the browser is off."""
    if not config.client_id or not config.client_secret:
        raise SystemExit("Missing client credentials. Pass -id/-secret or set WAVE_CLIENT_ID/WAVE_CLIENT_SECRET.")
    state = uuid.uuid4().hex
    auth_url = build_auth_url(config, state)
    if open_browser:
        webbrowser.open(auth_url)
        print(f"Listening on http://127.0.0.1:{port} for the callback...", file=sys.stderr)
        code, returned_state = run_local_server(port)
        if returned_state and returned_state != state:
            raise SystemExit("State mismatch during OAuth flow.")
    else:
        print(f"Open in browser: {auth_url}", file=sys.stderr)
        code = input("Enter verification code: ").strip()
    if not code:
        raise SystemExit("No authorization code received.")
    return exchange_code_for_token(config, code)


def ensure_tokens(config: AppConfig, store: TokenStore, port: int, open_browser: bool) -> OAuthTokens:
    if config.access_token:
        return OAuthTokens(access_token=config.access_token)
    tokens = store.load()
    if not tokens:
        tokens = start_auth_flow(config, port, open_browser)
        store.save(tokens)
    elif tokens.is_expired() and tokens.refresh_token:
        tokens = refresh_access_token(config, tokens)
        store.save(tokens)
    return tokens


def build_client(config: AppConfig, tokens: OAuthTokens) -> Client:
    session = authorized_session(tokens.access_token, token_type=tokens.token_type)
    return Client(session, base_url=config.base_url, timeout=config.request_timeout)


def to_rows(value: Any) -> List[Dict[str, Any]]:
    """Plain JSON-ready dicts for one record or a list of them."""
    items = value if isinstance(value, list) else [value]
    rows: List[Dict[str, Any]] = []
    for item in items:
        if isinstance(item, BaseModel):
            rows.append(item.model_dump(mode="json", exclude_none=True))
        else:
            rows.append(item)
    return rows


def format_output(value: Any, output_format: str) -> str:
    rows = to_rows(value)
    payload: Any = rows if isinstance(value, list) else rows[0]

    if output_format == "json":
        return json.dumps(payload, indent=2)

    if output_format == "yaml":
        import yaml

        return yaml.safe_dump(payload, sort_keys=False)

    fields: List[str] = []
    for row in rows:
        for key, cell in row.items():
            if key not in fields and not isinstance(cell, (dict, list)):
                fields.append(key)

    if output_format == "csv":
        import csv
        from io import StringIO

        buf = StringIO()
        writer = csv.DictWriter(buf, fieldnames=fields, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        return buf.getvalue()

    # table
    table = [[row.get(f, "") for f in fields] for row in rows]
    return tabulate(table, headers=fields, tablefmt="github")


# Handlers, one per resource flag. Each returns what gets printed.


def _page_options(args: argparse.Namespace, cls: Any) -> Any:
    if args.page is None and args.page_size is None:
        return None
    return cls(page=args.page, page_size=args.page_size)


def handle_businesses(args: argparse.Namespace, client: Client) -> Any:
    businesses, _ = client.businesses.list(_page_options(args, BusinessListOptions))
    return businesses


def handle_business(args: argparse.Namespace, client: Client) -> Any:
    business, _ = client.businesses.get(args.business)
    return business


def handle_currencies(args: argparse.Namespace, client: Client) -> Any:
    currencies, _ = client.currencies.list()
    return currencies


def handle_currency(args: argparse.Namespace, client: Client) -> Any:
    currency, _ = client.currencies.get(args.currency)
    return currency


def handle_countries(args: argparse.Namespace, client: Client) -> Any:
    countries, _ = client.countries.list()
    return countries


def handle_country(args: argparse.Namespace, client: Client) -> Any:
    country, _ = client.countries.get(args.country)
    return country


def handle_provinces(args: argparse.Namespace, client: Client) -> Any:
    provinces, _ = client.countries.provinces(args.provinces)
    return provinces


def handle_customers(args: argparse.Namespace, client: Client) -> Any:
    customers, _ = client.customers.list(args.customers, _page_options(args, CustomerListOptions))
    return customers


def handle_products(args: argparse.Namespace, client: Client) -> Any:
    products, response = client.products.list(args.products, _page_options(args, ProductListOptions))
    logger.debug(
        "page %d of products (next=%d, previous=%d, total=%d)",
        response.current_page,
        response.next_page,
        response.previous_page,
        response.total_count,
    )
    return products


def handle_user(args: argparse.Namespace, client: Client) -> Any:
    user, _ = client.users.get()
    return user


def handle_accounts(args: argparse.Namespace, client: Client) -> Any:
    accounts, _ = client.accounts.list(args.accounts)
    return accounts


HANDLERS = [
    ("businesses", handle_businesses),
    ("business", handle_business),
    ("currencies", handle_currencies),
    ("currency", handle_currency),
    ("countries", handle_countries),
    ("country", handle_country),
    ("provinces", handle_provinces),
    ("customers", handle_customers),
    ("products", handle_products),
    ("user", handle_user),
    ("accounts", handle_accounts),
]


def select_handler(args: argparse.Namespace):
    for dest, handler in HANDLERS:
        value = getattr(args, dest)
        if value is not None and value is not False:
            return handler
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wave API CLI")

    def flag(name: str, **kwargs: Any) -> None:
        parser.add_argument(f"-{name}", f"--{name}", **kwargs)

    flag("id", help="OAuth2 client ID (or WAVE_CLIENT_ID)")
    flag("secret", help="OAuth2 client secret (or WAVE_CLIENT_SECRET)")
    flag("access", help="Use this access token instead of the OAuth2 flow (or WAVE_ACCESS_TOKEN)")
    flag("scope", help=f"OAuth2 scope (default: {DEFAULT_SCOPE})")
    flag("cache", default=str(DEFAULT_CACHE_FILE), help="Token cache file (default: cache.json)")
    flag("port", type=int, default=DEFAULT_PORT, help="Local port for the OAuth callback")
    flag("no-browser", dest="no_browser", action="store_true", help="Print the auth URL and read the code from stdin")
    flag("env-file", dest="env_file", default=str(DEFAULT_ENV_FILE), help="Path to .env file (default: .env)")
    flag("base-url", dest="base_url", help="Override API base URL")
    flag("timeout", type=float, help="HTTP timeout in seconds (default: 30)")
    flag("page", type=int, help="Page to fetch for paginated lists")
    flag("pageSize", dest="page_size", type=int, help="Items per page for paginated lists")
    flag("format", default="json", choices=["json", "yaml", "table", "csv"], help="Output format")
    flag("debug", action="store_true", help="Log HTTP calls and token exchange details")

    ops = parser.add_mutually_exclusive_group(required=True)

    def op(name: str, **kwargs: Any) -> None:
        ops.add_argument(f"-{name}", f"--{name}", **kwargs)

    op("businesses", action="store_true", help="List businesses")
    op("business", metavar="ID", help="Get a business")
    op("currencies", action="store_true", help="List currencies")
    op("currency", metavar="CODE", help="Get a currency")
    op("countries", action="store_true", help="List countries")
    op("country", metavar="CODE", help="Get a country")
    op("provinces", metavar="COUNTRY", help="List provinces of a country")
    op("customers", metavar="BUSINESS_ID", help="List customers of a business")
    op("products", metavar="BUSINESS_ID", help="List products of a business")
    op("user", action="store_true", help="Get the current user")
    op("accounts", metavar="BUSINESS_ID", help="List accounts of a business")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    for dest, _ in HANDLERS:
        if getattr(args, dest) == "":
            parser.error(f"-{dest} needs a non-empty value")
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    config = load_config(args)
    store = TokenStore(config.cache_file)
    tokens = ensure_tokens(config, store, args.port, not args.no_browser)
    client = build_client(config, tokens)

    handler = select_handler(args)
    try:
        result = handler(args, client)
    except ErrorResponse as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(exc.response.text, file=sys.stderr)
        raise SystemExit(1) from exc
    except (WaveError, requests.RequestException) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        response = getattr(exc, "response", None)
        if response is not None:
            print(response.text, file=sys.stderr)
        raise SystemExit(1) from exc

    print(format_output(result, args.format))


if __name__ == "__main__":
    main()
