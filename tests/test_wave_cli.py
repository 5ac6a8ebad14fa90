import argparse
import json
import os
import tempfile
import time
import unittest
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path
from typing import Any
from unittest.mock import ANY, Mock, patch

import requests

from scripts import wave_cli
from tests.stubs import make_client
from waveapps import Business, BusinessListOptions, Currency, ProductListOptions

TEST_CLIENT_SECRET = "dummy-client-secret"  # pragma: allowlist secret

PRODUCT_PAGE = {
    "next": "https://api.example.com/businesses/b1/products/?page=3",
    "previous": "https://api.example.com/businesses/b1/products/?page=1",
    "total_count": 3,
    "results": [{"id": 7, "name": "Widget", "price": 9.5}],
}


def _args(**kwargs: Any) -> argparse.Namespace:
    defaults = {"page": None, "page_size": None, "format": "json"}
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class HandlerTests(unittest.TestCase):
    def test_businesses_without_paging(self) -> None:
        client = Mock()
        client.businesses.list.return_value = ([Business(id="b1", company_name="Acme")], Mock())

        result = wave_cli.handle_businesses(_args(), client)

        self.assertEqual(result[0].company_name, "Acme")
        client.businesses.list.assert_called_once_with(None)

    def test_businesses_with_paging(self) -> None:
        client = Mock()
        client.businesses.list.return_value = ([], Mock())
        wave_cli.handle_businesses(_args(page=2, page_size=10), client)
        client.businesses.list.assert_called_once_with(BusinessListOptions(page=2, page_size=10))

    def test_currency(self) -> None:
        client, adapter = make_client()
        adapter.add("GET", "/currencies/CAD", {"code": "CAD", "name": "Canadian dollar"})

        result = wave_cli.handle_currency(_args(currency="CAD"), client)

        self.assertEqual(result.code, "CAD")

    def test_products_page(self) -> None:
        client, adapter = make_client()
        adapter.add("GET", "/businesses/b1/products", PRODUCT_PAGE)

        result = wave_cli.handle_products(_args(products="b1", page=2), client)

        self.assertEqual([p.name for p in result], ["Widget"])
        self.assertTrue(adapter.last_request.url.endswith("/businesses/b1/products?page=2"))

    def test_products_options_type(self) -> None:
        client = Mock()
        client.products.list.return_value = ([], Mock(current_page=1, next_page=0, previous_page=0, total_count=0))
        wave_cli.handle_products(_args(products="b1", page_size=25), client)
        client.products.list.assert_called_once_with("b1", ProductListOptions(page=None, page_size=25))

    def test_provinces_and_accounts(self) -> None:
        client, adapter = make_client()
        adapter.add("GET", "/countries/CA/provinces", [{"name": "Ontario", "slug": "ontario"}])
        adapter.add("GET", "/businesses/b1/accounts", [{"id": 1, "name": "Sales"}])

        provinces = wave_cli.handle_provinces(_args(provinces="CA"), client)
        accounts = wave_cli.handle_accounts(_args(accounts="b1"), client)

        self.assertEqual(provinces[0].slug, "ontario")
        self.assertEqual(accounts[0].name, "Sales")

    def test_user(self) -> None:
        client, adapter = make_client()
        adapter.add("GET", "/user", {"first_name": "Jane", "last_name": "Smith"})
        self.assertEqual(wave_cli.handle_user(_args(), client).full_name(), "Jane Smith")


class FormatOutputTests(unittest.TestCase):
    def setUp(self) -> None:
        self.currencies = [
            Currency(code="CAD", name="Canadian dollar"),
            Currency(code="USD", name="US dollar", symbol="$"),
        ]

    def test_json_list(self) -> None:
        payload = json.loads(wave_cli.format_output(self.currencies, "json"))
        self.assertEqual(payload[0], {"code": "CAD", "name": "Canadian dollar"})
        self.assertEqual(payload[1]["symbol"], "$")

    def test_json_single_record(self) -> None:
        payload = json.loads(wave_cli.format_output(self.currencies[0], "json"))
        self.assertEqual(payload, {"code": "CAD", "name": "Canadian dollar"})

    def test_yaml(self) -> None:
        output = wave_cli.format_output(self.currencies[0], "yaml")
        self.assertEqual(output, "code: CAD\nname: Canadian dollar\n")

    def test_csv(self) -> None:
        lines = wave_cli.format_output(self.currencies, "csv").splitlines()
        self.assertEqual(lines[0], "code,name,symbol")
        self.assertEqual(lines[1], "CAD,Canadian dollar,")
        self.assertEqual(lines[2], "USD,US dollar,$")

    def test_table_skips_nested_values(self) -> None:
        business = Business(id="b1", company_name="Acme", country={"name": "Canada"})
        output = wave_cli.format_output([business], "table")
        header = output.splitlines()[0]
        self.assertIn("company_name", header)
        self.assertNotIn("country", header)
        self.assertIn("Acme", output)


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.env_file = Path(self.tmp.name) / ".env"
        self.env_file.write_text(
            "# local settings\n"
            "WAVE_CLIENT_ID=file-id\n"
            "WAVE_SCOPE=file-scope\n"
            "WAVE_HTTP_TIMEOUT=12\n"
            "not a setting\n"
        )

    def parse(self, *extra: str) -> argparse.Namespace:
        return wave_cli.build_parser().parse_args(["-env-file", str(self.env_file), "-user", *extra])

    def test_load_env_file(self) -> None:
        env = wave_cli.load_env_file(self.env_file)
        self.assertEqual(env, {"WAVE_CLIENT_ID": "file-id", "WAVE_SCOPE": "file-scope", "WAVE_HTTP_TIMEOUT": "12"})
        self.assertEqual(wave_cli.load_env_file(Path(self.tmp.name) / "missing"), {})

    def test_env_file_fills_gaps(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = wave_cli.load_config(self.parse())
        self.assertEqual(config.client_id, "file-id")
        self.assertEqual(config.scope, "file-scope")
        self.assertEqual(config.request_timeout, 12.0)
        self.assertEqual(config.redirect_uri, "http://127.0.0.1:9001/")
        self.assertEqual(config.base_url, wave_cli.DEFAULT_BASE_URL)
        self.assertEqual(config.cache_file, Path("cache.json"))

    def test_environment_beats_env_file(self) -> None:
        env = {"WAVE_CLIENT_ID": "env-id", "WAVE_CLIENT_SECRET": TEST_CLIENT_SECRET}
        with patch.dict(os.environ, env, clear=True):
            config = wave_cli.load_config(self.parse())
        self.assertEqual(config.client_id, "env-id")
        self.assertEqual(config.client_secret, TEST_CLIENT_SECRET)

    def test_flags_beat_environment(self) -> None:
        with patch.dict(os.environ, {"WAVE_CLIENT_ID": "env-id", "WAVE_ACCESS_TOKEN": "env-token"}, clear=True):
            config = wave_cli.load_config(
                self.parse("-id", "flag-id", "-access", "flag-token", "-timeout", "5", "-port", "9100")
            )
        self.assertEqual(config.client_id, "flag-id")
        self.assertEqual(config.access_token, "flag-token")
        self.assertEqual(config.request_timeout, 5.0)
        self.assertEqual(config.redirect_uri, "http://127.0.0.1:9100/")

    def test_default_scope(self) -> None:
        self.env_file.write_text("")
        with patch.dict(os.environ, {}, clear=True):
            config = wave_cli.load_config(self.parse())
        self.assertEqual(config.scope, "basic")
        self.assertEqual(config.request_timeout, 30.0)

    def test_invalid_timeout(self) -> None:
        with patch.dict(os.environ, {"WAVE_HTTP_TIMEOUT": "soon"}, clear=True):
            with self.assertRaises(SystemExit):
                wave_cli.load_config(self.parse())


class TokenTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.store = wave_cli.TokenStore(Path(self.tmp.name) / "cache.json")
        self.config = wave_cli.AppConfig(
            client_id="id", client_secret=TEST_CLIENT_SECRET, redirect_uri="http://127.0.0.1:9001/"
        )

    def test_from_response(self) -> None:
        before = time.time()
        tokens = wave_cli.OAuthTokens.from_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": 3600, "token_type": "Bearer"}
        )
        self.assertEqual(tokens.refresh_token, "r")
        self.assertGreater(tokens.expires_at, before + 3000)
        self.assertFalse(tokens.is_expired())

    def test_unknown_expiry_never_expires(self) -> None:
        tokens = wave_cli.OAuthTokens.from_response({"access_token": "a"})
        self.assertEqual(tokens.expires_at, 0.0)
        self.assertFalse(tokens.is_expired())
        self.assertTrue(wave_cli.OAuthTokens("a", expires_at=time.time() - 1).is_expired())

    def test_store_round_trip(self) -> None:
        self.assertIsNone(self.store.load())
        self.store.save(wave_cli.OAuthTokens("a", "r", 123.0, "Bearer"))
        self.assertEqual(self.store.load(), wave_cli.OAuthTokens("a", "r", 123.0, "Bearer"))

    def test_store_rejects_invalid_json(self) -> None:
        self.store.path.write_text("{not json")
        with self.assertRaises(SystemExit):
            self.store.load()

    def test_access_token_skips_oauth(self) -> None:
        self.config.access_token = "given"
        with patch("scripts.wave_cli.start_auth_flow") as start:
            tokens = wave_cli.ensure_tokens(self.config, self.store, 9001, True)
        self.assertEqual(tokens.access_token, "given")
        start.assert_not_called()
        self.assertFalse(self.store.path.exists())

    def test_cached_token_is_reused(self) -> None:
        self.store.save(wave_cli.OAuthTokens("cached", "r"))
        with patch("scripts.wave_cli.start_auth_flow") as start:
            tokens = wave_cli.ensure_tokens(self.config, self.store, 9001, True)
        self.assertEqual(tokens.access_token, "cached")
        start.assert_not_called()

    def test_expired_token_is_refreshed(self) -> None:
        self.store.save(wave_cli.OAuthTokens("old", "r", time.time() - 10))
        with patch("scripts.wave_cli.refresh_access_token", return_value=wave_cli.OAuthTokens("new", "r2")) as refresh:
            tokens = wave_cli.ensure_tokens(self.config, self.store, 9001, True)
        self.assertEqual(tokens.access_token, "new")
        refresh.assert_called_once_with(self.config, ANY)
        self.assertEqual(self.store.load().access_token, "new")

    def test_missing_token_starts_flow(self) -> None:
        with patch("scripts.wave_cli.start_auth_flow", return_value=wave_cli.OAuthTokens("fresh")) as start:
            tokens = wave_cli.ensure_tokens(self.config, self.store, 9002, False)
        self.assertEqual(tokens.access_token, "fresh")
        start.assert_called_once_with(self.config, 9002, False)
        self.assertEqual(self.store.load().access_token, "fresh")


class OAuthTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = wave_cli.AppConfig(
            client_id="id", client_secret=TEST_CLIENT_SECRET, redirect_uri="http://127.0.0.1:9001/"
        )

    def _token_response(self, status: int, payload: Any) -> Mock:
        resp = Mock()
        resp.status_code = status
        resp.reason = "OK" if status < 400 else "Unauthorized"
        resp.headers = {"Content-Type": "application/json"}
        resp.text = json.dumps(payload)
        resp.json.return_value = payload
        return resp

    def test_build_auth_url(self) -> None:
        url = wave_cli.build_auth_url(self.config, "xyz")
        self.assertTrue(url.startswith(wave_cli.AUTH_ENDPOINT + "?"))
        self.assertIn("response_type=code", url)
        self.assertIn("client_id=id", url)
        self.assertIn("scope=basic", url)
        self.assertIn("state=xyz", url)
        self.assertIn("redirect_uri=http%3A%2F%2F127.0.0.1%3A9001%2F", url)

    @patch("scripts.wave_cli.requests.post")
    def test_exchange_code(self, post: Any) -> None:
        post.return_value = self._token_response(200, {"access_token": "a", "refresh_token": "r", "expires_in": 3600})

        tokens = wave_cli.exchange_code_for_token(self.config, "code123")

        self.assertEqual(tokens.access_token, "a")
        post.assert_called_once_with(
            wave_cli.TOKEN_ENDPOINT,
            data={
                "grant_type": "authorization_code",
                "code": "code123",
                "redirect_uri": "http://127.0.0.1:9001/",
                "client_id": "id",
                "client_secret": TEST_CLIENT_SECRET,
            },
            headers=ANY,
            timeout=30.0,
        )

    @patch("scripts.wave_cli.requests.post")
    def test_refresh_keeps_refresh_token(self, post: Any) -> None:
        post.return_value = self._token_response(200, {"access_token": "new"})
        tokens = wave_cli.refresh_access_token(self.config, wave_cli.OAuthTokens("old", "keep"))
        self.assertEqual(tokens.access_token, "new")
        self.assertEqual(tokens.refresh_token, "keep")
        self.assertEqual(post.call_args.kwargs["data"]["grant_type"], "refresh_token")

    @patch("scripts.wave_cli.requests.post")
    def test_token_failure_exits(self, post: Any) -> None:
        post.return_value = self._token_response(401, {"error": "invalid_client"})
        with self.assertRaises(SystemExit) as ctx:
            wave_cli.exchange_code_for_token(self.config, "code123")
        self.assertIn("Status 401", str(ctx.exception.code))

    def test_flow_requires_credentials(self) -> None:
        with self.assertRaises(SystemExit):
            wave_cli.start_auth_flow(wave_cli.AppConfig(), 9001, False)

    def test_manual_code_entry(self) -> None:
        stderr = StringIO()
        with patch("builtins.input", return_value=" code123 "), patch(
            "scripts.wave_cli.exchange_code_for_token", return_value=wave_cli.OAuthTokens("a")
        ) as exchange, redirect_stderr(stderr):
            tokens = wave_cli.start_auth_flow(self.config, 9001, False)

        self.assertEqual(tokens.access_token, "a")
        exchange.assert_called_once_with(self.config, "code123")
        self.assertIn(wave_cli.AUTH_ENDPOINT, stderr.getvalue())

    def test_empty_code_exits(self) -> None:
        with patch("builtins.input", return_value=""), redirect_stderr(StringIO()):
            with self.assertRaises(SystemExit):
                wave_cli.start_auth_flow(self.config, 9001, False)


class ParserTests(unittest.TestCase):
    def test_single_dash_flags(self) -> None:
        args = wave_cli.build_parser().parse_args(["-business=abc", "-pageSize", "10", "-page", "2"])
        self.assertEqual(args.business, "abc")
        self.assertEqual(args.page_size, 10)
        self.assertEqual(args.page, 2)
        self.assertIs(wave_cli.select_handler(args), wave_cli.handle_business)

    def test_double_dash_flags(self) -> None:
        args = wave_cli.build_parser().parse_args(["--products", "b1", "--format", "table", "--no-browser"])
        self.assertEqual(args.products, "b1")
        self.assertEqual(args.format, "table")
        self.assertTrue(args.no_browser)
        self.assertIs(wave_cli.select_handler(args), wave_cli.handle_products)

    def test_defaults(self) -> None:
        args = wave_cli.build_parser().parse_args(["-businesses"])
        self.assertEqual(args.cache, "cache.json")
        self.assertEqual(args.port, 9001)
        self.assertEqual(args.format, "json")
        self.assertFalse(args.debug)
        self.assertIs(wave_cli.select_handler(args), wave_cli.handle_businesses)

    def test_empty_value_still_selects_handler(self) -> None:
        args = wave_cli.build_parser().parse_args(["-business="])
        self.assertEqual(args.business, "")
        self.assertIs(wave_cli.select_handler(args), wave_cli.handle_business)

    def test_exactly_one_operation(self) -> None:
        parser = wave_cli.build_parser()
        with redirect_stderr(StringIO()):
            with self.assertRaises(SystemExit):
                parser.parse_args([])
            with self.assertRaises(SystemExit):
                parser.parse_args(["-user", "-currencies"])


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.client, self.adapter = make_client()
        self.base_argv = ["-access", "tok", "-env-file", str(Path(self.tmp.name) / ".env")]

        ensure = patch("scripts.wave_cli.ensure_tokens", return_value=wave_cli.OAuthTokens("tok"))
        build = patch("scripts.wave_cli.build_client", return_value=self.client)
        ensure.start()
        build.start()
        self.addCleanup(ensure.stop)
        self.addCleanup(build.stop)

    def test_prints_result(self) -> None:
        self.adapter.add("GET", "/currencies", [{"code": "CAD"}])
        buf = StringIO()
        with redirect_stdout(buf):
            wave_cli.main([*self.base_argv, "-currencies"])
        self.assertEqual(json.loads(buf.getvalue()), [{"code": "CAD"}])

    def test_error_response_exits(self) -> None:
        self.adapter.add("GET", "/currencies/XXX", {"error": {"message": "No such currency"}}, status=404)
        stderr = StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as ctx:
            wave_cli.main([*self.base_argv, "-currency", "XXX"])

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("404 No such currency", stderr.getvalue())
        self.assertIn('{"error": {"message": "No such currency"}}', stderr.getvalue())

    def test_network_error_exits(self) -> None:
        self.adapter.error = requests.ConnectionError("connection refused")
        stderr = StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as ctx:
            wave_cli.main([*self.base_argv, "-user"])

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("connection refused", stderr.getvalue())

    def test_empty_operation_value_is_usage_error(self) -> None:
        stderr = StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as ctx:
            wave_cli.main([*self.base_argv, "-business="])

        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("-business needs a non-empty value", stderr.getvalue())
        self.assertEqual(self.adapter.requests, [])

    def test_invalid_identifier_exits(self) -> None:
        stderr = StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as ctx:
            wave_cli.main([*self.base_argv, "-customers", "%"])

        self.assertEqual(ctx.exception.code, 1)
        self.assertEqual(self.adapter.requests, [])


class BuildClientTests(unittest.TestCase):
    def test_session_is_authorized(self) -> None:
        config = wave_cli.AppConfig(base_url="https://api.example.com/", request_timeout=7.0)
        client = wave_cli.build_client(config, wave_cli.OAuthTokens("tok"))

        self.assertEqual(client.base_url, "https://api.example.com/")
        self.assertEqual(client.timeout, 7.0)
        req = client.new_request("GET", "user")
        self.assertEqual(req.headers["Authorization"], "Bearer tok")


if __name__ == "__main__":
    unittest.main()
