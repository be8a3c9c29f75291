"""세션/프록시 디렉터리 테스트"""
import textwrap

import pytest

from kl_taxonomy.services.impl.session_provider import (
    YamlSessionDirectory,
    build_session_context,
    parse_cookies,
    parse_proxy,
    resolve_device_profile,
)


@pytest.fixture
def directory(tmp_path):
    path = tmp_path / "sessions.yaml"
    path.write_text(
        textwrap.dedent(
            """
            accounts:
              acc-1:
                cookies: "sid=abc; consent=1"
                device_profile: de-mac-chrome
                proxy: {type: socks5, host: 10.0.0.2, port: 1080, username: u, password: p}
              no-proxy:
                cookies: "sid=def"
              broken-port:
                proxy: {host: 10.0.0.3, port: abc}
            """
        ),
        encoding="utf-8",
    )
    return YamlSessionDirectory(str(path))


class TestParsing:
    def test_cookie_string(self):
        creds = parse_cookies("a=1; b = 2 ;broken; =x")
        assert [c["name"] for c in creds.cookies] == ["a", "b"]
        assert creds.header_value() == "a=1; b=2"

    def test_cookie_list(self):
        creds = parse_cookies([{"name": "sid", "value": "x", "domain": ".example.de"}, {"value": "no-name"}])
        assert len(creds.cookies) == 1
        assert creds.cookies[0]["domain"] == ".example.de"

    def test_empty_cookies_are_falsy(self):
        assert not parse_cookies(None)

    def test_proxy(self):
        proxy = parse_proxy({"type": "HTTP", "host": "h", "port": "8080"})
        assert proxy.port == 8080 and proxy.type == "http"
        assert parse_proxy({"host": "h"}) is None

    def test_unknown_device_profile_falls_back(self):
        assert resolve_device_profile("does-not-exist").id == "de-win-chrome"


class TestDirectory:
    def test_full_session(self, directory):
        ctx = build_session_context("acc-1", directory, directory)

        assert ctx is not None and ctx.is_live
        assert ctx.proxy.http_url() == "socks5h://u:p@10.0.0.2:1080"
        assert ctx.device_profile.id == "de-mac-chrome"
        assert ctx.credentials.header_value() == "sid=abc; consent=1"

    def test_account_without_proxy_has_no_session(self, directory):
        assert build_session_context("no-proxy", directory, directory) is None

    def test_invalid_proxy_port(self, directory):
        assert directory.get_proxy("broken-port") is None

    def test_unknown_account(self, directory):
        assert directory.get_session("ghost") is None
        assert build_session_context("ghost", directory, directory) is None

    def test_missing_file(self, tmp_path):
        empty = YamlSessionDirectory(str(tmp_path / "missing.yaml"))
        assert empty.get_proxy("acc-1") is None
