import itertools

import httpx
import pytest
import respx

from cookies.store import CookieStore
from http_client import (
    ConnectionFailed,
    HttpClient,
    InvalidUrl,
    OutgoingRequest,
    RequestTimeout,
    TlsError,
)
from models.cookie import CookieEntry
from models.packet import HttpRequest


@pytest.fixture
def store():
    return CookieStore()


@pytest.fixture
def client(store):
    with respx.mock:
        with HttpClient(store) as http_client:
            yield http_client


def test_basic_get(client):
    route = respx.get("https://example.com/hello").mock(
        return_value=httpx.Response(200, text="Hello World", headers={"Server": "test"}))

    result = client.send(OutgoingRequest("GET", "https://example.com/hello"))

    assert route.called
    assert result.status == 200
    assert result.body == "Hello World"
    assert result.headers["server"] == "test"
    assert result.final_url == "https://example.com/hello"
    assert result.response_time_ms >= 0
    assert result.cookies == []


def test_store_cookies_merged_with_caller_cookie(client, store):
    store.add(CookieEntry("sid", "abc", "example.com"))
    route = respx.get("https://example.com/a").mock(return_value=httpx.Response(200))

    client.send(OutgoingRequest("GET", "https://example.com/a", headers={"Cookie": "x=1"}))

    assert route.calls.last.request.headers["cookie"] == "x=1; sid=abc"


def test_secure_cookie_not_sent_over_http(client, store):
    store.add(CookieEntry("plain", "1", "example.com"))
    store.add(CookieEntry("locked", "2", "example.com", secure=True))
    route = respx.get("http://example.com/").mock(return_value=httpx.Response(200))

    client.send(OutgoingRequest("GET", "http://example.com/"))

    assert route.calls.last.request.headers["cookie"] == "plain=1"


def test_set_cookie_ingested(client, store):
    respx.get("https://example.com/login").mock(return_value=httpx.Response(
        200, headers=[("Set-Cookie", "a=1; Path=/"), ("Set-Cookie", "b=2; Secure")]))

    result = client.send(OutgoingRequest("GET", "https://example.com/login"))

    assert result.cookies == ["a=1; Path=/", "b=2; Secure"]
    assert sorted(store.cookies_for("https://example.com/")) == ["a=1", "b=2"]


def test_redirect_cookies_and_final_url(client, store):
    respx.get("https://example.com/start").mock(return_value=httpx.Response(
        302, headers={"Location": "https://example.com/home", "Set-Cookie": "step=1"}))
    home = respx.get("https://example.com/home").mock(return_value=httpx.Response(200, text="home"))

    result = client.send(OutgoingRequest("GET", "https://example.com/start"))

    assert result.status == 200
    assert result.final_url == "https://example.com/home"
    assert result.cookies == ["step=1"]
    assert store.cookies_for("https://example.com/") == ["step=1"]
    assert home.called


def test_cookie_store_is_the_only_jar(client, store):
    route = respx.get("https://example.com/").mock(
        return_value=httpx.Response(200, headers={"Set-Cookie": "sid=1"}))

    client.send(OutgoingRequest("GET", "https://example.com/"))
    store.clear_all()
    client.send(OutgoingRequest("GET", "https://example.com/"))

    assert "cookie" not in route.calls.last.request.headers


def test_unknown_method_becomes_get(client):
    route = respx.get("https://example.com/").mock(return_value=httpx.Response(204))
    result = client.send(OutgoingRequest("BREW", "https://example.com/"))
    assert route.called
    assert result.status == 204


def test_body_and_framing_headers(client):
    route = respx.post("https://example.com/api").mock(return_value=httpx.Response(201))

    client.send(OutgoingRequest(
        "post",
        "https://example.com/api",
        headers={"Content-Length": "999", "Transfer-Encoding": "chunked", "X-Test": "yes"},
        body="abc",
    ))

    sent = route.calls.last.request
    assert sent.content == b"abc"
    assert sent.headers["content-length"] == "3"
    assert "transfer-encoding" not in sent.headers
    assert sent.headers["x-test"] == "yes"


def test_replay_captured_request(client):
    route = respx.post("http://example.com/form").mock(return_value=httpx.Response(200, text="ok"))
    captured = HttpRequest(
        method="POST",
        url="http://example.com/form",
        headers={"Host": "example.com", "Content-Type": "application/x-www-form-urlencoded"},
        body=b"a=1",
        source_ip="10.0.0.5",
        source_port=50000,
    )

    result = client.replay(captured)

    assert result.status == 200
    assert route.calls.last.request.content == b"a=1"


def test_timeout_maps_to_request_timeout(client):
    respx.get("https://slow.example.com/").mock(side_effect=httpx.ConnectTimeout("timed out"))
    with pytest.raises(RequestTimeout):
        client.send(OutgoingRequest("GET", "https://slow.example.com/", timeout_seconds=1))


def test_connect_errors(client):
    respx.get("https://down.example.com/").mock(side_effect=httpx.ConnectError("Connection refused"))
    respx.get("https://tls.example.com/").mock(
        side_effect=httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed"))

    with pytest.raises(ConnectionFailed):
        client.send(OutgoingRequest("GET", "https://down.example.com/"))
    with pytest.raises(TlsError):
        client.send(OutgoingRequest("GET", "https://tls.example.com/"))


@pytest.mark.parametrize("url", ["ftp://example.com/file", "not a url", "http://"])
def test_invalid_urls(client, url):
    with pytest.raises(InvalidUrl):
        client.send(OutgoingRequest("GET", url))


@pytest.mark.parametrize("content_type", ["text/html; charset=bogus", "text/plain; charset="])
def test_unknown_charset_falls_back_to_utf8(client, content_type):
    respx.get("https://example.com/odd").mock(return_value=httpx.Response(
        200, content="naïve".encode("utf-8"), headers={"Content-Type": content_type}))

    result = client.send(OutgoingRequest("GET", "https://example.com/odd"))

    assert result.status == 200
    assert result.body == "naïve"


def test_declared_charset_is_honoured(client):
    respx.get("https://example.com/latin").mock(return_value=httpx.Response(
        200, content="naïve".encode("latin-1"), headers={"Content-Type": "text/plain; charset=ISO-8859-1"}))

    assert client.send(OutgoingRequest("GET", "https://example.com/latin")).body == "naïve"


def test_overall_deadline_covers_response_head(store):
    ticks = itertools.count(0, 10)
    with respx.mock:
        respx.get("https://trickle.example.com/").mock(return_value=httpx.Response(200, text="late"))
        with HttpClient(store, clock=lambda: next(ticks)) as http_client:
            with pytest.raises(RequestTimeout):
                http_client.send(OutgoingRequest("GET", "https://trickle.example.com/", timeout_seconds=5))
