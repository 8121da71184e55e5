import itertools
import json
from urllib.parse import urlsplit

import pytest

from conftest import wait_for
from cookies.parser import parse_set_cookie
from cookies.store import CookieStore
from models.cookie import CookieEntry

NOW = 1_700_000_000


def test_parse_basic_attributes():
    entry = parse_set_cookie(
        "sid=abc123; Path=/app; Secure; HttpOnly; SameSite=lax", "https://www.example.com/app/login")
    assert entry.name == "sid"
    assert entry.value == "abc123"
    assert entry.domain == "www.example.com"
    assert entry.path == "/app"
    assert entry.secure and entry.http_only
    assert entry.same_site == "Lax"
    assert entry.expires is None


def test_parse_domain_attribute_gets_leading_dot():
    entry = parse_set_cookie("a=1; Domain=Example.com", "http://shop.example.com/")
    assert entry.domain == ".example.com"


def test_parse_rejects_foreign_domain_and_garbage():
    assert parse_set_cookie("a=1; Domain=evil.com", "http://example.com/") is None
    assert parse_set_cookie("no-equals-sign", "http://example.com/") is None
    assert parse_set_cookie("=value", "http://example.com/") is None
    assert parse_set_cookie("a=1", "not a url") is None


def test_max_age_overrides_expires():
    entry = parse_set_cookie(
        "a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT; Max-Age=60", "http://example.com/", now=NOW)
    assert entry.expires == NOW + 60
    gone = parse_set_cookie("a=1; Max-Age=0", "http://example.com/", now=NOW)
    assert gone.is_expired(NOW)


def test_parse_expires_date():
    entry = parse_set_cookie("a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT", "http://example.com/")
    assert entry.expires == 1445412480


def test_overwrite_by_domain_and_name():
    store = CookieStore()
    store.add_from_set_cookie("http://example.com/", "a=1")
    store.add_from_set_cookie("http://example.com/", "a=2")
    store.add_from_set_cookie("http://other.com/", "a=3")
    assert len(store) == 2
    assert store.cookies_for("http://example.com/") == ["a=2"]


def test_malformed_set_cookie_ignored():
    store = CookieStore()
    assert store.add_from_set_cookie("http://example.com/", ";;;") is None
    assert len(store) == 0


ENTRIES = [
    CookieEntry("host", "1", "example.com"),
    CookieEntry("dotted", "2", ".example.com"),
    CookieEntry("deep", "3", "example.com", path="/admin"),
    CookieEntry("secure", "4", "example.com", secure=True),
    CookieEntry("expired", "5", "example.com", expires=NOW - 1),
    CookieEntry("future", "6", "example.com", expires=NOW + 3600),
    CookieEntry("other", "7", "other.org"),
]
URLS = [
    "http://example.com/",
    "https://example.com/admin/users",
    "http://sub.example.com/admin",
    "https://badexample.com/",
    "http://other.org/x",
]


def _expected(entry, url):
    parts = urlsplit(url)
    return (
        entry.matches_domain(parts.hostname)
        and (parts.path or "/").startswith(entry.path)
        and not entry.is_expired(NOW)
        and (not entry.secure or parts.scheme == "https")
    )


@pytest.mark.parametrize("url", URLS)
def test_cookies_for_selection_rule(url):
    store = CookieStore()
    for entry in ENTRIES:
        store.add(entry)
    selected = store.cookies_for(url, now=NOW)
    assert selected == [e.to_header_pair() for e in ENTRIES if _expected(e, url)]


def test_cookies_for_examples():
    store = CookieStore()
    for entry in ENTRIES:
        store.add(entry)
    assert store.cookies_for("http://example.com/", now=NOW) == ["host=1", "dotted=2", "future=6"]
    assert store.cookies_for("https://sub.example.com/admin", now=NOW) == ["dotted=2"]
    assert store.cookies_for("https://badexample.com/", now=NOW) == []


def test_prune_expired_is_idempotent():
    store = CookieStore()
    for entry in ENTRIES:
        store.add(entry)
    assert store.prune_expired(now=NOW) == 1
    snapshot = store.list()
    assert store.prune_expired(now=NOW) == 0
    assert store.list() == snapshot


def test_list_filter_and_clear():
    store = CookieStore()
    for entry in ENTRIES:
        store.add(entry)
    assert [e.name for e in store.list("other")] == ["other"]
    store.clear_all()
    assert store.list() == []


def test_save_and_load_round_trip(tmp_path):
    path = tmp_path / "jar" / "cookies.json"
    store = CookieStore(path)
    for entry in ENTRIES:
        store.add(entry)
    store.save_to_file()

    data = json.loads(path.read_text())
    assert isinstance(data, list) and len(data) == len(ENTRIES)

    fresh = CookieStore(path)
    assert fresh.load_from_file() == len(ENTRIES)
    assert {e.key: e for e in fresh.list()} == {e.key: e for e in ENTRIES}
    # no temp files left behind
    assert [p.name for p in path.parent.iterdir()] == ["cookies.json"]


def test_load_missing_or_corrupt_file_is_empty(tmp_path):
    assert CookieStore(tmp_path / "missing.json").load_from_file() == 0

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json")
    store = CookieStore(corrupt)
    assert store.load_from_file() == 0
    assert len(store) == 0


def test_load_skips_invalid_records(tmp_path):
    path = tmp_path / "cookies.json"
    path.write_text(json.dumps([
        {"name": "ok", "value": "1", "domain": "example.com"},
        {"value": "no name"},
        {"name": "", "value": "empty", "domain": "x.com"},
    ]))
    store = CookieStore(path)
    assert store.load_from_file() == 1
    assert store.cookies_for("http://example.com/") == ["ok=1"]


def test_concurrent_adds(run_in_thread):
    store = CookieStore()
    counter = itertools.count()

    def writer():
        for _ in range(200):
            store.add(CookieEntry(f"c{next(counter)}", "v", "example.com"))

    for _ in range(4):
        run_in_thread(writer)
    assert wait_for(lambda: len(store) == 800)
