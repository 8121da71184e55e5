import json

import httpx
import pytest
import respx
from click.testing import CliRunner

from riddler_cli.main import cli
from riddler_cli.session import parse_headers


@pytest.fixture
def paths(tmp_path):
    return tmp_path / "cookies.json", tmp_path / "requests.log"


def _invoke(paths, *args, **kwargs):
    cookie_file, log_file = paths
    runner = CliRunner()
    return runner.invoke(cli, ["--cookie-file", str(cookie_file), "--log-file", str(log_file), *args], **kwargs)


def _log_lines(paths):
    return [json.loads(line) for line in paths[1].read_text().splitlines() if line.strip()]


def test_parse_headers():
    assert parse_headers(["Accept: */*", "X-Token:abc:def", "broken", ": empty"]) == {
        "Accept": "*/*",
        "X-Token": "abc:def",
    }


def test_cookie_add_list_clean_clear(paths):
    result = _invoke(paths, "cookie", "add", "-u", "https://example.com/", "sid=abc; Path=/; Secure")
    assert result.exit_code == 0, result.output
    assert "Stored sid" in result.output

    _invoke(paths, "cookie", "add", "-u", "https://example.com/", "old=1; Max-Age=0")
    listed = _invoke(paths, "cookie", "list")
    assert "sid" in listed.output and "old" in listed.output

    cleaned = _invoke(paths, "cookie", "clean")
    assert "Removed 1 expired" in cleaned.output
    stored = json.loads(paths[0].read_text())
    assert [c["name"] for c in stored] == ["sid"]

    cleared = _invoke(paths, "cookie", "clear", "--yes")
    assert cleared.exit_code == 0
    assert json.loads(paths[0].read_text()) == []
    assert "No cookies stored" in _invoke(paths, "cookie", "list").output


def test_cookie_add_rejects_garbage(paths):
    result = _invoke(paths, "cookie", "add", "-u", "https://example.com/", "garbage")
    assert result.exit_code != 0
    assert "Could not parse" in result.output


def test_envvar_paths(paths, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["cookie", "add", "-u", "http://a.com/", "k=v"],
        env={"RIDDLER_COOKIE_FILE": str(tmp_path / "env-cookies.json")},
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "env-cookies.json").exists()


@respx.mock
def test_request_logs_manual_entry_and_stores_cookies(paths):
    route = respx.post("https://api.example.com/items").mock(return_value=httpx.Response(
        201, text='{"id": 1}', headers={"Set-Cookie": "session=xyz"}))

    result = _invoke(paths, "request", "-X", "POST", "-u", "https://api.example.com/items",
                     "-H", "Content-Type: application/json", "-b", '{"name": "a"}')

    assert result.exit_code == 0, result.output
    assert "201" in result.output
    assert route.calls.last.request.headers["content-type"] == "application/json"

    entries = _log_lines(paths)
    assert len(entries) == 1
    assert entries[0]["source"] == "manual"
    assert entries[0]["request"]["source_ip"] == "manual"
    assert entries[0]["response"]["status"] == 201
    assert json.loads(paths[0].read_text())[0]["name"] == "session"


@respx.mock
def test_request_failure_is_logged_and_reported(paths):
    respx.get("https://down.example.com/").mock(side_effect=httpx.ConnectError("refused"))
    result = _invoke(paths, "request", "-u", "https://down.example.com/")
    assert result.exit_code == 1
    assert _log_lines(paths)[0]["response"] is None


def test_request_invalid_url(paths):
    result = _invoke(paths, "request", "-u", "ftp://example.com/")
    assert result.exit_code == 1
    assert "Invalid URL" in result.output


@respx.mock
def test_logs_replay_and_stats(paths):
    respx.get("https://example.com/a").mock(return_value=httpx.Response(200, text="a"))
    respx.get("https://example.com/b").mock(return_value=httpx.Response(404, text="b"))
    _invoke(paths, "request", "-u", "https://example.com/a")
    _invoke(paths, "request", "-u", "https://example.com/b")

    replayed = _invoke(paths, "replay", "--limit", "2", "--delay", "0")
    assert replayed.exit_code == 0, replayed.output
    assert "2 succeeded, 0 failed" in replayed.output

    listing = _invoke(paths, "logs", "--source", "replay")
    assert listing.output.count("replay") == 2

    found = _invoke(paths, "logs", "--query", "/b", "--limit", "10")
    assert "https://example.com/b" in found.output
    assert "https://example.com/a" not in found.output

    stats = _invoke(paths, "logs", "--stats")
    assert "Total Requests:     4" in stats.output
    assert "Failed (>=400):     2" in stats.output


def test_logs_on_empty_log(paths):
    result = _invoke(paths, "logs")
    assert result.exit_code == 0
    assert "No matching log entries" in result.output


def test_monitor_with_dummy_backend(paths):
    result = _invoke(paths, "monitor", "--backend", "dummy", "--duration", "1")
    assert result.exit_code == 0, result.output
    assert "CAPTURE SUMMARY" in result.output
    entries = _log_lines(paths)
    assert entries
    assert {e["source"] for e in entries} == {"monitored"}
    assert all(e["request"]["url"].startswith("http://example.com/item/") for e in entries)


def test_monitor_unknown_interface(paths):
    result = _invoke(paths, "monitor", "--backend", "dummy", "-i", "nope0")
    assert result.exit_code == 1
    assert "not found" in result.output
    assert "dummy0" in result.output


def test_interfaces_dummy():
    result = CliRunner().invoke(cli, ["interfaces", "--backend", "dummy"])
    assert result.exit_code == 0
    assert "dummy0" in result.output and "dummy1" in result.output


@respx.mock
def test_analyze_writes_report(paths, tmp_path):
    respx.get("https://example.com/").mock(return_value=httpx.Response(200, text="hi"))
    report = tmp_path / "report.json"

    result = _invoke(paths, "analyze", "-u", "https://example.com/", "-n", "2", "--report", str(report))

    assert result.exit_code == 0, result.output
    assert "PERFORMANCE ANALYSIS SUMMARY" in result.output
    data = json.loads(report.read_text())
    assert len(data) == 2
    assert data[0]["url"] == "https://example.com/"
