"""Tests for the icy-nowplaying command line."""

import logging
import os

from click.testing import CliRunner

from icy_nowplaying.cli import nowplaying_cli
from icy_nowplaying.core.result import FailureReason, FetchResult
from icy_nowplaying.stations import STATION_URLS


class _StubFetcher:
    def __init__(self, result):
        self.result = result
        self.urls = []

    def fetch_result(self, url):
        self.urls.append(url)
        return self.result


def _install(monkeypatch, result):
    fetcher = _StubFetcher(result)
    monkeypatch.setattr(nowplaying_cli, "_make_fetcher", lambda config, timeout=None: fetcher)
    return fetcher


def test_fetch_prints_title(monkeypatch):
    _install(monkeypatch, FetchResult("http://a/", title="Song A - Artist B"))

    result = CliRunner().invoke(nowplaying_cli.main, ["fetch", "http://a/"])

    assert result.exit_code == 0
    assert "Song A - Artist B" in result.output


def test_fetch_prints_placeholder_and_reason(monkeypatch):
    _install(monkeypatch, FetchResult("http://a/", reason=FailureReason.NO_METAINT, redirects=1))

    result = CliRunner().invoke(nowplaying_cli.main, ["fetch", "http://a/", "--verbose"])

    assert result.exit_code == 0
    assert nowplaying_cli.PLACEHOLDER in result.output
    assert "no_metaint" in result.output
    assert "redirects: 1" in result.output


def test_station_uses_catalog(monkeypatch):
    fetcher = _install(monkeypatch, FetchResult(STATION_URLS["GOLD905"], title="Oldie"))

    result = CliRunner().invoke(nowplaying_cli.main, ["station", "gold905"])

    assert result.exit_code == 0
    assert "Oldie" in result.output
    assert fetcher.urls == [STATION_URLS["GOLD905"]]


def test_unknown_station(monkeypatch):
    fetcher = _install(monkeypatch, FetchResult("http://a/", title="never"))

    result = CliRunner().invoke(nowplaying_cli.main, ["station", "NOPE"])

    assert result.exit_code == 2
    assert "Unsupported station" in result.output
    assert fetcher.urls == []


def test_stations_lists_catalog():
    result = CliRunner().invoke(nowplaying_cli.main, ["stations"])

    assert result.exit_code == 0
    for station_id in STATION_URLS:
        assert station_id in result.output


def test_fetch_against_fixture_server(icy_server):
    icy_server.stream("/live", "Live From Fixture")

    result = CliRunner().invoke(nowplaying_cli.main,
                                ["fetch", icy_server.url("/live"), "--timeout", "2"])

    assert result.exit_code == 0
    assert "Live From Fixture" in result.output


class _FakePoller:
    created = []

    def __init__(self, url, callback, fetcher=None, interval=None, logger=None):
        self.url = url
        self.interval = interval
        self.logger = logger
        self.running = False
        self.stopped = False
        _FakePoller.created.append(self)

    def start(self):
        pass

    def stop(self, timeout=None):
        self.stopped = True


def test_watch_passes_configured_logger_to_poller(monkeypatch, tmp_path):
    log_file = tmp_path / "watch.log"
    monkeypatch.setenv("ICY_LOG_FILE", str(log_file))
    monkeypatch.setenv("ICY_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ICY_POLL_INTERVAL", "12")
    _install(monkeypatch, FetchResult("http://a/", title="unused"))
    monkeypatch.setattr(nowplaying_cli, "NowPlayingPoller", _FakePoller)
    _FakePoller.created.clear()

    result = CliRunner().invoke(nowplaying_cli.main, ["watch", "CLASS95"])

    assert result.exit_code == 0
    poller = _FakePoller.created[-1]
    assert poller.url == STATION_URLS["CLASS95"]
    assert poller.interval == 12.0
    assert poller.stopped

    handlers = poller.logger.logger.handlers
    assert any(isinstance(handler, logging.FileHandler)
               and handler.baseFilename == os.path.abspath(str(log_file))
               for handler in handlers)
    consoles = [handler for handler in handlers if getattr(handler, "is_console", False)]
    assert consoles and consoles[0].level == logging.DEBUG


def test_log_level_option_overrides_environment(monkeypatch):
    monkeypatch.setenv("ICY_LOG_LEVEL", "INFO")
    _install(monkeypatch, FetchResult("http://a/", title="unused"))
    monkeypatch.setattr(nowplaying_cli, "NowPlayingPoller", _FakePoller)
    _FakePoller.created.clear()

    result = CliRunner().invoke(nowplaying_cli.main, ["--log-level", "error", "watch", "GOLD905"])

    assert result.exit_code == 0
    consoles = [handler for handler in _FakePoller.created[-1].logger.logger.handlers
                if getattr(handler, "is_console", False)]
    assert consoles[0].level == logging.ERROR
