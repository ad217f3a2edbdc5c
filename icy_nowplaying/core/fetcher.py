"""
ICY metadata fetcher: one bounded request per call, returning the StreamTitle
of the first metadata frame or None.
"""

import socket
import threading
import time
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from urllib3.exceptions import HTTPError as Urllib3HTTPError
from urllib3.exceptions import ReadTimeoutError

from .config import FetcherConfig
from .logger import StructuredLogger, get_logger
from .parser import IcyFrameParser, parse_metaint
from .result import FailureReason, FetchResult

SUPPORTED_SCHEMES = ('http', 'https')

# Reasons worth surfacing above DEBUG
_NOTABLE_REASONS = {
    FailureReason.TRANSPORT,
    FailureReason.TIMEOUT,
    FailureReason.REDIRECT_LIMIT,
    FailureReason.BYTE_LIMIT,
}


class _Cancelled(Exception):
    """Raised inside a worker once the watchdog has given up on it"""


def is_supported_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in SUPPORTED_SCHEMES and bool(parsed.netloc)


def is_redirect(response: requests.Response) -> bool:
    return 300 <= response.status_code < 400 and bool(response.headers.get('Location'))


class _FetchAttempt:
    """A single fetch running on a worker thread.

    The attempt owns its session, the live response and the parse state. The
    only thing another thread may do is call cancel(), which closes whatever
    connection is currently open.
    """

    def __init__(self, url: str, config: FetcherConfig, logger: StructuredLogger):
        self.url = url
        self.config = config
        self.logger = logger
        self.cancelled = threading.Event()
        self.redirects = 0
        self.result: Optional[FetchResult] = None
        self.started = time.monotonic()
        self.deadline = self.started + config.timeout
        self._lock = threading.Lock()
        self._session: Optional[requests.Session] = None
        self._response: Optional[requests.Response] = None

    def run(self):
        session = requests.Session()
        session.headers.update({
            'Icy-MetaData': '1',
            'User-Agent': self.config.user_agent
        })
        with self._lock:
            self._session = session

        try:
            self.result = self._follow(session)
        except (_Cancelled, requests.Timeout, ReadTimeoutError, socket.timeout):
            self.result = self._finish(self.url, FailureReason.TIMEOUT)
        except (requests.RequestException, Urllib3HTTPError, OSError) as e:
            reason = FailureReason.TIMEOUT if self.cancelled.is_set() else FailureReason.TRANSPORT
            self.logger.debug("Stream request failed", url=self.url,
                              error=str(e), error_type=type(e).__name__)
            self.result = self._finish(self.url, reason)
        except Exception as e:
            if self.cancelled.is_set():
                # Closing the connection under a blocked read can surface as almost anything
                self.result = self._finish(self.url, FailureReason.TIMEOUT)
            else:
                self.logger.exception("Unexpected error while fetching stream metadata",
                                      url=self.url, error=str(e))
                self.result = self._finish(self.url, FailureReason.TRANSPORT)
        finally:
            with self._lock:
                self._session = None
                self._response = None
            session.close()

    def cancel(self):
        """Give up on this attempt and close the open connection"""
        self.cancelled.set()
        with self._lock:
            response, session = self._response, self._session
        # Closing can block on the reader's lock while the worker sits in a read
        closer = threading.Thread(target=self._close, args=(response, session),
                                  name='icy-fetch-cancel', daemon=True)
        closer.start()

    def _close(self, *resources):
        for resource in resources:
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as e:
                self.logger.debug("Error closing cancelled connection",
                                  url=self.url, error=str(e))

    def _remaining(self) -> float:
        remaining = self.deadline - time.monotonic()
        if remaining <= 0 or self.cancelled.is_set():
            raise _Cancelled()
        return remaining

    def _follow(self, session: requests.Session) -> FetchResult:
        url = self.url
        while True:
            if not is_supported_url(url):
                return self._finish(url, FailureReason.UNSUPPORTED_SCHEME)

            response = self._open(session, url)
            try:
                if not is_redirect(response):
                    return self._read_title(response, url)

                if self.redirects >= self.config.max_redirects:
                    return self._finish(url, FailureReason.REDIRECT_LIMIT)

                location = urljoin(response.url or url, response.headers['Location'])
                self._discard(response)
                self.redirects += 1
                self.logger.debug("Following redirect", url=url, location=location,
                                  status=response.status_code, hop=self.redirects)
                url = location
            finally:
                response.close()
                with self._lock:
                    self._response = None

    def _open(self, session: requests.Session, url: str) -> requests.Response:
        remaining = self._remaining()
        response = session.get(url, stream=True, allow_redirects=False,
                               timeout=(remaining, remaining))
        with self._lock:
            self._response = response
        if self.cancelled.is_set():
            response.close()
            raise _Cancelled()
        return response

    def _discard(self, response: requests.Response):
        """Drain a redirect body so the connection slot is released cleanly"""
        drained = 0
        try:
            for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                drained += len(chunk)
                if drained >= self.config.redirect_drain_limit:
                    break
                self._remaining()
        except requests.RequestException as e:
            self.logger.debug("Error draining redirect body", url=response.url, error=str(e))

    def _read_title(self, response: requests.Response, url: str) -> FetchResult:
        metaint = parse_metaint(response.headers.get('icy-metaint'))
        if metaint is None:
            # Closed by the caller without touching the body
            return self._finish(url, FailureReason.NO_METAINT, status=response.status_code)

        parser = IcyFrameParser(metaint, self.config.overflow_limit)
        while not parser.done:
            self._remaining()
            amount = min(self.config.chunk_size, parser.bytes_wanted())
            chunk = response.raw.read(amount, decode_content=True)
            if not chunk:
                return self._finish(url, FailureReason.STREAM_ENDED,
                                    bytes_received=parser.bytes_received)
            parser.feed(chunk)

        return self._finish(url, parser.reason, title=parser.title,
                            bytes_received=parser.bytes_received)

    def _finish(self, url: str, reason: Optional[FailureReason],
                title: Optional[str] = None, **fields) -> FetchResult:
        elapsed = time.monotonic() - self.started
        result = FetchResult(url, title=title, reason=reason,
                             redirects=self.redirects, elapsed=elapsed)
        if self.cancelled.is_set():
            # The watchdog already reported this attempt
            return result
        if reason is None:
            self.logger.debug("Fetched stream title", url=url, title=title,
                              redirects=self.redirects, elapsed=elapsed, **fields)
        elif reason in _NOTABLE_REASONS:
            self.logger.info("No stream title", url=url, reason=reason.value,
                             redirects=self.redirects, elapsed=elapsed, **fields)
        else:
            self.logger.debug("No stream title", url=url, reason=reason.value,
                              redirects=self.redirects, elapsed=elapsed, **fields)
        return result


class IcyFetcher:
    """Fetches the current StreamTitle of an ICY stream.

    fetch() never raises: network, protocol, size and time failures all come
    back as None. fetch_result() returns the same outcome with the failure
    reason attached for diagnostics.
    """

    def __init__(self, config: Optional[FetcherConfig] = None,
                 logger: Optional[StructuredLogger] = None):
        self.config = config or FetcherConfig()
        self.logger = logger or get_logger('icy_nowplaying.fetcher')

    def fetch(self, url: str) -> Optional[str]:
        return self.fetch_result(url).title

    def fetch_result(self, url: str) -> FetchResult:
        if not is_supported_url(url):
            self.logger.debug("Rejected stream URL", url=url,
                              reason=FailureReason.UNSUPPORTED_SCHEME.value)
            return FetchResult(url, reason=FailureReason.UNSUPPORTED_SCHEME)

        attempt = _FetchAttempt(url, self.config, self.logger)
        worker = threading.Thread(target=attempt.run, name='icy-fetch', daemon=True)
        worker.start()
        worker.join(self.config.timeout)

        if worker.is_alive():
            attempt.cancel()
            elapsed = time.monotonic() - attempt.started
            self.logger.info("No stream title", url=url, reason=FailureReason.TIMEOUT.value,
                             redirects=attempt.redirects, elapsed=elapsed)
            return FetchResult(url, reason=FailureReason.TIMEOUT,
                               redirects=attempt.redirects, elapsed=elapsed)
        return attempt.result


def fetch_icy_title(url: str, config: Optional[FetcherConfig] = None) -> Optional[str]:
    """Fetch the current StreamTitle of an ICY stream, or None"""
    return IcyFetcher(config).fetch(url)
