"""
Periodic now-playing polling for a single stream
"""

import threading
from typing import Callable, Optional

from .config import DEFAULT_POLL_INTERVAL
from .fetcher import IcyFetcher
from .logger import StructuredLogger, get_logger

TitleCallback = Callable[[Optional[str]], None]


class NowPlayingPoller:
    """Fetches a stream's title once immediately, then every `interval` seconds.

    Each poll runs on its own short-lived thread. switch() starts a poll of
    the new stream right away; a poll still in flight for the old stream is
    dropped instead of delivered. No callback runs after stop() has returned.
    """

    def __init__(self, url: str, callback: TitleCallback,
                 fetcher: Optional[IcyFetcher] = None,
                 interval: float = DEFAULT_POLL_INTERVAL,
                 logger: Optional[StructuredLogger] = None):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.url = url
        self.callback = callback
        self.fetcher = fetcher or IcyFetcher()
        self.interval = interval
        self.logger = logger or get_logger('icy_nowplaying.poller')

        self.stop_flag = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self._wake = threading.Event()
        # Reentrant so a callback may call switch() or stop()
        self._lock = threading.RLock()
        self._generation = 0
        self._poll_thread: Optional[threading.Thread] = None
        self._poll_generation = -1

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        """Start polling on a background thread"""
        if self.running:
            return
        self.stop_flag.clear()
        self.thread = threading.Thread(target=self._run, name='icy-poller', daemon=True)
        self.thread.start()
        self.logger.info("Started now-playing poller", url=self.url, interval=self.interval)

    def switch(self, url: str):
        """Poll a different stream, starting immediately"""
        with self._lock:
            self.url = url
            self._generation += 1
            self._wake.set()
        self.logger.debug("Switched poller stream", url=url)

    def stop(self, timeout: Optional[float] = None):
        """Stop polling; outstanding results are discarded"""
        with self._lock:
            self.stop_flag.set()
            self._generation += 1
            self._wake.set()
        thread = self.thread
        # stop() may be called from a callback, which runs on a poll thread
        if thread is not None and threading.current_thread() not in (thread, self._poll_thread):
            thread.join(timeout)
        self.logger.info("Stopped now-playing poller", url=self.url)

    def _run(self):
        while not self.stop_flag.is_set():
            with self._lock:
                url, generation = self.url, self._generation
                self._wake.clear()
                # Never stack polls for the same stream; a switch starts a new one at once
                busy = (self._poll_thread is not None and self._poll_thread.is_alive()
                        and self._poll_generation == generation)
                if not busy:
                    self._poll_generation = generation
                    self._poll_thread = threading.Thread(
                        target=self._poll, args=(url, generation),
                        name='icy-poll', daemon=True)
                    self._poll_thread.start()

            self._wake.wait(self.interval)

    def _poll(self, url: str, generation: int):
        title = self.fetcher.fetch(url)

        with self._lock:
            if generation != self._generation or self.stop_flag.is_set():
                self.logger.debug("Dropped stale now-playing result", url=url)
                return
            try:
                self.callback(title)
            except Exception as e:
                self.logger.error("Now-playing callback failed", url=url, error=str(e))
