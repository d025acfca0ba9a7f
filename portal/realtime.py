"""
Realtime listener for the portal.

Runs a background thread holding a WebSocket to ``/api/v1/ws`` and feeds
every ``{channel, data}`` frame into the store. The connection is kept
alive with ``{"type": "ping"}`` frames and re-established with capped
exponential backoff. Signing in or out reconnects at once so the socket
always carries the current session token.
"""

import json
import logging
import threading
from typing import Optional
from urllib.parse import urlencode

from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

from portal.config import config

logger = logging.getLogger(__name__)


class RealtimeListener:
    """Background WebSocket consumer bound to a :class:`PortalStore`."""

    def __init__(self, store, url: str = None, ping_interval: float = None, max_delay: float = None):
        self.store = store
        self.url = url or config.WS_URL
        self.ping_interval = ping_interval or config.WS_PING_INTERVAL_SECONDS
        self.max_delay = max_delay or config.WS_RECONNECT_MAX_DELAY_SECONDS
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._ws = None
        self._reconnect = threading.Event()
        store.on_token_change(self._on_token_change)

    def connection_url(self) -> str:
        token = self.store.auth.auth_token
        if not token:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode({'token': token})}"

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="portal-realtime", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        ws = self._ws
        if ws is not None:
            ws.close()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _on_token_change(self, token: Optional[str]) -> None:
        """Drop the current socket so the next connection carries the new token."""
        if not self.is_running:
            return
        logger.info("Session changed, reconnecting realtime listener")
        self._reconnect.set()
        ws = self._ws
        if ws is not None:
            ws.close()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def reconnect_delay(self, attempts: int) -> float:
        """Seconds to wait before reconnect attempt ``attempts`` (1-based)."""
        return min(self.max_delay, 0.5 * (2 ** attempts))

    def dispatch(self, raw: str) -> bool:
        """Hand one server frame to the store; returns False when it was not an event."""
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed realtime frame")
            return False
        if not isinstance(frame, dict) or "channel" not in frame:
            return False
        return self.store.handle_realtime_event(frame["channel"], frame.get("data") or {})

    def _listen(self, ws) -> None:
        while not self._stop.is_set():
            try:
                raw = ws.recv(timeout=self.ping_interval)
            except TimeoutError:
                ws.send(json.dumps({"type": "ping"}))
                continue
            self.dispatch(raw)

    def _run(self) -> None:
        attempts = 0
        while not self._stop.is_set():
            try:
                with connect(self.connection_url(), open_timeout=config.API_TIMEOUT_SECONDS) as ws:
                    self._ws = ws
                    attempts = 0
                    self.store.set_realtime_connected(True)
                    logger.info("Realtime connection established")
                    self._listen(ws)
            except (OSError, TimeoutError, WebSocketException) as e:
                if not self._stop.is_set():
                    logger.warning(f"Realtime connection lost: {e}")
            finally:
                self._ws = None
                self.store.set_realtime_connected(False)

            if self._stop.is_set():
                break
            if self._reconnect.is_set():
                self._reconnect.clear()
                attempts = 0
                continue
            attempts += 1
            delay = self.reconnect_delay(attempts)
            logger.debug(f"Reconnecting in {delay:.1f}s (attempt {attempts})")
            self._stop.wait(delay)
