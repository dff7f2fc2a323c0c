"""
Websocket transport built on websocket-client.

Runs one WebSocketApp at a time on a background thread. When a connection
drops, the listener is told whether another attempt will follow; after
``reconnect_attempts`` consecutive failed reconnects, or once the listener
refuses to reconnect, the final close is reported with ``will_retry=False``.
All listener callbacks run on the transport thread.
"""

import threading
from collections.abc import Callable
from typing import Any, Optional

import structlog
import websocket

from ..errors import RecoverableError, TransportError
from .base import FeedTransport, TransportListener

logger = structlog.get_logger(__name__)


class WebSocketFeedTransport(FeedTransport):
    """websocket-client transport with a fixed reconnect interval."""

    def __init__(
        self,
        url: str,
        listener: TransportListener,
        reconnect_attempts: int = 5,
        reconnect_interval_ms: int = 3000,
        ping_interval_s: int = 30,
        app_factory: Callable[..., Any] = websocket.WebSocketApp,
    ):
        self.logger = logger
        self.url = url
        self.listener = listener
        self.reconnect_attempts = reconnect_attempts
        self.reconnect_interval_ms = reconnect_interval_ms
        self.ping_interval_s = ping_interval_s
        self._app_factory = app_factory

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._ws_app: Optional[Any] = None
        self._thread: Optional[threading.Thread] = None
        self._connected = False
        self._opened_this_attempt = False

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._connected

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self.run, name="tradetape-ws", daemon=True)
            self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def run(self) -> None:
        """Blocking connect/reconnect loop."""
        retries = 0

        while True:
            # close() sets the stop event before taking the lock, so either the
            # check below sees it or close() sees the new app
            with self._lock:
                if self._stop_event.is_set():
                    break
                self._opened_this_attempt = False
                ws = self._app_factory(
                    self.url,
                    on_open=self._on_open,
                    on_message=self._on_message,
                    on_error=self._on_error,
                    on_close=self._on_close,
                )
                self._ws_app = ws

            ws.run_forever(ping_interval=self.ping_interval_s or 0)

            with self._lock:
                self._connected = False
                self._ws_app = None
                if self._opened_this_attempt:
                    retries = 0

            if self._stop_event.is_set() or not self.listener.should_reconnect():
                break

            status = RecoverableError("websocket disconnected", retry_count=retries,
                                      max_retries=self.reconnect_attempts)
            if status.retries_exhausted:
                self.logger.error("Reconnect attempts exhausted; going offline",
                                  url=self.url, attempts=retries)
                break

            retries += 1
            self.logger.info("Websocket disconnected; reconnecting", url=self.url,
                             attempt=retries, max_attempts=self.reconnect_attempts,
                             interval_ms=self.reconnect_interval_ms)
            self.listener.on_close(will_retry=True)

            if self._stop_event.wait(self.reconnect_interval_ms / 1000.0):
                break

        self.listener.on_close(will_retry=False)

    def send(self, text: str) -> None:
        with self._lock:
            ws = self._ws_app
            connected = self._connected

        if ws is None or not connected:
            raise TransportError("Websocket is not connected", operation="send")

        try:
            ws.send(text)
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"Websocket send failed: {e}", operation="send") from e

    def close(self) -> None:
        self._stop_event.set()
        with self._lock:
            ws = self._ws_app
        if ws is not None:
            try:
                ws.close()
            except (websocket.WebSocketException, OSError):
                self.logger.debug("Websocket close failed", exc_info=True)

    def _on_open(self, ws) -> None:
        with self._lock:
            stopping = self._stop_event.is_set()
            if not stopping:
                self._connected = True
                self._opened_this_attempt = True
        if stopping:
            self.logger.info("Websocket opened after close; dropping it", url=self.url)
            ws.close()
            return
        self.logger.info("Websocket connection opened", url=self.url)
        self.listener.on_open()

    def _on_message(self, _ws, message: str) -> None:
        self.listener.on_message(message)

    def _on_error(self, _ws, error) -> None:
        # Non-fatal; the reconnect loop handles recovery
        self.logger.warning("Websocket error", url=self.url, error=str(error))

    def _on_close(self, _ws, status_code, msg) -> None:
        with self._lock:
            self._connected = False
        self.logger.info("Websocket connection closed", url=self.url,
                         status_code=status_code, reason=msg)
