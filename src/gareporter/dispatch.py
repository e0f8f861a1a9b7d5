"""Fire-and-forget delivery of hits on a background event loop."""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from typing import Any, Coroutine, Protocol

import httpx

from gareporter.config.models import TrackerConfig
from gareporter.encoding import TrackingRequest
from gareporter.errors import TransportError
from gareporter.runtime_logging import RuntimeLogger, get_runtime_logger
from gareporter.version import __version__

DEFAULT_TIMEOUT = 5.0


class HttpClient(Protocol):
    async def get(self, url: str) -> int: ...

    async def aclose(self) -> None: ...


class HttpxClient:
    """`HttpClient` backed by a lazily created `httpx.AsyncClient`."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def get(self, url: str) -> int:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                headers={"User-Agent": f"gareporter/{__version__}"},
            )
        response = await self._client.get(url)
        return response.status_code

    async def aclose(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()


class Dispatcher:
    """Hands requests to a loop thread and never reports back to the caller.

    There is no retry and no queue: every `send` produces at most one GET,
    and failures end up in the runtime log when quiet mode is off.
    """

    def __init__(
        self,
        config: TrackerConfig,
        client: HttpClient | None = None,
        *,
        logger: RuntimeLogger | None = None,
    ) -> None:
        self.config = config
        self.client = client or HttpxClient()
        self._logger = logger or get_runtime_logger()
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._pending: set[concurrent.futures.Future[Any]] = set()

    def send(self, request: TrackingRequest) -> None:
        self.submit(self._deliver(request.url))

    def submit(self, coro: Coroutine[Any, Any, Any]) -> None:
        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(coro, loop)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._finished)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for in-flight work. Returns False if the timeout expired."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = concurrent.futures.wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: float = 2.0) -> None:
        self.flush(timeout)
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None or thread is None:
            return
        try:
            asyncio.run_coroutine_threadsafe(self.client.aclose(), loop).result(timeout)
        except (concurrent.futures.TimeoutError, httpx.HTTPError, OSError) as exc:
            self._logger.debug("dispatch.close_failed", error=str(exc))
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if not thread.is_alive():
            loop.close()
        self._logger.debug("dispatch.closed")

    @property
    def running(self) -> bool:
        return self._loop is not None

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is not None:
                return self._loop
            loop = asyncio.new_event_loop()
            ready = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop, ready),
                name="gareporter-dispatch",
                daemon=True,
            )
            thread.start()
            ready.wait()
            self._loop = loop
            self._thread = thread
        self._logger.debug("dispatch.started", loop_thread=thread.name)
        return loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        loop.run_forever()

    async def _deliver(self, url: str) -> None:
        try:
            status = await self.client.get(url)
        except (httpx.HTTPError, TransportError, OSError) as exc:
            if not self.config.quiet_mode:
                self._logger.warning(
                    "delivery.failed",
                    url=url,
                    error=str(exc) or type(exc).__name__,
                )
            return

        if status >= 400:
            if not self.config.quiet_mode:
                self._logger.warning("delivery.rejected", url=url, status=status)
            return
        self._logger.debug("delivery.sent", url=url, status=status)

    def _finished(self, future: concurrent.futures.Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None and not self.config.quiet_mode:
            self._logger.error("dispatch.task_failed", error=str(exc) or type(exc).__name__)
