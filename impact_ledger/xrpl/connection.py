"""
Connection manager — one shared, self-healing ledger connection.

The manager owns the only LedgerClient its callers use:

    - ``acquire()`` returns the open client, or opens one: primary
      endpoint first, then the fallback once. Concurrent callers queue on
      a lock and re-check, so at most one connect is ever in flight.
    - ``error`` / ``disconnected`` notifications from the client schedule
      a bounded reconnect (policy.max_attempts passes over the
      endpoints, policy.delay apart). A reconnect already running
      suppresses further ones, and a reconnect that finds a newer open
      client keeps it.
    - A liveness task checks every policy.liveness_interval seconds and
      reconnects a silently dropped connection.
    - ``close()`` stops the liveness task and closes the client.

Nothing here is module-global: a process normally builds one manager and
hands it to the payment, mint and query components.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from impact_ledger.config import LedgerSettings, get_settings
from impact_ledger.errors import LedgerConnectionError, RetryExhausted
from impact_ledger.retry import SleepFn, retry_async
from impact_ledger.xrpl.client import LedgerClient, LedgerEvent

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], LedgerClient]


@dataclass(frozen=True)
class ReconnectPolicy:
    """How hard to try when the connection drops.

    Attributes:
        max_attempts: Passes over the endpoint list per reconnect.
        delay: Seconds between passes.
        liveness_interval: Seconds between liveness checks. None disables
            the background check.
    """

    max_attempts: int = 3
    delay: float = 2.0
    liveness_interval: float | None = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got: {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got: {self.delay}")
        if self.liveness_interval is not None and self.liveness_interval <= 0:
            raise ValueError(
                f"liveness_interval must be > 0, got: {self.liveness_interval}"
            )


def _websocket_factory(connect_timeout: float) -> ClientFactory:
    from impact_ledger.xrpl.websocket_client import XrplWebsocketClient

    def factory(url: str) -> LedgerClient:
        return XrplWebsocketClient(url, connect_timeout=connect_timeout)

    return factory


class ConnectionManager:
    """Owns the process's ledger connection.

    Args:
        urls: Endpoints in preference order (primary, fallback).
        client_factory: Builds an unopened LedgerClient for a URL.
            Defaults to XrplWebsocketClient.
        policy: Reconnect and liveness policy.
        sleep: Awaitable sleep. Inject for tests.
    """

    def __init__(
        self,
        urls: Sequence[str],
        *,
        client_factory: ClientFactory | None = None,
        policy: ReconnectPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if not urls:
            raise ValueError("at least one ledger endpoint is required")
        self._urls = tuple(urls)
        self._factory = client_factory or _websocket_factory(10.0)
        self._policy = policy or ReconnectPolicy()
        self._sleep = sleep
        self._client: LedgerClient | None = None
        self._lock = asyncio.Lock()
        self._reconnect_task: asyncio.Task[None] | None = None
        self._liveness_task: asyncio.Task[None] | None = None
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings | None = None,
        *,
        client_factory: ClientFactory | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> ConnectionManager:
        """Build a manager from LedgerSettings (environment by default)."""
        settings = settings or get_settings()
        return cls(
            settings.endpoints,
            client_factory=client_factory or _websocket_factory(settings.connect_timeout),
            policy=ReconnectPolicy(
                max_attempts=settings.reconnect_attempts,
                delay=settings.reconnect_delay,
                liveness_interval=settings.liveness_interval,
            ),
            sleep=sleep,
        )

    @property
    def urls(self) -> tuple[str, ...]:
        return self._urls

    @property
    def policy(self) -> ReconnectPolicy:
        return self._policy

    @property
    def client(self) -> LedgerClient | None:
        """Current client, open or not. None before the first connect."""
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_open()

    @property
    def reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # -----------------------------------------------------------------
    # Acquire / reconnect
    # -----------------------------------------------------------------

    async def acquire(self) -> LedgerClient:
        """Return the shared open client, connecting if needed.

        Raises:
            LedgerConnectionError: If no endpoint accepted a connection,
                or the manager has been closed.
        """
        client = self._client
        if client is not None and client.is_open():
            return client

        async with self._lock:
            # Another caller may have connected while we waited.
            client = self._client
            if client is not None and client.is_open():
                return client
            client = await self._connect_any()
            self._ensure_liveness()
            return client

    async def reconnect(self, stale: LedgerClient | None = None) -> LedgerClient:
        """Replace the current client, retrying per the reconnect policy.

        Args:
            stale: The client to replace. Defaults to the current one. If
                another open client has taken its place by the time the
                lock is held, that client is kept and returned.

        Raises:
            LedgerConnectionError: After policy.max_attempts failed passes.
        """

        if stale is None:
            stale = self._client

        async def attempt() -> LedgerClient:
            async with self._lock:
                current = self._client
                if current is not None and current is not stale and current.is_open():
                    return current
                return await self._connect_any()

        try:
            client = await retry_async(
                attempt,
                max_attempts=self._policy.max_attempts,
                delay=self._policy.delay,
                is_retryable=lambda exc: isinstance(exc, LedgerConnectionError)
                and not self._closed,
                sleep=self._sleep,
                label="ledger reconnect",
            )
        except RetryExhausted as exc:
            raise LedgerConnectionError(
                f"reconnect failed after {exc.attempts} attempt(s)",
                urls=self._urls,
            ) from exc.last_error
        self._ensure_liveness()
        return client

    async def check_liveness(self) -> bool:
        """One liveness check: reconnect if the connection is not open.

        Returns:
            True if the connection is open after the check.
        """
        if self._closed or self.is_connected:
            return self.is_connected
        if self.reconnecting:
            return False
        logger.warning("ledger connection is not open; reconnecting")
        try:
            await self.reconnect()
        except LedgerConnectionError as exc:
            logger.error("liveness reconnect failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        """Stop background tasks and close the connection."""
        self._closed = True
        for task in (self._liveness_task, self._reconnect_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._liveness_task = None
        self._reconnect_task = None
        await self._discard()

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    async def _connect_any(self) -> LedgerClient:
        """Open a client on the first endpoint that accepts. Caller holds the lock."""
        if self._closed:
            raise LedgerConnectionError("connection manager is closed", urls=self._urls)

        await self._discard()
        last_error: Exception | None = None
        for url in self._urls:
            try:
                client = self._factory(url)
                await client.open()
            except Exception as exc:
                logger.warning("could not connect to %s: %s", url, exc)
                last_error = exc
                continue
            client.on(LedgerEvent.ERROR, self._handler_for(client, LedgerEvent.ERROR))
            client.on(
                LedgerEvent.DISCONNECTED,
                self._handler_for(client, LedgerEvent.DISCONNECTED),
            )
            self._client = client
            logger.info("connected to ledger at %s", url)
            return client

        raise LedgerConnectionError(
            f"could not connect to any ledger endpoint ({', '.join(self._urls)})",
            urls=self._urls,
        ) from last_error

    async def _discard(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.close()
        except Exception as exc:
            logger.debug("error closing stale client for %s: %s", client.url, exc)

    def _handler_for(
        self, client: LedgerClient, event: LedgerEvent
    ) -> Callable[[BaseException | None], None]:
        def handler(exc: BaseException | None) -> None:
            if client is not self._client:
                return
            logger.warning("ledger %s on %s: %s", event.value, client.url, exc)
            self._schedule_reconnect(event.value, client)

        return handler

    def _schedule_reconnect(self, reason: str, stale: LedgerClient) -> None:
        if self._closed:
            return
        if self.reconnecting:
            logger.debug("reconnect already in flight; ignoring %s", reason)
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect_in_background(reason, stale)
        )

    async def _reconnect_in_background(self, reason: str, stale: LedgerClient) -> None:
        try:
            await self.reconnect(stale)
        except LedgerConnectionError as exc:
            logger.error("reconnect after %s failed: %s", reason, exc)

    def _ensure_liveness(self) -> None:
        interval = self._policy.liveness_interval
        if interval is None or self._closed:
            return
        if self._liveness_task is not None and not self._liveness_task.done():
            return
        self._liveness_task = asyncio.get_running_loop().create_task(
            self._liveness_loop(interval)
        )

    async def _liveness_loop(self, interval: float) -> None:
        while not self._closed:
            await self._sleep(interval)
            await self.check_liveness()
