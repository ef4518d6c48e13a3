"""
Resilient request wrapper.

Each call races the transport against a deadline timer and resolves to
exactly one Envelope. Timeouts, transport failures, untrusted server
responses and unreadable bodies all resolve to ``SERVER_ERROR_RESPONSE``;
nothing is raised to the caller. A transport call that loses the race is
abandoned, not cancelled, and its late outcome is discarded.
"""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional, Set

import structlog

from .classifier import ServerErrorPredicate, status_classifier
from .config import Config, config as default_config
from .decoder import read_envelope
from .envelope import Envelope, SERVER_ERROR_RESPONSE
from .transport import Transport, create_transport

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MS = 30000

# Transport calls outlive their request after a timeout; the loop only keeps
# weak references to tasks.
_background_tasks: Set[asyncio.Task] = set()


class Settlement:
    """Single-assignment result slot for one call."""

    def __init__(self, loop: asyncio.AbstractEventLoop = None):
        loop = loop or asyncio.get_running_loop()
        self._future = loop.create_future()
        self.outcome: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, envelope: Envelope, outcome: str) -> bool:
        """Store the call result; only the first settlement counts."""
        if self._future.done():
            logger.debug("settlement_discarded", outcome=outcome, settled_by=self.outcome)
            return False
        self.outcome = outcome
        self._future.set_result(envelope)
        return True

    async def wait(self) -> Envelope:
        return await self._future


class ResilientClient:
    """Request wrapper with an injectable transport and server-error policy."""

    def __init__(
        self,
        transport: Transport = None,
        is_server_error: ServerErrorPredicate = None,
        error_response: Envelope = SERVER_ERROR_RESPONSE,
        settings: Config = None,
    ):
        self.settings = settings or default_config
        self.default_timeout = self.settings.get('request', 'timeout_ms', default=DEFAULT_TIMEOUT_MS)
        self.error_response = error_response

        self._owns_transport = transport is None
        self._transport = transport

        if is_server_error is None:
            is_server_error = status_classifier(
                min_status=self.settings.get('classifier', 'server_error_min_status', default=500)
            )
        self.is_server_error = is_server_error

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            self._transport = create_transport(self.settings)
        return self._transport

    def timeout_for(self, options: Mapping[str, Any]) -> float:
        """Deadline in milliseconds; a missing, zero or non-numeric timeout means the default."""
        timeout = options.get('timeout')
        if not timeout:
            return float(self.default_timeout)
        try:
            return float(timeout)
        except (TypeError, ValueError):
            logger.warning("invalid_timeout", timeout=timeout, default_timeout=self.default_timeout)
            return float(self.default_timeout)

    async def request(self, url: str, options: Mapping[str, Any] = None) -> Envelope:
        """Perform one request and return its Envelope. Never raises for request failures."""
        if options is None:
            options = {}

        loop = asyncio.get_running_loop()
        slot = Settlement(loop)
        timeout_ms = self.timeout_for(options)
        start_time = time.monotonic()

        timer = loop.call_later(timeout_ms / 1000.0, self._on_timeout, slot, url, timeout_ms)
        task = loop.create_task(self._invoke(url, options, slot, timer))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

        try:
            envelope = await slot.wait()
        finally:
            timer.cancel()

        logger.debug(
            "request_settled",
            url=url,
            outcome=slot.outcome,
            status=envelope.status,
            ok=envelope.ok,
            elapsed_ms=round((time.monotonic() - start_time) * 1000, 1),
        )
        return envelope

    def _on_timeout(self, slot: Settlement, url: str, timeout_ms: float) -> None:
        if slot.settle(self.error_response, 'timeout'):
            logger.warning("request_timed_out", url=url, timeout_ms=timeout_ms)

    async def _invoke(self, url: str, options: Mapping[str, Any], slot: Settlement, timer: asyncio.TimerHandle) -> None:
        """Transport, classify and decode; every path ends in a settlement attempt."""
        try:
            try:
                response = await self.transport(url, options)
            except Exception as e:
                logger.warning("transport_failed", url=url, error=str(e), error_type=type(e).__name__)
                slot.settle(self.error_response, 'transport_error')
                return
            finally:
                timer.cancel()

            if slot.settled:
                logger.debug("late_response_discarded", url=url, status=getattr(response, 'status', None))
                return

            if self._flags_server_error(url, response):
                slot.settle(self.error_response, 'server_error')
                return

            try:
                envelope = await read_envelope(response)
            except Exception as e:
                logger.warning("unreadable_body", url=url, error=str(e), error_type=type(e).__name__)
                slot.settle(self.error_response, 'unreadable_body')
                return

            slot.settle(envelope, 'decoded')

        except Exception as e:
            logger.error("request_pipeline_error", url=url, error=str(e), exc_info=True)
            slot.settle(self.error_response, 'pipeline_error')

    def _flags_server_error(self, url: str, response: Any) -> bool:
        try:
            flagged = bool(self.is_server_error(response))
        except Exception as e:
            logger.warning("classifier_failed", url=url, error=str(e))
            flagged = True

        if flagged:
            logger.info("server_error_response", url=url, status=getattr(response, 'status', None))
        return flagged

    async def aclose(self) -> None:
        """Close the default transport if this client created it."""
        if self._owns_transport and self._transport is not None:
            await self._transport.aclose()
            self._transport = None

    async def __aenter__(self) -> "ResilientClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


# httpx connection pools are bound to the loop that opened them.
_default_clients: Dict[asyncio.AbstractEventLoop, ResilientClient] = {}


def get_default_client() -> ResilientClient:
    """Return the default client for the running event loop."""
    loop = asyncio.get_running_loop()
    for stale in [other for other in _default_clients if other.is_closed()]:
        del _default_clients[stale]

    client = _default_clients.get(loop)
    if client is None:
        client = _default_clients[loop] = ResilientClient()
        logger.debug("default_client_created", loops=len(_default_clients))
    return client


async def request(url: str, options: Mapping[str, Any] = None) -> Envelope:
    """Perform a request with the shared default client.

    Example:
        envelope = await request('/users', {
            'method': 'POST',
            'timeout': 40000,
            'headers': {'Content-Type': 'application/json'},
            'body': '{"name": "Jack"}',
        })
        if envelope.ok and envelope.is_json:
            ...
    """
    return await get_default_client().request(url, options)
