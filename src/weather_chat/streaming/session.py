"""
Stream session controller: one "ask a question" operation at a time.
"""
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Protocol
import asyncio
import logging

import aiohttp

from weather_chat.config.settings import Settings, get_settings
from weather_chat.exceptions import (
    NetworkFailure,
    OfflineError,
    StreamCancelled,
    WeatherChatError,
)
from .reader import AgentStreamClient

logger = logging.getLogger(__name__)

ConnectivityCheck = Callable[[], Awaitable[bool]]
FragmentCallback = Callable[[str], None]


class StreamClient(Protocol):
    def stream(self, user_input: str) -> AsyncIterator[str]:
        ...


@dataclass
class SessionState:
    """Liveness of the current stream and the token that cancels it."""
    active: bool = False
    cancel_token: asyncio.Event = field(default_factory=asyncio.Event)


class CallbackError(Exception):
    """Carries an exception raised by a fragment callback out of the pump task."""

    def __init__(self, original: BaseException):
        super().__init__(repr(original))
        self.original = original


def make_connectivity_check(host: str, port: int, timeout: float) -> ConnectivityCheck:
    """Build a check that reports whether a TCP connection to host:port succeeds."""

    async def check() -> bool:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        return True

    return check


async def classify_error(exc: BaseException, is_online: ConnectivityCheck) -> WeatherChatError:
    """Map a transport failure to the error shown to the user."""
    if isinstance(exc, WeatherChatError):
        return exc
    if not await is_online():
        return OfflineError()
    if isinstance(exc, aiohttp.ClientConnectionError):
        return NetworkFailure()
    if isinstance(exc, asyncio.TimeoutError):
        return NetworkFailure("The request timed out. Please try again.")
    return NetworkFailure(str(exc) or type(exc).__name__)


class StreamSession:
    """Runs at most one agent stream at a time.

    ``send`` supersedes any stream still in flight. Transport failures never
    escape ``send``; they are mapped and left on ``error``.
    """

    def __init__(
        self,
        client: Optional[StreamClient] = None,
        connectivity_check: Optional[ConnectivityCheck] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.client = client or AgentStreamClient(settings)
        if connectivity_check is None:
            cfg = settings.client_config
            connectivity_check = make_connectivity_check(
                cfg.connectivity_probe_host, cfg.connectivity_probe_port, cfg.connectivity_probe_timeout
            )
        self.connectivity_check = connectivity_check
        self.state = SessionState()
        self.error: Optional[WeatherChatError] = None
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[["StreamSession"], None]] = []

    @property
    def active(self) -> bool:
        return self.state.active

    def add_listener(self, listener: Callable[["StreamSession"], None]) -> Callable[[], None]:
        """Call ``listener`` whenever ``active`` or ``error`` changes; returns an unsubscribe."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    async def send(self, text: str, on_fragment: FragmentCallback) -> Optional[WeatherChatError]:
        """Stream the answer to ``text``, handing each fragment to ``on_fragment``.

        Returns None on completion, a ``StreamCancelled`` when the stream was
        cancelled or superseded, or the mapped error that was left on
        ``error``. Exceptions raised by ``on_fragment`` propagate to the caller.
        """
        self.cancel()

        state = SessionState(active=True)
        self.state = state
        self.error = None
        self._notify()

        task = asyncio.ensure_future(self._pump(text, on_fragment, state.cancel_token))
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            # The caller itself went away; take the transport down with it
            task.cancel()
            state.cancel_token.set()
            self._finish(state)
            raise

        exc = None if task.cancelled() else task.exception()
        if isinstance(exc, CallbackError):
            self._finish(state)
            raise exc.original
        if exc is not None and not isinstance(exc, Exception):
            self._finish(state)
            raise exc

        if task.cancelled() or state.cancel_token.is_set():
            logger.info("Stream cancelled")
            return StreamCancelled()

        if exc is None:
            logger.info("Stream completed")
            self._finish(state)
            return None

        error = await classify_error(exc, self.connectivity_check)
        if state.cancel_token.is_set():
            # Superseded while we were classifying
            return StreamCancelled()
        logger.error(f"Stream failed ({error.kind.value}): {error}")
        self.error = error
        self._finish(state)
        return error

    def _finish(self, state: SessionState) -> None:
        if self.state is state:
            self._task = None
        if state.active:
            state.active = False
            self._notify()

    async def _pump(self, text: str, on_fragment: FragmentCallback, cancel_token: asyncio.Event):
        async with aclosing(self.client.stream(text)) as fragments:
            async for fragment in fragments:
                if cancel_token.is_set():
                    break
                try:
                    on_fragment(fragment)
                except asyncio.CancelledError:
                    raise
                except BaseException as e:
                    raise CallbackError(e) from e

    def cancel(self) -> None:
        """Abort the in-flight stream, if any. Its ``send`` returns ``StreamCancelled``."""
        self.state.cancel_token.set()
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling in-flight stream")
            self._task.cancel()
        self._task = None
        if self.state.active:
            self.state.active = False
            self._notify()
