"""
Abort signals for cooperative cancellation of async requests.

An AbortSignal is a one-shot cancellation handle: it flips from not-aborted to
aborted exactly once and notifies its listeners at that moment. Several
independent signals (user navigation, timeouts, an explicit stop) can be
merged into one derived signal with `any_signal`.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[["AbortSignal"], None]


class AbortError(Exception):
    """Raised when an operation is stopped through an abort signal."""

    def __init__(self, reason: Any = None):
        self.reason = reason
        super().__init__(reason if reason is not None else "This operation was aborted")


class ConfigurationError(TypeError):
    """Raised when a signal combinator is called without any usable signal."""
    pass


class AbortSignal:
    """
    One-shot cancellation handle.

    Listeners registered with `add_listener` fire at most once, synchronously,
    in registration order, when the signal aborts.
    """

    def __init__(self):
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[Listener] = []
        self._waiters: list[asyncio.Future] = []

    @classmethod
    def abort(cls, reason: Any = None) -> "AbortSignal":
        """Return a signal that is already aborted with `reason`."""
        signal = cls()
        signal._abort(reason if reason is not None else AbortError())
        return signal

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Register a one-shot abort listener.

        Args:
            listener: Called with this signal when it aborts.

        Returns:
            A disposer that removes the listener. Calling it more than once is harmless.
        """
        if self._aborted:
            return lambda: None

        self._listeners.append(listener)

        def dispose() -> None:
            self.remove_listener(listener)

        return dispose

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def throw_if_aborted(self) -> None:
        if self._aborted:
            raise _abort_exception(self._reason)

    async def wait(self) -> Any:
        """Suspend until the signal aborts and return its reason."""
        if self._aborted:
            return self._reason
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
        return self._reason

    def _abort(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Abort listener {listener!r} raised: {e}", exc_info=True)

        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def __repr__(self) -> str:
        state = f"aborted reason={self._reason!r}" if self._aborted else "pending"
        return f"<AbortSignal {state}>"


class AbortController:
    """Owner side of an AbortSignal."""

    def __init__(self):
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        if reason is None:
            reason = AbortError()
        self.signal._abort(reason)


def _abort_exception(reason: Any) -> BaseException:
    if isinstance(reason, BaseException):
        return reason
    return AbortError(reason)


def _is_signal(candidate: Any) -> bool:
    return (
        candidate is not None
        and isinstance(getattr(candidate, "aborted", None), bool)
        and callable(getattr(candidate, "add_listener", None))
    )


def any_signal(signals: Iterable[Optional[AbortSignal]]) -> AbortSignal:
    """
    Combine several abort signals into one derived signal.

    The derived signal aborts as soon as any source aborts and carries that
    source's reason. Once it has fired, every listener it installed on the
    sources is removed, so later aborts of other sources are not observed.

    Args:
        signals: Signals to combine. None entries and objects that are not
            signals are ignored.

    Returns:
        The derived AbortSignal.

    Raises:
        ConfigurationError: If no usable signal is left after filtering.
    """
    sources = [signal for signal in (signals or []) if _is_signal(signal)]
    if not sources:
        raise ConfigurationError("at least one signal required")

    for source in sources:
        if source.aborted:
            return AbortSignal.abort(source.reason)

    controller = AbortController()
    disposers: list[Callable[[], None]] = []

    def cleanup() -> None:
        for dispose in disposers:
            dispose()
        disposers.clear()

    def on_abort(source: AbortSignal) -> None:
        controller.abort(source.reason)
        cleanup()

    # No await between the aborted check above and this loop.
    for source in sources:
        disposers.append(source.add_listener(on_abort))

    return controller.signal


def timeout_signal(delay: float) -> AbortSignal:
    """Return a signal that aborts with TimeoutError after `delay` seconds."""
    controller = AbortController()
    loop = asyncio.get_running_loop()
    handle = loop.call_later(
        delay,
        lambda: controller.abort(TimeoutError(f"Signal timed out after {delay}s")),
    )
    controller.signal.add_listener(lambda _signal: handle.cancel())
    return controller.signal


async def race_signal(awaitable: Awaitable[T], signal: Optional[AbortSignal] = None) -> T:
    """
    Await `awaitable` unless `signal` aborts first.

    When the signal aborts, the awaitable is cancelled and the abort reason is
    raised (wrapped in AbortError unless it is already an exception).
    """
    if signal is None:
        return await awaitable

    if signal.aborted:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise _abort_exception(signal.reason)

    task = asyncio.ensure_future(awaitable)
    dispose = signal.add_listener(lambda _signal: task.cancel())
    try:
        return await task
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if signal.aborted and not (current is not None and current.cancelling()):
            raise _abort_exception(signal.reason) from None
        raise
    finally:
        dispose()
