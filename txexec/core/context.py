"""Cancellation and deadline carrier passed to every suspension point."""

from __future__ import annotations

import asyncio
import inspect
import threading
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from .exceptions import ContextCancelledError, ContextError, DeadlineExceededError

T = TypeVar("T")


class Context:
    """
    Thread-safe cancellation and deadline holder.

    A context is done once it is cancelled, once its deadline (a
    ``time.monotonic()`` value) has passed, or once its parent is done.
    Derived contexts never outlive their parent's deadline.

    Examples:
        >>> ctx = Context.background().with_timeout(5.0)
        >>> ctx.check()  # raises once cancelled or expired
        >>> ctx.cancel()
        >>> ctx.err()
        ContextCancelledError('context canceled')
    """

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None):
        self._parent = parent
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

    @classmethod
    def background(cls) -> "Context":
        """Return a fresh context that is never cancelled and has no deadline."""
        return cls()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def with_cancel(self) -> "Context":
        return Context(parent=self)

    def with_deadline(self, deadline: float) -> "Context":
        return Context(parent=self, deadline=deadline)

    def with_timeout(self, seconds: float) -> "Context":
        return Context(parent=self, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_cancel_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Call ``callback`` once when this context or one of its ancestors is cancelled.

        The callback runs in the thread that calls ``cancel()``, or right away
        if the context is already cancelled.

        Returns:
            A function that unregisters the callback.
        """
        guard = threading.Lock()
        fired = []

        def once() -> None:
            with guard:
                if fired:
                    return
                fired.append(True)
            callback()

        return self._register(once)

    def _register(self, callback: Callable[[], None]) -> Callable[[], None]:
        with self._lock:
            fire_now = self._cancelled.is_set()
            if not fire_now:
                self._callbacks.append(callback)
        if fire_now:
            callback()
            return lambda: None

        remove_from_parent = self._parent._register(callback) if self._parent is not None else None

        def remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)
            if remove_from_parent is not None:
                remove_from_parent()

        return remove

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def err(self) -> Optional[ContextError]:
        """Return why the context is done, or ``None`` while it is still live."""
        if self._cancelled.is_set():
            return ContextCancelledError()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        if self._parent is not None:
            return self._parent.err()
        return None

    def done(self) -> bool:
        return self.err() is not None

    def check(self) -> None:
        """Raise the context error if the context is done."""
        error = self.err()
        if error is not None:
            raise error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the context is done or ``timeout`` elapses.

        Returns:
            True if the context is done.
        """
        limit = None if timeout is None else time.monotonic() + timeout
        while not self.done():
            step = 0.05
            remaining = self.remaining()
            if remaining is not None:
                step = min(step, remaining)
            if limit is not None:
                left = limit - time.monotonic()
                if left <= 0:
                    return False
                step = min(step, left)
            self._cancelled.wait(step)
        return True

    def __repr__(self) -> str:
        state = self.err()
        return f"Context(deadline={self._deadline!r}, err={state!r})"


def background() -> Context:
    return Context.background()


async def run_bounded(ctx: Context, coro: Awaitable[T]) -> T:
    """
    Await ``coro`` until it finishes or the context is done, whichever comes first.

    The awaited work is cancelled when the context is cancelled or its
    deadline passes. Errors raised by the work itself, driver timeouts
    included, propagate unchanged.

    Raises:
        ContextCancelledError / DeadlineExceededError: the context was done
            before the call or became done while waiting
    """
    error = ctx.err()
    if error is not None:
        if inspect.iscoroutine(coro):
            coro.close()
        raise error

    loop = asyncio.get_running_loop()
    cancelled = asyncio.Event()

    def wake() -> None:
        try:
            loop.call_soon_threadsafe(cancelled.set)
        except RuntimeError:
            # Loop already closed: nobody is waiting any more.
            pass

    work = asyncio.ensure_future(coro)
    watcher = asyncio.ensure_future(cancelled.wait())
    remove_callback = ctx.add_cancel_callback(wake)
    finished = set()
    try:
        finished, _ = await asyncio.wait(
            {work, watcher}, timeout=ctx.remaining(), return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        remove_callback()
        watcher.cancel()
        if not work.done():
            work.cancel()
            await asyncio.wait({work})
            if not work.cancelled():
                # Mark the late outcome as retrieved; the context error wins.
                work.exception()

    if work in finished:
        return work.result()
    raise ctx.err() or DeadlineExceededError()
