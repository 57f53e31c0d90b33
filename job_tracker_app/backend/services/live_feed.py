"""
Live change notification for per-user application collections.

Writers call ``change_feed.publish(user_id)`` after a successful commit.
Subscribers hold an ``ApplicationSubscription``: on entry it delivers the current
collection, then one fresh snapshot each time the user's documents change.
Notifications are coalesced: a burst of writes can produce a single snapshot,
which is always the full, newly-sorted collection.

Writes happen on threadpool workers while subscribers await on an event loop,
so each listener is woken through ``loop.call_soon_threadsafe``.
"""
import asyncio
import logging
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Set

from starlette.concurrency import run_in_threadpool

from .. import schemas

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[], List[schemas.JobApplication]]


class _Listener:
    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop
        self.changed = asyncio.Event()

    def notify(self) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.changed.set)


class ChangeFeed:
    """Thread-safe registry of listeners keyed by owner id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[str, Set[_Listener]] = defaultdict(set)

    def register(self, user_id: str, listener: _Listener) -> None:
        with self._lock:
            self._listeners[user_id].add(listener)

    def unregister(self, user_id: str, listener: _Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(user_id)
            if listeners is None:
                return
            listeners.discard(listener)
            if not listeners:
                del self._listeners[user_id]

    def publish(self, user_id: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(user_id, ()))
        for listener in listeners:
            listener.notify()
        if listeners:
            logger.debug("Notified %d listener(s) for user %s", len(listeners), user_id)

    def listener_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(user_id, ()))

    def total_listeners(self) -> int:
        with self._lock:
            return sum(len(listeners) for listeners in self._listeners.values())


change_feed = ChangeFeed()


class ApplicationSubscription:
    """
    Scoped live query over one user's applications.

    Usage::

        async with ApplicationSubscription(user_id, loader) as snapshots:
            async for applications in snapshots:
                ...

    Leaving the ``async with`` block (normally, by exception, or by task
    cancellation) unregisters the listener; no snapshot is produced after that.
    """

    def __init__(self, user_id: str, load_snapshot: SnapshotLoader, feed: ChangeFeed = change_feed):
        self.user_id = user_id
        self._load_snapshot = load_snapshot
        self._feed = feed
        self._listener = None

    async def __aenter__(self) -> "ApplicationSubscription":
        self._listener = _Listener(asyncio.get_running_loop())
        self._feed.register(self.user_id, self._listener)
        logger.debug("Subscription opened for user %s", self.user_id)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._listener is not None:
            self._feed.unregister(self.user_id, self._listener)
            self._listener = None
            logger.debug("Subscription closed for user %s", self.user_id)

    @property
    def active(self) -> bool:
        return self._listener is not None

    def __aiter__(self):
        return self._snapshots()

    async def _snapshots(self):
        if self._listener is None:
            raise RuntimeError("Subscription must be entered before iterating")
        # Registered before the first load, so no change can slip between them
        yield await run_in_threadpool(self._load_snapshot)
        while self._listener is not None:
            await self._listener.changed.wait()
            if self._listener is None:
                return
            self._listener.changed.clear()
            yield await run_in_threadpool(self._load_snapshot)
