"""Push-based live queries over the backing store.

A ``LiveQuery`` keeps no copy of the data it serves. Every notification
re-reads the authoritative result through its loader and hands the whole list
to each subscriber, which replaces whatever it showed before.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

T = TypeVar("T")

Unsubscribe = Callable[[], None]

logger = logging.getLogger(__name__)


class Subscription(Generic[T]):
    """One subscriber attached to one key of a live query."""

    __slots__ = ("key", "callback", "active", "_owner")

    def __init__(self, owner: LiveQuery[T], key: str, callback: Callable[[list[T]], None]) -> None:
        self._owner = owner
        self.key = key
        self.callback = callback
        self.active = True

    def deliver(self, snapshot: list[T]) -> None:
        if not self.active:
            return
        try:
            self.callback(list(snapshot))
        except Exception:
            logger.exception("%s subscriber for %r raised", self._owner.name, self.key)

    def cancel(self) -> None:
        """Stop deliveries; no callback runs once this returns."""
        if self.active:
            self.active = False
            self._owner._detach(self)


class LiveQuery(Generic[T]):
    """Keyed change subscriptions fed by an async loader.

    Deliveries for one key are serialized, so a subscriber observes snapshots
    in the order the underlying writes were committed.
    """

    def __init__(self, loader: Callable[[str], Awaitable[Sequence[T]]], *, name: str) -> None:
        self.name = name
        self._loader = loader
        self._subscribers: dict[str, list[Subscription[T]]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load(self, key: str) -> list[T]:
        """Read the current result for ``key`` without notifying anyone."""
        return list(await self._loader(key))

    async def subscribe(self, key: str, callback: Callable[[list[T]], None]) -> Unsubscribe:
        """Deliver the current result for ``key`` now and after every change.

        Returns:
            A callable that cancels the subscription synchronously.
        """
        subscription = Subscription(self, key, callback)
        async with self._locks[key]:
            snapshot = await self.load(key)
            subscription.deliver(snapshot)
            if subscription.active:
                self._subscribers[key].append(subscription)
        return subscription.cancel

    async def notify(self, key: str) -> None:
        """Re-read ``key`` and push the fresh result to its subscribers."""
        if not self._subscribers.get(key):
            return
        async with self._locks[key]:
            subscribers = [sub for sub in self._subscribers.get(key, []) if sub.active]
            if not subscribers:
                return
            snapshot = await self.load(key)
            for subscription in subscribers:
                subscription.deliver(snapshot)

    def has_subscribers(self, key: str) -> bool:
        return bool(self._subscribers.get(key))

    def keys(self) -> list[str]:
        """Keys that currently have at least one subscriber."""
        return [key for key, subs in self._subscribers.items() if subs]

    def _detach(self, subscription: Subscription[T]) -> None:
        subscribers = self._subscribers.get(subscription.key)
        if not subscribers:
            return
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._subscribers.pop(subscription.key, None)
            lock = self._locks.get(subscription.key)
            if lock is not None and not lock.locked():
                self._locks.pop(subscription.key, None)
