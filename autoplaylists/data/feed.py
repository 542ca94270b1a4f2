import asyncio
from typing import List

from autoplaylists.core import StorageChange


class Subscription:
    """
    One consumer's view of a ChangeFeed.

    Changes are queued in publication order until the consumer reads them,
    either with `await get()` or by iterating with `async for`.
    """

    def __init__(self, feed: "ChangeFeed"):
        self._feed = feed
        self._queue: asyncio.Queue[StorageChange] = asyncio.Queue()
        self.closed = False

    def _deliver(self, change: StorageChange) -> None:
        self._queue.put_nowait(change)

    async def get(self) -> StorageChange:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._feed._unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> StorageChange:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        return await self.get()


class ChangeFeed:
    """Broadcasts storage changes to every open subscription."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, change: StorageChange) -> None:
        for subscription in list(self._subscriptions):
            subscription._deliver(change)

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
