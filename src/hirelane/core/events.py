from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

NOTIFICATIONS = "notifications"
STATE = "state"

Message = dict[str, Any]


class EventBus:
    """In-process pub/sub keyed by channel name.

    Each subscriber owns an unbounded queue. A subscription only exists once
    its iterator has been advanced for the first time; messages published
    earlier are not replayed.
    """

    def __init__(self) -> None:
        self._channels: dict[str, list[asyncio.Queue[Message]]] = defaultdict(list)
        self._lock = asyncio.Lock()

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, []))

    async def publish(self, channel: str, message: Message) -> int:
        async with self._lock:
            queues = list(self._channels.get(channel, []))
        for queue in queues:
            queue.put_nowait(message)
        return len(queues)

    async def subscribe(self, channel: str) -> AsyncIterator[Message]:
        queue: asyncio.Queue[Message] = asyncio.Queue()
        async with self._lock:
            self._channels[channel].append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            async with self._lock:
                subscribers = self._channels.get(channel, [])
                if queue in subscribers:
                    subscribers.remove(queue)
