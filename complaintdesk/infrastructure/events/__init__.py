"""
Change Feed Infrastructure
==========================

In-process publish/subscribe channel for row change events.

Consumers either poll with a cursor (`since`) or hold a subscription
(`subscribe`). Events are refresh signals: clients reload the affected list
instead of applying diffs, so a dropped event only delays a refresh.

Events can be scoped to an owner; a subscriber with an owner filter only
sees that owner's rows, an unfiltered subscriber sees everything.
"""

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, AsyncIterator, Deque, Dict, List, Optional

from complaintdesk.config import settings
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change."""
    cursor: int
    event: str
    table: str
    record_id: str
    owner_id: Optional[str]
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def visible_to(self, owner_id: Optional[str]) -> bool:
        return owner_id is None or self.owner_id == owner_id

    def to_dict(self) -> dict:
        return {
            "cursor": self.cursor,
            "event": self.event,
            "table": self.table,
            "record_id": self.record_id,
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
        }


class ChangeFeed:
    """
    Bounded buffer of recent events plus live subscriber queues.

    Single event loop assumed; no locking.
    """

    def __init__(self, buffer_size: int = 500, subscriber_queue_size: int = 100):
        self._events: Deque[ChangeEvent] = deque(maxlen=buffer_size)
        self._cursor = 0
        self._subscriber_queue_size = subscriber_queue_size
        self._subscribers: Dict[asyncio.Queue, Optional[str]] = {}

    @property
    def latest_cursor(self) -> int:
        return self._cursor

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(
        self,
        event: str,
        table: str,
        record_id: str,
        owner_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> ChangeEvent:
        """Append an event and fan it out to matching subscribers."""
        self._cursor += 1
        change = ChangeEvent(
            cursor=self._cursor,
            event=event,
            table=table,
            record_id=record_id,
            owner_id=owner_id,
            payload=payload or {},
        )
        self._events.append(change)

        for queue, owner_filter in self._subscribers.items():
            if not change.visible_to(owner_filter):
                continue
            try:
                queue.put_nowait(change)
            except asyncio.QueueFull:
                logger.warning(
                    "Change feed subscriber is lagging, event dropped",
                    extra={"cursor": change.cursor, "table": table}
                )

        return change

    def since(
        self,
        cursor: int = 0,
        owner_id: Optional[str] = None,
        limit: int = 100
    ) -> List[ChangeEvent]:
        """Events newer than `cursor` visible to `owner_id`, oldest first."""
        matched = [
            e for e in self._events
            if e.cursor > cursor and e.visible_to(owner_id)
        ]
        return matched[:limit]

    @asynccontextmanager
    async def subscribe(self, owner_id: Optional[str] = None) -> AsyncIterator[asyncio.Queue]:
        """
        Register a live subscriber for the duration of the context.

        Usage:
            async with feed.subscribe(owner_id=user_id) as queue:
                event = await queue.get()
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._subscriber_queue_size)
        self._subscribers[queue] = owner_id
        try:
            yield queue
        finally:
            self._subscribers.pop(queue, None)


@lru_cache()
def get_change_feed() -> ChangeFeed:
    """Process-wide change feed."""
    return ChangeFeed(buffer_size=settings.change_feed_buffer_size)
