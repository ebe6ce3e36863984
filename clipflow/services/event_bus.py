"""Project-scoped publish/subscribe for progress events.

Each subscriber owns a bounded asyncio.Queue. publish() hands the event to
every subscriber queue without awaiting, in publication order, and then
schedules a snapshot write of the whole project. A subscriber that falls
behind loses its oldest queued events rather than blocking the pipeline.

Subscribers first receive a synthetic `initial_state` event carrying the
current project snapshot. close() ends every subscription with a None
sentinel after the last event.

Usage:
    subscription = bus.subscribe()
    try:
        async for event in subscription:
            ...
    finally:
        bus.unsubscribe(subscription)
"""

import asyncio
from typing import Any

from clipflow.schemas.events import PipelineEvent, PipelineEventType
from clipflow.schemas.project import Project
from clipflow.services.snapshot_writer import ProjectSnapshotWriter
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class Subscription:
    """Bounded event queue of one subscriber.

    The `initial_state` event is held apart from the bounded queue and is
    always returned first, so eviction never removes it. Iterating yields
    events until the bus is closed.
    """

    def __init__(self, maxsize: int, initial: PipelineEvent | None = None) -> None:
        self.queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._initial = initial

    def deliver(self, item: PipelineEvent | None) -> None:
        """Enqueue without blocking, evicting the oldest event when full."""
        while True:
            try:
                self.queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                self.queue.get_nowait()
                self.dropped += 1

    def empty(self) -> bool:
        return self._initial is None and self.queue.empty()

    def get_nowait(self) -> PipelineEvent | None:
        """Next event without waiting; raises asyncio.QueueEmpty when none."""
        if self._initial is not None:
            event, self._initial = self._initial, None
            return event
        return self.queue.get_nowait()

    async def get(self) -> PipelineEvent | None:
        if self._initial is not None:
            return self.get_nowait()
        return await self.queue.get()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> PipelineEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class EventBus:
    """Fan-out of one project's events plus snapshot triggering."""

    def __init__(
        self,
        project: Project,
        writer: ProjectSnapshotWriter | None = None,
        queue_size: int = 256,
    ) -> None:
        self.project = project
        self.writer = writer
        self.queue_size = queue_size
        self._subscribers: list[Subscription] = []
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(
        self,
        event_type: PipelineEventType,
        clip_index: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> PipelineEvent:
        """Build an event for this project and publish it."""
        event = PipelineEvent(
            type=event_type,
            project_id=self.project.id,
            clip_index=clip_index,
            data=data,
        )
        self.publish(event)
        return event

    def publish(self, event: PipelineEvent) -> None:
        """Deliver event to every subscriber, then schedule a snapshot write."""
        for subscription in list(self._subscribers):
            before = subscription.dropped
            subscription.deliver(event)
            if subscription.dropped > before:
                log.warning(
                    "event_dropped_slow_subscriber",
                    project_id=self.project.id,
                    dropped_total=subscription.dropped,
                )

        if self.writer is not None:
            self.writer.schedule(self.project)

    def subscribe(self) -> Subscription:
        """Register a subscriber; its first event is `initial_state`."""
        subscription = Subscription(
            self.queue_size,
            initial=PipelineEvent(
                type=PipelineEventType.INITIAL_STATE,
                project_id=self.project.id,
                data=self.project.to_snapshot(),
            ),
        )
        if self._closed:
            subscription.deliver(None)
        else:
            self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def close(self) -> None:
        """End every subscription after the events already queued."""
        self._closed = True
        for subscription in self._subscribers:
            subscription.deliver(None)
        self._subscribers.clear()
