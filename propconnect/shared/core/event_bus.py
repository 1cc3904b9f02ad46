from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Set, TypeAlias

EventPayload: TypeAlias = Dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], Awaitable[None]]


class EventBus:
    """Store change notifications: async pub/sub keyed by topic.

    Publishing never blocks the caller. Each handler runs as its own task on
    the running loop, and a failing handler is logged without affecting the
    others.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._logger = logging.getLogger(__name__)
        self._pending_tasks: Set[asyncio.Task] = set()

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        if handler not in self._subscribers[topic]:
            self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        if handler in self._subscribers.get(topic, []):
            self._subscribers[topic].remove(handler)

    def publish_nowait(self, topic: str, payload: EventPayload) -> None:
        """Schedule the topic's handlers.

        Without a running loop nobody would await the handlers, so the event
        is dropped.
        """
        handlers = list(self._subscribers.get(topic, []))
        if not handlers:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug(f"No running loop, dropping event '{topic}'")
            return
        for handler in handlers:
            task = asyncio.create_task(self._safe_dispatch(topic, handler, payload))
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)

    async def wait_until_idle(self, timeout: float = 10.0) -> bool:
        """Wait for pending handlers, including ones they publish in turn.

        Returns:
            True if all tasks completed, False if timeout reached
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._pending_tasks:
            remaining = deadline - loop.time()
            if remaining <= 0:
                self._logger.warning(f"EventBus: {len(self._pending_tasks)} handler(s) still running")
                return False
            await asyncio.wait(list(self._pending_tasks), timeout=remaining)
        return True

    async def _safe_dispatch(self, topic: str, handler: EventHandler, payload: EventPayload) -> None:
        try:
            await handler(payload)
        except Exception:
            handler_name = getattr(handler, "__name__", repr(handler))
            self._logger.exception(f"EventBus handler error in '{handler_name}' for topic '{topic}'")

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._subscribers.clear()
