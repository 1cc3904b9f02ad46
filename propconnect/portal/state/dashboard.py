"""Agent dashboard counters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from propconnect.shared.core import events
from propconnect.shared.core.errors import PropConnectError

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


class DashboardActions:
    """Unread inquiry and active listing counts for the signed-in agent.

    Counters are adjusted locally (e.g. when an inquiry is marked read) and
    reloaded wholesale from the server; they are never persisted.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    @property
    def _dashboard(self):
        return self.store.state.dashboard

    def _changed(self) -> None:
        self.store.state.notify(events.TOPIC_DASHBOARD_CHANGED)

    async def load_agent_dashboard_stats(self) -> None:
        token = self.store.state.auth.agent_auth_token
        if not token:
            return
        self._dashboard.is_loading = True
        self._changed()
        try:
            body = await self.store.api.get("/api/agents/dashboard/stats", token=token) or {}
        except PropConnectError as exc:
            logger.warning(f"Failed to load agent dashboard stats: {exc}")
            self._dashboard.is_loading = False
            self._changed()
            return
        self._dashboard.unread_inquiry_count = int(body.get("unread_inquiry_count") or 0)
        self._dashboard.total_active_listings = int(body.get("total_active_listings") or 0)
        self._dashboard.is_loading = False
        self._changed()

    def set_unread_inquiry_count(self, count: int) -> None:
        self._dashboard.unread_inquiry_count = max(0, count)
        self._changed()

    def increment_unread_inquiries(self) -> None:
        self._dashboard.unread_inquiry_count += 1
        self._changed()

    def decrement_unread_inquiries(self) -> None:
        self._dashboard.unread_inquiry_count = max(0, self._dashboard.unread_inquiry_count - 1)
        self._changed()
