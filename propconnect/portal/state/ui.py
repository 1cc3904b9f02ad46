"""Transient UI actions: toasts, the modal slot and mobile navigation."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from propconnect.shared.core import events
from propconnect.shared.domain.models import ToastMessage, ToastSeverity

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


class UIActions:
    """Toast queue with timed expiry plus a single modal slot."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    @property
    def _ui(self):
        return self.store.state.ui

    def show_toast(
        self,
        message: str,
        severity: ToastSeverity = "info",
        duration: Optional[int] = None,
    ) -> str:
        """Queue a toast and schedule its removal after ``duration`` milliseconds.

        Returns:
            The new toast's id
        """
        if duration is None:
            duration = self.store.config.ui.default_toast_duration_ms
        toast = ToastMessage(message=message, type=severity, duration=duration)
        self._ui.toasts.append(toast)

        max_toasts = self.store.config.ui.max_toasts
        if max_toasts is not None:
            while len(self._ui.toasts) > max_toasts:
                self._discard(self._ui.toasts[0].id)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, toast {toast.id} will not expire on its own")
        else:
            self._timers[toast.id] = loop.call_later(duration / 1000, self.dismiss_toast, toast.id)

        self.store.bus.publish_nowait(
            events.TOPIC_TOAST_SHOWN, events.create_toast_event(toast.id, message, severity)
        )
        self.store.state.notify(events.TOPIC_UI_CHANGED)
        return toast.id

    def dismiss_toast(self, toast_id: str) -> None:
        """Remove a toast; unknown ids are ignored."""
        if not self._discard(toast_id):
            return
        self.store.bus.publish_nowait(events.TOPIC_TOAST_DISMISSED, events.create_toast_event(toast_id))
        self.store.state.notify(events.TOPIC_UI_CHANGED)

    def _discard(self, toast_id: str) -> bool:
        timer = self._timers.pop(toast_id, None)
        if timer is not None:
            timer.cancel()
        before = len(self._ui.toasts)
        self._ui.toasts = [t for t in self._ui.toasts if t.id != toast_id]
        return len(self._ui.toasts) != before

    def open_modal(self, name: str, data: Any = None) -> None:
        """Show ``name`` in the modal slot, replacing whatever was open."""
        self._ui.active_modal = name
        self._ui.modal_data = data
        self.store.state.notify(events.TOPIC_MODAL_CHANGED)

    def close_modal(self) -> None:
        self._ui.active_modal = None
        self._ui.modal_data = None
        self.store.state.notify(events.TOPIC_MODAL_CHANGED)

    def toggle_mobile_nav(self) -> None:
        self._ui.mobile_nav_open = not self._ui.mobile_nav_open
        self.store.state.notify(events.TOPIC_UI_CHANGED)

    def cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
