"""Canonical event definitions for PropConnect store notifications."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .event_bus import EventPayload

# State slice topics
TOPIC_AUTH_CHANGED = "state.auth"
TOPIC_FAVORITES_CHANGED = "state.favorites"
TOPIC_PREFERENCES_CHANGED = "state.preferences"
TOPIC_DASHBOARD_CHANGED = "state.dashboard"
TOPIC_UI_CHANGED = "state.ui"

# Transient UI events
TOPIC_TOAST_SHOWN = "ui.toast.shown"
TOPIC_TOAST_DISMISSED = "ui.toast.dismissed"
TOPIC_MODAL_CHANGED = "ui.modal"

# Session lifecycle
TOPIC_SESSION_RESTORED = "session.restored"
TOPIC_LOGGED_OUT = "session.logged_out"


def create_auth_changed_event(user_type: str, is_authenticated: bool, is_loading: bool) -> EventPayload:
    """Create an auth state change event."""
    return {
        "user_type": user_type,
        "is_authenticated": is_authenticated,
        "is_loading": is_loading,
    }


def create_favorites_changed_event(saved_properties: List[str], is_loading: bool = False) -> EventPayload:
    """Create a favorites change event."""
    return {
        "saved_properties": list(saved_properties),
        "is_loading": is_loading,
    }


def create_preferences_changed_event(kind: str, preferences: Optional[Dict[str, Any]]) -> EventPayload:
    return {
        "kind": kind,
        "preferences": preferences,
    }


def create_dashboard_changed_event(unread_inquiry_count: int, total_active_listings: int) -> EventPayload:
    return {
        "unread_inquiry_count": unread_inquiry_count,
        "total_active_listings": total_active_listings,
    }


def create_toast_event(toast_id: str, message: str = "", severity: str = "info") -> EventPayload:
    """Create a toast shown/dismissed event."""
    return {
        "id": toast_id,
        "message": message,
        "type": severity,
    }


def create_modal_event(active_modal: Optional[str], modal_data: Any = None) -> EventPayload:
    return {
        "active_modal": active_modal,
        "modal_data": modal_data,
    }


def create_session_event(user_type: str) -> EventPayload:
    """Create a session lifecycle event (restore or logout)."""
    return {"user_type": user_type}
