"""Application state slices.

Plain mutable slices owned by the store. Mutations are synchronous; every
slice change is announced on the EventBus so controllers can react, and
changes to persisted slices trigger the persistence hook.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Union

from pydantic import ValidationError

from propconnect.shared.core import events
from propconnect.shared.core.event_bus import EventBus
from propconnect.shared.domain.models import (
    Admin,
    Agent,
    AgentNotificationPreferences,
    PrincipalKind,
    ToastMessage,
    User,
    UserNotificationPreferences,
    UserType,
)

logger = logging.getLogger(__name__)

Identity = Union[User, Agent, Admin]

# Rehydration priority when a stored blob holds more than one token
PRINCIPAL_PRIORITY = (PrincipalKind.SEEKER, PrincipalKind.AGENT, PrincipalKind.ADMIN)

_IDENTITY_MODELS = {
    PrincipalKind.SEEKER: User,
    PrincipalKind.AGENT: Agent,
    PrincipalKind.ADMIN: Admin,
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AuthenticationState:
    """Current principal plus derived status flags.

    At most one of the three tokens is set, and the flags always agree with
    it. Only ``set_principal`` and ``clear`` write principal fields.
    """

    current_user: Optional[User] = None
    current_agent: Optional[Agent] = None
    current_admin: Optional[Admin] = None
    user_auth_token: Optional[str] = None
    agent_auth_token: Optional[str] = None
    admin_auth_token: Optional[str] = None
    is_authenticated: bool = False
    is_agent_authenticated: bool = False
    is_admin_authenticated: bool = False
    is_loading: bool = False
    user_type: UserType = UserType.GUEST
    error_message: Optional[str] = None

    @property
    def kind(self) -> Optional[PrincipalKind]:
        """Kind of the signed-in principal, None for a guest."""
        for kind in PRINCIPAL_PRIORITY:
            if self.token_for(kind):
                return kind
        return None

    def token_for(self, kind: PrincipalKind) -> Optional[str]:
        return getattr(self, f"{kind.value}_auth_token")

    def identity_for(self, kind: PrincipalKind) -> Optional[Identity]:
        return getattr(self, f"current_{kind.value}")

    def set_principal(self, kind: PrincipalKind, identity: Identity, token: str) -> None:
        """Sign in ``identity``, clearing any other principal."""
        self._clear_principals()
        setattr(self, f"current_{kind.value}", identity)
        setattr(self, f"{kind.value}_auth_token", token)
        self.error_message = None
        self.is_loading = False
        self._derive_flags()

    def update_identity(self, kind: PrincipalKind, identity: Identity) -> None:
        """Replace the identity record of the signed-in principal only."""
        if self.kind is not kind:
            raise ValueError(f"No signed-in {kind.value} to update")
        setattr(self, f"current_{kind.value}", identity)

    def clear(self) -> None:
        """Reset to guest."""
        self._clear_principals()
        self.is_loading = False
        self.error_message = None
        self._derive_flags()

    def _clear_principals(self) -> None:
        for kind in PRINCIPAL_PRIORITY:
            setattr(self, f"current_{kind.value}", None)
            setattr(self, f"{kind.value}_auth_token", None)

    def _derive_flags(self) -> None:
        kind = self.kind
        self.is_authenticated = kind is not None
        self.is_agent_authenticated = kind is PrincipalKind.AGENT
        self.is_admin_authenticated = kind is PrincipalKind.ADMIN
        self.user_type = kind.user_type if kind else UserType.GUEST

    def snapshot(self) -> Dict[str, Any]:
        return {
            "current_user": self.current_user.model_dump() if self.current_user else None,
            "current_agent": self.current_agent.model_dump() if self.current_agent else None,
            "current_admin": self.current_admin.model_dump() if self.current_admin else None,
            "user_auth_token": self.user_auth_token,
            "agent_auth_token": self.agent_auth_token,
            "admin_auth_token": self.admin_auth_token,
            "authentication_status": {
                "is_authenticated": self.is_authenticated,
                "is_agent_authenticated": self.is_agent_authenticated,
                "is_admin_authenticated": self.is_admin_authenticated,
                "is_loading": False,
                "user_type": self.user_type.value,
            },
            "error_message": None,
        }


@dataclass
class FavoritesState:
    saved_properties: List[str] = field(default_factory=list)
    is_loading: bool = False
    last_updated: Optional[str] = None

    def clear(self) -> None:
        self.saved_properties = []
        self.is_loading = False
        self.last_updated = None


@dataclass
class PreferencesState:
    user: Optional[UserNotificationPreferences] = None
    agent: Optional[AgentNotificationPreferences] = None

    def clear(self) -> None:
        self.user = None
        self.agent = None


@dataclass
class DashboardState:
    unread_inquiry_count: int = 0
    total_active_listings: int = 0
    is_loading: bool = False

    def clear(self) -> None:
        self.unread_inquiry_count = 0
        self.total_active_listings = 0
        self.is_loading = False


@dataclass
class UIState:
    toasts: List[ToastMessage] = field(default_factory=list)
    active_modal: Optional[str] = None
    modal_data: Any = None
    mobile_nav_open: bool = False
    # Property views already reported in this session
    viewed_properties: Set[str] = field(default_factory=set)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)


class AppState:
    """All store slices plus change notification.

    Args:
        event_bus: Bus that receives slice change events
        on_persisted_change: Called after any change to a persisted slice
    """

    PERSISTED_TOPICS = frozenset({
        events.TOPIC_AUTH_CHANGED,
        events.TOPIC_FAVORITES_CHANGED,
        events.TOPIC_PREFERENCES_CHANGED,
    })

    def __init__(
        self,
        event_bus: EventBus,
        on_persisted_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.bus = event_bus
        self.auth = AuthenticationState()
        self.favorites = FavoritesState()
        self.preferences = PreferencesState()
        self.dashboard = DashboardState()
        self.ui = UIState()
        self._on_persisted_change = on_persisted_change

    # --- Change notification ---

    def notify(self, topic: str) -> None:
        """Announce that the slice behind ``topic`` changed."""
        payload = self._payload_for(topic)
        if topic in self.PERSISTED_TOPICS and self._on_persisted_change is not None:
            self._on_persisted_change()
        self.bus.publish_nowait(topic, payload)

    def _payload_for(self, topic: str) -> Dict[str, Any]:
        if topic == events.TOPIC_AUTH_CHANGED:
            return events.create_auth_changed_event(
                self.auth.user_type.value, self.auth.is_authenticated, self.auth.is_loading
            )
        if topic == events.TOPIC_FAVORITES_CHANGED:
            return events.create_favorites_changed_event(
                self.favorites.saved_properties, self.favorites.is_loading
            )
        if topic == events.TOPIC_PREFERENCES_CHANGED:
            kind = self.auth.kind.value if self.auth.kind else None
            prefs = self.preferences.agent if kind == PrincipalKind.AGENT.value else self.preferences.user
            return events.create_preferences_changed_event(kind, prefs.model_dump() if prefs else None)
        if topic == events.TOPIC_DASHBOARD_CHANGED:
            return events.create_dashboard_changed_event(
                self.dashboard.unread_inquiry_count, self.dashboard.total_active_listings
            )
        if topic == events.TOPIC_MODAL_CHANGED:
            return events.create_modal_event(self.ui.active_modal, self.ui.modal_data)
        return {}

    # --- Session-wide reset ---

    def clear_session(self) -> None:
        """Drop every principal-scoped slice, leaving UI state alone."""
        self.auth.clear()
        self.favorites.clear()
        self.preferences.clear()
        self.dashboard.clear()
        self.notify(events.TOPIC_AUTH_CHANGED)
        self.notify(events.TOPIC_FAVORITES_CHANGED)
        self.notify(events.TOPIC_PREFERENCES_CHANGED)
        self.notify(events.TOPIC_DASHBOARD_CHANGED)

    # --- Persistence ---

    def to_persisted(self) -> Dict[str, Any]:
        """The durable subset: identities, tokens, coarse flags, favorites, preferences."""
        return {
            "authentication_state": self.auth.snapshot(),
            "user_favorites": {
                "saved_properties": list(self.favorites.saved_properties),
                "last_updated": self.favorites.last_updated,
            },
            "user_notification_preferences": (
                self.preferences.user.model_dump() if self.preferences.user else None
            ),
            "agent_notification_preferences": (
                self.preferences.agent.model_dump() if self.preferences.agent else None
            ),
        }

    def rehydrate(self, blob: Optional[Dict[str, Any]]) -> None:
        """Restore from a stored blob.

        Loading flags, errors, toasts, modal state and dashboard counters are
        never restored. Status flags are re-derived from whichever principal
        is present, so a stale or tampered blob cannot produce disagreeing
        flags.
        """
        if not blob:
            return

        auth_blob = blob.get("authentication_state") or {}
        for kind in PRINCIPAL_PRIORITY:
            token = auth_blob.get(f"{kind.value}_auth_token")
            raw_identity = auth_blob.get(f"current_{kind.value}")
            if not token or not raw_identity:
                continue
            try:
                identity = _IDENTITY_MODELS[kind].model_validate(raw_identity)
            except ValidationError as e:
                logger.warning(f"Discarding stored {kind.value} identity: {e}")
                continue
            self.auth.set_principal(kind, identity, token)
            break
        else:
            self.auth.clear()

        favorites_blob = blob.get("user_favorites") or {}
        if self.auth.kind is PrincipalKind.SEEKER:
            saved = favorites_blob.get("saved_properties") or []
            self.favorites.saved_properties = [str(p) for p in saved]
            self.favorites.last_updated = favorites_blob.get("last_updated")
        self.favorites.is_loading = False

        self.preferences.user = self._load_model(
            UserNotificationPreferences, blob.get("user_notification_preferences")
        ) if self.auth.kind is PrincipalKind.SEEKER else None
        self.preferences.agent = self._load_model(
            AgentNotificationPreferences, blob.get("agent_notification_preferences")
        ) if self.auth.kind is PrincipalKind.AGENT else None

    @staticmethod
    def _load_model(model, raw):
        if not raw:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Discarding stored {model.__name__}: {e}")
            return None
