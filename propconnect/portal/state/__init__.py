"""Application store: state slices and the actions that mutate them."""

from .app_state import AppState
from .auth import PRINCIPAL_STRATEGIES, AuthActions
from .store import Store

__all__ = ["AppState", "AuthActions", "PRINCIPAL_STRATEGIES", "Store"]
