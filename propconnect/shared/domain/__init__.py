"""Domain records, validation and the optimistic mutation protocol."""

from .models import (
    Admin,
    Agent,
    AgentNotificationPreferences,
    Inquiry,
    PrincipalKind,
    PropertyPhoto,
    PropertySummary,
    ToastMessage,
    User,
    UserNotificationPreferences,
    UserType,
)
from .optimistic import OptimisticCommand, SingleFlight

__all__ = [
    "Admin",
    "Agent",
    "AgentNotificationPreferences",
    "Inquiry",
    "PrincipalKind",
    "PropertyPhoto",
    "PropertySummary",
    "ToastMessage",
    "User",
    "UserNotificationPreferences",
    "UserType",
    "OptimisticCommand",
    "SingleFlight",
]
