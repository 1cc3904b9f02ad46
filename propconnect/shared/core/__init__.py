"""
Shared Core Module
==================

Event system, configuration and error taxonomy.
"""

# Event System
from .event_bus import EventBus, EventPayload
from . import events

# Errors
from .errors import (
    ApiError,
    AuthError,
    ErrorKind,
    FormValidationError,
    NotAuthenticatedError,
    PropConnectError,
    infer_error_kind,
)

# Configuration
from .configuration import (
    ConfigManager,
    SystemConfig,
    ValidationLevel,
    get_config,
    get_config_manager,
)

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "events",
    # Errors
    "ApiError",
    "AuthError",
    "ErrorKind",
    "FormValidationError",
    "NotAuthenticatedError",
    "PropConnectError",
    "infer_error_kind",
    # Configuration
    "ConfigManager",
    "SystemConfig",
    "ValidationLevel",
    "get_config",
    "get_config_manager",
]
