"""Shared plumbing for page controllers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Dict, List, Optional, TypeVar

from propconnect.shared.core.errors import ErrorKind, PropConnectError

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SelectedFile:
    """A file picked by the user, held in memory until uploaded."""

    name: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def error_message(error: Exception, fallback: str) -> str:
    """User-facing text for a failed action."""
    # Transport failures carry httpx wording, not something to show
    if isinstance(error, PropConnectError) and error.kind is not ErrorKind.NETWORK:
        return error.message or fallback
    return fallback


def move_item(items: List[T], from_index: int, to_index: int) -> Optional[List[T]]:
    """Copy of ``items`` with one entry moved, or None if an index is out of range."""
    size = len(items)
    if not (0 <= from_index < size and 0 <= to_index < size):
        return None
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return moved


class PageController:
    """Base for controllers backing one page or form.

    Holds the field error map and the submitting flag every form page
    needs. Subclasses call ``_check`` before any request so invalid input
    never leaves the client.

    Pages that show data tied to the signed-in principal list the store
    events they react to in ``subscriptions`` (topic to method name); the
    view calls ``bind()`` when the page opens and ``unbind()`` when it
    closes.
    """

    subscriptions: ClassVar[Dict[str, str]] = {}

    def __init__(self, store: Store) -> None:
        self.store = store
        self.validation_errors: Dict[str, str] = {}
        self.submitting = False

    def bind(self) -> "PageController":
        for topic, method in self.subscriptions.items():
            self.store.bus.subscribe(topic, getattr(self, method))
        return self

    def unbind(self) -> None:
        for topic, method in self.subscriptions.items():
            self.store.bus.unsubscribe(topic, getattr(self, method))

    @property
    def has_errors(self) -> bool:
        return bool(self.validation_errors)

    def _check(self, errors: Dict[str, str]) -> bool:
        """Replace the error map. True when the form is clean."""
        self.validation_errors = dict(errors)
        return not errors

    def clear_field_error(self, key: str) -> None:
        self.validation_errors.pop(key, None)

    def toast_error(self, error: Exception, fallback: str) -> str:
        message = error_message(error, fallback)
        self.store.ui.show_toast(message, "error")
        return message

    def _current_agent_id(self) -> Optional[str]:
        agent = self.store.state.auth.current_agent
        return agent.agent_id if agent else None
