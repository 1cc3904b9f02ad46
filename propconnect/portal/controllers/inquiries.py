"""Inquiry inboxes: the agent's received inquiries and a seeker's sent ones."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import ValidationError

from propconnect.portal.state.app_state import utc_now_iso
from propconnect.shared.core import events
from propconnect.shared.core.errors import PropConnectError
from propconnect.shared.domain.models import Inquiry, InquiryReply
from propconnect.shared.infrastructure.http.api_client import unwrap_list

from .base import PageController

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

INBOX_PAGE = {"limit": 100, "offset": 0, "sort_by": "created_at", "sort_order": "desc"}

REPLY_TEMPLATES = {
    "thank_you": (
        "Thank you for your interest in this property. It is still available, "
        "and I would be happy to show it to you."
    ),
    "schedule_viewing": "I would be happy to schedule a viewing. What days and times work best for you?",
    "price_negotiation": "Thank you for your inquiry. I would be happy to discuss the price and terms with you.",
}


@dataclass
class InquiryFilters:
    status: List[str] = field(default_factory=list)
    property_id: Optional[str] = None
    viewing_requested: Optional[bool] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(INBOX_PAGE)
        if self.status:
            params["status"] = ",".join(self.status)
        params["property_id"] = self.property_id
        if self.viewing_requested is not None:
            params["viewing_requested"] = "true" if self.viewing_requested else "false"
        params["date_from"] = self.date_from
        params["date_to"] = self.date_to
        return params


def _parse_inquiries(body: Any) -> List[Inquiry]:
    inquiries = []
    for row in unwrap_list(body):
        try:
            inquiries.append(Inquiry.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed inquiry row: {e}")
    return inquiries


class AgentInquiriesController(PageController):
    """The signed-in agent's inbox.

    Marking an inquiry read adjusts the dashboard's unread counter locally
    rather than reloading the stats.
    """

    subscriptions = {events.TOPIC_LOGGED_OUT: "on_logged_out"}

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.filters = InquiryFilters()
        self.inquiries: List[Inquiry] = []
        self.selected_ids: List[str] = []
        self.is_loading = False
        self.reply_message = ""
        self.include_signature = True
        self.reply_error: Optional[str] = None

    @property
    def _token(self) -> Optional[str]:
        return self.store.state.auth.agent_auth_token

    async def on_logged_out(self, payload: Dict[str, Any]) -> None:
        """Forget the previous agent's inbox and reply draft."""
        self.inquiries = []
        self.selected_ids = []
        self.reply_message = ""
        self.reply_error = None

    @property
    def unread_count(self) -> int:
        return sum(1 for i in self.inquiries if not i.agent_read)

    def _find(self, inquiry_id: str) -> Optional[Inquiry]:
        for inquiry in self.inquiries:
            if inquiry.inquiry_id == inquiry_id:
                return inquiry
        return None

    async def load(self) -> List[Inquiry]:
        self.is_loading = True
        try:
            body = await self.store.api.get(
                "/api/inquiries/agent/my-inquiries", token=self._token, params=self.filters.to_params()
            )
        except PropConnectError as e:
            self.toast_error(e, "Failed to load inquiries")
            return self.inquiries
        finally:
            self.is_loading = False
        self.inquiries = _parse_inquiries(body)
        return self.inquiries

    async def apply_filters(self, **changes: Any) -> List[Inquiry]:
        for key, value in changes.items():
            setattr(self.filters, key, value)
        self.selected_ids = []
        return await self.load()

    async def clear_filters(self) -> List[Inquiry]:
        self.filters = InquiryFilters()
        return await self.load()

    # --- Read state ---

    async def mark_read(self, inquiry_id: str) -> bool:
        inquiry = self._find(inquiry_id)
        if inquiry is not None and inquiry.agent_read:
            return True
        try:
            await self.store.api.put(f"/api/inquiries/{inquiry_id}/mark-read", {}, token=self._token)
        except PropConnectError as e:
            logger.warning(f"Failed to mark inquiry {inquiry_id} read: {e}")
            return False
        if inquiry is not None:
            inquiry.agent_read = True
            inquiry.agent_read_at = utc_now_iso()
        self.store.dashboard.decrement_unread_inquiries()
        return True

    async def open_inquiry(self, inquiry_id: str) -> Optional[Inquiry]:
        """Show an inquiry, marking it read on first open."""
        inquiry = self._find(inquiry_id)
        if inquiry is None:
            return None
        self.reply_message = ""
        self.include_signature = True
        self.reply_error = None
        self.store.ui.open_modal("inquiry_detail", {"inquiry_id": inquiry_id})
        if not inquiry.agent_read:
            await self.mark_read(inquiry_id)
        return inquiry

    def toggle_select_all(self) -> None:
        if len(self.selected_ids) == len(self.inquiries):
            self.selected_ids = []
        else:
            self.selected_ids = [i.inquiry_id for i in self.inquiries]

    async def bulk_mark_read(self) -> int:
        ids = list(self.selected_ids)
        if not ids:
            return 0
        for inquiry_id in ids:
            await self.mark_read(inquiry_id)
        self.selected_ids = []
        self.store.ui.show_toast(f"{len(ids)} inquiries marked as read", "success")
        return len(ids)

    # --- Replies and status ---

    def apply_template(self, name: str) -> None:
        self.reply_message = REPLY_TEMPLATES.get(name, "")

    async def send_reply(self, inquiry_id: str) -> Optional[InquiryReply]:
        if self.submitting:
            return None
        if not self.reply_message.strip():
            self.reply_error = "Please enter a message"
            return None

        self.submitting = True
        self.reply_error = None
        try:
            body = await self.store.api.post(
                f"/api/inquiries/{inquiry_id}/reply",
                {"message": self.reply_message, "include_signature": self.include_signature},
                token=self._token,
            )
        except PropConnectError as e:
            self.reply_error = self.toast_error(e, "Failed to send reply")
            return None
        finally:
            self.submitting = False

        body = body or {}
        reply = InquiryReply(
            reply_id=str(body.get("reply_id") or ""),
            inquiry_id=inquiry_id,
            sender_type="agent",
            sender_id=self._current_agent_id(),
            message=body.get("message") or self.reply_message,
            include_signature=self.include_signature,
            created_at=body.get("created_at"),
        )
        inquiry = self._find(inquiry_id)
        if inquiry is not None:
            inquiry.status = "responded"
            inquiry.replies.append(reply)
        self.reply_message = ""
        self.include_signature = True
        self.store.ui.show_toast("Reply sent successfully", "success")
        return reply

    async def update_status(self, inquiry_id: str, status: str) -> bool:
        try:
            await self.store.api.put(f"/api/inquiries/{inquiry_id}/status", {"status": status}, token=self._token)
        except PropConnectError as e:
            self.toast_error(e, "Failed to update status")
            return False
        inquiry = self._find(inquiry_id)
        if inquiry is not None:
            inquiry.status = status
        self.store.ui.show_toast("Inquiry status updated", "success")
        return True


class UserInquiriesController(PageController):
    """Inquiries the signed-in seeker has sent, with their reply threads."""

    subscriptions = {events.TOPIC_LOGGED_OUT: "on_logged_out"}

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.filters = InquiryFilters()
        self.inquiries: List[Inquiry] = []
        self.selected: Optional[Inquiry] = None
        self.is_loading = False

    @property
    def _token(self) -> Optional[str]:
        return self.store.state.auth.user_auth_token

    async def on_logged_out(self, payload: Dict[str, Any]) -> None:
        self.inquiries = []
        self.selected = None

    async def load(self) -> List[Inquiry]:
        params = dict(INBOX_PAGE)
        if self.filters.status:
            params["status"] = ",".join(self.filters.status)
        params["property_id"] = self.filters.property_id

        self.is_loading = True
        try:
            body = await self.store.api.get("/api/inquiries/my-inquiries", token=self._token, params=params)
        except PropConnectError as e:
            self.toast_error(e, "Failed to load inquiries")
            return self.inquiries
        finally:
            self.is_loading = False
        self.inquiries = _parse_inquiries(body)
        return self.inquiries

    async def open_thread(self, inquiry_id: str) -> Optional[Inquiry]:
        """Load one inquiry with its replies."""
        try:
            body = await self.store.api.get(f"/api/inquiries/{inquiry_id}", token=self._token) or {}
            record = dict(body.get("inquiry") or body)
            if "replies" in body:
                record["replies"] = body["replies"]
            self.selected = Inquiry.model_validate(record)
        except (PropConnectError, ValidationError) as e:
            self.toast_error(e, "Failed to load inquiry")
            return None
        return self.selected
