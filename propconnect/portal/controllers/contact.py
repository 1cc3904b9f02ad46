"""Contact page: support categories, attachment upload and the message form."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from propconnect.shared.config.templates import render_template
from propconnect.shared.core.errors import PropConnectError
from propconnect.shared.domain.validation import (
    DOCUMENT_CONTENT_TYPES,
    ContactForm,
    validate_contact,
    validate_upload,
)

from .base import PageController, SelectedFile, error_message

if TYPE_CHECKING:
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactCategory:
    id: str
    label: str
    description: str
    email: str
    phone: Optional[str] = None


CONTACT_CATEGORIES = (
    ContactCategory(
        id="general",
        label="General Inquiry",
        description="Questions about using PropConnect or finding properties",
        email="support@propconnect.com",
    ),
    ContactCategory(
        id="agent_support",
        label="Agent Support",
        description="Help with listing management and agent features",
        email="agent-support@propconnect.com",
        phone="555-1000",
    ),
    ContactCategory(
        id="technical",
        label="Technical Issues",
        description="Bug reports and technical problems",
        email="technical@propconnect.com",
    ),
)


def find_category(category_id: str) -> ContactCategory:
    """Category by id, the general one for anything unknown."""
    for category in CONTACT_CATEGORIES:
        if category.id == category_id:
            return category
    return CONTACT_CATEGORIES[0]


class ContactController(PageController):
    """Sends a support message as an inquiry with no property or agent."""

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.form = ContactForm()
        self.uploading = False
        self.upload_error: Optional[str] = None
        self.submit_success = False
        self.submit_error: Optional[str] = None
        self.prefill()

    @property
    def _token(self) -> Optional[str]:
        auth = self.store.state.auth
        return auth.user_auth_token or auth.agent_auth_token

    @property
    def category(self) -> ContactCategory:
        return find_category(self.form.inquiry_category)

    def prefill(self) -> None:
        """Start over with a blank form, keeping the signed-in user's contact details."""
        user = self.store.state.auth.current_user
        self.form = ContactForm(
            contact_name=user.full_name if user else "",
            contact_email=user.email if user else "",
            contact_phone=(user.phone_number or "") if user else "",
        )
        self.validation_errors = {}
        self.upload_error = None
        self.submit_success = False
        self.submit_error = None

    def select_category(self, category_id: str) -> None:
        self.form.inquiry_category = find_category(category_id).id

    # --- Attachment ---

    async def attach(self, file: SelectedFile) -> Optional[str]:
        problem = validate_upload(file.size, file.content_type, DOCUMENT_CONTENT_TYPES)
        if problem:
            self.upload_error = problem
            return None

        self.uploading = True
        self.upload_error = None
        try:
            body = await self.store.api.upload(
                "/api/upload/document",
                file.name,
                file.content,
                file.content_type,
                token=self._token,
                data={"document_type": self.form.inquiry_category},
            )
        except PropConnectError as e:
            self.upload_error = self.toast_error(e, "Upload failed")
            return None
        finally:
            self.uploading = False

        self.form.attachment_url = (body or {}).get("document_url")
        self.store.ui.show_toast("File uploaded successfully", "success")
        return self.form.attachment_url

    def remove_attachment(self) -> None:
        self.form.attachment_url = None
        self.upload_error = None

    # --- Submit ---

    def compose_message(self) -> str:
        return render_template(
            "contact_message",
            subject=self.form.subject,
            category_label=self.category.label,
            message=self.form.message,
            attachment_url=self.form.attachment_url,
        )

    def build_payload(self) -> Dict[str, Any]:
        user = self.store.state.auth.current_user
        return {
            "property_id": None,
            "agent_id": None,
            "user_id": user.user_id if user else None,
            "inquirer_name": self.form.contact_name,
            "inquirer_email": self.form.contact_email,
            "inquirer_phone": self.form.contact_phone or None,
            "message": self.compose_message(),
            "viewing_requested": False,
            "preferred_viewing_date": None,
            "preferred_viewing_time": None,
        }

    async def submit(self) -> bool:
        if self.submitting:
            return False
        if not self._check(validate_contact(self.form)):
            return False

        self.submitting = True
        self.submit_error = None
        try:
            await self.store.api.post("/api/inquiries", self.build_payload(), token=self._token)
        except PropConnectError as e:
            self.submit_error = error_message(e, "Failed to send message")
            self.store.ui.show_toast(self.submit_error, "error")
            return False
        finally:
            self.submitting = False

        self.submit_success = True
        self.store.ui.show_toast("Message sent successfully! We'll get back to you soon.", "success")
        return True
