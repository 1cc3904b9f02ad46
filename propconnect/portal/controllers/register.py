"""Registration controllers: property seeker sign-up and the agent application."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from propconnect.shared.core.errors import ApiError, AuthError, ErrorKind
from propconnect.shared.domain.models import PrincipalKind
from propconnect.shared.domain.validation import (
    AGENT_REGISTRATION_STEPS,
    DOCUMENT_CONTENT_TYPES,
    PHOTO_CONTENT_TYPES,
    AgentRegistrationForm,
    RegistrationForm,
    validate_agent_registration_step,
    validate_registration,
    validate_upload,
)

from .base import PageController, SelectedFile, error_message

if TYPE_CHECKING:
    from propconnect.portal.state.app_state import Identity
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "An account with this email already exists"
UPLOAD_FAILED = "Upload failed. Please try again."
MAX_PROFILE_PHOTO_BYTES = 5 * 1024 * 1024


class RegisterController(PageController):
    """Property seeker sign-up. Success signs the new user in."""

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.form = RegistrationForm()
        self.submit_success = False

    async def submit(self) -> Optional[Identity]:
        if self.submitting:
            return None
        self.store.auth.clear_auth_error()
        if not self._check(validate_registration(self.form)):
            return None

        self.submitting = True
        try:
            identity = await self.store.auth.register(
                PrincipalKind.SEEKER,
                {
                    "email": self.form.email.strip(),
                    "password": self.form.password,
                    "full_name": self.form.full_name.strip(),
                    "phone_number": self.form.phone_number or None,
                },
            )
        except AuthError as e:
            if e.kind is ErrorKind.ALREADY_EXISTS:
                self.validation_errors["email"] = EMAIL_TAKEN
            return None
        finally:
            self.submitting = False

        self.submit_success = True
        return identity


class AgentRegisterController(PageController):
    """Three step agent application: account, license and office, profile and terms.

    Submitting never signs anyone in; the application waits for admin
    approval.
    """

    def __init__(self, store: Store) -> None:
        super().__init__(store)
        self.form = AgentRegistrationForm()
        self.step = 1
        self.uploading_document = False
        self.document_error: Optional[str] = None
        self.uploading_photo = False
        self.photo_error: Optional[str] = None
        self.submitted = False

    # --- Step navigation ---

    def next_step(self) -> bool:
        """Advance when the current step validates."""
        if self.step >= AGENT_REGISTRATION_STEPS:
            return False
        if not self._check(validate_agent_registration_step(self.form, self.step)):
            return False
        self.step += 1
        return True

    def previous_step(self) -> None:
        if self.step > 1:
            self.step -= 1
            self.validation_errors = {}

    # --- Uploads ---

    async def upload_license_document(self, file: SelectedFile) -> Optional[str]:
        """Upload the license scan and remember its URL."""
        problem = validate_upload(file.size, file.content_type, DOCUMENT_CONTENT_TYPES)
        if problem:
            self.document_error = problem
            return None

        self.uploading_document = True
        self.document_error = None
        try:
            body = await self.store.api.upload(
                "/api/upload/document",
                file.name,
                file.content,
                file.content_type,
                data={"document_type": "license"},
            )
        except ApiError as e:
            self.document_error = error_message(e, UPLOAD_FAILED)
            return None
        finally:
            self.uploading_document = False

        body = body or {}
        url = body.get("document_url") or body.get("url")
        if not url:
            self.document_error = UPLOAD_FAILED
            return None
        self.form.license_document_url = url
        self.clear_field_error("license_document")
        return url

    async def upload_profile_photo(self, file: SelectedFile) -> Optional[str]:
        if file.size > MAX_PROFILE_PHOTO_BYTES:
            self.photo_error = "Image must be less than 5MB"
            return None
        if file.content_type not in PHOTO_CONTENT_TYPES:
            self.photo_error = "File must be JPG or PNG"
            return None

        self.uploading_photo = True
        self.photo_error = None
        try:
            body = await self.store.api.upload(
                "/api/upload/photo",
                file.name,
                file.content,
                file.content_type,
                data={"photo_type": "profile"},
            )
        except ApiError as e:
            self.photo_error = error_message(e, UPLOAD_FAILED)
            return None
        finally:
            self.uploading_photo = False

        body = body or {}
        url = body.get("photo_url") or body.get("image_url")
        if not url:
            self.photo_error = UPLOAD_FAILED
            return None
        self.form.profile_photo_url = url
        return url

    # --- Submit ---

    def build_payload(self) -> Dict[str, Any]:
        form = self.form
        return {
            "email": form.email.strip(),
            "password": form.password,
            "full_name": form.full_name.strip(),
            "phone_number": form.phone_number,
            "license_number": form.license_number,
            "license_state": form.license_state,
            "agency_name": form.agency_name,
            "office_address_street": form.office_address_street,
            "office_address_city": form.office_address_city,
            "office_address_state": form.office_address_state,
            "office_address_zip": form.office_address_zip,
            "years_experience": form.years_experience,
            "license_document_url": form.license_document_url or None,
            "profile_photo_url": form.profile_photo_url or None,
            "bio": form.bio or None,
            "specializations": list(form.specializations) or None,
            "service_areas": list(form.service_areas) or None,
            "languages_spoken": list(form.languages_spoken) or None,
        }

    async def submit(self) -> bool:
        """Send the application from the final step. True when accepted."""
        if self.submitting or self.step != AGENT_REGISTRATION_STEPS:
            return False
        if not self._check(validate_agent_registration_step(self.form, self.step)):
            return False

        self.store.auth.clear_auth_error()
        self.submitting = True
        try:
            await self.store.auth.register(PrincipalKind.AGENT, self.build_payload())
        except AuthError as e:
            if e.kind is ErrorKind.ALREADY_EXISTS:
                self.validation_errors["email"] = EMAIL_TAKEN
            self.validation_errors["submit"] = e.message
            return False
        finally:
            self.submitting = False

        self.submitted = True
        logger.info("Agent application submitted")
        return True
