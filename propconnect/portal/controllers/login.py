"""Login page controller for seekers, agents and admins."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from propconnect.shared.core.errors import AuthError, ErrorKind
from propconnect.shared.domain.models import PrincipalKind
from propconnect.shared.domain.validation import LoginForm, validate_login

from .base import PageController

if TYPE_CHECKING:
    from propconnect.portal.state.app_state import Identity
    from propconnect.portal.state.store import Store

logger = logging.getLogger(__name__)

AUTH_MODAL = "auth_modal"

CREDENTIAL_MESSAGES = {
    ErrorKind.APPROVAL_PENDING: (
        "Your agent application is pending approval. You will receive an email "
        "when approved (typically within 24-48 hours)."
    ),
    ErrorKind.ACCOUNT_SUSPENDED: (
        "Your account has been suspended. Please contact support for assistance."
    ),
    ErrorKind.APPROVAL_REJECTED: (
        "Your agent application was not approved. Please contact support for more information."
    ),
    ErrorKind.EMAIL_NOT_VERIFIED: (
        "Please verify your email address before logging in. Check your inbox "
        "for the verification link."
    ),
    ErrorKind.INVALID_CREDENTIALS: (
        "The email or password you entered is incorrect. Please try again."
    ),
}


def credential_message(error: AuthError) -> str:
    """Friendly text for a rejected login, keyed on the error kind."""
    return CREDENTIAL_MESSAGES.get(error.kind, error.message)


class LoginController(PageController):
    """Login form for one principal kind.

    A rejected login leaves a message under ``validation_errors["credentials"]``
    and clears the password field.
    """

    def __init__(self, store: Store, kind: PrincipalKind = PrincipalKind.SEEKER) -> None:
        super().__init__(store)
        self.kind = kind
        self.form = LoginForm()

    def set_email(self, email: str) -> None:
        self.form.email = email
        self.clear_field_error("email")
        self.store.auth.clear_auth_error()

    def set_password(self, password: str) -> None:
        self.form.password = password
        self.clear_field_error("password")
        self.store.auth.clear_auth_error()

    async def submit(self) -> Optional[Identity]:
        """Validate and sign in. Returns the identity, or None on any failure."""
        if self.submitting:
            return None
        self.store.auth.clear_auth_error()
        if not self._check(validate_login(self.form)):
            return None

        self.submitting = True
        try:
            identity = await self.store.auth.login(self.kind, self.form.email.strip(), self.form.password)
        except AuthError as e:
            logger.info(f"{self.kind.value} login form rejected ({e.kind.value})")
            self.validation_errors["credentials"] = credential_message(e)
            self.form.password = ""
            return None
        finally:
            self.submitting = False

        if self.store.state.ui.active_modal == AUTH_MODAL:
            self.store.ui.close_modal()
        return identity
