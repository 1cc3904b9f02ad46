"""Tests for login, registration, session restore and logout."""

import httpx
import pytest

from conftest import admin_record, agent_login, agent_record, seeker_login, user_record
from propconnect.shared.core import events
from propconnect.shared.core.errors import AuthError, ErrorKind
from propconnect.shared.domain.models import Agent, PrincipalKind, User, UserType


def toast_messages(store):
    return [t.message for t in store.state.ui.toasts]


# --- Login ---


@pytest.mark.asyncio
async def test_seeker_login_loads_favorites_and_preferences(store, backend):
    seeker_login(backend, token="tok-1", favorites=["prop_1", "prop_2"])

    user = await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")

    auth = store.state.auth
    assert user.user_id == "user_1"
    assert auth.user_auth_token == "tok-1"
    assert auth.is_authenticated and not auth.is_agent_authenticated
    assert auth.user_type is UserType.PROPERTY_SEEKER
    assert auth.is_loading is False
    assert store.state.favorites.saved_properties == ["prop_1", "prop_2"]
    assert store.state.preferences.user.user_id == "user_1"
    assert backend.calls("GET", "/api/favorites")[0].headers["Authorization"] == "Bearer tok-1"


@pytest.mark.asyncio
async def test_login_is_persisted(store, backend):
    seeker_login(backend, token="tok-1")

    await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")

    blob = store.storage.load(store.config.storage.storage_key)
    assert blob["authentication_state"]["user_auth_token"] == "tok-1"
    assert blob["authentication_state"]["authentication_status"]["user_type"] == "property_seeker"


@pytest.mark.asyncio
async def test_invalid_credentials_leave_a_guest_with_message(store, backend):
    backend.error("POST", "/api/auth/login", 401, "Invalid email or password", "INVALID_CREDENTIALS")

    with pytest.raises(AuthError) as info:
        await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "wrong")

    auth = store.state.auth
    assert info.value.kind is ErrorKind.INVALID_CREDENTIALS
    assert auth.error_message == "Invalid email or password"
    assert auth.user_type is UserType.GUEST
    assert auth.user_auth_token is None
    assert auth.is_loading is False


@pytest.mark.asyncio
async def test_missing_credentials_fail_without_request(store, backend):
    with pytest.raises(AuthError) as info:
        await store.auth.login(PrincipalKind.AGENT, "", "")

    assert info.value.kind is ErrorKind.VALIDATION
    assert store.state.auth.error_message == "Email and password are required"
    assert backend.requests == []


@pytest.mark.asyncio
async def test_pending_agent_rejected_by_backend(store, backend):
    backend.error("POST", "/api/auth/agent/login", 403, "Your application is under review", "APPROVAL_PENDING")

    with pytest.raises(AuthError) as info:
        await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")

    assert info.value.kind is ErrorKind.APPROVAL_PENDING
    assert store.state.auth.agent_auth_token is None


@pytest.mark.asyncio
async def test_pending_agent_token_is_never_stored(store, backend):
    agent_login(backend, approved=False, approval_status="pending")

    with pytest.raises(AuthError) as info:
        await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")

    assert info.value.kind is ErrorKind.APPROVAL_PENDING
    assert store.state.auth.agent_auth_token is None
    assert store.state.auth.is_agent_authenticated is False
    assert "approval" in store.state.auth.error_message
    # No follow-up loads for a rejected session
    assert backend.calls("GET", "/api/agents/dashboard/stats") == []


@pytest.mark.asyncio
async def test_agent_login_loads_dashboard(store, backend):
    agent_login(backend)

    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")

    assert store.state.auth.is_agent_authenticated
    assert store.state.auth.user_type is UserType.AGENT
    assert store.state.dashboard.unread_inquiry_count == 3
    assert store.state.dashboard.total_active_listings == 7
    assert store.state.preferences.agent.agent_id == "agent_1"


@pytest.mark.asyncio
async def test_login_replaces_previous_principal(store, backend):
    seeker_login(backend, favorites=["prop_1"])
    agent_login(backend)
    backend.json("POST", "/api/auth/admin/login", {"token": "admin-token", "admin": admin_record()})

    await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")
    await store.auth.login(PrincipalKind.ADMIN, "root@propconnect.com", "secret123")

    auth = store.state.auth
    assert auth.is_admin_authenticated
    assert auth.current_user is None and auth.user_auth_token is None
    assert auth.user_type is UserType.ADMIN


@pytest.mark.asyncio
async def test_auth_change_is_published(store, backend):
    seeker_login(backend)
    seen = []

    async def on_auth(payload):
        seen.append(payload)

    store.bus.subscribe(events.TOPIC_AUTH_CHANGED, on_auth)
    await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")
    await store.bus.wait_until_idle()

    assert seen[0]["is_loading"] is True
    assert seen[-1] == {"user_type": "property_seeker", "is_authenticated": True, "is_loading": False}


# --- Registration ---


@pytest.mark.asyncio
async def test_seeker_registration_signs_in(store, backend):
    backend.json("POST", "/api/auth/register", {"token": "new-token", "user": user_record()})
    backend.json("GET", "/api/favorites", {"data": []})
    backend.json("GET", "/api/users/notification-preferences", {"user_id": "user_1"})

    user = await store.auth.register(
        PrincipalKind.SEEKER,
        {"email": "sam@example.com", "password": "secret123", "full_name": "Sam Seeker"},
    )

    assert user.email == "sam@example.com"
    assert store.state.auth.user_auth_token == "new-token"


@pytest.mark.asyncio
async def test_agent_registration_does_not_touch_session(store, backend):
    seeker_login(backend, token="seeker-token")
    backend.json("POST", "/api/auth/agent/register", {"agent": agent_record(approved=False)})
    await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")

    result = await store.auth.register(PrincipalKind.AGENT, {"email": "alex@realty.com"})

    assert result is None
    assert store.state.auth.user_auth_token == "seeker-token"
    assert store.state.auth.agent_auth_token is None
    assert (
        "Application submitted! Check alex@realty.com for approval notification." in toast_messages(store)
    )


@pytest.mark.asyncio
async def test_duplicate_email_registration(store, backend):
    backend.error("POST", "/api/auth/register", 409, "Email already registered", "EMAIL_ALREADY_EXISTS")

    with pytest.raises(AuthError) as info:
        await store.auth.register(PrincipalKind.SEEKER, {"email": "sam@example.com"})

    assert info.value.kind is ErrorKind.ALREADY_EXISTS
    assert store.state.auth.error_message == "Email already registered"


@pytest.mark.asyncio
async def test_admin_cannot_self_register(store):
    with pytest.raises(ValueError):
        await store.auth.register(PrincipalKind.ADMIN, {})


# --- Session restore ---


@pytest.mark.asyncio
async def test_restore_with_rejected_token_resets_to_guest(store, backend):
    store.state.auth.set_principal(PrincipalKind.SEEKER, User.model_validate(user_record()), "stale")
    store.state.favorites.saved_properties = ["prop_1"]
    backend.error("GET", "/api/users/me", 401, "Token expired", "AUTH_TOKEN_INVALID")

    await store.auth.restore_session()

    auth = store.state.auth
    assert auth.user_type is UserType.GUEST
    assert auth.current_user is None and auth.user_auth_token is None
    assert store.state.favorites.saved_properties == []


@pytest.mark.asyncio
async def test_restore_without_network_degrades_to_guest(store, backend):
    store.state.auth.set_principal(PrincipalKind.SEEKER, User.model_validate(user_record()), "kept")
    store.state.favorites.saved_properties = ["prop_1"]

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.add("GET", "/api/users/me", unreachable)

    await store.auth.restore_session()

    auth = store.state.auth
    assert auth.user_type is UserType.GUEST
    assert auth.is_authenticated is False
    assert auth.is_loading is False
    assert auth.current_user is None
    assert (auth.user_auth_token, auth.agent_auth_token, auth.admin_auth_token) == (None, None, None)
    assert store.state.favorites.saved_properties == []
    assert len(backend.calls("GET", "/api/users/me")) == 1


@pytest.mark.asyncio
async def test_restore_refreshes_identity_and_follow_up_data(store, backend):
    store.state.auth.set_principal(PrincipalKind.SEEKER, User.model_validate(user_record()), "kept")
    backend.json("GET", "/api/users/me", user_record(full_name="Sam Renamed"))
    backend.json("GET", "/api/favorites", {"data": [{"property_id": "prop_9"}]})

    await store.auth.restore_session()

    assert store.state.auth.current_user.full_name == "Sam Renamed"
    assert store.state.auth.user_auth_token == "kept"
    assert store.state.favorites.saved_properties == ["prop_9"]


@pytest.mark.asyncio
async def test_restore_drops_agent_suspended_since_last_visit(store, backend):
    store.state.auth.set_principal(PrincipalKind.AGENT, Agent.model_validate(agent_record()), "agent-token")
    backend.json("GET", "/api/agents/me", agent_record(account_status="suspended"))

    await store.auth.restore_session()

    assert store.state.auth.user_type is UserType.GUEST


@pytest.mark.asyncio
async def test_restore_as_guest_makes_no_request(store, backend):
    await store.auth.restore_session()

    assert backend.requests == []
    assert store.state.auth.is_loading is False


# --- Logout ---


@pytest.mark.asyncio
async def test_logout_clears_locally_and_notifies_backend(store, backend):
    agent_login(backend, token="agent-token")
    backend.json("POST", "/api/auth/logout", {"success": True})
    await store.auth.login(PrincipalKind.AGENT, "alex@realty.com", "secret123")

    store.auth.logout()

    auth = store.state.auth
    assert auth.user_type is UserType.GUEST
    assert auth.agent_auth_token is None
    assert store.state.dashboard.unread_inquiry_count == 0
    assert store.state.preferences.agent is None
    assert "Logged out successfully" in toast_messages(store)

    await store.wait_background()
    logout_calls = backend.calls("POST", "/api/auth/logout")
    assert len(logout_calls) == 1
    assert logout_calls[0].headers["Authorization"] == "Bearer agent-token"


@pytest.mark.asyncio
async def test_logout_survives_backend_failure(store, backend):
    seeker_login(backend)
    backend.error("POST", "/api/auth/logout", 500, "boom")
    await store.auth.login(PrincipalKind.SEEKER, "sam@example.com", "secret123")

    store.auth.logout()
    await store.wait_background()

    assert store.state.auth.user_type is UserType.GUEST
