"""Tests for Settings validation, actor context and the tracing decorator."""

import pytest
from pydantic import ValidationError

from access_matrix.core.config import Settings
from access_matrix.domain.enums import ProvisioningPolicy
from access_matrix.shared.context import (
    clear_current_user,
    get_actor_context,
    get_current_actor_id,
    set_current_user,
)
from access_matrix.shared.enums import ActorType
from access_matrix.shared.telemetry.tracing import traced


def test_settings_defaults() -> None:
    settings = Settings(database_url="sqlite+aiosqlite://")
    assert settings.provisioning_policy is ProvisioningPolicy.ROLE_EXPANSION
    assert settings.view_permission_name == "view"
    assert settings.fallback_permission_id == 1
    assert settings.audit_enabled is True


def test_settings_require_database_url(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_settings_reject_blank_view_permission() -> None:
    with pytest.raises(ValidationError):
        Settings(database_url="sqlite+aiosqlite://", view_permission_name="  ")


def test_actor_context_round_trip() -> None:
    set_current_user(4, ip_address="10.0.0.2", user_agent="ua")
    ctx = get_actor_context()
    assert ctx.user_id == 4
    assert ctx.actor_type is ActorType.USER
    assert ctx.ip_address == "10.0.0.2"
    assert get_current_actor_id() == 4

    clear_current_user()
    assert get_current_actor_id() is None
    assert get_actor_context().actor_type is ActorType.SYSTEM


def test_user_actor_requires_id() -> None:
    with pytest.raises(ValueError):
        set_current_user(None)


async def test_traced_passes_through_results_and_errors() -> None:
    @traced("test.op")
    async def op(user_id: int) -> int:
        if user_id < 0:
            raise ValueError("negative")
        return user_id * 2

    assert await op(user_id=3) == 6
    with pytest.raises(ValueError):
        await op(user_id=-1)


def test_traced_rejects_sync_functions() -> None:
    with pytest.raises(TypeError):

        @traced()
        def not_async() -> None:
            return None
