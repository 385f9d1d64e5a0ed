"""
Shared pytest fixtures for the permission engine tests.

Provides:
- An in-memory fake of the Supabase client (query builder + auth)
- Role store on top of the fake
- A role store that always fails, for fail-closed checks
"""

import pytest

from app.modules.auth.service import clear_auth_cache
from app.modules.roles.service import RoleService
from tests.factories import FailingRoleStore, FakeSupabase


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def role_store(fake_supabase) -> RoleService:
    return RoleService(fake_supabase)


@pytest.fixture
def failing_store() -> FailingRoleStore:
    return FailingRoleStore()


@pytest.fixture(autouse=True)
def _clear_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()
