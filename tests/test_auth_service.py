"""
Tests for token resolution and its short-lived cache
"""

import pytest
from fastapi import HTTPException

from app.modules.auth.service import AuthService
from app.modules.users.service import UserService
from tests.factories import make_profile, make_role


class TestAuthService:

    def test_resolves_token(self, fake_supabase):
        fake_supabase.auth.add_token("t1", "u1", app_metadata={"type": "super_user"})
        user = AuthService(fake_supabase).get_current_user("t1")
        assert user == {"id": "u1", "email": "u1@example.com", "app_metadata": {"type": "super_user"}}

    def test_rejected_token(self, fake_supabase):
        with pytest.raises(HTTPException) as exc:
            AuthService(fake_supabase).get_current_user("unknown")
        assert exc.value.status_code == 401
        assert exc.value.detail == "Invalid or expired token"

    def test_cached_until_cleared(self, fake_supabase):
        fake_supabase.auth.add_token("t1", "u1")
        service = AuthService(fake_supabase)
        service.get_current_user("t1")
        del fake_supabase.auth.users["t1"]
        assert service.get_current_user("t1")["id"] == "u1"


class TestUserService:

    def test_profile_with_roles(self, fake_supabase):
        fake_supabase.seed("user_profiles", make_profile("u1", make_role("r1", "Editor", department_id="d1")))
        profile = UserService(fake_supabase).get_user_with_roles("u1")
        assert profile.user_roles[0].roles.scoped_department_id == "d1"
        assert profile.is_superadmin is False

    def test_super_user_metadata(self, fake_supabase):
        fake_supabase.seed("user_profiles", {"id": "u1", "email": "u1@example.com", "user_roles": None})
        profile = UserService(fake_supabase).get_user_with_roles("u1", app_metadata={"type": "super_user"})
        assert profile.is_superadmin is True
        assert profile.user_roles == []

    def test_missing_profile(self, fake_supabase):
        with pytest.raises(HTTPException) as exc:
            UserService(fake_supabase).get_user_with_roles("ghost")
        assert exc.value.status_code == 404

    def test_datastore_failure(self, fake_supabase):
        fake_supabase.failing_tables.add("user_profiles")
        with pytest.raises(HTTPException) as exc:
            UserService(fake_supabase).get_user_with_roles("u1")
        assert exc.value.status_code == 500
