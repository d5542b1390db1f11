"""
Unit tests for identity resolution and role guards
"""

import pytest

from wasteapp.auth import resolve_identity, require_authenticated, require_any_role, role_for_username
from wasteapp.errors import Conflict, Forbidden, Unauthenticated, ValidationError


class TestResolveIdentity:
    """Trust-on-first-use login"""

    def test_new_username_creates_public_user(self, store):
        user = resolve_identity(store, None, "alice")
        assert user.id is not None
        assert user.username == "alice"
        assert user.role == "public"

    def test_admin_literal_creates_admin(self, store):
        assert resolve_identity(store, None, "admin").role == "admin"

    def test_admin_match_is_case_sensitive(self, store):
        assert resolve_identity(store, None, "Admin").role == "public"

    def test_second_login_returns_same_user(self, store):
        first = resolve_identity(store, None, "alice")
        second = resolve_identity(store, None, "alice")
        assert (second.id, second.role) == (first.id, first.role)
        assert len(store.list_users()) == 1

    def test_existing_session_identity_is_kept(self, store):
        alice = resolve_identity(store, None, "alice")
        assert resolve_identity(store, alice, "someone-else").id == alice.id
        assert store.get_user_by_username("someone-else") is None

    @pytest.mark.parametrize("username", [None, "", "   "])
    def test_blank_username_rejected(self, store, username):
        with pytest.raises(ValidationError):
            resolve_identity(store, None, username)
        assert store.list_users() == []

    @pytest.mark.parametrize("username", [" alice", "alice ", "\talice"])
    def test_surrounding_whitespace_rejected(self, store, username):
        with pytest.raises(ValidationError):
            resolve_identity(store, None, username)
        assert store.list_users() == []

    def test_concurrent_creation_returns_existing_row(self, store, monkeypatch):
        existing = store.create_user("alice", "public")
        lookups = iter([None, existing])

        def racing_create(username, role):
            raise Conflict(f"Username '{username}' already exists")

        monkeypatch.setattr(store, "get_user_by_username", lambda username: next(lookups))
        monkeypatch.setattr(store, "create_user", racing_create)

        user = resolve_identity(store, None, "alice")
        assert user.id == existing.id

    def test_conflict_without_row_propagates(self, store, monkeypatch):
        def failing_create(username, role):
            raise Conflict("constraint failed")

        monkeypatch.setattr(store, "get_user_by_username", lambda username: None)
        monkeypatch.setattr(store, "create_user", failing_create)

        with pytest.raises(Conflict):
            resolve_identity(store, None, "alice")

    def test_role_for_username(self):
        assert role_for_username("admin") == "admin"
        assert role_for_username("worker1") == "public"


class TestGuards:
    """require_authenticated / require_any_role"""

    def test_anonymous_is_unauthenticated(self):
        with pytest.raises(Unauthenticated):
            require_authenticated(None)

    def test_role_guard_checks_authentication_first(self):
        with pytest.raises(Unauthenticated):
            require_any_role(None, ("admin",))

    def test_role_guard_rejects_other_roles(self, users):
        with pytest.raises(Forbidden):
            require_any_role(users["alice"], ("worker", "admin"))

    def test_role_guard_passes_allowed_role(self, users):
        assert require_any_role(users["bob"], ("worker", "admin")) is users["bob"]
