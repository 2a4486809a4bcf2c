"""
Password rules, JWT helpers and the role policy table.
"""

from datetime import timedelta

import pytest
from jose import ExpiredSignatureError

from bizdesk.core.permissions import Action, Role, actions_for, is_allowed, known_action
from bizdesk.core.security import (
    create_access_token,
    create_superadmin_token,
    decode_access_token,
    hash_password,
    password_strength_error,
    verify_password,
)


class TestPasswordStrength:

    @pytest.mark.parametrize(
        "password, expected",
        [
            ("", "Password is required"),
            ("abc1", "Password must be at least 8 characters long"),
            ("abcdefgh", "Password must contain at least one number"),
            ("12345678", "Password must contain at least one letter"),
            ("Password123", "This password is too common. Please choose a stronger password"),
        ],
    )
    def test_weak_passwords_are_explained(self, password, expected):
        assert password_strength_error(password) == expected

    def test_acceptable_password(self):
        assert password_strength_error("Kampala2024") is None


def test_hash_and_verify(password_hash):
    assert password_hash != "Secret123"
    assert verify_password("Secret123", password_hash)
    assert not verify_password("Secret124", password_hash)


class TestTokens:

    def test_user_token_claims(self):
        token = create_access_token("user-1", "company-1", "manager", email="m@example.com")
        payload = decode_access_token(token)
        assert payload["sub"] == "user-1"
        assert payload["company_id"] == "company-1"
        assert payload["role"] == "manager"
        assert payload["type"] == "user"

    def test_superadmin_token_claims(self):
        payload = decode_access_token(create_superadmin_token("admin-1", "ops@example.com"))
        assert payload["type"] == "superadmin"
        assert payload["role"] == "superadmin"

    def test_expired_token_is_rejected(self):
        token = create_access_token("user-1", "company-1", "sales", expires_delta=timedelta(seconds=-5))
        with pytest.raises(ExpiredSignatureError):
            decode_access_token(token)


class TestPolicy:

    def test_admin_may_do_everything(self):
        assert actions_for("admin") == frozenset(Action)

    @pytest.mark.parametrize(
        "role, action, allowed",
        [
            (Role.manager, Action.products_create, True),
            (Role.manager, Action.products_delete, False),
            (Role.manager, Action.returns_approve, True),
            (Role.manager, Action.users_manage, False),
            (Role.sales, Action.invoices_generate, True),
            (Role.sales, Action.products_create, False),
            (Role.sales, Action.returns_approve, False),
            (Role.sales, Action.backup_export, False),
        ],
    )
    def test_role_table(self, role, action, allowed):
        assert is_allowed(role.value, action) is allowed

    def test_unknown_role_has_no_actions(self):
        assert actions_for("owner") == frozenset()
        assert not is_allowed("owner", Action.products_create)

    def test_explicit_grant_extends_role(self):
        assert is_allowed("sales", Action.products_create, ["products:create"])
        assert not is_allowed("sales", Action.products_delete, ["products:create"])

    def test_known_action(self):
        assert known_action("backup:export")
        assert not known_action("backup:restore")


def test_hash_password_salts_each_call():
    first = hash_password("Kampala2024")
    second = hash_password("Kampala2024")
    assert first != second
