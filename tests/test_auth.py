"""Tests for the admin access predicate."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from livesync.auth import is_admin
from livesync.models.config import AdminConfig

ADMINS = AdminConfig(emails=["owner@example.com", "Editor@Example.com "])


@pytest.mark.parametrize(
    "email", ["owner@example.com", "OWNER@example.com", "  owner@example.com", "editor@example.com"]
)
def test_configured_emails_are_admins(email: str) -> None:
    assert is_admin(email, ADMINS) is True


@pytest.mark.parametrize("email", [None, "", "visitor@example.com", "owner@example.org"])
def test_other_identities_are_not_admins(email) -> None:
    assert is_admin(email, ADMINS) is False


@given(email=st.emails())
def test_nobody_is_admin_without_configuration(email: str) -> None:
    assert is_admin(email, AdminConfig()) is False
