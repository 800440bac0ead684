"""
Tests for shared models.
"""

import pytest
from datetime import timedelta
from pydantic import ValidationError

from shared.models import Identity
from tests.conftest import FIXED_NOW


class TestIdentity:
    """Tests for the Identity model in shared."""

    def test_create(self):
        identity = Identity(
            user_id="user-123",
            login="test@example.com",
            session_token="secret-token",
            session_expires_at=FIXED_NOW + timedelta(hours=1),
        )
        assert identity.user_id == "user-123"
        assert identity.login == "test@example.com"

    def test_token_not_in_repr(self):
        """The session token must never leak into logs via repr."""
        identity = Identity(
            user_id="user-123",
            login="test@example.com",
            session_token="secret-token",
            session_expires_at=FIXED_NOW,
        )
        assert "secret-token" not in repr(identity)

    def test_immutable(self):
        identity = Identity(
            user_id="user-123",
            login="test@example.com",
            session_token="secret-token",
            session_expires_at=FIXED_NOW,
        )
        with pytest.raises(ValidationError):
            identity.user_id = "user-456"

    def test_required_fields(self):
        with pytest.raises(ValidationError):
            Identity(user_id="user-123", login="test@example.com")
