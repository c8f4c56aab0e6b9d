"""Tests for principal resolution and role checks.

**Feature: content-screener, Property 13: Admin Role Enforcement**
"""

from datetime import timedelta

import pytest
from hypothesis import given, settings, strategies as st
from jose import jwt

from screener.core.config import settings as app_settings
from screener.core.exceptions import Forbidden
from screener.modules.auth.principal import (
    Principal,
    Role,
    create_access_token,
    decode_principal,
    require_admin,
)

user_ids = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N")), min_size=1, max_size=36
)


class TestTokenDecoding:
    @given(user_id=user_ids, role=st.sampled_from(list(Role)))
    @settings(max_examples=50)
    def test_token_roundtrip(self, user_id: str, role: Role) -> None:
        principal = decode_principal(create_access_token(user_id, role))
        assert principal == Principal(user_id=user_id, role=role)

    def test_expired_token_rejected(self) -> None:
        token = create_access_token("u1", expires_delta=timedelta(seconds=-10))
        assert decode_principal(token) is None

    def test_wrong_signature_rejected(self) -> None:
        token = jwt.encode({"sub": "u1", "role": "ADMIN"}, "other-key", algorithm="HS256")
        assert decode_principal(token) is None

    def test_garbage_rejected(self) -> None:
        assert decode_principal("not-a-token") is None

    def test_missing_subject_rejected(self) -> None:
        token = jwt.encode({"role": "ADMIN"}, app_settings.SECRET_KEY, algorithm=app_settings.JWT_ALGORITHM)
        assert decode_principal(token) is None

    def test_unknown_role_is_user(self) -> None:
        token = jwt.encode(
            {"sub": "u1", "role": "superuser"},
            app_settings.SECRET_KEY,
            algorithm=app_settings.JWT_ALGORITHM,
        )
        assert decode_principal(token).role == Role.USER

    def test_lowercase_role_accepted(self) -> None:
        token = jwt.encode(
            {"sub": "u1", "role": "admin"},
            app_settings.SECRET_KEY,
            algorithm=app_settings.JWT_ALGORITHM,
        )
        assert decode_principal(token).is_admin


class TestRoleEnforcement:
    """**Feature: content-screener, Property 13: Admin Role Enforcement**"""

    def test_admin_allowed(self) -> None:
        admin = Principal(user_id="a1", role=Role.ADMIN)
        assert require_admin(admin) is admin

    def test_user_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            require_admin(Principal(user_id="u1", role=Role.USER))
