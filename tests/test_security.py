"""Tests for bearer token handling."""

from datetime import timedelta

from jose import jwt

from medislot.core.config import settings
from medislot.core.security import (
    Principal,
    create_access_token,
    decode_access_token,
    resolve_principal,
)


class TestTokens:
    """Tests for token creation and decoding."""

    def test_round_trip_claims(self):
        token = create_access_token("provider-1", "provider", additional_claims={"org": "x"})

        payload = decode_access_token(token)

        assert payload["sub"] == "provider-1"
        assert payload["actor_type"] == "provider"
        assert payload["org"] == "x"

    def test_expired_token_is_rejected(self):
        token = create_access_token(
            "provider-1", "provider", expires_delta=timedelta(minutes=-1)
        )

        assert decode_access_token(token) is None

    def test_wrong_key_is_rejected(self):
        token = jwt.encode(
            {"sub": "provider-1", "actor_type": "provider"},
            "some-other-key",
            algorithm=settings.algorithm,
        )

        assert decode_access_token(token) is None


class TestResolvePrincipal:
    """Tests for mapping tokens to principals."""

    def test_provider(self):
        principal = resolve_principal(create_access_token("provider-1", "provider"))

        assert principal == Principal(id="provider-1", actor_type="provider")
        assert principal.is_provider
        assert not principal.is_requester

    def test_requester(self):
        principal = resolve_principal(create_access_token("requester-1", "requester"))

        assert principal.is_requester

    def test_unknown_actor_type(self):
        token = create_access_token("admin-1", "admin")

        assert resolve_principal(token) is None

    def test_missing_subject(self):
        token = jwt.encode(
            {"actor_type": "provider"}, settings.secret_key, algorithm=settings.algorithm
        )

        assert resolve_principal(token) is None

    def test_garbage(self):
        assert resolve_principal("abc.def.ghi") is None
