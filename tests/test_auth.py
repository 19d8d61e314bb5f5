"""Tests for the token factory and the session principal resolver."""

import pytest

from dashgate.core.auth import Principal, resolve_principal
from dashgate.core.token_factory import TokenError, create_token, decode_token
from dashgate.exceptions import AuthenticationError, ErrorCode, TokenExpiredError, TokenInvalidError
from dashgate.models import Role


def _token(secret="test-secret", **overrides):
    kwargs = dict(subject="7", email="a@example.com", role="User", secret=secret, name="Alice")
    kwargs.update(overrides)
    return create_token(**kwargs)


class TestTokenFactory:

    def test_create_and_decode(self):
        payload = decode_token(_token(), "test-secret")
        assert payload.sub == "7"
        assert payload.email == "a@example.com"
        assert payload.role == "User"
        assert payload.name == "Alice"

    def test_wrong_secret_is_invalid_not_expired(self):
        with pytest.raises(TokenError) as exc:
            decode_token(_token(secret="correct-secret"), "wrong-secret")
        assert exc.value.expired is False

    def test_expired_token_flags_expiry(self):
        with pytest.raises(TokenError) as exc:
            decode_token(_token(expires_minutes=-5), "test-secret")
        assert exc.value.expired is True

    def test_forged_expired_token_reports_invalid(self):
        token = _token(secret="other", expires_minutes=-5)
        with pytest.raises(TokenError) as exc:
            decode_token(token, "test-secret")
        assert exc.value.expired is False

    @pytest.mark.parametrize("raw", ["not.a.token", "", "abc", "a.b.c.d", "!!!.###.$$$"])
    def test_malformed_tokens_raise_token_error(self, raw):
        with pytest.raises(TokenError):
            decode_token(raw, "test-secret")

    def test_tampered_payload_rejected(self):
        header, payload, sig = _token().split(".")
        tampered = _token(role="Admin").split(".")[1]
        with pytest.raises(TokenError):
            decode_token(f"{header}.{tampered}.{sig}", "test-secret")

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError):
            create_token("1", "a@example.com", "User", "s", algorithm="RS256")


class TestResolvePrincipal:

    def test_valid_token(self):
        principal = resolve_principal(_token(role="Admin"), secret="test-secret")
        assert principal == Principal(user_id=7, email="a@example.com", role=Role.ADMIN, name="Alice")
        assert principal.is_admin

    def test_user_role_is_not_admin(self):
        principal = resolve_principal(_token(), secret="test-secret")
        assert principal.role is Role.USER
        assert not principal.is_admin

    def test_missing_token(self):
        with pytest.raises(AuthenticationError) as exc:
            resolve_principal(None)
        assert exc.value.error_code == ErrorCode.UNAUTHORIZED
        assert exc.value.status_code == 401

    def test_expired_token(self):
        with pytest.raises(TokenExpiredError) as exc:
            resolve_principal(_token(expires_minutes=-1), secret="test-secret")
        assert exc.value.error_code == ErrorCode.TOKEN_EXPIRED

    def test_invalid_signature(self):
        with pytest.raises(TokenInvalidError) as exc:
            resolve_principal(_token(secret="nope"), secret="test-secret")
        assert exc.value.error_code == ErrorCode.TOKEN_INVALID

    def test_role_is_case_sensitive(self):
        with pytest.raises(TokenInvalidError):
            resolve_principal(_token(role="admin"), secret="test-secret")

    def test_non_numeric_subject(self):
        with pytest.raises(TokenInvalidError):
            resolve_principal(_token(subject="abc"), secret="test-secret")

    def test_principal_is_immutable(self):
        principal = resolve_principal(_token(), secret="test-secret")
        with pytest.raises(AttributeError):
            principal.role = Role.ADMIN


class TestAuthDependencies:

    def test_missing_header_is_401(self, client):
        resp = client.get("/api/areas")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_garbage_token_is_401(self, client):
        resp = client.get("/api/areas", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "TOKEN_INVALID"

    def test_non_admin_gets_403_on_admin_route(self, client, user_headers):
        resp = client.get("/api/users", headers=user_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "FORBIDDEN"
