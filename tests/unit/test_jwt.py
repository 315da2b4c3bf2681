"""RS256 token creation and verification."""

import jwt
import pytest

from pulseearn.auth.jwt import create_access_token, create_refresh_token, verify_token


class TestJwt:
    def test_access_round_trip(self):
        payload = verify_token(create_access_token(7, "a@example.com"))
        assert payload["sub"] == "7"
        assert payload["email"] == "a@example.com"
        assert payload["type"] == "access"

    def test_refresh_carries_jti(self):
        payload = verify_token(create_refresh_token(7, "a@example.com", token_id="abc"), expected_type="refresh")
        assert payload["jti"] == "abc"

    def test_wrong_type_rejected(self):
        token = create_refresh_token(7, "a@example.com", token_id="abc")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="access")

    def test_garbage_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not.a.token")
