"""Tests for password login and token response parsing."""

from __future__ import annotations

import json

import httpx
import jwt
import pytest

from zik_client.config import CognitoConfig
from zik_client.exceptions import LoginFailed, NetworkUnavailable, Unauthenticated
from zik_client.security.auth.login import login_with_password
from zik_client.security.auth.token_parser import decode_identity, parse_authentication_result


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def login_result(id_token_factory) -> dict:
    """Cognito AuthenticationResult for a password login."""
    return {
        "AccessToken": "access-1",
        "IdToken": id_token_factory(),
        "RefreshToken": "refresh-1",
        "TokenType": "Bearer",
        "ExpiresIn": 3600,
    }


class TestLoginWithPassword:
    """Tests for login_with_password()."""

    async def test_success_returns_new_session(self, cognito_config: CognitoConfig, login_result: dict) -> None:
        """Given accepted credentials, returns a complete token set."""
        # Arrange
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"AuthenticationResult": login_result})

        # Act
        token = await login_with_password(cognito_config, "ada", "pw", http_client=_client(handler))

        # Assert
        assert seen[0]["AuthFlow"] == "USER_PASSWORD_AUTH"
        assert seen[0]["AuthParameters"] == {"USERNAME": "ada", "PASSWORD": "pw"}
        assert token.access_token == "access-1"
        assert token.refresh_token == "refresh-1"
        assert token.session_id

    async def test_two_logins_get_distinct_sessions(self, cognito_config: CognitoConfig, login_result: dict) -> None:
        """Given two logins, each token set has its own session_id."""
        client = _client(lambda request: httpx.Response(200, json={"AuthenticationResult": login_result}))

        first = await login_with_password(cognito_config, "ada", "pw", http_client=client)
        second = await login_with_password(cognito_config, "ada", "pw", http_client=client)

        assert first.session_id != second.session_id

    @pytest.mark.parametrize(
        "error_type",
        ["NotAuthorizedException", "UserNotFoundException", "UserNotConfirmedException"],
    )
    async def test_rejected_credentials(self, cognito_config: CognitoConfig, error_type: str) -> None:
        """Given rejected credentials, raises LoginFailed."""
        client = _client(lambda request: httpx.Response(400, json={"__type": error_type, "message": "nope"}))

        with pytest.raises(LoginFailed):
            await login_with_password(cognito_config, "ada", "wrong", http_client=client)

    async def test_challenge_fails_login(self, cognito_config: CognitoConfig) -> None:
        """Given an MFA challenge, raises LoginFailed."""
        client = _client(lambda request: httpx.Response(200, json={"ChallengeName": "SMS_MFA"}))

        with pytest.raises(LoginFailed, match="SMS_MFA"):
            await login_with_password(cognito_config, "ada", "pw", http_client=client)

    async def test_server_error_is_network_unavailable(self, cognito_config: CognitoConfig) -> None:
        """Given a 503, raises NetworkUnavailable."""
        client = _client(lambda request: httpx.Response(503, json={"__type": "ServiceUnavailable"}))

        with pytest.raises(NetworkUnavailable):
            await login_with_password(cognito_config, "ada", "pw", http_client=client)

    async def test_connect_error_is_network_unavailable(self, cognito_config: CognitoConfig) -> None:
        """Given a connection failure, raises NetworkUnavailable."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(NetworkUnavailable):
            await login_with_password(cognito_config, "ada", "pw", http_client=_client(handler))


class TestParseAuthenticationResult:
    """Tests for parse_authentication_result()."""

    def test_defaults_expiry_to_one_hour(self, id_token_factory) -> None:
        """Given no ExpiresIn, expiry defaults to 3600 seconds."""
        token = parse_authentication_result(
            {"AccessToken": "a", "IdToken": id_token_factory(), "RefreshToken": "r"}
        )

        assert token.token_type == "Bearer"
        assert 3590 < token.seconds_until_expiry <= 3600

    def test_missing_access_token_raises_key_error(self) -> None:
        """Given no AccessToken, raises KeyError."""
        with pytest.raises(KeyError):
            parse_authentication_result({"IdToken": "i", "RefreshToken": "r"})


class TestDecodeIdentity:
    """Tests for decode_identity()."""

    def test_reads_claims(self, id_token_factory) -> None:
        """Given an ID token, returns sub, name and email."""
        identity = decode_identity(id_token_factory(sub="u-1", email="a@b.c", name="Ada"))

        assert identity.user_id == "u-1"
        assert identity.email == "a@b.c"
        assert identity.user_name == "Ada"

    def test_garbage_token_raises(self) -> None:
        """Given a non-JWT string, raises Unauthenticated."""
        with pytest.raises(Unauthenticated):
            decode_identity("not-a-jwt")

    def test_missing_subject_raises(self) -> None:
        """Given a token without sub, raises Unauthenticated."""
        token = jwt.encode({"email": "a@b.c"}, "zik-test-signing-key-0123456789abcdef", algorithm="HS256")

        with pytest.raises(Unauthenticated):
            decode_identity(token)
