"""
Tests for Cognito token verification, the Lambda authorizer and Parameter Store lookups.
"""

from unittest.mock import MagicMock

import jwt
import pytest
import requests
from botocore.exceptions import ClientError

import authorizer
from services import parameter_store
from services.cognito_auth import CognitoAuth
from services.parameter_store import ParameterStoreConfig, env_var_for

POOL = {
    "user_pool_id": "eu-west-1_AbC123",
    "app_client_id": "client-1",
    "region": "eu-west-1",
    "domain": None,
}


@pytest.fixture
def auth():
    cognito = CognitoAuth(dict(POOL))
    cognito._jwks_client = MagicMock()
    return cognito


@pytest.fixture
def decoded(monkeypatch):
    """Make jwt.decode return the given payload."""

    def _set(payload=None, error=None):
        def fake_decode(token, key, **kwargs):
            assert kwargs["issuer"] == (
                "https://cognito-idp.eu-west-1.amazonaws.com/eu-west-1_AbC123"
            )
            if error:
                raise error
            return payload

        monkeypatch.setattr(jwt, "decode", fake_decode)

    return _set


class TestCognitoAuth:
    def test_id_token_for_our_client(self, auth, decoded):
        decoded({"sub": "u1", "token_use": "id", "aud": "client-1", "email": "a@gmail.com",
                 "email_verified": True})
        claims = auth.validate_token("token")
        assert claims["sub"] == "u1"
        assert claims["email"] == "a@gmail.com"

    def test_access_token_checks_client_id(self, auth, decoded):
        decoded({"sub": "u1", "token_use": "access", "client_id": "other"})
        assert auth.validate_token("token") is None

    def test_unexpected_token_use(self, auth, decoded):
        decoded({"sub": "u1", "token_use": "refresh", "aud": "client-1"})
        assert auth.validate_token("token") is None

    @pytest.mark.parametrize(
        "error", [jwt.ExpiredSignatureError("old"), jwt.InvalidIssuerError("iss")]
    )
    def test_rejected_tokens(self, auth, decoded, error):
        decoded(error=error)
        assert auth.validate_token("token") is None

    def test_userinfo_fallback(self, monkeypatch):
        response = MagicMock(status_code=200)
        response.json.return_value = {"sub": "u2", "email": "b@gmail.com", "email_verified": "true"}
        get = MagicMock(return_value=response)
        monkeypatch.setattr(requests, "get", get)

        cognito = CognitoAuth({**POOL, "user_pool_id": None, "domain": "auth.example.org"})
        assert cognito.validate_token("token")["sub"] == "u2"
        assert get.call_args.args[0] == "https://auth.example.org/oauth2/userInfo"

    def test_userinfo_rejection(self, monkeypatch):
        monkeypatch.setattr(requests, "get", MagicMock(return_value=MagicMock(status_code=401)))
        cognito = CognitoAuth({**POOL, "user_pool_id": None, "domain": "auth.example.org"})
        assert cognito.validate_token("token") is None

    def test_unconfigured(self):
        assert CognitoAuth({**POOL, "user_pool_id": None}).validate_token("t") is None

    @pytest.mark.parametrize(
        "header, token",
        [("Bearer abc", "abc"), ("bearer abc", "abc"), ("Basic abc", None), ("abc", None), (None, None)],
    )
    def test_extract_token(self, header, token):
        assert CognitoAuth.extract_token_from_header(header) == token

    def test_header_lookup_is_case_insensitive(self, auth, decoded):
        decoded({"sub": "u1", "token_use": "id", "aud": "client-1"})
        user = auth.get_user_from_request({"headers": {"authorization": "Bearer t"}})
        assert user["sub"] == "u1"


class TestAuthorizer:
    def test_authorized_context(self, monkeypatch, lambda_context):
        monkeypatch.setattr(
            authorizer.cognito_auth,
            "get_user_from_request",
            lambda event: {"sub": "u1", "email": "a@gmail.com", "email_verified": True},
        )
        result = authorizer.lambda_handler({"headers": {}}, lambda_context)
        assert result == {
            "isAuthorized": True,
            "context": {"sub": "u1", "email": "a@gmail.com", "email_verified": "true"},
        }

    def test_no_identity(self, monkeypatch, lambda_context):
        monkeypatch.setattr(authorizer.cognito_auth, "get_user_from_request", lambda event: None)
        assert authorizer.lambda_handler({"headers": {}}, lambda_context) == {"isAuthorized": False}

    def test_verification_crash_denies(self, monkeypatch, lambda_context):
        def boom(event):
            raise requests.ConnectionError("jwks unreachable")

        monkeypatch.setattr(authorizer.cognito_auth, "get_user_from_request", boom)
        assert authorizer.lambda_handler({"headers": {}}, lambda_context) == {"isAuthorized": False}


class TestParameterStore:
    @pytest.fixture(autouse=True)
    def _fresh_cache(self, monkeypatch):
        parameter_store.get_parameter.cache_clear()
        for name in ("USER_POOL_ID", "APP_CLIENT_ID", "REGION", "DOMAIN"):
            monkeypatch.delenv(f"JOBCOPILOT_COGNITO_{name}", raising=False)
        yield
        parameter_store.get_parameter.cache_clear()

    def test_env_var_name(self):
        assert env_var_for("/jobcopilot/cognito/user-pool-id") == "JOBCOPILOT_COGNITO_USER_POOL_ID"

    def test_environment_wins(self, monkeypatch):
        ssm = MagicMock()
        monkeypatch.setattr(parameter_store, "get_ssm_client", lambda: ssm)
        monkeypatch.setenv("JOBCOPILOT_COGNITO_DOMAIN", "auth.example.org")
        assert ParameterStoreConfig().get("cognito/domain") == "auth.example.org"
        ssm.get_parameter.assert_not_called()

    def test_missing_parameter_uses_default(self, monkeypatch):
        ssm = MagicMock()
        ssm.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "nope"}}, "GetParameter"
        )
        monkeypatch.setattr(parameter_store, "get_ssm_client", lambda: ssm)
        store = ParameterStoreConfig()
        assert store.get("cognito/domain", "fallback") == "fallback"
        with pytest.raises(ValueError):
            ParameterStoreConfig().get_required("cognito/app-client-id")

    def test_other_ssm_errors_propagate(self, monkeypatch):
        ssm = MagicMock()
        ssm.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "GetParameter"
        )
        monkeypatch.setattr(parameter_store, "get_ssm_client", lambda: ssm)
        with pytest.raises(ClientError):
            ParameterStoreConfig().get("cognito/region")

    def test_region_from_pool_id(self, monkeypatch):
        ssm = MagicMock()
        ssm.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "nope"}}, "GetParameter"
        )
        monkeypatch.setattr(parameter_store, "get_ssm_client", lambda: ssm)
        monkeypatch.setenv("JOBCOPILOT_COGNITO_USER_POOL_ID", "us-east-2_Xyz")
        loaded = ParameterStoreConfig().load_cognito_config()
        assert loaded["user_pool_id"] == "us-east-2_Xyz"
        assert loaded["region"] == "us-east-2"
        assert loaded["domain"] is None
