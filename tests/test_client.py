"""Tests for grantflow.client -- request state API and the token HTTP exchange."""

from __future__ import annotations

import base64
from typing import Any, Callable
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from grantflow.client import Client
from grantflow.exceptions import ConnectionError_, MissingParameterError, TokenError
from grantflow.models import AccessToken
from grantflow.strategy import AuthCode


# ---------------------------------------------------------------------------
# Request state
# ---------------------------------------------------------------------------


class TestParams:
    def test_put_and_delete(self, make_client: Callable[..., Client]) -> None:
        client = make_client()
        assert client.put_param("a", "1") is client
        assert client.params == {"a": "1"}
        client.delete_param("a").delete_param("missing")
        assert client.params == {}

    def test_merge_overwrites(self, make_client: Callable[..., Client]) -> None:
        client = make_client(params={"a": "1", "b": "2"})
        client.merge_params({"b": "3", "c": "4"})
        assert client.params == {"a": "1", "b": "3", "c": "4"}

    def test_initial_params_are_copied(self, make_client: Callable[..., Client]) -> None:
        initial = {"code": "xyz"}
        client = make_client(params=initial)
        client.put_param("extra", "1")
        assert initial == {"code": "xyz"}

    def test_defaults(self) -> None:
        client = Client(client_id="abc")
        assert isinstance(client.strategy, AuthCode)
        assert client.pkce is False
        assert client.params == {} and client.private == {} and client.headers == []
        assert client.token is None


class TestPrivate:
    def test_private_values_are_not_params(self, make_client: Callable[..., Client]) -> None:
        client = make_client()
        client.put_private("code_verifier", "v")
        assert client.get_private("code_verifier") == "v"
        assert "code_verifier" not in client.params

    def test_get_private_default(self, make_client: Callable[..., Client]) -> None:
        assert make_client().get_private("nope", "fallback") == "fallback"

    def test_put_param_from_private_copies(self, make_client: Callable[..., Client]) -> None:
        client = make_client().put_private("k", "v").put_param_from_private("k")
        assert client.params["k"] == "v"
        assert client.private["k"] == "v"

    def test_put_param_from_private_consumes(self, make_client: Callable[..., Client]) -> None:
        client = make_client().put_private("k", "v").put_param_from_private("k", consume=True)
        assert client.params["k"] == "v"
        assert "k" not in client.private

    def test_put_param_from_private_missing(self, make_client: Callable[..., Client]) -> None:
        with pytest.raises(MissingParameterError, match="`k`"):
            make_client().put_param_from_private("k")

    def test_repr_hides_secrets(self, make_client: Callable[..., Client]) -> None:
        client = make_client(client_secret="s3cret", pkce=True)
        client.put_private("code_verifier", "hidden-verifier")
        text = repr(client)
        assert "s3cret" not in text
        assert "hidden-verifier" not in text
        assert "abc" in text


class TestHeaders:
    def test_put_header_lowercases_and_replaces(
        self, make_client: Callable[..., Client]
    ) -> None:
        client = make_client()
        client.put_header("X-Trace", "1").put_header("x-trace", "2")
        assert client.headers == [("x-trace", "2")]

    def test_put_headers_keeps_order(self, make_client: Callable[..., Client]) -> None:
        client = make_client(headers=[("A", "1"), ("B", "2")])
        assert client.headers == [("a", "1"), ("b", "2")]

    def test_basic_auth(self, make_client: Callable[..., Client]) -> None:
        client = make_client(client_secret="s3cret").basic_auth()
        expected = base64.b64encode(b"abc:s3cret").decode()
        assert client.headers == [("authorization", f"Basic {expected}")]

    def test_basic_auth_skipped_for_public_client(
        self, make_client: Callable[..., Client]
    ) -> None:
        assert make_client().basic_auth().headers == []


# ---------------------------------------------------------------------------
# Authorization URL
# ---------------------------------------------------------------------------


class TestAuthorizeUrl:
    def test_renders_relative_endpoint(self, make_client: Callable[..., Client]) -> None:
        url = make_client().authorize_url({"scope": "read"})
        parsed = urlparse(url)

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
            "https://auth.example.com/oauth/authorize"
        )
        assert parse_qs(parsed.query) == {
            "response_type": ["code"],
            "client_id": ["abc"],
            "redirect_uri": ["https://app/cb"],
            "scope": ["read"],
        }

    def test_absolute_endpoint_used_as_is(self, make_client: Callable[..., Client]) -> None:
        client = make_client(authorize_url="https://login.other.com/authorize")
        assert client.authorize_url().startswith("https://login.other.com/authorize?")

    def test_site_trailing_slash(self, make_client: Callable[..., Client]) -> None:
        client = make_client(site="https://auth.example.com/")
        assert client.endpoint("/oauth/token") == "https://auth.example.com/oauth/token"

    def test_pkce_query(self, make_client: Callable[..., Client]) -> None:
        client = make_client(pkce=True)
        url = client.authorize_url()
        query = parse_qs(urlparse(url).query)

        assert query["code_challenge_method"] == ["S256"]
        assert "code_verifier" not in query
        assert client.private["code_verifier"] not in url


# ---------------------------------------------------------------------------
# Token exchange
# ---------------------------------------------------------------------------


class TestGetToken:
    def test_success_posts_form(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
        token_payload: dict[str, Any],
    ) -> None:
        client = make_client(client_secret="s3cret")
        response = make_token_response(json=token_payload)

        with patch("grantflow.client.httpx.post", return_value=response) as mock_post:
            token = client.get_token({"code": "xyz"}, [("X-Trace", "1")])

        assert isinstance(token, AccessToken)
        assert token.access_token == "at-123"
        assert token.token_type == "Bearer"
        assert token.refresh_token == "rt-456"
        assert token.other_params == {"scope": "read write"}
        assert client.token is token

        mock_post.assert_called_once()
        call = mock_post.call_args
        assert call.args[0] == "https://auth.example.com/oauth/token"
        assert call.kwargs["data"] == {
            "code": "xyz",
            "grant_type": "authorization_code",
            "client_id": "abc",
            "redirect_uri": "https://app/cb",
        }
        headers = call.kwargs["headers"]
        assert headers["accept"] == "application/json"
        assert headers["x-trace"] == "1"
        assert headers["authorization"].startswith("Basic ")
        assert call.kwargs["timeout"] == 30.0

    def test_request_state_cleared_after_success(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
        token_payload: dict[str, Any],
    ) -> None:
        client = make_client(client_secret="s3cret")
        with patch("grantflow.client.httpx.post", return_value=make_token_response(json=token_payload)):
            client.get_token({"code": "xyz"})
        assert client.params == {}
        assert client.headers == []

    def test_full_pkce_flow(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
        token_payload: dict[str, Any],
    ) -> None:
        client = make_client(pkce=True)
        url = client.authorize_url({"state": "s1"})
        verifier = client.private["code_verifier"]
        assert parse_qs(urlparse(url).query)["code_challenge"][0]

        with patch(
            "grantflow.client.httpx.post", return_value=make_token_response(json=token_payload)
        ) as mock_post:
            client.get_token({"code": "xyz"})

        data = mock_post.call_args.kwargs["data"]
        assert data["code_verifier"] == verifier
        assert "code_challenge" not in data
        assert "code_challenge_method" not in data
        assert "state" not in data

    def test_missing_code_makes_no_request(self, make_client: Callable[..., Client]) -> None:
        with patch("grantflow.client.httpx.post") as mock_post:
            with pytest.raises(MissingParameterError):
                make_client().get_token()
        mock_post.assert_not_called()

    def test_error_response(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
    ) -> None:
        response = make_token_response(
            400, json={"error": "invalid_grant", "error_description": "code expired"}
        )
        with patch("grantflow.client.httpx.post", return_value=response):
            with pytest.raises(TokenError, match="invalid_grant") as exc_info:
                make_client().get_token({"code": "xyz"})

        assert exc_info.value.error == "invalid_grant"
        assert exc_info.value.status_code == 400
        assert "code expired" in str(exc_info.value)

    def test_error_with_200_status(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
    ) -> None:
        response = make_token_response(200, json={"error": "bad_verification_code"})
        with patch("grantflow.client.httpx.post", return_value=response):
            with pytest.raises(TokenError, match="bad_verification_code"):
                make_client().get_token({"code": "xyz"})

    def test_non_json_error(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
    ) -> None:
        response = make_token_response(502, text="Bad Gateway")
        with patch("grantflow.client.httpx.post", return_value=response):
            with pytest.raises(TokenError, match="502") as exc_info:
                make_client().get_token({"code": "xyz"})
        assert exc_info.value.error is None

    def test_missing_access_token(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
    ) -> None:
        response = make_token_response(json={"token_type": "bearer"})
        with patch("grantflow.client.httpx.post", return_value=response):
            with pytest.raises(TokenError, match="access_token"):
                make_client().get_token({"code": "xyz"})

    @pytest.mark.parametrize(
        "payload",
        [
            {"access_token": "at-123", "expires_in": "soon"},
            {"access_token": None},
            {"access_token": "at-123", "token_type": 5},
        ],
    )
    def test_malformed_token_fields(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
        payload: dict[str, Any],
    ) -> None:
        client = make_client()
        with patch("grantflow.client.httpx.post", return_value=make_token_response(json=payload)):
            with pytest.raises(TokenError, match="Malformed token response") as exc_info:
                client.get_token({"code": "xyz"})

        assert exc_info.value.status_code == 200
        assert client.token is None

    def test_form_encoded_response(
        self,
        make_client: Callable[..., Client],
        make_token_response: Callable[..., httpx.Response],
    ) -> None:
        response = make_token_response(
            text="access_token=gho_abc&scope=read%3Auser&token_type=bearer",
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        with patch("grantflow.client.httpx.post", return_value=response):
            token = make_client().get_token({"code": "xyz"})

        assert token.access_token == "gho_abc"
        assert token.other_params == {"scope": "read:user"}

    def test_network_failure(self, make_client: Callable[..., Client]) -> None:
        request = httpx.Request("POST", "https://auth.example.com/oauth/token")
        with patch(
            "grantflow.client.httpx.post",
            side_effect=httpx.ConnectError("refused", request=request),
        ):
            with pytest.raises(ConnectionError_, match="refused"):
                make_client().get_token({"code": "xyz"})
