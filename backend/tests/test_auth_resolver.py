"""Tests for applying authentication descriptors to request specs."""
import base64
from urllib.parse import parse_qs, urlsplit

import pytest

from execution import (
    ApiKeyAuth,
    AuthenticationResolver,
    AuthLocation,
    BasicAuth,
    BearerTokenAuth,
    HttpMethod,
    InvalidAuthConfig,
    NoAuth,
    OAuth2Auth,
    RequestSpec,
    auth_from_dict,
)


def make_spec(auth=None, url="https://api.example.com/items", headers=None) -> RequestSpec:
    return RequestSpec(HttpMethod.GET, url, headers=headers or {}, authentication=auth)


class TestAuthenticationResolver:
    """Tests for AuthenticationResolver.apply."""

    @pytest.fixture
    def resolver(self):
        return AuthenticationResolver()

    def test_api_key_header_sets_exact_value(self, resolver):
        spec = make_spec(ApiKeyAuth("X-Api-Key", "s3cr3t"))

        applied = resolver.apply(spec)

        assert applied.headers["X-Api-Key"] == "s3cr3t"
        assert applied.headers["x-api-key"] == "s3cr3t"

    def test_apply_does_not_mutate_input(self, resolver):
        spec = make_spec(ApiKeyAuth("X-Api-Key", "s3cr3t"), headers={"Accept": "application/json"})

        resolver.apply(spec)

        assert "X-Api-Key" not in spec.headers
        assert spec.headers.to_dict() == {"Accept": "application/json"}

    def test_apply_is_idempotent(self, resolver):
        spec = make_spec(ApiKeyAuth("X-Api-Key", "s3cr3t"), headers={"Accept": "application/json"})

        once = resolver.apply(spec)
        twice = resolver.apply(once)

        assert twice.headers.to_dict() == once.headers.to_dict()

    def test_api_key_header_overwrites_user_header(self, resolver):
        spec = make_spec(ApiKeyAuth("X-Api-Key", "from-auth"), headers={"x-api-key": "from-user"})

        applied = resolver.apply(spec)

        assert applied.headers["X-Api-Key"] == "from-auth"
        assert len(applied.headers) == 1

    def test_api_key_query_appends_encoded_param(self, resolver):
        spec = make_spec(
            ApiKeyAuth("api key", "a&b=c", AuthLocation.QUERY),
            url="https://api.example.com/items?page=2",
        )

        applied = resolver.apply(spec)

        query = parse_qs(urlsplit(applied.url).query)
        assert query["page"] == ["2"]
        assert query["api key"] == ["a&b=c"]
        assert "a&b=c" not in applied.url
        assert spec.url == "https://api.example.com/items?page=2"

    def test_api_key_query_overwrites_existing_param(self, resolver):
        spec = make_spec(
            ApiKeyAuth("key", "new", AuthLocation.QUERY),
            url="https://api.example.com/items?key=old",
        )

        applied = resolver.apply(spec)

        assert parse_qs(urlsplit(applied.url).query)["key"] == ["new"]

    def test_api_key_query_leaves_other_segments_untouched(self, resolver):
        spec = make_spec(
            ApiKeyAuth("k", "v", AuthLocation.QUERY),
            url="https://api.example.com/s?flag&path=/a%20b&x=1",
        )

        applied = resolver.apply(spec)

        assert applied.url == "https://api.example.com/s?flag&path=/a%20b&x=1&k=v"

    def test_api_key_query_drops_every_earlier_value(self, resolver):
        spec = make_spec(
            ApiKeyAuth("api key", "new", AuthLocation.QUERY),
            url="https://api.example.com/s?api%20key=old&flag&api+key=older",
        )

        applied = resolver.apply(spec)

        assert applied.url == "https://api.example.com/s?flag&api%20key=new"

    def test_api_key_header_with_unsendable_name_raises(self, resolver):
        with pytest.raises(InvalidAuthConfig):
            resolver.apply(make_spec(ApiKeyAuth("X Api Key", "v")))

    def test_bearer_token(self, resolver):
        applied = resolver.apply(make_spec(BearerTokenAuth("abc.def")))

        assert applied.headers["Authorization"] == "Bearer abc.def"

    def test_oauth2_token_is_sent_as_bearer(self, resolver):
        applied = resolver.apply(make_spec(OAuth2Auth("oauth-token")))

        assert applied.headers["authorization"] == "Bearer oauth-token"

    def test_basic_auth(self, resolver):
        applied = resolver.apply(make_spec(BasicAuth("user", "pass")))

        expected = base64.b64encode(b"user:pass").decode()
        assert applied.headers["Authorization"] == f"Basic {expected}"
        assert expected == "dXNlcjpwYXNz"

    def test_auth_wins_over_user_authorization_header(self, resolver):
        spec = make_spec(BearerTokenAuth("real"), headers={"authorization": "Bearer stale"})

        applied = resolver.apply(spec)

        assert applied.headers["Authorization"] == "Bearer real"

    @pytest.mark.parametrize("auth", [None, NoAuth()])
    def test_no_auth_returns_input_unchanged(self, resolver, auth):
        spec = make_spec(auth, headers={"Accept": "*/*"})

        assert resolver.apply(spec) is spec

    @pytest.mark.parametrize("auth", [
        ApiKeyAuth("", "value"),
        ApiKeyAuth("key", ""),
        BearerTokenAuth(""),
        OAuth2Auth(""),
        BasicAuth("", "pass"),
        BasicAuth("user", ""),
    ])
    def test_empty_required_field_raises(self, resolver, auth):
        with pytest.raises(InvalidAuthConfig):
            resolver.apply(make_spec(auth))


class TestAuthFromDict:
    """Tests for building descriptors from the client wire format."""

    def test_empty_returns_none(self):
        assert auth_from_dict(None) is None
        assert auth_from_dict({}) is None

    def test_none_type(self):
        assert auth_from_dict({"auth_type": "none"}) == NoAuth()

    def test_basic(self):
        auth = auth_from_dict({"auth_type": "basic", "auth_data": {"username": "u", "password": "p"}})
        assert auth == BasicAuth("u", "p")

    def test_camel_case_keys(self):
        auth = auth_from_dict({"authType": "bearer", "authData": {"token": "t"}})
        assert auth == BearerTokenAuth("t")

    def test_oauth2_access_token_key(self):
        auth = auth_from_dict({"auth_type": "oauth2", "auth_data": {"access_token": "t"}})
        assert auth == OAuth2Auth("t")

    def test_api_key_defaults_to_header(self):
        auth = auth_from_dict({"auth_type": "apikey", "auth_data": {"key": "k", "value": "v"}})
        assert auth == ApiKeyAuth("k", "v", AuthLocation.HEADER)

    def test_api_key_in_query(self):
        auth = auth_from_dict({"auth_type": "apikey", "auth_data": {"key": "k", "value": "v", "in": "query"}})
        assert auth.location == AuthLocation.QUERY

    def test_unknown_location_raises(self):
        with pytest.raises(InvalidAuthConfig):
            auth_from_dict({"auth_type": "apikey", "auth_data": {"key": "k", "value": "v", "in": "cookie"}})

    def test_unknown_type_raises(self):
        with pytest.raises(InvalidAuthConfig):
            auth_from_dict({"auth_type": "digest"})
