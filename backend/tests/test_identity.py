# Overview: Pytest coverage for bearer token resolution and request authentication.

"""
Identity Resolution Tests

A request without credentials is anonymous; a presented credential that
fails verification is rejected outright and never downgraded to anonymous.
"""

import pytest

from shelfkeep.services.identity_service import (
    ANONYMOUS,
    AUTHENTICATED,
    INVALID,
    IdentityResolver,
)
from tests.conftest import TEST_JWT_SECRET, auth_headers, make_token


@pytest.fixture
def resolver():
    return IdentityResolver(TEST_JWT_SECRET, ["HS256"])


class TestIdentityResolver:
    """Unit tests for IdentityResolver.resolve()."""

    def test_missing_header_is_anonymous(self, resolver):
        assert resolver.resolve(None).status == ANONYMOUS
        assert resolver.resolve("").status == ANONYMOUS

    def test_non_bearer_scheme_is_anonymous(self, resolver):
        assert resolver.resolve("Basic dXNlcjpwYXNz").status == ANONYMOUS

    def test_empty_bearer_is_anonymous(self, resolver):
        assert resolver.resolve("Bearer    ").status == ANONYMOUS

    def test_valid_token_yields_subject(self, resolver):
        identity = resolver.resolve(f"Bearer {make_token('user_2abc')}")
        assert identity.status == AUTHENTICATED
        assert identity.user_id == "user_2abc"
        assert identity.is_authenticated

    def test_expired_token_is_invalid(self, resolver):
        identity = resolver.resolve(f"Bearer {make_token('user_a', expires_in=-60)}")
        assert identity.status == INVALID
        assert identity.user_id is None

    def test_leeway_tolerates_small_clock_skew(self):
        lenient = IdentityResolver(TEST_JWT_SECRET, ["HS256"], leeway_seconds=120)
        identity = lenient.resolve(f"Bearer {make_token('user_a', expires_in=-60)}")
        assert identity.is_authenticated

    def test_wrong_signature_is_invalid(self, resolver):
        forged = make_token("user_a", secret="someone-elses-secret")
        assert resolver.resolve(f"Bearer {forged}").is_invalid

    def test_garbage_token_is_invalid(self, resolver):
        assert resolver.resolve("Bearer not.a.jwt").is_invalid

    def test_token_without_subject_is_invalid(self, resolver):
        assert resolver.resolve(f"Bearer {make_token(None)}").is_invalid

    def test_audience_and_issuer_checked_when_configured(self):
        strict = IdentityResolver(
            TEST_JWT_SECRET, ["HS256"], issuer="https://auth.example", audience="shelfkeep"
        )
        good = make_token("user_a", iss="https://auth.example", aud="shelfkeep")
        wrong_aud = make_token("user_a", iss="https://auth.example", aud="other-app")
        wrong_iss = make_token("user_a", iss="https://evil.example", aud="shelfkeep")

        assert strict.resolve(f"Bearer {good}").is_authenticated
        assert strict.resolve(f"Bearer {wrong_aud}").is_invalid
        assert strict.resolve(f"Bearer {wrong_iss}").is_invalid

    def test_unconfigured_key_rejects_every_token(self):
        unconfigured = IdentityResolver(None, ["HS256"])
        assert unconfigured.resolve(f"Bearer {make_token('user_a')}").is_invalid
        assert unconfigured.resolve(None).status == ANONYMOUS


class TestRequestAuthentication:
    """End-to-end: how the request hook and require_auth treat identities."""

    def test_protected_route_without_token_returns_401(self, client, db_session):
        response = client.get('/products')
        assert response.status_code == 401
        assert response.json['kind'] == 'unauthorized'

    def test_protected_route_with_expired_token_returns_401(self, client, db_session):
        response = client.get('/products', headers=auth_headers(make_token('user_a', expires_in=-5)))
        assert response.status_code == 401
        assert response.json['kind'] == 'unauthorized'

    def test_protected_route_with_valid_token(self, client, db_session, headers_a):
        response = client.get('/products', headers=headers_a)
        assert response.status_code == 200
        assert response.json == {'products': []}

    def test_invalid_token_is_not_downgraded_on_public_route(self, client, db_session):
        """Categories are public, but a bad credential is still a 401."""
        response = client.get('/categories', headers={'Authorization': 'Bearer garbage'})
        assert response.status_code == 401

    def test_anonymous_public_route(self, client, db_session):
        response = client.get('/categories')
        assert response.status_code == 200

    def test_health_needs_no_identity(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json['status'] == 'OK'
        assert response.json['time'].endswith('Z')
