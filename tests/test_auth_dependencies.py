"""
tests/test_auth_dependencies.py -- Bearer-token authentication and role gates.

Coverage:
  - Missing / empty / non-Bearer / expired / foreign-key tokens -> 401
  - 401 responses carry WWW-Authenticate: Bearer and a flat {"error": msg} body
  - Valid non-admin token on an admin route -> 403
  - Authentication runs before body validation (401 beats 400)
  - Identity comes from the token alone, never from a database lookup

Fixtures used (from conftest.py):
  - api: ApiHarness with a TestClient and seeded admin/user accounts
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.tokens import TokenService
from conftest import TEST_SECRET, ApiHarness, auth_header

_MISSING = {"error": "Authentication token missing"}
_INVALID = {"error": "Invalid authentication token"}
_DENIED = {"error": "Access denied: insufficient permissions"}

_SELF_UPDATE = "/api/users/update"


def _drug_body(name: str) -> dict:
    return {"name": name, "description": "Gate test product", "price": 1.5, "stock": 3}


class TestAuthenticate:
    def test_missing_header(self, api: ApiHarness) -> None:
        resp = api.client.put(_SELF_UPDATE, json={"city": "Gotham"})
        assert resp.status_code == 401
        assert resp.json() == _MISSING
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_scheme_without_token(self, api: ApiHarness) -> None:
        resp = api.client.put(_SELF_UPDATE, json={"city": "Gotham"}, headers={"Authorization": "Bearer"})
        assert resp.status_code == 401
        assert resp.json() == _MISSING

    def test_non_bearer_scheme(self, api: ApiHarness) -> None:
        resp = api.client.put(
            _SELF_UPDATE,
            json={"city": "Gotham"},
            headers={"Authorization": f"Token {api.user_token}"},
        )
        assert resp.status_code == 401
        assert resp.json() == _INVALID

    def test_bearer_scheme_is_case_insensitive(self, api: ApiHarness) -> None:
        resp = api.client.put(
            _SELF_UPDATE,
            json={"city": "Gotham"},
            headers={"Authorization": f"bearer {api.user_token}"},
        )
        assert resp.status_code == 200, resp.text

    @pytest.mark.parametrize("token", ["garbage", "not.a.jwt", "a.b.c.d"])
    def test_malformed_token(self, api: ApiHarness, token: str) -> None:
        resp = api.client.put(_SELF_UPDATE, json={"city": "Gotham"}, headers=auth_header(token))
        assert resp.status_code == 401
        assert resp.json() == _INVALID
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_expired_token(self, api: ApiHarness) -> None:
        two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
        stale = TokenService(TEST_SECRET, clock=lambda: two_hours_ago).issue(api.user_id, "user")
        resp = api.client.put(_SELF_UPDATE, json={"city": "Gotham"}, headers=auth_header(stale))
        assert resp.status_code == 401
        assert resp.json() == _INVALID

    def test_token_signed_with_other_key(self, api: ApiHarness) -> None:
        forged = TokenService("some-other-secret-key-0123456789abcdef").issue(api.admin_id, "admin")
        resp = api.client.post("/api/drugs", json=_drug_body("Forged Gate"), headers=auth_header(forged))
        assert resp.status_code == 401
        assert resp.json() == _INVALID


class TestAuthorize:
    def test_user_role_on_admin_route(self, api: ApiHarness) -> None:
        resp = api.client.post("/api/drugs", json=_drug_body("Denied Gate"), headers=api.user())
        assert resp.status_code == 403
        assert resp.json() == _DENIED
        assert "www-authenticate" not in resp.headers

    def test_anonymous_admin_route_is_401_not_403(self, api: ApiHarness) -> None:
        resp = api.client.delete("/api/users/1")
        assert resp.status_code == 401
        assert resp.json() == _MISSING

    def test_authentication_precedes_body_validation(self, api: ApiHarness) -> None:
        resp = api.client.post("/api/drugs", json={"name": "x"})
        assert resp.status_code == 401
        assert resp.json() == _MISSING

    def test_authorization_precedes_body_validation(self, api: ApiHarness) -> None:
        resp = api.client.post("/api/drugs", json={"name": "x"}, headers=api.user())
        assert resp.status_code == 403

    def test_admin_passes(self, api: ApiHarness) -> None:
        resp = api.client.post("/api/drugs", json=_drug_body("Admitted Gate"), headers=api.admin())
        assert resp.status_code == 200, resp.text

    def test_role_is_read_from_token_only(self, api: ApiHarness) -> None:
        # No account has this id; a validly signed admin token is still admitted.
        phantom = api.tokens.issue(987654, "admin")
        resp = api.client.post("/api/drugs", json=_drug_body("Phantom Gate"), headers=auth_header(phantom))
        assert resp.status_code == 200, resp.text

    def test_role_comparison_is_exact(self, api: ApiHarness) -> None:
        shouting = api.tokens.issue(api.admin_id, "ADMIN")
        resp = api.client.post("/api/drugs", json=_drug_body("Shouting Gate"), headers=auth_header(shouting))
        assert resp.status_code == 403
