"""
tests/test_sdk_snapshot.py -- Integration tests for GET /sdk/v1/snapshot.

Coverage:
  - valid env-scoped token returns its scope with an ETag
  - If-None-Match with the current ETag returns 304 and no body
  - missing, malformed, unknown and project-scoped tokens get the same 401
  - the admin session cookie does not authenticate SDK routes
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.tokens import generate_token


@pytest.fixture
def env_token(api_client: TestClient, admin_cookies: dict, environment) -> tuple[str, object, object]:
    project, env = environment
    resp = api_client.post(f"/api/v1/environments/{env.id}/sdk-tokens", json={"name": "sdk"}, cookies=admin_cookies)
    assert resp.status_code == 201, resp.text
    return resp.json()["token"], project, env


class TestSnapshot:
    def test_returns_scope_and_etag(self, api_client: TestClient, env_token) -> None:
        token, project, env = env_token
        resp = api_client.get("/sdk/v1/snapshot", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {
            "version": 1,
            "projectId": project.id,
            "projectKey": project.key,
            "envId": env.id,
            "envKey": env.key,
        }
        assert resp.headers["etag"] == "1"

    def test_not_modified(self, api_client: TestClient, env_token) -> None:
        token, _project, _env = env_token
        resp = api_client.get(
            "/sdk/v1/snapshot",
            headers={"Authorization": f"Bearer {token}", "If-None-Match": "1"},
        )
        assert resp.status_code == 304
        assert resp.content == b""
        assert resp.headers["etag"] == "1"

    def test_stale_etag_gets_full_body(self, api_client: TestClient, env_token) -> None:
        token, _project, _env = env_token
        resp = api_client.get(
            "/sdk/v1/snapshot",
            headers={"Authorization": f"Bearer {token}", "If-None-Match": "0"},
        )
        assert resp.status_code == 200


class TestSnapshotRejection:
    UNAUTHORIZED = {"error": {"code": "unauthorized", "message": "Authentication required."}}

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Basic dXNlcjpwYXNz"},
            {"Authorization": "Bearer not-a-pennant-token"},
            {"Authorization": f"Bearer {generate_token()}"},
        ],
    )
    def test_bad_credentials(self, api_client: TestClient, headers: dict) -> None:
        resp = api_client.get("/sdk/v1/snapshot", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == self.UNAUTHORIZED

    def test_project_scoped_token(self, api_client: TestClient, admin_cookies: dict, environment) -> None:
        """A project-wide token has no environment to snapshot; it fails like any bad token."""
        project, _env = environment
        token = api_client.post(
            "/api/v1/tokens", json={"projectId": project.id, "name": "server"}, cookies=admin_cookies
        ).json()["token"]
        resp = api_client.get("/sdk/v1/snapshot", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json() == self.UNAUTHORIZED

    def test_admin_cookie_is_not_an_sdk_credential(self, api_client: TestClient, admin_cookies: dict) -> None:
        resp = api_client.get("/sdk/v1/snapshot", cookies=admin_cookies)
        assert resp.status_code == 401
