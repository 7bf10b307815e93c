"""
Integration Tests for API Keys and Credential Handling.

Keys are managed with a session token. Every credential failure renders
the same 401 body whatever the underlying reason.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from slate.backend.core.security import create_access_token

API = "/api/v1"


class TestKeyManagement:
    async def test_issue_returns_plain_key_once(self, client: AsyncClient, api, session_headers):
        headers = session_headers("alice")

        issued = api.assert_ok(await client.post(f"{API}/keys", json={"name": "laptop"}, headers=headers), 201)
        listed = api.assert_ok(await client.get(f"{API}/keys", headers=headers))["keys"]

        assert issued["name"] == "laptop"
        assert issued["key"]
        assert [k["id"] for k in listed] == [issued["id"]]
        assert listed[0]["last_used_at"] is None
        assert listed[0]["revoked_at"] is None
        assert "key" not in listed[0]

    async def test_keys_are_per_user(self, client: AsyncClient, api, session_headers):
        api.assert_ok(await client.post(f"{API}/keys", json={"name": "a"}, headers=session_headers("alice")), 201)

        listed = api.assert_ok(await client.get(f"{API}/keys", headers=session_headers("bob")))["keys"]

        assert listed == []

    async def test_revoke_foreign_key_is_not_found(self, client: AsyncClient, api, session_headers):
        issued = api.assert_ok(
            await client.post(f"{API}/keys", json={"name": "a"}, headers=session_headers("alice")), 201,
        )

        response = await client.delete(f"{API}/keys/{issued['id']}", headers=session_headers("bob"))

        api.assert_error(response, 404, "RES_NOT_FOUND")

    async def test_blank_name_is_rejected(self, client: AsyncClient, api, session_headers):
        response = await client.post(f"{API}/keys", json={"name": "  "}, headers=session_headers("alice"))

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    async def test_overlong_name_is_a_request_error(self, client: AsyncClient, api, session_headers):
        response = await client.post(f"{API}/keys", json={"name": "k" * 256}, headers=session_headers("alice"))

        api.assert_validation_error(response, field="name")

    async def test_keys_cannot_manage_keys(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")

        response = await client.get(f"{API}/keys", headers=headers)

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")


class TestCredentialFailures:
    async def _revoked_key(self, client: AsyncClient, api, session_headers) -> str:
        headers = session_headers("alice")
        issued = api.assert_ok(await client.post(f"{API}/keys", json={"name": "old"}, headers=headers), 201)
        api.assert_ok(await client.delete(f"{API}/keys/{issued['id']}", headers=headers))
        return issued["key"]

    async def test_failures_are_indistinguishable(self, client: AsyncClient, api, session_headers):
        revoked = await self._revoked_key(client, api, session_headers)
        attempts = [
            {},
            {"X-API-Key": "not-a-key"},
            {"X-API-Key": revoked},
        ]

        errors = []
        for headers in attempts:
            response = await client.get(f"{API}/pages", headers=headers)
            errors.append(api.assert_error(response, 401, "AUTH_UNAUTHORIZED")["error"])

        assert errors[0] == errors[1] == errors[2]

    @pytest.mark.parametrize(
        "authorization",
        [
            "Bearer garbage",
            "Basic dXNlcjpwYXNz",
            "Bearer ",
        ],
    )
    async def test_bad_session_tokens(self, client: AsyncClient, api, authorization: str):
        response = await client.get(f"{API}/keys", headers={"Authorization": authorization})

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    async def test_expired_session(self, client: AsyncClient, api):
        token = create_access_token({"sub": "alice"}, expires_delta=timedelta(seconds=-1))

        response = await client.get(f"{API}/keys", headers={"Authorization": f"Bearer {token}"})

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    async def test_either_credential_reaches_shared_endpoints(
        self, client: AsyncClient, api, api_key_headers, session_headers,
    ):
        key = await api_key_headers("alice")

        via_key = api.assert_ok(await client.get(f"{API}/box-configs", headers=key))
        via_session = api.assert_ok(await client.get(f"{API}/box-configs", headers=session_headers("alice")))

        assert via_key == via_session == {"box_configs": []}
