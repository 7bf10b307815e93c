"""
Integration Tests for the Trash Endpoints.

The trash is addressed by the session user and every body or query
repeats the user id as `userId`.
"""

from httpx import AsyncClient

API = "/api/v1"


async def _tree(client: AsyncClient, api, headers) -> tuple[dict, dict, dict]:
    page = api.assert_ok(await client.post(f"{API}/pages", json={"name": "Work"}, headers=headers), 201)["page"]
    section = api.assert_ok(await client.post(
        f"{API}/sections", json={"page_id": page["id"], "name": "Inbox"}, headers=headers,
    ), 201)["section"]
    note = api.assert_ok(await client.post(
        f"{API}/notes", json={"section_id": section["id"], "content": "remember the milk"}, headers=headers,
    ), 201)["note"]
    return page, section, note


class TestListTrash:
    async def test_lists_orphan_deletions_with_names(
        self, client: AsyncClient, api, api_key_headers, session_headers,
    ):
        key = await api_key_headers("alice")
        _, section, note = await _tree(client, api, key)
        api.assert_success(await client.delete(f"{API}/notes/{note['id']}", headers=key))

        trash = api.assert_ok(await client.get(
            f"{API}/trash", params={"userId": "alice"}, headers=session_headers("alice"),
        ))

        assert trash["pages"] == []
        assert trash["sections"] == []
        assert len(trash["notes"]) == 1
        item = trash["notes"][0]
        assert item["id"] == note["id"]
        assert item["section_name"] == "Inbox"
        assert item["page_name"] == "Work"
        assert item["preview"].startswith("remember")

        api.assert_success(await client.delete(f"{API}/sections/{section['id']}", headers=key))
        trash = api.assert_ok(await client.get(
            f"{API}/trash", params={"userId": "alice"}, headers=session_headers("alice"),
        ))
        assert [s["name"] for s in trash["sections"]] == ["Inbox"]
        assert trash["notes"] == []

    async def test_other_users_trash_is_forbidden(self, client: AsyncClient, api, session_headers):
        response = await client.get(f"{API}/trash", params={"userId": "bob"}, headers=session_headers("alice"))

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    async def test_missing_user_id_is_a_request_error(self, client: AsyncClient, api, session_headers):
        response = await client.get(f"{API}/trash", headers=session_headers("alice"))

        api.assert_validation_error(response, field="userId")

    async def test_api_keys_are_not_accepted(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")

        response = await client.get(f"{API}/trash", params={"userId": "alice"}, headers=headers)

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")


class TestRestore:
    async def test_restore_section_brings_back_notes(
        self, client: AsyncClient, api, api_key_headers, session_headers,
    ):
        key = await api_key_headers("alice")
        _, section, note = await _tree(client, api, key)
        api.assert_success(await client.delete(f"{API}/notes/{note['id']}", headers=key))
        api.assert_success(await client.delete(f"{API}/sections/{section['id']}", headers=key))

        api.assert_success(await client.post(
            f"{API}/trash",
            json={"userId": "alice", "type": "section", "id": section["id"]},
            headers=session_headers("alice"),
        ))

        notes = api.assert_ok(await client.get(f"{API}/notes", headers=key))["notes"]
        assert [n["id"] for n in notes] == [note["id"]]

    async def test_restore_live_item_is_not_found(
        self, client: AsyncClient, api, api_key_headers, session_headers,
    ):
        key = await api_key_headers("alice")
        page, _, _ = await _tree(client, api, key)

        response = await client.post(
            f"{API}/trash",
            json={"userId": "alice", "type": "page", "id": page["id"]},
            headers=session_headers("alice"),
        )

        api.assert_error(response, 404, "RES_NOT_FOUND")

    async def test_unknown_kind_is_rejected(self, client: AsyncClient, api, session_headers):
        response = await client.post(
            f"{API}/trash",
            json={"userId": "alice", "type": "folder", "id": "x"},
            headers=session_headers("alice"),
        )

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    async def test_user_id_mismatch_is_forbidden(self, client: AsyncClient, api, session_headers):
        response = await client.post(
            f"{API}/trash",
            json={"userId": "bob", "type": "page", "id": "x"},
            headers=session_headers("alice"),
        )

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")


class TestPurge:
    async def test_purge_one_item(self, client: AsyncClient, api, api_key_headers, session_headers):
        key = await api_key_headers("alice")
        session = session_headers("alice")
        page, _, _ = await _tree(client, api, key)
        api.assert_success(await client.delete(f"{API}/pages/{page['id']}", headers=key))

        api.assert_success(await client.delete(f"{API}/trash/page/{page['id']}", headers=session))

        trash = api.assert_ok(await client.get(f"{API}/trash", params={"userId": "alice"}, headers=session))
        assert trash == {"pages": [], "sections": [], "notes": []}
        response = await client.post(
            f"{API}/trash", json={"userId": "alice", "type": "page", "id": page["id"]}, headers=session,
        )
        api.assert_error(response, 404, "RES_NOT_FOUND")

    async def test_empty_trash(self, client: AsyncClient, api, api_key_headers, session_headers):
        key = await api_key_headers("alice")
        session = session_headers("alice")
        page, _, note = await _tree(client, api, key)
        other = api.assert_ok(await client.post(f"{API}/pages", json={"name": "Old"}, headers=key), 201)["page"]
        api.assert_success(await client.delete(f"{API}/notes/{note['id']}", headers=key))
        api.assert_success(await client.delete(f"{API}/pages/{other['id']}", headers=key))

        emptied = api.assert_ok(await client.request(
            "DELETE", f"{API}/trash", json={"userId": "alice"}, headers=session,
        ))

        assert emptied["purged"] == 2
        trash = api.assert_ok(await client.get(f"{API}/trash", params={"userId": "alice"}, headers=session))
        assert trash == {"pages": [], "sections": [], "notes": []}
        pages = api.assert_ok(await client.get(f"{API}/pages", headers=key))["pages"]
        assert [p["id"] for p in pages] == [page["id"]]

    async def test_empty_trash_checks_user_id(self, client: AsyncClient, api, session_headers):
        response = await client.request(
            "DELETE", f"{API}/trash", json={"userId": "bob"}, headers=session_headers("alice"),
        )

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")
