"""
Integration Tests for Notes API.

Tests the notes and tags endpoints with a real database.
"""

from httpx import AsyncClient

API = "/api/v1"


async def _section_id(client: AsyncClient, api, headers, page: str = "Work", section: str = "Inbox") -> str:
    page_row = api.assert_ok(await client.post(f"{API}/pages", json={"name": page}, headers=headers), 201)["page"]
    response = await client.post(f"{API}/sections", json={"page_id": page_row["id"], "name": section}, headers=headers)
    return api.assert_ok(response, 201)["section"]["id"]


async def _note(client: AsyncClient, api, headers, section_id: str, content: str, **fields) -> dict:
    body = {"section_id": section_id, "content": content, **fields}
    return api.assert_ok(await client.post(f"{API}/notes", json=body, headers=headers), 201)["note"]


class TestCreateNote:
    """Tests for POST /api/v1/notes."""

    async def test_create_note_success(self, client: AsyncClient, api, api_key_headers):
        """Should create a note and return it."""
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)

        note = await _note(
            client, api, headers, section_id, "  Launch on Tuesday  ",
            tags=["Growth", "growth", " launch "], date="2026-10-20",
        )

        assert note["content"] == "Launch on Tuesday"
        assert note["tags"] == ["growth", "launch"]
        assert note["date"] == "2026-10-20"
        assert note["completed"] is False
        assert note["created_by_user_id"] == "alice"

    async def test_create_note_missing_content(self, client: AsyncClient, api, api_key_headers):
        """Should reject a body without content."""
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)

        response = await client.post(f"{API}/notes", json={"section_id": section_id}, headers=headers)

        api.assert_validation_error(response, field="content")

    async def test_create_note_missing_section(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")

        response = await client.post(f"{API}/notes", json={"content": "orphan"}, headers=headers)

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    async def test_create_note_blank_content(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)

        response = await client.post(
            f"{API}/notes", json={"section_id": section_id, "content": "   "}, headers=headers,
        )

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    async def test_create_requires_an_api_key(self, client: AsyncClient, api, session_headers):
        response = await client.post(
            f"{API}/notes", json={"section_id": "s", "content": "x"}, headers=session_headers("alice"),
        )

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")


class TestListNotes:
    """Tests for GET /api/v1/notes."""

    async def test_newest_first_with_locations(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        await _note(client, api, headers, section_id, "first")
        await _note(client, api, headers, section_id, "second")

        data = api.assert_ok(await client.get(f"{API}/notes", headers=headers))

        assert data["total"] == 2
        assert [n["content"] for n in data["notes"]] == ["second", "first"]
        assert data["notes"][0]["section_name"] == "Inbox"
        assert data["notes"][0]["page_name"] == "Work"

    async def test_comma_separated_tags_match_any(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        await _note(client, api, headers, section_id, "a", tags=["urgent"])
        await _note(client, api, headers, section_id, "b", tags=["growth"])
        await _note(client, api, headers, section_id, "c", tags=["other"])

        data = api.assert_ok(await client.get(f"{API}/notes", params={"tags": "URGENT, growth"}, headers=headers))

        assert sorted(n["content"] for n in data["notes"]) == ["a", "b"]

    async def test_completed_and_search_filters(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        done = await _note(client, api, headers, section_id, "buy milk")
        await _note(client, api, headers, section_id, "buy bread")
        api.assert_ok(await client.post(f"{API}/notes/{done['id']}/completion", json={"completed": True}, headers=headers))

        completed = api.assert_ok(await client.get(f"{API}/notes", params={"completed": "true"}, headers=headers))
        assert [n["content"] for n in completed["notes"]] == ["buy milk"]

        found = api.assert_ok(await client.get(f"{API}/notes", params={"search": "BREAD"}, headers=headers))
        assert [n["content"] for n in found["notes"]] == ["buy bread"]

    async def test_limit_is_clamped(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        for index in range(3):
            await _note(client, api, headers, section_id, f"note {index}")

        zero = api.assert_ok(await client.get(f"{API}/notes", params={"limit": 0}, headers=headers))
        huge = api.assert_ok(await client.get(f"{API}/notes", params={"limit": 10000}, headers=headers))

        assert zero["total"] == 1
        assert huge["total"] == 3

    async def test_invalid_date_is_a_request_error(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")

        response = await client.get(f"{API}/notes", params={"date_from": "yesterday"}, headers=headers)

        api.assert_validation_error(response, field="date_from")


class TestUpdateNote:
    """Tests for PATCH /api/v1/notes/{id}."""

    async def test_only_provided_fields_change(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        note = await _note(client, api, headers, section_id, "draft", tags=["a"], date="2026-10-20")

        updated = api.assert_ok(await client.patch(
            f"{API}/notes/{note['id']}", json={"content": "final"}, headers=headers,
        ))["note"]

        assert updated["content"] == "final"
        assert updated["tags"] == ["a"]
        assert updated["date"] == "2026-10-20"

    async def test_null_date_clears_it(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        note = await _note(client, api, headers, section_id, "dated", date="2026-10-20")

        updated = api.assert_ok(await client.patch(
            f"{API}/notes/{note['id']}", json={"date": None}, headers=headers,
        ))["note"]

        assert updated["date"] is None

    async def test_move_to_another_section(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        source = await _section_id(client, api, headers, "Work", "Inbox")
        target = await _section_id(client, api, headers, "Home", "Chores")
        note = await _note(client, api, headers, source, "sweep")

        moved = api.assert_ok(await client.patch(
            f"{API}/notes/{note['id']}", json={"section_id": target}, headers=headers,
        ))["note"]

        assert moved["section_id"] == target

    async def test_update_deleted_note_is_not_found(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        note = await _note(client, api, headers, section_id, "gone")
        api.assert_success(await client.delete(f"{API}/notes/{note['id']}", headers=headers))

        response = await client.patch(f"{API}/notes/{note['id']}", json={"content": "x"}, headers=headers)

        api.assert_error(response, 404, "RES_NOT_FOUND")


class TestCompletion:
    async def test_uncomplete_clears_completer(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        note = await _note(client, api, headers, section_id, "task")
        url = f"{API}/notes/{note['id']}/completion"

        done = api.assert_ok(await client.post(url, json={"completed": True}, headers=headers))["note"]
        undone = api.assert_ok(await client.post(url, json={"completed": False}, headers=headers))["note"]

        assert done["completed_by_user_id"] == "alice"
        assert undone["completed"] is False
        assert undone["completed_by_user_id"] is None
        assert undone["completed_at"] is None


class TestTags:
    async def test_sorted_unique_tags(self, client: AsyncClient, api, api_key_headers):
        headers = await api_key_headers("alice")
        section_id = await _section_id(client, api, headers)
        await _note(client, api, headers, section_id, "a", tags=["zeta", "alpha"])
        await _note(client, api, headers, section_id, "b", tags=["Alpha"])

        tags = api.assert_ok(await client.get(f"{API}/tags", headers=headers))["tags"]

        assert tags == ["alpha", "zeta"]
