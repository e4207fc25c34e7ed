"""
Meganote Backend - Notes Endpoint Tests
========================================

What we test:
    ✅ The end-to-end flow: register, log in, create (ticket 500), title conflict
    ✅ Ticket numbers keep increasing across deletes
    ✅ Search: term, status exclusion, ticket, pagination totals
    ✅ Update and delete messages
"""

import pytest


async def _create(client, headers, owner_id, title, status="Open"):
    response = await client.post(
        "/notes",
        headers=headers,
        json={"user": owner_id, "title": title, "text": f"{title} body", "status": status},
    )
    assert response.status_code == 201, response.text
    return response.json()["note"]


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_register_login_create_conflict(self, client, user_payload):
        response = await client.post("/auth/register", json=user_payload)
        assert response.status_code == 201
        user_id = response.json()["user"]["id"]

        response = await client.post(
            "/auth", json={"username": user_payload["username"], "password": user_payload["password"]}
        )
        headers = {"Authorization": f"Bearer {response.json()['accessToken']}"}

        response = await client.post(
            "/notes", headers=headers, json={"user": user_id, "title": "Fix bug", "text": "Crash"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "New note created successfully!"
        assert body["note"]["ticket"] == 500
        assert body["note"]["username"] == user_payload["username"]

        response = await client.post(
            "/notes", headers=headers, json={"user": user_id, "title": "fix BUG", "text": "Again"}
        )
        assert response.status_code == 409
        assert response.json()["message"] == "This note title has already been used!"


class TestNotesCrud:

    @pytest.mark.asyncio
    async def test_tickets_increase_and_are_never_reused(self, client, auth_headers, registered_user):
        first = await _create(client, auth_headers, registered_user["id"], "One")
        await client.delete(f"/notes/{first['id']}", headers=auth_headers)
        second = await _create(client, auth_headers, registered_user["id"], "Two")

        assert (first["ticket"], second["ticket"]) == (500, 501)

    @pytest.mark.asyncio
    async def test_unknown_owner_is_400(self, client, auth_headers):
        response = await client.post(
            "/notes",
            headers=auth_headers,
            json={"user": "00000000-0000-0000-0000-000000000000", "title": "x", "text": "t"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "User not found!"

    @pytest.mark.asyncio
    async def test_invalid_status_is_400(self, client, auth_headers, registered_user):
        response = await client.post(
            "/notes",
            headers=auth_headers,
            json={"user": registered_user["id"], "title": "x", "text": "t", "status": "Done"},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_and_delete_messages(self, client, auth_headers, registered_user):
        note = await _create(client, auth_headers, registered_user["id"], "Rename me")

        response = await client.patch(
            f"/notes/{note['id']}",
            headers=auth_headers,
            json={"user": registered_user["id"], "title": "Renamed", "text": "t", "status": "In Progress"},
        )
        assert response.status_code == 200
        assert response.json()["message"] == "'Note #500' updated successfully!"
        assert response.json()["note"]["title"] == "Renamed"

        response = await client.delete(f"/notes/{note['id']}", headers=auth_headers)
        assert response.json()["message"] == "Note #500 deleted successfully!"

        response = await client.get(f"/notes/{note['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["note"]["isDeleted"] is True

    @pytest.mark.asyncio
    async def test_get_unknown_note_is_400(self, client, auth_headers):
        response = await client.get(
            "/notes/00000000-0000-0000-0000-000000000000", headers=auth_headers
        )

        assert response.status_code == 400


class TestNotesSearch:

    @pytest.mark.asyncio
    async def test_status_parameter_excludes_that_status(self, client, auth_headers, registered_user):
        """Inherited behavior kept for client compatibility: ?status=X hides X."""
        await _create(client, auth_headers, registered_user["id"], "Open one", "Open")
        await _create(client, auth_headers, registered_user["id"], "Done one", "Completed")

        response = await client.get("/notes?status=Completed", headers=auth_headers)

        titles = [n["title"] for n in response.json()["notes"]]
        assert titles == ["Open one"]

    @pytest.mark.asyncio
    async def test_term_matches_owner_display_name(self, client, auth_headers, registered_user):
        await _create(client, auth_headers, registered_user["id"], "Anything")

        response = await client.get("/notes?term=abram", headers=auth_headers)

        assert response.json()["count"] == 1

    @pytest.mark.asyncio
    async def test_ticket_and_pagination(self, client, auth_headers, registered_user):
        for i in range(3):
            await _create(client, auth_headers, registered_user["id"], f"Note {i}")

        response = await client.get("/notes?ticket=501", headers=auth_headers)
        assert [n["ticket"] for n in response.json()["notes"]] == [501]

        response = await client.get("/notes?page=2&limit=2", headers=auth_headers)
        body = response.json()
        assert body["count"] == 3
        assert body["totalPage"] == 2
        assert len(body["notes"]) == 1

    @pytest.mark.asyncio
    async def test_bad_ticket_is_400(self, client, auth_headers):
        response = await client.get("/notes?ticket=abc", headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_oversized_ticket_is_400(self, client, auth_headers):
        response = await client.get("/notes?ticket=99999999999999999999", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "ticket"

    @pytest.mark.asyncio
    async def test_oversized_page_falls_back_to_first_page(self, client, auth_headers, registered_user):
        await _create(client, auth_headers, registered_user["id"], "Only")

        response = await client.get("/notes?page=99999999999999999999", headers=auth_headers)

        assert response.status_code == 200
        assert [n["title"] for n in response.json()["notes"]] == ["Only"]

    @pytest.mark.asyncio
    async def test_all_lists_live_notes(self, client, auth_headers, registered_user):
        keep = await _create(client, auth_headers, registered_user["id"], "Keep")
        drop = await _create(client, auth_headers, registered_user["id"], "Drop")
        await client.delete(f"/notes/{drop['id']}", headers=auth_headers)

        response = await client.get("/notes/all", headers=auth_headers)

        assert [n["id"] for n in response.json()["notes"]] == [keep["id"]]
