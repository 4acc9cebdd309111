from httpx import ASGITransport, AsyncClient
from fastapi import status

from src.dashboard.config import settings
from src.dashboard.main import app


async def test_note_lifecycle_through_api(gateway):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        empty = await ac.get("/api/v1/patients/p-001/notes/")
        assert empty.status_code == status.HTTP_200_OK
        panel = empty.json()
        assert panel["patient_id"] == "p-001"
        assert panel["notes_list"]["state"] == "empty"
        assert panel["notes_list"]["show_add_first_note"] is True

        created = await ac.post("/api/v1/patients/p-001/notes/", json={"content": "Patient stable"})
        assert created.status_code == status.HTTP_201_CREATED
        note = created.json()
        assert note["content"] == "Patient stable"
        assert note["id"]
        assert note["timestamp"]

        listed = await ac.get("/api/v1/patients/p-001/notes/")
        items = listed.json()["notes_list"]["items"]
        assert [item["id"] for item in items] == [note["id"]]
        assert items[0]["formatted_timestamp"]

        deleted = await ac.delete(f"/api/v1/patients/p-001/notes/{note['id']}")
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        after = await ac.get("/api/v1/patients/p-001/notes/")
        assert after.json()["notes_list"]["state"] == "empty"


async def test_notes_are_per_patient(gateway):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        await ac.post("/api/v1/patients/p-001/notes/", json={"content": "For p-001"})

        other = await ac.get("/api/v1/patients/p-002/notes/")
        assert other.json()["notes_list"]["items"] == []


async def test_blank_note_is_unprocessable(gateway):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.post("/api/v1/patients/p-001/notes/", json={"content": "   "})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert settings.notes_add_rpc not in gateway.calls


async def test_gateway_failures_map_to_bad_gateway(gateway):
    gateway.fail_on(settings.notes_get_rpc)
    gateway.fail_on(settings.notes_add_rpc)
    gateway.fail_on(settings.notes_delete_rpc)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        listed = await ac.get("/api/v1/patients/p-001/notes/")
        created = await ac.post("/api/v1/patients/p-001/notes/", json={"content": "Lost"})
        deleted = await ac.delete("/api/v1/patients/p-001/notes/n1")

    assert listed.status_code == status.HTTP_502_BAD_GATEWAY
    assert listed.json()["detail"] == "There was an error loading patient notes."
    assert created.status_code == status.HTTP_502_BAD_GATEWAY
    assert deleted.status_code == status.HTTP_502_BAD_GATEWAY


async def test_listing_does_not_provision(gateway):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        await ac.get("/api/v1/patients/p-001/notes/")

    assert settings.notes_provision_function not in gateway.calls
