import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_audit_trail_for_session_lifecycle(client: AsyncClient, admin, mentor, headers) -> None:
    created = await client.post(
        "/api/v1/sessions",
        json={"name": "Orientation", "session_date": "2026-11-20", "students": ["S1"]},
        headers=headers(admin),
    )
    session_id = created.json()["id"]
    await client.patch(f"/api/v1/sessions/{session_id}", json={"location": "Hall B"}, headers=headers(admin))

    response = await client.get(
        "/api/v1/audit-logs",
        params={"entity_type": "counseling_session", "entity_id": session_id},
        headers=headers(admin),
    )
    assert response.status_code == 200
    assert sorted(entry["action"] for entry in response.json()) == ["create", "update"]
    assert all(entry["performed_by_role"] == "admin" for entry in response.json())

    denied = await client.get("/api/v1/audit-logs", headers=headers(mentor))
    assert denied.status_code == 403
