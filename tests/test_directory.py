import pytest
from httpx import AsyncClient

from app.api.v1.directory.sources import DemoDirectorySource


@pytest.mark.asyncio
async def test_database_directory_listing(client: AsyncClient, admin, make_student, make_staff, headers) -> None:
    await make_student("S1", department="Computer Science")
    await make_student("S2", department="Mathematics")
    await make_staff("M1", department="Physics")

    students = await client.get("/api/v1/directory/students", headers=headers(admin))
    assert {s["external_id"] for s in students.json()} == {"S1", "S2"}

    filtered = await client.get(
        "/api/v1/directory/students", params={"department": "Mathematics"}, headers=headers(admin)
    )
    assert [s["external_id"] for s in filtered.json()] == ["S2"]

    departments = await client.get("/api/v1/directory/departments", headers=headers(admin))
    assert departments.json() == ["Computer Science", "Mathematics", "Physics"]

    missing = await client.get("/api/v1/directory/students/NOPE", headers=headers(admin))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_demo_mode_switches_directory_source(
    client: AsyncClient, admin, super_admin, make_student, headers
) -> None:
    await make_student("S1")
    state = await client.get("/api/v1/system-settings/demo-mode", headers=headers(admin))
    assert state.json()["enabled"] is False

    # Only super admins may toggle the persisted flag
    denied = await client.put("/api/v1/system-settings/demo-mode", json={"enabled": True}, headers=headers(admin))
    assert denied.status_code == 403
    await client.put("/api/v1/system-settings/demo-mode", json={"enabled": True}, headers=headers(super_admin))

    students = await client.get("/api/v1/directory/students", headers=headers(admin))
    ids = [s["external_id"] for s in students.json()]
    assert "S1" not in ids
    assert "DEMO_STU_001" in ids

    institutions = await client.get("/api/v1/directory/institutions", headers=headers(admin))
    assert institutions.json() == ["Demo University"]


@pytest.mark.asyncio
async def test_demo_source_lookups() -> None:
    source = DemoDirectorySource()
    staff = await source.get_staff("DEMO_STAFF_001")
    assert staff.name == "Dr. Sarah Johnson"
    assert await source.get_student("UNKNOWN") is None
    assert "Psychology" in await source.list_departments()
