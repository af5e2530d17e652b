"""Tests for file mount configuration routes."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_then_authorize(client: AsyncClient, machine, handle, auth_headers):
    """A mount rooted at /srv/app admits /srv/app/logs/out.log but not /srv/appX."""
    resp = await client.post(
        f"/api/machines/{machine.id}/files",
        json={"name": "app", "path": "/srv/app", "type": 1},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    created = resp.json()
    assert created["machine_id"] == machine.id
    assert created["creator"] == "alice"

    ok = await client.get(
        f"/api/machines/files/{created['id']}/file-stat",
        params={"path": "/srv/app/logs/out.log"},
        headers=auth_headers,
    )
    assert ok.status_code == 200

    denied = await client.get(
        f"/api/machines/files/{created['id']}/file-stat",
        params={"path": "/srv/appX"},
        headers=auth_headers,
    )
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_create_for_unknown_machine(client: AsyncClient, auth_headers):
    resp = await client.post(
        "/api/machines/77/files",
        json={"name": "x", "path": "/x"},
        headers=auth_headers,
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_empty_root_rejected(client: AsyncClient, machine, auth_headers):
    resp = await client.post(
        f"/api/machines/{machine.id}/files",
        json={"name": "x", "path": ""},
        headers=auth_headers,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_and_delete(client: AsyncClient, machine, mount, auth_headers):
    resp = await client.get(f"/api/machines/{machine.id}/files", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["path"] == "/srv/app"

    resp = await client.delete(f"/api/machines/{machine.id}/files/{mount.id}", headers=auth_headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/machines/{machine.id}/files", headers=auth_headers)
    assert resp.json()["total"] == 0


@pytest.mark.asyncio
async def test_delete_through_other_machine_is_404(client: AsyncClient, machine, mount, auth_headers):
    machine_id, mount_id = machine.id, mount.id
    resp = await client.delete(f"/api/machines/{machine_id + 100}/files/{mount_id}", headers=auth_headers)
    assert resp.status_code == 404

    resp = await client.get(f"/api/machines/{machine_id}/files", headers=auth_headers)
    assert resp.json()["total"] == 1
