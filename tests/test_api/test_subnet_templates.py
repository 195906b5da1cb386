"""Tests for subnet template API endpoints."""

import pytest
from httpx import AsyncClient

from subnetly.ipam.templates import BUILTIN_TEMPLATES


@pytest.mark.asyncio
async def test_list_templates_builtins(client: AsyncClient) -> None:
    """Test built-in templates are always listed."""
    response = await client.get("/api/v1/subnet-templates")

    assert response.status_code == 200
    data = response.json()
    assert [t["id"] for t in data] == [t.key for t in BUILTIN_TEMPLATES]
    assert all(t["builtin"] for t in data)


@pytest.mark.asyncio
async def test_create_template(client: AsyncClient) -> None:
    """Test creating a stored template."""
    response = await client.post(
        "/api/v1/subnet-templates",
        json={"name": "Lab Network", "prefix": "172.16.0.0", "mask": 16, "role": "lab"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["slug"] == "lab-network"

    listed = await client.get("/api/v1/subnet-templates")
    stored = [t for t in listed.json() if not t["builtin"]]
    assert stored[0]["id"] == str(data["id"])


@pytest.mark.asyncio
async def test_create_template_conflict(client: AsyncClient) -> None:
    """Test template names are unique per site."""
    payload = {"name": "Lab Network", "prefix": "172.16.0.0", "mask": 16}
    await client.post("/api/v1/subnet-templates", json=payload)

    response = await client.post(
        "/api/v1/subnet-templates", json={**payload, "name": "lab  network"}
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_apply_builtin_template(client: AsyncClient) -> None:
    """Test resolving a built-in template."""
    response = await client.get("/api/v1/subnet-templates/home-lan/apply")

    assert response.status_code == 200
    assert response.json() == {
        "prefix": "192.168.1.0",
        "mask": 24,
        "gateway": "192.168.1.1",
        "role": "production",
        "description": "Primary user and workstation network",
    }


@pytest.mark.asyncio
async def test_apply_stored_template_smart_gateway(client: AsyncClient) -> None:
    """Test smart gateway fills an empty template gateway."""
    created = await client.post(
        "/api/v1/subnet-templates",
        json={"name": "Lab Network", "prefix": "172.16.0.0", "mask": 16},
    )
    template_id = created.json()["id"]

    suggested = await client.get(
        f"/api/v1/subnet-templates/{template_id}/apply", params={"smart_gateway": True}
    )
    plain = await client.get(
        f"/api/v1/subnet-templates/{template_id}/apply", params={"smart_gateway": False}
    )

    assert suggested.json()["gateway"] == "172.16.0.1"
    assert plain.json()["gateway"] is None


@pytest.mark.asyncio
async def test_apply_unknown_template(client: AsyncClient) -> None:
    """Test an unknown template id."""
    response = await client.get("/api/v1/subnet-templates/datacenter/apply")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_and_delete_template(client: AsyncClient) -> None:
    """Test editing and removing a stored template."""
    created = await client.post(
        "/api/v1/subnet-templates",
        json={"name": "Lab Network", "prefix": "172.16.0.0", "mask": 16},
    )
    template_id = created.json()["id"]

    updated = await client.patch(
        f"/api/v1/subnet-templates/{template_id}", json={"gateway": "172.16.0.254"}
    )
    assert updated.status_code == 200
    assert updated.json()["gateway"] == "172.16.0.254"

    invalid = await client.patch(
        f"/api/v1/subnet-templates/{template_id}", json={"gateway": "10.0.0.1"}
    )
    assert invalid.status_code == 422

    deleted = await client.delete(f"/api/v1/subnet-templates/{template_id}")
    assert deleted.status_code == 204

    missing = await client.delete(f"/api/v1/subnet-templates/{template_id}")
    assert missing.status_code == 404
