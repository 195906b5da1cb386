"""Tests for address record API endpoints."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from subnetly.models import Device, Subnet
from subnetly.store import InventoryStore


@pytest.mark.asyncio
async def test_assign_address(
    client: AsyncClient, test_subnet: Subnet, test_device: Device
) -> None:
    """Test assigning an address to a device."""
    response = await client.post(
        "/api/v1/ipam",
        json={
            "subnet_id": test_subnet.id,
            "address": "10.0.0.20",
            "device_id": test_device.id,
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["record"]["address"] == "10.0.0.20"
    assert data["record"]["assigned_to"] == "nas-01"
    assert data["device"]["ip_address"] == "10.0.0.20"
    assert data["completed_steps"] == [
        "write_record",
        "vacate_previous_holder",
        "remove_stale_record",
        "link_device",
    ]


@pytest.mark.asyncio
async def test_assign_moves_address(
    client: AsyncClient, store: InventoryStore, test_subnet: Subnet
) -> None:
    """Test assigning a held address to another device vacates the holder."""
    holder = await store.create_device(
        Device(site_id=1, name="old-host", ip_address="10.0.0.20")
    )
    newcomer = await store.create_device(Device(site_id=1, name="new-host"))
    holder_id = holder.id

    response = await client.post(
        "/api/v1/ipam",
        json={
            "subnet_id": test_subnet.id,
            "address": "10.0.0.20",
            "device_id": newcomer.id,
        },
    )

    assert response.status_code == 201
    assert response.json()["vacated_device_id"] == holder_id
    holder_response = await client.get(f"/api/v1/devices/{holder_id}")
    assert holder_response.json()["ip_address"] == ""


@pytest.mark.asyncio
async def test_assign_outside_subnet(
    client: AsyncClient, test_subnet: Subnet, test_device: Device
) -> None:
    """Test addresses outside the subnet are rejected without side effects."""
    response = await client.post(
        "/api/v1/ipam",
        json={"subnet_id": test_subnet.id, "address": "10.0.1.20", "device_id": test_device.id},
    )

    assert response.status_code == 422
    listed = await client.get("/api/v1/ipam")
    assert listed.json() == []


@pytest.mark.asyncio
async def test_assign_malformed_address(client: AsyncClient, test_subnet: Subnet) -> None:
    """Test request validation of the address."""
    response = await client.post(
        "/api/v1/ipam", json={"subnet_id": test_subnet.id, "address": "10.0.0.256"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_assign_partial_failure(
    client: AsyncClient,
    store: InventoryStore,
    test_subnet: Subnet,
    test_device: Device,
) -> None:
    """Test a failed follow-up step is reported with the step name."""
    error = OperationalError("UPDATE devices", {}, Exception("database is locked"))

    with patch.object(InventoryStore, "update_device", side_effect=error):
        response = await client.post(
            "/api/v1/ipam",
            json={
                "subnet_id": test_subnet.id,
                "address": "10.0.0.20",
                "device_id": test_device.id,
            },
        )

    assert response.status_code == 500
    data = response.json()
    assert data["step"] == "link_device"
    assert "write_record" in data["completed_steps"]
    assert data["address"] == "10.0.0.20"

    record = await store.find_ip_address(test_subnet.id, "10.0.0.20")
    assert record is not None
    assert record.id == data["record_id"]


@pytest.mark.asyncio
async def test_list_records_by_subnet(client: AsyncClient, test_subnet: Subnet) -> None:
    """Test listing records of one subnet."""
    await client.post("/api/v1/ipam", json={"subnet_id": test_subnet.id, "address": "10.0.0.5"})
    await client.post("/api/v1/ipam", json={"subnet_id": test_subnet.id, "address": "10.0.0.6"})

    response = await client.get("/api/v1/ipam", params={"subnet_id": test_subnet.id})

    assert response.status_code == 200
    assert [r["address"] for r in response.json()] == ["10.0.0.5", "10.0.0.6"]

    missing = await client.get("/api/v1/ipam", params={"subnet_id": 999})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_get_record(client: AsyncClient, test_subnet: Subnet) -> None:
    """Test getting a record, scoped to the site."""
    created = await client.post(
        "/api/v1/ipam", json={"subnet_id": test_subnet.id, "address": "10.0.0.5"}
    )
    record_id = created.json()["record"]["id"]

    response = await client.get(f"/api/v1/ipam/{record_id}")
    assert response.status_code == 200
    assert response.json()["address"] == "10.0.0.5"

    other_site = await client.get(f"/api/v1/ipam/{record_id}", headers={"X-Site-ID": "2"})
    assert other_site.status_code == 404


@pytest.mark.asyncio
async def test_edit_record_keeps_holder(
    client: AsyncClient, test_subnet: Subnet, test_device: Device
) -> None:
    """Test editing a record without device_id keeps the bound device."""
    created = await client.post(
        "/api/v1/ipam",
        json={"subnet_id": test_subnet.id, "address": "10.0.0.20", "device_id": test_device.id},
    )
    record_id = created.json()["record"]["id"]

    response = await client.patch(
        f"/api/v1/ipam/{record_id}", json={"address": "10.0.0.21", "status": "reserved"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["record"]["id"] == record_id
    assert data["record"]["address"] == "10.0.0.21"
    assert data["record"]["status"] == "reserved"
    assert data["device"]["ip_address"] == "10.0.0.21"


@pytest.mark.asyncio
async def test_edit_record_detach_device(
    client: AsyncClient, test_subnet: Subnet, test_device: Device
) -> None:
    """Test an explicit null device_id unbinds the holder."""
    created = await client.post(
        "/api/v1/ipam",
        json={"subnet_id": test_subnet.id, "address": "10.0.0.20", "device_id": test_device.id},
    )
    record_id = created.json()["record"]["id"]

    response = await client.patch(f"/api/v1/ipam/{record_id}", json={"device_id": None})

    assert response.status_code == 200
    data = response.json()
    assert data["device"] is None
    assert data["vacated_device_id"] == test_device.id
    assert data["record"]["assigned_to"] is None


@pytest.mark.asyncio
async def test_edit_record_conflict(client: AsyncClient, test_subnet: Subnet) -> None:
    """Test moving a record onto an address that has a record."""
    await client.post("/api/v1/ipam", json={"subnet_id": test_subnet.id, "address": "10.0.0.5"})
    other = await client.post(
        "/api/v1/ipam", json={"subnet_id": test_subnet.id, "address": "10.0.0.6"}
    )

    response = await client.patch(
        f"/api/v1/ipam/{other.json()['record']['id']}", json={"address": "10.0.0.5"}
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_record_keeps_device_binding(
    client: AsyncClient, test_subnet: Subnet, test_device: Device
) -> None:
    """Test deleting a record leaves a device-only binding."""
    created = await client.post(
        "/api/v1/ipam",
        json={"subnet_id": test_subnet.id, "address": "10.0.0.20", "device_id": test_device.id},
    )
    record_id = created.json()["record"]["id"]

    response = await client.delete(f"/api/v1/ipam/{record_id}")
    assert response.status_code == 204

    plan = await client.get(f"/api/v1/subnets/{test_subnet.id}/plan")
    data = plan.json()
    assert [d["name"] for d in data["device_only"]] == ["nas-01"]
    cell = next(c for c in data["cells"] if c["address"] == "10.0.0.20")
    assert cell["status"] == "assigned"
    assert cell["ip_address_id"] is None
