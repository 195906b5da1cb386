"""Tests for AllocationService."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from subnetly.core.exceptions import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from subnetly.models import Device, Subnet
from subnetly.services.allocation_service import AllocationService, AllocationStep

SITE_ID = 1


def db_error():
    return OperationalError("UPDATE devices", {}, Exception("database is locked"))


@pytest.fixture
def allocation_service(store):
    return AllocationService(store)


async def make_device(store, name, ip_address="", site_id=SITE_ID):
    return await store.create_device(
        Device(site_id=site_id, name=name, ip_address=ip_address)
    )


class TestAssign:
    """Test the assignment sequence."""

    @pytest.mark.asyncio
    async def test_assign_creates_record_and_links_device(
        self, allocation_service, store, test_subnet, test_device
    ):
        result = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )

        assert result.record.address == "10.0.0.20"
        assert result.record.mask == 24
        assert result.record.assigned_to == "nas-01"
        assert result.record.dns_name == "nas-01"
        assert result.device.ip_address == "10.0.0.20"
        assert result.vacated_device_id is None
        assert result.completed_steps == [step.value for step in AllocationStep]

    @pytest.mark.asyncio
    async def test_assign_without_device(self, allocation_service, test_subnet):
        result = await allocation_service.assign(
            test_subnet.id, "10.0.0.30", dns_name="printer.lan"
        )

        assert result.device is None
        assert result.record.assigned_to is None
        assert result.record.dns_name == "printer.lan"

    @pytest.mark.asyncio
    async def test_assign_canonicalises_address(self, allocation_service, test_subnet):
        result = await allocation_service.assign(test_subnet.id, "10.0.0.007")
        assert result.record.address == "10.0.0.7"

    @pytest.mark.asyncio
    async def test_move_address_between_devices(
        self, allocation_service, store, test_subnet
    ):
        """Exactly one device holds an address after it moves from A to B."""
        device_a = await make_device(store, "device-a")
        device_b = await make_device(store, "device-b")
        await allocation_service.assign(test_subnet.id, "10.0.0.50", device_id=device_a.id)

        result = await allocation_service.assign(
            test_subnet.id, "10.0.0.50", device_id=device_b.id
        )

        assert result.vacated_device_id == device_a.id
        assert (await store.get_device(device_a.id)).ip_address == ""
        assert (await store.get_device(device_b.id)).ip_address == "10.0.0.50"
        records = await store.list_ip_addresses(test_subnet.id)
        assert len(records) == 1
        assert records[0].assigned_to == "device-b"

    @pytest.mark.asyncio
    async def test_moving_device_removes_stale_record(
        self, allocation_service, store, test_subnet, test_device
    ):
        old = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )
        old_id = old.record.id

        result = await allocation_service.assign(
            test_subnet.id, "10.0.0.21", device_id=test_device.id
        )

        assert result.removed_record_ids == [old_id]
        assert await store.get_ip_address(old_id) is None
        addresses = [r.address for r in await store.list_ip_addresses(test_subnet.id)]
        assert addresses == ["10.0.0.21"]

    @pytest.mark.asyncio
    async def test_stale_record_removed_in_other_subnet_of_site(
        self, allocation_service, store, test_subnet, test_device
    ):
        other = await store.create_subnet(
            Subnet(site_id=SITE_ID, prefix="192.168.5.0", mask=24)
        )
        await allocation_service.assign(other.id, "192.168.5.9", device_id=test_device.id)

        await allocation_service.assign(test_subnet.id, "10.0.0.9", device_id=test_device.id)

        assert await store.list_ip_addresses(other.id) == []

    @pytest.mark.asyncio
    async def test_two_devices_assigned_in_sequence(
        self, allocation_service, store, test_subnet
    ):
        first = await make_device(store, "first")
        second = await make_device(store, "second")

        await allocation_service.assign(test_subnet.id, "10.0.0.40", device_id=first.id)
        await allocation_service.assign(test_subnet.id, "10.0.0.41", device_id=second.id)

        assert (await store.get_device(first.id)).ip_address == "10.0.0.40"
        assert (await store.get_device(second.id)).ip_address == "10.0.0.41"
        assert len(await store.list_ip_addresses(test_subnet.id)) == 2

    @pytest.mark.asyncio
    async def test_reassign_same_address_updates_record(
        self, allocation_service, store, test_subnet, test_device
    ):
        first = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )
        second = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id, status="reserved"
        )

        assert second.record.id == first.record.id
        assert second.record.status == "reserved"
        assert second.removed_record_ids == []


class TestAssignValidation:
    """Test that rejected assignments have no side effects."""

    @pytest.mark.asyncio
    async def test_address_outside_subnet(
        self, allocation_service, store, test_subnet, test_device
    ):
        with pytest.raises(ValidationError, match="outside"):
            await allocation_service.assign(
                test_subnet.id, "10.0.1.5", device_id=test_device.id
            )

        assert await store.list_ip_addresses(test_subnet.id) == []
        assert (await store.get_device(test_device.id)).ip_address == ""

    @pytest.mark.asyncio
    async def test_malformed_address(self, allocation_service, test_subnet):
        with pytest.raises(ValidationError):
            await allocation_service.assign(test_subnet.id, "10.0.0.300")

    @pytest.mark.asyncio
    async def test_unknown_subnet(self, allocation_service):
        with pytest.raises(NotFoundError):
            await allocation_service.assign(999, "10.0.0.5")

    @pytest.mark.asyncio
    async def test_subnet_of_other_site(self, allocation_service, test_subnet):
        with pytest.raises(NotFoundError):
            await allocation_service.assign(test_subnet.id, "10.0.0.5", site_id=2)

    @pytest.mark.asyncio
    async def test_unknown_device(self, allocation_service, store, test_subnet):
        with pytest.raises(NotFoundError):
            await allocation_service.assign(test_subnet.id, "10.0.0.5", device_id=999)

        assert await store.list_ip_addresses(test_subnet.id) == []

    @pytest.mark.asyncio
    async def test_device_of_other_site(self, allocation_service, store, test_subnet):
        foreign = await make_device(store, "foreign", site_id=2)

        with pytest.raises(ValidationError):
            await allocation_service.assign(test_subnet.id, "10.0.0.5", device_id=foreign.id)

    @pytest.mark.asyncio
    async def test_edit_onto_taken_address(self, allocation_service, test_subnet):
        await allocation_service.assign(test_subnet.id, "10.0.0.5")
        other = await allocation_service.assign(test_subnet.id, "10.0.0.6")

        with pytest.raises(ConflictError):
            await allocation_service.assign(
                test_subnet.id, "10.0.0.5", ip_address_id=other.record.id
            )

    @pytest.mark.asyncio
    async def test_same_address_in_overlapping_subnet_conflicts(
        self, allocation_service, store, test_subnet
    ):
        lower_half = await store.create_subnet(
            Subnet(site_id=SITE_ID, prefix="10.0.0.0", mask=25)
        )
        first = await allocation_service.assign(test_subnet.id, "10.0.0.20")

        with pytest.raises(ConflictError):
            await allocation_service.assign(lower_half.id, "10.0.0.20")

        assert await store.find_ip_address(lower_half.id, "10.0.0.20") is None

        moved = await allocation_service.edit(first.record.id, subnet_id=lower_half.id)
        assert moved.record.subnet_id == lower_half.id


class TestPartialFailure:
    """Test failures after the primary write."""

    @pytest.mark.asyncio
    async def test_link_failure_keeps_record(
        self, allocation_service, store, test_subnet, test_device
    ):
        with patch.object(store, "update_device", side_effect=db_error()):
            with pytest.raises(PartialFailureError) as exc_info:
                await allocation_service.assign(
                    test_subnet.id, "10.0.0.20", device_id=test_device.id
                )

        error = exc_info.value
        assert error.step == AllocationStep.LINK_DEVICE.value
        assert error.completed_steps == [
            "write_record",
            "vacate_previous_holder",
            "remove_stale_record",
        ]
        assert error.address == "10.0.0.20"
        assert error.status_code == 500

        record = await store.find_ip_address(test_subnet.id, "10.0.0.20")
        assert record is not None
        assert record.id == error.record_id
        assert error.to_dict()["step"] == "link_device"

    @pytest.mark.asyncio
    async def test_vacate_failure_stops_sequence(
        self, allocation_service, store, test_subnet
    ):
        holder = await make_device(store, "holder", ip_address="10.0.0.60")
        newcomer = await make_device(store, "newcomer")

        with patch.object(
            store, "update_device", side_effect=db_error()
        ) as update_device:
            with pytest.raises(PartialFailureError) as exc_info:
                await allocation_service.assign(
                    test_subnet.id, "10.0.0.60", device_id=newcomer.id
                )

        assert exc_info.value.step == "vacate_previous_holder"
        assert exc_info.value.completed_steps == ["write_record"]
        update_device.assert_awaited_once_with(holder.id, ip_address="")
        assert await store.find_ip_address(test_subnet.id, "10.0.0.60") is not None

    @pytest.mark.asyncio
    async def test_stale_record_failure_leaves_device_unlinked(
        self, allocation_service, store, test_subnet, test_device
    ):
        first = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )
        old_record_id = first.record.id

        with patch.object(store, "delete_ip_address", side_effect=db_error()):
            with pytest.raises(PartialFailureError) as exc_info:
                await allocation_service.assign(
                    test_subnet.id, "10.0.0.40", device_id=test_device.id
                )

        error = exc_info.value
        assert error.step == "remove_stale_record"
        assert error.completed_steps == ["write_record", "vacate_previous_holder"]

        new_record = await store.find_ip_address(test_subnet.id, "10.0.0.40")
        assert new_record is not None
        assert new_record.id == error.record_id
        assert (await store.get_ip_address(old_record_id)) is not None
        assert (await store.get_device(test_device.id)).ip_address == "10.0.0.20"


class TestEdit:
    """Test editing records through the assignment sequence."""

    @pytest.mark.asyncio
    async def test_edit_keeps_current_holder(
        self, allocation_service, test_subnet, test_device
    ):
        created = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )

        result = await allocation_service.edit(
            created.record.id, site_id=SITE_ID, description="rack 2"
        )

        assert result.record.description == "rack 2"
        assert result.record.assigned_to == "nas-01"
        assert result.device.id == test_device.id

    @pytest.mark.asyncio
    async def test_edit_moves_record_and_device(
        self, allocation_service, store, test_subnet, test_device
    ):
        created = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )

        result = await allocation_service.edit(created.record.id, address="10.0.0.25")

        assert result.record.id == created.record.id
        assert result.record.address == "10.0.0.25"
        assert (await store.get_device(test_device.id)).ip_address == "10.0.0.25"

    @pytest.mark.asyncio
    async def test_edit_detaches_device(
        self, allocation_service, store, test_subnet, test_device
    ):
        created = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )

        result = await allocation_service.edit(created.record.id, device_id=None)

        assert result.record.assigned_to is None
        assert result.vacated_device_id == test_device.id
        assert (await store.get_device(test_device.id)).ip_address == ""

    @pytest.mark.asyncio
    async def test_edit_unknown_record(self, allocation_service):
        with pytest.raises(NotFoundError):
            await allocation_service.edit(999, status="reserved")


class TestUnbindPromoteDelete:
    """Test device-side operations and record deletion."""

    @pytest.mark.asyncio
    async def test_delete_leaves_device_only_binding(
        self, allocation_service, store, test_subnet, test_device
    ):
        created = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )

        await allocation_service.delete(created.record.id, SITE_ID)

        assert await store.get_ip_address(created.record.id) is None
        assert (await store.get_device(test_device.id)).ip_address == "10.0.0.20"

    @pytest.mark.asyncio
    async def test_delete_other_site(self, allocation_service, test_subnet):
        created = await allocation_service.assign(test_subnet.id, "10.0.0.20")

        with pytest.raises(NotFoundError):
            await allocation_service.delete(created.record.id, site_id=2)

    @pytest.mark.asyncio
    async def test_unbind_keeps_record(
        self, allocation_service, store, test_subnet, test_device
    ):
        created = await allocation_service.assign(
            test_subnet.id, "10.0.0.20", device_id=test_device.id
        )

        device = await allocation_service.unbind(test_device.id, SITE_ID)

        assert device.ip_address == ""
        assert await store.get_ip_address(created.record.id) is not None

    @pytest.mark.asyncio
    async def test_promote_device_only_binding(
        self, allocation_service, store, test_subnet
    ):
        device = await make_device(store, "camera", ip_address="10.0.0.77")

        result = await allocation_service.promote(device.id, SITE_ID)

        assert result.record.subnet_id == test_subnet.id
        assert result.record.address == "10.0.0.77"
        assert result.record.description == "Assigned to camera"
        assert result.record.assigned_to == "camera"

    @pytest.mark.asyncio
    async def test_promote_picks_most_specific_subnet(
        self, allocation_service, store, test_subnet
    ):
        inner = await store.create_subnet(
            Subnet(site_id=SITE_ID, prefix="10.0.0.64", mask=26)
        )
        device = await make_device(store, "camera", ip_address="10.0.0.77")

        result = await allocation_service.promote(device.id)

        assert result.record.subnet_id == inner.id

    @pytest.mark.asyncio
    async def test_promote_twice_conflicts(self, allocation_service, store, test_subnet):
        device = await make_device(store, "camera", ip_address="10.0.0.77")
        await allocation_service.promote(device.id)

        with pytest.raises(ConflictError):
            await allocation_service.promote(device.id)

    @pytest.mark.asyncio
    async def test_promote_without_address(self, allocation_service, test_device):
        with pytest.raises(ValidationError):
            await allocation_service.promote(test_device.id)

    @pytest.mark.asyncio
    async def test_promote_without_containing_subnet(
        self, allocation_service, store, test_subnet
    ):
        device = await make_device(store, "roamer", ip_address="172.16.0.5")

        with pytest.raises(ValidationError, match="No subnet"):
            await allocation_service.promote(device.id)


class TestListing:
    @pytest.mark.asyncio
    async def test_list_by_site_and_subnet(self, allocation_service, store, test_subnet):
        other = await store.create_subnet(
            Subnet(site_id=SITE_ID, prefix="192.168.5.0", mask=24)
        )
        await allocation_service.assign(test_subnet.id, "10.0.0.5")
        await allocation_service.assign(other.id, "192.168.5.5")

        assert len(await allocation_service.list_ip_addresses(SITE_ID)) == 2
        narrowed = await allocation_service.list_ip_addresses(SITE_ID, test_subnet.id)
        assert [r.address for r in narrowed] == ["10.0.0.5"]
        assert await allocation_service.list_ip_addresses(2) == []
