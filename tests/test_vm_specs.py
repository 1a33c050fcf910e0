"""VM configuration and device-change payloads."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pyVmomi import vim

from vimsh.errors import NotFoundError, UserInputError
from vimsh.vm.specs import (
    add_disk_change,
    boot_options,
    check_memory,
    clone_spec,
    create_spec,
    extra_config_spec,
    find_device,
    lsi_controller,
    network_adapter,
    next_unit_number,
    remove_change,
    thin_disk,
)

Device = vim.vm.device


def _devices(changes, cls):
    return [c for c in changes if isinstance(c.device, cls)]


def test_create_spec_devices() -> None:
    spec = create_spec('new', 'ds1', disksize='10G', memory=128, cpucount=1)
    assert spec.name == 'new'
    assert spec.guestId == 'otherGuest'
    assert spec.files.vmPathName == '[ds1]'
    assert spec.memoryMB == 128
    assert spec.numCPUs == 1
    changes = spec.deviceChange
    assert len(changes) == 4
    assert all(c.operation == 'add' for c in changes)

    (ctrl,) = _devices(changes, Device.VirtualLsiLogicController)
    assert ctrl.device.key == 1000
    assert ctrl.device.busNumber == 0
    assert ctrl.device.sharedBus == 'noSharing'

    (disk,) = _devices(changes, Device.VirtualDisk)
    assert disk.fileOperation == 'create'
    assert disk.device.capacityInKB == 10 * 1024**2
    assert disk.device.backing.thinProvisioned is True
    assert disk.device.backing.diskMode == 'persistent'
    assert disk.device.controllerKey == 1000
    assert disk.device.unitNumber == 0

    (cdrom,) = _devices(changes, Device.VirtualCdrom)
    assert cdrom.device.key == -2
    assert cdrom.device.controllerKey == 200
    assert cdrom.device.connectable.connected is True
    assert isinstance(cdrom.device.backing, Device.VirtualCdrom.IsoBackingInfo)

    (nic,) = _devices(changes, Device.VirtualEthernetCard)
    assert isinstance(nic.device, Device.VirtualE1000)
    assert nic.device.key == -3
    assert nic.device.backing.deviceName == 'VM Network'
    assert nic.device.addressType == 'generated'


def test_create_spec_default_disk_size() -> None:
    spec = create_spec('new', 'ds1')
    (disk,) = _devices(spec.deviceChange, Device.VirtualDisk)
    assert disk.device.capacityInKB == 4000000


@pytest.mark.parametrize('memory', [0, -4, 130, 127])
def test_memory_must_be_multiple_of_four(memory) -> None:
    with pytest.raises(UserInputError, match='multiple of 4'):
        check_memory(memory)
    with pytest.raises(UserInputError):
        create_spec('new', 'ds1', memory=memory)


def test_unknown_nic_type() -> None:
    with pytest.raises(UserInputError, match='unknown device type'):
        network_adapter(nic_type='pcnet32')
    assert isinstance(network_adapter(nic_type='vmxnet3'), Device.VirtualVmxnet3)


def test_next_unit_skips_reserved_slot() -> None:
    devices = [thin_disk('[ds1]', 1, unit_number=u) for u in range(7)]
    assert next_unit_number(devices, 1000) == 8
    assert next_unit_number(devices[:2], 1000) == 2
    assert next_unit_number([], 1000) == 0


def test_add_disk_change_next_to_vmx() -> None:
    devices = [lsi_controller(), thin_disk('[ds1] web1/web1.vmdk', 100, unit_number=0)]
    change, controller_key, unit = add_disk_change(devices, '[ds1] web1/web1.vmx', '1G')
    assert (controller_key, unit) == (1000, 1)
    assert change.fileOperation == 'create'
    assert change.device.backing.fileName == '[ds1] web1/disk-1000-1.vmdk'
    assert change.device.capacityInKB == 1024**2
    with pytest.raises(NotFoundError):
        add_disk_change([], '[ds1] web1/web1.vmx', '1G')


def test_remove_change_destroys_file_backed_devices() -> None:
    disk = thin_disk('[ds1] a.vmdk', 1)
    assert remove_change(disk).fileOperation == 'destroy'
    nic = network_adapter(label='Network adapter 1')
    change = remove_change(nic)
    assert change.operation == 'remove'
    assert change.fileOperation is None
    assert find_device([disk, nic], 'Network adapter 1') is nic
    with pytest.raises(NotFoundError):
        find_device([disk, nic], 'Floppy drive 1')


def test_boot_options_merge() -> None:
    current = SimpleNamespace(bootDelay=0, bootRetryDelay=10000, bootRetryEnabled=False)
    opts = boot_options(current, delay=3000)
    assert (opts.bootDelay, opts.bootRetryDelay, opts.bootRetryEnabled) == (3000, 10000, False)
    opts = boot_options(current, retrydelay=5000)
    assert (opts.bootRetryDelay, opts.bootRetryEnabled) == (5000, True)
    enabled = SimpleNamespace(bootDelay=0, bootRetryDelay=10000, bootRetryEnabled=True)
    assert boot_options(enabled, disable_retry=True).bootRetryEnabled is False
    with pytest.raises(UserInputError, match='conflicts'):
        boot_options(current, enable_retry=True, disable_retry=True)


def test_extra_config_and_clone_specs() -> None:
    spec = extra_config_spec({'guestinfo.role': 'web', 'tools.syncTime': 'TRUE'})
    assert [(o.key, o.value) for o in spec.extraConfig] == [
        ('guestinfo.role', 'web'),
        ('tools.syncTime', 'TRUE'),
    ]
    clone = clone_spec(linked=True, template=False, power_on=True)
    assert clone.location.diskMoveType == 'moveChildMostDiskBacking'
    assert clone.powerOn is True
    assert clone_spec().location.diskMoveType is None
