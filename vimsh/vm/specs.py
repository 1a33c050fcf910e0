"""Builders for VM configuration and device-change request payloads."""

from __future__ import annotations

import uuid
from typing import Any, Iterable

from loguru import logger
from pyVmomi import vim

from ..errors import NotFoundError, UserInputError
from ..util import parse_size

log = logger

Device = vim.vm.device

LSI_CONTROLLER_KEY = 1000
IDE_CONTROLLER_KEY = 200
CDROM_DEVICE_KEY = 3000
SCSI_RESERVED_UNIT = 7
DEFAULT_NETWORK = 'VM Network'
NIC_TYPES = {
    'e1000': Device.VirtualE1000,
    'vmxnet3': Device.VirtualVmxnet3,
}


def check_memory(memory_mb: int) -> int:
    memory_mb = int(memory_mb)
    if memory_mb <= 0 or memory_mb % 4 != 0:
        raise UserInputError('memory must be a multiple of 4MB')
    return memory_mb


def device_change(device: Any, operation: str, file_operation: str | None = None):
    spec = Device.VirtualDeviceSpec(
        operation=getattr(Device.VirtualDeviceSpec.Operation, operation), device=device
    )
    if file_operation is not None:
        spec.fileOperation = getattr(Device.VirtualDeviceSpec.FileOperation, file_operation)
    return spec


def connect_info(connected: bool = True):
    return Device.VirtualDevice.ConnectInfo(
        allowGuestControl=True, connected=connected, startConnected=connected
    )


def lsi_controller(key: int = LSI_CONTROLLER_KEY):
    return Device.VirtualLsiLogicController(
        key=key, busNumber=0, sharedBus=Device.VirtualSCSIController.Sharing.noSharing
    )


def thin_disk(
    file_name: str, capacity_kb: int, *, key: int = -1,
    controller_key: int = LSI_CONTROLLER_KEY, unit_number: int = 0,
):
    backing = Device.VirtualDisk.FlatVer2BackingInfo(
        fileName=file_name, diskMode='persistent', thinProvisioned=True
    )
    return Device.VirtualDisk(
        key=key,
        backing=backing,
        controllerKey=controller_key,
        unitNumber=unit_number,
        capacityInKB=int(capacity_kb),
    )


def iso_cdrom(iso_path: str, *, key: int = -2):
    return Device.VirtualCdrom(
        key=key,
        connectable=connect_info(True),
        backing=Device.VirtualCdrom.IsoBackingInfo(fileName=iso_path),
        controllerKey=IDE_CONTROLLER_KEY,
        unitNumber=0,
    )


def atapi_cdrom(label: str):
    return Device.VirtualCdrom(
        controllerKey=IDE_CONTROLLER_KEY,
        key=CDROM_DEVICE_KEY,
        unitNumber=0,
        backing=Device.VirtualCdrom.AtapiBackingInfo(deviceName=label, useAutoDetect=False),
        connectable=connect_info(True),
        deviceInfo=vim.Description(label=label, summary=label),
    )


def network_adapter(
    network: str = DEFAULT_NETWORK, *, nic_type: str = 'e1000', key: int = -1,
    label: str | None = None,
):
    if nic_type not in NIC_TYPES:
        raise UserInputError(
            f'unknown device type {nic_type!r}; expected one of {sorted(NIC_TYPES)}'
        )
    return NIC_TYPES[nic_type](
        key=key,
        deviceInfo=vim.Description(label=label or str(uuid.uuid4()), summary=network),
        backing=Device.VirtualEthernetCard.NetworkBackingInfo(deviceName=network),
        addressType='generated',
    )


def create_spec(
    name: str,
    datastore_name: str,
    *,
    disksize: str = '4000000',
    memory: int = 128,
    cpucount: int = 1,
):
    """
    Config for a new VM: one SCSI controller, one thin disk, an ISO CD-ROM
    and an E1000 adapter on the default network, all on ``datastore_name``.
    """
    memory = check_memory(memory)
    capacity = parse_size(disksize)
    ds_path = f'[{datastore_name}]'
    return vim.vm.ConfigSpec(
        name=name,
        guestId='otherGuest',
        files=vim.vm.FileInfo(vmPathName=ds_path),
        numCPUs=int(cpucount),
        memoryMB=memory,
        deviceChange=[
            device_change(lsi_controller(), 'add'),
            device_change(thin_disk(ds_path, capacity), 'add', 'create'),
            device_change(iso_cdrom(ds_path), 'add'),
            device_change(
                network_adapter(key=-3, label='Network Adapter 1'), 'add'
            ),
        ],
    )


def find_device(devices: Iterable[Any], label: str) -> Any:
    for dev in devices or []:
        info = getattr(dev, 'deviceInfo', None)
        if info is not None and info.label == label:
            return dev
    raise NotFoundError(f'no such device {label!r}')


def first_of(devices: Iterable[Any], cls) -> Any:
    return next((dev for dev in devices or [] if isinstance(dev, cls)), None)


def next_unit_number(devices: Iterable[Any], controller_key: int) -> int:
    used = [
        dev.unitNumber
        for dev in devices or []
        if getattr(dev, 'controllerKey', None) == controller_key
        and dev.unitNumber is not None
    ]
    unit = max(used, default=-1) + 1
    if unit == SCSI_RESERVED_UNIT:
        unit += 1
    return unit


def add_disk_change(devices: list[Any], vm_path_name: str, size: str):
    """Device change for a new thin disk next to the VM's config file."""
    controller = first_of(devices, Device.VirtualLsiLogicController)
    if controller is None:
        raise NotFoundError('no LSI Logic controller found')
    unit = next_unit_number(devices, controller.key)
    disk_id = f'disk-{controller.key}-{unit}'
    folder = vm_path_name.rsplit('/', 1)[0] if '/' in vm_path_name else vm_path_name
    file_name = f'{folder}/{disk_id}.vmdk'
    disk = thin_disk(
        file_name, parse_size(size), controller_key=controller.key, unit_number=unit
    )
    return device_change(disk, 'add', 'create'), controller.key, unit


def remove_change(device: Any):
    backing = getattr(device, 'backing', None)
    file_op = 'destroy' if isinstance(backing, Device.VirtualDevice.FileBackingInfo) else None
    return device_change(device, 'remove', file_op)


def connectivity_change(device: Any, connected: bool):
    if getattr(device, 'connectable', None) is None:
        raise UserInputError(f'{device.deviceInfo.label} cannot be connected or disconnected')
    device.connectable.connected = connected
    return device_change(device, 'edit')


def insert_iso_change(devices: list[Any], iso_path: str):
    cdrom = first_of(devices, Device.VirtualCdrom)
    if cdrom is None:
        raise NotFoundError('No virtual CDROM drive found')
    cdrom.backing = Device.VirtualCdrom.IsoBackingInfo(fileName=iso_path)
    return device_change(cdrom, 'edit')


def boot_options(
    current: Any,
    *,
    delay: int | None = None,
    retrydelay: int | None = None,
    enable_retry: bool = False,
    disable_retry: bool = False,
):
    """Merge requested boot settings into the current ones."""
    if enable_retry and disable_retry:
        raise UserInputError('--enablebootretry conflicts with --disablebootretry')
    new_delay = current.bootDelay if delay is None else int(delay)
    new_retrydelay = current.bootRetryDelay
    new_enabled = current.bootRetryEnabled
    if retrydelay is not None and retrydelay != current.bootRetryDelay:
        new_retrydelay = int(retrydelay)
        new_enabled = True
    if enable_retry:
        new_enabled = True
    elif disable_retry:
        new_enabled = False
    return vim.vm.BootOptions(
        bootDelay=new_delay,
        bootRetryDelay=new_retrydelay,
        bootRetryEnabled=new_enabled,
    )


def extra_config_spec(pairs: dict[str, str]):
    return vim.vm.ConfigSpec(
        extraConfig=[vim.option.OptionValue(key=k, value=v) for k, v in pairs.items()]
    )


def delta_disk_changes(devices: Iterable[Any]) -> list[Any]:
    """Swap every base disk for a child delta disk backed by it."""
    changes = []
    for disk in devices or []:
        if not isinstance(disk, Device.VirtualDisk):
            continue
        backing = disk.backing
        if getattr(backing, 'parent', None) is not None:
            continue
        child = Device.VirtualDisk.FlatVer2BackingInfo(
            fileName=f'[{backing.datastore.name}]',
            datastore=backing.datastore,
            diskMode=backing.diskMode,
            thinProvisioned=backing.thinProvisioned,
            parent=backing,
        )
        replacement = Device.VirtualDisk(
            key=disk.key,
            controllerKey=disk.controllerKey,
            unitNumber=disk.unitNumber,
            capacityInKB=disk.capacityInKB,
            backing=child,
        )
        changes.append(device_change(disk, 'remove'))
        changes.append(device_change(replacement, 'add', 'create'))
    return changes


def clone_spec(
    *, pool=None, host=None, linked: bool = False, template: bool = False,
    power_on: bool = False,
):
    location = vim.vm.RelocateSpec(pool=pool, host=host)
    if linked:
        location.diskMoveType = 'moveChildMostDiskBacking'
    return vim.vm.CloneSpec(location=location, template=template, powerOn=power_on)


def vmx_search_spec():
    browser = vim.host.DatastoreBrowser
    return browser.SearchSpec(
        details=browser.FileInfo.Details(
            fileOwner=False, fileSize=False, fileType=True, modification=False
        ),
        query=[browser.VmConfigQuery()],
    )
