"""VM payload builders, address discovery, power waits, and guest operations."""

from __future__ import annotations

from .addresses import annotation_ip, ip_from_values, vm_ip, wait_for_ips
from .guest import GuestOperations, posix_attributes, upload_plan
from .power import wait_for_shutdown
from .specs import (
    add_disk_change,
    atapi_cdrom,
    boot_options,
    check_memory,
    clone_spec,
    connectivity_change,
    create_spec,
    delta_disk_changes,
    device_change,
    extra_config_spec,
    find_device,
    insert_iso_change,
    network_adapter,
    remove_change,
    vmx_search_spec,
)

__all__ = [
    'GuestOperations',
    'add_disk_change',
    'annotation_ip',
    'atapi_cdrom',
    'boot_options',
    'check_memory',
    'clone_spec',
    'connectivity_change',
    'create_spec',
    'delta_disk_changes',
    'device_change',
    'extra_config_spec',
    'find_device',
    'insert_iso_change',
    'ip_from_values',
    'network_adapter',
    'posix_attributes',
    'remove_change',
    'upload_plan',
    'vm_ip',
    'vmx_search_spec',
    'wait_for_ips',
    'wait_for_shutdown',
]
