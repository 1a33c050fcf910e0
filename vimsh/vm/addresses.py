"""Guest IP address discovery, from live guest info or the VM annotation."""

from __future__ import annotations

import sys
import time
from typing import Any, Callable

import yaml
from loguru import logger
from pyVmomi import vim

from ..errors import NotFoundError
from ..inventory import Node
from ..wait import Deadline
from ..watch import PropertyWatch

log = logger

LOOPBACK = '127.0.0.1'
IP_PROPS = [
    'summary.runtime.powerState',
    'summary.guest.ipAddress',
    'summary.config.annotation',
]


def annotation_ip(annotation: str | None) -> str | None:
    """
    The ``ip`` key of an annotation that parses as a YAML mapping.

    Example:
        >>> annotation_ip('ip: 10.0.0.5\\nowner: ops')
        '10.0.0.5'
        >>> annotation_ip('just a note') is None
        True
    """
    if not annotation:
        return None
    try:
        note = yaml.safe_load(annotation)
    except yaml.YAMLError:
        return None
    if isinstance(note, dict) and note.get('ip'):
        return str(note['ip'])
    return None


def ip_from_values(power_state: str | None, guest_ip: str | None, annotation: str | None) -> str | None:
    """Usable address for a VM, or None when it has none yet."""
    if power_state != 'poweredOn':
        return None
    if guest_ip and guest_ip != LOOPBACK:
        return guest_ip
    return annotation_ip(annotation)


def vm_ip(vm: Any) -> str:
    summary = vm.summary
    if summary.runtime.powerState != 'poweredOn':
        raise NotFoundError(f'{vm.name}: VM is not powered on')
    ip = ip_from_values(
        summary.runtime.powerState,
        summary.guest.ipAddress if summary.guest else None,
        summary.config.annotation if summary.config else None,
    )
    if ip is None:
        raise NotFoundError(f'{vm.name}: no IP known for this VM')
    return ip


def wait_for_ips(
    connection,
    vms: list[Node],
    *,
    timeout: float | None = None,
    clock: Callable[[], float] = time.monotonic,
    stream=None,
) -> dict[str, str]:
    """
    Long-poll until every VM has a usable address, printing each as found.

    Each VM gets its own property filter, dropped as soon as it resolves.
    """
    stream = stream if stream is not None else sys.stdout
    deadline = Deadline(timeout, clock=clock)
    found: dict[str, str] = {}
    with PropertyWatch(connection.property_collector) as watch:
        for node in vms:
            watch.add([node.obj], IP_PROPS, vim.VirtualMachine)
        pending = list(vms)
        while pending:
            watch.poll(deadline)
            for node in list(pending):
                values = watch.values.get(node.obj, {})
                ip = ip_from_values(
                    values.get('summary.runtime.powerState'),
                    values.get('summary.guest.ipAddress'),
                    values.get('summary.config.annotation'),
                )
                if ip is None:
                    continue
                stream.write(f'{node.name}: {ip}\n')
                found[node.name] = ip
                pending.remove(node)
                watch.remove(node.obj)
            if pending:
                deadline.check(f'IP addresses of {len(pending)} VM(s)')
    return found
