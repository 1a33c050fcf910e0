"""Waiting on VM power state."""

from __future__ import annotations

import time
from typing import Any, Callable

from loguru import logger
from pyVmomi import vim

from ..wait import Deadline
from ..watch import PropertyWatch

log = logger

POWER_PROP = 'summary.runtime.powerState'


def wait_for_shutdown(
    connection,
    vms: list[Any],
    *,
    timeout: float | None = 300,
    delay: int = 5,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Block until none of ``vms`` is powered on.

    ``delay`` bounds each long-poll round trip. Raises
    :class:`~vimsh.errors.WaitTimeoutError` if a VM is still on at the
    deadline.
    """
    deadline = Deadline(timeout, clock=clock)
    with PropertyWatch(connection.property_collector, max_wait=max(1, int(delay))) as watch:
        for vm in vms:
            watch.add([vm], [POWER_PROP], vim.VirtualMachine)
        pending = list(vms)
        while pending:
            watch.poll(deadline)
            for vm in list(pending):
                if watch.values.get(vm, {}).get(POWER_PROP) not in (None, 'poweredOn'):
                    pending.remove(vm)
                    watch.remove(vm)
            if pending:
                deadline.check(f'{len(pending)} VM(s) to shut down')
