"""Host-level operations: evacuation planning, reboot waits, storage setup."""

from __future__ import annotations

import random
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from loguru import logger
from pyVmomi import vim, vmodl

from .errors import RemoteFaultError, fault_message
from .kinds import wsdl_name
from .results import ProgressReport, TaskOutcome
from .tasks import progress
from .wait import Deadline
from .watch import PropertyWatch

log = logger

EVACUATION_CHECKS = ['cpu', 'software']
REBOOT_SETTLE_SECONDS = 3 * 60


@dataclass
class EvacuationPlan:
    """Destination chosen per VM, or the VMs that have none."""

    moves: list[tuple[Any, Any]] = field(default_factory=list)
    blocked: list[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.blocked


def usable_destinations(src: Any, hosts: Iterable[Any]) -> list[Any]:
    """Connected hosts outside maintenance mode, excluding ``src``."""
    out = []
    for host in hosts:
        if host == src:
            continue
        runtime = host.runtime
        if runtime.connectionState != 'connected' or runtime.inMaintenanceMode:
            log.debug('Skipping destination {}', host.name)
            continue
        if host not in out:
            out.append(host)
    return out


def compatible_hosts(connection, vm: Any, dst_hosts: list[Any]) -> list[Any]:
    required = list(vm.datastore or [])
    results = connection.si.QueryVMotionCompatibility(
        vm=vm, host=dst_hosts, compatibility=EVACUATION_CHECKS
    )
    out = []
    for result in results or []:
        if sorted(result.compatibility or []) != sorted(EVACUATION_CHECKS):
            continue
        mounted = list(result.host.datastore or [])
        if all(ds in mounted for ds in required):
            out.append(result.host)
    return out


def plan_evacuation(
    connection, src: Any, dst_hosts: Iterable[Any], *, rng: random.Random | None = None
) -> EvacuationPlan:
    """
    Pick a vMotion destination for every VM on ``src``.

    If any VM has no compatible destination the plan lists the blocked
    VMs and holds no moves at all.
    """
    rng = rng if rng is not None else random.Random()
    dst_hosts = usable_destinations(src, dst_hosts)
    candidates = [(vm, compatible_hosts(connection, vm, dst_hosts)) for vm in src.vm or []]
    blocked = [vm for vm, hosts in candidates if not hosts]
    if blocked:
        return EvacuationPlan(blocked=blocked)
    return EvacuationPlan(moves=[(vm, rng.choice(hosts)) for vm, hosts in candidates])


def submit_migrations(connection, plan: EvacuationPlan, *, timeout=None, stream=None) -> ProgressReport:
    submitted = []
    rejected = []
    for vm, host in plan.moves:
        log.info('Migrating {} to {}', vm.name, host.name)
        try:
            task = vm.MigrateVM_Task(
                host=host, priority=vim.VirtualMachine.MovePriority.defaultPriority
            )
        except vmodl.MethodFault as ex:
            rejected.append(TaskOutcome(vm.name, 'error', fault_message(ex)))
            continue
        submitted.append((vm.name, task))
    return progress(connection, submitted, rejected=rejected, timeout=timeout, stream=stream)


def wait_until_up(
    connection,
    hosts: list[Any],
    *,
    timeout: float | None = None,
    settle: float = REBOOT_SETTLE_SECONDS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    stream=None,
) -> None:
    """
    Wait for rebooted hosts to be connected and powered on again.

    Hosts keep reporting their old state for a while after a reboot is
    accepted, so the wait starts after a fixed settle delay.
    """
    stream = stream if stream is not None else sys.stdout
    if settle:
        sleep(settle)
    deadline = Deadline(timeout, clock=clock)
    props = ['name', 'runtime.connectionState', 'runtime.powerState']
    with PropertyWatch(connection.property_collector) as watch:
        for host in hosts:
            watch.add([host], props, vim.HostSystem)
        pending = list(hosts)
        while pending:
            watch.poll(deadline)
            for host in list(pending):
                values = watch.values.get(host, {})
                if (
                    values.get('runtime.connectionState') == 'connected'
                    and values.get('runtime.powerState') == 'poweredOn'
                ):
                    stream.write(f'Host {values.get("name", host)} is back up\n')
                    pending.remove(host)
                    watch.remove(host)
            if pending:
                deadline.check(f'{len(pending)} host(s) to come back')


def reconnect_spec(username: str, password: str):
    return vim.host.ConnectSpec(force=False, userName=username, password=password)


def add_iscsi_target(host: Any, address: str, iqn: str) -> None:
    storage = host.configManager.storageSystem
    storage.UpdateSoftwareInternetScsiEnabled(enabled=True)
    adapters = storage.storageDeviceInfo.hostBusAdapter or []
    adapter = next(
        (a for a in adapters if wsdl_name(a) == 'HostInternetScsiHba'), None
    )
    if adapter is None:
        raise RemoteFaultError(f'{host.name}: no software iSCSI adapter found')
    target = vim.host.InternetScsiHba.StaticTarget(address=address, iScsiName=iqn)
    storage.AddInternetScsiStaticTargets(iScsiHbaDevice=adapter.device, targets=[target])
    storage.RescanAllHba()


def nas_spec(name: str, address: str, path: str):
    return vim.host.NasVolume.Specification(
        accessMode='readWrite', localPath=name, remoteHost=address, remotePath=path
    )


def add_nfs_datastore(host: Any, name: str, address: str, path: str) -> Any:
    datastore_system = host.configManager.datastoreSystem
    return datastore_system.CreateNasDatastore(spec=nas_spec(name, address, path))
