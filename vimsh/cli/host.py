"""Host power, maintenance, evacuation, and storage commands."""

from __future__ import annotations

import scriptconfig as scfg

from ..host import (
    add_iscsi_target,
    add_nfs_datastore,
    plan_evacuation,
    reconnect_spec,
    submit_migrations,
    wait_until_up,
)
from ..kinds import COMPUTE, HOSTS
from ..tasks import run_tasks, submit_tasks
from ._common import (
    _BaseCommand,
    _as_list,
    _finish,
    _int_or_none,
    _require,
    _str,
    current_session,
    log,
)


class HostRebootCLI(_BaseCommand):
    """Reboot hosts."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts to reboot (positional).')
    force = scfg.Value(False, isflag=True, help='Reboot even if not in maintenance mode.')
    wait = scfg.Value(False, isflag=True, help='Wait for the hosts to be connected again.')
    timeout = scfg.Value(None, help='Seconds to wait for the hosts to come back (default: forever).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = session.lookup(_as_list(args.hosts), HOSTS)
        report = run_tasks(session.connection, nodes, 'RebootHost', force=bool(args.force))
        if args.wait and report.succeeded:
            print('Waiting for hosts to reboot ...')
            names = {o.name for o in report.succeeded}
            wait_until_up(
                session.connection,
                [n.obj for n in nodes if n.name in names],
                timeout=_int_or_none(args.timeout),
            )
        return _finish(report)


class HostEvacuateCLI(_BaseCommand):
    """vMotion all VMs away from a host."""

    src = scfg.Value('', position=1, help='Source host (positional).')
    dst = scfg.Value([], position=2, nargs='+', help='Destination compute resources (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        src = session.lookup_single(_require(_str(args.src), 'source host required'), HOSTS)
        dsts = session.lookup(_as_list(args.dst), COMPUTE)
        dst_hosts = [host for node in dsts for host in node.obj.host or []]
        plan = plan_evacuation(session.connection, src.obj, dst_hosts)
        if not plan.ok:
            print('The following VMs have no compatible vMotion destination:')
            for vm in plan.blocked:
                print(f' {vm.name}')
            return 1
        if not plan.moves:
            print(f'No VMs on {src.name}')
            return 0
        return _finish(submit_migrations(session.connection, plan))


class EnterMaintenanceModeCLI(_BaseCommand):
    """Put hosts into maintenance mode."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts (positional).')
    timeout = scfg.Value(0, type=int, help='Server-side timeout in seconds (0 means none).')
    evacuate_powered_off_vms = scfg.Value(False, isflag=True, help='Evacuate powered off VMs.')
    no_wait = scfg.Value(False, isflag=True, help="Don't wait for the tasks to complete.")

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = session.lookup(_as_list(args.hosts), HOSTS)
        options = dict(
            timeout=int(args.timeout),
            evacuatePoweredOffVms=bool(args.evacuate_powered_off_vms),
        )
        if args.no_wait:
            submitted, rejected = submit_tasks(nodes, 'EnterMaintenanceMode', **options)
            for name, _ in submitted:
                print(f'{name}: submitted')
            for outcome in rejected:
                print(outcome.describe())
            return 1 if rejected else 0
        return _finish(run_tasks(session.connection, nodes, 'EnterMaintenanceMode', **options))


class ExitMaintenanceModeCLI(_BaseCommand):
    """Take hosts out of maintenance mode."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts (positional).')
    timeout = scfg.Value(0, type=int, help='Server-side timeout in seconds (0 means none).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = session.lookup(_as_list(args.hosts), HOSTS)
        return _finish(
            run_tasks(session.connection, nodes, 'ExitMaintenanceMode', timeout=int(args.timeout))
        )


class HostDisconnectCLI(_BaseCommand):
    """Disconnect hosts from the management server."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = session.lookup(_as_list(args.hosts), HOSTS)
        return _finish(run_tasks(session.connection, nodes, 'DisconnectHost'))


class HostReconnectCLI(_BaseCommand):
    """Reconnect hosts, optionally with new credentials."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts (positional).')
    username = scfg.Value('root', short_alias=['u'], help='Host username.')
    password = scfg.Value('', short_alias=['p'], help='Host password.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = session.lookup(_as_list(args.hosts), HOSTS)
        spec = reconnect_spec(_str(args.username), _str(args.password))
        return _finish(run_tasks(session.connection, nodes, 'ReconnectHost', cnxSpec=spec))


class AddIscsiTargetCLI(_BaseCommand):
    """Add a static iSCSI target to the software adapter of each host."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts (positional).')
    address = scfg.Value('', short_alias=['a'], help='Address of the iSCSI server.')
    iqn = scfg.Value('', short_alias=['i'], help='IQN of the iSCSI target.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        address = _require(_str(args.address), '--address is required')
        iqn = _require(_str(args.iqn), '--iqn is required')
        session = current_session(args.config)
        for node in session.lookup(_as_list(args.hosts), HOSTS):
            print(f'configuring host {node.name}')
            add_iscsi_target(node.obj, address, iqn)
        return 0


class AddNfsDatastoreCLI(_BaseCommand):
    """Mount an NFS export as a datastore on each host."""

    hosts = scfg.Value([], position=1, nargs='+', help='Hosts (positional).')
    name = scfg.Value('', short_alias=['n'], help='Datastore name.')
    address = scfg.Value('', short_alias=['a'], help='Address of the NFS server.')
    path = scfg.Value('', short_alias=['p'], help='Path on the NFS server.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        name = _require(_str(args.name), '--name is required')
        address = _require(_str(args.address), '--address is required')
        path = _require(_str(args.path), '--path is required')
        session = current_session(args.config)
        for node in session.lookup(_as_list(args.hosts), HOSTS):
            log.info('Creating NFS datastore {} on {}', name, node.name)
            add_nfs_datastore(node.obj, name, address, path)
        session.refresh()
        return 0


class HostModalCLI(scfg.ModalCLI):
    """Host power, maintenance, and storage operations."""

    reboot = HostRebootCLI
    evacuate = HostEvacuateCLI
    enter_maintenance_mode = EnterMaintenanceModeCLI
    exit_maintenance_mode = ExitMaintenanceModeCLI
    disconnect = HostDisconnectCLI
    reconnect = HostReconnectCLI
    add_iscsi_target = AddIscsiTargetCLI
    add_nfs_datastore = AddNfsDatastoreCLI
