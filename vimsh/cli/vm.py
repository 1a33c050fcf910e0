"""VM power, configuration, placement, and access commands."""

from __future__ import annotations

import posixpath
import re

import scriptconfig as scfg
from pyVmomi import vim, vmodl

from ..display import prop
from ..errors import (
    NotFoundError,
    UserInputError,
    WaitTimeoutError,
    fault_message,
)
from ..kinds import DATASTORES, FOLDERS, HOSTS, POOLS, VMS, wsdl_name
from ..results import ProgressReport
from ..tasks import progress, run_tasks, wait_for_task
from ..util import parse_key_values, parse_size, run_cmd
from ..vm import (
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
    vm_ip,
    vmx_search_spec,
    wait_for_ips,
    wait_for_shutdown,
)
from ._common import (
    _BaseCommand,
    _as_list,
    _choose_interactive,
    _finish,
    _int_or_none,
    _require,
    _str,
    current_session,
    log,
)

SSH_OPTIONS = ['-o', 'UserKnownHostsFile=/dev/null', '-o', 'StrictHostKeyChecking=no']


def _vms(session, paths):
    return session.lookup(_as_list(paths), VMS)


def _vm(session, path):
    return session.lookup_single(_require(_str(path), 'VM path required'), VMS)


def _optional(session, path, kinds):
    path = _str(path)
    return session.lookup_single(path, kinds).obj if path else None


def _reconfigure(session, node, spec):
    return wait_for_task(session.connection, node.obj.ReconfigVM_Task(spec=spec))


def _each(nodes, method: str, **kwargs) -> int:
    """Call a synchronous method on every node; faults only affect their target."""
    rc = 0
    for node in nodes:
        try:
            getattr(node.obj, method)(**kwargs)
        except vmodl.MethodFault as ex:
            print(f'{node.name}: error: {fault_message(ex)}')
            rc = 1
    return rc


def _default_pool(session):
    """Resource pool of the first compute resource in the first datacenter."""
    try:
        datacenter = session.connection.root_folder.childEntity[0]
        return datacenter.hostFolder.childEntity[0].resourcePool
    except (AttributeError, IndexError):
        raise NotFoundError('No default resource pool; pass --resource_pool') from None


def _devices(node):
    return list(prop(node.obj, 'config.hardware.device', []) or [])


def _power_cli(verb: str, doc: str):
    class _PowerCLI(_BaseCommand):
        vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')

        @classmethod
        def main(cls, argv=True, **kwargs):
            args = cls.cli(argv=argv, data=kwargs)
            session = current_session(args.config)
            return _finish(run_tasks(session.connection, _vms(session, args.vms), verb))

    _PowerCLI.__doc__ = doc
    _PowerCLI.__name__ = _PowerCLI.__qualname__ = f'{verb}CLI'
    return _PowerCLI


OnCLI = _power_cli('PowerOnVM', 'Power on VMs.')
OffCLI = _power_cli('PowerOffVM', 'Power off VMs.')
ResetCLI = _power_cli('ResetVM', 'Reset VMs.')
SuspendCLI = _power_cli('SuspendVM', 'Suspend VMs.')


class WaitForShutdownCLI(_BaseCommand):
    """Wait for VMs to shut down."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')
    timeout = scfg.Value(300, type=int, help='Timeout in seconds.')
    delay = scfg.Value(5, type=int, help='Longest single wait on the server, in seconds.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        return _shutdown_wait(session, _vms(session, args.vms), args.timeout, args.delay)


def _shutdown_wait(session, nodes, timeout, delay) -> int:
    try:
        wait_for_shutdown(
            session.connection, [n.obj for n in nodes], timeout=timeout, delay=delay or 5
        )
    except WaitTimeoutError as ex:
        log.debug('{}', ex)
        raise WaitTimeoutError('At least one VM did not shut down!') from ex
    return 0


class ShutdownGuestCLI(_BaseCommand):
    """Shut down guest OS."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')
    timeout = scfg.Value(None, help='Wait this many seconds for the guests to shut down.')
    delay = scfg.Value(None, help='Longest single wait on the server, in seconds.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        timeout = _int_or_none(args.timeout)
        delay = _int_or_none(args.delay)
        session = current_session(args.config)
        nodes = _vms(session, args.vms)
        rc = _each(nodes, 'ShutdownGuest')
        if timeout is not None:
            rc = max(rc, _shutdown_wait(session, nodes, timeout, delay))
        return rc


class StandbyGuestCLI(_BaseCommand):
    """Suspend guest OS."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        return _each(_vms(session, args.vms), 'StandbyGuest')


class RebootGuestCLI(_BaseCommand):
    """Reboot guest OS."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        return _each(_vms(session, args.vms), 'RebootGuest')


class CreateCLI(_BaseCommand):
    """
    Create a new VM.

    Example:
        vm create -p ~foo/resourcePool -d ~/datastores/bigdisk -s 10g ~/vms/new
    """

    path = scfg.Value('', position=1, help='Path of the new VM (positional).')
    pool = scfg.Value('', short_alias=['p'], help='Resource pool.')
    host = scfg.Value('', help='Host.')
    datastore = scfg.Value('', short_alias=['d'], help='Datastore.')
    disksize = scfg.Value(
        '4000000', short_alias=['s'], help='Size in KB of primary disk (or add a unit of <M|G|T>).'
    )
    memory = scfg.Value(128, type=int, short_alias=['m'], help='Size in MB of memory.')
    cpucount = scfg.Value(1, type=int, short_alias=['c'], help='Number of CPUs.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        _require(_str(args.pool), 'must specify resource pool (--pool)')
        _require(_str(args.datastore), 'must specify datastore (--datastore)')
        check_memory(args.memory)
        parse_size(_str(args.disksize))
        session = current_session(args.config)
        folder, name = session.lookup_parent(_str(args.path), FOLDERS)
        pool = session.lookup_single(_str(args.pool), POOLS)
        datastore = session.lookup_single(_str(args.datastore), DATASTORES)
        host = _optional(session, args.host, HOSTS)
        spec = create_spec(
            name,
            datastore.name,
            disksize=_str(args.disksize),
            memory=args.memory,
            cpucount=args.cpucount,
        )
        task = folder.obj.CreateVM_Task(config=spec, pool=pool.obj, host=host)
        wait_for_task(session.connection, task)
        session.refresh()
        return 0


class InsertCdromCLI(_BaseCommand):
    """Put a disc in a virtual CD-ROM drive."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    iso = scfg.Value('', position=2, help='Path to the ISO image on a datastore (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = _vm(session, args.vm)
        iso = session.lookup_datastore_file(_require(_str(args.iso), 'ISO path required'))
        change = insert_iso_change(_devices(node), iso.datastore_path)
        _reconfigure(session, node, vim.vm.ConfigSpec(deviceChange=[change]))
        return 0


def _register(session, vmx_path: str, folder_path, pool_path) -> None:
    folder = session.lookup_single(_str(folder_path) or '.', FOLDERS)
    pool = _optional(session, pool_path, POOLS) or _default_pool(session)
    task = folder.obj.RegisterVM_Task(path=vmx_path, asTemplate=False, pool=pool)
    wait_for_task(session.connection, task)
    session.refresh()


class RegisterCLI(_BaseCommand):
    """Register a VM already in a datastore."""

    file = scfg.Value('', position=1, help='Path to the VMX file (positional).')
    resource_pool = scfg.Value('', short_alias=['R'], help='Resource pool.')
    folder = scfg.Value('.', short_alias=['F'], help='VM folder.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        vmx = session.lookup_datastore_file(_require(_str(args.file), 'VMX path required'))
        _register(session, vmx.datastore_path, args.folder, args.resource_pool)
        return 0


class FindCLI(_BaseCommand):
    """Display a menu of VMX files to register."""

    datastore = scfg.Value('', position=1, help='Datastore to search (positional).')
    resource_pool = scfg.Value('', short_alias=['R'], help='Resource pool.')
    folder = scfg.Value('.', short_alias=['F'], help='Folder to register in.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        ds = session.lookup_single(_require(_str(args.datastore), 'datastore required'), DATASTORES)
        paths = _find_vmx_files(session, ds.obj)
        if not paths:
            print('no VMX files found')
            return 0
        choice = _choose_interactive(paths, title='Select a VMX file')
        if choice is None:
            return 0
        _register(session, choice, args.folder, args.resource_pool)
        return 0


def _find_vmx_files(session, datastore) -> list[str]:
    task = datastore.browser.SearchDatastoreSubFolders_Task(
        datastorePath=f'[{datastore.name}] /', searchSpec=vmx_search_spec()
    )
    return _vmx_paths(wait_for_task(session.connection, task) or [])


def _vmx_paths(results) -> list[str]:
    # folderPath usually ends with a slash already
    return [
        posixpath.join(result.folderPath, file.path)
        for result in results
        for file in result.file or []
    ]


class BootconfigCLI(_BaseCommand):
    """Alter the boot config settings."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    delay = scfg.Value(None, short_alias=['d'], help='Time in milliseconds to delay boot.')
    enablebootretry = scfg.Value(
        False, isflag=True, short_alias=['r'], help='Enable rebooting if no boot device found.'
    )
    disablebootretry = scfg.Value(
        False, isflag=True, help='Disable rebooting if no boot device found.'
    )
    retrydelay = scfg.Value(None, short_alias=['t'], help='Time to wait before rebooting to retry.')
    show = scfg.Value(False, isflag=True, short_alias=['s'], help='Show the current boot options.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        delay = _int_or_none(args.delay)
        retrydelay = _int_or_none(args.retrydelay)
        session = current_session(args.config)
        node = _vm(session, args.vm)
        current = node.obj.config.bootOptions
        if args.show:
            print(f'bootDelay: {current.bootDelay}')
            print(f'bootRetryEnabled: {current.bootRetryEnabled}')
            print(f'bootRetryDelay: {current.bootRetryDelay}')
            return 0
        options = boot_options(
            current,
            delay=delay,
            retrydelay=retrydelay,
            enable_retry=bool(args.enablebootretry),
            disable_retry=bool(args.disablebootretry),
        )
        _reconfigure(session, node, vim.vm.ConfigSpec(bootOptions=options))
        return 0


class UnregisterCLI(_BaseCommand):
    """Unregister a VM."""

    vm = scfg.Value('', position=1, help='VM (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        _vm(session, args.vm).obj.UnregisterVM()
        session.refresh()
        return 0


class KillCLI(_BaseCommand):
    """Power off and destroy VMs."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = _vms(session, args.vms)
        running = [n for n in nodes if prop(n.obj, 'summary.runtime.powerState') == 'poweredOn']
        report = ProgressReport()
        if running:
            off = run_tasks(session.connection, running, 'PowerOffVM')
            report.outcomes.extend(off.failed)
        if nodes:
            report.outcomes.extend(run_tasks(session.connection, nodes, 'Destroy').outcomes)
        session.refresh()
        return _finish(report)


class AnswerCLI(_BaseCommand):
    """Answer a pending VM question by choice label."""

    choice = scfg.Value('', position=1, help='Answer label (positional).')
    vms = scfg.Value([], position=2, nargs='+', help='VMs (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        label = _str(args.choice)
        session = current_session(args.config)
        for node in _vms(session, args.vms):
            question = prop(node.obj, 'runtime.question')
            if question is None:
                continue
            choices = question.choice.choiceInfo or []
            choice = next((c for c in choices if c.label == label), None)
            if choice is None:
                raise UserInputError(
                    f'invalid answer {label!r}; choices: {", ".join(c.label for c in choices)}'
                )
            node.obj.AnswerVM(questionId=question.id, answerChoice=choice.key)
        return 0


class LayoutCLI(_BaseCommand):
    """Display info about VM files."""

    vm = scfg.Value('', position=1, help='VM (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = _vm(session, args.vm)
        for f in prop(node.obj, 'layoutEx.file', []) or []:
            print(f'{f.type}: {f.name}')
        return 0


class DevicesCLI(_BaseCommand):
    """Display info about VM devices."""

    vm = scfg.Value('', position=1, help='VM (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        for dev in _devices(_vm(session, args.vm)):
            tags = ''
            if getattr(dev, 'connectable', None) is not None:
                tags = 'connected' if dev.connectable.connected else 'disconnected'
            info = dev.deviceInfo
            print(f'{info.label} ({wsdl_name(dev)}): {info.summary}; {tags}')
        return 0


def _connectivity_cli(connected: bool, doc: str):
    class _ConnectivityCLI(_BaseCommand):
        vm = scfg.Value('', position=1, help='VM (positional).')
        label = scfg.Value('', position=2, help='Device label (positional).')

        @classmethod
        def main(cls, argv=True, **kwargs):
            args = cls.cli(argv=argv, data=kwargs)
            session = current_session(args.config)
            node = _vm(session, args.vm)
            change = connectivity_change(find_device(_devices(node), _str(args.label)), connected)
            _reconfigure(session, node, vim.vm.ConfigSpec(deviceChange=[change]))
            return 0

    _ConnectivityCLI.__doc__ = doc
    _ConnectivityCLI.__name__ = _ConnectivityCLI.__qualname__ = (
        'ConnectDeviceCLI' if connected else 'DisconnectDeviceCLI'
    )
    return _ConnectivityCLI


ConnectDeviceCLI = _connectivity_cli(True, 'Connect a virtual device.')
DisconnectDeviceCLI = _connectivity_cli(False, 'Disconnect a virtual device.')


class ExtraConfigCLI(_BaseCommand):
    """Display extraConfig options."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    regexes = scfg.Value([], position=2, nargs='*', help='Regexes to filter keys (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        try:
            patterns = [re.compile(r) for r in _as_list(args.regexes)]
        except re.error as ex:
            raise UserInputError(f'Invalid regex: {ex}') from None
        session = current_session(args.config)
        node = _vm(session, args.vm)
        for opt in prop(node.obj, 'config.extraConfig', []) or []:
            if not patterns or any(p.search(opt.key) for p in patterns):
                print(f'{opt.key}: {opt.value}')
        return 0


class SetExtraConfigCLI(_BaseCommand):
    """Set extraConfig options."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    pairs = scfg.Value([], position=2, nargs='+', help='key=value pairs (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        pairs = parse_key_values(_as_list(args.pairs))
        session = current_session(args.config)
        _reconfigure(session, _vm(session, args.vm), extra_config_spec(pairs))
        return 0


class SSHCLI(_BaseCommand):
    """SSH to a VM."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    cmd = scfg.Value([], position=2, nargs='*', help='Optional remote command (positional).')
    login = scfg.Value('root', short_alias=['l'], help='Username.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        ip = vm_ip(_vm(session, args.vm).obj)
        remote = ' '.join(_as_list(args.cmd))
        cmd = ['ssh', *SSH_OPTIONS, '-l', _str(args.login), ip]
        if remote:
            cmd.append(remote)
        return run_cmd(cmd, check=False, capture=False).code


class PingCLI(_BaseCommand):
    """Ping a VM."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    count = scfg.Value(None, help='Stop after this many packets.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        count = _int_or_none(args.count)
        session = current_session(args.config)
        ip = vm_ip(_vm(session, args.vm).obj)
        cmd = ['ping', *(['-c', str(count)] if count else []), ip]
        return run_cmd(cmd, check=False, capture=False).code


class IPCLI(_BaseCommand):
    """Wait for and display VM IP addresses."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')
    timeout = scfg.Value(None, help='Give up after this many seconds (default: forever).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        timeout = _int_or_none(args.timeout)
        session = current_session(args.config)
        wait_for_ips(session.connection, _vms(session, args.vms), timeout=timeout)
        return 0


class AddNetDeviceCLI(_BaseCommand):
    """Add a network adapter to a virtual machine."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    adapter_type = scfg.Value('e1000', alias=['type'], help='Adapter type: e1000 or vmxnet3.')
    network = scfg.Value('VM Network', help='Network to connect to.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        nic = network_adapter(_str(args.network), nic_type=_str(args.adapter_type))
        session = current_session(args.config)
        node = _vm(session, args.vm)
        _reconfigure(session, node, vim.vm.ConfigSpec(deviceChange=[device_change(nic, 'add')]))
        return 0


class AddDiskCLI(_BaseCommand):
    """Add a hard drive to a virtual machine."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    size = scfg.Value('1G', help='Size in KB (or add a unit of <M|G|T>).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        parse_size(_str(args.size))
        session = current_session(args.config)
        node = _vm(session, args.vm)
        change, controller_key, unit = add_disk_change(
            _devices(node), node.obj.summary.config.vmPathName, _str(args.size)
        )
        _reconfigure(session, node, vim.vm.ConfigSpec(deviceChange=[change]))
        added = next(
            (
                d for d in _devices(node)
                if getattr(d, 'controllerKey', None) == controller_key and d.unitNumber == unit
            ),
            None,
        )
        if added is not None:
            print(f'Added device {added.deviceInfo.label!r}')
        return 0


class RemoveDeviceCLI(_BaseCommand):
    """Remove a virtual device."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    label = scfg.Value('', position=2, help='Device label (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = _vm(session, args.vm)
        change = remove_change(find_device(_devices(node), _str(args.label)))
        _reconfigure(session, node, vim.vm.ConfigSpec(deviceChange=[change]))
        return 0


class MigrateCLI(_BaseCommand):
    """Migrate VMs to another pool or host."""

    vms = scfg.Value([], position=1, nargs='+', help='VMs (positional).')
    pool = scfg.Value('', short_alias=['p'], help='Resource pool.')
    host = scfg.Value('', help='Host.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = _vms(session, args.vms)
        pool = _optional(session, args.pool, POOLS)
        host = _optional(session, args.host, HOSTS)
        report = run_tasks(
            session.connection, nodes, 'MigrateVM',
            pool=pool, host=host,
            priority=vim.VirtualMachine.MovePriority.defaultPriority,
        )
        return _finish(report)


class CloneCLI(_BaseCommand):
    """Clone a VM."""

    src = scfg.Value('', position=1, help='Source VM (positional).')
    dst = scfg.Value('', position=2, help='Path to the new VM (positional).')
    pool = scfg.Value('', short_alias=['p'], help='Resource pool.')
    host = scfg.Value('', help='Host.')
    template = scfg.Value(False, isflag=True, short_alias=['t'], help='Create a template.')
    linked = scfg.Value(False, isflag=True, short_alias=['l'], help='Create a linked clone.')
    power_on = scfg.Value(False, isflag=True, help='Power on the VM after cloning.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        src = _vm(session, args.src)
        folder, name = session.lookup_parent(_str(args.dst), FOLDERS)
        pool = _optional(session, args.pool, POOLS)
        host = _optional(session, args.host, HOSTS)
        if args.linked:
            changes = delta_disk_changes(_devices(src))
            if changes:
                print('Reconfiguring source VM to use delta disks...')
                task = src.obj.ReconfigVM_Task(spec=vim.vm.ConfigSpec(deviceChange=changes))
                report = progress(session.connection, [(src.name, task)])
                if not report.ok:
                    return report.exit_code
        spec = clone_spec(
            pool=pool,
            host=host,
            linked=bool(args.linked),
            template=bool(args.template),
            power_on=bool(args.power_on),
        )
        task = src.obj.CloneVM_Task(folder=folder.obj, name=name, spec=spec)
        report = progress(session.connection, [(name, task)])
        session.refresh()
        return _finish(report)


class AnnotateCLI(_BaseCommand):
    """Change a VM's annotation."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    annotation = scfg.Value('', position=2, help='New annotation (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = _vm(session, args.vm)
        _reconfigure(session, node, vim.vm.ConfigSpec(annotation=_str(args.annotation)))
        return 0


class ModifyCpuCLI(_BaseCommand):
    """Change CPU configuration."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    num = scfg.Value(None, help='New number of CPUs.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        num = _require(_int_or_none(args.num), '--num is required')
        session = current_session(args.config)
        node = _vm(session, args.vm)
        spec = vim.vm.ConfigSpec(numCPUs=num)
        return _finish(run_tasks(session.connection, [node], 'ReconfigVM', spec=spec))


class ModifyMemoryCLI(_BaseCommand):
    """Change memory configuration."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    size = scfg.Value(None, help='New memory size in MB.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        size = check_memory(_require(_int_or_none(args.size), '--size is required'))
        session = current_session(args.config)
        node = _vm(session, args.vm)
        if prop(node.obj, 'summary.runtime.powerState') != 'poweredOff':
            raise UserInputError('VM needs to be off')
        spec = vim.vm.ConfigSpec(memoryMB=size)
        return _finish(run_tasks(session.connection, [node], 'ReconfigVM', spec=spec))


class AddCdromDeviceCLI(_BaseCommand):
    """Add a CD-ROM drive."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    label = scfg.Value('CD/DVD drive 1', help='Device label.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = _vm(session, args.vm)
        change = device_change(atapi_cdrom(_str(args.label)), 'add')
        task = node.obj.ReconfigVM_Task(spec=vim.vm.ConfigSpec(deviceChange=[change]))
        return _finish(progress(session.connection, [(node.name, task)]))


class VMModalCLI(scfg.ModalCLI):
    """VM power, configuration, and access commands."""

    on = OnCLI
    off = OffCLI
    reset = ResetCLI
    suspend = SuspendCLI
    wait_for_shutdown = WaitForShutdownCLI
    shutdown_guest = ShutdownGuestCLI
    standby_guest = StandbyGuestCLI
    reboot_guest = RebootGuestCLI
    create = CreateCLI
    insert_cdrom = InsertCdromCLI
    register = RegisterCLI
    bootconfig = BootconfigCLI
    unregister = UnregisterCLI
    kill = KillCLI
    answer = AnswerCLI
    layout = LayoutCLI
    devices = DevicesCLI
    connect = ConnectDeviceCLI
    disconnect = DisconnectDeviceCLI
    find = FindCLI
    extra_config = ExtraConfigCLI
    set_extra_config = SetExtraConfigCLI
    ssh = SSHCLI
    ping = PingCLI
    ip = IPCLI
    add_net_device = AddNetDeviceCLI
    add_disk = AddDiskCLI
    remove_device = RemoveDeviceCLI
    migrate = MigrateCLI
    clone = CloneCLI
    annotate = AnnotateCLI
    modify_cpu = ModifyCpuCLI
    modify_memory = ModifyMemoryCLI
    add_cdrom_device = AddCdromDeviceCLI
