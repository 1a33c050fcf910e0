"""Command dispatch, help, and a few commands driven through their CLI classes."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from vimsh.cli import basic, shell, vm, vm_guest
from vimsh.cli._common import set_session
from vimsh.cli.help import render_help
from vimsh.cli.main import _count_verbose, _normalize_argv, resolve_command_name
from vimsh.errors import UserInputError, WaitTimeoutError

from _fakes import fake_session, new_task, task_info, task_returner


@pytest.fixture
def lab():
    session, inv = fake_session()
    set_session(session)
    try:
        yield session, inv
    finally:
        set_session(None)


def test_normalize_argv_expands_aliases_and_dotted_names() -> None:
    assert _normalize_argv([]) == ['shell']
    assert _normalize_argv(['l', '/dc']) == ['basic', 'ls', '/dc']
    assert _normalize_argv(['r', 'web1']) == ['vm', 'reset', 'web1']
    assert _normalize_argv(['vm.on', 'x']) == ['vm', 'on', 'x']
    assert _normalize_argv(['vm', 'on', 'x']) == ['vm', 'on', 'x']
    assert _normalize_argv(['--help']) == ['--help']
    assert _normalize_argv(['vm.nope']) == ['vm.nope']


def test_resolve_command_name() -> None:
    assert resolve_command_name('i') == ('basic', 'info')
    assert resolve_command_name('host') == ('host', None)
    assert resolve_command_name('vm_guest.start_program') == ('vm_guest', 'start_program')
    assert resolve_command_name('bogus') is None
    assert resolve_command_name('vm.bogus') is None


def test_count_verbose() -> None:
    assert _count_verbose(['vm', 'on', '-vv']) == 2
    assert _count_verbose(['--verbose', 'x', '-v']) == 2
    assert _count_verbose(['ls']) == 0


def test_help_lists_all_commands_with_aliases() -> None:
    lines = render_help('')
    assert lines[0] == 'All commands:'
    assert 'vm.reset (reset, r): Reset VMs.' in lines
    assert any(line.startswith('vm_guest.start_program') for line in lines)


def test_help_for_module_and_command() -> None:
    lines = render_help('host')
    assert lines[0] == 'Commands in host:'
    assert all(line.startswith('host.') for line in lines[1:])

    lines = render_help('vm.create')
    assert lines[0] == 'vm.create'
    assert 'Options:' in lines
    assert any(line.startswith('  --disksize') for line in lines)
    assert not any(line.startswith('  --verbose') for line in lines)


def test_help_for_object_path_lists_relevant_modules(lab) -> None:
    session, _ = lab
    lines = render_help('/dc/vms/web1', session)
    assert lines[0] == 'Relevant commands for virtual machine:'
    modules = {line.split('.')[0] for line in lines[1:]}
    assert modules == {'basic', 'vm', 'vm_guest'}


def test_ls_numbers_children_as_marks(lab, capsys) -> None:
    session, inv = lab
    assert basic.LsCLI.main(argv=False, path='/dc/vms') == 0
    out = capsys.readouterr().out.splitlines()
    assert [line.split(':')[0] for line in out] == ['0 web1', '1 web2', '2 db']
    assert session.lookup_single('1').obj is inv.web2


def test_cd_then_what(lab, capsys) -> None:
    session, _ = lab
    basic.CdCLI.main(argv=False, path='/dc/computers/cluster')
    assert session.cwd.path_str == '/dc/computers/cluster'
    basic.WhatCLI.main(argv=False, paths=['esx1', 'resourcePool'])
    out = capsys.readouterr().out.splitlines()
    assert out == [
        '/dc/computers/cluster/esx1: host',
        '/dc/computers/cluster/resourcePool: resource pool',
    ]


def test_cd_into_a_vm_is_refused(lab) -> None:
    with pytest.raises(Exception, match='not a directory'):
        basic.CdCLI.main(argv=False, path='/dc/vms/web1')


def test_mark_and_show(lab, capsys) -> None:
    session, inv = lab
    basic.MarkCLI.main(argv=False, name='webs', paths=['/dc/vms/web*'])
    assert [n.obj for n in session.lookup('~webs')] == [inv.web1, inv.web2]
    basic.MarkCLI.main(argv=False, name='webs')
    assert capsys.readouterr().out.strip() == '~webs: /dc/vms/web1, /dc/vms/web2'
    with pytest.raises(UserInputError):
        basic.MarkCLI.main(argv=False, name='a/b', paths=['/dc'])


def test_mkdir_creates_folder(lab) -> None:
    _, inv = lab
    basic.MkdirCLI.main(argv=False, path='/dc/vms/new')
    assert inv.vms.called('CreateFolder') == [{'name': 'new'}]


def test_power_on_reports_each_vm(lab, capsys) -> None:
    session, inv = lab
    t1, t2 = new_task(), new_task()
    inv.web1.results['PowerOnVM_Task'] = task_returner(t1)
    inv.web2.results['PowerOnVM_Task'] = task_returner(t2)
    session.connection.property_collector.updates = [
        [(t1, {'info': task_info('success')}), (t2, {'info': task_info('success')})],
    ]
    assert vm.OnCLI.main(argv=False, vms=['/dc/vms/web1', '/dc/vms/web2']) == 0
    out = capsys.readouterr().out
    assert 'web1: success' in out
    assert 'web2: success' in out


def test_create_submits_spec_into_pool(lab) -> None:
    session, inv = lab
    task = new_task()
    inv.vms.results['CreateVM_Task'] = task_returner(task)
    session.connection.property_collector.updates = [
        [(task, {'info': task_info('success')})],
    ]
    rc = vm.CreateCLI.main(
        argv=False,
        path='/dc/vms/fresh',
        pool='/dc/computers/cluster/resourcePool',
        datastore='/dc/datastores/ds1',
        disksize='10G',
        memory=256,
    )
    assert rc == 0
    (call,) = inv.vms.called('CreateVM_Task')
    assert call['pool'] is inv.pool
    assert call['host'] is None
    assert call['config'].name == 'fresh'
    assert call['config'].memoryMB == 256
    assert call['config'].files.vmPathName == '[ds1]'


def test_create_requires_pool(lab) -> None:
    with pytest.raises(UserInputError, match='resource pool'):
        vm.CreateCLI.main(argv=False, path='/dc/vms/fresh', datastore='/dc/datastores/ds1')


def test_modify_memory_needs_vm_off(lab) -> None:
    with pytest.raises(UserInputError, match='VM needs to be off'):
        vm.ModifyMemoryCLI.main(argv=False, vm='/dc/vms/web1', size=512)


def test_start_program_background_conflicts_with_timeout(lab) -> None:
    with pytest.raises(UserInputError, match='conflicts'):
        vm_guest.StartProgramCLI.main(
            argv=False,
            vm='/dc/vms/web1',
            username='root',
            program_path='/bin/true',
            background=True,
            timeout=10,
        )


def test_list_auth_empty(lab, capsys) -> None:
    assert vm_guest.ListAuthCLI.main(argv=False) == 0
    assert capsys.readouterr().out.strip() == 'No credentials available.'


def test_execute_line(lab, capsys) -> None:
    assert shell.execute_line('exit') is None
    assert shell.execute_line('   ') == 0
    assert shell.execute_line('shell') == 2
    assert shell.execute_line('ls /dc/nowhere') == 2
    assert 'ERROR:' in capsys.readouterr().err
    assert shell.execute_line('ls /dc/vms') == 0
    assert '0 web1' in capsys.readouterr().out


def test_wait_for_shutdown_timeout_is_an_error(lab, monkeypatch, capsys) -> None:
    def _never_off(connection, vms, **kwargs):
        raise WaitTimeoutError('Timed out after 1s waiting for 1 VM(s) to shut down')

    monkeypatch.setattr(vm, 'wait_for_shutdown', _never_off)
    with pytest.raises(WaitTimeoutError, match='At least one VM did not shut down!'):
        vm.WaitForShutdownCLI.main(argv=False, vms=['/dc/vms/web1'], timeout=1)
    assert shell.execute_line('vm wait_for_shutdown /dc/vms/web1 --timeout 1') == 2
    assert 'ERROR: At least one VM did not shut down!' in capsys.readouterr().err


def test_vmx_paths_join_folder_and_file() -> None:
    results = [
        SimpleNamespace(folderPath='[ds1] vm1/', file=[SimpleNamespace(path='vm1.vmx')]),
        SimpleNamespace(folderPath='[ds1] vm2', file=[SimpleNamespace(path='vm2.vmx')]),
        SimpleNamespace(folderPath='[ds1] empty/', file=None),
    ]
    assert vm._vmx_paths(results) == ['[ds1] vm1/vm1.vmx', '[ds1] vm2/vm2.vmx']
