"""Host evacuation planning and host commands."""

from __future__ import annotations

import random
from types import SimpleNamespace

import pytest

from vimsh.cli._common import set_session
from vimsh.cli.host import HostEvacuateCLI, HostReconnectCLI
from vimsh.host import plan_evacuation, usable_destinations, wait_until_up

from _fakes import FakeEntity, fake_session, new_task, task_info, task_returner


def _runtime(state='connected', maintenance=False):
    return SimpleNamespace(connectionState=state, inMaintenanceMode=maintenance)


@pytest.fixture
def lab():
    session, inv = fake_session()
    for host in (inv.esx1, inv.esx2):
        host.runtime = _runtime()
        host.datastore = [inv.ds1]
    for vm in (inv.web1, inv.web2, inv.db):
        vm.datastore = [inv.ds1]
    set_session(session)
    yield session, inv
    set_session(None)


def _compat(blocked=()):
    def query(vm, host, compatibility):
        checks = ['cpu'] if vm in blocked else ['software', 'cpu']
        return [SimpleNamespace(host=h, compatibility=checks) for h in host]

    return query


def test_usable_destinations_filters_state() -> None:
    src = FakeEntity('HostSystem', 'src', runtime=_runtime())
    ok = FakeEntity('HostSystem', 'ok', runtime=_runtime())
    down = FakeEntity('HostSystem', 'down', runtime=_runtime('disconnected'))
    maint = FakeEntity('HostSystem', 'maint', runtime=_runtime(maintenance=True))
    assert usable_destinations(src, [src, ok, down, maint, ok]) == [ok]


def test_plan_requires_shared_datastores(lab) -> None:
    session, inv = lab
    other = FakeEntity('Datastore', 'other')
    inv.db.datastore = [inv.ds1, other]
    session.connection.si.results['QueryVMotionCompatibility'] = _compat()
    plan = plan_evacuation(session.connection, inv.esx1, [inv.esx2])
    assert not plan.ok
    assert plan.blocked == [inv.db]
    assert plan.moves == []


def test_plan_picks_from_compatible_hosts(lab) -> None:
    session, inv = lab
    esx3 = FakeEntity('HostSystem', 'esx3', runtime=_runtime(), datastore=[inv.ds1])
    session.connection.si.results['QueryVMotionCompatibility'] = _compat()
    plan = plan_evacuation(
        session.connection, inv.esx1, [inv.esx2, esx3], rng=random.Random(0)
    )
    assert plan.ok
    assert [vm for vm, _ in plan.moves] == [inv.web1, inv.db]
    assert all(host in (inv.esx2, esx3) for _, host in plan.moves)


def test_evacuate_blocked_submits_nothing(lab, capsys) -> None:
    session, inv = lab
    session.connection.si.results['QueryVMotionCompatibility'] = _compat(blocked=(inv.db,))
    rc = HostEvacuateCLI.main(
        argv=False, src='/dc/computers/cluster/esx1', dst=['/dc/computers/cluster']
    )
    assert rc == 1
    out = capsys.readouterr().out
    assert 'no compatible vMotion destination' in out
    assert ' db' in out
    assert inv.web1.called('MigrateVM_Task') == []
    assert inv.db.called('MigrateVM_Task') == []


def test_evacuate_migrates_every_vm(lab, capsys) -> None:
    session, inv = lab
    session.connection.si.results['QueryVMotionCompatibility'] = _compat()
    t1, t2 = new_task(), new_task()
    inv.web1.results['MigrateVM_Task'] = task_returner(t1)
    inv.db.results['MigrateVM_Task'] = task_returner(t2)
    session.connection.property_collector.updates = [
        [(t1, {'info': task_info()}), (t2, {'info': task_info()})]
    ]
    rc = HostEvacuateCLI.main(
        argv=False, src='/dc/computers/cluster/esx1', dst=['/dc/computers/cluster']
    )
    assert rc == 0
    assert inv.web1.called('MigrateVM_Task')[0]['host'] is inv.esx2
    assert inv.db.called('MigrateVM_Task')[0]['host'] is inv.esx2
    out = capsys.readouterr().out
    assert 'web1: success' in out
    assert 'db: success' in out


def test_reconnect_passes_connect_spec(lab, capsys) -> None:
    session, inv = lab
    task = new_task()
    inv.esx2.results['ReconnectHost_Task'] = task_returner(task)
    session.connection.property_collector.updates = [[(task, {'info': task_info()})]]
    rc = HostReconnectCLI.main(
        argv=False, hosts=['/dc/computers/cluster/esx2'], username='root', password='pw'
    )
    assert rc == 0
    spec = inv.esx2.called('ReconnectHost_Task')[0]['cnxSpec']
    assert spec.userName == 'root'
    assert spec.password == 'pw'


def test_wait_until_up_after_settle() -> None:
    from pyVmomi import vim

    session, _ = fake_session()
    host = vim.HostSystem('host-9')
    session.connection.property_collector.updates = [
        [(host, {'name': 'esx9', 'runtime.connectionState': 'notResponding'})],
        [(host, {'runtime.connectionState': 'connected', 'runtime.powerState': 'poweredOn'})],
    ]
    sleeps = []
    out = []
    wait_until_up(
        session.connection, [host], settle=180, sleep=sleeps.append,
        stream=SimpleNamespace(write=out.append),
    )
    assert sleeps == [180]
    assert out == ['Host esx9 is back up\n']
    assert session.connection.property_collector.destroy_counts == [1]
