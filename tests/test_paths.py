"""Path parsing and resolution against a fake inventory."""

from __future__ import annotations

import pytest

from vimsh.errors import AmbiguousError, NotFoundError, UserInputError, WrongTypeError
from vimsh.kinds import FOLDERS, HOSTS, VMS, EntityKind
from vimsh.paths import ObjectPath

from _fakes import FakeEntity, fake_session


def test_object_path_parse() -> None:
    assert ObjectPath.parse('/dc/vms') == ObjectPath('root', None, ('dc', 'vms'))
    assert ObjectPath.parse('vms/web1') == ObjectPath('cwd', None, ('vms', 'web1'))
    assert ObjectPath.parse('~') == ObjectPath('mark', '', ())
    assert ObjectPath.parse('~prod/x') == ObjectPath('mark', 'prod', ('x',))
    assert ObjectPath.parse('@') == ObjectPath('mark', '@', ())
    assert ObjectPath.parse('2') == ObjectPath('mark', '2', ())


def test_resolve_absolute_and_relative() -> None:
    session, inv = fake_session()
    node = session.lookup_single('/dc/vms/web1', VMS)
    assert node.obj is inv.web1
    assert node.path_str == '/dc/vms/web1'
    assert node.kind is EntityKind.VIRTUAL_MACHINE

    session.cd(session.lookup_single('/dc/vms'))
    assert session.lookup_single('db').obj is inv.db
    assert session.lookup_single('..').obj is inv.dc
    assert session.lookup_single('.').obj is inv.vms


def test_resolve_compute_and_pool_children() -> None:
    session, inv = fake_session()
    host = session.lookup_single('/dc/computers/cluster/esx2', HOSTS)
    assert host.obj is inv.esx2
    assert session.lookup_single('/dc/computers/cluster/esx2/web2').obj is inv.web2
    pool = session.lookup_single('/dc/computers/cluster/resourcePool')
    assert pool.kind is EntityKind.RESOURCE_POOL


def test_glob_expands_sorted() -> None:
    session, inv = fake_session()
    nodes = session.lookup('/dc/vms/web*')
    assert [n.name for n in nodes] == ['web1', 'web2']


def test_exact_name_with_glob_characters() -> None:
    session, inv = fake_session()
    old = FakeEntity('VirtualMachine', 'web [old]')
    inv.vms.childEntity.append(old)
    assert session.lookup_single('/dc/vms/web [old]').obj is old
    # without an exact child the segment is still a pattern
    assert [n.name for n in session.lookup('/dc/vms/web[12]')] == ['web1', 'web2']


def test_lookup_many_dedupes() -> None:
    session, inv = fake_session()
    nodes = session.lookup(['/dc/vms/web1', '/dc/vms/web*'])
    assert [n.name for n in nodes] == ['web1', 'web2']


def test_lookup_errors() -> None:
    session, _ = fake_session()
    with pytest.raises(NotFoundError):
        session.lookup_single('/dc/vms/nope')
    with pytest.raises(NotFoundError):
        session.lookup_single('/dc/vms/zz*')
    with pytest.raises(AmbiguousError):
        session.lookup_single('/dc/vms/web*')
    with pytest.raises(WrongTypeError):
        session.lookup_single('/dc/vms', VMS)
    with pytest.raises(NotFoundError):
        session.lookup_single('~nomark')


def test_lookup_parent() -> None:
    session, inv = fake_session()
    parent, name = session.lookup_parent('/dc/vms/newvm', FOLDERS)
    assert parent.obj is inv.vms
    assert name == 'newvm'
    with pytest.raises(UserInputError):
        session.lookup_parent('/dc/vms/bad*', FOLDERS)


def test_datastore_file_forms() -> None:
    session, inv = fake_session()
    literal = session.lookup_datastore_file('[ds1] isos/boot.iso')
    assert literal.datastore_path == '[ds1] isos/boot.iso'
    walked = session.lookup_datastore_file('/dc/datastores/ds1/isos/boot.iso')
    assert walked.datastore_name == 'ds1'
    assert walked.path == 'isos/boot.iso'
    assert walked.datastore.obj is inv.ds1
    with pytest.raises(WrongTypeError):
        session.lookup_datastore_file('/dc/vms')
