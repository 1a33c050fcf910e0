"""Guest credential cache."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pyVmomi import vim

from vimsh.errors import AuthenticationError, NoCredentialsError, RemoteFaultError
from vimsh.credentials import GuestCredentialCache, guest_manager

from _fakes import FakeEntity, fake_session


def _with_guest_ops(session):
    auth_manager = FakeEntity('GuestAuthManager', 'auth')
    session.connection.guest_operations = SimpleNamespace(
        authManager=auth_manager, fileManager=None, processManager=None
    )
    return auth_manager


def test_authenticate_stores_only_on_success() -> None:
    session, inv = fake_session()
    auth_manager = _with_guest_ops(session)
    web1 = session.lookup_single('/dc/vms/web1')
    cache = GuestCredentialCache()

    auth = cache.authenticate(session.connection, web1, 'root', 'secret')
    assert cache.get(web1, 'root') is auth
    assert auth.username == 'root'
    assert auth_manager.called('ValidateCredentialsInGuest')[0]['vm'] is inv.web1

    auth_manager.results['ValidateCredentialsInGuest'] = vim.fault.InvalidGuestLogin(
        msg='Failed to authenticate with the guest operating system'
    )
    with pytest.raises(AuthenticationError, match='Could not authenticate'):
        cache.authenticate(session.connection, web1, 'admin', 'wrong')
    with pytest.raises(NoCredentialsError):
        cache.get(web1, 'admin')
    assert cache.listing(web1)[0][1] == ['root']


def test_clear_then_get_raises_and_prunes() -> None:
    session, _ = fake_session()
    _with_guest_ops(session)
    web1 = session.lookup_single('/dc/vms/web1')
    web2 = session.lookup_single('/dc/vms/web2')
    cache = GuestCredentialCache()
    cache.authenticate(session.connection, web1, 'root', 'a')
    cache.authenticate(session.connection, web1, 'ops', 'b')
    cache.authenticate(session.connection, web2, 'root', 'c')

    assert [(n.name, users) for n, users in cache.listing()] == [
        ('web1', ['root', 'ops']),
        ('web2', ['root']),
    ]
    assert cache.clear(web1, 'root')
    with pytest.raises(NoCredentialsError, match='You must authenticate'):
        cache.get(web1, 'root')
    assert cache.get(web1, 'ops') is not None
    assert cache.clear(web1, 'ops')
    assert not cache.clear(web1, 'ops')
    assert [n.name for n, _ in cache.listing()] == ['web2']
    assert cache.listing(web1) == []


def test_check_revalidates_cached_credential() -> None:
    session, _ = fake_session()
    auth_manager = _with_guest_ops(session)
    web1 = session.lookup_single('/dc/vms/web1')
    cache = GuestCredentialCache()
    with pytest.raises(NoCredentialsError):
        cache.check(session.connection, web1, 'root')
    cache.authenticate(session.connection, web1, 'root', 'a')
    cache.check(session.connection, web1, 'root')
    assert len(auth_manager.called('ValidateCredentialsInGuest')) == 2


def test_guest_manager_requires_guest_operations() -> None:
    session, _ = fake_session()
    with pytest.raises(RemoteFaultError, match='vSphere 5'):
        guest_manager(session.connection, 'fileManager')
