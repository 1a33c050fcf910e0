"""In-memory cache of guest-operation credentials keyed by VM and username."""

from __future__ import annotations

from typing import Any

from loguru import logger
from pyVmomi import vim, vmodl

from .errors import (
    AuthenticationError,
    NoCredentialsError,
    RemoteFaultError,
    fault_message,
)
from .inventory import Node

log = logger

NO_CREDENTIALS = (
    'No credentials found. You must authenticate before executing this command.'
)


def vm_key(obj: Any) -> str:
    moid = getattr(obj, '_moId', None)
    return str(moid) if moid else f'obj-{id(obj)}'


def guest_manager(connection, part: str) -> Any:
    """Return ``authManager``, ``fileManager`` or ``processManager``."""
    gom = connection.guest_operations
    manager = getattr(gom, part, None) if gom is not None else None
    if manager is None:
        raise RemoteFaultError('This command requires vSphere 5 or greater')
    return manager


def make_auth(username: str, password: str, *, interactive_session: bool = False):
    return vim.vm.guest.NamePasswordAuthentication(
        username=username,
        password=password,
        interactiveSession=bool(interactive_session),
    )


class GuestCredentialCache:
    """
    Credentials for in-guest operations.

    Entries live under the composite key ``(vm key, username)``. A per-VM
    index of usernames is kept alongside so listing and pruning do not
    have to scan every entry.
    """

    def __init__(self) -> None:
        self._auths: dict[tuple[str, str], Any] = {}
        self._users: dict[str, list[str]] = {}
        self._nodes: dict[str, Node] = {}

    def authenticate(
        self,
        connection,
        vm: Node,
        username: str,
        password: str,
        *,
        interactive_session: bool = False,
    ) -> Any:
        auth = make_auth(username, password, interactive_session=interactive_session)
        try:
            validate(connection, vm.obj, auth)
        except vmodl.MethodFault as ex:
            raise AuthenticationError(
                f'Could not authenticate: {fault_message(ex)}'
            ) from ex
        self._store(vm, username, auth)
        log.debug('Stored guest credential for {}@{}', username, vm.path_str)
        return auth

    def check(self, connection, vm: Node, username: str) -> None:
        validate(connection, vm.obj, self.get(vm, username))

    def get(self, vm: Node, username: str) -> Any:
        auth = self._auths.get((vm_key(vm.obj), username))
        if auth is None:
            raise NoCredentialsError(NO_CREDENTIALS)
        return auth

    def clear(self, vm: Node, username: str) -> bool:
        key = vm_key(vm.obj)
        removed = self._auths.pop((key, username), None) is not None
        users = self._users.get(key)
        if users is not None and username in users:
            users.remove(username)
        if not users:
            self._users.pop(key, None)
            self._nodes.pop(key, None)
        return removed

    def listing(self, vm: Node | None = None) -> list[tuple[Node, list[str]]]:
        keys = list(self._users) if vm is None else [vm_key(vm.obj)]
        out = []
        for key in keys:
            users = self._users.get(key)
            if users:
                out.append((self._nodes[key], list(users)))
        return out

    def _store(self, vm: Node, username: str, auth: Any) -> None:
        key = vm_key(vm.obj)
        self._auths[(key, username)] = auth
        if key not in self._users:
            self._users[key] = []
        if username not in self._users[key]:
            self._users[key].append(username)
        self._nodes[key] = vm


def validate(connection, vm_obj: Any, auth: Any) -> None:
    guest_manager(connection, 'authManager').ValidateCredentialsInGuest(
        vm=vm_obj, auth=auth
    )
