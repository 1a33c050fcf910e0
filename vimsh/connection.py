"""Connection to the management server and access to its service content."""

from __future__ import annotations

import getpass
from functools import cached_property
from typing import Any

from loguru import logger
from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vmodl

from .config import ConnectionConfig
from .errors import RemoteFaultError, UserInputError, fault_message

log = logger


class Connection:
    """A logged-in service instance plus the settings used to reach it."""

    def __init__(self, si: Any, *, host: str, port: int = 443, insecure: bool = True):
        self.si = si
        self.host = host
        self.port = port
        self.insecure = insecure

    def __repr__(self) -> str:
        return f'Connection({self.host!r}, port={self.port})'

    @cached_property
    def content(self) -> Any:
        return self.si.RetrieveContent()

    @property
    def root_folder(self) -> Any:
        return self.content.rootFolder

    @property
    def property_collector(self) -> Any:
        return self.content.propertyCollector

    @property
    def guest_operations(self) -> Any:
        return getattr(self.content, 'guestOperationsManager', None)

    @property
    def event_manager(self) -> Any:
        return self.content.eventManager

    @property
    def verify_ssl(self) -> bool:
        return not self.insecure

    def close(self) -> None:
        log.debug('Disconnecting from {}', self.host)
        Disconnect(self.si)


def connect(cfg: ConnectionConfig, *, prompt=getpass.getpass) -> Connection:
    """Log in to the server named in ``cfg``; prompt for a missing password."""
    host = (cfg.host or '').strip()
    if not host:
        raise UserInputError(
            'No server configured. Set connection.host in the config file '
            'or the VIMSH_HOST environment variable.'
        )
    password = cfg.password
    if not password:
        password = prompt(f'password for {cfg.user}@{host}: ')
    log.info('Connecting to {}@{}:{}', cfg.user, host, cfg.port)
    try:
        si = SmartConnect(
            host=host,
            user=cfg.user,
            pwd=password,
            port=int(cfg.port),
            disableSslCertValidation=bool(cfg.insecure),
        )
    except vmodl.MethodFault as ex:
        raise RemoteFaultError(f'{host}: Could not connect: {fault_message(ex)}') from ex
    except OSError as ex:
        raise RemoteFaultError(f'{host}: Could not connect: {ex}') from ex
    return Connection(si, host=host, port=int(cfg.port), insecure=bool(cfg.insecure))
