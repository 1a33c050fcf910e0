"""Top-level modal CLI wiring, argv normalization, and logging setup."""

from __future__ import annotations

import os
import sys

import scriptconfig as scfg
from loguru import logger
from pyVmomi import vmodl

from ..config import load_config
from ..errors import fault_message
from ..kinds import HOSTS, VMS
from ._common import close_session, log
from .basic import BasicModalCLI
from .help import _iter_modal_members
from .host import HostModalCLI
from .shell import ShellCLI
from .vm import VMModalCLI
from .vm_guest import VMGuestModalCLI

MODULES = {
    'basic': BasicModalCLI,
    'host': HostModalCLI,
    'vm': VMModalCLI,
    'vm_guest': VMGuestModalCLI,
}

# Objects each module's commands operate on; None means any.
MODULE_KINDS = {
    'basic': None,
    'host': HOSTS,
    'vm': VMS,
    'vm_guest': VMS,
}

ALIASES = {
    'cd': ('basic', 'cd'),
    'ls': ('basic', 'ls'),
    'l': ('basic', 'ls'),
    'i': ('basic', 'info'),
    'info': ('basic', 'info'),
    'what': ('basic', 'what'),
    'w': ('basic', 'what'),
    'mark': ('basic', 'mark'),
    'mv': ('basic', 'mv'),
    'rename': ('basic', 'rename'),
    'mkdir': ('basic', 'mkdir'),
    'destroy': ('basic', 'destroy'),
    'help': ('basic', 'help'),
    'events': ('basic', 'events'),
    'debug': ('basic', 'debug'),
    'on': ('vm', 'on'),
    'off': ('vm', 'off'),
    'reset': ('vm', 'reset'),
    'r': ('vm', 'reset'),
    'suspend': ('vm', 'suspend'),
    's': ('vm', 'suspend'),
    'kill': ('vm', 'kill'),
    'k': ('vm', 'kill'),
    'ssh': ('vm', 'ssh'),
    'ping': ('vm', 'ping'),
}


class VimshModalCLI(scfg.ModalCLI):
    """Interactive shell for navigating and managing a vSphere inventory."""

    basic = BasicModalCLI
    host = HostModalCLI
    vm = VMModalCLI
    vm_guest = VMGuestModalCLI
    shell = ShellCLI


def module_commands(module: str) -> list[str]:
    return [name for name, _ in _iter_modal_members(MODULES[module])]


def resolve_command_name(name: str) -> tuple[str, str | None] | None:
    """
    Map an alias, a module name, or ``module.command`` to its module and
    command. Returns None for anything else.
    """
    if name in ALIASES:
        return ALIASES[name]
    if name in MODULES:
        return name, None
    module, dot, command = name.partition('.')
    if dot and module in MODULES and command in module_commands(module):
        return module, command
    return None


def main(argv: list[str] | None = None) -> None:
    verbosity = 1
    config_value = None
    if argv is None:
        argv = sys.argv[1:]
    argv = _normalize_argv(argv)
    if '--config' in argv:
        try:
            config_value = argv[argv.index('--config') + 1]
        except IndexError:
            pass
    try:
        verbosity = load_config(config_value).verbosity
    except Exception:
        verbosity = 1

    explicit_verbose = _count_verbose(argv)
    _setup_logging(explicit_verbose, verbosity)

    try:
        rc = VimshModalCLI.main(argv=argv, _noexit=True)
    except Exception as ex:
        print(f'ERROR: {_error_text(ex)}', file=sys.stderr)
        log.debug('Unhandled vimsh error: {!r}', ex)
        sys.exit(2)
    finally:
        close_session()

    if any(flag in argv for flag in ('-h', '--help')):
        sys.exit(0)
    if isinstance(rc, int):
        sys.exit(rc)
    sys.exit(0)


def _error_text(ex: BaseException) -> str:
    if isinstance(ex, vmodl.MethodFault):
        return fault_message(ex)
    return str(ex) or type(ex).__name__


def _setup_logging(args_verbose: int, cfg_verbosity: int) -> None:
    logger.remove()
    effective_verbosity = args_verbose if args_verbose > 0 else cfg_verbosity
    level = 'WARNING'
    if effective_verbosity == 1:
        level = 'INFO'
    elif effective_verbosity >= 2:
        level = 'DEBUG'
    colorize = sys.stderr.isatty() and os.getenv('NO_COLOR') is None
    logger.add(
        sys.stderr,
        level=level,
        colorize=colorize,
        format='<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>',
    )
    log.debug(
        'Logging configured at {} (effective_verbosity={}, colorize={})',
        level,
        effective_verbosity,
        colorize,
    )


def _normalize_argv(argv: list[str]) -> list[str]:
    """Expand aliases and ``module.command`` to scriptconfig command names."""
    if not argv:
        return ['shell']
    head, rest = argv[0], list(argv[1:])
    if head.startswith('-'):
        return list(argv)
    resolved = resolve_command_name(head)
    if resolved is None:
        return list(argv)
    module, command = resolved
    if command is None:
        return list(argv)
    return [module, command, *rest]


def _count_verbose(argv: list[str]) -> int:
    count = 0
    for item in argv:
        if item == '--verbose':
            count += 1
        elif item.startswith('-') and not item.startswith('--'):
            short = item[1:]
            if short and set(short) <= {'v'}:
                count += len(short)
    return count
