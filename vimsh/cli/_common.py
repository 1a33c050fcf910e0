"""Shared CLI base options, session access, and small argument helpers."""

from __future__ import annotations

import sys
from typing import Any, Iterable

import scriptconfig as scfg
from loguru import logger

from ..config import VimshConfig, load_config
from ..errors import UserInputError
from ..results import ProgressReport
from ..session import Session, open_session

log = logger

_STATE: dict[str, Any] = {'session': None, 'config': None, 'debug': False}


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None, help='Path to config TOML (default: per-user vimsh config).'
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )


def current_config(config_path: str | None = None) -> VimshConfig:
    if _STATE['config'] is None or config_path is not None:
        _STATE['config'] = load_config(config_path)
    return _STATE['config']


def current_session(config_path: str | None = None) -> Session:
    """The process-wide session, connecting on first use."""
    if _STATE['session'] is None:
        _STATE['session'] = open_session(current_config(config_path))
    return _STATE['session']


def set_session(session: Session | None) -> None:
    _STATE['session'] = session


def close_session() -> None:
    session = _STATE['session']
    _STATE['session'] = None
    if session is not None:
        session.close()


def _as_list(value: Any) -> list[str]:
    if value is None or value == '':
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _str(value: Any) -> str:
    return '' if value is None else str(value)


def _int_or_none(value: Any) -> int | None:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UserInputError(f'Expected an integer, got {value!r}') from None


def _require(value: Any, message: str) -> Any:
    if value is None or value == '' or value == []:
        raise UserInputError(message)
    return value


def _conflicts(args, first: str, second: str, *, defaults: dict[str, Any] | None = None) -> None:
    """Reject two options given together; ``defaults`` marks unset values."""
    defaults = defaults or {}

    def _given(name):
        value = args[name]
        return value not in (None, False, '') and value != defaults.get(name, None)

    if _given(first) and _given(second):
        raise UserInputError(f'--{first} conflicts with --{second}')


def _finish(report: ProgressReport) -> int:
    if not report.ok:
        log.debug('Task failures: {}', report.as_dict()['failed'])
    return report.exit_code


def _choose_interactive(options: list[str], *, title: str) -> str | None:
    """Numbered menu on stdin; returns None when the user enters nothing."""
    if not sys.stdin.isatty():
        raise UserInputError(f'{title} requires an interactive terminal.')
    print(title)
    for idx, item in enumerate(options, start=1):
        print(f'  {idx}. {item}')
    while True:
        raw = input('? ').strip()
        if not raw:
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1]
        print(f'Please enter a number between 1 and {len(options)}.')


def _print_lines(lines: Iterable[str], file=None) -> None:
    for line in lines:
        print(line, file=file or sys.stdout)


__all__ = [name for name in globals() if not name.startswith('__')]
