"""Shared helpers for subprocess execution, size parsing, and paths."""

from __future__ import annotations

import os
import re
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from loguru import logger

from .errors import UserInputError

log = logger

_SIZE_RE = re.compile(r'^\s*([0-9][0-9,]*)\s*([mgt])?\s*$', re.IGNORECASE)
_SIZE_FACTORS = {None: 1, 'm': 1024, 'g': 1024**2, 't': 1024**3}


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str


class CmdError(RuntimeError):
    def __init__(self, cmd: Sequence[str] | str, result: CmdResult):
        self.cmd = cmd
        self.result = result
        super().__init__(
            f'Command failed (code={result.code}): {cmd}\n{result.stderr}'.strip()
        )


def shell_join(cmd: Sequence[str]) -> str:
    return ' '.join(shlex.quote(c) for c in cmd)


def run_cmd(
    cmd: Sequence[str],
    *,
    check: bool = True,
    capture: bool = True,
    text: bool = True,
    env: Optional[dict[str, str]] = None,
) -> CmdResult:
    log.opt(depth=1).debug('RUN: {}', shell_join(cmd))
    p = subprocess.run(cmd, capture_output=capture, text=text, env=env)
    res = CmdResult(p.returncode, p.stdout or '', p.stderr or '')
    if check and p.returncode != 0:
        log.opt(depth=1).error(
            'Command failed code={} cmd={} stderr={}',
            p.returncode,
            shell_join(cmd),
            res.stderr.strip(),
        )
        raise CmdError(cmd, res)
    return res


def expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))


def parse_size(text: str) -> int:
    """
    Convert a disk or memory size string into kilobytes.

    A bare integer is taken as kilobytes; an ``M``, ``G`` or ``T`` suffix
    (any case) scales by the matching power of 1024. Commas are allowed as
    digit separators.

    Example:
        >>> parse_size('10g')
        10485760
        >>> parse_size('4,000')
        4000
    """
    m = _SIZE_RE.match(str(text or ''))
    if m is None:
        raise UserInputError(f'Problem with size {text!r}: expected N[M|G|T]')
    amount = int(m.group(1).replace(',', ''))
    unit = m.group(2).lower() if m.group(2) else None
    return amount * _SIZE_FACTORS[unit]


def parse_octal(text: str | None) -> int | None:
    if text is None or text == '':
        return None
    try:
        return int(str(text), 8)
    except ValueError:
        raise UserInputError(f'Invalid octal permissions: {text!r}') from None


def parse_key_values(pairs: Sequence[str]) -> dict[str, str]:
    """Split ``key=value`` strings; a missing ``=`` maps the key to ''."""
    out: dict[str, str] = {}
    for item in pairs:
        key, _, value = str(item).partition('=')
        if not key:
            raise UserInputError(f'Invalid key=value pair: {item!r}')
        out[key] = value
    return out
