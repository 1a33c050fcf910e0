"""Connection, shell, and guest defaults persisted as TOML."""

from __future__ import annotations

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path

import ubelt as ub

from .util import expand

DEFAULT_EXCLUDE = r'^\.svn$|^\.git$'


@dataclass
class ConnectionConfig:
    host: str = ''
    user: str = 'root'
    password: str = ''
    port: int = 443
    insecure: bool = True


@dataclass
class ShellConfig:
    history_file: str = ''
    prompt: str = 'vimsh'


@dataclass
class GuestConfig:
    username: str = 'root'
    exclude: str = DEFAULT_EXCLUDE
    program_delay: float = 5.0


@dataclass
class VimshConfig:
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)
    guest: GuestConfig = field(default_factory=GuestConfig)
    verbosity: int = 1

    def expanded_paths(self) -> 'VimshConfig':
        if self.shell.history_file:
            self.shell.history_file = expand(self.shell.history_file)
        return self

    def with_env_overrides(self, environ=None) -> 'VimshConfig':
        env = os.environ if environ is None else environ
        conn = self.connection
        conn.host = env.get('VIMSH_HOST', conn.host)
        conn.user = env.get('VIMSH_USER', conn.user)
        conn.password = env.get('VIMSH_PASSWORD', conn.password)
        if env.get('VIMSH_PORT'):
            conn.port = int(env['VIMSH_PORT'])
        if env.get('VIMSH_INSECURE'):
            conn.insecure = env['VIMSH_INSECURE'].strip().lower() in {
                '1',
                'true',
                'yes',
                'on',
            }
        return self


_SECTIONS = ('connection', 'shell', 'guest')


def config_dir() -> Path:
    return Path(ub.Path.appdir('vimsh', type='config').ensuredir())


def config_path() -> Path:
    return config_dir() / 'config.toml'


def default_history_path() -> Path:
    return Path(ub.Path.appdir('vimsh', type='cache').ensuredir()) / 'history'


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def dump_toml(cfg: VimshConfig) -> str:
    d = asdict(cfg)
    lines: list[str] = []
    # top-level keys must precede the first table
    if cfg.verbosity != 1:
        lines.append(f'verbosity = {cfg.verbosity}')
        lines.append('')
    for section in _SECTIONS:
        lines.append(f'[{section}]')
        for k, v in d[section].items():
            if isinstance(v, bool):
                lines.append(f'{k} = {"true" if v else "false"}')
            elif isinstance(v, (int, float)):
                lines.append(f'{k} = {v}')
            else:
                lines.append(f'{k} = "{_toml_escape(str(v))}"')
        lines.append('')
    return '\n'.join(lines).rstrip() + '\n'


def load(path: Path) -> VimshConfig:
    raw = tomllib.loads(path.read_text(encoding='utf-8'))
    cfg = VimshConfig()
    for section in _SECTIONS:
        body = raw.get(section, None)
        if isinstance(body, dict):
            obj = getattr(cfg, section)
            for k, v in body.items():
                if hasattr(obj, k):
                    setattr(obj, k, v)
    if 'verbosity' in raw:
        cfg.verbosity = int(raw['verbosity'])
    return cfg


def save(path: Path, cfg: VimshConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_toml(cfg), encoding='utf-8')


def load_config(path: str | Path | None = None) -> VimshConfig:
    """Load the config file if present, then apply environment overrides."""
    fpath = Path(path) if path else config_path()
    cfg = load(fpath) if fpath.exists() else VimshConfig()
    return cfg.expanded_paths().with_env_overrides()
