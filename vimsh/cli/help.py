"""Help text and command-tree rendering."""

from __future__ import annotations

from typing import Any

import scriptconfig as scfg

_HIDDEN_OPTIONS = ('config', 'verbose')


def _iter_modal_members(
    modal_cls: type[scfg.ModalCLI],
) -> list[tuple[str, type]]:
    members: list[tuple[str, type]] = []
    for name, val in modal_cls.__dict__.items():
        if name.startswith('_'):
            continue
        if not isinstance(val, type):
            continue
        if issubclass(val, scfg.ModalCLI) or issubclass(val, scfg.DataConfig):
            members.append((name, val))
    return members


def _short_help_line(cls: type) -> str:
    doc = (getattr(cls, '__doc__', '') or '').strip()
    if not doc:
        return ''
    return doc.splitlines()[0].strip()


def _render_command_tree(
    modal_cls: type[scfg.ModalCLI], prefix: str = 'vimsh'
) -> str:
    root_help = _short_help_line(modal_cls)
    root_line = f'{prefix} - {root_help}' if root_help else prefix
    lines: list[str] = [root_line]

    def walk(cls: type[scfg.ModalCLI], parent: str, indent: str) -> None:
        members = _iter_modal_members(cls)
        for idx, (name, subcls) in enumerate(members):
            last = idx == len(members) - 1
            branch = '└── ' if last else '├── '
            path = f'{parent} {name}'
            help_line = _short_help_line(subcls)
            if help_line:
                lines.append(f'{indent}{branch}{path} - {help_line}')
            else:
                lines.append(f'{indent}{branch}{path}')
            if issubclass(subcls, scfg.ModalCLI):
                walk(subcls, path, indent + ('    ' if last else '│   '))

    walk(modal_cls, prefix, '')
    return '\n'.join(lines)


def _aliases_by_command() -> dict[tuple[str, str], list[str]]:
    from .main import ALIASES

    out: dict[tuple[str, str], list[str]] = {}
    for alias, target in ALIASES.items():
        out.setdefault(target, []).append(alias)
    return out


def _command_line(module: str, name: str, cls: type, aliases) -> str:
    names = aliases.get((module, name), [])
    alias_text = f' ({", ".join(names)})' if names else ''
    return f'{module}.{name}{alias_text}: {_short_help_line(cls)}'


def _module_lines(modules: list[str]) -> list[str]:
    from .main import MODULES

    aliases = _aliases_by_command()
    lines = []
    for module in modules:
        for name, cls in _iter_modal_members(MODULES[module]):
            lines.append(_command_line(module, name, cls, aliases))
    return lines


def _option_lines(cls: type) -> list[str]:
    lines = []
    defaults: dict[str, Any] = getattr(cls, '__default__', None) or {}
    for name, value in defaults.items():
        if name in _HIDDEN_OPTIONS:
            continue
        default = getattr(value, 'value', value)
        parsekw = getattr(value, 'parsekw', None) or {}
        help_text = parsekw.get('help') or ''
        shown = '' if default in (None, '', [], False) else f' (default: {default})'
        lines.append(f'  --{name}: {help_text}{shown}')
    return lines


def _command_help(module: str, command: str) -> list[str]:
    from .main import MODULES

    cls = dict(_iter_modal_members(MODULES[module]))[command]
    doc = (cls.__doc__ or '').strip()
    lines = [f'{module}.{command}']
    if doc:
        lines.extend('  ' + line.strip() if line.strip() else '' for line in doc.splitlines())
    options = _option_lines(cls)
    if options:
        lines.append('Options:')
        lines.extend(options)
    return lines


def render_help(topic: str, session=None) -> list[str]:
    """
    Help for a module, an alias, ``module.command``, or an object path.

    An object path lists the commands of every module that operates on
    that kind of object. With no topic every command is listed.
    """
    from .main import MODULE_KINDS, MODULES, resolve_command_name

    if not topic:
        return ['All commands:', *_module_lines(list(MODULES))]
    resolved = resolve_command_name(topic)
    if resolved is not None:
        module, command = resolved
        if command is None:
            return [f'Commands in {module}:', *_module_lines([module])]
        return _command_help(module, command)
    node = session.lookup_single(topic)
    modules = [
        module for module, kinds in MODULE_KINDS.items()
        if kinds is None or node.kind in kinds
    ]
    return [f'Relevant commands for {node.kind.value}:', *_module_lines(modules)]
