"""Navigation, marks, help, and generic managed-entity commands."""

from __future__ import annotations

import scriptconfig as scfg

from ..display import info_lines, listing_lines, recent_events
from ..errors import UserInputError, WrongTypeError
from ..kinds import FOLDERS, MANAGED_ENTITIES, has_children
from ..tasks import progress, run_tasks
from ._common import (
    _BaseCommand,
    _STATE,
    _as_list,
    _finish,
    _print_lines,
    _str,
    current_session,
    log,
)


class HelpCLI(_BaseCommand):
    """List commands, or those relevant to an object, module or command."""

    topic = scfg.Value(
        '',
        position=1,
        help='Object path, module name, or module.command (positional).',
    )
    tree = scfg.Value(False, isflag=True, help='Print the full command tree instead.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        from .help import _render_command_tree, render_help
        from .main import VimshModalCLI, resolve_command_name

        if args.tree:
            print(_render_command_tree(VimshModalCLI))
            return 0
        session = None
        topic = _str(args.topic)
        if topic and resolve_command_name(topic) is None:
            session = current_session(args.config)
        _print_lines(render_help(topic, session))
        return 0


class DebugCLI(_BaseCommand):
    """Toggle debug logging to stderr."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        from .main import _setup_logging

        _STATE['debug'] = not _STATE['debug']
        _setup_logging(2 if _STATE['debug'] else args.verbose, 1)
        print(f'debug mode {"en" if _STATE["debug"] else "dis"}abled')
        return 0


class CdCLI(_BaseCommand):
    """Change the current directory."""

    path = scfg.Value('~', position=1, help='Directory to change to (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = session.lookup_single(_str(args.path) or '~')
        if not has_children(node.kind):
            raise WrongTypeError(f'{node.path_str} is a {node.kind.value}, not a directory')
        session.cd(node)
        return 0


class LsCLI(_BaseCommand):
    """List objects in a directory and number them as marks."""

    path = scfg.Value('.', position=1, help='Directory to list (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = session.lookup_single(_str(args.path) or '.')
        children = session.children(node)
        for idx, child in enumerate(children):
            session.marks.set(str(idx), [child])
        _print_lines(listing_lines(children))
        return 0


class InfoCLI(_BaseCommand):
    """Display information about an object."""

    path = scfg.Value('.', position=1, help='Object path (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        _print_lines(info_lines(session.lookup_single(_str(args.path) or '.')))
        return 0


class WhatCLI(_BaseCommand):
    """Basic information about the given objects."""

    paths = scfg.Value([], position=1, nargs='*', help='Object paths (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        for node in session.lookup(_as_list(args.paths) or ['.']):
            print(f'{node.path_str}: {node.kind.value}')
        return 0


class MarkCLI(_BaseCommand):
    """Save objects under a mark name, or show existing marks."""

    name = scfg.Value('', position=1, help='Mark name (positional).')
    paths = scfg.Value([], position=2, nargs='*', help='Objects to mark (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        name = _str(args.name)
        paths = _as_list(args.paths)
        if '/' in name:
            raise UserInputError(f'Invalid mark name {name!r}')
        if paths:
            session.marks.set(name, session.lookup(paths))
            return 0
        for token, nodes in session.marks.items():
            if name and token != name:
                continue
            print(f'{_mark_label(token)}: {", ".join(n.path_str for n in nodes) or "(empty)"}')
        return 0


def _mark_label(token: str) -> str:
    if token == '@' or token.isdigit():
        return token
    return '~' + token


class DestroyCLI(_BaseCommand):
    """Destroy managed entities."""

    paths = scfg.Value([], position=1, nargs='+', help='Entities to destroy (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        nodes = session.lookup(_as_list(args.paths), MANAGED_ENTITIES)
        report = run_tasks(session.connection, nodes, 'Destroy')
        session.refresh()
        return _finish(report)


class ReloadEntityCLI(_BaseCommand):
    """Synchronize management server state."""

    paths = scfg.Value([], position=1, nargs='+', help='Entities to reload (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        for node in session.lookup(_as_list(args.paths), MANAGED_ENTITIES):
            log.debug('Reloading {}', node.path_str)
            node.obj.Reload()
        return 0


class MvCLI(_BaseCommand):
    """Move entities into a folder; the last path is the destination."""

    paths = scfg.Value([], position=1, nargs='+', help='Entities then destination folder.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        paths = _as_list(args.paths)
        if len(paths) < 2:
            raise UserInputError('Destination entity missing')
        session = current_session(args.config)
        dst = session.lookup_single(paths[-1], FOLDERS)
        objs = session.lookup(paths[:-1], MANAGED_ENTITIES)
        task = dst.obj.MoveIntoFolder_Task(list=[n.obj for n in objs])
        report = progress(session.connection, [(dst.name, task)])
        session.refresh()
        return _finish(report)


class RenameCLI(_BaseCommand):
    """Rename an entity."""

    path = scfg.Value('', position=1, help='Entity to rename (positional).')
    name = scfg.Value('', position=2, help='New name (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        new_name = _str(args.name)
        if not new_name or '/' in new_name:
            raise UserInputError(f'Invalid new name {new_name!r}')
        session = current_session(args.config)
        node = session.lookup_single(_str(args.path), MANAGED_ENTITIES)
        report = progress(session.connection, [(node.name, node.obj.Rename_Task(newName=new_name))])
        session.refresh()
        return _finish(report)


class MkdirCLI(_BaseCommand):
    """Create a folder."""

    path = scfg.Value('', position=1, help='Folder to create (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        parent, name = session.lookup_parent(_str(args.path), FOLDERS)
        parent.obj.CreateFolder(name=name)
        session.refresh()
        return 0


class EventsCLI(_BaseCommand):
    """Show recent events."""

    path = scfg.Value('.', position=1, help='Entity whose events to show (positional).')
    lines = scfg.Value(10, type=int, short_alias=['n'], help='Output the last N events.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        node = session.lookup_single(_str(args.path) or '.', MANAGED_ENTITIES)
        _print_lines(recent_events(session.connection, node.obj, int(args.lines)))
        return 0


class BasicModalCLI(scfg.ModalCLI):
    """Navigation, marks, and generic entity commands."""

    help = HelpCLI
    debug = DebugCLI
    cd = CdCLI
    ls = LsCLI
    info = InfoCLI
    what = WhatCLI
    mark = MarkCLI
    destroy = DestroyCLI
    reload_entity = ReloadEntityCLI
    mv = MvCLI
    rename = RenameCLI
    mkdir = MkdirCLI
    events = EventsCLI
