"""Resolution of slash-delimited inventory paths into nodes."""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from loguru import logger

from .errors import AmbiguousError, NotFoundError, UserInputError, WrongTypeError
from .inventory import Node
from .kinds import EntityKind, describe_kinds

if TYPE_CHECKING:
    from .session import Session

log = logger

GLOB_CHARS = frozenset('*?[')
HOME_MARK = ''
ROOT_MARK = '@'

_LITERAL_DS_PATH = re.compile(r'^\[([^\]]+)\]\s*(.*)$')


@dataclass(frozen=True)
class ObjectPath:
    """
    Parsed form of a textual path.

    ``anchor`` is one of ``root``, ``cwd`` or ``mark``; ``mark`` holds the
    mark token for the last case.

    Example:
        >>> ObjectPath.parse('/dc/vms/web*')
        ObjectPath(anchor='root', mark=None, segments=('dc', 'vms', 'web*'))
        >>> ObjectPath.parse('~/vms').mark
        ''
        >>> ObjectPath.parse('3').anchor
        'mark'
    """

    anchor: str
    mark: str | None = None
    segments: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, text: str) -> 'ObjectPath':
        text = str(text if text is not None else '').strip()
        if text.startswith('/'):
            return cls('root', None, _split(text))
        parts = text.split('/')
        head, rest = parts[0], '/'.join(parts[1:])
        if head == '~':
            return cls('mark', HOME_MARK, _split(rest))
        if head.startswith('~'):
            return cls('mark', head[1:], _split(rest))
        if head == ROOT_MARK:
            return cls('mark', ROOT_MARK, _split(rest))
        if head.isdigit():
            return cls('mark', head, _split(rest))
        return cls('cwd', None, _split(text))


def _split(text: str) -> tuple[str, ...]:
    return tuple(seg for seg in text.split('/') if seg)


@dataclass(frozen=True)
class DatastoreFile:
    datastore_name: str
    path: str
    datastore: Node | None = None

    @property
    def datastore_path(self) -> str:
        return f'[{self.datastore_name}] {self.path}'.rstrip()


class PathResolver:
    """Turns path arguments into inventory nodes for one session."""

    def __init__(self, session: 'Session'):
        self.session = session

    def resolve(
        self, text: str, kinds: Iterable[EntityKind] | None = None
    ) -> list[Node]:
        path = ObjectPath.parse(text)
        nodes = self._anchors(path, text)
        for seg in path.segments:
            nodes = [found for node in nodes for found in self._step(node, seg, text)]
        if kinds is not None:
            _check_kinds(nodes, frozenset(kinds))
        log.debug('Resolved {!r} to {}', text, nodes)
        return nodes

    def resolve_single(
        self, text: str, kinds: Iterable[EntityKind] | None = None
    ) -> Node:
        nodes = self.resolve(text, kinds)
        if len(nodes) > 1:
            names = ', '.join(n.path_str for n in nodes[:5])
            raise AmbiguousError(f'{text}: matches {len(nodes)} objects ({names})')
        return nodes[0]

    def resolve_many(
        self, texts: Iterable[str], kinds: Iterable[EntityKind] | None = None
    ) -> list[Node]:
        out: list[Node] = []
        for text in texts:
            for node in self.resolve(text, kinds):
                if any(prev.same_object(node) for prev in out):
                    continue
                out.append(node)
        return out

    def resolve_parent(
        self, text: str, kinds: Iterable[EntityKind] | None = None
    ) -> tuple[Node, str]:
        """Resolve all but the last segment; return the parent and basename."""
        text = str(text or '').rstrip('/')
        head, sep, name = text.rpartition('/')
        if not name or name in ('.', '..') or GLOB_CHARS & set(name):
            raise UserInputError(f'Invalid name in path {text!r}')
        parent_text = head if head else ('/' if sep else '.')
        parent = self.resolve_single(parent_text, kinds)
        return parent, name

    def resolve_datastore_file(self, text: str) -> DatastoreFile:
        """Resolve ``[ds] path`` literals or ``.../datastore/rel/path``."""
        m = _LITERAL_DS_PATH.match(str(text or '').strip())
        if m is not None:
            return DatastoreFile(m.group(1), m.group(2))
        path = ObjectPath.parse(text)
        nodes = self._anchors(path, text)
        if len(nodes) != 1:
            raise AmbiguousError(f'{text}: expected a single datastore file')
        node = nodes[0]
        for idx, seg in enumerate(path.segments):
            if node.kind is EntityKind.DATASTORE:
                return DatastoreFile(
                    node.name, '/'.join(path.segments[idx:]), datastore=node
                )
            found = self._step(node, seg, text)
            if len(found) != 1:
                raise AmbiguousError(f'{text}: expected a single datastore file')
            node = found[0]
        raise WrongTypeError(f'{text}: not a file inside a datastore')

    def _anchors(self, path: ObjectPath, text: str) -> list[Node]:
        session = self.session
        if path.anchor == 'root':
            return [session.root]
        if path.anchor == 'cwd':
            return [session.cwd]
        nodes = session.marks.get(path.mark)
        if nodes is None:
            if path.mark in (HOME_MARK, ROOT_MARK):
                return [session.root]
            raise NotFoundError(f'{text}: no such mark {path.mark!r}')
        if not nodes:
            raise NotFoundError(f'{text}: mark {path.mark!r} is empty')
        return list(nodes)

    def _step(self, node: Node, seg: str, text: str) -> list[Node]:
        if seg == '.':
            return [node]
        if seg == '..':
            return [node.parent or node]
        cmap = self.session.child_map(node)
        if seg in cmap:
            return [node.child(seg, cmap[seg])]
        if GLOB_CHARS & set(seg):
            names = sorted(n for n in cmap if fnmatch.fnmatchcase(n, seg))
            if not names:
                raise NotFoundError(f'{text}: nothing matches {seg!r} in {node.path_str}')
            return [node.child(name, cmap[name]) for name in names]
        raise NotFoundError(f'{text}: no such object {seg!r} in {node.path_str}')


def _check_kinds(nodes: list[Node], kinds: frozenset[EntityKind]) -> None:
    for node in nodes:
        if node.kind not in kinds:
            raise WrongTypeError(
                f'{node.path_str} is a {node.kind.value}, '
                f'expected {describe_kinds(kinds)}'
            )
