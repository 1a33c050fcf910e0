"""Interactive session state: connection, current directory, and marks."""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger

from .connection import Connection
from .credentials import GuestCredentialCache
from .inventory import Node, child_map
from .kinds import EntityKind
from .paths import HOME_MARK, ROOT_MARK, DatastoreFile, PathResolver

log = logger


class MarkTable:
    """Session-lifetime aliases from short tokens to node lists."""

    def __init__(self) -> None:
        self._marks: dict[str, list[Node]] = {}

    def __contains__(self, token: str) -> bool:
        return token in self._marks

    def get(self, token: str | None) -> list[Node] | None:
        if token is None:
            return None
        nodes = self._marks.get(token)
        return None if nodes is None else list(nodes)

    def set(self, token: str, nodes: Iterable[Node]) -> None:
        self._marks[token] = list(nodes)

    def delete_numeric(self) -> None:
        for token in [t for t in self._marks if t.isdigit()]:
            del self._marks[token]

    def items(self) -> list[tuple[str, list[Node]]]:
        return sorted(self._marks.items(), key=lambda kv: kv[0])


class Session:
    """
    Everything a command needs besides its own arguments.

    Holds the connection, the current directory node, the mark table and
    the guest credential cache. The children of the current directory are
    cached until the next ``cd``.
    """

    def __init__(self, connection: Connection, *, root_obj: Any = None) -> None:
        self.connection = connection
        self.root = Node.root(root_obj if root_obj is not None else connection.root_folder)
        self.cwd = self.root
        self.marks = MarkTable()
        self.marks.set(ROOT_MARK, [self.root])
        self.credentials = GuestCredentialCache()
        self.resolver = PathResolver(self)
        self.debug = False
        self._cwd_children: dict[str, Any] | None = None

    def child_map(self, node: Node) -> dict[str, Any]:
        if node is self.cwd:
            if self._cwd_children is None:
                self._cwd_children = child_map(node)
            return self._cwd_children
        return child_map(node)

    def children(self, node: Node) -> list[Node]:
        return [node.child(name, obj) for name, obj in self.child_map(node).items()]

    def refresh(self) -> None:
        self._cwd_children = None

    def cd(self, node: Node) -> None:
        log.debug('cd {}', node.path_str)
        self.cwd = node
        self._cwd_children = None
        datacenter = node.ancestor(EntityKind.DATACENTER)
        self.marks.set(HOME_MARK, [datacenter] if datacenter else [])
        self.marks.set(ROOT_MARK, [self.root])
        self.marks.delete_numeric()

    def lookup(self, paths: str | Iterable[str], kinds=None) -> list[Node]:
        if isinstance(paths, str):
            paths = [paths]
        return self.resolver.resolve_many(paths, kinds)

    def lookup_single(self, path: str, kinds=None) -> Node:
        return self.resolver.resolve_single(path, kinds)

    def lookup_parent(self, path: str, kinds=None) -> tuple[Node, str]:
        return self.resolver.resolve_parent(path, kinds)

    def lookup_datastore_file(self, path: str) -> DatastoreFile:
        return self.resolver.resolve_datastore_file(path)

    def close(self) -> None:
        self.connection.close()


def open_session(cfg) -> Session:
    """Connect with ``cfg.connection`` and start a session at the root."""
    from .connection import connect

    return Session(connect(cfg.connection))
