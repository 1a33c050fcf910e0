"""Inventory nodes: remote handles placed in the slash-delimited namespace."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from loguru import logger

from .kinds import EntityKind, kind_of

log = logger

DATACENTER_DIRS = (
    ('vms', 'vmFolder'),
    ('computers', 'hostFolder'),
    ('datastores', 'datastoreFolder'),
    ('networks', 'networkFolder'),
)


@dataclass(frozen=True, eq=False)
class Node:
    """A remote object together with the names leading to it from the root."""

    obj: Any
    name: str
    kind: EntityKind
    parent: 'Node | None' = None

    @classmethod
    def root(cls, obj: Any) -> 'Node':
        return cls(obj=obj, name='', kind=EntityKind.ROOT_FOLDER)

    def child(self, name: str, obj: Any) -> 'Node':
        return Node(obj=obj, name=name, kind=kind_of(obj), parent=self)

    def chain(self) -> list['Node']:
        out: list[Node] = []
        node: Node | None = self
        while node is not None:
            out.append(node)
            node = node.parent
        out.reverse()
        return out

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def path_str(self) -> str:
        names = [n.name for n in self.chain()[1:]]
        return '/' + '/'.join(names)

    def ancestor(self, kind: EntityKind) -> 'Node | None':
        """Nearest node of ``kind`` on the chain, including this node."""
        for node in reversed(self.chain()):
            if node.kind is kind:
                return node
        return None

    def same_object(self, other: 'Node') -> bool:
        return self.obj == other.obj

    def __repr__(self) -> str:
        return f'Node({self.path_str!r}, {self.kind.value})'


def _by_name(objs) -> Iterator[tuple[str, Any]]:
    for obj in objs or []:
        yield str(obj.name), obj


def child_map(node: Node) -> dict[str, Any]:
    """Name to handle mapping for the children of ``node``."""
    obj = node.obj
    kind = node.kind
    out: dict[str, Any] = {}
    if kind in (EntityKind.ROOT_FOLDER, EntityKind.FOLDER):
        out.update(_by_name(obj.childEntity))
    elif kind is EntityKind.DATACENTER:
        for name, attr in DATACENTER_DIRS:
            value = getattr(obj, attr, None)
            if value is not None:
                out[name] = value
    elif kind in (EntityKind.COMPUTE_RESOURCE, EntityKind.CLUSTER):
        out.update(_by_name(obj.host))
        if getattr(obj, 'resourcePool', None) is not None:
            out['resourcePool'] = obj.resourcePool
    elif kind in (EntityKind.RESOURCE_POOL, EntityKind.VAPP):
        out.update(_by_name(obj.resourcePool))
        for name, vm in _by_name(obj.vm):
            if name in out:
                log.debug('VM {} shadowed by child pool in {}', name, node.path_str)
                continue
            out[name] = vm
    elif kind is EntityKind.HOST:
        out.update(_by_name(obj.vm))
    return out


def children(node: Node) -> list[Node]:
    return [node.child(name, obj) for name, obj in child_map(node).items()]
