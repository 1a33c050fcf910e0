"""Text rendering for listings, object info, and events."""

from __future__ import annotations

from typing import Any

from loguru import logger
from pyVmomi import vim

from .inventory import Node
from .kinds import EntityKind, has_children, wsdl_name

log = logger

GB = 1024 ** 3
EVENT_TIME_FORMAT = '%m/%d/%Y %I:%M %p'


def prop(obj: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted attribute path, returning ``default`` on a gap."""
    value = obj
    for part in path.split('.'):
        value = getattr(value, part, None)
        if value is None:
            return default
    return value


def ls_text(node: Node) -> str:
    obj = node.obj
    kind = node.kind
    if kind is EntityKind.VIRTUAL_MACHINE:
        return f': {prop(obj, "runtime.powerState", "unknown")}'
    if kind is EntityKind.HOST:
        state = prop(obj, 'runtime.connectionState', 'unknown')
        mm = ' (maintenance)' if prop(obj, 'runtime.inMaintenanceMode') else ''
        return f' (host): {state}{mm}'
    if kind is EntityKind.DATASTORE:
        free = prop(obj, 'summary.freeSpace', 0) / GB
        cap = prop(obj, 'summary.capacity', 0) / GB
        return f' (datastore): {free:.1f}/{cap:.1f} GB free'
    if has_children(kind):
        return '/'
    return f' ({kind.value})'


def listing_lines(children: list[Node]) -> list[str]:
    return [f'{idx} {node.name}{ls_text(node)}' for idx, node in enumerate(children)]


def info_lines(node: Node) -> list[str]:
    obj = node.obj
    lines = [f'path: {node.path_str}', f'class: {wsdl_name(obj) or type(obj).__name__}']
    kind = node.kind
    if kind is EntityKind.VIRTUAL_MACHINE:
        lines += [
            f'power: {prop(obj, "runtime.powerState", "unknown")}',
            f'guest: {prop(obj, "summary.config.guestFullName", "")}',
            f'cpus: {prop(obj, "summary.config.numCpu", "")}',
            f'memory: {prop(obj, "summary.config.memorySizeMB", "")} MB',
            f'ip: {prop(obj, "summary.guest.ipAddress", "") or ""}',
            f'host: {prop(obj, "runtime.host.name", "")}',
        ]
        note = prop(obj, 'summary.config.annotation', '')
        if note:
            lines.append(f'annotation: {note}')
    elif kind is EntityKind.HOST:
        lines += [
            f'connection: {prop(obj, "runtime.connectionState", "unknown")}',
            f'power: {prop(obj, "runtime.powerState", "unknown")}',
            f'maintenance: {bool(prop(obj, "runtime.inMaintenanceMode", False))}',
            f'product: {prop(obj, "config.product.fullName", "")}',
        ]
    elif kind is EntityKind.DATASTORE:
        lines += [
            f'type: {prop(obj, "summary.type", "")}',
            f'url: {prop(obj, "summary.url", "")}',
            f'capacity: {prop(obj, "summary.capacity", 0) / GB:.1f} GB',
            f'free: {prop(obj, "summary.freeSpace", 0) / GB:.1f} GB',
        ]
    return lines


def event_filter(entity: Any):
    spec = vim.event.EventFilterSpec
    return spec(
        entity=spec.ByEntity(entity=entity, recursion=spec.RecursionOption.all)
    )


def recent_events(connection, entity: Any, count: int = 10) -> list[str]:
    """Newest ``count`` events under ``entity``, oldest first."""
    manager = connection.event_manager
    categories = {
        info.key: info.category for info in prop(manager, 'description.eventInfo', []) or []
    }
    collector = manager.CreateCollectorForEvents(filter=event_filter(entity))
    try:
        collector.SetCollectorPageSize(maxCount=int(count))
        page = list(collector.latestPage or [])
    finally:
        collector.DestroyCollector()
    lines = []
    for event in reversed(page):
        when = event.createdTime.astimezone().strftime(EVENT_TIME_FORMAT)
        category = categories.get(wsdl_name(event), 'info')
        message = (event.fullFormattedMessage or '').strip()
        lines.append(f'[{when}] [{category}] {message}')
    return lines
