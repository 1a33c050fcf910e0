"""Property-collector subscriptions with guaranteed filter cleanup."""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger
from pyVmomi import vmodl

from .wait import Deadline

log = logger

DEFAULT_MAX_WAIT = 10

_PC = vmodl.query.PropertyCollector


def filter_spec(objs: Iterable[Any], props: Iterable[str], type_: Any = None):
    objs = list(objs)
    if type_ is None:
        type_ = type(objs[0])
    return _PC.FilterSpec(
        objectSet=[_PC.ObjectSpec(obj=obj, skip=False) for obj in objs],
        propSet=[_PC.PropertySpec(type=type_, all=False, pathSet=list(props))],
    )


class PropertyWatch:
    """
    Long-poll changes to properties of a set of remote objects.

    Every filter created through :meth:`add` is destroyed exactly once,
    either by :meth:`remove` or when the watch is closed.
    """

    def __init__(self, collector: Any, *, max_wait: int = DEFAULT_MAX_WAIT):
        self.collector = collector
        self.max_wait = max_wait
        self.version = ''
        self.values: dict[Any, dict[str, Any]] = {}
        self._filters: dict[Any, Any] = {}
        self._closed = False

    def __enter__(self) -> 'PropertyWatch':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def add(self, objs: Iterable[Any], props: Iterable[str], type_: Any = None) -> Any:
        """Create one filter over ``objs``; returns the filter handle."""
        objs = list(objs)
        spec = filter_spec(objs, props, type_)
        handle = self.collector.CreateFilter(spec, True)
        for obj in objs:
            self._filters[obj] = handle
            self.values[obj] = {}
        log.debug('Created property filter for {} object(s)', len(objs))
        return handle

    def remove(self, obj: Any) -> None:
        """Stop watching ``obj``; its filter goes once nothing else uses it."""
        handle = self._filters.pop(obj, None)
        self.values.pop(obj, None)
        if handle is not None and handle not in self._filters.values():
            self._destroy(handle)

    def poll(self, deadline: Deadline) -> list[tuple[Any, dict[str, Any]]]:
        """
        One ``WaitForUpdatesEx`` round trip.

        Returns ``(obj, changed)`` pairs for objects that changed, in the
        order the server reported them. ``changed`` maps property paths to
        new values; the accumulated values stay in :attr:`values`.
        """
        options = _PC.WaitOptions(maxWaitSeconds=deadline.poll_seconds(self.max_wait))
        update = self.collector.WaitForUpdatesEx(self.version, options)
        if update is None:
            return []
        self.version = update.version
        out = []
        for filter_set in update.filterSet or []:
            for object_set in filter_set.objectSet or []:
                obj = object_set.obj
                if obj not in self.values:
                    continue
                changed = {}
                for change in object_set.changeSet or []:
                    value = None if change.op == 'remove' else change.val
                    changed[change.name] = value
                self.values[obj].update(changed)
                out.append((obj, changed))
        return out

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        handles = []
        for handle in self._filters.values():
            if handle not in handles:
                handles.append(handle)
        self._filters.clear()
        for handle in handles:
            self._destroy(handle)

    def _destroy(self, handle: Any) -> None:
        try:
            handle.Destroy()
        except vmodl.MethodFault as ex:
            log.warning('Could not destroy property filter: {}', ex)
