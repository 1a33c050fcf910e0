"""Submission of remote tasks and tracking of their progress."""

from __future__ import annotations

import sys
import time
from typing import Any, Callable, Iterable

from loguru import logger
from pyVmomi import vim, vmodl

from .errors import TaskFailedError, WaitTimeoutError, fault_message
from .inventory import Node
from .results import ProgressReport, TaskOutcome
from .wait import Deadline
from .watch import PropertyWatch

log = logger

TERMINAL_STATES = ('success', 'error')


def submit_tasks(
    nodes: Iterable[Node], verb: str, *args, **kwargs
) -> tuple[list[tuple[str, Any]], list[TaskOutcome]]:
    """
    Call ``<verb>_Task`` on every node before anything waits.

    Returns the submitted ``(name, task)`` pairs and an outcome for each
    node whose submission was rejected by the server.
    """
    submitted: list[tuple[str, Any]] = []
    rejected: list[TaskOutcome] = []
    for node in nodes:
        method = getattr(node.obj, f'{verb}_Task')
        try:
            task = method(*args, **kwargs)
        except vmodl.MethodFault as ex:
            log.debug('{} rejected for {}: {}', verb, node.path_str, ex)
            rejected.append(TaskOutcome(node.name, 'error', fault_message(ex)))
            continue
        submitted.append((node.name, task))
    return submitted, rejected


def _wait_infos(
    connection,
    infos: dict[Any, Any],
    deadline: Deadline,
    on_update: Callable[[dict[Any, Any]], None] | None = None,
) -> dict[Any, Any]:
    """Fill ``infos`` (task to latest info) in place until every task is terminal."""
    tasks = list(infos)
    with PropertyWatch(connection.property_collector) as watch:
        watch.add(tasks, ['info'], vim.Task)
        while True:
            for task, changed in watch.poll(deadline):
                if 'info' in changed:
                    infos[task] = changed['info']
            if all(info is not None and info.state in TERMINAL_STATES for info in infos.values()):
                return infos
            if on_update is not None:
                on_update(infos)
            deadline.check(f'{len(tasks)} task(s)')


def _progress_line(names: dict[Any, str], infos: dict[Any, Any]) -> str:
    parts = []
    for task, info in infos.items():
        if info is None or info.state in TERMINAL_STATES:
            continue
        pct = f' {info.progress}%' if getattr(info, 'progress', None) is not None else ''
        parts.append(f'{names[task]}: {info.state}{pct}')
    return ', '.join(parts)


def _outcome(name: str, info: Any) -> TaskOutcome:
    if info is None or info.state not in TERMINAL_STATES:
        return TaskOutcome(name, 'timeout', 'timed out')
    if info.state == 'success':
        return TaskOutcome(name, 'success', result=getattr(info, 'result', None))
    return TaskOutcome(name, info.state, fault_message(info.error) if info.error else '')


def progress(
    connection,
    tasks: list[tuple[str, Any]],
    *,
    rejected: Iterable[TaskOutcome] = (),
    timeout: float | None = None,
    clock: Callable[[], float] = time.monotonic,
    stream=None,
) -> ProgressReport:
    """
    Wait for named tasks, keeping one progress line updated in place.

    Prints one line per task once all of them are terminal, followed by
    the ``rejected`` submissions, and returns the outcomes in that order.
    On timeout the same lines are printed, with ``timed out`` for every
    unfinished task, before ``WaitTimeoutError`` is re-raised.
    """
    stream = stream if stream is not None else sys.stdout
    names = {task: name for name, task in tasks}
    infos: dict[Any, Any] = {task: None for _, task in tasks}
    width = [0]

    def _render(current):
        line = _progress_line(names, current)
        stream.write('\r' + line.ljust(width[0]))
        stream.flush()
        width[0] = max(width[0], len(line))

    def _report():
        if width[0]:
            stream.write('\r' + ' ' * width[0] + '\r')
        outcomes = [_outcome(name, infos[task]) for name, task in tasks]
        outcomes.extend(rejected)
        for outcome in outcomes:
            stream.write(outcome.describe() + '\n')
        stream.flush()
        return ProgressReport(outcomes)

    if tasks:
        try:
            _wait_infos(connection, infos, Deadline(timeout, clock=clock), _render)
        except WaitTimeoutError:
            _report()
            raise
    return _report()


def run_tasks(
    connection,
    nodes: Iterable[Node],
    verb: str,
    *args,
    timeout: float | None = None,
    stream=None,
    **kwargs,
) -> ProgressReport:
    """Submit ``verb`` on every node, then track the tasks together."""
    submitted, rejected = submit_tasks(nodes, verb, *args, **kwargs)
    return progress(connection, submitted, rejected=rejected, timeout=timeout, stream=stream)


def wait_for_task(
    connection,
    task: Any,
    *,
    timeout: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """Wait for a single task; return its result or raise on error."""
    infos = _wait_infos(connection, {task: None}, Deadline(timeout, clock=clock))
    info = infos[task]
    if info.state != 'success':
        raise TaskFailedError(fault_message(info.error) if info.error else 'task failed')
    return getattr(info, 'result', None)
