"""Property watches and deadlines."""

from __future__ import annotations

import itertools

import pytest
from pyVmomi import vim

from vimsh.errors import WaitTimeoutError
from vimsh.wait import Deadline, poll_until
from vimsh.watch import PropertyWatch

from _fakes import FakeCollector


def test_filters_destroyed_once_on_remove_and_close() -> None:
    a, b = vim.VirtualMachine('vm-1'), vim.VirtualMachine('vm-2')
    collector = FakeCollector([[(a, {'name': 'a'})]])
    with PropertyWatch(collector) as watch:
        watch.add([a], ['name'], vim.VirtualMachine)
        watch.add([b], ['name'], vim.VirtualMachine)
        changes = watch.poll(Deadline())
        assert changes == [(a, {'name': 'a'})]
        assert watch.values[a] == {'name': 'a'}
        watch.remove(a)
        assert collector.destroy_counts == [1, 0]
        watch.close()
    assert collector.destroy_counts == [1, 1]


def test_shared_filter_outlives_first_remove() -> None:
    a, b = vim.VirtualMachine('vm-1'), vim.VirtualMachine('vm-2')
    collector = FakeCollector()
    watch = PropertyWatch(collector)
    watch.add([a, b], ['name'], vim.VirtualMachine)
    watch.remove(a)
    assert collector.destroy_counts == [0]
    watch.remove(b)
    assert collector.destroy_counts == [1]
    watch.close()
    assert collector.destroy_counts == [1]


def test_filter_destroyed_when_poll_raises() -> None:
    a = vim.VirtualMachine('vm-1')
    collector = FakeCollector()
    with pytest.raises(RuntimeError):
        with PropertyWatch(collector) as watch:
            watch.add([a], ['name'], vim.VirtualMachine)
            watch.poll(Deadline())
    assert collector.destroy_counts == [1]


def test_poll_wait_capped_by_deadline() -> None:
    a = vim.VirtualMachine('vm-1')
    collector = FakeCollector([None])
    ticks = iter([0.0, 7.5])
    watch = PropertyWatch(collector, max_wait=10)
    watch.add([a], ['name'], vim.VirtualMachine)
    assert watch.poll(Deadline(10, clock=lambda: next(ticks))) == []
    assert collector.waits == [('', 3)]


def test_deadline_forever() -> None:
    deadline = Deadline(None)
    assert deadline.remaining() is None
    assert not deadline.expired
    assert deadline.poll_seconds(10) == 10


def test_poll_until_sleeps_between_checks() -> None:
    results = iter([None, None, 'done'])
    sleeps = []
    out = poll_until(
        lambda: next(results), interval=2.0, deadline=Deadline(), what='x', sleep=sleeps.append
    )
    assert out == 'done'
    assert sleeps == [2.0, 2.0]


def test_poll_until_times_out() -> None:
    clock = itertools.count(0.0, 3.0).__next__
    with pytest.raises(WaitTimeoutError, match='waiting for the thing'):
        poll_until(
            lambda: None,
            interval=1.0,
            deadline=Deadline(5, clock=clock),
            what='the thing',
            sleep=lambda s: None,
        )
