"""In-memory stand-ins for the management server used across the tests."""

from __future__ import annotations

import itertools
from types import SimpleNamespace

from pyVmomi import vim

from vimsh.session import Session

_ids = itertools.count(1)


class FakeEntity:
    """
    An inventory object with a wire type name and recorded method calls.

    Capitalized attribute lookups behave like server methods: the call is
    appended to ``calls`` and the matching entry of ``results`` is
    returned (called first if it is callable, raised if it is an
    exception).
    """

    def __init__(self, wsdl_name: str, name: str, **attrs):
        self.results = {}
        self.calls = []
        self._wsdlName = wsdl_name
        self._moId = f'{wsdl_name.lower()}-{next(_ids)}'
        self.name = name
        for key, value in attrs.items():
            setattr(self, key, value)

    def __getattr__(self, name):
        if not name[:1].isupper():
            raise AttributeError(name)

        def _call(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            result = self.results.get(name)
            if isinstance(result, BaseException):
                raise result
            return result(*args, **kwargs) if callable(result) else result

        return _call

    def __repr__(self):
        return f'<{self._wsdlName} {self.name}>'

    def called(self, name):
        return [kwargs for called, _, kwargs in self.calls if called == name]


class FakeFilter:
    def __init__(self, spec):
        self.spec = spec
        self.destroyed = 0

    def Destroy(self):
        self.destroyed += 1


class FakeCollector:
    """
    Property collector that replays scripted updates.

    Each entry of ``updates`` is a list of ``(obj, {prop: value})`` pairs
    returned by one ``WaitForUpdatesEx`` call; running out of updates
    raises so a test that waits too long fails instead of hanging.
    """

    def __init__(self, updates=()):
        self.updates = list(updates)
        self.filters = []
        self.waits = []

    def CreateFilter(self, spec, partialUpdates):
        handle = FakeFilter(spec)
        self.filters.append(handle)
        return handle

    def WaitForUpdatesEx(self, version, options):
        self.waits.append((version, options.maxWaitSeconds))
        if not self.updates:
            raise RuntimeError('no more scripted updates')
        changes = self.updates.pop(0)
        if changes is None:
            return None
        object_sets = [
            SimpleNamespace(
                obj=obj,
                changeSet=[
                    SimpleNamespace(name=key, op='assign', val=val)
                    for key, val in props.items()
                ],
            )
            for obj, props in changes
        ]
        return SimpleNamespace(
            version=str(len(self.waits)),
            filterSet=[SimpleNamespace(objectSet=object_sets)],
        )

    @property
    def destroy_counts(self):
        return [f.destroyed for f in self.filters]


class FakeConnection:
    def __init__(self, root_folder=None, *, updates=(), host='vc.example.com', si=None):
        self.root_folder = root_folder
        self.property_collector = FakeCollector(updates)
        self.host = host
        self.port = 443
        self.insecure = True
        self.si = si if si is not None else FakeEntity('ServiceInstance', 'si')
        self.guest_operations = None
        self.event_manager = None
        self.closed = False

    @property
    def verify_ssl(self):
        return not self.insecure

    def close(self):
        self.closed = True


def task_info(state='success', *, result=None, error=None, progress=None):
    return SimpleNamespace(state=state, result=result, error=error, progress=progress)


def new_task():
    return vim.Task(f'task-{next(_ids)}')


def task_returner(task_or_tasks):
    """``results`` entry that hands out the given tasks in order."""
    tasks = list(task_or_tasks) if isinstance(task_or_tasks, (list, tuple)) else [task_or_tasks]
    return lambda *args, **kwargs: tasks.pop(0)


def vm(name, *, power='poweredOn', moid=None, ip=None, **attrs):
    obj = FakeEntity('VirtualMachine', name, **attrs)
    if moid is not None:
        obj._moId = moid
    obj.summary = SimpleNamespace(
        runtime=SimpleNamespace(powerState=power),
        guest=SimpleNamespace(ipAddress=ip),
        config=SimpleNamespace(annotation='', vmPathName=f'[ds1] {name}/{name}.vmx'),
    )
    return obj


def build_inventory():
    """
    A small datacenter::

        /dc/vms/{web1,web2,db}
        /dc/computers/cluster/{esx1,esx2,resourcePool}
        /dc/datastores/ds1
        /dc/networks/VM Network
    """
    web1, web2, db = vm('web1'), vm('web2'), vm('db', power='poweredOff')
    vms = FakeEntity('Folder', 'vm', childEntity=[web1, web2, db])
    esx1 = FakeEntity('HostSystem', 'esx1', vm=[web1, db])
    esx2 = FakeEntity('HostSystem', 'esx2', vm=[web2])
    pool = FakeEntity('ResourcePool', 'Resources', resourcePool=[], vm=[web1, web2, db])
    cluster = FakeEntity(
        'ClusterComputeResource', 'cluster', host=[esx1, esx2], resourcePool=pool
    )
    hosts = FakeEntity('Folder', 'host', childEntity=[cluster])
    ds1 = FakeEntity('Datastore', 'ds1')
    datastores = FakeEntity('Folder', 'datastore', childEntity=[ds1])
    network = FakeEntity('Network', 'VM Network')
    networks = FakeEntity('Folder', 'network', childEntity=[network])
    dc = FakeEntity(
        'Datacenter',
        'dc',
        vmFolder=vms,
        hostFolder=hosts,
        datastoreFolder=datastores,
        networkFolder=networks,
    )
    root = FakeEntity('Folder', 'Datacenters', childEntity=[dc])
    return SimpleNamespace(
        root=root, dc=dc, vms=vms, web1=web1, web2=web2, db=db,
        esx1=esx1, esx2=esx2, pool=pool, cluster=cluster, ds1=ds1,
        network=network,
    )


def fake_session(*, updates=(), inventory=None):
    inv = inventory if inventory is not None else build_inventory()
    conn = FakeConnection(inv.root, updates=updates)
    return Session(conn), inv
