"""Entity kinds for inventory objects and the capability predicates on them."""

from __future__ import annotations

import enum


class EntityKind(enum.Enum):
    ROOT_FOLDER = 'root'
    FOLDER = 'folder'
    DATACENTER = 'datacenter'
    COMPUTE_RESOURCE = 'compute resource'
    CLUSTER = 'cluster'
    HOST = 'host'
    RESOURCE_POOL = 'resource pool'
    VAPP = 'vApp'
    VIRTUAL_MACHINE = 'virtual machine'
    DATASTORE = 'datastore'
    NETWORK = 'network'
    DV_PORTGROUP = 'distributed portgroup'
    DV_SWITCH = 'distributed switch'
    UNKNOWN = 'object'


_BY_WSDL_NAME = {
    'Folder': EntityKind.FOLDER,
    'Datacenter': EntityKind.DATACENTER,
    'ComputeResource': EntityKind.COMPUTE_RESOURCE,
    'ClusterComputeResource': EntityKind.CLUSTER,
    'HostSystem': EntityKind.HOST,
    'ResourcePool': EntityKind.RESOURCE_POOL,
    'VirtualApp': EntityKind.VAPP,
    'VirtualMachine': EntityKind.VIRTUAL_MACHINE,
    'Datastore': EntityKind.DATASTORE,
    'Network': EntityKind.NETWORK,
    'OpaqueNetwork': EntityKind.NETWORK,
    'DistributedVirtualPortgroup': EntityKind.DV_PORTGROUP,
    'DistributedVirtualSwitch': EntityKind.DV_SWITCH,
    'VmwareDistributedVirtualSwitch': EntityKind.DV_SWITCH,
}

CONTAINERS = frozenset(
    {
        EntityKind.ROOT_FOLDER,
        EntityKind.FOLDER,
        EntityKind.DATACENTER,
        EntityKind.COMPUTE_RESOURCE,
        EntityKind.CLUSTER,
        EntityKind.HOST,
        EntityKind.RESOURCE_POOL,
        EntityKind.VAPP,
    }
)
FOLDERS = frozenset({EntityKind.ROOT_FOLDER, EntityKind.FOLDER})
COMPUTE = frozenset({EntityKind.COMPUTE_RESOURCE, EntityKind.CLUSTER})
POOLS = frozenset({EntityKind.RESOURCE_POOL, EntityKind.VAPP})
VMS = frozenset({EntityKind.VIRTUAL_MACHINE})
HOSTS = frozenset({EntityKind.HOST})
DATASTORES = frozenset({EntityKind.DATASTORE})
MANAGED_ENTITIES = frozenset(set(EntityKind) - {EntityKind.UNKNOWN})


def wsdl_name(obj) -> str:
    return str(getattr(obj, '_wsdlName', '') or '')


def kind_of(obj) -> EntityKind:
    """Classify a remote object handle by its wire type name."""
    return _BY_WSDL_NAME.get(wsdl_name(obj), EntityKind.UNKNOWN)


def describe_kinds(kinds) -> str:
    names = sorted(k.value for k in kinds)
    if len(names) == 1:
        return names[0]
    return ', '.join(names[:-1]) + ' or ' + names[-1]


def has_children(kind: EntityKind) -> bool:
    return kind in CONTAINERS
