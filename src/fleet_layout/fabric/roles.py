"""
Service role catalog.

Why this file exists
The loader, the planner and the layout all need to ask questions like:

- Is this a service name we know about
- Is this service sharded, meaning instances are grouped per shard
- Which placement policy decides how many instances it gets and where

The set of services is closed, so we keep one table here instead of
dispatching on names throughout the code.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class PolicyKind(str, Enum):
    """
    Placement policy kinds.

    exact
      Fixed instance count, striped over metadata servers in class "small".

    frontdoor
      Count scales with the number of metadata servers by ratio.
      All front door services share the "frontdoor" class.

    per_shard
      A fixed number of replicas per shard, striped in a class named after
      the service itself.

    per_storage
      Exactly one instance on every storage server.

    compute
      Instance count per storage server derived from its memory.
    """

    exact = "exact"
    frontdoor = "frontdoor"
    per_shard = "per_shard"
    per_storage = "per_storage"
    compute = "compute"


@dataclass(frozen=True)
class PlacementPolicy:
    """
    Placement parameters for one service.

    count is only meaningful for exact.
    ratio is only meaningful for frontdoor.
    """

    kind: PolicyKind
    count: int = 0
    ratio: int = 0


@dataclass(frozen=True)
class ServiceRole:
    name: str
    sharded: bool
    policy: PlacementPolicy


ALLOC_CLASS_SMALL = "small"
ALLOC_CLASS_FRONTDOOR = "frontdoor"

# Largest front door ratio. The service with this ratio gets one instance per
# metadata server.
FRONTDOOR_MAX_RATIO = 8


def _exact(count: int) -> PlacementPolicy:
    return PlacementPolicy(kind=PolicyKind.exact, count=count)


def _frontdoor(ratio: int) -> PlacementPolicy:
    return PlacementPolicy(kind=PolicyKind.frontdoor, ratio=ratio)


_ROLES: List[ServiceRole] = [
    # Three naming instances. Five would work but buys no resilience.
    ServiceRole("nameservice", False, _exact(3)),
    ServiceRole("postgres", True, PlacementPolicy(kind=PolicyKind.per_shard)),
    ServiceRole("moray", True, PlacementPolicy(kind=PolicyKind.per_shard)),
    ServiceRole("electric-moray", False, _frontdoor(FRONTDOOR_MAX_RATIO)),
    ServiceRole("storage", False, PlacementPolicy(kind=PolicyKind.per_storage)),
    ServiceRole("authcache", False, _frontdoor(1)),
    ServiceRole("webapi", False, _frontdoor(FRONTDOOR_MAX_RATIO)),
    ServiceRole("loadbalancer", False, _frontdoor(FRONTDOOR_MAX_RATIO)),
    # Job execution wants two for availability, rarely more for capacity.
    ServiceRole("jobsupervisor", False, _exact(2)),
    ServiceRole("jobpuller", False, _exact(2)),
    ServiceRole("medusa", False, _exact(2)),
    # Region singletons.
    ServiceRole("ops", False, _exact(1)),
    ServiceRole("madtom", False, _exact(1)),
    ServiceRole("marlin-dashboard", False, _exact(1)),
    ServiceRole("marlin", False, PlacementPolicy(kind=PolicyKind.compute)),
    # Deployed by hand during resharding only.
    ServiceRole("reshard", False, _exact(0)),
]

# Testing component, valid in image maps but never deployed.
_EXTRA_ROLES: List[ServiceRole] = [
    ServiceRole("propeller", False, _exact(0)),
]

SERVICE_NAMES: List[str] = [role.name for role in _ROLES]

_BY_NAME: Dict[str, ServiceRole] = {role.name: role for role in _ROLES + _EXTRA_ROLES}


def service_name_is_valid(name: str) -> bool:
    """Return True if name is a known service role."""
    return name in _BY_NAME


def service_role(name: str) -> ServiceRole:
    """Return the catalog entry for name. Raises KeyError for unknown names."""
    return _BY_NAME[name]


def service_is_sharded(name: str) -> bool:
    """
    Return True if instances of this service belong to a shard.

    Sharded services are grouped by shard and image, others by image only.
    """
    return service_role(name).sharded


def service_config_properties(name: str) -> List[str]:
    """Return the properties that group instances of this service, in output order."""
    if service_is_sharded(name):
        return ["shard", "image_uuid"]
    return ["image_uuid"]


def placement_policy(name: str) -> PlacementPolicy:
    """Return the placement policy for a service."""
    return service_role(name).policy
