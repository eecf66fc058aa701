"""
Core types.

This file defines the normalized fleet model shared across the engine.

Important design choice
The loader is the only place that builds these objects. Everything downstream
treats a FleetConfig as read only, so the same FleetConfig can be handed to any
number of layout runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


DEFAULT_AZ = "default_az"
DEFAULT_RACK = "default_rack"


class ServerRole(str, Enum):
    """
    Server roles in a fleet.

    metadata
      Hosts the small, striped services: databases, front doors, naming.

    storage
      Hosts one storage instance plus compute zones sized from memory.

    A server is exactly one of the two.
    """

    metadata = "metadata"
    storage = "storage"


@dataclass
class AvailabilityZone:
    """
    An availability zone.

    rack_names is sorted lexically once loading completes.
    nmetadata and nstorage count the servers of each role in this zone.
    """

    name: str
    rack_names: List[str] = field(default_factory=list)
    nmetadata: int = 0
    nstorage: int = 0


@dataclass
class Rack:
    """
    A rack.

    Rack names are unique across the whole fleet, not just within a zone.
    Server lists keep the order in which servers were described.
    """

    name: str
    az: str
    servers_metadata: List[str] = field(default_factory=list)
    servers_storage: List[str] = field(default_factory=list)


@dataclass
class Server:
    """
    A compute node.

    memory is in gigabytes.
    """

    uuid: str
    rack: str
    memory: int
    role: ServerRole


@dataclass
class FleetConfig:
    """
    FleetConfig is the validated view of a fleet description.

    az_names keeps discovery order.
    rack_names is striped across zones, see the loader for the ordering rule.
    server_names, servers_metadata and servers_storage keep discovery order.
    min_nmetadata_per_az and min_nstorage_per_az are minimums over all zones.
    """

    nshards: int = 0
    images: Dict[str, str] = field(default_factory=dict)

    azs: Dict[str, AvailabilityZone] = field(default_factory=dict)
    az_names: List[str] = field(default_factory=list)

    racks: Dict[str, Rack] = field(default_factory=dict)
    rack_names: List[str] = field(default_factory=list)

    servers: Dict[str, Server] = field(default_factory=dict)
    server_names: List[str] = field(default_factory=list)
    servers_metadata: List[str] = field(default_factory=list)
    servers_storage: List[str] = field(default_factory=list)

    min_nmetadata_per_az: Optional[int] = None
    min_nstorage_per_az: Optional[int] = None

    def az_of_server(self, uuid: str) -> str:
        """Return the availability zone of a server via its rack."""
        return self.racks[self.servers[uuid].rack].az

    def servers_in_az(self, az: str) -> List[str]:
        """Return metadata servers then storage servers located in az."""
        ordered = self.servers_metadata + self.servers_storage
        return [uuid for uuid in ordered if self.az_of_server(uuid) == az]
