"""
Fleet preflight.

Checks the shape of a fleet before any instance is placed.

Blocking conditions, checked in order, first match wins:
1. The fleet needs at least one metadata server and one storage server.
2. Only one and three zone deployments are supported.

When a blocking condition is found we stop there. Otherwise we collect every
warning that applies, since fleet shape problems are independent facts:
- zones with different metadata server counts
- zones with different storage server counts
- more shards than metadata servers in the smallest zone
- more shard replicas than metadata servers across zones
- fewer racks than replicas per shard
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from fleet_layout.core.types import FleetConfig
from fleet_layout.fabric.capacity import PlacementConfig


@dataclass
class PreflightResult:
    """
    Result of fleet preflight.

    ok means no blocking errors.
    errors are blocking.
    warnings are non blocking but worth an operator's attention.
    evidence records the fleet shape the checks looked at.
    """

    ok: bool
    errors: List[str]
    warnings: List[str]
    evidence: Dict[str, object]


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def check_fleet(fleet: FleetConfig, config: PlacementConfig) -> PreflightResult:
    errors: List[str] = []
    warnings: List[str] = []
    evidence: Dict[str, object] = {
        "az_count": len(fleet.az_names),
        "rack_count": len(fleet.rack_names),
        "metadata_count": len(fleet.servers_metadata),
        "storage_count": len(fleet.servers_storage),
        "min_nmetadata_per_az": fleet.min_nmetadata_per_az,
        "min_nstorage_per_az": fleet.min_nstorage_per_az,
    }

    if not fleet.servers_metadata or not fleet.servers_storage:
        errors.append("need at least one metadata server and one storage server")
        return PreflightResult(ok=False, errors=errors, warnings=warnings, evidence=evidence)

    naz = len(fleet.az_names)
    if naz not in (1, 3):
        errors.append("only one- and three-datacenter deployments are supported")
        return PreflightResult(ok=False, errors=errors, warnings=warnings, evidence=evidence)

    min_meta = fleet.min_nmetadata_per_az or 0
    min_storage = fleet.min_nstorage_per_az or 0

    if any(az.nmetadata != min_meta for az in fleet.azs.values()):
        warnings.append(
            "datacenters have different numbers of metadata servers.  "
            "The impact of a datacenter failure will differ depending on which datacenter fails."
        )

    if any(az.nstorage != min_storage for az in fleet.azs.values()):
        warnings.append("datacenters have different numbers of storage servers.")

    # The softer check only applies when the stricter one did not fire.
    if fleet.nshards > min_meta:
        warnings.append(
            f"requested {fleet.nshards} shards with only {_plural(min_meta, 'metadata server')} "
            "in at least one datacenter.  Multiple primary databases will wind up running on the "
            "same servers, and this configuration may not survive server failure.  "
            "This is not recommended."
        )
    elif config.npershard_instances * fleet.nshards > naz * min_meta:
        warnings.append(
            f"requested {fleet.nshards} shards with only {_plural(min_meta, 'metadata server')} "
            "in at least one datacenter.  Under some conditions, multiple databases may wind up "
            "running on the same servers.  This is not recommended."
        )

    nracks = len(fleet.rack_names)
    if nracks < config.npershard_instances:
        warnings.append(
            f"configuration has only {_plural(nracks, 'rack')}.  "
            "This configuration may not survive rack failure."
        )

    return PreflightResult(ok=True, errors=errors, warnings=warnings, evidence=evidence)
