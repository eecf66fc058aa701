"""
Instance count math.

This module holds the heuristics that turn fleet shape into instance counts.

It supports:
- Front door services scaled by ratio to the metadata server count
- Compute zones sized from storage server memory

All math is documented for auditability.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from fleet_layout.fabric.roles import FRONTDOOR_MAX_RATIO


@dataclass
class PlacementConfig:
    """
    Placement heuristics.

    npershard_instances:
        Replicas per shard for every per shard service.
        Three is fundamental to the database replication scheme.

    frontdoor_max_ratio:
        Ratio that maps to one instance per metadata server.

    frontdoor_min_instances:
        Floor for every front door service, for availability.

    compute_dram_percent:
        Fraction of storage server memory handed to compute zones.
        Errs low since adding zones later is easy.

    compute_dram_default_mb:
        Memory each compute zone gets by default.

    compute_min_per_server:
        Floor for compute zones per storage server. Internal jobs such as
        garbage collection need a few even on job-light deployments.
    """

    npershard_instances: int = 3
    frontdoor_max_ratio: int = FRONTDOOR_MAX_RATIO
    frontdoor_min_instances: int = 2
    compute_dram_percent: float = 0.25
    compute_dram_default_mb: int = 1024
    compute_min_per_server: int = 4


def frontdoor_count(ratio: int, nmetadata: int, config: PlacementConfig) -> int:
    """
    Instance count for a front door service.

        count = ceil(ratio * nmetadata / max_ratio)

    The service with the max ratio gets one instance per metadata server and
    the others scale down proportionally. The count is then raised to the
    availability floor, and finally capped at nmetadata so a single server
    never holds two instances of one front door service.
    """
    count = -(-ratio * nmetadata // config.frontdoor_max_ratio)
    count = max(config.frontdoor_min_instances, count)
    return min(count, nmetadata)


def compute_zone_count(memory_gb: int, config: PlacementConfig) -> int:
    """
    Compute zones for one storage server.

        avail_mb = memory_gb * 1024 * dram_percent
        count = max(min_per_server, floor(avail_mb / default_mb))

    Example:
        64 GB at 25 percent gives 16384 MB, which is 16 zones of 1024 MB.
    """
    avail_mb = memory_gb * 1024 * config.compute_dram_percent
    count = int(math.floor(avail_mb / config.compute_dram_default_mb))
    return max(count, config.compute_min_per_server)
