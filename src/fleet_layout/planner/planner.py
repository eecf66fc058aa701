"""
Layout planner.

Purpose
This planner turns a FleetConfig and a map of service images into a Layout:
how many instances of each service to run and on which server.

Why deterministic
Operators diff generated configurations and tests compare them byte for byte,
so the same fleet and images must always produce the same placements. All
choices here are greedy and ordered; nothing is randomized or optimized.

Allocation classes
Metadata server placement draws from a MetadataAllocator. Each allocation
class has its own round robin cursor over the rack striped server list, and
cursors persist for the whole run:
- exact count services share "small"
- front door services share "frontdoor", which keeps the total front door
  count per server within one of every other server
- each per shard service uses its own name as the class. Every per shard
  service therefore walks the same server sequence, so replica k of shard n
  lands on the same server for postgres and moray.

Storage servers are not striped. The storage service gets one instance per
storage server and compute zones are sized from each server's memory.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping

from fleet_layout.core.types import FleetConfig
from fleet_layout.fabric.capacity import PlacementConfig, compute_zone_count, frontdoor_count
from fleet_layout.fabric.roles import (
    ALLOC_CLASS_FRONTDOOR,
    ALLOC_CLASS_SMALL,
    PlacementPolicy,
    PolicyKind,
    placement_policy,
    service_name_is_valid,
)
from fleet_layout.fabric.striping import MetadataAllocator
from fleet_layout.planner.layout import Layout
from fleet_layout.planner.preflight import check_fleet

logger = logging.getLogger(__name__)


class LayoutPlanner:
    """
    Generate Layouts.

    The planner holds configuration only. Allocation state belongs to a single
    generate call, so one planner can lay out any number of fleets.
    """

    def __init__(self, config: PlacementConfig | None = None) -> None:
        self._config = config or PlacementConfig()

    def generate(self, fleet: FleetConfig, images: Mapping[str, str]) -> Layout:
        """
        Lay out every service named in images.

        Images named in the fleet description override the ones passed in.
        This never raises for fleet shape problems. Blocking problems end up
        in layout.errors with nothing placed, everything else in
        layout.warnings.
        """
        resolved: Dict[str, str] = dict(images)
        resolved.update(fleet.images)

        layout = Layout(fleet)

        preflight = check_fleet(fleet, self._config)
        layout.errors.extend(preflight.errors)
        layout.warnings.extend(preflight.warnings)
        for msg in preflight.errors:
            logger.error("layout: %s", msg)
        for msg in preflight.warnings:
            logger.warning("layout: %s", msg)
        if not preflight.ok:
            return layout

        allocator = MetadataAllocator(fleet)
        for service, image in resolved.items():
            if not service_name_is_valid(service):
                msg = f"images[{service}]: unknown service, not deployed"
                layout.warnings.append(msg)
                logger.warning("layout: %s", msg)
                continue
            self._place(layout, allocator, service, image, placement_policy(service))

        logger.debug("layout evidence: %s", preflight.evidence)
        return layout

    def _place(
        self,
        layout: Layout,
        allocator: MetadataAllocator,
        service: str,
        image: str,
        policy: PlacementPolicy,
    ) -> None:
        fleet = layout.fleet
        cfg = self._config

        if policy.kind in (PolicyKind.exact, PolicyKind.frontdoor):
            if policy.kind == PolicyKind.exact:
                alloc_class = ALLOC_CLASS_SMALL
                count = policy.count
            else:
                alloc_class = ALLOC_CLASS_FRONTDOOR
                count = frontdoor_count(policy.ratio, len(fleet.servers_metadata), cfg)

            for _ in range(count):
                server = allocator.next_server(alloc_class)
                layout.record(server, service, {"image_uuid": image})

        elif policy.kind == PolicyKind.per_shard:
            for shard in range(1, fleet.nshards + 1):
                for _ in range(cfg.npershard_instances):
                    server = allocator.next_server(service)
                    layout.record(server, service, {"shard": shard, "image_uuid": image})

        elif policy.kind == PolicyKind.per_storage:
            for server in fleet.servers_storage:
                layout.record(server, service, {"image_uuid": image})

        else:
            for server in fleet.servers_storage:
                count = compute_zone_count(fleet.servers[server].memory, cfg)
                for _ in range(count):
                    layout.record(server, service, {"image_uuid": image})

        logger.debug("placed %s: %d instances", service, _placed(layout, service))


def _placed(layout: Layout, service: str) -> int:
    svccfg = layout.service_config(service)
    return 0 if svccfg is None else svccfg.total()


def generate_layout(
    fleet: FleetConfig,
    images: Mapping[str, str],
    config: PlacementConfig | None = None,
) -> Layout:
    """Convenience wrapper around LayoutPlanner.generate."""
    return LayoutPlanner(config).generate(fleet, images)
