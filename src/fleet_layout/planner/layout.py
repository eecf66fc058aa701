"""
Layout result.

A Layout says how many instances of which service, at which image and shard,
run on each server of a fleet. It is built by the layout planner and is read
only afterwards.

Every recorded instance lands in three views:
- server -> service -> ServiceConfiguration, the deployable output
- service -> zone -> ServiceConfiguration, used for the summary table
- service -> ServiceConfiguration, region wide totals

A Layout with fatal errors has no usable output and refuses to serialize.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, TextIO, Tuple

from prettytable import PrettyTable

from fleet_layout.core.types import FleetConfig
from fleet_layout.fabric.roles import SERVICE_NAMES, service_config_properties, service_is_sharded
from fleet_layout.planner.configuration import ServiceConfiguration

SummaryRow = Tuple[str, Optional[int], Dict[str, int]]


class Layout:
    """Instance counts for one fleet, with the errors and warnings found while planning."""

    def __init__(self, fleet: FleetConfig) -> None:
        self._fleet = fleet
        self.errors: List[str] = []
        self.warnings: List[str] = []

        self._by_server: Dict[str, Dict[str, ServiceConfiguration]] = {}
        self._by_service_az: Dict[str, Dict[str, ServiceConfiguration]] = {}
        self._by_service: Dict[str, ServiceConfiguration] = {}

    @property
    def fleet(self) -> FleetConfig:
        return self._fleet

    def record(self, server: str, service: str, config: Mapping[str, Any]) -> None:
        """
        Record one instance of service on server.

        config holds the grouping properties for the service, such as
        image_uuid and shard. The server's zone is looked up through its rack.
        """
        keys = service_config_properties(service)

        by_service = self._by_server.setdefault(server, {})
        if service not in by_service:
            by_service[service] = ServiceConfiguration(keys)
        by_service[service].incr(config)

        if service not in self._by_service:
            self._by_service[service] = ServiceConfiguration(keys)
            self._by_service_az[service] = {}
        self._by_service[service].incr(config)

        az = self._fleet.az_of_server(server)
        by_az = self._by_service_az[service]
        if az not in by_az:
            by_az[az] = ServiceConfiguration(keys)
        by_az[az].incr(config)

    def azs(self) -> List[str]:
        """Return zone names in discovery order."""
        return list(self._fleet.az_names)

    def nerrors(self) -> int:
        return len(self.errors)

    def server_config(self, server: str) -> Dict[str, ServiceConfiguration]:
        return dict(self._by_server.get(server, {}))

    def service_config(self, service: str) -> Optional[ServiceConfiguration]:
        return self._by_service.get(service)

    def service_az_config(self, service: str, az: str) -> Optional[ServiceConfiguration]:
        return self._by_service_az.get(service, {}).get(az)

    def serialize(self, az: str) -> Optional[str]:
        """
        Return the json configuration for one zone, or None if there are errors.

        Servers are grouped metadata first, then storage, each in the order
        they were described. Services on a server are sorted by name.
        """
        if self.nerrors() > 0:
            return None

        out: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
        for server in self._fleet.servers_in_az(az):
            cfgs = self._by_server.get(server, {})
            out[server] = {name: cfgs[name].summary() for name in sorted(cfgs)}

        return json.dumps(out, indent=4) + "\n"

    def summary_rows(self) -> List[SummaryRow]:
        """
        Per zone instance counts.

        Non sharded services come first with one row each and shard None.
        Sharded services follow with one row per shard, shards in numeric order.
        """
        rows: List[SummaryRow] = []

        for name in SERVICE_NAMES:
            if service_is_sharded(name):
                continue
            counts: Dict[str, int] = {}
            for az, svccfg in self._by_service_az.get(name, {}).items():
                counts[az] = svccfg.total()
            rows.append((name, None, counts))

        for name in SERVICE_NAMES:
            if not service_is_sharded(name):
                continue
            by_shard: Dict[int, Dict[str, int]] = {}
            for az, svccfg in self._by_service_az.get(name, {}).items():
                for cfg in svccfg:
                    shard_counts = by_shard.setdefault(int(cfg["shard"]), {})
                    shard_counts[az] = shard_counts.get(az, 0) + int(cfg["count"])
            for shard in sorted(by_shard):
                rows.append((name, shard, by_shard[shard]))

        return rows

    def print_summary(self, stream: TextIO) -> None:
        """Write the summary table. Writes nothing if there are errors."""
        if self.nerrors() > 0:
            return

        azs = self.azs()
        table = PrettyTable()
        table.field_names = ["", "SERVICE", "SHARD", *azs]
        table.border = False
        table.align["SERVICE"] = "l"
        for name in ["SHARD", *azs]:
            table.align[name] = "r"

        for service, shard, counts in self.summary_rows():
            shard_text = "-" if shard is None else str(shard)
            table.add_row(["", service, shard_text, *[counts.get(az, "") for az in azs]])

        for line in table.get_string().splitlines():
            stream.write(line.rstrip() + "\n")

    def print_issues(self, stream: TextIO) -> None:
        """Write errors if there are any, otherwise warnings."""
        if self.errors:
            for msg in self.errors:
                stream.write(f"error: {msg}\n")
        else:
            for msg in self.warnings:
                stream.write(f"warning: {msg}\n")
