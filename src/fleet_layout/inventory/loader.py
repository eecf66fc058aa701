"""
Fleet description loader.

Reads a fleet description either from a local json file or from an object
already in memory, validates it and builds a FleetConfig.

Loading stops at the first problem found, in this order:
1. read and parse errors
2. schema errors
3. structural errors while scanning servers, such as a duplicate server or a
   rack that appears in two availability zones

Derived values are computed only after all of that passed.

Rack ordering
Each zone's racks are sorted by name, then the global rack list takes one rack
from each zone in turn. Anything that walks racks in that order also walks
zones.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from fleet_layout.core.errors import ConfigParseError, ConfigSchemaError, ConfigStructureError
from fleet_layout.core.types import (
    DEFAULT_AZ,
    DEFAULT_RACK,
    AvailabilityZone,
    FleetConfig,
    Rack,
    Server,
    ServerRole,
)
from fleet_layout.fabric.striping import stripe
from fleet_layout.inventory.schema import FleetDescription, ServerDescription, describe_validation_error

logger = logging.getLogger(__name__)


class FleetConfigLoader:
    """
    Load a FleetConfig.

    A loader is single use. Call exactly one of load_from_file or
    load_directly; a second call raises RuntimeError.
    """

    def __init__(self) -> None:
        self._fleet = FleetConfig()
        self._source: Optional[str] = None

    def load_directly(self, config: Mapping[str, Any]) -> FleetConfig:
        """Load from an object shaped like the parsed json document. config is not modified."""
        self._begin("directly-passed")
        # The schema only takes plain dicts at the top level.
        raw = dict(config) if isinstance(config, Mapping) else config
        return self._parse(raw)

    def load_from_file(self, path: Union[str, Path]) -> FleetConfig:
        """Load from a json file."""
        path = Path(path)
        self._begin(f"file: {json.dumps(str(path))}")

        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ConfigParseError(f"{self._source}: {exc}") from exc

        try:
            raw = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ConfigParseError(f"parse {self._source}: {exc}") from exc

        return self._parse(raw)

    def _begin(self, source: str) -> None:
        if self._source is not None:
            raise RuntimeError("cannot re-use FleetConfigLoader")
        self._source = source

    def _parse(self, raw: Any) -> FleetConfig:
        try:
            desc = FleetDescription.model_validate(raw)
        except ValidationError as exc:
            raise ConfigSchemaError(describe_validation_error(exc)) from exc

        fleet = self._fleet
        fleet.nshards = desc.nshards
        fleet.images = dict(desc.images)

        for server in desc.servers:
            self._add_server(server)

        self._derive()

        logger.info(
            "loaded fleet from %s: %d servers (%d metadata, %d storage) in %d racks across %d azs, %d shards",
            self._source,
            len(fleet.server_names),
            len(fleet.servers_metadata),
            len(fleet.servers_storage),
            len(fleet.rack_names),
            len(fleet.az_names),
            fleet.nshards,
        )
        return fleet

    def _add_server(self, desc: ServerDescription) -> None:
        fleet = self._fleet
        uuid = desc.uuid
        rack_name = desc.rack if desc.rack is not None else DEFAULT_RACK
        az_name = desc.az if desc.az is not None else DEFAULT_AZ

        az = fleet.azs.get(az_name)
        if az is None:
            az = AvailabilityZone(name=az_name)
            fleet.azs[az_name] = az
            fleet.az_names.append(az_name)

        rack = fleet.racks.get(rack_name)
        if rack is None:
            rack = Rack(name=rack_name, az=az_name)
            fleet.racks[rack_name] = rack
            fleet.rack_names.append(rack_name)
            az.rack_names.append(rack_name)
        elif rack.az != az_name:
            raise ConfigStructureError(
                f"server {uuid}, rack {rack_name}, az {az_name}: "
                f"rack already exists in different az {rack.az}"
            )

        if uuid in fleet.servers:
            raise ConfigStructureError(f"server {uuid}, rack {rack_name}, az {az_name}: duplicate server")

        role = ServerRole(desc.type)
        fleet.servers[uuid] = Server(uuid=uuid, rack=rack_name, memory=desc.memory, role=role)
        fleet.server_names.append(uuid)

        if role == ServerRole.metadata:
            rack.servers_metadata.append(uuid)
            fleet.servers_metadata.append(uuid)
            az.nmetadata += 1
        else:
            rack.servers_storage.append(uuid)
            fleet.servers_storage.append(uuid)
            az.nstorage += 1

    def _derive(self) -> None:
        fleet = self._fleet

        fleet.min_nmetadata_per_az = min(az.nmetadata for az in fleet.azs.values())
        fleet.min_nstorage_per_az = min(az.nstorage for az in fleet.azs.values())

        for az in fleet.azs.values():
            az.rack_names.sort()

        striped = stripe([fleet.azs[name].rack_names for name in fleet.az_names])
        _check_index("rack", striped, fleet.rack_names)
        fleet.rack_names = striped

        _check_index("az", list(fleet.azs), fleet.az_names)
        _check_index("rack", list(fleet.racks), fleet.rack_names)
        _check_index("server", list(fleet.servers), fleet.server_names)


def _check_index(kind: str, keys: List[str], names: List[str]) -> None:
    """Ensure a name list and its lookup table hold the same names."""
    if sorted(keys) != sorted(names):
        raise ConfigStructureError(f"inconsistent {kind} index: {sorted(keys)} != {sorted(names)}")
