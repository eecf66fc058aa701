from __future__ import annotations

from dataclasses import asdict
from typing import Any


def _normalize(obj: Any) -> Any:
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_normalize(v) for v in obj]
    return obj


def to_json_safe_dict(obj: Any) -> dict[str, Any]:
    """
    Convert a dataclass object into a JSON safe dict.

    Enum members collapse to their values.
    """
    raw = asdict(obj)
    normalized = _normalize(raw)
    if not isinstance(normalized, dict):
        raise TypeError("expected dict after normalization")
    return normalized


def fleet_config_to_json(fleet: Any) -> dict[str, Any]:
    """
    FleetConfig diagnostic shape.

    Zones and racks are emitted in fleet order, servers in discovery order.
    Racks follow the striped rack order so two loads of the same description
    can be diffed directly.
    """
    return {
        "nshards": fleet.nshards,
        "images": dict(fleet.images),
        "azs": [to_json_safe_dict(fleet.azs[name]) for name in fleet.az_names],
        "racks": [to_json_safe_dict(fleet.racks[name]) for name in fleet.rack_names],
        "servers": [to_json_safe_dict(fleet.servers[name]) for name in fleet.server_names],
        "min_nmetadata_per_az": fleet.min_nmetadata_per_az,
        "min_nstorage_per_az": fleet.min_nstorage_per_az,
    }
