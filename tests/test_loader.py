import copy
import json
import types

import pytest

from fleet_layout.core.errors import (
    ConfigParseError,
    ConfigSchemaError,
    ConfigStructureError,
    FleetConfigError,
)
from fleet_layout.core.serialization import fleet_config_to_json
from fleet_layout.core.types import DEFAULT_AZ, DEFAULT_RACK, ServerRole
from fleet_layout.inventory.loader import FleetConfigLoader


def mkserver(role: str, racknum: int, servernum: int, az: str | None = None) -> dict:
    """Server "role" number servernum in rack racknum, 64 GB."""
    server = {
        "type": role,
        "uuid": f"server_r{racknum:02d}_{role}{servernum:02d}",
        "memory": 64,
        "rack": f"rack_r{racknum:02d}",
    }
    if az is not None:
        server["az"] = az
    return server


def load(config: dict):
    return FleetConfigLoader().load_directly(config)


def schema_error(config: object) -> str:
    with pytest.raises(ConfigSchemaError) as excinfo:
        FleetConfigLoader().load_directly(config)  # type: ignore[arg-type]
    return str(excinfo.value)


def test_minimal_fleet_uses_default_rack_and_az():
    fleet = load(
        {
            "nshards": 1,
            "servers": [
                {"type": "metadata", "uuid": "m0", "memory": 64},
                {"type": "storage", "uuid": "s0", "memory": 128},
            ],
        }
    )

    assert fleet.nshards == 1
    assert fleet.images == {}
    assert fleet.az_names == [DEFAULT_AZ]
    assert fleet.rack_names == [DEFAULT_RACK]
    assert fleet.servers_metadata == ["m0"]
    assert fleet.servers_storage == ["s0"]
    assert fleet.servers["s0"].memory == 128
    assert fleet.servers["s0"].role == ServerRole.storage
    assert fleet.az_of_server("m0") == DEFAULT_AZ
    assert fleet.min_nmetadata_per_az == 1
    assert fleet.min_nstorage_per_az == 1


def test_rack_order_stripes_across_azs():
    """
    Racks are sorted within each zone, then taken one zone at a time.

    a: r1 r3, b: r2, c: r0 r4 gives r1 r2 r0 r3 r4.
    """
    servers = [
        {"type": "metadata", "uuid": "m3", "memory": 8, "rack": "r3", "az": "a"},
        {"type": "metadata", "uuid": "m1", "memory": 8, "rack": "r1", "az": "a"},
        {"type": "metadata", "uuid": "m2", "memory": 8, "rack": "r2", "az": "b"},
        {"type": "storage", "uuid": "s4", "memory": 8, "rack": "r4", "az": "c"},
        {"type": "metadata", "uuid": "m0", "memory": 8, "rack": "r0", "az": "c"},
    ]
    fleet = load({"nshards": 1, "servers": servers})

    assert fleet.az_names == ["a", "b", "c"]
    assert fleet.azs["a"].rack_names == ["r1", "r3"]
    assert fleet.rack_names == ["r1", "r2", "r0", "r3", "r4"]
    assert fleet.server_names == ["m3", "m1", "m2", "s4", "m0"]


def test_per_az_minimums():
    servers = [
        mkserver("metadata", 0, 0, az="az1"),
        mkserver("metadata", 0, 1, az="az1"),
        mkserver("storage", 0, 0, az="az1"),
        mkserver("metadata", 1, 0, az="az2"),
        mkserver("storage", 1, 0, az="az2"),
        mkserver("storage", 1, 1, az="az2"),
        mkserver("metadata", 2, 0, az="az3"),
        mkserver("metadata", 2, 1, az="az3"),
        mkserver("storage", 2, 0, az="az3"),
    ]
    fleet = load({"nshards": 2, "servers": servers})

    assert fleet.azs["az1"].nmetadata == 2
    assert fleet.azs["az2"].nstorage == 2
    assert fleet.min_nmetadata_per_az == 1
    assert fleet.min_nstorage_per_az == 1


def test_images_are_kept():
    fleet = load(
        {
            "nshards": 1,
            "images": {"webapi": "WEBAPI_OVERRIDE"},
            "servers": [mkserver("metadata", 0, 0), mkserver("storage", 0, 0)],
        }
    )
    assert fleet.images == {"webapi": "WEBAPI_OVERRIDE"}


def test_load_directly_does_not_modify_input():
    config = {
        "nshards": 2,
        "images": {"moray": "MORAY_IMAGE1"},
        "servers": [mkserver("metadata", 0, 0), mkserver("storage", 0, 0)],
    }
    before = copy.deepcopy(config)

    fleet = load(config)
    fleet.images["moray"] = "changed"

    assert config == before


@pytest.mark.parametrize(
    "config, fragment",
    [
        ({"servers": [mkserver("metadata", 0, 0)]}, "nshards"),
        ({"nshards": 3.2, "servers": [mkserver("metadata", 0, 0)]}, "nshards"),
        ({"nshards": -3, "servers": [mkserver("metadata", 0, 0)]}, "nshards"),
        ({"nshards": 1025, "servers": [mkserver("metadata", 0, 0)]}, "nshards"),
        ({"nshards": "3", "servers": [mkserver("metadata", 0, 0)]}, "nshards"),
        ({"nshards": 3}, "servers"),
        ({"nshards": 3, "servers": 7}, "servers"),
        ({"nshards": 3, "servers": []}, "servers"),
        ({"nshards": 3, "servers": ["foobar"]}, "servers.0"),
        ({"nshards": 3, "servers": [{"type": "junk"}]}, "servers.0.type"),
        ({"nshards": 3, "servers": [{}]}, "servers.0.type"),
        ({"nshards": 3, "servers": [{"type": "metadata"}]}, "servers.0.uuid"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "junkuuid"}]}, "servers.0.memory"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": 17, "memory": 3}]}, "servers.0.uuid"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "", "memory": 3}]}, "servers.0.uuid"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "u", "memory": {}}]}, "servers.0.memory"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "u", "memory": 0}]}, "servers.0.memory"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "u", "memory": 3, "rack": ""}]}, "servers.0.rack"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "u", "memory": 3, "color": "red"}]}, "servers.0.color"),
        ({"nshards": 3, "servers": [mkserver("metadata", 0, 0)], "extra": 1}, "extra"),
        ({"nshards": 3, "servers": [mkserver("metadata", 0, 0)], "images": []}, "images"),
        ({"nshards": 3, "servers": [mkserver("metadata", 0, 0)], "images": None}, "images"),
        ({"nshards": 3, "servers": [{"type": "metadata", "uuid": "u", "memory": 3.5}]}, "servers.0.memory"),
        ({"nshards": 3, "servers": [mkserver("metadata", 0, 0)], "images": {"webapi": 5}}, "images.webapi"),
    ],
)
def test_schema_errors(config, fragment):
    assert fragment in schema_error(config)


def test_non_object_description_is_a_schema_error():
    assert "fleet description" in schema_error(True)


def test_unknown_image_service_is_rejected():
    msg = schema_error(
        {
            "nshards": 1,
            "images": {"bogus": "IMAGE"},
            "servers": [mkserver("metadata", 0, 0), mkserver("storage", 0, 0)],
        }
    )
    assert msg == "images[bogus]: invalid service name"


def test_duplicate_server():
    with pytest.raises(ConfigStructureError) as excinfo:
        load(
            {
                "nshards": 3,
                "servers": [
                    mkserver("metadata", 0, 0),
                    mkserver("storage", 0, 0),
                    mkserver("metadata", 0, 0),
                ],
            }
        )
    assert "server_r00_metadata00" in str(excinfo.value)
    assert "duplicate server" in str(excinfo.value)


def test_same_rack_in_different_azs():
    with pytest.raises(ConfigStructureError) as excinfo:
        load(
            {
                "nshards": 3,
                "servers": [
                    {"type": "metadata", "uuid": "s000", "rack": "rack0", "az": "az1", "memory": 128},
                    {"type": "storage", "uuid": "s001", "rack": "rack0", "az": "az2", "memory": 128},
                ],
            }
        )
    msg = str(excinfo.value)
    assert "az1" in msg
    assert "az2" in msg
    assert "rack0" in msg


def test_loader_is_single_use():
    loader = FleetConfigLoader()
    loader.load_directly({"nshards": 1, "servers": [mkserver("metadata", 0, 0)]})

    with pytest.raises(RuntimeError):
        loader.load_directly({"nshards": 1, "servers": [mkserver("metadata", 0, 0)]})


def test_failed_loader_is_still_single_use():
    loader = FleetConfigLoader()
    with pytest.raises(FleetConfigError):
        loader.load_directly({"nshards": 0, "servers": []})

    with pytest.raises(RuntimeError):
        loader.load_directly({"nshards": 1, "servers": [mkserver("metadata", 0, 0)]})


def test_load_from_file(tmp_path):
    path = tmp_path / "fleet.json"
    config = {
        "nshards": 3,
        "servers": [
            mkserver("metadata", 0, 0),
            mkserver("metadata", 1, 0),
            mkserver("metadata", 2, 0),
            mkserver("storage", 0, 0),
            mkserver("storage", 1, 0),
        ],
    }
    path.write_text(json.dumps(config, indent=4), encoding="utf-8")

    fleet = FleetConfigLoader().load_from_file(path)

    assert fleet.nshards == 3
    assert fleet.rack_names == ["rack_r00", "rack_r01", "rack_r02"]
    assert len(fleet.server_names) == 5


@pytest.mark.parametrize("text", ["", "}"])
def test_load_from_file_parse_errors(tmp_path, text):
    path = tmp_path / "fleet.json"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigParseError) as excinfo:
        FleetConfigLoader().load_from_file(path)
    assert str(excinfo.value).startswith("parse file: ")


def test_load_from_file_wrong_document_type(tmp_path):
    path = tmp_path / "fleet.json"
    path.write_text("true", encoding="utf-8")

    with pytest.raises(ConfigSchemaError):
        FleetConfigLoader().load_from_file(path)


def test_load_from_missing_file(tmp_path):
    with pytest.raises(ConfigParseError) as excinfo:
        FleetConfigLoader().load_from_file(tmp_path / "missing.json")
    assert "missing.json" in str(excinfo.value)


def test_fleet_dump_is_stable():
    config = {
        "nshards": 2,
        "servers": [
            mkserver("metadata", 1, 0, az="az1"),
            mkserver("metadata", 0, 0, az="az1"),
            mkserver("storage", 0, 0, az="az1"),
        ],
    }
    first = fleet_config_to_json(load(config))
    second = fleet_config_to_json(load(config))

    assert first == second
    assert json.loads(json.dumps(first)) == first
    assert [r["name"] for r in first["racks"]] == ["rack_r00", "rack_r01"]
    assert first["servers"][0] == {
        "uuid": "server_r01_metadata00",
        "rack": "rack_r01",
        "memory": 64,
        "role": "metadata",
    }
    assert first["azs"] == [
        {"name": "az1", "rack_names": ["rack_r00", "rack_r01"], "nmetadata": 2, "nstorage": 1}
    ]


def test_load_directly_accepts_read_only_mapping():
    config = types.MappingProxyType(
        {"nshards": 1, "servers": [mkserver("metadata", 0, 0), mkserver("storage", 0, 0)]}
    )
    fleet = load(config)

    assert fleet.nshards == 1
    assert fleet.servers_storage == ["server_r00_storage00"]


def test_integral_floats_count_as_integers():
    server = mkserver("storage", 0, 0)
    server["memory"] = 64.0
    fleet = load({"nshards": 2.0, "servers": [mkserver("metadata", 0, 0), server]})

    assert fleet.nshards == 2
    assert isinstance(fleet.nshards, int)
    assert fleet.servers["server_r00_storage00"].memory == 64
    assert isinstance(fleet.servers["server_r00_storage00"].memory, int)


def test_load_from_file_invalid_utf8(tmp_path):
    path = tmp_path / "fleet.json"
    path.write_bytes(b'{"nshards": 1, "servers": [\xff]}')

    with pytest.raises(ConfigParseError) as excinfo:
        FleetConfigLoader().load_from_file(path)
    assert str(excinfo.value).startswith("parse file: ")
