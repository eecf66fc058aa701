"""
Fleet description schema.

Schema example
{
  "nshards": 2,
  "images": {"webapi": "WEBAPI_IMAGE0"},
  "servers": [
    {"type": "metadata", "uuid": "cn0", "memory": 64, "rack": "r0", "az": "us-east-1"},
    {"type": "storage", "uuid": "cn1", "memory": 256, "rack": "r1", "az": "us-east-1"}
  ]
}

memory is in gigabytes. rack and az are optional.
Validation is strict: integers must be integers, unknown keys are rejected.
An integral json number such as 64.0 counts as an integer.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from fleet_layout.fabric.roles import service_name_is_valid

NonEmptyStr = Annotated[str, Field(min_length=1)]


def _integral_float(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


WholeNumber = Annotated[int, BeforeValidator(_integral_float)]


class ServerDescription(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["metadata", "storage"]
    uuid: str = Field(min_length=1)
    memory: WholeNumber = Field(ge=1, le=1024)
    rack: Optional[NonEmptyStr] = None
    az: Optional[NonEmptyStr] = None


class FleetDescription(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    nshards: WholeNumber = Field(ge=1, le=1024)
    servers: List[ServerDescription] = Field(min_length=1)
    images: Dict[str, str] = Field(default_factory=dict)

    @field_validator("images")
    @classmethod
    def _known_services(cls, images: Dict[str, str]) -> Dict[str, str]:
        for name in images:
            if not service_name_is_valid(name):
                raise ValueError(f"images[{name}]: invalid service name")
        return images


def describe_validation_error(exc: ValidationError) -> str:
    """
    Render the first validation problem as one line.

    Location is joined with dots, for example servers.0.memory.
    """
    first = exc.errors()[0]
    if first["type"] == "value_error":
        return str(first["ctx"]["error"])

    loc = ".".join(str(part) for part in first["loc"])
    if not loc:
        return f"fleet description: {first['msg']}"
    return f'property "{loc}": {first["msg"]}'
