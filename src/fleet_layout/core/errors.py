"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
ConfigParseError means the input was never readable as a document.
ConfigSchemaError means the document has the wrong shape.
ConfigStructureError means the servers contradict each other.

Layout generation does not raise for fleet shape problems.
Those are recorded on the Layout as fatal errors or warnings.
"""


class FleetConfigError(Exception):
    """Base class for all fleet description loading failures."""


class ConfigParseError(FleetConfigError):
    """Raised when the fleet description cannot be read or parsed."""


class ConfigSchemaError(FleetConfigError):
    """Raised when the fleet description does not match the schema."""


class ConfigStructureError(FleetConfigError):
    """Raised when servers, racks or availability zones are inconsistent."""
