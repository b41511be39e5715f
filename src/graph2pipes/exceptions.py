"""Errors and anomaly tags for graph2pipes."""
from enum import Enum


class Graph2PipesError(Exception):
    """Base exception for all graph2pipes errors."""
    pass


class StructuralInputError(Graph2PipesError):
    """Raised when a pipeline document has no ``flow_pipeline`` array."""
    pass


class ConfigError(Graph2PipesError):
    """Raised when a settings file cannot be read or validated."""
    pass


class Anomaly(str, Enum):
    """Per-element problems that are recovered from and only logged."""

    MISSING_SOURCE_NODE = "missing_source_node"
    UNKNOWN_NODE_TYPE = "unknown_node_type"
    MALFORMED_LEGACY_FIELD = "malformed_legacy_field"
    INVALID_DEFINITION = "invalid_definition"
    DUPLICATE_NODE = "duplicate_node"
    BINDING_COLLISION = "binding_collision"

    def __str__(self) -> str:
        return self.value
