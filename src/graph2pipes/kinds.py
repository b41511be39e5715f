"""Per-type strategy records describing how one node kind is (de)serialized."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .ir import GraphNode, OutputBinding, PipelineNodeDef

FAN_IN = "fan_in"
AGGREGATE = "aggregate"
SINGLE = "single"

SCALAR = "scalar"
LIST = "list"
BRANCH = "branch"
FIXED = "fixed"
CUSTOM = "custom"


class Lane(IntEnum):
    """Auto-layout columns, left to right."""

    INGRESS = 0
    INPUT = 1
    PROCESSING = 2
    EGRESS = 3


@dataclass(frozen=True)
class PortSpec:
    key: str                              # wire base key in node_input
    handle: Optional[str] = None          # editor handle id when it differs from key
    mode: str = FAN_IN
    pattern: Optional[str] = None         # regex for a dynamic handle family (output0, output1, ...)
    literal_field: Optional[str] = None   # editor field holding a literal value for this port
    placeholders: bool = False            # keep unconnected declared handles as is_empty slots

    @property
    def editor_handle(self) -> str:
        return self.handle or self.key


@dataclass(frozen=True)
class OutputSpec:
    mode: str = SCALAR
    value_type: str = "string"
    data: Any = None
    # LIST
    list_field: Optional[str] = None
    id_key: str = "id"
    name_key: str = "name"
    fallback: str = "a{index}"
    index_base: int = 1
    # FIXED: key -> (type, data)
    fixed: Tuple[Tuple[str, str, Any], ...] = ()
    # CUSTOM
    build: Optional[Callable[[GraphNode], Dict[str, OutputBinding]]] = None

    def item_key(self, item: Dict[str, Any], position: int) -> str:
        return item.get(self.id_key) or self.fallback.format(index=position + self.index_base)


Encoder = Callable[[GraphNode], Dict[str, Any]]
Decoder = Callable[[PipelineNodeDef], Dict[str, Any]]


@dataclass(frozen=True)
class NodeKind:
    type: str
    operator: str
    category: str
    lane: Lane
    encode: Optional[Encoder] = None
    decode: Optional[Decoder] = None
    ports: Tuple[PortSpec, ...] = ()
    outputs: OutputSpec = field(default_factory=OutputSpec)
    label: Union[str, Callable[[PipelineNodeDef], str], None] = None
    field_label: Optional[Callable[[GraphNode, str], Optional[str]]] = None
    accepts_inputs: bool = True
    legacy_types: Tuple[str, ...] = ()
    legacy_operators: Tuple[str, ...] = ()

    def display_label(self, definition: PipelineNodeDef) -> str:
        if callable(self.label):
            return self.label(definition)
        return self.label or self.operator
