from __future__ import annotations
import copy
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional

DEFAULT_SOURCE_HANDLE = "output"
DEFAULT_TARGET_HANDLE = "input"


def make_edge_id(source: str, target: str, handle: str, source_handle: str) -> str:
    return f"{source}-{target}-{handle}-{source_handle or DEFAULT_SOURCE_HANDLE}"


def _as_coordinate(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


# --- editor side -----------------------------------------------------------

class Position(BaseModel):
    x: float = 0
    y: float = 0

    @field_validator("x", "y", mode="before")
    @classmethod
    def _coerce(cls, v):
        return _as_coordinate(v)

    def is_origin(self) -> bool:
        return self.x == 0 and self.y == 0


class GraphNode(BaseModel):
    id: str
    type: str
    position: Position = Field(default_factory=Position)
    data: Dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    source: str
    source_handle: str = Field(DEFAULT_SOURCE_HANDLE, alias="sourceHandle")
    target: str
    target_handle: Optional[str] = Field(None, alias="targetHandle")
    label: Optional[str] = None   # derived, recomputed on every export

    @field_validator("source_handle", mode="before")
    @classmethod
    def _default_source_handle(cls, v):
        return v or DEFAULT_SOURCE_HANDLE

    @model_validator(mode="after")
    def _derive_id(self):
        if not self.id:
            self.id = make_edge_id(self.source, self.target,
                                   self.target_handle or DEFAULT_TARGET_HANDLE,
                                   self.source_handle)
        return self


class Graph(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def node_map(self) -> Dict[str, GraphNode]:
        return {n.id: n for n in self.nodes}

    def with_node_data(self, node_id: str, **changes: Any) -> "Graph":
        """Return a copy of the graph with ``changes`` merged into one node's data.

        This is the single update path for editor-side field edits; the
        receiver and its nodes are left untouched.
        """
        if node_id not in self.node_map():
            raise KeyError(node_id)
        nodes = [
            n.model_copy(update={"data": {**copy.deepcopy(n.data), **changes}}) if n.id == node_id else n
            for n in self.nodes
        ]
        return self.model_copy(update={"nodes": nodes, "edges": list(self.edges),
                                       "metadata": dict(self.metadata)})


# --- pipeline (wire) side --------------------------------------------------

class InputBinding(BaseModel):
    node_id: str = ""
    output_name: str = ""
    type: str = "string"
    data: Any = None
    return_name: Optional[str] = None
    is_empty: Optional[bool] = None

    @field_validator("node_id", "output_name", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def is_literal(self) -> bool:
        return self.node_id == "" and not self.is_empty

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"node_id": self.node_id, "output_name": self.output_name, "type": self.type}
        if self.node_id == "":
            out["data"] = copy.deepcopy(self.data)
        if self.return_name is not None:
            out["return_name"] = self.return_name
        if self.is_empty:
            out["is_empty"] = True
        return out


class OutputBinding(BaseModel):
    node_id: str
    type: str = "string"
    data: Any = None

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"node_id": self.node_id, "type": self.type}
        if self.data is not None:
            out["data"] = copy.deepcopy(self.data)
        return out


class PipelineNodeDef(BaseModel):
    id: str
    category: str = "advanced"
    operator: str
    parameters: Dict[str, Any] = Field(default_factory=dict)   # name -> {"data": value}
    position_x: float = 0
    position_y: float = 0
    version: str = "0.0.1"
    node_input: Dict[str, InputBinding] = Field(default_factory=dict)
    node_output: Dict[str, OutputBinding] = Field(default_factory=dict)

    @field_validator("position_x", "position_y", mode="before")
    @classmethod
    def _coerce_position(cls, v):
        return _as_coordinate(v)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, v):
        return "0.0.1" if v is None else str(v)

    @field_validator("parameters", "node_input", "node_output", mode="before")
    @classmethod
    def _none_to_dict(cls, v):
        return {} if v is None else v

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "operator": self.operator,
            "parameters": copy.deepcopy(self.parameters),
            "position_x": self.position_x,
            "position_y": self.position_y,
            "version": self.version,
            "node_input": {k: b.to_wire() for k, b in self.node_input.items()},
            "node_output": {k: b.to_wire() for k, b in self.node_output.items()},
        }


class FlowContent(BaseModel):
    flow_type: str = "NORMAL"
    headers: Dict[str, Any] = Field(default_factory=dict)


class PipelineDocument(BaseModel):
    flow_name: str
    flow_id: str
    content: FlowContent = Field(default_factory=FlowContent)
    flow_pipeline: List[PipelineNodeDef] = Field(default_factory=list)

    def node_map(self) -> Dict[str, PipelineNodeDef]:
        return {n.id: n for n in self.flow_pipeline}

    def to_wire(self) -> Dict[str, Any]:
        return {
            "flow_name": self.flow_name,
            "flow_id": self.flow_id,
            "content": {"flow_type": self.content.flow_type, "headers": copy.deepcopy(self.content.headers)},
            "flow_pipeline": [n.to_wire() for n in self.flow_pipeline],
        }
