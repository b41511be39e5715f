"""Pipeline document -> graph, with auto-layout when positions are missing."""
from __future__ import annotations
import copy
import logging
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .codec import decode
from .config import LayoutSettings, Settings
from .exceptions import Anomaly, StructuralInputError
from .ir import DEFAULT_SOURCE_HANDLE, Graph, GraphEdge, GraphNode, PipelineDocument, PipelineNodeDef, Position, make_edge_id
from .ports import key_to_handle, normalize_handle, port_for
from .registry import get_kind, lane_for, operator_to_type

logger = logging.getLogger(__name__)

DocumentArg = Union[Mapping[str, Any], PipelineDocument, Sequence[Any]]


def _pipeline_of(document: DocumentArg) -> Sequence[Any]:
    if isinstance(document, PipelineDocument):
        return document.flow_pipeline
    if isinstance(document, Mapping):
        pipeline = document.get("flow_pipeline")
        if pipeline is None and isinstance(document.get("content"), Mapping):
            pipeline = document["content"].get("flow_pipeline")
    else:
        pipeline = document
    if not isinstance(pipeline, (list, tuple)):
        raise StructuralInputError("Pipeline document has no 'flow_pipeline' array")
    return pipeline


def _metadata(document: DocumentArg) -> Dict[str, Any]:
    if isinstance(document, PipelineDocument):
        document = document.to_wire()
    if not isinstance(document, Mapping):
        return {}
    meta = {k: document[k] for k in ("flow_name", "flow_id") if document.get(k) is not None}
    content = document.get("content")
    if isinstance(content, Mapping):
        if content.get("flow_type") is not None:
            meta["flow_type"] = content["flow_type"]
        if isinstance(content.get("headers"), Mapping):
            meta["headers"] = dict(content["headers"])
    return meta


def _definitions(pipeline: Sequence[Any]) -> List[PipelineNodeDef]:
    defs: List[PipelineNodeDef] = []
    seen = set()
    for i, raw in enumerate(pipeline):
        try:
            d = raw if isinstance(raw, PipelineNodeDef) else PipelineNodeDef.model_validate(raw)
        except ValidationError as e:
            logger.warning("[%s] pipeline entry %d skipped: %s", Anomaly.INVALID_DEFINITION, i, e)
            continue
        if d.id in seen:
            logger.warning("[%s] node id '%s' repeated, keeping the first", Anomaly.DUPLICATE_NODE, d.id)
            continue
        seen.add(d.id)
        defs.append(d)
    return defs


def to_graph_node(definition: PipelineNodeDef) -> GraphNode:
    node_type = operator_to_type(definition.operator)
    data = decode(definition)
    if get_kind(node_type) is not None:
        for key, binding in definition.node_input.items():
            if not binding.is_literal or binding.data is None:
                continue
            port = port_for(node_type, normalize_handle(key, node_type))
            if port is not None and port.literal_field:
                data[port.literal_field] = copy.deepcopy(binding.data)
    return GraphNode(
        id=definition.id,
        type=node_type,
        position=Position(x=definition.position_x, y=definition.position_y),
        data=data,
    )


def edges_for(definition: PipelineNodeDef, node_ids) -> List[GraphEdge]:
    node_type = operator_to_type(definition.operator)
    keys = list(definition.node_input)
    edges = []
    for key, binding in definition.node_input.items():
        if not binding.node_id or binding.is_empty:
            continue
        if binding.node_id not in node_ids:
            logger.warning("[%s] %s.%s references '%s', edge skipped",
                           Anomaly.MISSING_SOURCE_NODE, definition.id, key, binding.node_id)
            continue
        source_handle = binding.output_name or DEFAULT_SOURCE_HANDLE
        edges.append(GraphEdge(
            id=make_edge_id(binding.node_id, definition.id, key, source_handle),
            source=binding.node_id,
            source_handle=source_handle,
            target=definition.id,
            target_handle=key_to_handle(node_type, key, keys),
            label=binding.return_name or None,
        ))
    return edges


def needs_layout(nodes: Sequence[GraphNode]) -> bool:
    return bool(nodes) and all(n.position.is_origin() for n in nodes)


def auto_layout(nodes: Sequence[GraphNode], layout: Optional[LayoutSettings] = None) -> List[GraphNode]:
    """Place nodes in four lanes (ingress, input, processing, egress), top to bottom in input order."""
    layout = layout or LayoutSettings()
    rows: Dict[int, int] = defaultdict(int)
    placed = []
    for node in nodes:
        lane = lane_for(node.type)
        position = Position(x=layout.origin_x + int(lane) * layout.x_spacing,
                            y=layout.origin_y + rows[lane] * layout.y_spacing)
        rows[lane] += 1
        placed.append(node.model_copy(update={"position": position}))
    return placed


def deserialize(document: DocumentArg, settings: Optional[Settings] = None) -> Graph:
    settings = settings or Settings()
    nodes, defs = [], []
    for d in _definitions(_pipeline_of(document)):
        try:
            nodes.append(to_graph_node(d))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("[%s] node %s (%s) could not be decoded, omitted: %s",
                           Anomaly.INVALID_DEFINITION, d.id, d.operator, e)
            continue
        defs.append(d)
    node_ids = {n.id for n in nodes}
    edges = [e for d in defs for e in edges_for(d, node_ids)]
    if needs_layout(nodes):
        logger.debug("All %d node(s) at origin, applying auto-layout", len(nodes))
        nodes = auto_layout(nodes, settings.layout)
    logger.debug("Deserialized %d node(s), %d edge(s)", len(nodes), len(edges))
    return Graph(nodes=nodes, edges=edges, metadata=_metadata(document))
