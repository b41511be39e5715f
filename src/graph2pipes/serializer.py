"""Graph -> pipeline document."""
from __future__ import annotations
import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from .codec import encode
from .config import Settings
from .inputs import bind_inputs
from .ir import FlowContent, Graph, GraphEdge, GraphNode, PipelineDocument, PipelineNodeDef
from .outputs import synthesize_outputs
from .registry import get_kind, type_to_category, type_to_operator

logger = logging.getLogger(__name__)


def _category(node: GraphNode) -> str:
    if get_kind(node.type) is None and isinstance(node.data.get("category"), str):
        return node.data["category"]
    return type_to_category(node.type)


def serialize_node(node: GraphNode, edges: List[GraphEdge], nodes: Mapping[str, GraphNode],
                   settings: Settings) -> PipelineNodeDef:
    return PipelineNodeDef(
        id=node.id,
        category=_category(node),
        operator=type_to_operator(node.type),
        parameters=encode(node),
        position_x=node.position.x,
        position_y=node.position.y,
        version=str(node.data.get("version") or settings.default_version),
        node_input=bind_inputs(node, edges, nodes, value_type=settings.value_type),
        node_output=synthesize_outputs(node),
    )


def serialize(graph: Graph, settings: Optional[Settings] = None) -> List[PipelineNodeDef]:
    """One pipeline definition per graph node, in graph order. ``graph`` is not modified."""
    settings = settings or Settings()
    nodes = graph.node_map()
    pipeline = []
    for node in graph.nodes:
        try:
            pipeline.append(serialize_node(node, graph.edges, nodes, settings))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error("Could not serialize node %s (%s), omitting it: %s", node.id, node.type, e)
    logger.debug("Serialized %d of %d node(s)", len(pipeline), len(graph.nodes))
    return pipeline


def build_document(graph: Graph, flow_name: Optional[str] = None, flow_id: Optional[str] = None,
                   headers: Optional[Dict[str, Any]] = None,
                   settings: Optional[Settings] = None) -> PipelineDocument:
    settings = settings or Settings()
    meta = graph.metadata
    return PipelineDocument(
        flow_name=flow_name or meta.get("flow_name") or settings.default_flow_name,
        flow_id=flow_id or meta.get("flow_id") or f"flow_{int(time.time() * 1000)}",
        content=FlowContent(
            flow_type=meta.get("flow_type") or settings.flow_type,
            headers=dict(headers if headers is not None else meta.get("headers") or settings.default_headers),
        ),
        flow_pipeline=serialize(graph, settings),
    )


def serialize_document(graph: Graph, **kwargs: Any) -> Dict[str, Any]:
    return build_document(graph, **kwargs).to_wire()
