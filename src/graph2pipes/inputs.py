"""Derive a node's ``node_input`` map from incoming edges and literal field values.

Export must survive graphs captured mid-edit, so nothing here raises for a
bad edge: the binding is dropped and the reason logged.
"""
from __future__ import annotations
import copy
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import Anomaly
from .ir import DEFAULT_SOURCE_HANDLE, GraphEdge, GraphNode, InputBinding
from .kinds import AGGREGATE, LIST, SINGLE, PortSpec
from .nodes import handle_ids
from .outputs import list_items
from .ports import group_edges_by_base_handle, normalize_handle, port_for
from .registry import get_kind

logger = logging.getLogger(__name__)

VALUE_TYPE = "string"

NodesArg = Union[Mapping[str, GraphNode], Sequence[GraphNode]]


def _as_node_map(nodes: NodesArg) -> Mapping[str, GraphNode]:
    if isinstance(nodes, Mapping):
        return nodes
    return {n.id: n for n in nodes}


def resolve_return_name(source: GraphNode, source_handle: Optional[str]) -> str:
    """Human-readable label for the value ``source`` emits on ``source_handle``."""
    handle = source_handle or DEFAULT_SOURCE_HANDLE
    kind = get_kind(source.type)
    if kind is not None:
        if kind.field_label is not None:
            name = kind.field_label(source, handle)
            if name:
                return name
        spec = kind.outputs
        if spec.mode == LIST:
            for i, item in enumerate(list_items(source, spec)):
                if spec.item_key(item, i) == handle and item.get(spec.name_key):
                    return item[spec.name_key]
    return handle


def _indexed(base: str, group: List[GraphEdge], port: Optional[PortSpec], node_id: str) -> List[Tuple[str, GraphEdge]]:
    mode = port.mode if port is not None else None
    if mode == AGGREGATE:
        return [(f"{base}{i}", e) for i, e in enumerate(group)]
    if mode == SINGLE:
        if len(group) > 1:
            logger.warning("Port '%s' of %s takes one connection, ignoring %d extra",
                           base, node_id, len(group) - 1)
        return [(base, group[0])]
    if len(group) == 1:
        return [(base, group[0])]
    return [(f"{base}_{i}", e) for i, e in enumerate(group, 1)]


def bind_inputs(node: GraphNode, edges: Iterable[GraphEdge], nodes: NodesArg,
                value_type: str = VALUE_TYPE) -> Dict[str, InputBinding]:
    node_map = _as_node_map(nodes)
    kind = get_kind(node.type)
    incoming = [e for e in edges if e.target == node.id]

    if kind is not None and not kind.accepts_inputs:
        if incoming:
            logger.debug("%s (%s) takes no inputs, ignoring %d edge(s)", node.id, node.type, len(incoming))
        return {}

    live = []
    for edge in incoming:
        if edge.source not in node_map:
            logger.warning("[%s] edge %s: source node '%s' not found, binding skipped",
                           Anomaly.MISSING_SOURCE_NODE, edge.id, edge.source)
            continue
        live.append(edge)

    bindings: Dict[str, InputBinding] = {}
    groups = group_edges_by_base_handle(live, node.id, node.type)
    for base, group in groups.items():
        for key, edge in _indexed(base, group, port_for(node.type, base), node.id):
            if key in bindings:
                logger.warning("[%s] %s: input key '%s' already bound, skipping edge %s",
                               Anomaly.BINDING_COLLISION, node.id, key, edge.id)
                continue
            bindings[key] = InputBinding(
                node_id=edge.source,
                output_name=edge.source_handle or DEFAULT_SOURCE_HANDLE,
                type=value_type,
                return_name=resolve_return_name(node_map[edge.source], edge.source_handle),
            )

    if kind is None:
        return bindings

    for port in kind.ports:
        if port.literal_field and port.key not in groups:
            value = node.data.get(port.literal_field)
            if value:
                bindings[port.key] = InputBinding(node_id="", output_name="", type=value_type,
                                                  data=copy.deepcopy(value))
        if port.placeholders:
            for hid in handle_ids(node):
                base = normalize_handle(hid, node.type)
                if base in groups or base in bindings:
                    continue
                bindings[base] = InputBinding(node_id="", output_name="", type=value_type,
                                              data="", is_empty=True, return_name="")
    return bindings
