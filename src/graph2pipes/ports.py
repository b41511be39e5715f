"""Port/handle identity: legacy aliases, multi-fan-in suffixes and their inverse."""
from __future__ import annotations
import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from .ir import DEFAULT_TARGET_HANDLE, GraphEdge, make_edge_id
from .kinds import AGGREGATE, FAN_IN, PortSpec
from .registry import get_kind

__all__ = [
    "HANDLE_ALIASES",
    "normalize_handle",
    "port_for",
    "group_edges_by_base_handle",
    "key_to_handle",
    "make_edge_id",
]

# Legacy handle names, per editor type. Verified against saved documents; do
# not extend by pattern.
HANDLE_ALIASES: Dict[str, Dict[str, str]] = {
    "browserExtensionOutput": {"input": "output0"},
    "webhook_output": {"input": "text0"},
    "aiCustomInput": {"context-input": "context", "prompt": "prompt"},
    "knowledgeRetrieval": {"input": "passage"},
    "line_send_message": {"input": "message"},
    "extract_data": {"input": "context_to_extract_from"},
    "aim_ml": {"input_data": "context"},
}

_INDEXED = re.compile(r"(.+)_(\d+)")


def _ports(node_type: str):
    kind = get_kind(node_type)
    return kind.ports if kind else ()


def _aliases(node_type: str) -> Dict[str, str]:
    kind = get_kind(node_type)
    return HANDLE_ALIASES.get(kind.type if kind else node_type, {})


def _resolve(handle: str, node_type: str) -> Optional[str]:
    alias = _aliases(node_type).get(handle)
    if alias is not None:
        return alias
    ports = _ports(node_type)
    for port in ports:
        if port.pattern is None and handle in (port.key, port.editor_handle):
            return port.key
    for port in ports:
        if port.mode == AGGREGATE and re.fullmatch(re.escape(port.key) + r"\d+", handle):
            return port.key
        if port.pattern and re.fullmatch(port.pattern, handle):
            return handle
    return None


def port_for(node_type: str, base: str) -> Optional[PortSpec]:
    for port in _ports(node_type):
        if port.pattern:
            if re.fullmatch(port.pattern, base):
                return port
        elif port.key == base:
            return port
    return None


def normalize_handle(raw: Optional[str], node_type: str) -> str:
    """Map an editor handle or input key to its base key for ``node_type``.

    An ``<base>_<n>`` suffix is stripped only when ``<base>`` is a declared
    fan-in or aggregate port of the type; anything else comes back unchanged.
    """
    handle = raw or DEFAULT_TARGET_HANDLE
    base = _resolve(handle, node_type)
    if base is not None:
        return base
    m = _INDEXED.fullmatch(handle)
    if m:
        base = _resolve(m.group(1), node_type)
        port = port_for(node_type, base) if base is not None else None
        if port is not None and port.mode in (FAN_IN, AGGREGATE):
            return base
    return handle


def _edge_order(edge: GraphEdge):
    return (edge.source, edge.source_handle, edge.target_handle or "", edge.id or "")


def group_edges_by_base_handle(edges: Iterable[GraphEdge], node_id: str,
                               node_type: str) -> "OrderedDict[str, List[GraphEdge]]":
    groups: Dict[str, List[GraphEdge]] = {}
    for edge in edges:
        if edge.target != node_id:
            continue
        groups.setdefault(normalize_handle(edge.target_handle, node_type), []).append(edge)
    return OrderedDict((base, sorted(groups[base], key=_edge_order)) for base in sorted(groups))


def key_to_handle(node_type: str, key: str, sibling_keys: Iterable[str] = ()) -> str:
    """Inverse of the input-key scheme: the editor handle an input key was bound from."""
    sibling_keys = list(sibling_keys)
    base = normalize_handle(key, node_type)
    port = port_for(node_type, base)
    if port is not None:
        if port.pattern:
            return base
        if port.mode == AGGREGATE and port.handle is None:
            return key
        return port.editor_handle
    m = _INDEXED.fullmatch(key)
    if m:
        stem = m.group(1)
        siblings = [k for k in sibling_keys if k.startswith(stem + "_") and k[len(stem) + 1:].isdigit()]
        if len(siblings) > 1 and stem not in sibling_keys:
            return stem
    return key
