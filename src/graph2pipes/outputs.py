"""Derive a node's ``node_output`` map from its own configuration."""
from __future__ import annotations
import copy
from typing import Any, Dict, List

from .ir import GraphNode, OutputBinding
from .kinds import BRANCH, CUSTOM, FIXED, LIST, OutputSpec
from .registry import get_kind

DEFAULT_OUTPUT = "output"


def list_items(node: GraphNode, spec: OutputSpec) -> List[Dict[str, Any]]:
    items = node.data.get(spec.list_field) if spec.list_field else None
    return [i for i in items if isinstance(i, dict)] if isinstance(items, list) else []


def synthesize_outputs(node: GraphNode) -> Dict[str, OutputBinding]:
    kind = get_kind(node.type)
    if kind is None:
        # unknown kinds: single output, as the backend expects for any operator
        return {DEFAULT_OUTPUT: OutputBinding(node_id=node.id, type="string", data={})}
    spec = kind.outputs

    if spec.mode == LIST:
        items = list_items(node, spec)
        if not items:
            return {DEFAULT_OUTPUT: OutputBinding(node_id=node.id, type=spec.value_type)}
        return {spec.item_key(item, i): OutputBinding(node_id=node.id, type=spec.value_type)
                for i, item in enumerate(items)}

    if spec.mode == BRANCH:
        return {
            "true": OutputBinding(node_id=node.id, type=spec.value_type, data=True),
            "false": OutputBinding(node_id=node.id, type=spec.value_type, data=False),
        }

    if spec.mode == FIXED:
        return {key: OutputBinding(node_id=node.id, type=t, data=copy.deepcopy(data))
                for key, t, data in spec.fixed}

    if spec.mode == CUSTOM and spec.build is not None:
        return spec.build(node)

    return {DEFAULT_OUTPUT: OutputBinding(node_id=node.id, type=spec.value_type, data=copy.deepcopy(spec.data))}
