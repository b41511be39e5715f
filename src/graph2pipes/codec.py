"""Editor field state <-> wire ``parameters``, dispatched by node kind."""
from __future__ import annotations
import copy
import logging
from typing import Any, Dict

from .exceptions import Anomaly
from .ir import GraphNode, PipelineNodeDef
from .params import param, unwrap
from .registry import get_kind, registry

logger = logging.getLogger(__name__)

# editor bookkeeping that is never a pipeline parameter
SYSTEM_KEYS = frozenset({"label", "category", "version", "node_input", "node_output"})


def encode_generic(node: GraphNode) -> Dict[str, Any]:
    return {
        key: param(copy.deepcopy(value))
        for key, value in node.data.items()
        if key not in SYSTEM_KEYS and not callable(value)
    }


def decode_generic(definition: PipelineNodeDef) -> Dict[str, Any]:
    return {key: copy.deepcopy(unwrap(entry)) for key, entry in definition.parameters.items()}


def encode(node: GraphNode) -> Dict[str, Any]:
    kind = get_kind(node.type)
    if kind is None:
        logger.debug("[%s] generic parameters for type '%s'", Anomaly.UNKNOWN_NODE_TYPE, node.type)
    encoder = kind.encode if kind and kind.encode else encode_generic
    return encoder(node)


def decode(definition: PipelineNodeDef) -> Dict[str, Any]:
    """Editor fields for one pipeline definition, plus its label and version."""
    kind = registry.for_operator(definition.operator)
    if kind is None:
        logger.info("[%s] operator '%s' is not known, keeping its parameters as-is",
                    Anomaly.UNKNOWN_NODE_TYPE, definition.operator)
    decoder = kind.decode if kind and kind.decode else decode_generic
    data = decoder(definition)
    data["label"] = kind.display_label(definition) if kind else definition.operator
    data["version"] = definition.version
    if kind is None:
        data["category"] = definition.category
    return data
