"""Bidirectional mapping between editor node types and pipeline operators.

Unknown keys are never an error: they map to themselves so that node kinds
introduced by a newer backend survive a load/save cycle unchanged.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, Optional

from .exceptions import Anomaly
from .kinds import Lane, NodeKind
from .nodes import BUILTIN_KINDS

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "advanced"


class NodeTypeRegistry:
    def __init__(self, kinds: Iterable[NodeKind] = ()):
        self._by_type: Dict[str, NodeKind] = {}
        self._by_operator: Dict[str, NodeKind] = {}
        for kind in kinds:
            self.register(kind)

    def register(self, kind: NodeKind) -> None:
        for t in (kind.type, *kind.legacy_types):
            self._by_type[t] = kind
        for op in (kind.operator, *kind.legacy_operators):
            self._by_operator[op] = kind

    def get(self, node_type: str) -> Optional[NodeKind]:
        return self._by_type.get(node_type)

    def for_operator(self, operator: str) -> Optional[NodeKind]:
        return self._by_operator.get(operator)

    def type_to_operator(self, node_type: str) -> str:
        kind = self.get(node_type)
        if kind is None:
            logger.debug("[%s] no operator for type '%s', passing through", Anomaly.UNKNOWN_NODE_TYPE, node_type)
            return node_type
        return kind.operator

    def operator_to_type(self, operator: str) -> str:
        kind = self.for_operator(operator)
        if kind is None:
            logger.debug("[%s] no type for operator '%s', passing through", Anomaly.UNKNOWN_NODE_TYPE, operator)
            return operator
        return kind.type

    def type_to_category(self, node_type: str) -> str:
        kind = self.get(node_type)
        return kind.category if kind else DEFAULT_CATEGORY

    def lane_for(self, node_type: str) -> Lane:
        kind = self.get(node_type)
        return kind.lane if kind else Lane.PROCESSING


registry = NodeTypeRegistry(BUILTIN_KINDS)


def get_kind(node_type: str) -> Optional[NodeKind]:
    return registry.get(node_type)


def register_kind(kind: NodeKind) -> None:
    registry.register(kind)


def type_to_operator(node_type: str) -> str:
    return registry.type_to_operator(node_type)


def operator_to_type(operator: str) -> str:
    return registry.operator_to_type(operator)


def type_to_category(node_type: str) -> str:
    return registry.type_to_category(node_type)


def lane_for(node_type: str) -> Lane:
    return registry.lane_for(node_type)
