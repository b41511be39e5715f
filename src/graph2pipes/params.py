from __future__ import annotations
import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .exceptions import Anomaly
from .ir import GraphNode, PipelineNodeDef

logger = logging.getLogger(__name__)


def param(value: Any) -> Dict[str, Any]:
    return {"data": value}


def unwrap(entry: Any) -> Any:
    # older documents sometimes stored the bare value instead of {"data": value}
    if isinstance(entry, dict) and "data" in entry:
        return entry["data"]
    return entry


def read(parameters: Dict[str, Any], key: str, *legacy_keys: str, default: Any = None) -> Any:
    """Read ``key`` from wire parameters, falling back to legacy keys only when it is absent."""
    if key in parameters:
        return unwrap(parameters[key])
    for old in legacy_keys:
        if old in parameters:
            logger.warning("[%s] parameter '%s' missing, using legacy key '%s'",
                           Anomaly.MALFORMED_LEGACY_FIELD, key, old)
            return unwrap(parameters[old])
    return default


def as_number(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


@dataclass(frozen=True)
class ParamField:
    name: str                   # editor field
    key: str                    # wire parameter
    default: Any = None
    always: bool = False        # emit the default when the editor field is unset
    to_wire: Optional[Callable[[Any], Any]] = None


def mapped_codec(*fields: ParamField) -> Tuple[Callable[[GraphNode], Dict[str, Any]],
                                              Callable[[PipelineNodeDef], Dict[str, Any]]]:
    """Build an encode/decode pair for kinds whose parameters are a flat field rename."""

    def encode(node: GraphNode) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        for f in fields:
            value = node.data.get(f.name)
            if value is None or value == "":
                if not f.always:
                    continue
                value = f.default if value is None else value
            value = copy.deepcopy(value)
            params[f.key] = param(f.to_wire(value) if f.to_wire else value)
        return params

    def decode(definition: PipelineNodeDef) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields:
            value = read(definition.parameters, f.key)
            if value is None:
                value = f.default
            if value is not None:
                out[f.name] = copy.deepcopy(value)
        return out

    return encode, decode
