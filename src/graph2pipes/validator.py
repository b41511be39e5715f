from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import networkx as nx

from .documents import load_document
from .ir import PipelineDocument, PipelineNodeDef


def definitions_of(document: Union[PipelineDocument, Dict[str, Any]]) -> List[PipelineNodeDef]:
    if isinstance(document, PipelineDocument):
        return list(document.flow_pipeline)
    return [PipelineNodeDef.model_validate(d) for d in document.get("flow_pipeline") or []]


def binding_graph(defs: List[PipelineNodeDef]) -> nx.MultiDiGraph:
    g = nx.MultiDiGraph()
    g.add_nodes_from(d.id for d in defs)
    for d in defs:
        for key, b in d.node_input.items():
            if b.node_id and not b.is_empty:
                g.add_edge(b.node_id, d.id, key=key, output_name=b.output_name)
    return g


def validate_document(document: Union[PipelineDocument, Dict[str, Any]]) -> Tuple[bool, List[str]]:
    messages: List[str] = []
    ok = True
    defs = definitions_of(document)

    node_ids = [d.id for d in defs]
    # 1) Unique node ids
    if len(set(node_ids)) != len(node_ids):
        ok = False
        messages.append("ERR: Duplicate node IDs detected.")
    else:
        messages.append("OK: Node IDs are unique.")

    # 2) Bindings refer to existing nodes
    node_map = {d.id: d for d in defs}
    dangling = False
    for d in defs:
        for key, b in d.node_input.items():
            if b.node_id and not b.is_empty and b.node_id not in node_map:
                dangling = True
                messages.append(f"ERR: Input {d.id}.{key} references missing node '{b.node_id}'.")
    if dangling:
        ok = False
    else:
        messages.append("OK: All inputs reference existing nodes.")

    # 3) Bound outputs exist on their source
    unknown = False
    for d in defs:
        for key, b in d.node_input.items():
            src = node_map.get(b.node_id) if b.node_id and not b.is_empty else None
            if src is not None and b.output_name not in src.node_output:
                unknown = True
                messages.append(f"ERR: Input {d.id}.{key} reads '{b.output_name}', not an output of {b.node_id}.")
    if unknown:
        ok = False
    else:
        messages.append("OK: All inputs read declared outputs.")

    # 4) Acyclic check
    g = binding_graph([d for d in defs if d.id in node_map and node_map[d.id] is d])
    try:
        list(nx.topological_sort(g))
        messages.append("OK: Pipeline is acyclic.")
    except nx.NetworkXUnfeasible:
        ok = False
        messages.append("ERR: Cycle detected in the pipeline.")

    return ok, messages


def validate_document_from_file(path: Path) -> Tuple[bool, List[str]]:
    return validate_document(load_document(path))
