from typing import Any, Dict, Union

import networkx as nx

from .ir import PipelineDocument
from .validator import binding_graph, definitions_of


def ascii_plan(document: Union[PipelineDocument, Dict[str, Any]]) -> str:
    defs = definitions_of(document)
    nxg = binding_graph(defs)
    try:
        order = list(nx.topological_sort(nxg))
        title = "# ASCII Plan (topological order)"
    except nx.NetworkXUnfeasible:
        order = [d.id for d in defs]
        title = "# ASCII Plan (document order, cycle detected)"

    node_map = {d.id: d for d in defs}
    lines = [title]
    for i, nid in enumerate([n for n in order if n in node_map], 1):
        node = node_map[nid]
        lines.append(f"{i:02d}. {node.id} [{node.operator}]")
        for key, b in node.node_input.items():
            if b.is_empty:
                lines.append(f"    ◌ {key}  (empty)")
            elif not b.node_id:
                lines.append(f"    ◀─ {key} = {b.data!r}")
            else:
                label = f", {b.return_name}" if b.return_name else ""
                lines.append(f"    ◀─ {key}  ({b.node_id}.{b.output_name}{label})")
    return "\n".join(lines)
