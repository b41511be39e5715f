import pytest

from graph2pipes.config import LayoutSettings, Settings
from graph2pipes.deserializer import auto_layout, deserialize
from graph2pipes.exceptions import StructuralInputError
from graph2pipes.ir import Graph, GraphEdge, GraphNode, Position
from graph2pipes.ports import normalize_handle
from graph2pipes.serializer import build_document, serialize_document


def _node(node_id, operator, x=0, y=0, **kw):
    return {"id": node_id, "operator": operator, "position_x": x, "position_y": y, **kw}


@pytest.mark.parametrize("document", [{}, {"flow_pipeline": "nodes"}, {"content": {}}, 42])
def test_missing_pipeline_is_structural_error(document):
    with pytest.raises(StructuralInputError):
        deserialize(document)


def test_accepts_bare_list_and_nested_content():
    pipeline = [_node("E", "end", 5, 5)]
    assert [n.id for n in deserialize(pipeline).nodes] == ["E"]
    assert [n.id for n in deserialize({"content": {"flow_pipeline": pipeline}}).nodes] == ["E"]


def test_invalid_and_duplicate_definitions_are_skipped():
    graph = deserialize({"flow_pipeline": [
        _node("E", "end", 5, 5),
        {"id": "no-operator"},
        "garbage",
        _node("E", "webhook", 9, 9),
    ]})
    assert [(n.id, n.type) for n in graph.nodes] == [("E", "end")]


def test_edges_rebuilt_from_bindings():
    graph = deserialize({"flow_pipeline": [
        _node("A", "basic_input", 10, 10),
        _node("B", "ask_ai", 300, 10, node_input={
            "context0": {"node_id": "A", "output_name": "output", "type": "string", "return_name": "topic"},
        }),
    ]})
    (edge,) = graph.edges
    assert (edge.source, edge.source_handle, edge.target, edge.target_handle) == ("A", "output", "B", "context0")
    assert edge.id == "A-B-context0-output"
    assert edge.label == "topic"


def test_literal_prompt_restored_to_field():
    graph = deserialize({"flow_pipeline": [
        _node("B", "ask_ai", 1, 1, parameters={"llm_id": {"data": 2}},
              node_input={"prompt": {"node_id": "", "output_name": "", "type": "string", "data": "Be brief"}}),
    ]})
    assert graph.nodes[0].data["promptText"] == "Be brief"
    assert graph.nodes[0].data["model"] == "2"
    assert graph.edges == []


def test_placeholders_and_missing_sources_make_no_edges():
    graph = deserialize({"flow_pipeline": [
        _node("O", "browser_extension_output", 1, 1, node_input={
            "output0": {"node_id": "ghost", "output_name": "output"},
            "output1": {"node_id": "", "output_name": "", "data": "", "is_empty": True},
        }),
    ]})
    assert graph.edges == []
    assert graph.nodes[0].data["inputHandles"] == [{"id": "output0"}, {"id": "output1"}]


def test_fan_in_keys_map_back_to_base_handle():
    graph = deserialize({"flow_pipeline": [
        _node("A", "basic_input", 1, 1),
        _node("B", "basic_input", 1, 200),
        _node("W", "webhook_output", 400, 1, node_input={
            "text0_1": {"node_id": "A", "output_name": "output"},
            "text0_2": {"node_id": "B", "output_name": "output"},
        }),
    ]})
    assert sorted((e.source, e.target_handle) for e in graph.edges) == [("A", "text0"), ("B", "text0")]
    assert len({e.id for e in graph.edges}) == 2


def test_auto_layout_by_lane():
    graph = deserialize({"flow_pipeline": [
        _node("hook", "webhook"), _node("in", "basic_input"), _node("ai1", "ask_ai"),
        _node("ai2", "ask_ai"), _node("done", "end"), _node("f", "future_node_kind"),
    ]})
    positions = {n.id: (n.position.x, n.position.y) for n in graph.nodes}
    assert positions == {
        "hook": (50, 50), "in": (350, 50), "ai1": (650, 50),
        "ai2": (650, 200), "done": (950, 50), "f": (650, 350),
    }


def test_auto_layout_is_deterministic():
    doc = {"flow_pipeline": [_node("a", "basic_input"), _node("b", "ask_ai"), _node("c", "end")]}
    assert deserialize(doc) == deserialize(doc)


def test_no_layout_when_any_node_is_placed():
    graph = deserialize({"flow_pipeline": [_node("a", "basic_input"), _node("b", "end", 500, 80)]})
    assert [(n.position.x, n.position.y) for n in graph.nodes] == [(0, 0), (500, 80)]


def test_layout_settings_apply():
    layout = LayoutSettings(origin_x=0, origin_y=0, x_spacing=100, y_spacing=10)
    placed = auto_layout([GraphNode(id="e", type="end"), GraphNode(id="x", type="end")], layout)
    assert [(n.position.x, n.position.y) for n in placed] == [(300, 0), (300, 10)]
    graph = deserialize([_node("e", "end")], settings=Settings(layout=layout))
    assert graph.nodes[0].position == Position(x=300, y=0)


def test_flow_metadata_kept():
    graph = deserialize({"flow_name": "demo", "flow_id": "flow_1",
                         "content": {"flow_type": "NORMAL", "headers": {"X": "1"}},
                         "flow_pipeline": []})
    assert graph.metadata == {"flow_name": "demo", "flow_id": "flow_1", "flow_type": "NORMAL",
                              "headers": {"X": "1"}}


def _mixed_graph() -> Graph:
    return Graph(
        nodes=[
            GraphNode(id="A", type="customInput", position=Position(x=50, y=50),
                      data={"fields": [{"inputName": "topic", "defaultValue": "cats"}]}),
            GraphNode(id="E", type="browserExtensionInput", position=Position(x=50, y=200),
                      data={"items": [{"id": "a1", "name": "Page", "icon": "document"}]}),
            GraphNode(id="B", type="aiCustomInput", position=Position(x=350, y=50),
                      data={"model": "2", "promptText": "Summarize"}),
            GraphNode(id="I", type="ifElse", position=Position(x=650, y=50),
                      data={"variableName": "x", "operator": "equals", "compareValue": "y"}),
            GraphNode(id="M", type="line_send_message", position=Position(x=950, y=50),
                      data={"messaging_type": "reply"}),
            GraphNode(id="W", type="webhook_output", position=Position(x=950, y=200),
                      data={"inputHandles": [{"id": "text0"}, {"id": "text1"}]}),
            GraphNode(id="F", type="future_node_kind", position=Position(x=650, y=200),
                      data={"category": "beta", "threshold": 0.5}),
        ],
        edges=[
            GraphEdge(source="A", target="B", targetHandle="context0"),
            GraphEdge(source="E", sourceHandle="a1", target="B", targetHandle="context1"),
            GraphEdge(source="B", target="I", targetHandle="input"),
            GraphEdge(source="I", sourceHandle="true", target="M", targetHandle="message"),
            GraphEdge(source="I", sourceHandle="false", target="M", targetHandle="message"),
            GraphEdge(source="A", target="W", targetHandle="text0"),
            GraphEdge(source="B", target="W", targetHandle="text0"),
            GraphEdge(source="E", sourceHandle="a1", target="W", targetHandle="text0"),
            GraphEdge(source="B", target="F", targetHandle="signal"),
        ],
    )


def _triples(graph: Graph):
    types = {n.id: n.type for n in graph.nodes}
    return sorted((e.source, e.source_handle, e.target, normalize_handle(e.target_handle, types[e.target]))
                  for e in graph.edges)


def test_round_trip_preserves_graph():
    original = _mixed_graph()
    restored = deserialize(serialize_document(original, flow_id="flow_1"))
    assert [(n.id, n.type) for n in restored.nodes] == [(n.id, n.type) for n in original.nodes]
    assert [n.position for n in restored.nodes] == [n.position for n in original.nodes]
    assert _triples(restored) == _triples(original)
    for before, after in zip(original.nodes, restored.nodes):
        for key, value in before.data.items():
            assert after.data[key] == value


def test_round_trip_document_is_stable():
    doc = build_document(_mixed_graph(), flow_id="flow_1").to_wire()
    again = build_document(deserialize(doc)).to_wire()
    assert again == doc


def test_unknown_operator_survives_round_trip():
    definition = _node("F", "future_node_kind", 40, 40, category="beta", version="2.0",
                       parameters={"threshold": {"data": 0.5}, "mode": {"data": "fast"}})
    (restored,) = build_document(deserialize([definition]), flow_id="x").to_wire()["flow_pipeline"]
    assert restored["operator"] == "future_node_kind"
    assert restored["category"] == "beta"
    assert restored["version"] == "2.0"
    assert restored["parameters"] == {"threshold": {"data": 0.5}, "mode": {"data": "fast"}}


def test_deserialize_ignores_settings_file_in_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "graph2pipes.yaml").write_text("layout: [1, 2\n")
    graph = deserialize([_node("e", "end")])
    assert graph.nodes[0].position == Position(x=950, y=50)


def test_decoded_data_does_not_share_document():
    columns = [{"name": "age", "type": "number"}]
    doc = {"flow_pipeline": [_node("X", "extract_data", 1, 1, parameters={"columns": {"data": columns}}),
                             _node("R", "router_switch", 1, 200,
                                   parameters={"routers": {"data": [{"router_id": "router0"}]}})]}
    x, r = deserialize(doc).nodes
    x.data["columns"].append({"name": "extra"})
    r.data["routers"].append({"router_id": "router1"})
    assert columns == [{"name": "age", "type": "number"}]
    assert doc["flow_pipeline"][1]["parameters"]["routers"]["data"] == [{"router_id": "router0"}]


def test_restored_literal_does_not_share_document():
    binding = {"node_id": "", "output_name": "", "data": ["Be brief"]}
    graph = deserialize([_node("B", "ask_ai", 1, 1, node_input={"prompt": binding})])
    graph.nodes[0].data["promptText"].append("and kind")
    assert binding["data"] == ["Be brief"]
