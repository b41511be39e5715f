import pytest

from graph2pipes.ir import GraphEdge
from graph2pipes.ports import group_edges_by_base_handle, key_to_handle, normalize_handle


@pytest.mark.parametrize("raw, node_type, expected", [
    ("input", "browserExtensionOutput", "output0"),
    ("output1", "browserExtensionOutput", "output1"),
    ("input", "webhook_output", "text0"),
    ("text0_2", "webhook_output", "text0"),
    ("context-input", "aiCustomInput", "context"),
    ("context3", "aiCustomInput", "context"),
    ("prompt-input", "aiCustomInput", "prompt"),
    ("input", "knowledgeRetrieval", "passage"),
    ("context-input", "extract_data", "context_to_extract_from"),
    ("input_data", "aim_ml", "context"),
    (None, "httpRequest", "input"),
])
def test_normalize_handle(raw, node_type, expected):
    assert normalize_handle(raw, node_type) == expected


def test_normalize_keeps_unrecognised_suffixes():
    assert normalize_handle("foo_2", "aiCustomInput") == "foo_2"
    assert normalize_handle("foo_2", "future_node_kind") == "foo_2"
    # single-connection ports never absorb indexed keys
    assert normalize_handle("prompt_2", "aiCustomInput") == "prompt_2"
    assert normalize_handle("prompt-input_1", "aiCustomInput") == "prompt-input_1"


def test_grouping_is_sorted_and_scoped_to_target():
    edges = [
        GraphEdge(source="C", target="W", targetHandle="text0"),
        GraphEdge(source="A", target="W", targetHandle="text0"),
        GraphEdge(source="B", target="W", targetHandle="input"),
        GraphEdge(source="A", target="W", targetHandle="text1"),
        GraphEdge(source="A", target="other", targetHandle="text0"),
    ]
    groups = group_edges_by_base_handle(edges, "W", "webhook_output")
    assert list(groups) == ["text0", "text1"]
    assert [e.source for e in groups["text0"]] == ["A", "B", "C"]
    assert [e.source for e in groups["text1"]] == ["A"]


@pytest.mark.parametrize("node_type, key, expected", [
    ("aiCustomInput", "context1", "context1"),
    ("aiCustomInput", "prompt", "prompt-input"),
    ("line_send_message", "message2", "message"),
    ("extract_data", "context_to_extract_from", "context-input"),
    ("aim_ml", "context", "input"),
    ("browserExtensionOutput", "output1_2", "output1"),
    ("webhook_output", "text0", "text0"),
    ("httpRequest", "input_1", "input"),
])
def test_key_to_handle(node_type, key, expected):
    assert key_to_handle(node_type, key) == expected


def test_key_to_handle_for_unknown_types_uses_siblings():
    assert key_to_handle("future_node_kind", "foo_1", ["foo_1", "foo_2"]) == "foo"
    assert key_to_handle("future_node_kind", "foo_1", ["foo_1"]) == "foo_1"
    assert key_to_handle("future_node_kind", "foo_1", ["foo", "foo_1", "foo_2"]) == "foo_1"
