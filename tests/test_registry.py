import graph2pipes.registry as registry_module
from graph2pipes.ir import Graph, GraphNode
from graph2pipes.kinds import LIST, Lane, NodeKind, OutputSpec
from graph2pipes.nodes import BUILTIN_KINDS
from graph2pipes.registry import (NodeTypeRegistry, get_kind, lane_for, operator_to_type, register_kind,
                                  type_to_category, type_to_operator)
from graph2pipes.serializer import serialize


def test_builtin_mappings():
    assert type_to_operator("customInput") == "basic_input"
    assert type_to_operator("aiCustomInput") == "ask_ai"
    assert operator_to_type("browser_extension_output") == "browserExtensionOutput"
    assert operator_to_type("knowledge_retrieval") == "knowledgeRetrieval"
    assert type_to_category("ifElse") == "logic"
    assert type_to_category("browserExtensionInput") == "starter"


def test_legacy_names_resolve_to_current_kind():
    assert type_to_operator("input") == "basic_input"
    assert type_to_operator("http") == "http_request"
    assert operator_to_type("http") == "httpRequest"
    assert operator_to_type("line") == "line_webhook_input"
    assert get_kind("ai") is get_kind("aiCustomInput")


def test_unknown_types_pass_through():
    assert type_to_operator("future_node_kind") == "future_node_kind"
    assert operator_to_type("future_node_kind") == "future_node_kind"
    assert type_to_category("future_node_kind") == "advanced"
    assert get_kind("future_node_kind") is None


def test_lanes():
    assert lane_for("webhook") == Lane.INGRESS
    assert lane_for("customInput") == Lane.INPUT
    assert lane_for("aiCustomInput") == Lane.PROCESSING
    assert lane_for("end") == Lane.EGRESS
    assert lane_for("future_node_kind") == Lane.PROCESSING


def test_register_extra_kind():
    reg = NodeTypeRegistry()
    reg.register(NodeKind("sentiment", "sentiment_analysis", "advanced", Lane.PROCESSING,
                          legacy_operators=("sentiment_v1",)))
    assert reg.type_to_operator("sentiment") == "sentiment_analysis"
    assert reg.operator_to_type("sentiment_v1") == "sentiment"
    # the module-level registry is untouched
    assert type_to_operator("sentiment") == "sentiment"


def test_registered_kind_is_used_by_serialize(monkeypatch):
    monkeypatch.setattr(registry_module, "registry", NodeTypeRegistry(BUILTIN_KINDS))
    register_kind(NodeKind("sentiment", "sentiment_analysis", "ai", Lane.PROCESSING,
                           outputs=OutputSpec(LIST, list_field="labels", fallback="label{index}")))
    node = GraphNode(id="S", type="sentiment", data={"labels": [{"name": "positive"}, {"name": "negative"}]})
    (d,) = serialize(Graph(nodes=[node]))
    assert (d.operator, d.category) == ("sentiment_analysis", "ai")
    assert list(d.node_output) == ["label1", "label2"]
