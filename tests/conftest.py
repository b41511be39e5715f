import pytest

from graph2pipes.ir import Graph, GraphEdge, GraphNode, Position


@pytest.fixture
def topic_graph() -> Graph:
    """An input node feeding an AI node's context port."""
    return Graph(
        nodes=[
            GraphNode(id="A", type="customInput", position=Position(x=10, y=20),
                      data={"fields": [{"inputName": "topic", "defaultValue": "cats"}]}),
            GraphNode(id="B", type="aiCustomInput", position=Position(x=300, y=20),
                      data={"model": "1"}),
        ],
        edges=[GraphEdge(source="A", sourceHandle="output", target="B", targetHandle="context0")],
    )
