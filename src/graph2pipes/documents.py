from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .exceptions import StructuralInputError
from .ir import Graph, PipelineDocument

_YAML_SUFFIXES = {".yaml", ".yml"}


def _read(path: Path) -> Any:
    # YAML is a superset of JSON, so one loader covers both
    try:
        return yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise StructuralInputError(f"'{path}' is not valid JSON or YAML: {e}") from e


def _write(data: Any, path: Path):
    if path.suffix.lower() in _YAML_SUFFIXES:
        path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    else:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False))


def load_document(path: Path) -> Dict[str, Any]:
    data = _read(Path(path))
    if not isinstance(data, dict):
        raise StructuralInputError(f"'{path}' does not contain a pipeline document")
    return data


def save_document(document: Union[PipelineDocument, Dict[str, Any]], path: Path):
    if isinstance(document, PipelineDocument):
        document = document.to_wire()
    _write(document, Path(path))


def load_graph(path: Path) -> Graph:
    data = _read(Path(path))
    if not isinstance(data, dict):
        raise StructuralInputError(f"'{path}' does not contain an editor graph")
    return Graph(**data)


def save_graph(graph: Graph, path: Path):
    _write(graph.model_dump(by_alias=True), Path(path))
