"""Built-in node kinds known to the editor.

Each ``NodeKind`` bundles the type/operator mapping with the kind's
parameter codec, declared input ports and output shape.
"""
from __future__ import annotations
import copy
import json
import logging
import re
from typing import Any, Dict, List, Optional

from .ir import GraphNode, OutputBinding, PipelineNodeDef
from .kinds import (AGGREGATE, BRANCH, CUSTOM, FIXED, LIST, SINGLE, Lane, NodeKind, OutputSpec,
                    PortSpec)
from .params import ParamField, as_number, mapped_codec, param, read, unwrap

logger = logging.getLogger(__name__)

DEFAULT_INPUT_NAME = "input_name"
DEFAULT_INPUT_VALUE = "Summary the input text"
DEFAULT_COLUMNS = [{"name": "fasting_blood_sugar", "type": "text", "description": "> 120 mg/dl"}]
# shape the backend expects from any single-output kind without its own output rule
DEFAULT_OUTPUTS = OutputSpec(data={})


# --- basic input -----------------------------------------------------------

def _fields(node: GraphNode) -> List[Dict[str, Any]]:
    fields = node.data.get("fields")
    if isinstance(fields, list):
        return [f for f in fields if isinstance(f, dict)]
    # a single field stored flat on the node
    if "inputName" in node.data:
        return [node.data]
    return []


def encode_basic_input(node: GraphNode) -> Dict[str, Any]:
    fields = _fields(node)
    if not fields:
        logger.debug("Input node %s has no fields, using defaults", node.id)
        return {"input_name": param(DEFAULT_INPUT_NAME), "default_value": param(DEFAULT_INPUT_VALUE)}
    first = fields[0]
    return {
        "input_name": param(first.get("inputName") or ""),
        "default_value": param(first.get("defaultValue") or ""),
    }


def decode_basic_input(definition: PipelineNodeDef) -> Dict[str, Any]:
    p = definition.parameters
    name = read(p, "input_name", "input_name_0")
    value = read(p, "default_value", "default_value_0")
    return {"fields": [{
        "inputName": DEFAULT_INPUT_NAME if name is None else name,
        "defaultValue": "" if value is None else value,
    }]}


def basic_input_field_label(node: GraphNode, source_handle: str) -> Optional[str]:
    fields = _fields(node)
    if source_handle == "output":
        index = 0
    elif source_handle.startswith("output-"):
        try:
            index = int(source_handle.split("-", 1)[1])
        except ValueError:
            return None
    else:
        return None
    if index < len(fields):
        return fields[index].get("inputName") or None
    return None


def basic_input_label(definition: PipelineNodeDef) -> str:
    return read(definition.parameters, "input_name", "input_name_0") or "Input"


# --- ask AI ----------------------------------------------------------------

def encode_ask_ai(node: GraphNode) -> Dict[str, Any]:
    params = {"llm_id": param(as_number(node.data.get("model") or "1"))}
    if node.data.get("promptText"):
        params["prompt"] = param(copy.deepcopy(node.data["promptText"]))
    return params


def decode_ask_ai(definition: PipelineNodeDef) -> Dict[str, Any]:
    p = definition.parameters
    model = read(p, "llm_id", "model")
    return {
        "model": "1" if model is None else str(model),
        "promptText": read(p, "prompt") or "",
    }


def ask_ai_label(definition: PipelineNodeDef) -> str:
    return f"AI ({read(definition.parameters, 'llm_id', 'model', default='')})"


# --- browser extension input -----------------------------------------------

def encode_browser_extension_input(node: GraphNode) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if node.data.get("browser_extension_url"):
        params["browser_extension_url"] = param(node.data["browser_extension_url"])
    items = node.data.get("items") or []
    if items:
        params["functions"] = param([
            {"func_id": item.get("id") or f"a{i + 1}",
             "func_name": item.get("name") or "",
             "func_icon": item.get("icon") or "document"}
            for i, item in enumerate(items)
        ])
    return params


def decode_browser_extension_input(definition: PipelineNodeDef) -> Dict[str, Any]:
    p = definition.parameters
    functions = unwrap(p.get("functions")) or []
    out: Dict[str, Any] = {
        "items": [
            {"id": f.get("func_id"), "name": f.get("func_name") or "", "icon": f.get("func_icon") or "document"}
            for f in functions if isinstance(f, dict)
        ]
    }
    url = read(p, "browser_extension_url")
    if url is not None:
        out["browser_extension_url"] = url
    return out


# --- dynamic input handle lists (browser extension output, webhook output, combine text)

def handle_ids(node: GraphNode) -> List[str]:
    ids = []
    for h in node.data.get("inputHandles") or []:
        hid = h.get("id") if isinstance(h, dict) else h
        if isinstance(hid, str) and hid and hid not in ids:
            ids.append(hid)
    return ids


def _handles_codec(pattern: str, default: str):
    family = re.compile(rf"({pattern})(?:_\d+)?")

    def encode(node: GraphNode) -> Dict[str, Any]:
        return {"inputHandles": param(handle_ids(node) or [default])}

    def decode(definition: PipelineNodeDef) -> Dict[str, Any]:
        ids: List[str] = []
        saved = read(definition.parameters, "inputHandles")
        for hid in saved if isinstance(saved, list) else []:
            if isinstance(hid, str) and hid not in ids:
                ids.append(hid)
        for key in definition.node_input:
            m = family.fullmatch(key)
            if m and m.group(1) not in ids:
                ids.append(m.group(1))
        return {"inputHandles": [{"id": hid} for hid in ids or [default]]}

    return encode, decode


_output_handles_encode, _output_handles_decode = _handles_codec(r"output\d+", "output0")
_text_handles_encode, _text_handles_decode = _handles_codec(r"text\d+", "text0")


def encode_combine_text(node: GraphNode) -> Dict[str, Any]:
    params = _text_handles_encode(node)
    params["text_to_combine"] = param(node.data.get("textToCombine") or "")
    return params


def decode_combine_text(definition: PipelineNodeDef) -> Dict[str, Any]:
    out = _text_handles_decode(definition)
    out["textToCombine"] = read(definition.parameters, "text_to_combine") or ""
    return out


# --- LINE webhook input ------------------------------------------------------

_line_encode, _line_fields_decode = mapped_codec(
    ParamField("external_service_config_id", "external_service_config_id", default="", to_wire=as_number),
    ParamField("webhook_url", "webhook_url", default=""),
)


def decode_line_webhook_input(definition: PipelineNodeDef) -> Dict[str, Any]:
    out = _line_fields_decode(definition)
    out["output_handles"] = list(definition.node_output) or ["text", "image"]
    return out


def line_webhook_outputs(node: GraphNode) -> Dict[str, OutputBinding]:
    handles = node.data.get("output_handles")
    if not isinstance(handles, list) or not handles:
        handles = ["text", "image"]
    return {h: OutputBinding(node_id=node.id, type="string") for h in handles}


# --- extract data ------------------------------------------------------------

def example_for(columns: List[Dict[str, Any]]) -> str:
    example: Dict[str, Any] = {}
    for column in columns:
        kind = column.get("type")
        if kind == "number":
            example[column.get("name")] = 0
        elif kind == "boolean":
            example[column.get("name")] = False
        else:
            example[column.get("name")] = ""
    return json.dumps(example, ensure_ascii=False)


def encode_extract_data(node: GraphNode) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if node.data.get("model"):
        params["llm_id"] = param(as_number(node.data["model"]))
    columns = node.data.get("columns")
    if not isinstance(columns, list):
        columns = DEFAULT_COLUMNS
    columns = [c for c in columns if isinstance(c, dict)]
    params["columns"] = param(copy.deepcopy(columns))
    params["example"] = param(example_for(columns))
    return params


def decode_extract_data(definition: PipelineNodeDef) -> Dict[str, Any]:
    p = definition.parameters
    model = read(p, "llm_id")
    columns = read(p, "columns")
    return {
        "model": "1" if model is None else str(model),
        "columns": copy.deepcopy(columns) if isinstance(columns, list) else [],
    }


# --- QOCA AIM ----------------------------------------------------------------

def _explain_enabled(data: Dict[str, Any]) -> bool:
    value = data.get("enableExplain")
    return True if value is None else bool(value)


def encode_aim_ml(node: GraphNode) -> Dict[str, Any]:
    d = node.data
    params: Dict[str, Any] = {}
    if d.get("selectedAim"):
        params["aim_ml_id"] = param(d["selectedAim"])
    if d.get("trainingId") is not None:
        params["training_id"] = param(d["trainingId"])
    if d.get("simulatorId"):
        params["simulator_id"] = param(d["simulatorId"])
    explain = _explain_enabled(d)
    params["enable_explain"] = param(explain)
    if explain:
        if d.get("llmId") is not None:
            params["llm_id"] = param(as_number(d["llmId"]))
        if d.get("promptText"):
            params["prompt"] = param(d["promptText"])
    return params


def decode_aim_ml(definition: PipelineNodeDef) -> Dict[str, Any]:
    p = definition.parameters
    explain = read(p, "enable_explain")
    return {
        "selectedAim": read(p, "aim_ml_id") or "",
        "trainingId": read(p, "training_id", default=0),
        "simulatorId": read(p, "simulator_id") or "",
        "enableExplain": True if explain is None else explain,
        "llmId": read(p, "llm_id", default=0),
        "promptText": read(p, "prompt") or "",
    }


def aim_ml_outputs(node: GraphNode) -> Dict[str, OutputBinding]:
    outputs = {"text": OutputBinding(node_id=node.id, type="string")}
    if _explain_enabled(node.data):
        outputs["images"] = OutputBinding(node_id=node.id, type="string")
    return outputs


# --- flat field renames ------------------------------------------------------

_webhook_codec = mapped_codec(ParamField("webhookUrl", "webhook_url", default=""))
_if_else_codec = mapped_codec(
    ParamField("variableName", "variable", default=""),
    ParamField("operator", "operator", default="equals"),
    ParamField("compareValue", "compare_value", default=""),
)
_knowledge_codec = mapped_codec(
    ParamField("selectedFile", "file_id", default=""),
    ParamField("topK", "top_k", default=5, always=True),
)
_http_codec = mapped_codec(
    ParamField("url", "url", default=""),
    ParamField("method", "method", default="GET"),
)
_timer_codec = mapped_codec(
    ParamField("hours", "hours", default=0, always=True),
    ParamField("minutes", "minutes", default=0, always=True),
    ParamField("seconds", "seconds", default=0, always=True),
)
_event_codec = mapped_codec(
    ParamField("eventType", "event_type", default="message", always=True),
    ParamField("eventSource", "event_source", default=""),
)
_end_codec = mapped_codec(ParamField("outputText", "output_text", default=""))
_message_codec = mapped_codec(
    ParamField("external_service_config_id", "external_service_config_id", default="", to_wire=as_number),
    ParamField("messaging_type", "messaging_type", default=""),
)
_router_codec = mapped_codec(
    ParamField("llm_id", "llm_id"),
    ParamField("routers", "routers"),
)


BUILTIN_KINDS = (
    NodeKind("customInput", "basic_input", "input", Lane.INPUT,
             encode=encode_basic_input, decode=decode_basic_input,
             label=basic_input_label, field_label=basic_input_field_label,
             legacy_types=("input",)),
    NodeKind("aiCustomInput", "ask_ai", "advanced", Lane.PROCESSING,
             encode=encode_ask_ai, decode=decode_ask_ai, label=ask_ai_label, outputs=DEFAULT_OUTPUTS,
             ports=(PortSpec("context", mode=AGGREGATE),
                    PortSpec("prompt", handle="prompt-input", mode=SINGLE, literal_field="promptText")),
             legacy_types=("ai",)),
    NodeKind("browserExtensionInput", "browser_extension_input", "starter", Lane.INGRESS,
             encode=encode_browser_extension_input, decode=decode_browser_extension_input,
             label="Browser Extension Input",
             outputs=OutputSpec(LIST, list_field="items", fallback="a{index}", index_base=1),
             legacy_types=("browserExtInput",)),
    NodeKind("browserExtensionOutput", "browser_extension_output", "output", Lane.EGRESS,
             encode=_output_handles_encode, decode=_output_handles_decode,
             label="Browser Extension Output",
             ports=(PortSpec("output0", pattern=r"output\d+", placeholders=True),)),
    NodeKind("webhook", "webhook", "starter", Lane.INGRESS,
             encode=_webhook_codec[0], decode=_webhook_codec[1], label="Webhook",
             outputs=OutputSpec(FIXED, fixed=(("headers", "json", {}), ("payload", "json", {})))),
    NodeKind("webhook_input", "webhook_input", "advanced", Lane.INGRESS, label="Webhook Input",
             outputs=DEFAULT_OUTPUTS),
    NodeKind("webhook_output", "webhook_output", "advanced", Lane.EGRESS,
             encode=_text_handles_encode, decode=_text_handles_decode, label="Webhook Output",
             ports=(PortSpec("text0", pattern=r"text\d+", placeholders=True),)),
    NodeKind("ifElse", "ifElse", "logic", Lane.PROCESSING,
             encode=_if_else_codec[0], decode=_if_else_codec[1], label="If / Else",
             outputs=OutputSpec(BRANCH, value_type="boolean")),
    NodeKind("knowledgeRetrieval", "knowledge_retrieval", "advanced", Lane.PROCESSING,
             encode=_knowledge_codec[0], decode=_knowledge_codec[1], label="Knowledge Retrieval",
             outputs=DEFAULT_OUTPUTS,
             ports=(PortSpec("passage"),),
             legacy_types=("knowledge_retrieval",)),
    NodeKind("httpRequest", "http_request", "integration", Lane.PROCESSING,
             encode=_http_codec[0], decode=_http_codec[1], label="HTTP Request", outputs=DEFAULT_OUTPUTS,
             ports=(PortSpec("input"),),
             legacy_types=("http",), legacy_operators=("http",)),
    NodeKind("timer", "timer", "event", Lane.PROCESSING,
             encode=_timer_codec[0], decode=_timer_codec[1], label="Timer", outputs=DEFAULT_OUTPUTS),
    NodeKind("event", "event", "event", Lane.PROCESSING,
             encode=_event_codec[0], decode=_event_codec[1], label="Event", outputs=DEFAULT_OUTPUTS),
    NodeKind("end", "end", "output", Lane.EGRESS,
             encode=_end_codec[0], decode=_end_codec[1], label="End", outputs=DEFAULT_OUTPUTS),
    NodeKind("line_webhook_input", "line_webhook_input", "integration", Lane.INGRESS,
             encode=_line_encode, decode=decode_line_webhook_input, label="LINE Webhook",
             outputs=OutputSpec(CUSTOM, build=line_webhook_outputs),
             legacy_types=("line",), legacy_operators=("line",)),
    NodeKind("line_send_message", "line_send_message", "advanced", Lane.EGRESS,
             encode=_message_codec[0], decode=_message_codec[1], label="LINE Message",
             outputs=DEFAULT_OUTPUTS,
             ports=(PortSpec("message", handle="message", mode=AGGREGATE),),
             legacy_types=("message",), legacy_operators=("message",)),
    NodeKind("extract_data", "extract_data", "advanced", Lane.PROCESSING,
             encode=encode_extract_data, decode=decode_extract_data, label="Extract Data",
             ports=(PortSpec("context_to_extract_from", handle="context-input"),),
             outputs=OutputSpec(value_type="json"),
             legacy_types=("extractData",)),
    NodeKind("aim_ml", "aim_ml", "advanced", Lane.PROCESSING,
             encode=encode_aim_ml, decode=decode_aim_ml, label="QOCA AIM",
             ports=(PortSpec("context", handle="input"),),
             outputs=OutputSpec(CUSTOM, build=aim_ml_outputs)),
    NodeKind("schedule_trigger", "schedule_trigger", "advanced", Lane.INGRESS,
             label="Schedule Trigger", accepts_inputs=False,
             outputs=OutputSpec(FIXED, fixed=(("trigger", "object", None),))),
    NodeKind("combine_text", "combine_text", "advanced", Lane.PROCESSING,
             encode=encode_combine_text, decode=decode_combine_text, label="Combine Text",
             outputs=DEFAULT_OUTPUTS,
             ports=(PortSpec("text0", pattern=r"text\d+"),)),
    NodeKind("router_switch", "router_switch", "logic", Lane.PROCESSING,
             encode=_router_codec[0], decode=_router_codec[1], label="Router Switch",
             ports=(PortSpec("input"),),
             outputs=OutputSpec(LIST, list_field="routers", id_key="router_id", name_key="router_name",
                                fallback="router{index}", index_base=0)),
    NodeKind("speech_to_text", "speech_to_text", "advanced", Lane.PROCESSING,
             label="Speech to Text", outputs=DEFAULT_OUTPUTS, ports=(PortSpec("audio"),)),
)
