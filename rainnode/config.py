"""Generation of the node configuration document."""

from __future__ import annotations

import json
from typing import Any, Optional

from .node import Attribute, Device, Node
from .params import Param, ParamError, ParamValue, PropFlag, ValueType, data_type_name

CONFIG_VERSION = "2020-03-20"


def value_json(value: Optional[ParamValue]) -> Any:
    """Convert a parameter value to its JSON form.

    Object and array values are stored as JSON text and are decoded.
    Raises ParamError for a value of invalid type.
    """
    if value is None:
        return None
    kind = value.type
    if kind == ValueType.BOOLEAN:
        return bool(value.value)
    if kind == ValueType.INTEGER:
        return int(value.value)
    if kind == ValueType.FLOAT:
        return float(value.value)
    if kind == ValueType.STRING:
        return value.value
    if kind in (ValueType.OBJECT, ValueType.ARRAY):
        return None if value.value is None else json.loads(value.value)
    raise ParamError("Value has an invalid type.")


def _set_value(target: dict, key: str, value: Optional[ParamValue]) -> None:
    if value is None or value.type == ValueType.INVALID:
        return
    target[key] = value_json(value)


def _attributes(attributes: list[Attribute]) -> list[dict]:
    return [{"name": a.name, "value": a.value} for a in attributes]


def _param_config(param: Param) -> dict:
    entry: dict[str, Any] = {}
    if param.name:
        entry["name"] = param.name
    if param.type:
        entry["type"] = param.type
    entry["data_type"] = data_type_name(param.value.type)
    props = [
        label
        for flag, label in (
            (PropFlag.READ, "read"),
            (PropFlag.WRITE, "write"),
            (PropFlag.TIME_SERIES, "time_series"),
        )
        if param.properties & flag
    ]
    entry["properties"] = props
    if param.bounds is not None:
        bounds: dict[str, Any] = {}
        _set_value(bounds, "min", param.bounds.minimum)
        _set_value(bounds, "max", param.bounds.maximum)
        step = param.bounds.step
        if step is not None and step.value:
            _set_value(bounds, "step", step)
        entry["bounds"] = bounds
    if param.valid_strings is not None:
        entry["valid_strs"] = list(param.valid_strings)
    if param.ui_type:
        entry["ui_type"] = param.ui_type
    return entry


def _device_config(device: Device) -> dict:
    entry: dict[str, Any] = {"name": device.name}
    if device.type:
        entry["type"] = device.type
    if device.subtype:
        entry["subtype"] = device.subtype
    if device.model:
        entry["model"] = device.model
    if device.attributes:
        entry["attributes"] = _attributes(device.attributes)
    if device.primary is not None:
        entry["primary"] = device.primary.name
    if device.params:
        entry["params"] = [_param_config(p) for p in device.params]
    return entry


def node_config(node: Node, project_name: str, platform: str) -> dict:
    """Build the node configuration as a dictionary."""
    info = node.info
    info_entry: dict[str, Any] = {
        "name": info.name,
        "fw_version": info.fw_version,
        "type": info.type,
    }
    if info.subtype:
        info_entry["subtype"] = info.subtype
    info_entry["model"] = info.model
    info_entry["project_name"] = project_name
    info_entry["platform"] = platform

    config: dict[str, Any] = {
        "node_id": node.node_id,
        "config_version": CONFIG_VERSION,
        "info": info_entry,
    }
    if node.attributes:
        config["attributes"] = _attributes(node.attributes)
    if node.devices:
        config["devices"] = [_device_config(d) for d in node.devices if not d.is_service]
        config["services"] = [_device_config(d) for d in node.devices if d.is_service]
    return config


def node_config_json(node: Node, project_name: str, platform: str) -> str:
    """Build the node configuration as compact JSON text."""
    return json.dumps(node_config(node, project_name, platform), separators=(",", ":"))