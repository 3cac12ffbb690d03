"""Runtime reporting and handling of parameter values over MQTT."""

from __future__ import annotations

import json
import logging
from enum import IntEnum
from typing import Any, Optional, Union

from .config import value_json
from .mqtt import QOS1, MqttClient
from .node import Device, Node
from .params import (
    VALUE_CHANGE,
    VALUE_NOTIFY,
    Param,
    ParamError,
    ParamValue,
    PropFlag,
    RequestSource,
    ValueType,
    array_value,
    bool_value,
    float_value,
    int_value,
    obj_value,
    str_value,
)
from .types import PARAM_NAME

logger = logging.getLogger(__name__)

PARAMS_LOCAL_SUFFIX = "params/local"
PARAMS_LOCAL_INIT_SUFFIX = "params/local/init"
PARAMS_REMOTE_SUFFIX = "params/remote"
ALERT_SUFFIX = "alert"
ALERT_KEY = "esp.alert.str"


def _compact(document: Any) -> str:
    return json.dumps(document, separators=(",", ":"))


class RunState(IntEnum):
    DEINIT = 0
    INIT_DONE = 1
    STARTING = 2
    STARTED = 3
    STOP_REQUESTED = 4


class ParamStore:
    """In-memory persistent store of parameter values, keyed by device and name."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], Any] = {}

    @staticmethod
    def _key(param: Param) -> tuple[str, str]:
        if param is None or param.parent is None:
            raise ParamError("Param must belong to a device to be stored.")
        return (param.parent.name, param.name)

    def get(self, param: Param) -> Optional[ParamValue]:
        """Return the stored value of a parameter, or None if nothing is stored."""
        stored = self._data.get(self._key(param))
        if stored is None:
            return None
        if isinstance(stored, ParamValue):
            return stored
        return ParamValue(param.value.type, stored)

    def store(self, param: Param) -> None:
        """Store the current value of a parameter; empty text values are skipped."""
        key = self._key(param)
        if param.value.type.is_text:
            if param.value.value is not None:
                self._data[key] = param.value.value
        else:
            self._data[key] = param.value


class RainMaker:
    """Ties a node to an MQTT client: reports values and applies remote writes."""

    MAX_ALERT_LEN = 100

    def __init__(
        self,
        node: Node,
        mqtt: Optional[MqttClient] = None,
        store: Optional[ParamStore] = None,
    ) -> None:
        self.node = node
        self.mqtt = mqtt if mqtt is not None else MqttClient()
        self.store = store if store is not None else ParamStore()
        self.state = RunState.DEINIT
        self.params_mqtt_ready = False

    def _topic(self, suffix: str) -> str:
        return f"node/{self.node.node_id}/{suffix}"

    def _populate(self, flags: int, reset_flags: bool) -> dict:
        document: dict[str, dict] = {}
        for device in self.node:
            values: dict[str, Any] = {}
            for param in device.params:
                if flags and not (param.flags & flags):
                    continue
                if param.value.type == ValueType.INVALID:
                    continue
                values[param.name] = value_json(param.value)
            if values:
                document[device.name] = values
        if reset_flags:
            for device in self.node:
                for param in device.params:
                    param.flags &= ~flags
        return document

    def _publish_if_ready(self, topic: str, payload: str) -> None:
        if self.params_mqtt_ready:
            self.mqtt.publish(topic, payload, QOS1)
        else:
            logger.warning("Not reporting params since params mqtt not initialized yet.")

    def _report_flagged(self, flags: int) -> None:
        document = self._populate(flags, True)
        if not document:
            return
        if flags == VALUE_CHANGE:
            topic = self._topic(PARAMS_LOCAL_SUFFIX)
        elif flags == VALUE_NOTIFY:
            topic = self._topic(ALERT_SUFFIX)
        else:
            raise ParamError(f"Unsupported report flags {flags}.")
        payload = _compact(document)
        logger.info("Reporting params: %s", payload)
        self._publish_if_ready(topic, payload)

    def node_params(self) -> str:
        """Return the values of all parameters as JSON text."""
        return _compact(self._populate(0, False))

    def report_node_state(self) -> None:
        """Report the values of all parameters on the initial-state topic."""
        document = self._populate(0, False)
        if not document:
            return
        payload = _compact(document)
        logger.info("Reporting params (init): %s", payload)
        self._publish_if_ready(self._topic(PARAMS_LOCAL_INIT_SUFFIX), payload)

    def params_mqtt_init(self) -> None:
        """Subscribe for remote parameter writes and report the current state."""
        def on_set_params(topic: str, payload: bytes, priv_data: Any) -> None:
            self.handle_set_params(payload, RequestSource.CLOUD)

        self.mqtt.subscribe(self._topic(PARAMS_REMOTE_SUFFIX), on_set_params, QOS1, None)
        self.params_mqtt_ready = True
        logger.info("Params MQTT Init done.")
        self.report_node_state()

    @staticmethod
    def _extract(param: Param, section: dict) -> Optional[ParamValue]:
        if param.name not in section:
            return None
        raw = section[param.name]
        kind = param.value.type
        is_number = isinstance(raw, (int, float)) and not isinstance(raw, bool)
        if kind == ValueType.BOOLEAN and isinstance(raw, bool):
            return bool_value(raw)
        if kind == ValueType.INTEGER and is_number and isinstance(raw, int):
            return int_value(raw)
        if kind == ValueType.FLOAT and is_number:
            return float_value(raw)
        if kind == ValueType.STRING and isinstance(raw, str):
            return str_value(raw)
        if kind == ValueType.OBJECT and isinstance(raw, dict):
            return obj_value(_compact(raw))
        if kind == ValueType.ARRAY and isinstance(raw, list):
            return array_value(_compact(raw))
        return None

    def _set_device_params(self, device: Device, section: dict, src: RequestSource) -> None:
        for param in list(device.params):
            new_value = self._extract(param, section)
            if new_value is None:
                continue
            if param.type == PARAM_NAME:
                self.update_and_report(param, new_value)
            elif device.write_cb is not None:
                try:
                    device.write_cb(device, param, new_value, src)
                except Exception:
                    logger.exception(
                        "Remote update to param %s - %s failed", device.name, param.name
                    )

    def handle_set_params(self, data: Union[str, bytes], src: RequestSource) -> None:
        """Apply a {device: {param: value}} document to the node's devices."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        logger.info("Received params: %s", data)
        try:
            document = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ParamError(f"Invalid params JSON: {exc}") from exc
        if not isinstance(document, dict):
            return
        for device in list(self.node):
            section = document.get(device.name)
            if isinstance(section, dict):
                self._set_device_params(device, section, RequestSource(src))

    def update(self, param: Param, value: ParamValue) -> None:
        """Update a parameter's value, persisting it if the parameter asks for it."""
        if param is None:
            raise ParamError("Param handle cannot be None.")
        param.update(value)
        if param.properties & PropFlag.PERSIST:
            self.store.store(param)

    def report(self, param: Param) -> None:
        """Report all changed parameters."""
        if param is None:
            raise ParamError("Param handle cannot be None.")
        self._report_flagged(VALUE_CHANGE)

    def notify(self, param: Param) -> None:
        """Report the parameter as an alert, then as a regular change."""
        if param is None:
            raise ParamError("Param handle cannot be None.")
        param.flags |= VALUE_CHANGE | VALUE_NOTIFY
        self._report_flagged(VALUE_NOTIFY)
        self._report_flagged(VALUE_CHANGE)

    def update_and_report(self, param: Param, value: ParamValue) -> None:
        """Update a parameter and report it if the node has started."""
        self.update(param, value)
        if self.state == RunState.STARTED:
            self.report(param)

    def update_and_notify(self, param: Param, value: ParamValue) -> None:
        """Update a parameter and notify it if the node has started."""
        self.update(param, value)
        if self.state == RunState.STARTED:
            self.notify(param)

    def raise_alert(self, message: str) -> Any:
        """Publish a free-text alert, truncated to MAX_ALERT_LEN characters."""
        payload = _compact({ALERT_KEY: message[: self.MAX_ALERT_LEN]})
        logger.info("Reporting alert: %s", payload)
        return self.mqtt.publish(self._topic(ALERT_SUFFIX), payload, QOS1)