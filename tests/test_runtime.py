import json

import pytest

from rainnode.mqtt import MqttClient, MqttConfig
from rainnode.node import Device, Node
from rainnode.params import (
    Param,
    ParamError,
    PropFlag,
    RequestSource,
    ValueType,
    bool_value,
    float_value,
    int_value,
    obj_value,
    str_value,
)
from rainnode.runtime import ParamStore, RainMaker, RunState
from rainnode.types import PARAM_BRIGHTNESS, PARAM_NAME, PARAM_POWER


class Broker:
    def __init__(self):
        self.published = []
        self.subscriptions = {}

    def publish(self, topic, data, qos):
        self.published.append((topic, json.loads(data), qos))
        return len(self.published)

    def subscribe(self, topic, cb, qos, priv):
        self.subscriptions[topic] = cb


def build(write_log=None):
    node = Node("n1", "Node", "Lightbulb", "1.0", "model")
    calls = write_log if write_log is not None else []

    def write_cb(device, param, value, src):
        calls.append((device.name, param.name, value, src))

    light = Device("Light", write_cb=write_cb)
    light.add_param(Param("Name", PARAM_NAME, str_value("Light"), PropFlag.READ | PropFlag.WRITE))
    light.add_param(Param("Power", PARAM_POWER, bool_value(False), PropFlag.READ | PropFlag.WRITE))
    light.add_param(
        Param("Brightness", PARAM_BRIGHTNESS, int_value(50), PropFlag.READ | PropFlag.WRITE | PropFlag.PERSIST)
    )
    light.add_param(Param("Level", None, float_value(1.5), PropFlag.READ))
    light.add_param(Param("Extra", None, obj_value('{"a":1}'), PropFlag.READ))
    node.add_device(light)
    broker = Broker()
    rm = RainMaker(node, MqttClient(MqttConfig(publish=broker.publish, subscribe=broker.subscribe)))
    return rm, broker, light, calls


def test_node_params_contains_all_values():
    rm, _, _, _ = build()
    assert json.loads(rm.node_params()) == {
        "Light": {"Name": "Light", "Power": False, "Brightness": 50, "Level": 1.5, "Extra": {"a": 1}}
    }


def test_params_mqtt_init_subscribes_and_reports_state():
    rm, broker, _, _ = build()
    rm.params_mqtt_init()
    assert list(broker.subscriptions) == ["node/n1/params/remote"]
    assert broker.published == [("node/n1/params/local/init", json.loads(rm.node_params()), 1)]


def test_report_publishes_only_changed_and_resets():
    rm, broker, light, _ = build()
    rm.params_mqtt_init()
    broker.published.clear()
    power = light.param_by_name("Power")
    rm.update(power, bool_value(True))
    rm.report(power)
    assert broker.published == [("node/n1/params/local", {"Light": {"Power": True}}, 1)]
    rm.report(power)
    assert len(broker.published) == 1


def test_report_without_mqtt_init_does_not_publish():
    rm, broker, light, _ = build()
    power = light.param_by_name("Power")
    rm.update(power, bool_value(True))
    rm.report(power)
    assert broker.published == []
    assert power.flags == 0


def test_update_and_report_respects_state():
    rm, broker, light, _ = build()
    rm.params_mqtt_init()
    broker.published.clear()
    power = light.param_by_name("Power")
    rm.update_and_report(power, bool_value(True))
    assert broker.published == []
    rm.state = RunState.STARTED
    rm.update_and_report(power, bool_value(False))
    assert broker.published == [("node/n1/params/local", {"Light": {"Power": False}}, 1)]


def test_notify_publishes_alert_then_local():
    rm, broker, light, _ = build()
    rm.params_mqtt_init()
    broker.published.clear()
    rm.state = RunState.STARTED
    power = light.param_by_name("Power")
    rm.update_and_notify(power, bool_value(True))
    assert [topic for topic, _, _ in broker.published] == ["node/n1/alert", "node/n1/params/local"]
    assert all(payload == {"Light": {"Power": True}} for _, payload, _ in broker.published)


def test_handle_set_params_calls_write_cb():
    rm, _, _, calls = build()
    rm.handle_set_params(b'{"Light":{"Power":true,"Level":3,"Extra":{"b":2}},"Other":{"x":1}}',
                         RequestSource.CLOUD)
    assert calls == [
        ("Light", "Power", bool_value(True), RequestSource.CLOUD),
        ("Light", "Level", float_value(3), RequestSource.CLOUD),
        ("Light", "Extra", obj_value('{"b":2}'), RequestSource.CLOUD),
    ]


def test_handle_set_params_ignores_type_mismatch():
    rm, _, _, calls = build()
    rm.handle_set_params('{"Light":{"Power":1,"Brightness":"high"}}', RequestSource.LOCAL)
    assert calls == []


def test_name_param_is_updated_directly():
    rm, broker, light, calls = build()
    rm.params_mqtt_init()
    broker.published.clear()
    rm.state = RunState.STARTED
    rm.handle_set_params('{"Light":{"Name":"Kitchen"}}', RequestSource.CLOUD)
    assert calls == []
    assert light.param_by_name("Name").value == str_value("Kitchen")
    assert broker.published == [("node/n1/params/local", {"Light": {"Name": "Kitchen"}}, 1)]


def test_cloud_subscription_applies_params():
    rm, broker, _, calls = build()
    rm.params_mqtt_init()
    callback = broker.subscriptions["node/n1/params/remote"]
    callback("node/n1/params/remote", b'{"Light":{"Brightness":80}}', None)
    assert calls == [("Light", "Brightness", int_value(80), RequestSource.CLOUD)]


def test_invalid_json_raises():
    rm, _, _, _ = build()
    with pytest.raises(ParamError):
        rm.handle_set_params("{not json", RequestSource.CLOUD)


def test_update_persists_and_checks_type():
    rm, _, light, _ = build()
    brightness = light.param_by_name("Brightness")
    rm.update(brightness, int_value(75))
    assert rm.store.get(brightness) == int_value(75)
    power = light.param_by_name("Power")
    rm.update(power, bool_value(True))
    assert rm.store.get(power) is None
    with pytest.raises(ParamError):
        rm.update(brightness, str_value("x"))


def test_store_text_round_trip_and_parentless_error():
    store = ParamStore()
    device = Device("Dev")
    param = Param("Label", None, str_value("hello"))
    device.add_param(param)
    store.store(param)
    assert store.get(param) == ParamValue_of(ValueType.STRING, "hello")
    with pytest.raises(ParamError):
        store.store(Param("Loose", None, int_value(1)))


def ParamValue_of(kind, value):
    from rainnode.params import ParamValue

    return ParamValue(kind, value)


def test_raise_alert_truncates():
    rm, broker, _, _ = build()
    rm.raise_alert("x" * 150)
    topic, payload, qos = broker.published[0]
    assert topic == "node/n1/alert"
    assert payload == {"esp.alert.str": "x" * RainMaker.MAX_ALERT_LEN}
    assert qos == 1


def test_report_requires_param():
    rm, _, _, _ = build()
    with pytest.raises(ParamError):
        rm.report(None)
    with pytest.raises(ParamError):
        rm.notify(None)