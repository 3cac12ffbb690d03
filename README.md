# rainnode

A pure-Python model of a connected home node. A `Node` holds devices and
services (`Device`), each device holds typed parameters (`Param`), and the
node can describe its configuration and parameter values as JSON. A
`RainMaker` object ties a node to an `MqttClient` whose transport you
supply, reports parameter values and applies incoming parameter writes.
Scenes and schedules are available as services on top of that model.

The package has no runtime dependencies.

## Modules

- `rainnode.types` – standard UI, parameter, device and service type strings
  (`UI_TOGGLE`, `PARAM_POWER`, `DEVICE_LIGHTBULB`, `SERVICE_SCHEDULE`, ...).
- `rainnode.params` – `ParamValue` and its constructors (`bool_value`,
  `int_value`, `float_value`, `str_value`, `obj_value`, `array_value`),
  `Param`, `Bounds`, `ValueType`, `PropFlag`, `RequestSource`, `ParamError`.
- `rainnode.node` – `Node`, `Device`, `Attribute`, `NodeInfo`, `NodeError`.
- `rainnode.config` – `node_config` / `node_config_json` build the node
  configuration document; `value_json` converts a single value.
- `rainnode.mqtt` – `MqttConfig` (transport hooks) and `MqttClient`.
- `rainnode.runtime` – `RainMaker`, `RunState`, and `ParamStore`, an
  in-memory store for parameters marked `PropFlag.PERSIST`.
- `rainnode.scenes` – `ScenesService`, `Scene`, `SceneOperation`.
- `rainnode.schedule_model` – `Schedule`, `Trigger`, `TriggerType`,
  `ScheduleOperation`, `parse_trigger`, `is_expired`, `schedule_to_dict`.
- `rainnode.schedule` – `ScheduleService` and `Scheduler`.

## Building a node

```python
from rainnode.node import Node, Device
from rainnode.params import Param, PropFlag, bool_value, int_value
from rainnode.types import DEVICE_LIGHTBULB, PARAM_POWER, PARAM_BRIGHTNESS, UI_TOGGLE, UI_SLIDER
from rainnode.config import node_config_json

node = Node("node-0001", "Demo Node", "Lightbulb", "1.0", "demo")

light = Device(name="Light", type=DEVICE_LIGHTBULB)
power = Param("Power", PARAM_POWER, bool_value(True), PropFlag.READ | PropFlag.WRITE)
power.add_ui_type(UI_TOGGLE)
brightness = Param("Brightness", PARAM_BRIGHTNESS, int_value(50), PropFlag.READ | PropFlag.WRITE)
brightness.add_bounds(int_value(0), int_value(100), int_value(1))
brightness.add_ui_type(UI_SLIDER)
light.add_param(power)
light.add_param(brightness)
node.add_device(light)

print(node_config_json(node, "demo", "esp32"))
```

Names must be unique: adding a second device, attribute or parameter with
an existing name raises `NodeError`. Invalid parameter operations (bounds on
a string, a value of the wrong type in `Param.update`, ...) raise
`ParamError`.

## Reporting over MQTT

`MqttClient` forwards each operation to the matching callable in an
`MqttConfig`; an operation with no callable registered only logs a warning.
`publish` receives the topic, the payload as bytes and the QoS.

```python
from rainnode.mqtt import MqttClient, MqttConfig
from rainnode.runtime import RainMaker, RunState

sent = []
client = MqttClient(MqttConfig(publish=lambda topic, data, qos: sent.append((topic, data))))
rm = RainMaker(node, client)
rm.params_mqtt_init()        # subscribes to node/<id>/params/remote, reports on node/<id>/params/local/init
rm.state = RunState.STARTED  # update_and_report only publishes once the node has started
rm.update_and_report(brightness, int_value(80))   # published on node/<id>/params/local
rm.raise_alert("Filter needs cleaning")           # published on node/<id>/alert
```

`update_and_notify` reports a parameter on the alert topic and then as a
regular change. `node_params()` returns the values of all parameters as JSON
text.

## Handling parameter writes

`RainMaker.handle_set_params(data, src)` takes a
`{"device": {"param": value}}` document and, for each parameter whose value
has the right type, calls the device's `write_cb(device, param, value, src)`.
Parameters of type `PARAM_NAME` are updated and reported directly.

```python
from rainnode.params import RequestSource

def on_write(device, param, value, src):
    rm.update_and_report(param, value)

light.write_cb = on_write
rm.handle_set_params('{"Light": {"Power": false}}', RequestSource.LOCAL)
```

## Scenes

```python
from rainnode.scenes import ScenesService

scenes = ScenesService(rm, max_scenes=10)
scenes.enable()   # adds the "Scenes" service to the node
scenes.apply('[{"id": "s1", "name": "Evening", "operation": "add",'
             ' "action": {"Light": {"Power": false}}}]', RequestSource.CLOUD)
scenes.apply('[{"id": "s1", "operation": "activate"}]', RequestSource.CLOUD)
print(scenes.params_json())
```

Operations are `add`, `edit`, `remove`, `activate` and `deactivate`
(deactivate only when `deactivate_support=True`). An `edit` of an unknown id
is treated as an `add`. Writes to the scenes parameter from the cloud reach
`ScenesService.write`, which applies them and reports the new list.

## Schedules

`ScheduleService` accepts `add`, `edit`, `remove`, `enable` and `disable`
requests, each with a trigger: relative seconds (`rsec`), minutes after
midnight with a weekday mask (`m`, `d`), or a date (`dd`, `mm`, `yy`, `r`).

```python
from rainnode.schedule import ScheduleService

schedules = ScheduleService(rm, time_check=lambda: True)
schedules.enable()
schedules.apply('[{"id": "t1", "name": "Morning", "operation": "add",'
                ' "action": {"Light": {"Power": true}},'
                ' "triggers": [{"m": 420, "d": 31}]}]', RequestSource.CLOUD)
schedules.trigger(schedules.schedule("t1").index)   # run the action as if the timer fired
```

Schedules are only armed once `time_check()` returns True; until then call
`timesync_tick()` (every `TIME_SYNC_DELAY` seconds) to retry. After a
one-time schedule fires and `is_expired` reports it done, it is disabled and
the list is reported again.

## What this package does not do

- It has no MQTT transport of its own: connecting, subscribing and
  publishing happen only through the callables you put in `MqttConfig`.
- `ParamStore` keeps persisted values in memory only; nothing is written to
  disk.
- `Scheduler` records timer entries but runs no timers. A host with real
  timers subclasses it and calls `ScheduleService.trigger(index)` and
  `ScheduleService.set_next_timestamp(index, timestamp)` itself.
- It does not synchronise the clock; it only asks `time_check`.
- It has no command-line tool, no provisioning and no user-to-node mapping.

## Running the tests

```
pip install -e ".[test]"
pytest
```