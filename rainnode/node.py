"""The node: its identity, attributes and the devices and services it holds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from .params import Param


class NodeError(ValueError):
    """Raised when a node or device operation is invalid."""


@dataclass
class Attribute:
    """A free-form name/value pair attached to a node or device."""

    name: str
    value: str


@dataclass
class NodeInfo:
    """Descriptive information about a node."""

    name: str
    type: str
    fw_version: str
    model: str
    subtype: Optional[str] = None


@dataclass(eq=False)
class Device:
    """A device or service exposing parameters on a node."""

    name: str
    type: Optional[str] = None
    subtype: Optional[str] = None
    model: Optional[str] = None
    write_cb: Optional[Callable[..., Any]] = None
    read_cb: Optional[Callable[..., Any]] = None
    priv_data: Any = None
    is_service: bool = False
    attributes: list[Attribute] = field(default_factory=list)
    params: list[Param] = field(default_factory=list)
    primary: Optional[Param] = None
    parent: Optional["Node"] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise NodeError("Device name is mandatory.")

    @property
    def kind(self) -> str:
        return "Service" if self.is_service else "Device"

    def add_param(self, param: Param) -> None:
        """Attach a parameter to this device."""
        if param is None:
            raise NodeError("Param handle cannot be None.")
        if self.param_by_name(param.name) is not None:
            raise NodeError(f"Param with name {param.name} already exists in {self.name}.")
        self.params.append(param)
        param.parent = self

    def param_by_type(self, param_type: str) -> Optional[Param]:
        """Return the first parameter of the given type, or None."""
        return next((p for p in self.params if p.type == param_type), None)

    def param_by_name(self, name: str) -> Optional[Param]:
        """Return the parameter with the given name, or None."""
        return next((p for p in self.params if p.name == name), None)


class Node:
    """A node: an identified collection of devices and services."""

    def __init__(
        self,
        node_id: str,
        name: str,
        type: str,
        fw_version: str,
        model: str,
    ) -> None:
        if not name or not type:
            raise NodeError("Node Name and Type are mandatory.")
        if not node_id:
            raise NodeError("Failed to initialise Node Id.")
        self.node_id = node_id
        self.info = NodeInfo(name=name, type=type, fw_version=fw_version, model=model)
        self.attributes: list[Attribute] = []
        self.devices: list[Device] = []

    def __repr__(self) -> str:
        return f"Node(node_id={self.node_id!r}, name={self.info.name!r})"

    def __iter__(self) -> Iterator[Device]:
        return iter(self.devices)

    def add_attribute(self, name: str, value: str) -> Attribute:
        """Add a node attribute; names must be unique."""
        if not name or value is None:
            raise NodeError("Attribute name or value cannot be empty.")
        if any(attr.name == name for attr in self.attributes):
            raise NodeError(f"Node attribute with name {name} already exists.")
        attr = Attribute(name, value)
        self.attributes.append(attr)
        return attr

    def add_device(self, device: Device) -> None:
        """Add a device or service; names must be unique within the node."""
        if device is None:
            raise NodeError("Device/Service handle cannot be None.")
        if self.device_by_name(device.name) is not None:
            raise NodeError(f"{device.kind} with name {device.name} already exists")
        self.devices.append(device)
        device.parent = self

    def remove_device(self, device: Device) -> None:
        """Detach a previously added device or service."""
        for position, existing in enumerate(self.devices):
            if existing is device:
                del self.devices[position]
                device.parent = None
                return
        raise NodeError(f"Device {device.name} not found in node {self.info.name}")

    def device_by_name(self, name: str) -> Optional[Device]:
        """Return the device or service with the given name, or None."""
        return next((d for d in self.devices if d.name == name), None)