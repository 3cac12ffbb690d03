"""Parameter values and parameters of devices and services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Any, Iterable, Optional

# Internal change-tracking flags kept on each parameter.
VALUE_CHANGE = 1 << 0
VALUE_NOTIFY = 1 << 1


class ParamError(ValueError):
    """Raised when a parameter operation is invalid."""


class ValueType(IntEnum):
    INVALID = 0
    BOOLEAN = 1
    INTEGER = 2
    FLOAT = 3
    STRING = 4
    OBJECT = 5
    ARRAY = 6

    @property
    def is_text(self) -> bool:
        return self in (ValueType.STRING, ValueType.OBJECT, ValueType.ARRAY)


class PropFlag(IntFlag):
    NONE = 0
    WRITE = 1 << 0
    READ = 1 << 1
    TIME_SERIES = 1 << 2
    PERSIST = 1 << 3


class RequestSource(IntEnum):
    INIT = 0
    CLOUD = 1
    SCHEDULE = 2
    SCENE_ACTIVATE = 3
    SCENE_DEACTIVATE = 4
    LOCAL = 5


_SOURCE_NAMES = {
    RequestSource.INIT: "Init",
    RequestSource.CLOUD: "Cloud",
    RequestSource.SCHEDULE: "Schedule",
    RequestSource.SCENE_ACTIVATE: "Scene Activate",
    RequestSource.SCENE_DEACTIVATE: "Scene Deactivate",
    RequestSource.LOCAL: "Local",
}

_DATA_TYPE_NAMES = {
    ValueType.BOOLEAN: "bool",
    ValueType.INTEGER: "int",
    ValueType.FLOAT: "float",
    ValueType.STRING: "string",
    ValueType.OBJECT: "object",
    ValueType.ARRAY: "array",
}


def request_source_name(src: Any) -> Optional[str]:
    """Return the display name of a request source, or None if unknown."""
    try:
        return _SOURCE_NAMES.get(RequestSource(src))
    except ValueError:
        return None


def data_type_name(value_type: Any) -> str:
    """Return the data type name used in the node configuration."""
    try:
        return _DATA_TYPE_NAMES.get(ValueType(value_type), "invalid")
    except ValueError:
        return "invalid"


@dataclass(frozen=True)
class ParamValue:
    """A typed parameter value. Text types may hold None."""

    type: ValueType
    value: Any = None


def bool_value(value: Any) -> ParamValue:
    return ParamValue(ValueType.BOOLEAN, bool(value))


def int_value(value: Any) -> ParamValue:
    return ParamValue(ValueType.INTEGER, int(value))


def float_value(value: Any) -> ParamValue:
    return ParamValue(ValueType.FLOAT, float(value))


def str_value(value: Optional[str]) -> ParamValue:
    return ParamValue(ValueType.STRING, value)


def obj_value(value: Optional[str]) -> ParamValue:
    return ParamValue(ValueType.OBJECT, value)


def array_value(value: Optional[str]) -> ParamValue:
    return ParamValue(ValueType.ARRAY, value)


@dataclass
class Bounds:
    """Limits of a numeric parameter, or the max count of an array."""

    minimum: Optional[ParamValue] = None
    maximum: Optional[ParamValue] = None
    step: Optional[ParamValue] = None


class Param:
    """A named, typed parameter belonging to a device or service."""

    def __init__(
        self,
        name: str,
        type: Optional[str],
        value: ParamValue,
        properties: int = PropFlag.NONE,
    ) -> None:
        if not name:
            raise ParamError("Param name is mandatory")
        self.name = name
        self.type = type
        self.value = ParamValue(value.type, value.value)
        self.properties = PropFlag(properties)
        self.flags = 0
        self.ui_type: Optional[str] = None
        self.bounds: Optional[Bounds] = None
        self.valid_strings: Optional[list[str]] = None
        self.parent: Any = None

    def __repr__(self) -> str:
        return f"Param(name={self.name!r}, type={self.type!r}, value={self.value!r})"

    def add_bounds(self, minimum: ParamValue, maximum: ParamValue, step: ParamValue) -> None:
        """Set min/max/step; only for integer and float parameters."""
        if self.value.type not in (ValueType.INTEGER, ValueType.FLOAT):
            raise ParamError("Only integer and float params can have bounds.")
        if any(v.type != self.value.type for v in (minimum, maximum, step)):
            raise ParamError(
                f"Cannot set bounds for {self.name} because of value type mismatch."
            )
        self.bounds = Bounds(minimum, maximum, step)

    def add_valid_strings(self, strings: Iterable[str]) -> None:
        """Restrict a string parameter to a list of valid strings."""
        if self.value.type != ValueType.STRING:
            raise ParamError("Only string params can have valid strings array.")
        self.valid_strings = list(strings)

    def add_array_max_count(self, count: int) -> None:
        """Set the maximum element count of an array parameter."""
        if self.value.type != ValueType.ARRAY:
            raise ParamError("Only array params can have max count.")
        self.bounds = Bounds(maximum=int_value(count))

    def add_ui_type(self, ui_type: str) -> None:
        if not ui_type:
            raise ParamError("UI type cannot be empty.")
        self.ui_type = ui_type

    def update(self, value: ParamValue) -> None:
        """Replace the value, keeping its type, and mark it as changed."""
        if self.value.type != value.type:
            raise ParamError("New param value type not same as the existing one.")
        if self.value.type == ValueType.INVALID:
            raise ParamError("Param has an invalid value type.")
        self.value = ParamValue(value.type, value.value)
        self.flags |= VALUE_CHANGE