"""The scenes service: named groups of parameter writes applied on demand."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Union

from .node import Device
from .params import (
    Param,
    ParamError,
    ParamValue,
    PropFlag,
    RequestSource,
    array_value,
)
from .runtime import RainMaker
from .types import PARAM_SCENES, SERVICE_SCENES

logger = logging.getLogger(__name__)

MAX_ID_LEN = 8
MAX_NAME_LEN = 32
MAX_INFO_LEN = 100
MAX_OPERATION_LEN = 10
DEFAULT_MAX_SCENES = 10

SERVICE_NAME = "Scenes"
SCENES_PARAM_NAME = "Scenes"


class SceneOperation(IntEnum):
    INVALID = 0
    ADD = 1
    EDIT = 2
    REMOVE = 3
    ACTIVATE = 4
    DEACTIVATE = 5


_OPERATION_WORDS = (
    ("add", SceneOperation.ADD),
    ("edit", SceneOperation.EDIT),
    ("remove", SceneOperation.REMOVE),
    ("activate", SceneOperation.ACTIVATE),
    ("deactivate", SceneOperation.DEACTIVATE),
)


def parse_operation(text: Optional[str]) -> SceneOperation:
    """Map an operation word, or a prefix of one, to a SceneOperation."""
    if text is None:
        return SceneOperation.INVALID
    for word, operation in _OPERATION_WORDS:
        if word.startswith(text):
            return operation
    return SceneOperation.INVALID


@dataclass
class Scene:
    """A scene: an identified, named action document."""

    id: str
    name: str
    info: Optional[str] = None
    flags: int = 0
    action: Optional[str] = None

    def to_dict(self) -> dict:
        entry: dict[str, Any] = {"name": self.name, "id": self.id}
        if self.info is not None:
            entry["info"] = self.info
        if self.flags != 0:
            entry["flags"] = self.flags
        entry["action"] = None if self.action is None else json.loads(self.action)
        return entry


def _get_str(entry: dict, key: str, max_len: int) -> Optional[str]:
    """Return a string field that fits within max_len bytes, else None."""
    value = entry.get(key)
    if not isinstance(value, str):
        return None
    if len(value.encode("utf-8")) > max_len:
        return None
    return value


class ScenesService:
    """Keeps the list of scenes and applies scene requests to the node."""

    def __init__(
        self,
        rainmaker: RainMaker,
        max_scenes: int = DEFAULT_MAX_SCENES,
        deactivate_support: bool = False,
    ) -> None:
        self.rainmaker = rainmaker
        self.max_scenes = max_scenes
        self.deactivate_support = deactivate_support
        self.scenes: list[Scene] = []
        self.service: Optional[Device] = None

    def __len__(self) -> int:
        return len(self.scenes)

    def enable(self) -> Device:
        """Create the scenes service and add it to the node."""
        device = Device(
            name=SERVICE_NAME,
            type=SERVICE_SCENES,
            is_service=True,
            write_cb=self.write,
            priv_data=self,
        )
        param = Param(
            SCENES_PARAM_NAME,
            PARAM_SCENES,
            array_value("[]"),
            PropFlag.READ | PropFlag.WRITE | PropFlag.PERSIST,
        )
        param.add_array_max_count(self.max_scenes)
        device.add_param(param)
        self.rainmaker.node.add_device(device)
        self.service = device
        logger.debug("Scenes Service Enabled")
        return device

    def scene(self, scene_id: str) -> Optional[Scene]:
        """Return the scene with the given id, or None."""
        return next((s for s in self.scenes if s.id == scene_id), None)

    def _operation(self, entry: dict, scene_id: str) -> SceneOperation:
        text = _get_str(entry, "operation", MAX_OPERATION_LEN)
        if not text:
            logger.error("Operation not found in scene with id: %s", scene_id)
            return SceneOperation.INVALID
        operation = parse_operation(text)
        if operation == SceneOperation.EDIT and self.scene(scene_id) is None:
            operation = SceneOperation.ADD
        elif operation == SceneOperation.INVALID:
            logger.error("Invalid scene operation found: %s", text)
        return operation

    def _find_or_create(
        self, entry: dict, scene_id: str, operation: SceneOperation
    ) -> Optional[Scene]:
        existing = self.scene(scene_id)
        name = _get_str(entry, "name", MAX_NAME_LEN)
        if operation == SceneOperation.ADD:
            if existing is not None:
                logger.error("Scene with id %s already exists. Not adding it again.", scene_id)
                return None
            if not name:
                logger.error("Name not found for scene with id: %s", scene_id)
                return None
            return Scene(id=scene_id, name=name)
        if existing is None:
            logger.error("Scene with id %s not found", scene_id)
            return None
        if operation == SceneOperation.EDIT and name:
            existing.name = name
        return existing

    @staticmethod
    def _parse_info_and_flags(entry: dict, scene: Scene) -> None:
        info = _get_str(entry, "info", MAX_INFO_LEN)
        if info is not None:
            scene.info = info or None
        flags = entry.get("flags")
        if isinstance(flags, int) and not isinstance(flags, bool):
            scene.flags = flags & 0xFFFFFFFF

    @staticmethod
    def _parse_action(entry: dict, scene: Scene) -> None:
        action = entry.get("action")
        if not isinstance(action, dict):
            logger.debug("Action not found in JSON")
            return
        scene.action = json.dumps(action, separators=(",", ":"))

    def _run_action(self, scene: Scene, src: RequestSource) -> None:
        if scene.action is None:
            logger.error("Scene with id %s has no action.", scene.id)
            return
        self.rainmaker.handle_set_params(scene.action, src)

    def _perform(self, scene: Scene, operation: SceneOperation) -> None:
        if operation == SceneOperation.ADD:
            if len(self.scenes) < self.max_scenes:
                self.scenes.append(scene)
            else:
                logger.error(
                    "Max scenes (%d) reached. Not adding this scene with id %s",
                    self.max_scenes,
                    scene.id,
                )
        elif operation == SceneOperation.REMOVE:
            self.scenes = [s for s in self.scenes if s.id != scene.id]
        elif operation == SceneOperation.ACTIVATE:
            self._run_action(scene, RequestSource.SCENE_ACTIVATE)
        elif operation == SceneOperation.DEACTIVATE:
            if self.deactivate_support:
                self._run_action(scene, RequestSource.SCENE_DEACTIVATE)
            else:
                logger.warning("Deactivate operation not supported.")

    def apply(self, data: Union[str, bytes], src: RequestSource) -> bool:
        """Apply a JSON array of scene requests.

        Returns True when the last handled request changed the scene list
        (add, edit or remove), meaning the scenes should be reported.
        """
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        try:
            document = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ParamError(f"Invalid scenes JSON: {exc}") from exc
        report = False
        if not isinstance(document, list):
            return report
        for entry in document:
            if not isinstance(entry, dict):
                break
            scene_id = _get_str(entry, "id", MAX_ID_LEN)
            if not scene_id:
                logger.error("ID not found in scene JSON")
                continue
            if src == RequestSource.INIT:
                operation = SceneOperation.ADD
            else:
                operation = self._operation(entry, scene_id)
                if operation == SceneOperation.INVALID:
                    continue
            scene = self._find_or_create(entry, scene_id, operation)
            if scene is None:
                continue
            if operation in (SceneOperation.ADD, SceneOperation.EDIT):
                self._parse_info_and_flags(entry, scene)
                self._parse_action(entry, scene)
            report = operation in (
                SceneOperation.ADD,
                SceneOperation.EDIT,
                SceneOperation.REMOVE,
            )
            self._perform(scene, operation)
        return report

    def params_json(self) -> str:
        """Return the current scenes as compact JSON text."""
        return json.dumps([s.to_dict() for s in self.scenes], separators=(",", ":"))

    def _report(self) -> None:
        if self.service is None:
            raise ParamError("Scenes service is not enabled.")
        param = self.service.param_by_type(PARAM_SCENES)
        self.rainmaker.update_and_report(param, array_value(self.params_json()))

    def write(self, device: Device, param: Param, value: ParamValue, src: RequestSource) -> None:
        """Handle a write to the scenes parameter."""
        if param.type != PARAM_SCENES:
            raise ParamError(
                f"Got callback for invalid param with name {param.name} and type {param.type}"
            )
        if not value.value:
            raise ParamError("Invalid length for scenes params: 0")
        report = self.apply(value.value, src)
        if src != RequestSource.INIT and report:
            self._report()