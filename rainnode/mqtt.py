"""A thin MQTT front end that dispatches to pluggable transport hooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

QOS0 = 0
QOS1 = 1
QOS2 = 2

SubscribeCallback = Callable[[str, bytes, Any], None]


@dataclass
class MqttConfig:
    """Transport hooks; any hook left as None is reported and skipped."""

    init: Optional[Callable[[Any], Any]] = None
    connect: Optional[Callable[[], Any]] = None
    disconnect: Optional[Callable[[], Any]] = None
    subscribe: Optional[Callable[[str, SubscribeCallback, int, Any], Any]] = None
    unsubscribe: Optional[Callable[[str], Any]] = None
    publish: Optional[Callable[[str, bytes, int], Any]] = None
    get_conn_params: Optional[Callable[[], Any]] = None


def _check_qos(qos: int) -> int:
    if qos not in (QOS0, QOS1, QOS2):
        raise ValueError(f"QoS must be 0, 1 or 2, not {qos!r}")
    return qos


class MqttClient:
    """Forwards MQTT operations to the hooks of an MqttConfig."""

    def __init__(self, config: Optional[MqttConfig] = None) -> None:
        self.config = config if config is not None else MqttConfig()

    @property
    def conn_params(self) -> Any:
        """Connection parameters from the configured provider, if any."""
        if self.config.get_conn_params is not None:
            return self.config.get_conn_params()
        return None

    @staticmethod
    def _missing(name: str) -> None:
        logger.warning("mqtt %s not registered", name)

    def init(self, conn_params: Any) -> Any:
        """Initialise the transport with the given connection parameters."""
        if self.config.init is not None:
            return self.config.init(conn_params)
        self._missing("init")
        return None

    def connect(self) -> Any:
        """Start connecting to the broker."""
        if self.config.connect is not None:
            return self.config.connect()
        self._missing("connect")
        return None

    def disconnect(self) -> Any:
        """Disconnect from the broker."""
        if self.config.disconnect is not None:
            return self.config.disconnect()
        self._missing("disconnect")
        return None

    def subscribe(
        self,
        topic: str,
        callback: SubscribeCallback,
        qos: int = QOS1,
        priv_data: Any = None,
    ) -> Any:
        """Subscribe to a topic; callback(topic, payload, priv_data) gets messages."""
        _check_qos(qos)
        if self.config.subscribe is not None:
            return self.config.subscribe(topic, callback, qos, priv_data)
        self._missing("subscribe")
        return None

    def unsubscribe(self, topic: str) -> Any:
        """Unsubscribe from a topic."""
        if self.config.unsubscribe is not None:
            return self.config.unsubscribe(topic)
        self._missing("unsubscribe")
        return None

    def publish(self, topic: str, data: Union[str, bytes], qos: int = QOS1) -> Any:
        """Publish data on a topic; returns what the transport returns (e.g. a message id)."""
        _check_qos(qos)
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if self.config.publish is not None:
            return self.config.publish(topic, payload, qos)
        self._missing("publish")
        return None