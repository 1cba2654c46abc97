"""Internal MQTT runtime."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyhmi.exceptions import HmiTransportError


@dataclass(frozen=True)
class MqttBrokerInfo:
    """Broker connection details."""

    host: str
    port: int
    client_id: str
    keepalive: int = 60


@dataclass(frozen=True)
class MqttMessage:
    """Raw inbound message."""

    topic: str
    payload: bytes


class HmiMqttRuntime:
    """Threaded paho-mqtt runtime that emits inbound messages onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_message: Callable[[MqttMessage], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_message = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topics: tuple[str, ...] = ()

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self, broker: MqttBrokerInfo, topics: Iterable[str]) -> None:
        """Connect and subscribe to *topics* (re-subscribed on every reconnect)."""
        self.stop()
        self._topics = tuple(topics)
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topics=%s client_id=%s",
            broker.host,
            broker.port,
            self._topics,
            broker.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=broker.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            for topic in self._topics:
                self._logger.debug("MQTT subscribing topic=%s", topic)
                c.subscribe(topic, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            message = MqttMessage(topic=msg.topic, payload=bytes(msg.payload))
            self._loop.call_soon_threadsafe(self._on_message, message)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(broker.host, broker.port, keepalive=broker.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def publish(self, topic: str, payload: bytes) -> None:
        client = self._client
        if client is None or not self._running:
            raise HmiTransportError("MQTT runtime is not running", topic=topic)
        info = client.publish(topic, payload, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise HmiTransportError(f"MQTT publish failed rc={info.rc}", topic=topic)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
