"""Publish/subscribe message channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from pydantic import BaseModel

from pyhmi._mqtt import HmiMqttRuntime, MqttBrokerInfo, MqttMessage
from pyhmi.config import HmiConfig
from pyhmi.exceptions import HmiTransportError

_logger = logging.getLogger(__name__)

MessageCallback = Callable[[bytes], None]


class MessageBus(Protocol):
    """Structural bus interface used by the worker.

    Subscriber callbacks are invoked on the event loop thread. ``publish``
    raises :class:`~pyhmi.exceptions.HmiTransportError` when the message
    cannot be handed to the transport.
    """

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        ...

    def publish(self, topic: str, message: BaseModel) -> None:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


class MqttMessageBus:
    """JSON-over-MQTT implementation of :class:`MessageBus`."""

    def __init__(self, config: HmiConfig) -> None:
        self._config = config
        self._subscriptions: dict[str, list[MessageCallback]] = {}
        self._runtime: HmiMqttRuntime | None = None

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        """Register *callback*; subscriptions must be made before :meth:`start`."""
        self._subscriptions.setdefault(topic, []).append(callback)

    def publish(self, topic: str, message: BaseModel) -> None:
        runtime = self._runtime
        if runtime is None:
            raise HmiTransportError("Message bus not started", topic=topic)
        runtime.publish(topic, message.model_dump_json().encode("utf-8"))

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        runtime = HmiMqttRuntime(loop=loop, on_message=self._dispatch, logger=_logger)
        broker = MqttBrokerInfo(
            host=self._config.mqtt_host,
            port=self._config.mqtt_port,
            client_id=self._config.mqtt_client_id,
            keepalive=self._config.mqtt_keepalive,
        )
        try:
            await loop.run_in_executor(None, runtime.start, broker, list(self._subscriptions))
        except OSError as exc:
            raise HmiTransportError(f"Cannot connect to MQTT broker {broker.host}:{broker.port}: {exc}") from exc
        self._runtime = runtime

    async def stop(self) -> None:
        runtime = self._runtime
        self._runtime = None
        if runtime is None:
            return
        await asyncio.get_running_loop().run_in_executor(None, runtime.stop)

    def _dispatch(self, message: MqttMessage) -> None:
        for callback in self._subscriptions.get(message.topic, []):
            try:
                callback(message.payload)
            except Exception:
                _logger.warning("Subscriber for %s failed", message.topic, exc_info=True)
