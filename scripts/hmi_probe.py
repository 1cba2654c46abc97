#!/usr/bin/env python3
"""Passive MQTT probe for HMI traffic.

Subscribes to the worker's outbound topics (status, control, drive events)
and prints every message. Useful to check publish cadence and that a
driving-mode transition actually sends what it should.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import paho.mqtt.client as mqtt  # noqa: E402

from pyhmi.config import HmiConfig  # noqa: E402

_LOG = logging.getLogger("hmi_probe")


@dataclass
class ProbeStats:
    started_at: float
    total_messages: int = 0
    invalid_json: int = 0
    per_topic: dict[str, int] = field(default_factory=dict)
    last_message_at: dict[str, float] = field(default_factory=dict)

    def on_message(self, topic: str, now: float) -> float | None:
        previous = self.last_message_at.get(topic)
        self.total_messages += 1
        self.per_topic[topic] = self.per_topic.get(topic, 0) + 1
        self.last_message_at[topic] = now
        return None if previous is None else now - previous


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Passive MQTT probe for HMI topics.")
    parser.add_argument("--host", help="Broker host (default: HMI_MQTT_HOST or localhost).")
    parser.add_argument("--port", type=int, help="Broker port (default: HMI_MQTT_PORT or 1883).")
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--inbound",
        action="store_true",
        help="Also watch the system status and chassis topics the worker consumes.",
    )
    parser.add_argument("--json", action="store_true", help="Pretty-print payloads.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s      : {runtime:.1f}")
    print(f"[probe]   total_messages : {stats.total_messages}")
    print(f"[probe]   invalid_json   : {stats.invalid_json}")
    for topic, count in sorted(stats.per_topic.items()):
        print(f"[probe]   {topic:<22}: {count}")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.host:
        overrides["mqtt_host"] = args.host
    if args.port:
        overrides["mqtt_port"] = args.port
    config = HmiConfig.from_env(**overrides)
    topics = [config.topics.status, config.topics.pad, config.topics.drive_event]
    if args.inbound:
        topics += [config.topics.system_status, config.topics.chassis]

    stats = ProbeStats(started_at=time.time())
    should_stop = False

    def stop_handler(_signum: int, _frame: Any) -> None:
        nonlocal should_stop
        should_stop = True

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    mqtt_client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=f"{config.mqtt_client_id}-probe",
        protocol=mqtt.MQTTv5,
    )
    mqtt_client.enable_logger(_LOG)

    def on_connect(
        client: mqtt.Client,
        _userdata: Any,
        _flags: mqtt.ConnectFlags,
        reason_code: mqtt.ReasonCode,
        _properties: mqtt.Properties | None,
    ) -> None:
        if reason_code.value != 0:
            print(f"[probe] MQTT connect failed: {reason_code}", file=sys.stderr)
            client.disconnect()
            return
        for topic in topics:
            print(f"[probe] Subscribing to {topic}")
            client.subscribe(topic, qos=0)

    def on_message(_client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        now = time.time()
        delta = stats.on_message(msg.topic, now)
        ts_text = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now))
        gap_text = "first" if delta is None else f"{delta:.2f}s"
        print(f"[probe] {ts_text} topic={msg.topic} gap={gap_text} bytes={len(msg.payload)}")
        try:
            payload = json.loads(msg.payload)
        except ValueError:
            stats.invalid_json += 1
            print(f"[probe] invalid_json: {msg.payload[:120]!r}")
            return
        print(json.dumps(payload, indent=2 if args.json else None, sort_keys=True))

    mqtt_client.on_connect = on_connect
    mqtt_client.on_message = on_message

    print(f"[probe] Connecting to {config.mqtt_host}:{config.mqtt_port}...")
    try:
        mqtt_client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
    except OSError as exc:
        print(f"[probe] Connect failed: {exc}", file=sys.stderr)
        return 2

    mqtt_client.loop_start()
    try:
        while not should_stop:
            if args.duration > 0 and (time.time() - stats.started_at) >= args.duration:
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
                break
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        try:
            mqtt_client.disconnect()
        finally:
            mqtt_client.loop_stop()

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
