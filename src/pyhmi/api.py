"""HTTP/WebSocket surface for actions and status.

Routes:

* ``GET /status`` - current status snapshot.
* ``POST /actions`` - ``{"action": "CHANGE_MODE", "value": "..."}``.
* ``POST /drive_events`` - ``{"event": "...", "types": [...], ...}``.
* ``GET /ws`` - WebSocket receiving every published status.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any

from aiohttp import WSMsgType, web
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pyhmi.exceptions import HmiFatalError, HmiTransportError
from pyhmi.models.actions import ActionRequest
from pyhmi.models.status import StatusRecord
from pyhmi.worker import HmiWorker

_logger = logging.getLogger(__name__)

WORKER_KEY = web.AppKey("worker", HmiWorker)


class DriveEventRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    event: str
    types: list[str] = Field(default_factory=list)
    is_reportable: bool = False
    event_time_ms: int | None = None


class _LatestQueue:
    """Single-slot queue: a slow subscriber only ever sees the newest status."""

    def __init__(self) -> None:
        self._q: asyncio.Queue[str] = asyncio.Queue(maxsize=1)

    def put_latest(self, item: str) -> None:
        if self._q.full():
            self._q.get_nowait()
        self._q.put_nowait(item)

    async def get(self) -> str:
        return await self._q.get()


class StatusHub:
    """Fans published status out to WebSocket subscribers.

    Registered as a status update handler; runs on the event loop.
    """

    def __init__(self) -> None:
        self._subs: dict[int, _LatestQueue] = {}
        self._next_id = 1

    def __call__(self, _status_changed: bool, status: StatusRecord) -> None:
        if not self._subs:
            return
        payload = status.model_dump_json()
        for queue in self._subs.values():
            queue.put_latest(payload)

    def subscribe(self) -> tuple[int, _LatestQueue]:
        sub_id = self._next_id
        self._next_id += 1
        queue = _LatestQueue()
        self._subs[sub_id] = queue
        return sub_id, queue

    def unsubscribe(self, sub_id: int) -> None:
        self._subs.pop(sub_id, None)


HUB_KEY = web.AppKey("status_hub", StatusHub)


def _json_error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _get_status(request: web.Request) -> web.Response:
    worker = request.app[WORKER_KEY]
    return web.json_response(text=worker.get_status().model_dump_json())


async def _post_action(request: web.Request) -> web.Response:
    worker = request.app[WORKER_KEY]
    try:
        body: Any = await request.json()
        action_request = ActionRequest.model_validate(body)
    except (ValueError, ValidationError) as exc:
        return _json_error(400, f"invalid action request: {exc}")

    try:
        result = await worker.trigger(action_request.action, action_request.value)
    except HmiFatalError as exc:
        return _json_error(500, f"fatal: {exc}")
    return web.json_response(text=result.model_dump_json())


async def _post_drive_event(request: web.Request) -> web.Response:
    worker = request.app[WORKER_KEY]
    try:
        body: Any = await request.json()
        event_request = DriveEventRequest.model_validate(body)
    except (ValueError, ValidationError) as exc:
        return _json_error(400, f"invalid drive event: {exc}")

    event_time_ms = event_request.event_time_ms
    if event_time_ms is None:
        event_time_ms = int(time.time() * 1000)
    try:
        event = worker.submit_drive_event(
            event_time_ms,
            event_request.event,
            event_request.types,
            event_request.is_reportable,
        )
    except HmiTransportError as exc:
        return _json_error(503, str(exc))
    return web.json_response(text=event.model_dump_json())


async def _status_ws(request: web.Request) -> web.WebSocketResponse:
    hub = request.app[HUB_KEY]
    worker = request.app[WORKER_KEY]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    sub_id, queue = hub.subscribe()

    async def _pump() -> None:
        await ws.send_str(worker.get_status().model_dump_json())
        while True:
            await ws.send_str(await queue.get())

    pump = asyncio.create_task(_pump())
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                _logger.debug("WebSocket closed with exception %s", ws.exception())
                break
    finally:
        hub.unsubscribe(sub_id)
        pump.cancel()
        with contextlib.suppress(asyncio.CancelledError, ConnectionResetError):
            await pump
    return ws


def create_app(worker: HmiWorker) -> web.Application:
    """Build the aiohttp application serving *worker*."""
    app = web.Application()
    hub = StatusHub()
    worker.register_status_update_handler(hub)
    app[WORKER_KEY] = worker
    app[HUB_KEY] = hub
    app.router.add_get("/status", _get_status)
    app.router.add_post("/actions", _post_action)
    app.router.add_post("/drive_events", _post_drive_event)
    app.router.add_get("/ws", _status_ws)
    return app
