from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.timer import FrameTimer
from ..sim.core.world import World

logger = logging.getLogger(__name__)

_MAX_QUEUED_SNAPSHOTS = 256


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


def _coerce_point(payload: Dict[str, Any]) -> tuple[float, float] | None:
    x = payload.get("x")
    y = payload.get("y")
    if isinstance(x, bool) or isinstance(y, bool):
        return None
    if not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
        return None
    return float(x), float(y)


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=_MAX_QUEUED_SNAPSHOTS)
        self._timer = FrameTimer()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        if not self.running:
            self._timer.reset()
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
            self._timer.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def advance(self) -> None:
        elapsed = self._timer.tick()
        async with self._lock:
            self.world.step(self.tick, dt=elapsed * self.speed_multiplier)
            self.tick += 1
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            try:
                await self.advance()
            except Exception:
                logger.exception("Simulation tick %d failed", self.tick)

    async def set_pointer(self, x: float | None, y: float | None) -> None:
        async with self._lock:
            if x is None or y is None:
                self.world.clear_target()
            else:
                self.world.set_target(x, y)

    async def add_waypoint(self, x: float, y: float, label: str | None = None) -> bool:
        async with self._lock:
            return self.world.add_waypoint(x, y, label) is not None

    async def handle_message(self, payload: Dict[str, Any]) -> None:
        kind = payload.get("type")
        if kind == "ack":
            tick = payload.get("tick")
            if isinstance(tick, int):
                await self.acknowledge(tick)
        elif kind == "pointer":
            if payload.get("x") is None and payload.get("y") is None:
                await self.set_pointer(None, None)
                return
            point = _coerce_point(payload)
            if point is None:
                logger.debug("Dropping malformed pointer message: %r", payload)
                return
            await self.set_pointer(*point)
        elif kind == "waypoint":
            point = _coerce_point(payload)
            if point is None:
                logger.debug("Dropping malformed waypoint message: %r", payload)
                return
            label = payload.get("label")
            await self.add_waypoint(point[0], point[1], label if isinstance(label, str) else None)
        else:
            logger.debug("Ignoring message of type %r", kind)

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "target": snapshot.target,
                "walker": snapshot.walker,
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.info("Dropping disconnected client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def _load_app_config() -> AppConfig:
    config_path = os.environ.get("KOIPOND_CONFIG")
    if not config_path:
        return AppConfig()
    return AppConfig(simulation=SimulationConfig.from_yaml(Path(config_path)))


app = FastAPI(title="Koipond Steering Simulation")
app_config = _load_app_config()
controller = SimulationController(app_config.simulation, app_config.broadcast_interval)


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "agents": len(controller.world.agents),
            "metrics": asdict(snapshot.metrics),
            "target": snapshot.target,
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/input/pointer")
async def pointer_input(payload: dict) -> JSONResponse:
    await controller.handle_message({"type": "pointer", **payload})
    target = controller.world.target
    return JSONResponse({"target": None if target is None else {"x": target.x, "y": target.y}})


@app.post("/api/input/waypoint")
async def waypoint_input(payload: dict) -> JSONResponse:
    point = _coerce_point(payload)
    if point is None:
        return JSONResponse({"accepted": False, "error": "x and y must be numbers"}, status_code=422)
    label = payload.get("label")
    accepted = await controller.add_waypoint(point[0], point[1], label if isinstance(label, str) else None)
    walker = controller.world.walker
    return JSONResponse({"accepted": accepted, "waypoints": 0 if walker is None else len(walker.waypoints)})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    logger.info("Client connected")
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict):
                await controller.handle_message(payload)
    except WebSocketDisconnect:
        logger.info("Client disconnected")
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
