"""
Network surfaces for a training session.

- ``GET /ws``: websocket observer channel, JSON frames ``{"event", "data"}``
  in both directions.
- ``GET /status``: snapshot of the run state.
- ``POST /config``: merge-update hyperparameters.
"""
import asyncio
import itertools
import json
import logging

from aiohttp import WSMsgType, web

from autoplanner import events
from autoplanner.events import EventHub
from autoplanner.session import SessionController

_LOGGER = logging.getLogger(__name__)

SESSION_KEY = web.AppKey("session", SessionController)
HUB_KEY = web.AppKey("hub", EventHub)

_observer_ids = itertools.count(1)


class ObserverChannel:
    """
    Outbound side of one websocket.

    Events are queued and written by a dedicated task. When the queue is
    full the oldest event is dropped, so a slow observer only ever lags,
    it never stalls the session.
    """

    def __init__(self, ws: web.WebSocketResponse, maxsize: int = 64):
        self.id = next(_observer_ids)
        self.ws = ws
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, maxsize))
        self.dropped = 0
        self._task: asyncio.Task | None = None

    def push(self, event: str, payload: dict) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait({"event": event, "data": payload})

    def start(self) -> None:
        self._task = asyncio.create_task(self._pump())

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                # only swallow the pump's own cancellation, not one aimed at us
                current = asyncio.current_task()
                if current is not None and getattr(current, "cancelling", lambda: 0)():
                    raise
            self._task = None

    async def _pump(self) -> None:
        while True:
            message = await self.queue.get()
            if self.ws.closed:
                return
            try:
                await self.ws.send_json(message)
            except ConnectionResetError:
                _LOGGER.debug("observer %d went away mid-send", self.id)
                return


def _decode(raw: str) -> tuple[str | None, object]:
    try:
        message = json.loads(raw)
    except ValueError:
        return None, None
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        return None, None
    return message["event"], message.get("data")


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    session = request.app[SESSION_KEY]
    hub = request.app[HUB_KEY]

    ws = web.WebSocketResponse()
    await ws.prepare(request)

    channel = ObserverChannel(ws, maxsize=session.config.queue_size)
    channel.push(events.INIT, session.init_payload())
    unsubscribe = hub.subscribe(channel.push)
    channel.start()
    _LOGGER.info("observer %d connected (%d total)", channel.id, len(hub))

    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                command, payload = _decode(msg.data)
                if command is None:
                    _LOGGER.warning("observer %d sent a malformed frame", channel.id)
                    continue
                session.handle_command(command, payload, reply=channel.push)
            elif msg.type == WSMsgType.ERROR:
                _LOGGER.warning("observer %d connection error: %s", channel.id, ws.exception())
    finally:
        unsubscribe()
        await channel.close()
        _LOGGER.info("observer %d disconnected (dropped %d events)", channel.id, channel.dropped)

    return ws


async def status_handler(request: web.Request) -> web.Response:
    return web.json_response(request.app[SESSION_KEY].status())


async def config_handler(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except ValueError:
        body = {}
    request.app[SESSION_KEY].configure(body if isinstance(body, dict) else {})
    return web.json_response({"ok": True})


async def _on_cleanup(app: web.Application) -> None:
    app[SESSION_KEY].scheduler.stop()


def create_app(session: SessionController, hub: EventHub) -> web.Application:
    app = web.Application()
    app[SESSION_KEY] = session
    app[HUB_KEY] = hub
    app.router.add_get("/ws", websocket_handler)
    app.router.add_get("/status", status_handler)
    app.router.add_post("/config", config_handler)
    app.on_cleanup.append(_on_cleanup)
    return app
