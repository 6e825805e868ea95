import asyncio
import sys

import pytest
from aiohttp.test_utils import TestClient, TestServer

from autoplanner import events
from autoplanner.events import EventHub
from autoplanner.hyperparams import Hyperparameters
from autoplanner.server import HUB_KEY, ObserverChannel, create_app
from autoplanner.session import SessionConfig, SessionController


def _build(**hp):
    hub = EventHub()
    session = SessionController(
        hub.emit,
        hyperparams=Hyperparameters(**hp),
        config=SessionConfig(tick_interval=0.005, seed=3),
    )
    return session, create_app(session, hub)


def _serve(app, scenario):
    async def runner():
        async with TestClient(TestServer(app)) as client:
            return await scenario(client)
    return asyncio.run(runner())


async def _next(ws, name, limit=500):
    for _ in range(limit):
        message = await ws.receive_json(timeout=3)
        if message["event"] == name:
            return message["data"]
    raise AssertionError(f"no {name} event received")


def test_status_endpoint():
    session, app = _build()

    async def scenario(client):
        resp = await client.get("/status")
        assert resp.status == 200
        return await resp.json()

    status = _serve(app, scenario)
    assert status == {
        "running": False,
        "currentEpisode": 0,
        "stepInEpisode": 0,
        "state": session.state,
        "action": session.action,
        "rewardsLength": 0,
    }


def test_config_endpoint_merges_numeric_fields():
    session, app = _build()

    async def scenario(client):
        resp = await client.post("/config", json={"ALPHA": 0.5, "EPSILON": "high", "unknownField": "x"})
        first = await resp.json()
        resp = await client.post("/config", data="not json")
        second = await resp.json()
        return first, second

    first, second = _serve(app, scenario)
    assert first == {"ok": True}
    assert second == {"ok": True}
    assert session.hyperparams == Hyperparameters(alpha=0.5)


def test_websocket_init_params_and_updates():
    session, app = _build(steps_per_episode=5, episode_target=100)

    async def scenario(client):
        ws = await client.ws_connect("/ws")
        init = await ws.receive_json(timeout=3)
        await ws.send_str("garbage")
        await ws.send_json({"event": events.SET_PARAMS, "data": {"epsilon": 0, "bogus": 1}})
        ack = await _next(ws, events.PARAMS_UPDATED)
        await ws.send_json({"event": events.START})
        await _next(ws, events.STARTED)
        update = await _next(ws, events.UPDATE)
        await ws.send_json({"event": events.PAUSE})
        await _next(ws, events.PAUSED)
        await ws.close()
        return init, ack, update

    init, ack, update = _serve(app, scenario)
    assert init["event"] == events.INIT
    assert init["data"]["currentEpisode"] == 0
    assert init["data"]["rewards"] == []
    assert init["data"]["stepsPerEpisode"] == 5
    assert ack["epsilon"] == 0
    assert set(update) == {"state", "action", "currentEpisode", "stepInEpisode", "rewards", "qSample"}
    assert len(update["qSample"]) == 3
    assert session.running is False


def test_params_ack_is_unicast_and_reset_is_broadcast():
    session, app = _build()

    async def scenario(client):
        a = await client.ws_connect("/ws")
        b = await client.ws_connect("/ws")
        await a.receive_json(timeout=3)
        await b.receive_json(timeout=3)
        await a.send_json({"event": events.SET_PARAMS, "data": {"gamma": 0.5}})
        ack = await a.receive_json(timeout=3)
        await b.send_json({"event": events.RESET})
        from_a = await a.receive_json(timeout=3)
        from_b = await b.receive_json(timeout=3)
        await a.close()
        await b.close()
        return ack, from_a, from_b

    ack, from_a, from_b = _serve(app, scenario)
    assert ack["event"] == events.PARAMS_UPDATED
    assert ack["data"]["gamma"] == 0.5
    assert from_a["event"] == events.RESET_COMPLETE
    assert from_b == from_a
    assert from_b["data"]["state"] == session.state


class _FakeSocket:
    closed = False


def test_observer_queue_drops_oldest_when_full():
    channel = ObserverChannel(_FakeSocket(), maxsize=2)
    for i in range(5):
        channel.push(events.UPDATE, {"i": i})
    assert channel.dropped == 3
    kept = [channel.queue.get_nowait()["data"]["i"] for _ in range(2)]
    assert kept == [3, 4]


def test_disconnect_leaves_session_running_headless():
    session, app = _build(steps_per_episode=100000, episode_target=100)
    hub = app[HUB_KEY]

    async def scenario(client):
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=3)
        await ws.send_json({"event": events.START})
        await _next(ws, events.STARTED)
        await ws.close()
        for _ in range(200):
            if len(hub) == 0:
                break
            await asyncio.sleep(0.005)
        before = session.step_in_episode
        await asyncio.sleep(0.05)
        return before, session.step_in_episode, session.running, len(hub)

    before, after, running, subscribers = _serve(app, scenario)
    assert running is True
    assert after > before
    assert subscribers == 0


class _SlowSocket:
    closed = False

    async def send_json(self, message):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            await asyncio.sleep(0.05)
            raise


@pytest.mark.skipif(sys.version_info < (3, 11), reason="Task.cancelling() needs 3.11")
def test_channel_close_propagates_outer_cancellation():
    async def scenario():
        channel = ObserverChannel(_SlowSocket())
        channel.start()
        channel.push(events.UPDATE, {})
        await asyncio.sleep(0.01)
        closer = asyncio.create_task(channel.close())
        await asyncio.sleep(0.01)
        closer.cancel()
        await asyncio.wait([closer])
        return closer.cancelled()

    assert asyncio.run(scenario()) is True


def test_channel_close_after_pump_cancel_returns():
    async def scenario():
        channel = ObserverChannel(_FakeSocket())
        channel.start()
        await asyncio.sleep(0)
        await channel.close()
        return channel._task

    assert asyncio.run(scenario()) is None
