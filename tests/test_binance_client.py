import asyncio
import socket

import orjson
import pytest
from aiohttp import web

from depth_viewer.config import FeedConfig
from depth_viewer.datafeed.binance_client import BinanceDepthClient, backoff_delays
from depth_viewer.types import ConnectionStatus


@pytest.fixture
def client(engine):
    return BinanceDepthClient(engine, FeedConfig(queue_size=2))


def frame(make_depth, update_id):
    return orjson.dumps(make_depth([(100, update_id)], [(101, 1)], update_id=update_id)).decode()


def unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_until(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


async def start_server(payload, hold=False):
    """Local depth stream: every connection gets one frame, then is closed (or held open)."""
    paths = []

    async def handler(request):
        paths.append(request.path)
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_str(payload)
        if hold:
            async for _ in ws:
                pass
        else:
            await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/ws/{stream}", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    return runner, port, paths


class TestBackoff:
    def test_doubles_and_caps(self):
        assert list(backoff_delays(0.5, 8.0, 7)) == [0.5, 1.0, 2.0, 4.0, 8.0, 8.0, 8.0]

    def test_bounded_attempts(self):
        assert list(backoff_delays(1.0, 10.0, 0)) == []


class TestMessageHandling:
    def test_accepted_frame_pushes_view(self, client, make_depth):
        assert client._handle_ws_message(frame(make_depth, 1)) is True
        view = client.view_queue.get_nowait()
        assert view.snapshot.update_id == 1

    def test_rejected_frame_pushes_nothing(self, client):
        assert client._handle_ws_message('{"bids": []}') is False
        assert client.view_queue.empty()

    def test_full_queue_drops_oldest(self, client, make_depth):
        for uid in (1, 2, 3):
            client._handle_ws_message(frame(make_depth, uid))

        ids = []
        while not client.view_queue.empty():
            ids.append(client.view_queue.get_nowait().snapshot.update_id)
        assert ids == [2, 3]


class TestStatus:
    def test_initial_status(self, client):
        assert client.status is ConnectionStatus.DISCONNECTED

    def test_status_callback(self, engine):
        seen = []
        client = BinanceDepthClient(engine, FeedConfig(), on_status=seen.append)
        client._set_status(ConnectionStatus.CONNECTING)
        client._set_status(ConnectionStatus.LIVE)
        client._set_status(ConnectionStatus.LIVE)
        assert seen == [ConnectionStatus.CONNECTING, ConnectionStatus.LIVE]
        assert client.status is ConnectionStatus.LIVE

    def test_reconnect_without_loop(self, client):
        client.reconnect()
        assert client._reconnect_requested.is_set()

    def test_stop_keeps_engine_state(self, client, make_depth):
        client._handle_ws_message(frame(make_depth, 7))
        client.stop()
        assert client.engine.snapshot.update_id == 7
        assert client.engine.history_depth == 1


class TestRunLoop:
    def test_bounded_retries_then_waits_for_manual_reconnect(self, engine):
        seen = []
        feed = FeedConfig(
            ws_base=f"ws://127.0.0.1:{unused_port()}/ws",
            auto_reconnect=True,
            reconnect_max_attempts=2,
            reconnect_base_delay_s=0.01,
            reconnect_max_delay_s=0.02,
        )
        client = BinanceDepthClient(engine, feed, on_status=seen.append)

        async def scenario():
            task = asyncio.create_task(client.run())
            await wait_until(
                lambda: seen.count(ConnectionStatus.CONNECTING) == 3
                and client.status is ConnectionStatus.DISCONNECTED
            )
            # Attempts exhausted: parked until reconnect() or stop()
            await asyncio.sleep(0.2)
            assert seen.count(ConnectionStatus.CONNECTING) == 3
            assert not task.done()

            client.stop()
            await asyncio.wait_for(task, timeout=2.0)

        asyncio.run(scenario())
        assert seen == [ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTED] * 3
        assert engine.stats.accepted == 0

    def test_manual_reconnect_resets_history_and_sequence(self, engine, make_depth):
        seen = []

        async def scenario():
            runner, port, paths = await start_server(frame(make_depth, 5))
            client = BinanceDepthClient(
                engine, FeedConfig(ws_base=f"ws://127.0.0.1:{port}/ws"), on_status=seen.append
            )
            task = asyncio.create_task(client.run())
            try:
                await wait_until(
                    lambda: engine.stats.accepted == 1 and client.status is ConnectionStatus.DISCONNECTED
                )
                assert engine.history_depth == 1
                assert seen == [ConnectionStatus.CONNECTING, ConnectionStatus.LIVE, ConnectionStatus.DISCONNECTED]
                # Manual mode: no second connection without reconnect()
                await asyncio.sleep(0.1)
                assert len(paths) == 1

                client.reconnect()
                await wait_until(
                    lambda: engine.stats.accepted == 2 and client.status is ConnectionStatus.DISCONNECTED
                )
            finally:
                client.stop()
                await asyncio.wait_for(task, timeout=2.0)
                await runner.cleanup()
            return paths

        paths = asyncio.run(scenario())
        # Same lastUpdateId accepted again after the reconnect, history restarted
        assert engine.stats.out_of_order == 0
        assert engine.history_depth == 1
        assert engine.snapshot.update_id == 5
        assert paths == ["/ws/btcusdt@depth20@100ms"] * 2

    def test_stop_closes_live_connection(self, engine, make_depth):
        async def scenario():
            runner, port, _ = await start_server(frame(make_depth, 9), hold=True)
            client = BinanceDepthClient(engine, FeedConfig(ws_base=f"ws://127.0.0.1:{port}/ws"))
            task = asyncio.create_task(client.run())
            try:
                await wait_until(lambda: engine.stats.accepted == 1)
                assert client.status is ConnectionStatus.LIVE
                client.stop()
                await asyncio.wait_for(task, timeout=2.0)
            finally:
                await runner.cleanup()
            return client

        client = asyncio.run(scenario())
        assert client.status is ConnectionStatus.DISCONNECTED
        assert client.view_queue.get_nowait().snapshot.update_id == 9
        assert engine.snapshot.update_id == 9
