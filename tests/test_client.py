import asyncio
import json

import pytest

from planter.model import Phase, PhaseSpec, Selector
from planter.nats.client import NatsClient, reconnect_delay


def _matches(pattern, subject):
    p, s = pattern.split("."), subject.split(".")
    for i, tok in enumerate(p):
        if tok == ">":
            return len(s) > i
        if i >= len(s) or (tok != "*" and tok != s[i]):
            return False
    return len(p) == len(s)


class FakeServer:
    def __init__(self):
        self.subs = []
        self.published = []

    async def handle(self, reader, writer):
        writer.write(b'INFO {"server_id":"fake"}\r\n')
        await writer.drain()
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                parts = line.rstrip(b"\r\n").decode().split()
                if not parts:
                    continue
                op = parts[0].upper()
                if op == "PING":
                    writer.write(b"PONG\r\n")
                elif op == "SUB":
                    self.subs.append((parts[1], parts[2], writer))
                elif op == "PUB":
                    size = int(parts[-1])
                    data = (await reader.readexactly(size + 2))[:size]
                    self.published.append((parts[1], data))
                    for pattern, sid, w in self.subs:
                        if _matches(pattern, parts[1]):
                            w.write(f"MSG {parts[1]} {sid} {size}\r\n".encode() + data + b"\r\n")
                await writer.drain()
        finally:
            writer.close()


@pytest.fixture
async def server():
    fake = FakeServer()
    srv = await asyncio.start_server(fake.handle, "127.0.0.1", 0)
    port = srv.sockets[0].getsockname()[1]
    yield fake, f"nats://127.0.0.1:{port}"
    srv.close()
    await srv.wait_closed()


def test_reconnect_delay():
    assert reconnect_delay(0) == 1.0
    assert reconnect_delay(2) == 4.0
    assert reconnect_delay(3) == 8.0
    assert reconnect_delay(10) == 8.0


@pytest.mark.asyncio
async def test_health_check_publishes_ping(server):
    fake, url = server
    client = await NatsClient.connect(url)
    try:
        assert client.server_info() == url
        assert await client.health_check() is True
        await client.connection.flush()
        assert ("health.check", b"ping") in fake.published
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_health_check_false_after_close(server):
    _, url = server
    client = await NatsClient.connect(url)
    await client.close()
    assert await client.health_check() is False


@pytest.mark.asyncio
async def test_session_start_round_trip(server):
    _, url = server
    client = await NatsClient.connect(url)
    try:
        session = client.new_session()
        sub = await session.subscribe_start()
        phase = Phase(kind="Phase", id="setup", spec=PhaseSpec(description="Initialize system", selector=Selector({})))
        await session.start_session([phase], False)
        msg = await asyncio.wait_for(sub.next(), 5)
        assert msg.subject == session.start_subject()
        data = json.loads(msg.payload)
        assert data["dryRun"] is False
        assert data["manifest"][0]["Id"] == "setup"
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_subscribe_all_sessions(server):
    _, url = server
    client = await NatsClient.connect(url)
    try:
        sub = await client.subscribe_all_sessions()
        session = client.session_with_id("abc")
        assert session.session_id == "abc"
        await session.send_control("pause")
        msg = await asyncio.wait_for(sub.next(), 5)
        assert msg.subject == "plan.session.abc.control"
        assert json.loads(msg.payload) == {"command": "pause"}
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_subscription_ends_on_close(server):
    _, url = server
    client = await NatsClient.connect(url)
    sub = await client.subscribe_all_sessions()
    await client.close()
    assert await asyncio.wait_for(sub.next(), 5) is None