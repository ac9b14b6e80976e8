"""A small asyncio NATS client and the plan-session client built on it."""

from __future__ import annotations

import asyncio
import itertools
import json
from collections import deque
from dataclasses import dataclass
from urllib.parse import urlsplit

from planter.nats.session import NatsSession

DEFAULT_PORT = 4222
MAX_RECONNECTS = 5
HANDSHAKE_TIMEOUT = 5.0


def reconnect_delay(attempts: int) -> float:
    """Seconds to wait before a reconnect: 1s doubled per attempt, at most 8s."""
    return min(1000 * 2 ** attempts, 8000) / 1000.0


@dataclass(frozen=True)
class Message:
    """A message received on a subscription."""

    subject: str
    payload: bytes
    reply: str | None = None


class Subscription:
    """Messages arriving for one subscribed subject."""

    def __init__(self, subject: str, sid: int) -> None:
        self.subject = subject
        self.sid = sid
        self._queue: asyncio.Queue[Message | None] = asyncio.Queue()

    def _deliver(self, message: Message | None) -> None:
        self._queue.put_nowait(message)

    async def next(self) -> Message | None:
        """Wait for the next message; None once the connection has closed."""
        message = await self._queue.get()
        if message is None:
            self._queue.put_nowait(None)
        return message

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Message:
        message = await self.next()
        if message is None:
            raise StopAsyncIteration
        return message


def _parse_url(url: str) -> tuple[str, int]:
    parts = urlsplit(url if "://" in url else f"nats://{url}")
    return parts.hostname or "localhost", parts.port or DEFAULT_PORT


class NatsConnection:
    """One connection to a NATS server."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._subs: dict[int, Subscription] = {}
        self._sids = itertools.count(1)
        self._pongs: deque[asyncio.Future] = deque()
        self._closed = False
        self._task: asyncio.Task | None = None

    @classmethod
    async def open(cls, url: str) -> "NatsConnection":
        host, port = _parse_url(url)
        reader, writer = await asyncio.open_connection(host, port)
        conn = cls(reader, writer)
        try:
            await asyncio.wait_for(conn._handshake(), HANDSHAKE_TIMEOUT)
        except BaseException:
            await conn.close()
            raise
        return conn

    async def _handshake(self) -> None:
        line = await self._reader.readline()
        if not line.upper().startswith(b"INFO"):
            raise ConnectionError(f"unexpected greeting: {line!r}")
        options = {
            "verbose": False,
            "pedantic": False,
            "name": "planter",
            "lang": "python",
            "version": "0.1.0",
            "protocol": 1,
        }
        self._writer.write(b"CONNECT " + json.dumps(options).encode() + b"\r\n")
        self._task = asyncio.get_running_loop().create_task(self._read_loop())
        await self.flush()

    async def flush(self) -> None:
        """Wait until the server has processed everything sent so far."""
        self._check_open()
        future = asyncio.get_running_loop().create_future()
        self._pongs.append(future)
        self._writer.write(b"PING\r\n")
        await self._writer.drain()
        await future

    async def _read_loop(self) -> None:
        try:
            while True:
                line = await self._reader.readline()
                if not line:
                    break
                line = line.rstrip(b"\r\n")
                op = line.split(b" ", 1)[0].upper()
                if op == b"MSG":
                    await self._on_msg(line.split(), headers=False)
                elif op == b"HMSG":
                    await self._on_msg(line.split(), headers=True)
                elif op == b"PING":
                    self._writer.write(b"PONG\r\n")
                elif op == b"PONG":
                    if self._pongs:
                        future = self._pongs.popleft()
                        if not future.done():
                            future.set_result(None)
                elif op == b"-ERR":
                    error = ConnectionError(line[5:].decode("utf-8", "replace").strip())
                    while self._pongs:
                        future = self._pongs.popleft()
                        if not future.done():
                            future.set_exception(error)
        except (OSError, asyncio.IncompleteReadError):
            pass
        finally:
            self._shutdown()

    async def _on_msg(self, parts: list[bytes], headers: bool) -> None:
        subject, sid = parts[1].decode(), int(parts[2])
        if headers:
            reply = parts[3].decode() if len(parts) == 6 else None
            header_len, size = int(parts[-2]), int(parts[-1])
        else:
            reply = parts[3].decode() if len(parts) == 5 else None
            header_len, size = 0, int(parts[-1])
        data = (await self._reader.readexactly(size + 2))[:size]
        sub = self._subs.get(sid)
        if sub is not None:
            sub._deliver(Message(subject=subject, payload=data[header_len:], reply=reply))

    def _shutdown(self) -> None:
        self._closed = True
        for sub in self._subs.values():
            sub._deliver(None)
        error = ConnectionError("connection closed")
        while self._pongs:
            future = self._pongs.popleft()
            if not future.done():
                future.set_exception(error)

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionError("connection closed")

    async def publish(self, subject: str, payload: bytes) -> None:
        """Publish a payload on a subject."""
        self._check_open()
        data = bytes(payload)
        self._writer.write(f"PUB {subject} {len(data)}\r\n".encode() + data + b"\r\n")
        await self._writer.drain()

    async def subscribe(self, subject: str) -> Subscription:
        """Subscribe to a subject, wildcards allowed."""
        self._check_open()
        sid = next(self._sids)
        sub = Subscription(subject, sid)
        self._subs[sid] = sub
        self._writer.write(f"SUB {subject} {sid}\r\n".encode())
        await self._writer.drain()
        return sub

    async def close(self) -> None:
        """Close the connection and end every subscription."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except (asyncio.CancelledError, Exception):
                pass
        self._shutdown()
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            pass


async def connect(url: str) -> NatsConnection:
    """Open a single connection to the NATS server at the URL."""
    return await NatsConnection.open(url)


class NatsClient:
    """Connection to NATS that creates plan sessions."""

    def __init__(self, connection: NatsConnection, server_url: str) -> None:
        self.connection = connection
        self.server_url = server_url

    @classmethod
    async def connect(cls, server_url: str) -> "NatsClient":
        """Connect, retrying with backoff up to a fixed number of times."""
        attempt = 0
        while True:
            try:
                return cls(await connect(server_url), server_url)
            except (OSError, asyncio.TimeoutError):
                attempt += 1
                if attempt > MAX_RECONNECTS:
                    raise
                await asyncio.sleep(reconnect_delay(attempt))

    def new_session(self) -> NatsSession:
        return NatsSession(self.connection, NatsSession.generate_session_id())

    def session_with_id(self, session_id: str) -> NatsSession:
        return NatsSession(self.connection, session_id)

    async def health_check(self) -> bool:
        """Return whether a ping can be published."""
        try:
            await self.connection.publish("health.check", b"ping")
        except (OSError, ConnectionError):
            return False
        return True

    def server_info(self) -> str:
        return self.server_url

    async def subscribe_all_sessions(self) -> Subscription:
        return await self.connection.subscribe("plan.session.>")

    async def close(self) -> None:
        await self.connection.close()