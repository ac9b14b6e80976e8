"""JSON values kept in Redis under string keys."""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as aioredis


def _encode(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


async def connect(redis_url: str) -> aioredis.Redis:
    """Open a Redis client for the URL and check that the server answers."""
    client = aioredis.from_url(redis_url, decode_responses=True)
    try:
        await client.ping()
    except BaseException:
        await client.aclose()
        raise
    return client


async def set_json(client: Any, key: str, value: Any) -> None:
    """Store a value as JSON text under the key.

    Objects offering ``to_dict`` are stored as that dictionary.
    """
    text = json.dumps(value, default=_encode)
    await client.set(key, text)


async def get_json(client: Any, key: str) -> Any:
    """Return the JSON value stored under the key, or None if absent or unreadable."""
    data = await client.get(key)
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        return json.loads(data)
    except ValueError:
        return None