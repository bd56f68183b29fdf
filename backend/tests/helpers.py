"""Helpers shared by backend tests."""

from __future__ import annotations

import asyncio
from typing import Any


async def settle(rounds: int = 5) -> None:
    """Let call_soon deliveries and spawned writes run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def drain_frames(queue: asyncio.Queue) -> list[dict[str, Any]]:
    frames = []
    while not queue.empty():
        frames.append(queue.get_nowait())
    return frames


def notices(frames: list[dict[str, Any]]) -> list[tuple[str, str]]:
    return [(f["level"], f["title"]) for f in frames if f["type"] == "notice"]


def last_sections(frames: list[dict[str, Any]]) -> dict[str, Any]:
    return [f for f in frames if f["type"] == "sections"][-1]
