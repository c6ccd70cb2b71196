"""Shared test fixtures for the relay."""

import asyncio
import io
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from relay.config import RelaySettings
from relay.telegram.client import TelegramClient


async def settle(rounds: int = 20) -> None:
    """Let every ready task on the loop run to its next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    """Manually advanced replacement for `asyncio.sleep`.

    Coroutines awaiting `sleep()` resume only when `advance()` moves the
    clock past their deadline, in deadline order.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._seq += 1
        entry = (self.now + delay, self._seq, future)
        self._sleepers.append(entry)
        try:
            await future
        finally:
            if entry in self._sleepers:
                self._sleepers.remove(entry)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while True:
            due = [entry for entry in self._sleepers if entry[0] <= target and not entry[2].done()]
            if not due:
                break
            deadline, seq, future = min(due, key=lambda entry: (entry[0], entry[1]))
            self._sleepers.remove((deadline, seq, future))
            self.now = deadline
            future.set_result(None)
            await settle()
        self.now = target
        await settle()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> RelaySettings:
    return RelaySettings(
        message_token="/img",
        telegram_api_token="123:abc",
        telegram_secret_key="s3cret",
        stability_key="stability-key",
        deepai_key="deepai-key",
        deepai_output_dir=str(tmp_path / "deepai_out"),
        tile_size=512,
    )


@pytest.fixture
def telegram() -> AsyncMock:
    return AsyncMock(spec=TelegramClient)


def make_png(width: int, height: int, color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()
