"""
Периодическая синхронизация: раз в интервал переразослать последние
известные состояния игроков во всех начатых партиях. Закрывает потерю
отдельных update и опоздавших к старту.
"""
import asyncio
import logging
from contextlib import suppress

from .registry import Server

logger = logging.getLogger(__name__)


class PeriodicSynchronizer:
    def __init__(self, server: Server, interval: float):
        self.server = server
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> int:
        """Один проход по всем комнатам. Возвращает число разосланных состояний."""
        sent = 0
        for room_id in await self.server.room_ids():
            sent += await self.server.sync_room(room_id)
        return sent

    async def run(self, max_ticks: int | None = None) -> None:
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("sync: tick failed")
            ticks += 1

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run())
        logger.info("sync: started, interval=%.3fs", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("sync: stopped")
