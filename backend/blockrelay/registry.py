"""
Реестр комнат: вход в комнату, рассылка состояния, готовность и старт партии.

Блокировки двухуровневые: замок сервера защищает словарь комнат,
замок комнаты — её игроков и флаг started. Порядок всегда сервер -> комната,
два замка комнат одновременно не берутся.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from .game import GameState, Player, Room, reset_state, state_payload

logger = logging.getLogger(__name__)


class RegistryError(LookupError):
    """Ошибка поиска в реестре."""


class RoomNotFound(RegistryError):
    def __init__(self, room_id: str):
        super().__init__(f"room not found: {room_id}")
        self.room_id = room_id


class PlayerNotFound(RegistryError):
    def __init__(self, room_id: str, player_id: str):
        super().__init__(f"player {player_id} not found in room {room_id}")
        self.room_id = room_id
        self.player_id = player_id


class Server:
    def __init__(self):
        self._rooms: dict[str, Room] = {}
        self._lock = asyncio.Lock()

    async def get_room(self, room_id: str) -> Room | None:
        async with self._lock:
            return self._rooms.get(room_id)

    async def room_ids(self) -> list[str]:
        async with self._lock:
            return list(self._rooms)

    async def create_room(self, room_id: str) -> Room:
        """
        Создать пустую комнату. Повторное создание ничего не меняет и
        возвращает существующую комнату вместе с её игроками.
        """
        async with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                logger.info("room %s already exists, keeping %d players", room_id, len(room.players))
                return room
            return self._new_room(room_id)

    async def join_room(self, room_id: str, player_id: str, player: Player) -> Room:
        """Добавить игрока (upsert). Комната создаётся при первом входе."""
        if player_id != player.id:
            raise ValueError(f"player key {player_id!r} does not match player id {player.id!r}")
        async with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = self._new_room(room_id)
            async with room.lock:
                if player_id in room.players:
                    logger.warning("player %s replaced in room %s", player_id, room_id)
                room.players[player_id] = player
        logger.info("player %s joined room %s", player_id, room_id)
        return room

    async def remove_player(self, room_id: str, player: Player) -> bool:
        """
        Убрать игрока из комнаты. Запись удаляется только если это тот же
        объект Player: после переподключения с тем же id старая сессия
        не должна выкинуть новую.
        """
        try:
            async with self._locked_room(room_id) as room:
                if room.players.get(player.id) is not player:
                    return False
                del room.players[player.id]
        except RoomNotFound:
            return False
        logger.info("player %s left room %s", player.id, room_id)
        return True

    async def broadcast(self, room_id: str, state: GameState) -> None:
        """Разослать состояние всем в комнате, кроме его автора."""
        try:
            async with self._locked_room(room_id) as room:
                await self._fan_out(room, state)
        except RoomNotFound:
            logger.warning("broadcast: room %s not found", room_id)

    async def set_player_ready(self, room_id: str, player_id: str) -> bool:
        """
        Отметить игрока готовым. Если после этого готовы все и партия ещё
        не начата — старт: started = True и рассылка начальных состояний.
        Проверка и установка флага идут под замком комнаты, поэтому старт
        случается ровно один раз. Возвращает True, если этот вызов начал партию.
        """
        async with self._locked_room(room_id) as room:
            player = room.players.get(player_id)
            if player is None:
                raise PlayerNotFound(room_id, player_id)
            player.is_ready = True
            logger.info("player %s in room %s is ready", player_id, room_id)
            if room.started or not room.all_ready:
                return False
            room.started = True
            logger.info("all players in room %s are ready, starting game", room_id)
            for p in list(room.players.values()):
                initial = reset_state(p.id)
                p.apply(initial)
                await self._fan_out(room, initial)
            return True

    async def room_snapshot(self, room_id: str) -> dict:
        async with self._locked_room(room_id) as room:
            return room.to_dict()

    async def snapshot(self) -> list[dict]:
        async with self._lock:
            rooms = list(self._rooms.values())
        result = []
        for room in rooms:
            async with room.lock:
                result.append(room.to_dict())
        return result

    async def sync_room(self, room_id: str) -> int:
        """
        Переразослать последние известные состояния игроков начатой партии.
        Возвращает число разосланных состояний.
        """
        try:
            async with self._locked_room(room_id) as room:
                if not room.started:
                    return 0
                players = list(room.players.values())
                for p in players:
                    await self._fan_out(room, p.snapshot_state())
                return len(players)
        except RoomNotFound:
            return 0

    def _new_room(self, room_id: str) -> Room:
        room = Room(id=room_id)
        self._rooms[room_id] = room
        logger.info("room created: %s", room_id)
        return room

    @asynccontextmanager
    async def _locked_room(self, room_id: str) -> AsyncIterator[Room]:
        # Замок сервера держим только пока ищем комнату и берём её замок.
        async with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomNotFound(room_id)
            await room.lock.acquire()
        try:
            yield room
        finally:
            room.lock.release()

    async def _fan_out(self, room: Room, state: GameState) -> None:
        # Вызывается под замком комнаты.
        payload = state_payload(state)
        for player in list(room.players.values()):
            if player.id == state.player_id:
                continue
            try:
                await player.channel.send_json(payload)
            except Exception as e:
                logger.warning("broadcast to %s in room %s failed: %s", player.id, room.id, e)
