"""
Модель: снимок состояния игрока, игрок и комната (in-memory).
Сервер не моделирует саму игру — только хранит и пересылает то, что прислал клиент.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

from .constants import DEFAULT_BLOCK, FIELD_COLUMNS, FIELD_ROWS

Field = tuple[tuple[int, ...], ...]


class Channel(Protocol):
    """Исходящий канал игрока (в проде — starlette WebSocket)."""

    async def send_json(self, data: Any) -> None: ...


def empty_field() -> Field:
    return tuple((0,) * FIELD_COLUMNS for _ in range(FIELD_ROWS))


@dataclass(frozen=True)
class GameState:
    player_id: str
    field: Field
    current_block: str
    score: int


def reset_state(player_id: str) -> GameState:
    """Начальное состояние: пустое поле, стартовая фигура, ноль очков."""
    return GameState(player_id=player_id, field=empty_field(), current_block=DEFAULT_BLOCK, score=0)


def state_payload(state: GameState) -> dict:
    """Собрать payload для отправки клиенту."""
    return {
        "playerID": state.player_id,
        "field": [list(row) for row in state.field],
        "currentBlock": state.current_block,
        "score": state.score,
    }


@dataclass(eq=False)
class Player:
    id: str
    display_name: str
    channel: Channel
    is_ready: bool = False
    score: int = 0
    field: Field = field(default_factory=empty_field)
    current_block: str = DEFAULT_BLOCK

    def apply(self, state: GameState) -> None:
        self.score = state.score
        self.field = state.field
        self.current_block = state.current_block

    def snapshot_state(self) -> GameState:
        return GameState(
            player_id=self.id,
            field=self.field,
            current_block=self.current_block,
            score=self.score,
        )


@dataclass(eq=False)
class Room:
    id: str
    players: dict[str, Player] = field(default_factory=dict)
    started: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def all_ready(self) -> bool:
        return bool(self.players) and all(p.is_ready for p in self.players.values())

    def to_dict(self) -> dict:
        return {
            "roomID": self.id,
            "started": self.started,
            "players": [
                {"id": p.id, "name": p.display_name, "ready": p.is_ready, "score": p.score}
                for p in self.players.values()
            ],
        }
