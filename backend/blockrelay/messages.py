"""
Разбор входящих сообщений WebSocket.
Формат не доверяется: всё проходит через pydantic-схемы.
"""
import json
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator

from .constants import FIELD_COLUMNS, FIELD_ROWS
from .game import GameState

Row = Annotated[list[StrictInt], Field(min_length=FIELD_COLUMNS, max_length=FIELD_COLUMNS)]
Grid = Annotated[list[Row], Field(min_length=FIELD_ROWS, max_length=FIELD_ROWS)]


class MalformedMessage(ValueError):
    """Сообщение не прошло проверку формата."""


class Envelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: StrictStr


class UpdateMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: Grid
    current_block: StrictStr = Field(alias="currentBlock")
    score: int = Field(ge=0)

    @field_validator("score", mode="before")
    @classmethod
    def _score_is_number(cls, value: Any) -> Any:
        # bool и числа в строках не принимаем
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("score must be a number")
        return value

    def to_state(self, player_id: str) -> GameState:
        return GameState(
            player_id=player_id,
            field=tuple(tuple(row) for row in self.field),
            current_block=self.current_block,
            score=self.score,
        )


def parse_envelope(raw: str) -> dict[str, Any]:
    """JSON-объект с полем type, иначе MalformedMessage."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(f"invalid JSON: {e}") from e
    try:
        Envelope.model_validate(data)
    except ValidationError as e:
        raise MalformedMessage(f"invalid envelope: {e.error_count()} error(s)") from e
    return data


def decode_update(data: dict[str, Any], player_id: str) -> GameState:
    """Проверить payload update и собрать GameState от имени player_id."""
    try:
        msg = UpdateMessage.model_validate(data)
    except ValidationError as e:
        raise MalformedMessage(f"invalid update: {e.error_count()} error(s)") from e
    return msg.to_state(player_id)
