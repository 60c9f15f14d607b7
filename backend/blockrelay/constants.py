"""Константы игрового поля и протокола."""
from typing import TypedDict

FIELD_ROWS = 20
FIELD_COLUMNS = 10

# Фигура, с которой начинается партия у всех игроков
DEFAULT_BLOCK = "I"

DEFAULT_SYNC_INTERVAL_MS = 100

# Коды закрытия WebSocket (диапазон 4000-4999 — для приложения)
CLOSE_MISSING_PARAMS = 4001


class JoinParams(TypedDict):
    player_id: str
    name: str
    room_id: str


JOIN_QUERY_KEYS = {"player_id": "playerID", "name": "name", "room_id": "roomID"}
