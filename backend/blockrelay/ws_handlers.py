"""
Сессия WebSocket: вход в комнату по параметрам запроса, цикл приёма
update/ready, выход из комнаты при любом завершении.
"""
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .constants import CLOSE_MISSING_PARAMS, JOIN_QUERY_KEYS, JoinParams
from .game import Player
from .messages import MalformedMessage, decode_update, parse_envelope
from .registry import RegistryError, Server

logger = logging.getLogger(__name__)


def join_params(ws: WebSocket) -> JoinParams | None:
    """playerID, name, roomID из строки запроса; None если чего-то нет."""
    params = {}
    for key, query_key in JOIN_QUERY_KEYS.items():
        value = (ws.query_params.get(query_key) or "").strip()
        if not value:
            return None
        params[key] = value
    return JoinParams(**params)


async def _receive_raw(ws: WebSocket) -> str:
    """Текст кадра; бинарный кадр декодируется как UTF-8 и дальше проверяется как обычный."""
    message = await ws.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


async def handle_ws_message(server: Server, room_id: str, player: Player, raw: str) -> None:
    """
    Обрабатывает одно сообщение. Кривой payload и ошибки поиска логируются
    и не завершают сессию.
    """
    try:
        data = parse_envelope(raw)
    except MalformedMessage as e:
        logger.warning("WS: malformed message from %s: %s", player.id, e)
        return
    t = data["type"]
    if t == "update":
        try:
            state = decode_update(data, player.id)
        except MalformedMessage as e:
            logger.warning("WS: malformed update from %s: %s", player.id, e)
            return
        player.apply(state)
        await server.broadcast(room_id, state)
        return
    if t == "ready":
        try:
            await server.set_player_ready(room_id, player.id)
        except RegistryError as e:
            logger.warning("WS: ready from %s failed: %s", player.id, e)
        return
    logger.info("WS: unknown message type=%s from %s", t, player.id)


async def ws_join_and_loop(ws: WebSocket, server: Server) -> None:
    """
    Вход в комнату, затем цикл приёма сообщений до разрыва соединения.
    Игрок убирается из комнаты на любом пути выхода.
    """
    player = None
    room_id = None
    try:
        await ws.accept()
        params = join_params(ws)
        if params is None:
            logger.warning("WS: missing playerID/name/roomID, closing %d", CLOSE_MISSING_PARAMS)
            await ws.close(code=CLOSE_MISSING_PARAMS)
            return
        room_id = params["room_id"]
        player = Player(id=params["player_id"], display_name=params["name"], channel=ws)
        await server.join_room(room_id, player.id, player)
        while True:
            msg = await _receive_raw(ws)
            await handle_ws_message(server, room_id, player, msg)
    except WebSocketDisconnect as e:
        logger.info(
            "WS: client disconnected code=%s reason=%s player_id=%s",
            e.code, e.reason or "", player.id if player else None,
        )
    except Exception as e:
        logger.exception("WS: error player_id=%s: %s", player.id if player else None, e)
    finally:
        if player is not None:
            await server.remove_player(room_id, player)
