"""
Blockrelay API и WebSocket.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .registry import Server
from .sync import PeriodicSynchronizer
from .ws_handlers import ws_join_and_loop

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def create_app(sync_interval: float | None = None) -> FastAPI:
    """
    Приложение со своим реестром комнат. Реестр и синхронизатор живут
    в app.state и создаются заново для каждого приложения.
    """
    interval = config.sync_interval if sync_interval is None else sync_interval

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.server = Server()
        app.state.sync = PeriodicSynchronizer(app.state.server, interval)
        app.state.sync.start()
        logger.info("server started, debug=%s", config.debug)
        try:
            yield
        finally:
            await app.state.sync.stop()

    app = FastAPI(title="Blockrelay API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/rooms")
    async def list_rooms(request: Request):
        return await request.app.state.server.snapshot()

    @app.post("/rooms/{room_id}")
    async def create_room(room_id: str, request: Request):
        server = request.app.state.server
        await server.create_room(room_id)
        return await server.room_snapshot(room_id)

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_join_and_loop(ws, ws.app.state.server)

    return app


app = create_app()
