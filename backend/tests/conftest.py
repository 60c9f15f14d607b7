import pytest

from blockrelay.game import Player
from blockrelay.registry import Server


class FakeChannel:
    """Исходящий канал, который запоминает отправленное."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection lost")
        self.sent.append(data)


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def server():
    return Server()


@pytest.fixture()
def make_player():
    def _make(player_id: str, fail: bool = False) -> Player:
        return Player(id=player_id, display_name=f"name-{player_id}", channel=FakeChannel(fail=fail))
    return _make
