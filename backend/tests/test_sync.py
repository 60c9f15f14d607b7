import asyncio

import pytest

from blockrelay.game import GameState, empty_field
from blockrelay.sync import PeriodicSynchronizer

pytestmark = pytest.mark.anyio


async def test_tick_skips_rooms_not_started(server, make_player):
    a, b = make_player("A"), make_player("B")
    await server.join_room("r1", "A", a)
    await server.join_room("r1", "B", b)

    sync = PeriodicSynchronizer(server, interval=0)
    assert await sync.tick() == 0
    assert a.channel.sent == b.channel.sent == []


async def test_tick_relays_last_known_state(server, make_player):
    a, b = make_player("A"), make_player("B")
    await server.join_room("r1", "A", a)
    await server.join_room("r1", "B", b)
    await server.set_player_ready("r1", "A")
    await server.set_player_ready("r1", "B")
    a.channel.sent.clear()
    b.channel.sent.clear()

    field = tuple((1,) * 10 for _ in range(20))
    a.apply(GameState(player_id="A", field=field, current_block="S", score=300))

    sync = PeriodicSynchronizer(server, interval=0)
    assert await sync.tick() == 2

    assert b.channel.sent == [{
        "playerID": "A",
        "field": [[1] * 10 for _ in range(20)],
        "currentBlock": "S",
        "score": 300,
    }]
    assert a.channel.sent[0]["playerID"] == "B"
    assert a.channel.sent[0]["field"] == [list(row) for row in empty_field()]


async def test_run_bounded_ticks(server, make_player):
    a, b = make_player("A"), make_player("B")
    await server.join_room("r1", "A", a)
    await server.join_room("r1", "B", b)
    await server.set_player_ready("r1", "A")
    await server.set_player_ready("r1", "B")
    b.channel.sent.clear()

    await PeriodicSynchronizer(server, interval=0).run(max_ticks=3)

    assert len(b.channel.sent) == 3


async def test_start_and_stop(server):
    sync = PeriodicSynchronizer(server, interval=0.01)
    sync.start()
    assert sync.running
    await asyncio.sleep(0.03)
    await sync.stop()
    assert not sync.running
