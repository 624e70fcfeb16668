"""Broadcast and WebSocket Tests

Tests for the in-memory broadcaster, the Redis broadcaster wiring and the
board WebSocket relay.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from taskflow.services.broadcast import (
    MemoryBroadcaster, RedisBroadcaster, board_channel, create_broadcaster
)


class TestMemoryBroadcaster:

    @pytest.mark.asyncio
    async def test_publish_to_subscribers(self):
        broadcaster = MemoryBroadcaster()
        first = await broadcaster.subscribe("board-1")
        second = await broadcaster.subscribe("board-1")
        other = await broadcaster.subscribe("board-2")

        await broadcaster.publish("board-1", {"event": "cards-reorder", "data": {}})

        assert await first.get() == {"event": "cards-reorder", "data": {}}
        assert await second.get() == {"event": "cards-reorder", "data": {}}
        assert other.queue.empty()

    @pytest.mark.asyncio
    async def test_subscribers_get_copies(self):
        broadcaster = MemoryBroadcaster()
        subscription = await broadcaster.subscribe("board-1")
        message = {"event": "card-created", "data": {"card": {"title": "x"}}}

        await broadcaster.publish("board-1", message)
        message["data"]["card"]["title"] = "changed"

        assert (await subscription.get())["data"]["card"]["title"] == "x"

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self):
        broadcaster = MemoryBroadcaster()
        subscription = await broadcaster.subscribe("board-1")

        await subscription.close()

        assert broadcaster.subscriber_count("board-1") == 0

    @pytest.mark.asyncio
    async def test_publish_board_event_envelope(self):
        broadcaster = MemoryBroadcaster()
        subscription = await broadcaster.subscribe(board_channel("b1"))

        published = await broadcaster.publish_board_event("b1", "list-created", {"list": {"id": "l1"}})

        assert published is True
        assert await subscription.get() == {"event": "list-created", "data": {"list": {"id": "l1"}}}

    @pytest.mark.asyncio
    async def test_publish_failure_is_logged(self):
        broadcaster = MemoryBroadcaster()
        broadcaster.publish = AsyncMock(side_effect=ConnectionError("down"))

        assert await broadcaster.publish_board_event("b1", "list-created", {}) is False


class TestRedisBroadcaster:

    def test_backend_selection(self, settings):
        assert isinstance(create_broadcaster(settings), MemoryBroadcaster)

        redis_settings = settings.model_copy(update={"broadcast_backend": "redis"})
        broadcaster = create_broadcaster(redis_settings)
        assert isinstance(broadcaster, RedisBroadcaster)
        assert broadcaster.redis_url == settings.redis_url

    @pytest.mark.asyncio
    async def test_publish_encodes_json(self):
        client = MagicMock()
        client.publish = AsyncMock(return_value=1)
        client.aclose = AsyncMock()

        with patch("taskflow.services.broadcast.redis.from_url", return_value=client):
            broadcaster = RedisBroadcaster("redis://localhost:6379")
            await broadcaster.connect()
            await broadcaster.publish_board_event("b1", "lists-reorder", {"lists": []})
            await broadcaster.disconnect()

        client.publish.assert_awaited_once_with(
            "board-b1", '{"event": "lists-reorder", "data": {"lists": []}}'
        )
        client.aclose.assert_awaited_once()


class TestBoardWebSocket:

    def create_board(self, client, headers) -> dict:
        board = client.post("/boards", json={"title": "Live"}, headers=headers).json()
        return client.get(f"/boards/{board['id']}", headers=headers).json()

    def test_relays_board_events(self, app, owner_headers):
        with TestClient(app) as client:
            board = self.create_board(client, owner_headers)

            with client.websocket_connect(f"/ws/boards/{board['id']}?user_id=user-owner") as websocket:
                websocket.send_json({"type": "ping"})
                assert websocket.receive_json() == {"type": "pong"}

                client.post(
                    "/cards",
                    json={"list_id": board["lists"][0]["id"], "title": "Live card"},
                    headers=owner_headers
                )
                message = websocket.receive_json()

        assert message["event"] == "card-created"
        assert message["data"]["card"]["title"] == "Live card"
        assert message["data"]["user_id"] == "user-owner"

    def test_rejects_non_members(self, app, owner_headers):
        with TestClient(app) as client:
            board = self.create_board(client, owner_headers)

            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect(f"/ws/boards/{board['id']}?user_id=user-outsider") as websocket:
                    websocket.receive_json()

        assert exc_info.value.code == 4404
