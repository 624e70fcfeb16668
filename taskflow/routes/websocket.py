"""
WebSocket API for Real-time Collaboration

Relays every event published on a board's channel to the connected client.
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import asyncio
import logging

from ..services.broadcast import board_channel

logger = logging.getLogger(__name__)

router = APIRouter()

CLOSE_NOT_FOUND = 4404


async def relay_events(websocket: WebSocket, subscription):
    """Forward channel events to the socket until cancelled"""
    async for message in subscription:
        await websocket.send_json(message)


@router.websocket("/ws/boards/{board_id}")
async def websocket_endpoint(websocket: WebSocket, board_id: str):
    """WebSocket endpoint for real-time board updates."""
    user_id = websocket.query_params.get("user_id")
    db = websocket.app.state.db
    db.initialize()
    broadcaster = websocket.app.state.broadcaster

    if not user_id or not db.is_board_member(board_id, user_id):
        await websocket.close(code=CLOSE_NOT_FOUND)
        return

    await websocket.accept()
    subscription = await broadcaster.subscribe(board_channel(board_id))
    relay = asyncio.create_task(relay_events(websocket, subscription))
    logger.info(f"User {user_id} subscribed to board {board_id}")

    try:
        while True:
            data = await websocket.receive_json()
            if data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info(f"User {user_id} left board {board_id}")
    finally:
        relay.cancel()
        try:
            await relay
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Relay for board {board_id} stopped with error: {e}")
        await subscription.close()
