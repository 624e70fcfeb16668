"""
Board view synchronization

Keeps a local copy of one board consistent with the server while the user
drags cards and lists around. Moves are applied locally first and persisted
in a single reorder call when the drag ends; a failed call restores the
state captured when the drag started. Events from the board channel are
merged in, except for echoes of this view's own reorders.
"""

import copy
import logging
import uuid
from collections import deque
from enum import Enum
from typing import List, Optional, Tuple

from ..services.ordering import move_item
from .api import TaskFlowClient

logger = logging.getLogger(__name__)

ACTIVATION_DISTANCE = 8
ORIGIN_HISTORY = 100
REFRESH_EVENTS = ("card-created", "card-updated", "list-created", "list-copied")


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DragKind(str, Enum):
    CARD = "card"
    LIST = "list"


class ReorderFailedError(Exception):
    """A reorder call failed and the local state was rolled back"""

    def __init__(self, kind: str, cause: Exception):
        self.kind = kind
        self.cause = cause
        super().__init__(f"Failed to reorder {kind}s: {cause}")


class BoardState:
    """Ordered lists of a board, each holding its ordered cards"""

    def __init__(self, board: dict):
        self.board = {k: v for k, v in board.items() if k != "lists"}
        self.lists = [dict(lst, cards=lst.get("cards", [])) for lst in copy.deepcopy(board.get("lists", []))]

    def find_list(self, list_id: str) -> Optional[int]:
        for index, lst in enumerate(self.lists):
            if lst["id"] == list_id:
                return index
        return None

    def find_card(self, card_id: str) -> Optional[Tuple[int, int]]:
        """Return (list index, card index) of a card"""
        for list_index, lst in enumerate(self.lists):
            for card_index, card in enumerate(lst["cards"]):
                if card["id"] == card_id:
                    return list_index, card_index
        return None

    def renumber(self):
        for list_index, lst in enumerate(self.lists):
            lst["order"] = list_index
            for card_index, card in enumerate(lst["cards"]):
                card["order"] = card_index
                card["list_id"] = lst["id"]

    def card_positions(self) -> List[dict]:
        return [
            {"id": card["id"], "order": card_index, "list_id": lst["id"]}
            for lst in self.lists
            for card_index, card in enumerate(lst["cards"])
        ]

    def list_positions(self) -> List[dict]:
        return [{"id": lst["id"], "order": index} for index, lst in enumerate(self.lists)]

    def snapshot(self) -> list:
        return copy.deepcopy(self.lists)


class BoardSync:
    """Optimistic drag-and-drop state for one open board view.

    Usage:
        async with TaskFlowClient(url, user_id="u1") as client:
            sync = BoardSync(client, board_id)
            await sync.refresh()
            if sync.drag_start(card_id, DragKind.CARD, distance=12):
                sync.drag_over(other_card_id, DragKind.CARD)
                await sync.drag_end(other_card_id, DragKind.CARD)
    """

    def __init__(self, client: TaskFlowClient, board_id: str, board: dict = None):
        self.client = client
        self.board_id = board_id
        self.state = BoardState(board or {"id": board_id, "lists": []})
        self.drag_state = DragState.IDLE
        self.closed = False

        self._active_id = None
        self._active_kind = None
        self._last_over = None
        self._snapshot = None
        self._origins = deque(maxlen=ORIGIN_HISTORY)

    @property
    def lists(self) -> list:
        return self.state.lists

    def new_origin(self) -> str:
        origin = uuid.uuid4().hex
        self._origins.append(origin)
        return origin

    def is_own_event(self, data: dict) -> bool:
        origin = data.get("origin")
        if origin:
            return origin in self._origins
        return data.get("user_id") == self.client.user_id

    # ==================== Drag lifecycle ====================

    def drag_start(self, entity_id: str, kind: DragKind, distance: float) -> bool:
        """Begin a drag once the pointer moved far enough; returns True if started"""
        if self.closed or self.drag_state == DragState.DRAGGING:
            return False
        if distance < ACTIVATION_DISTANCE:
            return False

        kind = DragKind(kind)
        if kind == DragKind.CARD and self.state.find_card(entity_id) is None:
            return False
        if kind == DragKind.LIST and self.state.find_list(entity_id) is None:
            return False

        self._snapshot = self.state.snapshot()
        self._active_id = entity_id
        self._active_kind = kind
        self.drag_state = DragState.DRAGGING
        return True

    def drag_over(self, over_id: Optional[str], over_kind: Optional[DragKind]):
        """Move the dragged card to the hovered position, locally only"""
        if self.drag_state != DragState.DRAGGING or self._active_kind != DragKind.CARD:
            return
        if over_id is None or over_id == self._active_id:
            return
        over = (over_id, DragKind(over_kind))
        # Fires continuously while the pointer rests on the same target
        if over == self._last_over:
            return
        self._last_over = over
        self._move_card(*over)

    async def drag_end(self, over_id: Optional[str], over_kind: Optional[DragKind]) -> Optional[dict]:
        """Finish the drag and persist it; returns the server response if a call was made.

        Raises:
            ReorderFailedError: the call failed; the pre-drag state is restored
        """
        if self.drag_state != DragState.DRAGGING:
            return None

        snapshot = self._snapshot
        active_id = self._active_id
        kind = self._active_kind
        last_over = self._last_over
        self._reset_drag()

        if over_id is None:
            self.state.lists = snapshot
            return None

        over_kind = DragKind(over_kind)
        if kind == DragKind.LIST:
            return await self._end_list_drag(active_id, over_id, over_kind, snapshot)

        # Already applied by drag_over when the pointer did not move since
        if over_id != active_id and (over_id, over_kind) != last_over:
            self._move_card(over_id, over_kind, active_id)
        return await self._end_card_drag(snapshot)

    def _reset_drag(self):
        self.drag_state = DragState.IDLE
        self._active_id = None
        self._active_kind = None
        self._last_over = None
        self._snapshot = None

    def _move_card(self, over_id: str, over_kind: DragKind, card_id: str = None):
        card_id = card_id or self._active_id
        source = self.state.find_card(card_id)
        if source is None:
            return
        source_list, source_index = source

        if over_kind == DragKind.LIST:
            target_list = self.state.find_list(over_id)
            if target_list is None:
                return
            target_index = len(self.lists[target_list]["cards"])
        else:
            over = self.state.find_card(over_id)
            if over is None:
                return
            target_list, target_index = over

        if source_list == target_list:
            cards = self.lists[source_list]["cards"]
            target_index = min(target_index, len(cards) - 1)
            if target_index == source_index:
                return
            self.lists[source_list]["cards"] = move_item(cards, source_index, target_index)
        else:
            card = self.lists[source_list]["cards"].pop(source_index)
            card = dict(card, list_id=self.lists[target_list]["id"])
            self.lists[target_list]["cards"].insert(target_index, card)

        self.state.renumber()

    async def _end_list_drag(self, list_id: str, over_id: str, over_kind: DragKind, snapshot: list):
        old_index = self.state.find_list(list_id)
        if over_kind == DragKind.LIST:
            new_index = self.state.find_list(over_id)
        else:
            over = self.state.find_card(over_id)
            new_index = over[0] if over else None

        if new_index is None or new_index == old_index:
            return None

        self.state.lists = move_item(self.lists, old_index, new_index)
        self.state.renumber()

        try:
            return await self.client.reorder_lists(
                self.board_id, self.state.list_positions(), origin=self.new_origin()
            )
        except Exception as e:
            return self._rollback("list", snapshot, e)

    async def _end_card_drag(self, snapshot: list):
        positions = self.state.card_positions()
        if positions == BoardState({"lists": snapshot}).card_positions():
            return None

        try:
            return await self.client.reorder_cards(self.board_id, positions, origin=self.new_origin())
        except Exception as e:
            return self._rollback("card", snapshot, e)

    def _rollback(self, kind: str, snapshot: list, error: Exception):
        if self.closed:
            logger.debug(f"Ignoring failed {kind} reorder after close: {error}")
            return None
        logger.warning(f"Reorder of {kind}s on board {self.board_id} failed, rolling back: {error}")
        self.state.lists = snapshot
        raise ReorderFailedError(kind, error) from error

    # ==================== Remote events ====================

    async def handle_event(self, message: dict) -> bool:
        """Apply a `{"event", "data"}` message from the board channel; returns True if applied"""
        if self.closed:
            return False

        event = message.get("event")
        data = message.get("data") or {}
        if self.is_own_event(data):
            return False

        if event == "cards-reorder":
            self.apply_remote_cards(data.get("cards", []))
        elif event == "lists-reorder":
            self.apply_remote_lists(data.get("lists", []))
        elif event == "card-deleted":
            self.remove_card(data.get("card_id"))
        elif event == "list-deleted":
            self.remove_list(data.get("list_id"))
            await self._refresh_after(event)
        elif event in REFRESH_EVENTS:
            return await self._refresh_after(event)
        else:
            logger.debug(f"Ignoring event {event} on board {self.board_id}")
            return False
        return True

    def apply_remote_cards(self, positions: List[dict]):
        """Rebuild every list's cards from a full set of card positions"""
        known = {card["id"]: card for lst in self.lists for card in lst["cards"]}
        for lst in self.lists:
            placed = sorted(
                (p for p in positions if p.get("list_id") == lst["id"]),
                key=lambda p: p.get("order", 0)
            )
            lst["cards"] = [
                dict(known.get(p["id"], {}), id=p["id"], order=p["order"], list_id=lst["id"])
                for p in placed
            ]

    def apply_remote_lists(self, positions: List[dict]):
        orders = {p["id"]: p.get("order", 0) for p in positions}
        for lst in self.lists:
            lst["order"] = orders.get(lst["id"], 0)
        self.state.lists = sorted(self.lists, key=lambda x: x["order"])

    def remove_card(self, card_id: str):
        for lst in self.lists:
            lst["cards"] = [c for c in lst["cards"] if c["id"] != card_id]

    def remove_list(self, list_id: str):
        self.state.lists = [lst for lst in self.lists if lst["id"] != list_id]

    async def _refresh_after(self, event: str) -> bool:
        try:
            await self.refresh()
        except Exception as e:
            logger.warning(f"Refreshing board {self.board_id} after {event} failed: {e}")
            return False
        return True

    async def refresh(self):
        """Reload the whole board from the server"""
        board = await self.client.get_board(self.board_id)
        if self.closed:
            return
        self.state = BoardState(board)

    def close(self):
        """Stop applying responses and events to this view"""
        self.closed = True
        self._reset_drag()
