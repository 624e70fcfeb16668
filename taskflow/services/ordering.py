"""Positional ordering of lists and cards.

Client-submitted order values are never stored verbatim: every write
re-sequences each touched list to 0..n-1, so two siblings can never share
an order value even when concurrent batches interleave.
"""

import logging
from typing import Iterable, List

from .database import Database, Q

logger = logging.getLogger(__name__)


class EntityNotFoundError(Exception):
    """A referenced board, list or card does not exist on the board"""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class InvalidBatchError(ValueError):
    pass


def move_item(items: list, old_index: int, new_index: int) -> list:
    """Return a copy of items with one element moved to new_index.

    Relative order of all other elements is preserved; a new_index past the
    end appends.
    """
    result = list(items)
    item = result.pop(old_index)
    result.insert(new_index, item)
    return result


def _check_unique(ids: Iterable[str], entity: str):
    seen = set()
    for entity_id in ids:
        if entity_id in seen:
            raise InvalidBatchError(f"Duplicate {entity} id in batch: {entity_id}")
        seen.add(entity_id)


def plan_card_positions(lists: list, cards: list, positions: list) -> List[dict]:
    """Compute the normalized position of every card on a board.

    ``lists`` and ``cards`` are the stored documents of one board,
    ``positions`` the submitted ``{id, order, list_id}`` entries. Cards not
    in the batch keep their list and use their stored order as sort key;
    on equal keys a submitted card goes first.
    """
    list_ids = {l["id"] for l in lists}
    stored = {c["id"]: c for c in cards}
    _check_unique((p["id"] for p in positions), "card")

    submitted = {}
    for position in positions:
        if position["id"] not in stored:
            raise EntityNotFoundError("Card", position["id"])
        if position["list_id"] not in list_ids:
            raise EntityNotFoundError("List", position["list_id"])
        submitted[position["id"]] = position

    placed = {list_id: [] for list_id in list_ids}
    for card in cards:
        position = submitted.get(card["id"])
        if position is not None:
            key = (position["order"], 0, card["id"])
            placed[position["list_id"]].append((key, card["id"]))
        else:
            key = (card.get("order", 0), 1, card["id"])
            placed[card["list_id"]].append((key, card["id"]))

    result = []
    for lst in sorted(lists, key=lambda x: x.get("order", 0)):
        for index, (_, card_id) in enumerate(sorted(placed[lst["id"]])):
            result.append({"id": card_id, "order": index, "list_id": lst["id"]})
    return result


def plan_list_positions(lists: list, positions: list) -> List[dict]:
    """Compute the normalized order of every list on a board"""
    stored = {l["id"]: l for l in lists}
    _check_unique((p["id"] for p in positions), "list")

    submitted = {}
    for position in positions:
        if position["id"] not in stored:
            raise EntityNotFoundError("List", position["id"])
        submitted[position["id"]] = position["order"]

    keyed = []
    for lst in lists:
        if lst["id"] in submitted:
            keyed.append(((submitted[lst["id"]], 0, lst["id"]), lst["id"]))
        else:
            keyed.append(((lst.get("order", 0), 1, lst["id"]), lst["id"]))

    return [{"id": list_id, "order": index} for index, (_, list_id) in enumerate(sorted(keyed))]


def apply_card_positions(db: Database, board_id: str, positions: list, user_id: str = None) -> List[dict]:
    """Validate, normalize and store a card reorder batch.

    Either every change is written or, when validation fails, nothing is.
    Returns the normalized positions of all cards on the board.
    """
    lists = db.get_board_lists(board_id)
    list_ids = [l["id"] for l in lists]
    cards = [dict(c) for c in db.cards.search(Q.list_id.one_of(list_ids))]

    planned = plan_card_positions(lists, cards, positions)

    stored = {c["id"]: c for c in cards}
    now = db.timestamp()
    updates = []
    moved = []
    for position in planned:
        card = stored[position["id"]]
        if card.get("order") == position["order"] and card["list_id"] == position["list_id"]:
            continue
        updates.append((
            {"order": position["order"], "list_id": position["list_id"], "updated_at": now},
            Q.id == position["id"]
        ))
        if card["list_id"] != position["list_id"]:
            moved.append((card, position["list_id"]))

    if updates:
        # A single update_multiple call is one storage write
        db.cards.update_multiple(updates)

    for card, to_list_id in moved:
        db.log_activity(
            card_id=card["id"],
            board_id=board_id,
            action="moved",
            from_list_id=card["list_id"],
            to_list_id=to_list_id,
            user_id=user_id
        )

    logger.info(f"Reordered cards on board {board_id}: {len(updates)} changed, {len(moved)} moved")
    return planned


def apply_list_positions(db: Database, board_id: str, positions: list) -> List[dict]:
    """Validate, normalize and store a list reorder batch"""
    lists = db.get_board_lists(board_id)
    planned = plan_list_positions(lists, positions)

    stored = {l["id"]: l for l in lists}
    updates = [
        ({"order": position["order"]}, Q.id == position["id"])
        for position in planned
        if stored[position["id"]].get("order") != position["order"]
    ]
    if updates:
        db.lists.update_multiple(updates)

    logger.info(f"Reordered lists on board {board_id}: {len(updates)} changed")
    return planned


def trailing_order(siblings: list) -> int:
    """Order value that places a new entry after every sibling"""
    return max((s.get("order", 0) for s in siblings), default=-1) + 1


def resequence_rows(table, siblings: list) -> int:
    """Renumber sibling rows to 0..n-1 in their current order; returns rows changed"""
    ranked = sorted(siblings, key=lambda x: (x.get("order", 0), x["id"]))
    updates = [
        ({"order": index}, Q.id == item["id"])
        for index, item in enumerate(ranked)
        if item.get("order") != index
    ]
    if updates:
        table.update_multiple(updates)
    return len(updates)


def resequence_cards(db: Database, list_id: str) -> int:
    """Close the gaps a removed card leaves in its list; returns rows changed"""
    return resequence_rows(db.cards, db.cards.search(Q.list_id == list_id))


def resequence_lists(db: Database, board_id: str) -> int:
    """Close the gaps a removed list leaves on its board; returns rows changed"""
    return resequence_rows(db.lists, db.lists.search(Q.board_id == board_id))
