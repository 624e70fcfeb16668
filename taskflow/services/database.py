"""TinyDB database service for board data"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import uuid

from tinydb import TinyDB, Query
from tinydb.storages import MemoryStorage


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value) -> Optional[datetime]:
    """Parse a stored timestamp into an aware datetime.

    Accepts ISO strings with or without offset (naive values are UTC),
    a trailing "Z", and date-only "YYYY-MM-DD" strings.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            dt = datetime.strptime(str(value)[:10], "%Y-%m-%d")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Database:
    """Database service using TinyDB"""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path
        self.db: TinyDB = None

    def initialize(self):
        """Open the database; a missing path means in-memory storage"""
        if self.db is not None:
            return
        if self.db_path is None:
            self.db = TinyDB(storage=MemoryStorage)
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.db = TinyDB(str(self.db_path))

    def close(self):
        if self.db is not None:
            self.db.close()
            self.db = None

    @property
    def boards(self):
        return self.db.table("boards")

    @property
    def board_members(self):
        return self.db.table("board_members")

    @property
    def lists(self):
        return self.db.table("lists")

    @property
    def cards(self):
        return self.db.table("cards")

    @property
    def assignees(self):
        return self.db.table("assignees")

    @property
    def checklists(self):
        return self.db.table("checklists")

    @property
    def checklist_items(self):
        return self.db.table("checklist_items")

    @property
    def comments(self):
        return self.db.table("comments")

    @property
    def card_links(self):
        return self.db.table("card_links")

    @property
    def board_reports(self):
        return self.db.table("board_reports")

    @property
    def activity(self):
        return self.db.table("activity")

    @property
    def webhooks(self):
        return self.db.table("webhooks")

    def generate_id(self) -> str:
        return str(uuid.uuid4())[:8]

    def timestamp(self) -> str:
        return utcnow().isoformat()

    def log_activity(
        self,
        card_id: str,
        board_id: str,
        action: str,
        from_list_id: str = None,
        to_list_id: str = None,
        details: dict = None,
        user_id: str = None
    ):
        """Log card activity for history tracking"""
        self.activity.insert({
            "id": self.generate_id(),
            "card_id": card_id,
            "board_id": board_id,
            "action": action,
            "from_list_id": from_list_id,
            "to_list_id": to_list_id,
            "details": details or {},
            "user_id": user_id,
            "timestamp": self.timestamp()
        })

    def get_board_lists(self, board_id: str) -> list:
        lists = [dict(l) for l in self.lists.search(Q.board_id == board_id)]
        return sorted(lists, key=lambda x: x.get("order", 0))

    def get_list_cards(self, list_id: str) -> list:
        cards = [dict(c) for c in self.cards.search(Q.list_id == list_id)]
        return sorted(cards, key=lambda x: x.get("order", 0))

    def load_board_graph(self, board_id: str) -> Optional[dict]:
        """Load a board with its lists, cards and assignees.

        Returned documents are copies, so callers may attach nested keys
        without touching TinyDB's query cache.
        """
        board = self.boards.get(Q.id == board_id)
        if not board:
            return None
        board = dict(board)

        lists = self.get_board_lists(board_id)
        list_ids = [l["id"] for l in lists]
        cards = [dict(c) for c in self.cards.search(Q.list_id.one_of(list_ids))]
        card_ids = [c["id"] for c in cards]

        assignees_by_card = {}
        for assignee in self.assignees.search(Q.card_id.one_of(card_ids)):
            assignees_by_card.setdefault(assignee["card_id"], []).append(dict(assignee))

        cards_by_list = {list_id: [] for list_id in list_ids}
        for card in cards:
            card["assignees"] = sorted(
                assignees_by_card.get(card["id"], []),
                key=lambda x: x.get("assigned_at", "")
            )
            cards_by_list[card["list_id"]].append(card)

        for lst in lists:
            lst["cards"] = sorted(cards_by_list[lst["id"]], key=lambda x: x.get("order", 0))

        board["lists"] = lists
        return board

    def is_board_member(self, board_id: str, user_id: str) -> bool:
        board = self.boards.get(Q.id == board_id)
        if not board:
            return False
        if board.get("owner_id") == user_id:
            return True
        return self.board_members.get((Q.board_id == board_id) & (Q.user_id == user_id)) is not None

    def delete_checklists(self, checklist_ids: list):
        """Remove checklists together with their items"""
        if not checklist_ids:
            return
        self.checklist_items.remove(Q.checklist_id.one_of(checklist_ids))
        self.checklists.remove(Q.id.one_of(checklist_ids))

    def delete_cards(self, card_ids: list):
        """Remove cards together with everything attached to them"""
        if not card_ids:
            return
        self.assignees.remove(Q.card_id.one_of(card_ids))
        self.comments.remove(Q.card_id.one_of(card_ids))
        self.card_links.remove(Q.card_id.one_of(card_ids))
        self.delete_checklists([c["id"] for c in self.checklists.search(Q.card_id.one_of(card_ids))])
        self.cards.remove(Q.id.one_of(card_ids))


# Query helper
Q = Query()
