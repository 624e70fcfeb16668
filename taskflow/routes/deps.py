"""Request dependencies: services, caller identity and board access"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from ..services.broadcast import Broadcaster
from ..services.database import Database, Q
from ..services.notifier import Notifier
from ..services.workload import WorkloadEngine


@dataclass
class CurrentUser:
    """Caller identity as forwarded by the upstream auth proxy"""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


def get_db(request: Request) -> Database:
    db = request.app.state.db
    db.initialize()
    return db


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_engine(db: Database = Depends(get_db)) -> WorkloadEngine:
    return WorkloadEngine(db)


async def get_current_user(
    x_user_id: str = Header(None, alias="X-User-Id"),
    x_user_name: str = Header(None, alias="X-User-Name"),
    x_user_email: str = Header(None, alias="X-User-Email")
) -> CurrentUser:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return CurrentUser(id=x_user_id, name=x_user_name, email=x_user_email)


def get_accessible_board(db: Database, board_id: str, user: CurrentUser) -> dict:
    """Return the board, or 404 when it is missing or not visible to the caller"""
    board = db.boards.get(Q.id == board_id)
    if not board or not db.is_board_member(board_id, user.id):
        raise HTTPException(status_code=404, detail="Board not found")
    return dict(board)


def get_accessible_list(db: Database, list_id: str, user: CurrentUser) -> tuple:
    lst = db.lists.get(Q.id == list_id)
    if not lst or not db.is_board_member(lst["board_id"], user.id):
        raise HTTPException(status_code=404, detail="List not found")
    board = db.boards.get(Q.id == lst["board_id"])
    return dict(lst), dict(board)


def can_access_card(db: Database, card_id: str, user: CurrentUser) -> bool:
    card = db.cards.get(Q.id == card_id)
    lst = db.lists.get(Q.id == card["list_id"]) if card else None
    return lst is not None and db.is_board_member(lst["board_id"], user.id)


def get_accessible_card(db: Database, card_id: str, user: CurrentUser) -> tuple:
    card = db.cards.get(Q.id == card_id)
    lst = db.lists.get(Q.id == card["list_id"]) if card else None
    if not card or not lst or not db.is_board_member(lst["board_id"], user.id):
        raise HTTPException(status_code=404, detail="Card not found")
    board = db.boards.get(Q.id == lst["board_id"])
    return dict(card), dict(lst), dict(board)
