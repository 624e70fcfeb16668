"""Board routes"""

from fastapi import APIRouter, Depends, HTTPException
from ..models.board import (
    BoardCreate, BoardUpdate, BoardMemberCreate, MemberRole, drop_nulls, infer_list_status
)
from ..services.database import Database, Q
from .deps import CurrentUser, get_accessible_board, get_current_user, get_db

router = APIRouter()

DEFAULT_LISTS = ["To Do", "In Progress", "Done"]


@router.get("")
async def list_boards(user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    """List boards the caller owns or is a member of"""
    member_board_ids = {m["board_id"] for m in db.board_members.search(Q.user_id == user.id)}
    boards = [
        b for b in db.boards.all()
        if b.get("owner_id") == user.id or b["id"] in member_board_ids
    ]
    return sorted(boards, key=lambda x: x.get("updated_at", ""), reverse=True)


@router.post("")
async def create_board(
    data: BoardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Create a new board with default lists"""
    board = {
        "id": db.generate_id(),
        "title": data.title,
        "description": data.description,
        "owner_id": user.id,
        "created_at": db.timestamp(),
        "updated_at": db.timestamp()
    }
    db.boards.insert(board)

    db.board_members.insert({
        "id": db.generate_id(),
        "board_id": board["id"],
        "user_id": user.id,
        "user_name": user.name,
        "user_email": user.email,
        "role": MemberRole.OWNER.value,
        "added_at": db.timestamp()
    })

    for i, title in enumerate(DEFAULT_LISTS):
        db.lists.insert({
            "id": db.generate_id(),
            "board_id": board["id"],
            "title": title,
            "order": i,
            "status": infer_list_status(title).value,
            "status_inferred": True,
            "created_at": db.timestamp()
        })

    return board


@router.get("/{board_id}")
async def get_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Get board with lists, cards and assignees"""
    get_accessible_board(db, board_id, user)
    return db.load_board_graph(board_id)


@router.patch("/{board_id}")
async def update_board(
    board_id: str,
    data: BoardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Update a board"""
    board = get_accessible_board(db, board_id, user)

    updates = drop_nulls(data.model_dump(exclude_unset=True), "title")
    updates["updated_at"] = db.timestamp()
    db.boards.update(updates, Q.id == board_id)

    return {**board, **updates}


@router.delete("/{board_id}")
async def delete_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Delete a board and all its content"""
    board = get_accessible_board(db, board_id, user)
    if board["owner_id"] != user.id:
        raise HTTPException(status_code=403, detail="Only the board owner can delete it")

    list_ids = [l["id"] for l in db.lists.search(Q.board_id == board_id)]
    card_ids = [c["id"] for c in db.cards.search(Q.list_id.one_of(list_ids))]
    db.delete_cards(card_ids)
    db.lists.remove(Q.board_id == board_id)
    db.board_members.remove(Q.board_id == board_id)
    db.boards.remove(Q.id == board_id)

    return {"deleted": True}


@router.get("/{board_id}/members")
async def list_members(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """List board members"""
    get_accessible_board(db, board_id, user)
    members = db.board_members.search(Q.board_id == board_id)
    return sorted(members, key=lambda x: x.get("added_at", ""))


@router.post("/{board_id}/members")
async def add_member(
    board_id: str,
    data: BoardMemberCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Add a member to a board (owner only)"""
    board = get_accessible_board(db, board_id, user)
    if board["owner_id"] != user.id:
        raise HTTPException(status_code=403, detail="Only the board owner can add members")

    existing = db.board_members.get((Q.board_id == board_id) & (Q.user_id == data.user_id))
    if existing:
        raise HTTPException(status_code=409, detail="User is already a member")

    member = {
        "id": db.generate_id(),
        "board_id": board_id,
        "user_id": data.user_id,
        "user_name": data.user_name,
        "user_email": data.user_email,
        "role": data.role.value,
        "added_at": db.timestamp()
    }
    db.board_members.insert(member)
    return member
