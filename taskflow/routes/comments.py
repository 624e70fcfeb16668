"""Comments routes for cards"""

from fastapi import APIRouter, Depends, HTTPException
from ..models.comment import CommentCreate, CommentUpdate
from ..services.broadcast import Broadcaster
from ..services.database import Database, Q
from .deps import CurrentUser, get_accessible_card, get_broadcaster, get_current_user, get_db

router = APIRouter()


def clean_content(content: str) -> str:
    content = content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Content is required")
    return content


def get_card_comment(db: Database, card_id: str, comment_id: str) -> dict:
    comment = db.comments.get((Q.id == comment_id) & (Q.card_id == card_id))
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return dict(comment)


@router.get("/cards/{card_id}/comments")
async def list_comments(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """List all comments for a card, newest first"""
    get_accessible_card(db, card_id, user)

    comments = db.comments.search(Q.card_id == card_id)
    return sorted(comments, key=lambda x: (x.get("created_at", ""), x.doc_id), reverse=True)


@router.post("/cards/{card_id}/comments")
async def create_comment(
    card_id: str,
    data: CommentCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """Add a comment to a card"""
    _, _, board = get_accessible_card(db, card_id, user)

    comment = {
        "id": db.generate_id(),
        "card_id": card_id,
        "content": clean_content(data.content),
        "user_id": user.id,
        "user_name": user.name or user.email or user.id,
        "created_at": db.timestamp(),
        "updated_at": db.timestamp()
    }
    db.comments.insert(comment)

    db.log_activity(
        card_id=card_id,
        board_id=board["id"],
        action="commented",
        details={"comment_id": comment["id"]},
        user_id=user.id
    )

    await broadcaster.publish_board_event(board["id"], "comment-added", {
        "comment": comment,
        "card_id": card_id,
        "user_id": user.id
    })

    return comment


@router.patch("/cards/{card_id}/comments/{comment_id}")
async def update_comment(
    card_id: str,
    comment_id: str,
    data: CommentUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Edit a comment; only its author may"""
    get_accessible_card(db, card_id, user)
    comment = get_card_comment(db, card_id, comment_id)
    if comment["user_id"] != user.id:
        raise HTTPException(status_code=403, detail="Only the author can edit a comment")

    updates = {"content": clean_content(data.content), "updated_at": db.timestamp()}
    db.comments.update(updates, Q.id == comment_id)

    return {**comment, **updates}


@router.delete("/cards/{card_id}/comments/{comment_id}")
async def delete_comment(
    card_id: str,
    comment_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Delete a comment; its author or the board owner may"""
    _, _, board = get_accessible_card(db, card_id, user)
    comment = get_card_comment(db, card_id, comment_id)
    if user.id not in (comment["user_id"], board["owner_id"]):
        raise HTTPException(status_code=403, detail="Only the author or the board owner can delete a comment")

    db.comments.remove(Q.id == comment_id)

    return {"deleted": True}
