"""Card routes"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from ..models.board import AssigneeCreate, CardCreate, CardUpdate, CardsReorder, drop_nulls
from ..services.broadcast import Broadcaster
from ..services.database import Database, Q, parse_datetime
from ..services.notifier import Notifier
from ..services.ordering import (
    EntityNotFoundError, InvalidBatchError, apply_card_positions, resequence_cards, trailing_order
)
from .deps import (
    CurrentUser, get_accessible_board, get_accessible_card, get_accessible_list,
    get_broadcaster, get_current_user, get_db, get_notifier
)

router = APIRouter()


def check_due_date(due_date):
    try:
        parse_datetime(due_date)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid due_date: {due_date}")


@router.patch("/reorder")
async def reorder_cards(
    data: CardsReorder,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier)
):
    """Persist card positions for a board in one batch"""
    get_accessible_board(db, data.board_id, user)

    try:
        cards = apply_card_positions(
            db, data.board_id, [p.model_dump() for p in data.cards], user_id=user.id
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"{e.entity} not found")
    except InvalidBatchError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await broadcaster.publish_board_event(data.board_id, "cards-reorder", {
        "cards": cards,
        "user_id": user.id,
        "origin": data.origin
    })
    background_tasks.add_task(notifier.notify, "cards.reordered", {
        "board_id": data.board_id,
        "cards": cards
    }, data.board_id)

    return {"success": True, "cards": cards}


@router.post("")
async def create_card(
    data: CardCreate,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier)
):
    """Create a new card at the end of a list"""
    _, board = get_accessible_list(db, data.list_id, user)
    check_due_date(data.due_date)

    card = {
        "id": db.generate_id(),
        "list_id": data.list_id,
        "order": trailing_order(db.cards.search(Q.list_id == data.list_id)),
        "title": data.title,
        "description": data.description,
        "priority": data.priority.value,
        "due_date": data.due_date,
        "estimated_hours": data.estimated_hours,
        "completed_at": None,
        "created_at": db.timestamp(),
        "updated_at": db.timestamp()
    }
    db.cards.insert(card)

    db.log_activity(
        card_id=card["id"],
        board_id=board["id"],
        action="created",
        to_list_id=data.list_id,
        user_id=user.id
    )

    await broadcaster.publish_board_event(board["id"], "card-created", {
        "card": card,
        "user_id": user.id
    })
    background_tasks.add_task(notifier.card_created, card, board)

    return card


@router.get("/{card_id}")
async def get_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Get a single card with its assignees"""
    card, _, _ = get_accessible_card(db, card_id, user)
    card["assignees"] = db.assignees.search(Q.card_id == card_id)
    return card


@router.patch("/{card_id}")
async def update_card(
    card_id: str,
    data: CardUpdate,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier)
):
    """Update card fields; ``completed`` sets or clears the completion time"""
    card, _, board = get_accessible_card(db, card_id, user)

    updates = drop_nulls(data.model_dump(exclude_unset=True), "title", "priority", "completed")
    if updates.get("due_date") is not None:
        check_due_date(updates["due_date"])
    if "priority" in updates:
        updates["priority"] = updates["priority"].value

    completed = updates.pop("completed", None)
    if completed is True and not card.get("completed_at"):
        updates["completed_at"] = db.timestamp()
    elif completed is False:
        updates["completed_at"] = None

    updates["updated_at"] = db.timestamp()
    db.cards.update(updates, Q.id == card_id)
    updated_card = {**card, **updates}

    await broadcaster.publish_board_event(board["id"], "card-updated", {
        "card_id": card_id,
        "user_id": user.id
    })
    background_tasks.add_task(notifier.notify, "card.updated", updated_card, board["id"])

    return updated_card


@router.delete("/{card_id}")
async def delete_card(
    card_id: str,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier)
):
    """Delete a card"""
    card, _, board = get_accessible_card(db, card_id, user)

    db.delete_cards([card_id])
    resequence_cards(db, card["list_id"])
    db.log_activity(
        card_id=card_id,
        board_id=board["id"],
        action="deleted",
        from_list_id=card["list_id"],
        user_id=user.id
    )

    await broadcaster.publish_board_event(board["id"], "card-deleted", {
        "card_id": card_id,
        "user_id": user.id
    })
    background_tasks.add_task(notifier.notify, "card.deleted", {"id": card_id}, board["id"])

    return {"deleted": True}


# =============================================================================
# Assignees
# =============================================================================

@router.get("/{card_id}/assignees")
async def list_assignees(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    get_accessible_card(db, card_id, user)
    assignees = db.assignees.search(Q.card_id == card_id)
    return sorted(assignees, key=lambda x: x.get("assigned_at", ""))


@router.post("/{card_id}/assignees")
async def add_assignee(
    card_id: str,
    data: AssigneeCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """Assign a user to a card"""
    _, _, board = get_accessible_card(db, card_id, user)

    existing = db.assignees.get((Q.card_id == card_id) & (Q.user_id == data.user_id))
    if existing:
        raise HTTPException(status_code=409, detail="Already assigned")

    assignee = {
        "id": db.generate_id(),
        "card_id": card_id,
        "user_id": data.user_id,
        "user_name": data.user_name,
        "user_email": data.user_email,
        "assigned_at": db.timestamp()
    }
    db.assignees.insert(assignee)

    await broadcaster.publish_board_event(board["id"], "card-updated", {
        "card_id": card_id,
        "user_id": user.id
    })

    return assignee


@router.delete("/{card_id}/assignees/{assignee_user_id}")
async def remove_assignee(
    card_id: str,
    assignee_user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """Unassign a user from a card"""
    _, _, board = get_accessible_card(db, card_id, user)

    removed = db.assignees.remove((Q.card_id == card_id) & (Q.user_id == assignee_user_id))
    if not removed:
        raise HTTPException(status_code=404, detail="Assignee not found")

    await broadcaster.publish_board_event(board["id"], "card-updated", {
        "card_id": card_id,
        "user_id": user.id
    })

    return {"deleted": True}
