"""List routes"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from ..models.board import ListCreate, ListUpdate, ListsReorder, drop_nulls, infer_list_status
from ..services.broadcast import Broadcaster
from ..services.database import Database, Q
from ..services.notifier import Notifier
from ..services.ordering import (
    EntityNotFoundError, InvalidBatchError, apply_list_positions, resequence_lists, trailing_order
)
from .deps import (
    CurrentUser, get_accessible_board, get_accessible_list, get_broadcaster,
    get_current_user, get_db, get_notifier
)

router = APIRouter()


# Registered before /{list_id} so "reorder" is not read as a list id
@router.patch("/reorder")
async def reorder_lists(
    data: ListsReorder,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """Persist the full list order of a board"""
    get_accessible_board(db, data.board_id, user)

    try:
        lists = apply_list_positions(db, data.board_id, [p.model_dump() for p in data.lists])
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"{e.entity} not found")
    except InvalidBatchError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await broadcaster.publish_board_event(data.board_id, "lists-reorder", {
        "lists": lists,
        "user_id": user.id,
        "origin": data.origin
    })

    return {"success": True, "lists": lists}


@router.post("")
async def create_list(
    data: ListCreate,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier)
):
    """Create a new list at the end of the board"""
    get_accessible_board(db, data.board_id, user)

    lst = {
        "id": db.generate_id(),
        "board_id": data.board_id,
        "title": data.title,
        "order": trailing_order(db.lists.search(Q.board_id == data.board_id)),
        "status": (data.status or infer_list_status(data.title)).value,
        "status_inferred": data.status is None,
        "created_at": db.timestamp()
    }
    db.lists.insert(lst)

    await broadcaster.publish_board_event(data.board_id, "list-created", {
        "list": lst,
        "user_id": user.id
    })
    background_tasks.add_task(notifier.notify, "list.created", lst, data.board_id)

    return lst


@router.patch("/{list_id}")
async def update_list(
    list_id: str,
    data: ListUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Rename a list or change its status"""
    lst, _ = get_accessible_list(db, list_id, user)

    updates = drop_nulls(data.model_dump(exclude_unset=True), "title", "status")
    if "status" in updates:
        updates["status"] = updates["status"].value
        updates["status_inferred"] = False
    elif "title" in updates and lst.get("status_inferred", True):
        updates["status"] = infer_list_status(updates["title"]).value
        updates["status_inferred"] = True

    db.lists.update(updates, Q.id == list_id)
    return {**lst, **updates}


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier)
):
    """Delete a list and its cards"""
    lst, board = get_accessible_list(db, list_id, user)

    card_ids = [c["id"] for c in db.cards.search(Q.list_id == list_id)]
    db.delete_cards(card_ids)
    db.lists.remove(Q.id == list_id)
    resequence_lists(db, board["id"])

    await broadcaster.publish_board_event(board["id"], "list-deleted", {
        "list_id": list_id,
        "user_id": user.id
    })
    background_tasks.add_task(
        notifier.notify, "list.deleted", {"id": list_id, "board_id": board["id"]}, board["id"]
    )

    return {"success": True}


@router.post("/{list_id}/copy")
async def copy_list(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster)
):
    """Copy a list and its cards to the end of the board"""
    lst, board = get_accessible_list(db, list_id, user)

    new_order = trailing_order(db.lists.search(Q.board_id == board["id"]))

    new_list = {
        "id": db.generate_id(),
        "board_id": board["id"],
        "title": f"{lst['title']} (Copy)",
        "order": new_order,
        "status": lst.get("status") or infer_list_status(lst["title"]).value,
        "status_inferred": lst.get("status_inferred", True),
        "created_at": db.timestamp()
    }
    db.lists.insert(new_list)

    new_cards = [
        {
            "id": db.generate_id(),
            "list_id": new_list["id"],
            "order": index,
            "title": card["title"],
            "description": card.get("description"),
            "priority": card.get("priority") or "MEDIUM",
            "due_date": card.get("due_date"),
            "estimated_hours": card.get("estimated_hours"),
            "completed_at": None,
            "created_at": db.timestamp(),
            "updated_at": db.timestamp()
        }
        for index, card in enumerate(db.get_list_cards(list_id))
    ]
    if new_cards:
        db.cards.insert_multiple(new_cards)

    new_list = {**new_list, "cards": new_cards}

    await broadcaster.publish_board_event(board["id"], "list-copied", {
        "list": new_list,
        "user_id": user.id
    })

    return new_list
