"""Checklist routes

Cards hold ordered checklists and each checklist holds ordered items. New
entries are appended after their siblings and deletes close the gaps, the
same way cards are kept in their lists.
"""

from fastapi import APIRouter, Depends, HTTPException
from ..models.board import drop_nulls
from ..models.checklist import (
    ChecklistCreate, ChecklistItemCreate, ChecklistItemUpdate, ChecklistUpdate
)
from ..services.database import Database, Q
from ..services.ordering import resequence_rows, trailing_order
from .cards import check_due_date
from .deps import CurrentUser, can_access_card, get_accessible_card, get_current_user, get_db

router = APIRouter()


def get_accessible_checklist(db: Database, checklist_id: str, user: CurrentUser) -> dict:
    checklist = db.checklists.get(Q.id == checklist_id)
    if not checklist or not can_access_card(db, checklist["card_id"], user):
        raise HTTPException(status_code=404, detail="Checklist not found")
    return dict(checklist)


def get_accessible_item(db: Database, item_id: str, user: CurrentUser) -> dict:
    item = db.checklist_items.get(Q.id == item_id)
    checklist = db.checklists.get(Q.id == item["checklist_id"]) if item else None
    if not checklist or not can_access_card(db, checklist["card_id"], user):
        raise HTTPException(status_code=404, detail="Checklist item not found")
    return dict(item)


def with_items(db: Database, checklist: dict) -> dict:
    items = sorted(
        db.checklist_items.search(Q.checklist_id == checklist["id"]),
        key=lambda x: x.get("order", 0)
    )
    completed = sum(1 for i in items if i.get("completed"))
    return {**checklist, "items": items, "completed": completed, "total": len(items)}


# =============================================================================
# Checklists
# =============================================================================

@router.get("/cards/{card_id}/checklists")
async def list_checklists(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """List a card's checklists with their items, both in order"""
    get_accessible_card(db, card_id, user)

    checklists = sorted(db.checklists.search(Q.card_id == card_id), key=lambda x: x.get("order", 0))
    return [with_items(db, c) for c in checklists]


@router.post("/cards/{card_id}/checklists")
async def create_checklist(
    card_id: str,
    data: ChecklistCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Add a checklist at the end of a card"""
    get_accessible_card(db, card_id, user)

    checklist = {
        "id": db.generate_id(),
        "card_id": card_id,
        "title": data.title,
        "order": trailing_order(db.checklists.search(Q.card_id == card_id)),
        "created_at": db.timestamp()
    }
    db.checklists.insert(checklist)

    return {**checklist, "items": [], "completed": 0, "total": 0}


@router.patch("/checklists/{checklist_id}")
async def update_checklist(
    checklist_id: str,
    data: ChecklistUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    checklist = get_accessible_checklist(db, checklist_id, user)

    updates = drop_nulls(data.model_dump(exclude_unset=True), "title")
    db.checklists.update(updates, Q.id == checklist_id)

    return with_items(db, {**checklist, **updates})


@router.delete("/checklists/{checklist_id}")
async def delete_checklist(
    checklist_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Delete a checklist and its items"""
    checklist = get_accessible_checklist(db, checklist_id, user)

    db.delete_checklists([checklist_id])
    resequence_rows(db.checklists, db.checklists.search(Q.card_id == checklist["card_id"]))

    return {"deleted": True}


# =============================================================================
# Items
# =============================================================================

@router.post("/checklists/{checklist_id}/items")
async def create_item(
    checklist_id: str,
    data: ChecklistItemCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Add an item at the end of a checklist"""
    get_accessible_checklist(db, checklist_id, user)
    if data.due_date:
        check_due_date(data.due_date)

    item = {
        "id": db.generate_id(),
        "checklist_id": checklist_id,
        "title": data.title,
        "order": trailing_order(db.checklist_items.search(Q.checklist_id == checklist_id)),
        "completed": False,
        "completed_at": None,
        "assignee_id": data.assignee_id,
        "assignee_name": data.assignee_name,
        "due_date": data.due_date,
        "created_at": db.timestamp()
    }
    db.checklist_items.insert(item)

    return item


@router.patch("/checklist-items/{item_id}")
async def update_item(
    item_id: str,
    data: ChecklistItemUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Toggle an item or change its details"""
    item = get_accessible_item(db, item_id, user)

    updates = drop_nulls(data.model_dump(exclude_unset=True), "title", "completed")
    if updates.get("due_date"):
        check_due_date(updates["due_date"])
    if "completed" in updates:
        if updates["completed"] and not item.get("completed"):
            updates["completed_at"] = db.timestamp()
        elif not updates["completed"]:
            updates["completed_at"] = None

    db.checklist_items.update(updates, Q.id == item_id)
    return {**item, **updates}


@router.delete("/checklist-items/{item_id}")
async def delete_item(
    item_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    item = get_accessible_item(db, item_id, user)

    db.checklist_items.remove(Q.id == item_id)
    resequence_rows(db.checklist_items, db.checklist_items.search(Q.checklist_id == item["checklist_id"]))

    return {"deleted": True}
