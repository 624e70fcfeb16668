"""
Card Links API

Titled web links attached to a card.
"""

from fastapi import APIRouter, Depends, HTTPException
from ..models.link import CardLinkCreate
from ..services.database import Database, Q
from .deps import CurrentUser, get_accessible_card, get_current_user, get_db

router = APIRouter()


@router.get("/cards/{card_id}/links")
async def get_card_links(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Get all links for a card, oldest first"""
    get_accessible_card(db, card_id, user)

    links = db.card_links.search(Q.card_id == card_id)
    return sorted(links, key=lambda x: (x.get("created_at", ""), x.doc_id))


@router.post("/cards/{card_id}/links")
async def create_card_link(
    card_id: str,
    data: CardLinkCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    get_accessible_card(db, card_id, user)
    if not data.url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="URL must start with http:// or https://")

    link = {
        "id": db.generate_id(),
        "card_id": card_id,
        "title": data.title,
        "url": data.url,
        "created_by": user.id,
        "created_at": db.timestamp()
    }
    db.card_links.insert(link)

    return link


@router.delete("/cards/{card_id}/links/{link_id}")
async def delete_card_link(
    card_id: str,
    link_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    get_accessible_card(db, card_id, user)

    removed = db.card_links.remove((Q.id == link_id) & (Q.card_id == card_id))
    if not removed:
        raise HTTPException(status_code=404, detail="Link not found")

    return {"deleted": True}
