"""Webhook routes for outgoing integrations

Webhooks belong to the user who registered them. Only that user can see or
change them, and they only receive events of boards the user can access.
"""

from fastapi import APIRouter, Depends, HTTPException
from ..models.board import drop_nulls
from ..models.webhook import WEBHOOK_EVENTS, WebhookCreate, WebhookUpdate
from ..services.database import Database, Q
from ..services.webhook_service import send_webhook
from .deps import CurrentUser, get_accessible_board, get_current_user, get_db

router = APIRouter()


def hide_secret(webhook: dict) -> dict:
    result = dict(webhook)
    if result.get("secret"):
        result["secret"] = "***"
    return result


def check_events(events: list):
    unknown = [e for e in events if e not in WEBHOOK_EVENTS]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown events: {', '.join(unknown)}")


def get_owned_webhook(db: Database, webhook_id: str, user: CurrentUser) -> dict:
    webhook = db.webhooks.get((Q.id == webhook_id) & (Q.owner_id == user.id))
    if not webhook:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return webhook


@router.get("")
async def list_webhooks(user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    """List the caller's webhooks"""
    return [hide_secret(wh) for wh in db.webhooks.search(Q.owner_id == user.id)]


@router.post("")
async def create_webhook(
    data: WebhookCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Create a new webhook, optionally limited to one board"""
    check_events(data.events)
    if data.board_id:
        get_accessible_board(db, data.board_id, user)

    webhook = {
        "id": db.generate_id(),
        "owner_id": user.id,
        "board_id": data.board_id,
        "name": data.name,
        "url": data.url,
        "events": data.events,
        "secret": data.secret,
        "active": data.active,
        "created_at": db.timestamp()
    }
    db.webhooks.insert(webhook)
    return hide_secret(webhook)


@router.get("/{webhook_id}")
async def get_webhook(
    webhook_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    return hide_secret(get_owned_webhook(db, webhook_id, user))


@router.patch("/{webhook_id}")
async def update_webhook(
    webhook_id: str,
    data: WebhookUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Update a webhook"""
    webhook = get_owned_webhook(db, webhook_id, user)

    updates = drop_nulls(data.model_dump(exclude_unset=True), "name", "url", "events", "active")
    if "events" in updates:
        check_events(updates["events"])
    db.webhooks.update(updates, Q.id == webhook_id)

    return hide_secret({**webhook, **updates})


@router.delete("/{webhook_id}")
async def delete_webhook(
    webhook_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    get_owned_webhook(db, webhook_id, user)

    db.webhooks.remove(Q.id == webhook_id)
    return {"deleted": True}


@router.post("/{webhook_id}/test")
async def test_webhook(
    webhook_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """Send a test event to a webhook"""
    webhook = get_owned_webhook(db, webhook_id, user)

    test_payload = {
        "event": "webhook.test",
        "data": {"message": "Test webhook delivery"},
        "timestamp": db.timestamp()
    }

    success = await send_webhook(webhook["url"], test_payload, webhook.get("secret"))

    return {"success": success, "url": webhook["url"]}
