"""Webhook models for outgoing integrations"""

from pydantic import BaseModel, Field
from typing import Optional

WEBHOOK_EVENTS = [
    "card.created",
    "card.updated",
    "card.deleted",
    "cards.reordered",
    "list.created",
    "list.deleted",
]


class WebhookCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    url: str
    board_id: Optional[str] = None
    events: list[str] = ["card.created", "card.updated", "cards.reordered"]
    secret: Optional[str] = None
    active: bool = True


class WebhookUpdate(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    events: Optional[list[str]] = None
    secret: Optional[str] = None
    active: Optional[bool] = None


class Webhook(BaseModel):
    id: str
    name: str
    url: str
    owner_id: str
    board_id: Optional[str] = None
    events: list[str]
    secret: Optional[str] = None
    active: bool
    created_at: str
