"""API Routes"""

from taskflow.routes import (
    analytics, boards, cards, checklists, comments, links, lists, webhooks, websocket
)

__all__ = [
    "analytics", "boards", "cards", "checklists", "comments", "links", "lists", "webhooks", "websocket"
]
