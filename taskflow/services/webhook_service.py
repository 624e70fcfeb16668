"""Webhook service for outgoing integrations"""

import httpx
import hashlib
import hmac
import json
import logging
from ..services.database import Database

logger = logging.getLogger(__name__)


def sign_payload(body: str, secret: str) -> str:
    signature = hmac.new(
        secret.encode(),
        body.encode(),
        hashlib.sha256
    ).hexdigest()
    return f"sha256={signature}"


async def send_webhook(url: str, payload: dict, secret: str = None, timeout: float = 10.0) -> bool:
    """Send a webhook payload to a URL"""
    try:
        headers = {"Content-Type": "application/json"}
        body = json.dumps(payload)

        if secret:
            headers["X-Webhook-Signature"] = sign_payload(body, secret)

        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, content=body, headers=headers)
            if response.status_code >= 400:
                logger.warning(f"Webhook {url} answered {response.status_code}")
                return False
            return True

    except Exception as e:
        logger.error(f"Webhook delivery failed: {e}")
        return False


def can_receive(db: Database, webhook: dict, board_id: str) -> bool:
    """Whether a webhook's owner may see events of the board"""
    if webhook.get("board_id") and webhook["board_id"] != board_id:
        return False
    owner_id = webhook.get("owner_id")
    if not owner_id:
        return False
    return db.is_board_member(board_id, owner_id)


async def trigger_webhooks(db: Database, event: str, data: dict, board_id: str, timeout: float = 10.0) -> int:
    """Deliver a board event to every active webhook subscribed to it.

    Only webhooks whose owner can access the board receive it. Returns the
    number of successful deliveries.
    """
    delivered = 0
    try:
        webhooks = db.webhooks.all()

        for webhook in webhooks:
            if not webhook.get("active", True):
                continue

            if event not in webhook.get("events", []):
                continue

            if not can_receive(db, webhook, board_id):
                continue

            payload = {
                "event": event,
                "data": data,
                "timestamp": db.timestamp()
            }

            if await send_webhook(webhook["url"], payload, webhook.get("secret"), timeout):
                delivered += 1

    except Exception as e:
        logger.error(f"Error triggering webhooks: {e}")

    return delivered
