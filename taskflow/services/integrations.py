"""Chat and issue-tracker integrations.

Every call here is best effort: errors are logged and reported through the
return value, never raised.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

BOT_USERNAME = "TaskFlow Bot"
BOT_ICON = ":clipboard:"

JIRA_PRIORITIES = {
    "LOW": "Low",
    "MEDIUM": "Medium",
    "HIGH": "High",
    "URGENT": "Highest",
}


async def send_slack_notification(webhook_url: str, message: str, timeout: float = 10.0) -> bool:
    """Post a plain text message to a Slack incoming webhook"""
    if not webhook_url:
        logger.debug("Slack webhook URL not configured")
        return False

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(webhook_url, json={
                "text": message,
                "username": BOT_USERNAME,
                "icon_emoji": BOT_ICON,
            })
            response.raise_for_status()
        return True
    except Exception as e:
        logger.error(f"Error sending Slack notification: {e}")
        return False


def card_created_message(card: dict, board: dict) -> str:
    return f"New card created: *{card['title']}* in board *{board['title']}*"


def jira_issue_payload(card: dict, project_key: str) -> dict:
    """Build the Jira REST v3 issue body for a card"""
    return {
        "fields": {
            "project": {"key": project_key},
            "summary": card["title"],
            "description": {
                "type": "doc",
                "version": 1,
                "content": [
                    {
                        "type": "paragraph",
                        "content": [{"type": "text", "text": card.get("description") or ""}],
                    }
                ],
            },
            "issuetype": {"name": "Task"},
            "priority": {"name": JIRA_PRIORITIES.get(card.get("priority") or "MEDIUM", "Medium")},
        }
    }


async def sync_card_to_jira(
    site_url: str,
    access_token: str,
    card: dict,
    project_key: str = "TASK",
    timeout: float = 10.0
) -> Optional[dict]:
    """Create a Jira issue mirroring a card; returns the issue or None"""
    if not site_url or not access_token:
        return None

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                f"{site_url.rstrip('/')}/rest/api/3/issue",
                json=jira_issue_payload(card, project_key),
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            issue = response.json()
        logger.info(f"Card {card['id']} synced to Jira as {issue.get('key')}")
        return issue
    except Exception as e:
        logger.error(f"Error syncing card {card.get('id')} to Jira: {e}")
        return None
