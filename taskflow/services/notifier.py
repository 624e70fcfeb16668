"""Fan-out of mutation notifications to webhooks, Slack and Jira"""

from ..config import Settings
from .database import Database
from .integrations import card_created_message, send_slack_notification, sync_card_to_jira
from .webhook_service import trigger_webhooks


class Notifier:
    """Best-effort notifications, meant to run as background tasks"""

    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    async def notify(self, event: str, data: dict, board_id: str):
        await trigger_webhooks(self.db, event, data, board_id, self.settings.webhook_timeout)

    async def card_created(self, card: dict, board: dict):
        await self.notify("card.created", card, board["id"])

        if self.settings.slack_webhook_url:
            await send_slack_notification(
                self.settings.slack_webhook_url,
                card_created_message(card, board),
                self.settings.webhook_timeout
            )

        if self.settings.jira_site_url and self.settings.jira_access_token:
            await sync_card_to_jira(
                self.settings.jira_site_url,
                self.settings.jira_access_token,
                card,
                self.settings.jira_project_key,
                self.settings.webhook_timeout
            )
