"""Notification Delivery Tests

Tests for outgoing webhooks, Slack messages and Jira issue creation.
"""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from taskflow.services.database import Database
from taskflow.services.integrations import (
    jira_issue_payload, send_slack_notification, sync_card_to_jira
)
from taskflow.services.notifier import Notifier
from taskflow.services.webhook_service import send_webhook, sign_payload, trigger_webhooks


def make_response(status_code: int, url: str, body: dict = None) -> httpx.Response:
    return httpx.Response(status_code, json=body or {}, request=httpx.Request("POST", url))


CARD = {
    "id": "card-1",
    "title": "Ship it",
    "description": "Release 1.0",
    "priority": "URGENT",
}


# =============================================================================
# Outgoing webhooks
# =============================================================================

class TestSendWebhook:

    def test_sign_payload(self):
        body = json.dumps({"event": "card.created"})
        expected = hmac.new(b"key", body.encode(), hashlib.sha256).hexdigest()

        assert sign_payload(body, "key") == f"sha256={expected}"

    @pytest.mark.asyncio
    async def test_signed_delivery(self):
        url = "https://hooks.example.com/a"
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=make_response(200, url))) as mock_post:
            delivered = await send_webhook(url, {"event": "card.created"}, secret="key")

        assert delivered is True
        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["X-Webhook-Signature"] == sign_payload(kwargs["content"], "key")

    @pytest.mark.asyncio
    async def test_unsigned_delivery(self):
        url = "https://hooks.example.com/a"
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=make_response(200, url))) as mock_post:
            await send_webhook(url, {"event": "card.created"})

        assert "X-Webhook-Signature" not in mock_post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_error_status(self):
        url = "https://hooks.example.com/a"
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=make_response(500, url))):
            assert await send_webhook(url, {"event": "card.created"}) is False

    @pytest.mark.asyncio
    async def test_connection_error(self):
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=httpx.ConnectError("refused"))):
            assert await send_webhook("https://hooks.example.com/a", {}) is False


class TestTriggerWebhooks:

    @pytest.fixture
    def db(self):
        db = Database()
        db.initialize()
        db.boards.insert({"id": "b1", "title": "Launch", "owner_id": "u1"})
        db.board_members.insert({"id": "m1", "board_id": "b1", "user_id": "u2", "role": "member"})
        db.webhooks.insert({"id": "w1", "owner_id": "u1", "url": "https://a", "events": ["card.created"], "active": True})
        db.webhooks.insert({"id": "w2", "owner_id": "u1", "url": "https://b", "events": ["card.created"], "active": False})
        db.webhooks.insert({"id": "w3", "owner_id": "u1", "url": "https://c", "events": ["card.deleted"], "active": True})
        db.webhooks.insert({"id": "w4", "owner_id": "u2", "url": "https://d", "events": ["card.created"], "secret": "k"})
        db.webhooks.insert({"id": "w5", "owner_id": "u3", "url": "https://e", "events": ["card.created"]})
        db.webhooks.insert({"id": "w6", "owner_id": "u1", "board_id": "b2", "url": "https://f", "events": ["card.created"]})
        db.webhooks.insert({"id": "w7", "url": "https://g", "events": ["card.created"]})
        yield db
        db.close()

    @pytest.mark.asyncio
    async def test_only_active_subscribers_with_access(self, db):
        with patch("taskflow.services.webhook_service.send_webhook", new=AsyncMock(return_value=True)) as mock_send:
            delivered = await trigger_webhooks(db, "card.created", {"id": "card-1"}, "b1")

        assert delivered == 2
        assert [c.args[0] for c in mock_send.call_args_list] == ["https://a", "https://d"]
        assert mock_send.call_args_list[1].args[2] == "k"

    @pytest.mark.asyncio
    async def test_unknown_board_delivers_nothing(self, db):
        with patch("taskflow.services.webhook_service.send_webhook", new=AsyncMock(return_value=True)) as mock_send:
            assert await trigger_webhooks(db, "card.created", {}, "missing") == 0

        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_deliveries_not_counted(self, db):
        with patch("taskflow.services.webhook_service.send_webhook", new=AsyncMock(return_value=False)):
            assert await trigger_webhooks(db, "card.created", {}, "b1") == 0


# =============================================================================
# Slack
# =============================================================================

class TestSlack:

    @pytest.mark.asyncio
    async def test_message(self):
        url = "https://hooks.slack.com/services/T/B/X"
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=make_response(200, url))) as mock_post:
            sent = await send_slack_notification(url, "hello")

        assert sent is True
        assert mock_post.call_args.kwargs["json"] == {
            "text": "hello",
            "username": "TaskFlow Bot",
            "icon_emoji": ":clipboard:",
        }

    @pytest.mark.asyncio
    async def test_not_configured(self):
        assert await send_slack_notification(None, "hello") is False

    @pytest.mark.asyncio
    async def test_error_is_swallowed(self):
        url = "https://hooks.slack.com/services/T/B/X"
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=make_response(404, url))):
            assert await send_slack_notification(url, "hello") is False


# =============================================================================
# Jira
# =============================================================================

class TestJira:

    def test_issue_payload(self):
        payload = jira_issue_payload(CARD, "OPS")

        fields = payload["fields"]
        assert fields["project"] == {"key": "OPS"}
        assert fields["summary"] == "Ship it"
        assert fields["priority"] == {"name": "Highest"}
        assert fields["issuetype"] == {"name": "Task"}
        assert fields["description"]["content"][0]["content"][0]["text"] == "Release 1.0"

    @pytest.mark.parametrize("priority,name", [
        ("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High"), ("URGENT", "Highest"), (None, "Medium")
    ])
    def test_priority_mapping(self, priority, name):
        payload = jira_issue_payload(dict(CARD, priority=priority), "TASK")

        assert payload["fields"]["priority"]["name"] == name

    @pytest.mark.asyncio
    async def test_create_issue(self):
        url = "https://acme.atlassian.net/rest/api/3/issue"
        response = make_response(201, url, {"id": "10001", "key": "TASK-1"})
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=response)) as mock_post:
            issue = await sync_card_to_jira("https://acme.atlassian.net/", "token", CARD)

        assert issue == {"id": "10001", "key": "TASK-1"}
        assert mock_post.call_args.args[0] == url
        assert mock_post.call_args.kwargs["headers"] == {"Authorization": "Bearer token"}

    @pytest.mark.asyncio
    async def test_not_configured(self):
        assert await sync_card_to_jira(None, None, CARD) is None

    @pytest.mark.asyncio
    async def test_error_returns_none(self):
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
            assert await sync_card_to_jira("https://acme.atlassian.net", "token", CARD) is None


# =============================================================================
# Notifier
# =============================================================================

class TestNotifier:

    @pytest.mark.asyncio
    async def test_card_created_fans_out(self, settings):
        settings = settings.model_copy(update={
            "slack_webhook_url": "https://hooks.slack.com/services/T/B/X",
            "jira_site_url": "https://acme.atlassian.net",
            "jira_access_token": "token",
        })
        db = Database()
        db.initialize()
        notifier = Notifier(db, settings)

        with patch("taskflow.services.notifier.trigger_webhooks", new=AsyncMock(return_value=0)) as mock_hooks, \
                patch("taskflow.services.notifier.send_slack_notification", new=AsyncMock(return_value=True)) as mock_slack, \
                patch("taskflow.services.notifier.sync_card_to_jira", new=AsyncMock(return_value=None)) as mock_jira:
            await notifier.card_created(CARD, {"id": "b1", "title": "Launch"})

        assert mock_hooks.call_args.args[1] == "card.created"
        assert mock_hooks.call_args.args[3] == "b1"
        assert mock_slack.call_args.args[1] == "New card created: *Ship it* in board *Launch*"
        assert mock_jira.call_args.args[:3] == ("https://acme.atlassian.net", "token", CARD)
        assert mock_jira.call_args.args[3] == "TASK"
        db.close()

    @pytest.mark.asyncio
    async def test_card_created_without_integrations(self, settings):
        db = Database()
        db.initialize()
        notifier = Notifier(db, settings)

        with patch("taskflow.services.notifier.send_slack_notification", new=AsyncMock()) as mock_slack, \
                patch("taskflow.services.notifier.sync_card_to_jira", new=AsyncMock()) as mock_jira:
            await notifier.card_created(CARD, {"id": "b1", "title": "Launch"})

        mock_slack.assert_not_called()
        mock_jira.assert_not_called()
        db.close()
