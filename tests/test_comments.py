"""Comment Tests

Tests for card comments and links: authorship, access and the board broadcast.
"""

import pytest


@pytest.fixture
def card(populated_board):
    return populated_board["lists"][0]["cards"][0]


class TestComments:

    @pytest.mark.asyncio
    async def test_add_comment(self, test_client, member_headers, populated_board, card, broadcaster, db):
        subscription = await broadcaster.subscribe(f"board-{populated_board['id']}")

        response = await test_client.post(
            f"/cards/{card['id']}/comments",
            json={"content": "  Looks good  "},
            headers=member_headers
        )

        assert response.status_code == 200
        comment = response.json()
        assert comment["content"] == "Looks good"
        assert comment["user_id"] == "user-member"
        assert comment["user_name"] == "Max Member"

        message = subscription.queue.get_nowait()
        assert message["event"] == "comment-added"
        assert message["data"]["card_id"] == card["id"]
        await subscription.close()

        actions = [a["action"] for a in db.activity.all()]
        assert "commented" in actions

    @pytest.mark.asyncio
    async def test_blank_comment(self, test_client, owner_headers, card):
        response = await test_client.post(
            f"/cards/{card['id']}/comments", json={"content": "   "}, headers=owner_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_newest_first(self, test_client, owner_headers, card):
        for content in ("first", "second"):
            await test_client.post(f"/cards/{card['id']}/comments", json={"content": content}, headers=owner_headers)

        response = await test_client.get(f"/cards/{card['id']}/comments", headers=owner_headers)

        assert [c["content"] for c in response.json()] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_outsider_cannot_comment(self, test_client, outsider_headers, card):
        response = await test_client.post(
            f"/cards/{card['id']}/comments", json={"content": "hi"}, headers=outsider_headers
        )

        assert response.status_code == 404


class TestCommentAuthorship:

    @pytest.mark.asyncio
    async def test_only_author_edits(self, test_client, owner_headers, member_headers, card):
        comment = (await test_client.post(
            f"/cards/{card['id']}/comments", json={"content": "draft"}, headers=member_headers
        )).json()

        response = await test_client.patch(
            f"/cards/{card['id']}/comments/{comment['id']}", json={"content": "edited"}, headers=owner_headers
        )
        assert response.status_code == 403

        response = await test_client.patch(
            f"/cards/{card['id']}/comments/{comment['id']}", json={"content": "edited"}, headers=member_headers
        )
        assert response.json()["content"] == "edited"

    @pytest.mark.asyncio
    async def test_board_owner_deletes_any(self, test_client, owner_headers, member_headers, card):
        comment = (await test_client.post(
            f"/cards/{card['id']}/comments", json={"content": "spam"}, headers=owner_headers
        )).json()

        response = await test_client.delete(
            f"/cards/{card['id']}/comments/{comment['id']}", headers=member_headers
        )
        assert response.status_code == 403

        response = await test_client.delete(
            f"/cards/{card['id']}/comments/{comment['id']}", headers=owner_headers
        )
        assert response.status_code == 200

        response = await test_client.get(f"/cards/{card['id']}/comments", headers=owner_headers)
        assert response.json() == []


class TestCardLinks:

    @pytest.mark.asyncio
    async def test_add_and_list_links(self, test_client, owner_headers, member_headers, card):
        response = await test_client.post(
            f"/cards/{card['id']}/links",
            json={"title": "Design doc", "url": "https://docs.example.com/design"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["created_by"] == "user-owner"

        response = await test_client.get(f"/cards/{card['id']}/links", headers=member_headers)
        assert [l["title"] for l in response.json()] == ["Design doc"]

    @pytest.mark.asyncio
    async def test_rejects_non_web_url(self, test_client, owner_headers, card):
        response = await test_client.post(
            f"/cards/{card['id']}/links",
            json={"title": "Script", "url": "javascript:alert(1)"},
            headers=owner_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_link(self, test_client, owner_headers, outsider_headers, card):
        link = (await test_client.post(
            f"/cards/{card['id']}/links",
            json={"title": "Ticket", "url": "https://tracker.example.com/1"},
            headers=owner_headers
        )).json()

        response = await test_client.delete(f"/cards/{card['id']}/links/{link['id']}", headers=outsider_headers)
        assert response.status_code == 404

        response = await test_client.delete(f"/cards/{card['id']}/links/{link['id']}", headers=owner_headers)
        assert response.status_code == 200

        response = await test_client.delete(f"/cards/{card['id']}/links/{link['id']}", headers=owner_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_deleting_card_removes_comments_and_links(self, test_client, owner_headers, card, db):
        await test_client.post(f"/cards/{card['id']}/comments", json={"content": "hi"}, headers=owner_headers)
        await test_client.post(
            f"/cards/{card['id']}/links",
            json={"title": "Ticket", "url": "https://tracker.example.com/1"},
            headers=owner_headers
        )

        await test_client.delete(f"/cards/{card['id']}", headers=owner_headers)

        assert db.comments.all() == []
        assert db.card_links.all() == []
