"""
TaskFlow API Client

An async client for the TaskFlow REST API, used by board views that keep
a local copy of a board in sync.
"""

import httpx
from typing import List, Optional


class TaskFlowClient:
    """Client for interacting with the TaskFlow REST API."""

    def __init__(
        self,
        base_url: str,
        user_id: str,
        user_name: str = None,
        user_email: str = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport = None
    ):
        """
        Initialize the TaskFlow client.

        Args:
            base_url: The base URL of the TaskFlow API (e.g., "https://taskflow.example.com/api")
            user_id: Identity sent as X-User-Id on every request
            user_name: Optional display name sent as X-User-Name
            user_email: Optional email sent as X-User-Email
            timeout: Request timeout in seconds
            transport: Optional httpx transport (e.g. ASGITransport in tests)
        """
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id

        headers = {"X-User-Id": user_id}
        if user_name:
            headers["X-User-Name"] = user_name
        if user_email:
            headers["X-User-Email"] = user_email

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs):
        response = await self.client.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    # ==================== Boards ====================

    async def get_boards(self) -> list:
        """Get all boards the caller owns or is a member of."""
        return await self._request("GET", "/boards")

    async def get_board(self, board_id: str) -> dict:
        """Get a board with all its lists, cards and assignees."""
        return await self._request("GET", f"/boards/{board_id}")

    async def create_board(self, title: str, description: str = None) -> dict:
        """Create a new board with the default lists."""
        payload = {"title": title}
        if description:
            payload["description"] = description
        return await self._request("POST", "/boards", json=payload)

    async def add_member(self, board_id: str, user_id: str, user_name: str = None) -> dict:
        payload = {"user_id": user_id}
        if user_name:
            payload["user_name"] = user_name
        return await self._request("POST", f"/boards/{board_id}/members", json=payload)

    # ==================== Lists ====================

    async def create_list(self, board_id: str, title: str) -> dict:
        """Create a new list at the end of a board."""
        return await self._request("POST", "/lists", json={"board_id": board_id, "title": title})

    async def delete_list(self, list_id: str) -> dict:
        return await self._request("DELETE", f"/lists/{list_id}")

    async def copy_list(self, list_id: str) -> dict:
        return await self._request("POST", f"/lists/{list_id}/copy")

    async def reorder_lists(self, board_id: str, lists: List[dict], origin: Optional[str] = None) -> dict:
        """Send the order of every list on a board."""
        payload = {"board_id": board_id, "lists": lists}
        if origin:
            payload["origin"] = origin
        return await self._request("PATCH", "/lists/reorder", json=payload)

    # ==================== Cards ====================

    async def create_card(
        self,
        list_id: str,
        title: str,
        description: str = None,
        priority: str = None,
        due_date: str = None,
        estimated_hours: float = None
    ) -> dict:
        """Create a new card at the end of a list."""
        payload = {
            "list_id": list_id,
            "title": title
        }
        if description:
            payload["description"] = description
        if priority:
            payload["priority"] = priority
        if due_date:
            payload["due_date"] = due_date
        if estimated_hours is not None:
            payload["estimated_hours"] = estimated_hours
        return await self._request("POST", "/cards", json=payload)

    async def update_card(self, card_id: str, **updates) -> dict:
        """Update a card's properties."""
        return await self._request("PATCH", f"/cards/{card_id}", json=updates)

    async def delete_card(self, card_id: str) -> dict:
        return await self._request("DELETE", f"/cards/{card_id}")

    async def reorder_cards(self, board_id: str, cards: List[dict], origin: Optional[str] = None) -> dict:
        """Send `{id, order, list_id}` positions for the cards of a board."""
        payload = {"board_id": board_id, "cards": cards}
        if origin:
            payload["origin"] = origin
        return await self._request("PATCH", "/cards/reorder", json=payload)

    # ==================== Analytics ====================

    async def get_analytics(self, board_id: str) -> dict:
        return await self._request("GET", f"/boards/{board_id}/analytics")

    async def generate_report(self, board_id: str) -> dict:
        return await self._request("POST", f"/boards/{board_id}/reports")
