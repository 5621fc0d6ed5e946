"""
Monday.com Service
GraphQL client for the Payments board (one group per state, one item per author)
and the Reports Progress board
"""
import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from ..config import (
    MONDAY_API_TOKEN,
    MONDAY_API_URL,
    MONDAY_API_VERSION,
    PAYMENTS_BOARD_ID,
    PAYMENTS_COLUMN_IDS,
    BoardColumnConfig,
)
from ..exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

MONDAY_ERRORS = (UpstreamError, ConfigurationError, httpx.HTTPError)
ITEMS_PAGE_LIMIT = 200


@dataclass
class GeodeAuthorDetails:
    name: str
    email: str
    state: str
    chapter_type: str
    chapter_title: str
    chapter_num: str
    contract_signed_date: Optional[str] = None
    grant_amount: Optional[float] = None


def normalize_group_title(title: str) -> str:
    """'New Mexico' -> 'new_mexico'"""
    return "_".join(title.lower().split())


class MondayService:
    """Thin Monday.com GraphQL client. The state group cache lives on the instance"""

    def __init__(
        self,
        api_token: Optional[str] = None,
        board_id: str = PAYMENTS_BOARD_ID,
        column_config: BoardColumnConfig = PAYMENTS_COLUMN_IDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token if api_token is not None else MONDAY_API_TOKEN
        self.board_id = board_id
        self.columns = column_config
        self.transport = transport
        self.items_page_limit = ITEMS_PAGE_LIMIT
        self._state_group_ids: Optional[dict[str, str]] = None

    def is_configured(self) -> bool:
        return bool(self.api_token)

    async def _query(self, query: str, variables: Optional[dict] = None) -> dict:
        if not self.api_token:
            raise ConfigurationError("MONDAY_API_TOKEN is not set")

        async with httpx.AsyncClient(transport=self.transport, timeout=30.0) as client:
            response = await client.post(
                MONDAY_API_URL,
                json={"query": query, "variables": variables or {}},
                headers={
                    "Content-Type": "application/json",
                    "Authorization": self.api_token,
                    "API-Version": MONDAY_API_VERSION,
                },
            )

        if response.status_code != 200:
            raise UpstreamError("Monday.com", response.status_code)

        result = response.json()
        if result.get("errors"):
            raise UpstreamError("Monday.com", detail=f"GraphQL error: {json.dumps(result['errors'])}")
        return result.get("data") or {}

    # ============================================================================
    # Payments board groups
    # ============================================================================

    async def get_payments_board_groups(self) -> dict:
        query = """
            query ($boardId: ID!) {
                boards(ids: [$boardId]) {
                    groups { id title }
                }
            }
        """
        try:
            data = await self._query(query, {"boardId": self.board_id})
        except MONDAY_ERRORS as e:
            logger.error(f"❌ Error fetching Payments board groups: {str(e)}")
            return {"success": False, "error": str(e)}

        boards = data.get("boards") or []
        return {"success": True, "groups": boards[0].get("groups", []) if boards else []}

    async def get_state_group_ids(self) -> dict[str, str]:
        """State value -> group id, fetched once per client and cached"""
        if self._state_group_ids is not None:
            return self._state_group_ids

        result = await self.get_payments_board_groups()
        if not result["success"]:
            logger.warning("⚠️ Failed to fetch Payments board groups")
            return {}

        mapping = {normalize_group_title(g["title"]): g["id"] for g in result["groups"]}
        self._state_group_ids = mapping
        logger.info(f"📊 Cached state group IDs: {', '.join(mapping)}")
        return mapping

    def clear_state_group_cache(self) -> None:
        self._state_group_ids = None

    # ============================================================================
    # Payments board authors
    # ============================================================================

    @staticmethod
    def _missing_group_error(state: str, group_ids: dict[str, str]) -> str:
        available = ", ".join(group_ids) or "none (check board configuration)"
        return f'No group found for state "{state}" in Payments board. Available: {available}'

    async def get_group_items(self, group_id: str) -> list[dict]:
        """Every item in one group, following the items_page cursor. Raises on API errors"""
        first_page = """
            query ($boardId: ID!, $groupId: String!, $limit: Int!) {
                boards(ids: [$boardId]) {
                    groups(ids: [$groupId]) {
                        items_page(limit: $limit) {
                            cursor
                            items { id name }
                        }
                    }
                }
            }
        """
        next_page = """
            query ($cursor: String!, $limit: Int!) {
                next_items_page(limit: $limit, cursor: $cursor) {
                    cursor
                    items { id name }
                }
            }
        """
        data = await self._query(
            first_page, {"boardId": self.board_id, "groupId": group_id, "limit": self.items_page_limit}
        )
        boards = data.get("boards") or []
        groups = (boards[0].get("groups") or []) if boards else []
        page = (groups[0].get("items_page") if groups else None) or {}

        items = list(page.get("items") or [])
        cursor = page.get("cursor")
        while cursor:
            data = await self._query(next_page, {"cursor": cursor, "limit": self.items_page_limit})
            page = data.get("next_items_page") or {}
            items.extend(page.get("items") or [])
            cursor = page.get("cursor")
        return items

    async def find_author_in_payments_board(self, state: str, author_name: str) -> dict:
        """
        Exact (case-insensitive, trimmed) name match within the state's group.
        A lookup that could not complete carries an "error" key and must not be read as "not found"
        """
        group_ids = await self.get_state_group_ids()
        group_id = group_ids.get(state)
        if not group_id:
            logger.warning(f"⚠️ No Payments board group for state: {state}")
            return {"exists": False, "error": self._missing_group_error(state, group_ids)}

        try:
            items = await self.get_group_items(group_id)
        except MONDAY_ERRORS as e:
            logger.error(f"❌ Error searching Payments board for {author_name}: {str(e)}")
            return {"exists": False, "error": str(e)}

        wanted = author_name.lower().strip()
        for item in items:
            if item["name"].lower().strip() == wanted:
                logger.info(f"✅ Found existing author {item['name']} (item {item['id']})")
                return {"exists": True, "itemId": item["id"], "itemName": item["name"]}
        return {"exists": False}

    async def add_author_to_payments_board(self, author: GeodeAuthorDetails) -> dict:
        group_ids = await self.get_state_group_ids()
        group_id = group_ids.get(author.state)
        if not group_id:
            return {"success": False, "error": self._missing_group_error(author.state, group_ids)}

        column_values: dict = {
            self.columns.authorEmail: {"email": author.email, "text": author.email},
            self.columns.chapterInfo: f"Ch {author.chapter_num} - {author.chapter_title}",
        }
        if author.contract_signed_date:
            column_values[self.columns.contractSignedDate] = {"date": author.contract_signed_date}
        if author.grant_amount:
            column_values[self.columns.totalGrantAmount] = author.grant_amount

        query = """
            mutation ($boardId: ID!, $groupId: String!, $itemName: String!, $columnValues: JSON!) {
                create_item(board_id: $boardId, group_id: $groupId, item_name: $itemName, column_values: $columnValues) {
                    id
                    name
                }
            }
        """
        try:
            data = await self._query(
                query,
                {
                    "boardId": self.board_id,
                    "groupId": group_id,
                    "itemName": author.name,
                    "columnValues": json.dumps(column_values),
                },
            )
        except MONDAY_ERRORS as e:
            logger.error(f"❌ Error adding {author.name} to Payments board: {str(e)}")
            return {"success": False, "error": str(e)}

        item_id = (data.get("create_item") or {}).get("id")
        if not item_id:
            logger.error(f"❌ Monday.com returned no item for {author.name}")
            return {"success": False, "error": "Monday.com did not return the created item"}

        logger.info(f"📝 Added {author.name} to Payments board (item {item_id})")
        return {"success": True, "itemId": item_id}

    async def upsert_author_in_payments_board(self, author: GeodeAuthorDetails) -> dict:
        """Find first, then create. Returns {success, itemId, created} or {success: False, error}"""
        existing = await self.find_author_in_payments_board(author.state, author.name)
        if existing["exists"]:
            return {"success": True, "itemId": existing["itemId"], "created": False}
        if existing.get("error"):
            return {"success": False, "error": existing["error"]}

        result = await self.add_author_to_payments_board(author)
        if not result["success"]:
            return result
        return {"success": True, "itemId": result["itemId"], "created": True}

    async def update_author_payment_milestone(
        self, item_id: str, column_id: str, value: Union[bool, str]
    ) -> dict:
        """Booleans set checkbox columns, strings set date columns"""
        if isinstance(value, bool):
            column_value = {"checked": "true" if value else "false"}
        else:
            column_value = {"date": value}

        query = """
            mutation ($boardId: ID!, $itemId: ID!, $columnId: String!, $value: JSON!) {
                change_column_value(board_id: $boardId, item_id: $itemId, column_id: $columnId, value: $value) {
                    id
                }
            }
        """
        try:
            await self._query(
                query,
                {
                    "boardId": self.board_id,
                    "itemId": item_id,
                    "columnId": column_id,
                    "value": json.dumps(column_value),
                },
            )
        except MONDAY_ERRORS as e:
            logger.error(f"❌ Error updating milestone column {column_id} on item {item_id}: {str(e)}")
            return {"success": False, "error": str(e)}
        return {"success": True}

    async def set_payment_milestone(self, item_id: str, milestone: str, value: Union[bool, str] = True) -> dict:
        """Milestone key -> configured column id -> change_column_value"""
        return await self.update_author_payment_milestone(item_id, self.columns.column_for(milestone), value)

    # ============================================================================
    # Item updates (comments)
    # ============================================================================

    async def add_comment(self, item_id: str, body: str) -> dict:
        query = """
            mutation ($itemId: ID!, $body: String!) {
                create_update(item_id: $itemId, body: $body) { id }
            }
        """
        try:
            data = await self._query(query, {"itemId": item_id, "body": body})
        except MONDAY_ERRORS as e:
            logger.error(f"❌ Error adding comment to item {item_id}: {str(e)}")
            return {"success": False, "error": str(e)}
        return {"success": True, "updateId": data.get("create_update", {}).get("id")}
