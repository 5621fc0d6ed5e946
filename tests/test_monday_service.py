import json

import httpx
import pytest

from wellspring.config import BoardColumnConfig
from wellspring.services.monday_service import GeodeAuthorDetails, MondayService, normalize_group_title


class FakePaymentsBoard:
    """Minimal Monday.com GraphQL responder for the Payments board"""

    def __init__(self):
        self.groups = [{"id": "grp_la", "title": "Louisiana"}, {"id": "grp_nm", "title": "New Mexico"}]
        self.items = []
        self.group_fetches = 0
        self.requests = []
        self.items_status = 200
        self.null_create = False
        self._paged_group = None

    def _page(self, items: list, offset: int, limit: int) -> dict:
        end = offset + limit
        return {"cursor": str(end) if end < len(items) else None, "items": items[offset:end]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        query = payload["query"]
        variables = payload["variables"]

        if "items_page" in query and self.items_status != 200:
            return httpx.Response(self.items_status, text="Bad Gateway")
        if "next_items_page" in query:
            page = self._page(self.items_in(self._paged_group), int(variables["cursor"]), variables["limit"])
            return httpx.Response(200, json={"data": {"next_items_page": page}})
        if "items_page" in query:
            self._paged_group = variables["groupId"]
            page = self._page(self.items_in(self._paged_group), 0, variables["limit"])
            return httpx.Response(200, json={"data": {"boards": [{"groups": [{"items_page": page}]}]}})
        if "groups" in query:
            self.group_fetches += 1
            return httpx.Response(200, json={"data": {"boards": [{"groups": self.groups}]}})
        if "create_item" in query:
            if self.null_create:
                return httpx.Response(200, json={"data": {"create_item": None}})
            item = {"id": str(100 + len(self.items)), "name": variables["itemName"], "group": {"id": variables["groupId"]}}
            self.items.append(item)
            return httpx.Response(200, json={"data": {"create_item": {"id": item["id"], "name": item["name"]}}})
        if "change_column_value" in query:
            return httpx.Response(200, json={"data": {"change_column_value": {"id": variables["itemId"]}}})
        if "create_update" in query:
            return httpx.Response(200, json={"errors": [{"message": "Item not found"}]})
        return httpx.Response(400)

    def items_in(self, group_id: str) -> list:
        return [{"id": i["id"], "name": i["name"]} for i in self.items if i["group"]["id"] == group_id]

    def names_in(self, group_id: str) -> list:
        return [i["name"] for i in self.items_in(group_id)]


def author(name="Jane Smith", state="louisiana"):
    return GeodeAuthorDetails(
        name=name,
        email="jane@example.edu",
        state=state,
        chapter_type="ch6_policy",
        chapter_title="Policy",
        chapter_num="6",
        contract_signed_date="2026-01-05",
        grant_amount=5000.0,
    )


def monday_for(board: FakePaymentsBoard) -> MondayService:
    return MondayService(api_token="test-token", board_id="5640622226", transport=httpx.MockTransport(board))


def test_normalize_group_title():
    assert normalize_group_title("New Mexico") == "new_mexico"
    assert normalize_group_title("  Louisiana ") == "louisiana"


@pytest.mark.anyio
async def test_group_ids_are_cached_until_cleared():
    board = FakePaymentsBoard()
    monday = monday_for(board)

    assert await monday.get_state_group_ids() == {"louisiana": "grp_la", "new_mexico": "grp_nm"}
    await monday.get_state_group_ids()
    assert board.group_fetches == 1

    monday.clear_state_group_cache()
    await monday.get_state_group_ids()
    assert board.group_fetches == 2


@pytest.mark.anyio
async def test_upsert_is_idempotent():
    board = FakePaymentsBoard()
    monday = monday_for(board)

    first = await monday.upsert_author_in_payments_board(author())
    second = await monday.upsert_author_in_payments_board(author(name="  jane smith "))

    assert first == {"success": True, "itemId": "100", "created": True}
    assert second == {"success": True, "itemId": "100", "created": False}
    assert len(board.items) == 1

    create = next(r for r in board.requests if "create_item" in r["query"])
    columns = json.loads(create["variables"]["columnValues"])
    assert columns["email"] == {"email": "jane@example.edu", "text": "jane@example.edu"}
    assert columns["text"] == "Ch 6 - Policy"
    assert columns["date"] == {"date": "2026-01-05"}
    assert columns["numbers"] == 5000.0


@pytest.mark.anyio
async def test_same_name_in_another_group_is_a_different_author():
    board = FakePaymentsBoard()
    board.items.append({"id": "55", "name": "Jane Smith", "group": {"id": "grp_nm"}})
    monday = monday_for(board)

    assert await monday.find_author_in_payments_board("louisiana", "Jane Smith") == {"exists": False}


@pytest.mark.anyio
async def test_missing_state_group_is_reported():
    monday = monday_for(FakePaymentsBoard())
    result = await monday.add_author_to_payments_board(author(state="oregon"))

    assert result["success"] is False
    assert "oregon" in result["error"]
    assert "louisiana" in result["error"]


@pytest.mark.anyio
async def test_milestone_uses_configured_column():
    board = FakePaymentsBoard()
    monday = monday_for(board)

    assert await monday.set_payment_milestone("100", "distribution1") == {"success": True}
    variables = board.requests[-1]["variables"]
    assert variables["columnId"] == "checkbox__4"
    assert json.loads(variables["value"]) == {"checked": "true"}

    await monday.update_author_payment_milestone("100", "date", "2026-02-01")
    assert json.loads(board.requests[-1]["variables"]["value"]) == {"date": "2026-02-01"}


@pytest.mark.anyio
async def test_graphql_errors_become_failed_results():
    monday = monday_for(FakePaymentsBoard())
    result = await monday.add_comment("100", "hello")

    assert result["success"] is False
    assert "Item not found" in result["error"]


@pytest.mark.anyio
async def test_missing_token():
    monday = MondayService(api_token="", transport=httpx.MockTransport(FakePaymentsBoard()))

    assert monday.is_configured() is False
    result = await monday.add_comment("100", "hello")
    assert result == {"success": False, "error": "MONDAY_API_TOKEN is not set"}


@pytest.mark.anyio
async def test_failed_lookup_does_not_create_a_duplicate():
    board = FakePaymentsBoard()
    board.items.append({"id": "55", "name": "Jane Smith", "group": {"id": "grp_la"}})
    board.items_status = 502
    monday = monday_for(board)

    lookup = await monday.find_author_in_payments_board("louisiana", "Jane Smith")
    assert lookup["exists"] is False
    assert "502" in lookup["error"]

    result = await monday.upsert_author_in_payments_board(author())

    assert result["success"] is False
    assert "502" in result["error"]
    assert board.names_in("grp_la") == ["Jane Smith"]
    assert not any("create_item" in r["query"] for r in board.requests)


@pytest.mark.anyio
async def test_lookup_follows_the_items_cursor():
    board = FakePaymentsBoard()
    for n in range(5):
        board.items.append({"id": str(n), "name": f"Author {n}", "group": {"id": "grp_la"}})
    board.items.append({"id": "77", "name": "Jane Smith", "group": {"id": "grp_la"}})
    monday = monday_for(board)
    monday.items_page_limit = 2

    result = await monday.upsert_author_in_payments_board(author())

    assert result == {"success": True, "itemId": "77", "created": False}
    assert sum("next_items_page" in r["query"] for r in board.requests) == 2
    assert board.names_in("grp_la").count("Jane Smith") == 1


@pytest.mark.anyio
async def test_upsert_without_state_group_creates_nothing():
    board = FakePaymentsBoard()
    monday = monday_for(board)

    result = await monday.upsert_author_in_payments_board(author(state="oregon"))

    assert result["success"] is False
    assert 'No group found for state "oregon"' in result["error"]
    assert board.items == []


@pytest.mark.anyio
async def test_create_without_returned_item_is_a_failure():
    board = FakePaymentsBoard()
    board.null_create = True
    monday = monday_for(board)

    result = await monday.add_author_to_payments_board(author())

    assert result == {"success": False, "error": "Monday.com did not return the created item"}


@pytest.mark.anyio
async def test_author_columns_follow_board_configuration():
    board = FakePaymentsBoard()
    columns = BoardColumnConfig(authorEmail="email_7", chapterInfo="text_2", contractSignedDate="date_9")
    monday = MondayService(
        api_token="test-token", board_id="5640622226", column_config=columns, transport=httpx.MockTransport(board)
    )

    await monday.add_author_to_payments_board(author())

    create = next(r for r in board.requests if "create_item" in r["query"])
    assert json.loads(create["variables"]["columnValues"]) == {
        "email_7": {"email": "jane@example.edu", "text": "jane@example.edu"},
        "text_2": "Ch 6 - Policy",
        "date_9": {"date": "2026-01-05"},
        "numbers": 5000.0,
    }
