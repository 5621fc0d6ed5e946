"""Shared fixtures: in-memory database, fake integration clients and an ASGI client"""

from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wellspring.database import Base, get_db
from wellspring.dependencies import (
    get_drive_service,
    get_file_reader,
    get_gmail_service,
    get_monday_service,
    get_slack_service,
)
from wellspring.main import app
from wellspring.services.file_access import NullFileReader


class StaticCredentials:
    def __init__(self, token: Optional[str] = "test-token", refreshed: Optional[str] = "refreshed-token"):
        self.token = token
        self.refreshed = refreshed
        self.refresh_calls = 0

    async def get_access_token(self):
        return self.token

    async def refresh_access_token_now(self):
        self.refresh_calls += 1
        return self.refreshed


class FakeGmail:
    def __init__(self, connected: bool = True):
        self.connected = connected
        self.drafts = []
        self.attachments = {}
        self.search_results = {}
        self.searches = []

    async def is_connected(self):
        return self.connected

    async def create_draft(self, to, subject, body, cc=None, attachment=None):
        self.drafts.append({"to": to, "subject": subject, "body": body, "cc": cc, "attachment": attachment})
        return {"success": True, "draftId": f"draft-{len(self.drafts)}"}

    async def create_draft_with_attachment(self, to, subject, body, attachment, cc=None):
        return await self.create_draft(to, subject, body, cc=cc, attachment=attachment)

    async def get_attachment(self, message_id, attachment_id):
        return self.attachments[(message_id, attachment_id)]

    async def find_email_with_attachment(self, query, filename=None, document_only=False):
        self.searches.append(query)
        return self.search_results.get(query, {"message": None, "attachment": None})


class FakeMonday:
    def __init__(self, configured: bool = True):
        self.configured = configured
        self.fail_comments = False
        self.comments = []
        self.milestones = []
        self.authors = {}

    def is_configured(self):
        return self.configured

    async def add_comment(self, item_id, body):
        if self.fail_comments:
            return {"success": False, "error": "Monday.com API error: 500"}
        self.comments.append((item_id, body))
        return {"success": True, "updateId": str(len(self.comments))}

    async def set_payment_milestone(self, item_id, milestone, value=True):
        self.milestones.append((item_id, milestone, value))
        return {"success": True}

    async def upsert_author_in_payments_board(self, author):
        key = (author.state, author.name.lower().strip())
        if key in self.authors:
            return {"success": True, "itemId": self.authors[key], "created": False}
        item_id = str(9000 + len(self.authors))
        self.authors[key] = item_id
        return {"success": True, "itemId": item_id, "created": True}

    def clear_state_group_cache(self):
        pass


class FakeSlack:
    def __init__(self, users: Optional[dict] = None):
        self.users = users or {}
        self.posts = []
        self.direct_messages = []

    def is_configured(self):
        return True

    async def post_message(self, channel, text):
        self.posts.append((channel, text))
        return {"success": True}

    async def send_direct_message(self, user_id, text):
        self.direct_messages.append((user_id, text))
        return {"success": True}

    async def lookup_user_by_email(self, email):
        return self.users.get(email)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def credentials():
    return StaticCredentials()


@pytest.fixture
def fake_gmail():
    return FakeGmail()


@pytest.fixture
def fake_monday():
    return FakeMonday()


@pytest.fixture
def fake_slack():
    return FakeSlack()


@pytest.fixture
async def async_client(db_session, fake_gmail, fake_monday, fake_slack):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_gmail_service] = lambda: fake_gmail
    app.dependency_overrides[get_monday_service] = lambda: fake_monday
    app.dependency_overrides[get_slack_service] = lambda: fake_slack
    app.dependency_overrides[get_drive_service] = lambda: None
    app.dependency_overrides[get_file_reader] = lambda: NullFileReader()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
