"""Pytest configuration and fixtures."""

import os

# Plain-text logs and cheap bcrypt for the whole test session
os.environ["JSON_LOGS"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("MAIL_FROM", None)
os.environ.pop("GOOGLE_CLIENT_ID", None)
os.environ.pop("GOOGLE_CLIENT_SECRET", None)

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from agency_api.auth.credentials import issue_access_token
from agency_api.auth.passwords import hash_password
from agency_api.db.models import (
    Account,
    Base,
    Campaign,
    CampaignWorker,
    Client,
    ClientManager,
    TimeEntry,
    User,
    Website,
)
from agency_api.main import create_app

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="function")
def app():
    """Fresh application bound to its own in-memory SQLite database."""
    application = create_app("sqlite://")
    Base.metadata.create_all(application.state.engine)
    try:
        yield application
    finally:
        Base.metadata.drop_all(application.state.engine)
        application.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def db_session(app) -> Session:
    """Session on the same database the application uses."""
    session = app.state.sessionmaker()
    try:
        yield session
    finally:
        session.close()


class Factory:
    """Builds committed rows for tests."""

    def __init__(self, db: Session):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        return row

    def user(
        self,
        role: str = "owner",
        name: Optional[str] = None,
        email: Optional[str] = None,
        status: str = "active",
        password: Optional[str] = DEFAULT_PASSWORD,
        client: Optional[Client] = None,
    ) -> User:
        n = self._next()
        return self._save(
            User(
                name=name or f"{role.capitalize()} {n}",
                email=email or f"{role}{n}@agency.test",
                role=role,
                status=status,
                password_hash=hash_password(password) if password else None,
                client_id=client.id if client else None,
            )
        )

    def client(self, name: Optional[str] = None) -> Client:
        n = self._next()
        name = name or f"Client {n}"
        return self._save(Client(name=name, slug=f"{name.lower().replace(' ', '-')}-{n}"))

    def account(self, client: Client, name: str = "Main Account") -> Account:
        return self._save(Account(client_id=client.id, name=name, type="ads"))

    def website(self, account: Account, name: str = "Main Site") -> Website:
        return self._save(
            Website(account_id=account.id, client_id=account.client_id, name=name, url="https://example.test")
        )

    def campaign(self, website: Website, name: str = "Spring Launch", status: str = "active") -> Campaign:
        return self._save(
            Campaign(
                website_id=website.id,
                client_id=website.client_id,
                name=name,
                channel_category="Paid Search",
                channel_platform="Google Ads",
                status=status,
            )
        )

    def campaign_tree(self, client: Optional[Client] = None, status: str = "active") -> Campaign:
        """Client -> account -> website -> campaign in one call."""
        client = client or self.client()
        return self.campaign(self.website(self.account(client)), status=status)

    def assign_manager(self, client: Client, user: User) -> None:
        self._save(ClientManager(client_id=client.id, user_id=user.id))

    def assign_worker(self, campaign: Campaign, user: User) -> None:
        self._save(CampaignWorker(campaign_id=campaign.id, user_id=user.id))

    def time_entry(
        self,
        user: User,
        campaign: Campaign,
        hours: str = "2.00",
        entry_date: Optional[date] = None,
        description: str = "Keyword research and bid review",
    ) -> TimeEntry:
        return self._save(
            TimeEntry(
                user_id=user.id,
                campaign_id=campaign.id,
                client_id=campaign.client_id,
                website_id=campaign.website_id,
                date=entry_date or date.today(),
                hours=Decimal(hours),
                description=description,
            )
        )


@pytest.fixture
def factory(db_session: Session) -> Factory:
    return Factory(db_session)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(user)}"}


@pytest.fixture
def owner(factory: Factory) -> User:
    return factory.user("owner", name="Olivia Owner", email="owner@agency.test")


@pytest.fixture
def owner_headers(owner: User) -> dict[str, str]:
    return auth_headers(owner)


@pytest.fixture
def headers_for():
    """Bearer headers for any user row."""
    return auth_headers
