"""SQLAlchemy ORM models.

Containment hierarchy: Client -> Account -> Website -> Campaign -> TimeEntry.
Every child row carries ON DELETE CASCADE so deleting a client leaves no
orphaned accounts, websites, campaigns, time entries or change-log rows.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    TEXT,
    TIMESTAMP,
    BigInteger,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
ROLE_CONTRIBUTOR = "contributor"
ROLE_TENANT = "tenant"
ROLES = (ROLE_OWNER, ROLE_MANAGER, ROLE_CONTRIBUTOR, ROLE_TENANT)
STAFF_ROLES = (ROLE_OWNER, ROLE_MANAGER, ROLE_CONTRIBUTOR)

USER_STATUSES = ("active", "invited", "inactive")
CLIENT_STATUSES = ("active", "inactive")
WEBSITE_STATUSES = ("active", "inactive")
CAMPAIGN_STATUSES = ("active", "paused", "completed")

ENTITY_WEBSITE = "website"
ENTITY_CAMPAIGN = "campaign"
CHANGE_LOG_ENTITY_TYPES = (ENTITY_WEBSITE, ENTITY_CAMPAIGN)
ENTRY_MANUAL = "manual"
ENTRY_SYSTEM = "system"


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AgencySettings(Base):
    """Single-row agency branding settings."""

    __tablename__ = "agency_settings"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    agency_name: Mapped[str] = mapped_column(String(100), nullable=False, default="My Agency")
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class Client(Base):
    """A client organization managed by the agency (tenant root)."""

    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    accounts: Mapped[list["Account"]] = relationship(
        back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )


class User(Base):
    """Agency staff or client-portal user.

    invite_token / reset_token hold sha256 hex digests only; the plaintext
    tokens are handed out once and never stored.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="invited")
    client_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    google_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    invite_token: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    invite_expires: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    reset_token: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    reset_expires: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    client: Mapped[Optional[Client]] = relationship()

    __table_args__ = (
        Index("idx_users_invite_token", "invite_token"),
        Index("idx_users_reset_token", "reset_token"),
        Index("idx_users_google_id", "google_id"),
    )


class ClientManager(Base):
    """Manager-to-client assignment."""

    __tablename__ = "client_managers"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (UniqueConstraint("client_id", "user_id", name="uq_client_managers_pair"),)


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    client: Mapped[Client] = relationship(back_populates="accounts")
    websites: Mapped[list["Website"]] = relationship(
        back_populates="account", cascade="all, delete-orphan", passive_deletes=True
    )


class Website(Base):
    __tablename__ = "websites"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    account_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    platform: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    account: Mapped[Account] = relationship(back_populates="websites")
    campaigns: Mapped[list["Campaign"]] = relationship(
        back_populates="website", cascade="all, delete-orphan", passive_deletes=True
    )


class Campaign(Base):
    """Campaign on a website. Status: active <-> paused -> completed."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    website_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    channel_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    channel_platform: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    website: Mapped[Website] = relationship(back_populates="campaigns")
    client: Mapped[Client] = relationship()


class CampaignWorker(Base):
    """Contributor-to-campaign assignment."""

    __tablename__ = "campaign_workers"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (UniqueConstraint("campaign_id", "user_id", name="uq_campaign_workers_pair"),)


class TimeEntry(Base):
    """Hours logged against a campaign.

    client_id and website_id are copied from the campaign at creation time.
    """

    __tablename__ = "time_entries"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    # A user with logged hours cannot be deleted, only deactivated
    user_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    campaign_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    website_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    description: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    user: Mapped[User] = relationship()
    campaign: Mapped[Campaign] = relationship()
    client: Mapped[Client] = relationship()
    website: Mapped[Website] = relationship()

    __table_args__ = (
        Index("idx_time_entries_user_id", "user_id"),
        Index("idx_time_entries_client_id", "client_id"),
        Index("idx_time_entries_campaign_id", "campaign_id"),
        Index("idx_time_entries_date", "date"),
    )


class ChangeLogEntry(Base):
    """Append-only audit record for a website or campaign.

    user_id is NULL for system entries written by mutation handlers.
    """

    __tablename__ = "change_log_entries"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_uuid)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    client_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    author: Mapped[Optional[User]] = relationship()
    client: Mapped[Client] = relationship()

    __table_args__ = (
        Index("idx_change_log_entity", "entity_type", "entity_id"),
        Index("idx_change_log_client_id", "client_id"),
    )


class Notification(Base):
    """Per-user notification.

    Integer id so insertion order breaks created_at ties when pruning.
    """

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(TEXT, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_notifications_user_created", "user_id", "created_at"),)
