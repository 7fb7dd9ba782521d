"""Pydantic schemas for API requests and responses."""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Errors / health
# ============================================================================


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors."""

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="Opaque identifier of this occurrence")


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Users / auth
# ============================================================================


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: str
    avatar_url: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: str
    status: str
    client_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class UserDetail(UserOut):
    client_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthTokenResponse(BaseModel):
    token: str
    user: UserOut
    message: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str


class InviteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=150)
    role: str
    client_id: Optional[str] = None


class InviteResponse(BaseModel):
    message: str
    user: UserOut
    invite_link: str
    invite_token: str
    expires_at: datetime


class AcceptInviteRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=150)
    role: str
    password: Optional[str] = None
    client_id: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=150)
    role: Optional[str] = None
    client_id: Optional[str] = None
    avatar_url: Optional[str] = None
    password: Optional[str] = None


class UserStatusUpdate(BaseModel):
    status: str


# ============================================================================
# Clients / accounts / websites / campaigns
# ============================================================================


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None
    logo_url: Optional[str] = None
    notes: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None
    logo_url: Optional[str] = None
    notes: Optional[str] = None


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    status: str
    logo_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ClientListItem(ClientOut):
    account_count: int = 0
    website_count: int = 0
    campaign_count: int = 0


class ClientDetail(ClientOut):
    managers: list[UserSummary] = Field(default_factory=list)


class AssignUserRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: str
    name: str
    type: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class WebsiteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    url: Optional[str] = Field(None, max_length=255)
    platform: Optional[str] = Field(None, max_length=50)
    status: Optional[str] = None
    notes: Optional[str] = None


class WebsiteUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    url: Optional[str] = Field(None, max_length=255)
    platform: Optional[str] = Field(None, max_length=50)
    status: Optional[str] = None
    notes: Optional[str] = None


class WebsiteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    account_id: str
    client_id: str
    name: str
    url: Optional[str] = None
    platform: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    channel_category: Optional[str] = Field(None, max_length=100)
    channel_platform: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    channel_category: Optional[str] = Field(None, max_length=100)
    channel_platform: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    website_id: str
    client_id: str
    name: str
    channel_category: Optional[str] = None
    channel_platform: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CampaignDetail(CampaignOut):
    website_name: Optional[str] = None
    client_name: Optional[str] = None
    workers: list[UserSummary] = Field(default_factory=list)


# ============================================================================
# Time entries
# ============================================================================


class TimeEntryCreate(BaseModel):
    campaign_id: str = Field(..., min_length=1)
    date: dt.date
    hours: Decimal
    description: str


class TimeEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    hours: Optional[Decimal] = None
    description: Optional[str] = None


class TimeEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    campaign_id: str
    client_id: str
    website_id: str
    date: dt.date
    hours: float
    description: str
    created_at: datetime
    updated_at: datetime
    worker_name: Optional[str] = None
    client_name: Optional[str] = None
    campaign_name: Optional[str] = None
    website_name: Optional[str] = None


class TimeEntryList(BaseModel):
    entries: list[TimeEntryOut]
    total_hours: float


# ============================================================================
# Change log / notifications
# ============================================================================


class ChangeLogCreate(BaseModel):
    entity_type: str
    entity_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1)


class ChangeLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_type: str
    entity_id: str
    client_id: str
    user_id: Optional[str] = None
    entry_type: str
    title: str
    body: str
    created_at: datetime
    author_name: Optional[str] = None
    client_name: Optional[str] = None


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    message: str
    read: bool
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    created_at: datetime


class NotificationList(BaseModel):
    notifications: list[NotificationOut]
    unread_count: int


# ============================================================================
# Reports
# ============================================================================


class ClientHours(BaseModel):
    client_id: str
    client_name: str
    hours: float


class CampaignHours(BaseModel):
    campaign_id: str
    campaign_name: str
    hours: float


class EmployeeHoursRow(BaseModel):
    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    total_hours: float
    client_breakdown: list[ClientHours]


class ClientHoursRow(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    total_hours: float
    campaign_breakdown: list[CampaignHours]


class CampaignHoursRow(BaseModel):
    id: str
    name: str
    channel_category: Optional[str] = None
    channel_platform: Optional[str] = None
    status: str
    client_name: str
    total_hours: float


class HoursReport(BaseModel):
    start_date: date
    end_date: date


class EmployeeHoursReport(HoursReport):
    data: list[EmployeeHoursRow]


class ClientHoursReport(HoursReport):
    data: list[ClientHoursRow]


class CampaignHoursReport(HoursReport):
    data: list[CampaignHoursRow]


class MyHoursEntry(BaseModel):
    date: dt.date
    hours: float
    description: str
    client_name: str
    campaign_name: str


class MyHoursReport(BaseModel):
    start_date: date
    end_date: date
    total_hours: float
    entries: list[MyHoursEntry]


class ClientSummaryCampaign(BaseModel):
    id: str
    name: str
    status: str
    channel_category: Optional[str] = None
    channel_platform: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_hours: Optional[float] = None


class TeamMember(BaseModel):
    id: str
    name: str
    role: str
    avatar_url: Optional[str] = None


class ClientSummary(BaseModel):
    start_date: date
    end_date: date
    total_hours: float
    hours_by_campaign: list[ClientSummaryCampaign]
    active_campaigns: list[ClientSummaryCampaign]
    team: list[TeamMember]


class DashboardStats(BaseModel):
    total_clients: int
    active_campaigns: int
    hours_this_week: float


# ============================================================================
# Settings
# ============================================================================


class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    agency_name: str
    logo_url: Optional[str] = None
    updated_at: datetime


class SettingsUpdate(BaseModel):
    agency_name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)
