# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
Used ONLY at the controller (HTTP) boundary.
"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


# ── Teams ──

class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True


class TeamResponse(BaseModel):
    id: int
    name: str
    is_active: bool


# ── Members ──

class MemberResponse(BaseModel):
    id: int
    name: str
    birthday: date
    phone_number: str
    team_id: Optional[int] = None
    team_name: Optional[str] = None
    chat_id: int
    user_id: Optional[int] = None


class UpcomingBirthday(BaseModel):
    name: str
    team_name: Optional[str] = None
    next_birthday: date


# ── Team leads ──

class LeadCreateRequest(BaseModel):
    team_id: int
    member_id: int
    phone_number: str = Field(..., min_length=1, max_length=32)


class LeadUpdateRequest(BaseModel):
    phone_number: str = Field(..., min_length=1, max_length=32)


class LeadResponse(BaseModel):
    id: int
    team_id: int
    team_name: str
    member_id: int
    member_name: str
    member_chat_id: int
    phone_number: str


# ── Admins ──

class AdminCreateRequest(BaseModel):
    chat_id: int
    name: Optional[str] = Field(default=None, max_length=255)


class AdminResponse(BaseModel):
    chat_id: int
    name: Optional[str] = None


# ── Obligations / actions / journal ──

class ActionResponse(BaseModel):
    id: int
    obligation_id: int
    member_id: int
    member_name: str
    kind: str
    is_done: bool


class ObligationResponse(BaseModel):
    id: int
    member_id: int
    member_name: str
    year: int
    members_notified: bool
    teamlead_notified: bool
    money_transferred: bool
    created_at: Optional[str] = None


class ObligationDetail(ObligationResponse):
    actions: list[ActionResponse] = []


class JournalEntryResponse(BaseModel):
    id: int
    kind: str
    recipient: int
    message_handle: int
    content: str
    control_token: Optional[str] = None
    action_id: Optional[int] = None
    obligation_id: Optional[int] = None
    sent_at: Optional[str] = None
    confirmation_token: Optional[str] = None
    confirmed_at: Optional[str] = None


# ── Triggers ──

class TriggerResponse(BaseModel):
    trigger: str
    nothing_to_do: bool
    affected: int
    failed: int
    gaps: list[dict]


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    request_id: Optional[str] = None
