# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class ActionKind(str, Enum):
    REQUEST = "request"
    PAYOUT = "payout"


class JournalKind(str, Enum):
    MEMBER_REQUEST = "member_request"
    TEAMLEAD_NOTICE = "teamlead_notice"
    BIRTHDAY_WISH = "birthday_wish"
    PAYOUT_REMINDER = "payout_reminder"


class Stage(str, Enum):
    """Onboarding conversation stages, in order."""
    AWAITING_NAME = "awaiting_name"
    AWAITING_BIRTHDAY = "awaiting_birthday"
    AWAITING_PHONE = "awaiting_phone"
    AWAITING_TEAM = "awaiting_team"


# ── Outbound controls ──

class Button(BaseModel):
    label: str
    token: str = Field(..., max_length=64)


class InlineKeyboard(BaseModel):
    """Buttons attached to a message; activation yields ``ControlActivated``."""
    rows: list[list[Button]]

    @classmethod
    def single(cls, label: str, token: str) -> "InlineKeyboard":
        return cls(rows=[[Button(label=label, token=token)]])


class ContactRequest(BaseModel):
    """One-time keyboard asking the user to share their own contact."""
    label: str


class RemoveKeyboard(BaseModel):
    pass


Control = Union[InlineKeyboard, ContactRequest, RemoveKeyboard]


class MessageHandle(BaseModel):
    chat_id: int
    message_id: int


# ── Inbound events ──

class Contact(BaseModel):
    phone_number: str
    owner_id: Optional[int] = None


class TextMessage(BaseModel):
    actor_id: int
    chat_id: int
    text: str = ""
    contact: Optional[Contact] = None


class ControlActivated(BaseModel):
    actor_id: int
    chat_id: int
    token: str
    origin: Optional[MessageHandle] = None
    callback_id: Optional[str] = None


# ── Pass outcomes ──

class PassResult(BaseModel):
    """Outcome of one scan/fan-out/notify pass."""
    kind: str
    affected: int = 0
    failed: int = 0
    gaps: list[dict] = Field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return self.affected == 0 and self.failed == 0 and not self.gaps


class ConfirmationOutcome(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class WishPassResult(PassResult):
    """Birthday-wish pass; lists today's obligations still lacking a payout."""
    pending_payouts: list[dict] = Field(default_factory=list)
