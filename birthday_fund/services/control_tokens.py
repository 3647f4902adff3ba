# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Control-token wire format carried in button callback data.

    req:<action_id>                  confirm a contribution request
    pay:<action_id>:<obligation_id>  confirm the payout, closing the obligation
    team:<team_id>                   onboarding team selection
    admin:<trigger_name>             manual trigger from the admin panel
"""

import re
from typing import Union

from pydantic import BaseModel

from birthday_fund.core.errors import InvalidControlToken

MAX_TOKEN_BYTES = 64

_PATTERNS = {
    "req": re.compile(r"^req:(\d+)$"),
    "pay": re.compile(r"^pay:(\d+):(\d+)$"),
    "team": re.compile(r"^team:(\d+)$"),
    "admin": re.compile(r"^admin:([a-z_]+)$"),
}


class ConfirmRequest(BaseModel):
    action_id: int

    def encode(self) -> str:
        return f"req:{self.action_id}"


class ConfirmPayout(BaseModel):
    action_id: int
    obligation_id: int

    def encode(self) -> str:
        return f"pay:{self.action_id}:{self.obligation_id}"


class SelectTeam(BaseModel):
    team_id: int

    def encode(self) -> str:
        return f"team:{self.team_id}"


class AdminTrigger(BaseModel):
    name: str

    def encode(self) -> str:
        return f"admin:{self.name}"


ControlToken = Union[ConfirmRequest, ConfirmPayout, SelectTeam, AdminTrigger]


def parse_token(raw: str) -> ControlToken:
    if not raw or len(raw.encode()) > MAX_TOKEN_BYTES:
        raise InvalidControlToken(f"Unrecognised control token {raw!r}")
    tag = raw.split(":", 1)[0]
    pattern = _PATTERNS.get(tag)
    match = pattern.match(raw) if pattern else None
    if match is None:
        raise InvalidControlToken(f"Unrecognised control token {raw!r}")
    if tag == "req":
        return ConfirmRequest(action_id=int(match.group(1)))
    if tag == "pay":
        return ConfirmPayout(action_id=int(match.group(1)), obligation_id=int(match.group(2)))
    if tag == "team":
        return SelectTeam(team_id=int(match.group(1)))
    return AdminTrigger(name=match.group(1))
