# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Shared fixtures: a fresh in-memory database per test and a recording messenger."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TELEGRAM_BOT_TOKEN"] = "test-token"
os.environ["API_KEYS"] = "test-key"
os.environ["TIMEZONE"] = "UTC"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date
from itertools import count

import pytest

from birthday_fund.core.database import build_engine
from birthday_fund.core.errors import TransportError
from birthday_fund.core.schema import create_schema
from birthday_fund.models.domain import MessageHandle
from birthday_fund.repositories import (
    ActionRepository,
    AdminRepository,
    JournalRepository,
    MemberRepository,
    ObligationRepository,
    TeamRepository,
)


class FakeMessenger:
    """Stands in for TelegramClient; chats in ``failing`` raise TransportError."""

    def __init__(self):
        self.sent = []
        self.cleared = []
        self.answered = []
        self.failing = set()
        self._ids = count(1)

    def _send(self, chat_id, text, control=None):
        if chat_id in self.failing:
            raise TransportError(f"chat {chat_id} unreachable")
        handle = MessageHandle(chat_id=chat_id, message_id=next(self._ids))
        self.sent.append({"chat_id": chat_id, "text": text, "control": control, "handle": handle})
        return handle

    def send_text(self, chat_id, text):
        return self._send(chat_id, text)

    def send_text_with_control(self, chat_id, text, control):
        return self._send(chat_id, text, control)

    def clear_controls(self, handle):
        self.cleared.append(handle)

    def answer_control(self, callback_id, text=None):
        self.answered.append(callback_id)

    def texts_to(self, chat_id):
        return [m["text"] for m in self.sent if m["chat_id"] == chat_id]

    def tokens_to(self, chat_id):
        return [
            button.token
            for m in self.sent if m["chat_id"] == chat_id and hasattr(m["control"], "rows")
            for row in m["control"].rows for button in row
        ]


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def teams(engine):
    return TeamRepository(engine)


@pytest.fixture
def members(engine):
    return MemberRepository(engine)


@pytest.fixture
def obligations(engine):
    return ObligationRepository(engine)


@pytest.fixture
def actions(engine):
    return ActionRepository(engine)


@pytest.fixture
def journal(engine):
    return JournalRepository(engine)


@pytest.fixture
def admins(engine):
    return AdminRepository(engine)


@pytest.fixture
def office(teams, members):
    """Two active teams with leads, one inactive team, five members.

    Birthdays: Bob 20.10, Carol 01.01, Dan 29.02, Eve 17.10 (no lead on her team).
    """
    core = teams.create_team("Core")
    infra = teams.create_team("Infra")
    retired = teams.create_team("Retired", is_active=False)
    people = {
        "alice": members.create_member("Alice", date(1990, 3, 3), "+100", core["id"], 1001),
        "bob": members.create_member("Bob", date(1991, 10, 20), "+200", core["id"], 1002),
        "carol": members.create_member("Carol", date(1988, 1, 1), "+300", core["id"], 1003),
        "dan": members.create_member("Dan", date(1996, 2, 29), "+400", core["id"], 1004),
        "eve": members.create_member("Eve", date(1993, 10, 17), "+500", infra["id"], 1005),
    }
    teams.assign_lead(core["id"], people["alice"]["id"], "+100")
    return {"core": core, "infra": infra, "retired": retired, **people}
