# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Onboarding conversation — stage transitions, re-prompts, team selection."""
import threading
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from birthday_fund.core.errors import InvalidInput
from birthday_fund.models.domain import (
    Contact,
    ContactRequest,
    ControlActivated,
    MessageHandle,
    Stage,
    TextMessage,
)
from birthday_fund.services import messages
from birthday_fund.services.conversation_store import ConversationStore
from birthday_fund.services.onboarding import OnboardingService, parse_birthday

ACTOR = 555
OTHER = 999


@pytest.fixture
def store():
    return ConversationStore(idle_seconds=3600)


@pytest.fixture
def onboarding(store, teams, members, messenger):
    return OnboardingService(store, teams, members, messenger)


@pytest.fixture
def catalogue(teams):
    return {
        "platform": teams.create_team("Platform", team_id=7),
        "legacy": teams.create_team("Legacy", team_id=8),
    }


def say(text="", contact=None):
    return TextMessage(actor_id=ACTOR, chat_id=ACTOR, text=text, contact=contact)


def press(team_id):
    return ControlActivated(
        actor_id=ACTOR, chat_id=ACTOR, token=f"team:{team_id}",
        origin=MessageHandle(chat_id=ACTOR, message_id=42), callback_id="cb-1",
    )


class TestParseBirthday:
    def test_accepts_day_month_year(self):
        assert parse_birthday(" 15.06.1995 ") == date(1995, 6, 15)

    @pytest.mark.parametrize("raw", ["31.02.2000", "1995-06-15", "15/06/1995", ""])
    def test_rejects_invalid(self, raw):
        with pytest.raises(InvalidInput):
            parse_birthday(raw)


class TestAnnRegisters:
    def test_full_scenario(self, onboarding, teams, members, messenger, store, catalogue):
        onboarding.start(say("/start"))
        assert onboarding.stage_of(ACTOR) is Stage.AWAITING_NAME

        assert onboarding.handle_text(say("Ann")) is Stage.AWAITING_BIRTHDAY

        assert onboarding.handle_text(say("31.02.2000")) is Stage.AWAITING_BIRTHDAY
        assert messenger.texts_to(ACTOR)[-1] == messages.BAD_BIRTHDAY

        assert onboarding.handle_text(say("15.06.1995")) is Stage.AWAITING_PHONE
        assert isinstance(messenger.sent[-1]["control"], ContactRequest)

        foreign = Contact(phone_number="+7000", owner_id=OTHER)
        assert onboarding.handle_text(say(contact=foreign)) is Stage.AWAITING_PHONE
        assert messenger.texts_to(ACTOR)[-1] == messages.PHONE_NOT_OWN

        own = Contact(phone_number="+7111", owner_id=ACTOR)
        assert onboarding.handle_text(say(contact=own)) is Stage.AWAITING_TEAM
        assert set(messenger.tokens_to(ACTOR)) >= {"team:7", "team:8"}

        teams.set_active(8, False)
        assert onboarding.select_team(press(8), 8) is None
        assert onboarding.stage_of(ACTOR) is Stage.AWAITING_TEAM
        assert messenger.texts_to(ACTOR)[-1] == messages.TEAM_INACTIVE
        assert members.list_members() == []

        member = onboarding.select_team(press(7), 7)
        assert member["name"] == "Ann"
        assert (member["birthday"].month, member["birthday"].day) == (6, 15)
        assert member["team_id"] == 7
        assert member["phone_number"] == "+7111"
        assert member["chat_id"] == ACTOR
        assert onboarding.stage_of(ACTOR) is None
        assert len(store) == 0
        assert messenger.texts_to(ACTOR)[-1] == messages.REGISTERED
        assert messenger.cleared == [MessageHandle(chat_id=ACTOR, message_id=42)]


class TestRePrompts:
    def _to_phone_stage(self, onboarding):
        onboarding.start(say("/start"))
        onboarding.handle_text(say("Ann"))
        onboarding.handle_text(say("15.06.1995"))

    def test_text_without_start(self, onboarding, messenger):
        assert onboarding.handle_text(say("hello")) is None
        assert messenger.texts_to(ACTOR) == [messages.NOT_STARTED]

    def test_blank_name(self, onboarding, messenger):
        onboarding.start(say("/start"))
        assert onboarding.handle_text(say("   ")) is Stage.AWAITING_NAME
        assert messenger.texts_to(ACTOR)[-1] == messages.EMPTY_NAME

    def test_typed_phone_is_not_a_contact(self, onboarding, messenger):
        self._to_phone_stage(onboarding)
        assert onboarding.handle_text(say("+7111")) is Stage.AWAITING_PHONE
        assert messenger.texts_to(ACTOR)[-1] == messages.PHONE_NOT_CONTACT

    def test_typed_team_reoffers_buttons(self, onboarding, messenger, catalogue):
        self._to_phone_stage(onboarding)
        onboarding.handle_text(say(contact=Contact(phone_number="+7111", owner_id=ACTOR)))
        assert onboarding.handle_text(say("Platform")) is Stage.AWAITING_TEAM
        assert messenger.texts_to(ACTOR)[-1] == messages.CHOOSE_TEAM

    def test_no_active_teams(self, onboarding, messenger):
        self._to_phone_stage(onboarding)
        onboarding.handle_text(say(contact=Contact(phone_number="+7111", owner_id=ACTOR)))
        assert messenger.texts_to(ACTOR)[-1] == messages.NO_TEAMS

    def test_team_press_outside_team_stage_ignored(self, onboarding, members, catalogue):
        onboarding.start(say("/start"))
        assert onboarding.select_team(press(7), 7) is None
        assert onboarding.stage_of(ACTOR) is Stage.AWAITING_NAME
        assert members.list_members() == []

    def test_restart_resets_progress(self, onboarding):
        self._to_phone_stage(onboarding)
        onboarding.start(say("/start"))
        assert onboarding.stage_of(ACTOR) is Stage.AWAITING_NAME

    def test_store_error_reoffers_teams(self, onboarding, members, messenger, catalogue):
        self._to_phone_stage(onboarding)
        onboarding.handle_text(say(contact=Contact(phone_number="+7111", owner_id=ACTOR)))
        boom = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(members, "create_member", side_effect=boom):
            assert onboarding.select_team(press(7), 7) is None
        assert onboarding.stage_of(ACTOR) is Stage.AWAITING_TEAM
        assert messenger.texts_to(ACTOR)[-1] == messages.REGISTRATION_FAILED
        assert "team:7" in messenger.tokens_to(ACTOR)
        assert onboarding.select_team(press(7), 7)["name"] == "Ann"


class TestConversationStore:
    def test_idle_conversations_evicted(self):
        now = [0.0]
        store = ConversationStore(idle_seconds=10, clock=lambda: now[0])
        store.start(ACTOR)
        now[0] = 5.0
        assert store.get(ACTOR) is not None
        now[0] = 20.0
        assert store.get(ACTOR) is None
        assert len(store) == 0

    def test_save_refreshes_idle_timer(self):
        now = [0.0]
        store = ConversationStore(idle_seconds=10, clock=lambda: now[0])
        conv = store.start(ACTOR)
        now[0] = 8.0
        store.save(conv)
        now[0] = 15.0
        assert store.get(ACTOR) is not None

    def test_actors_are_independent(self, store):
        store.start(1)
        store.start(2)
        store.drop(1)
        assert store.get(1) is None
        assert store.get(2) is not None

    def test_stale_save_does_not_undo_restart(self, store):
        store.start(ACTOR)
        turn = store.get(ACTOR)
        turn.name = "Ann"
        turn.stage = Stage.AWAITING_BIRTHDAY
        store.start(ACTOR)
        assert store.save(turn) is False
        assert store.get(ACTOR).stage is Stage.AWAITING_NAME

    def test_stale_save_does_not_revive_finished_conversation(self, store):
        conv = store.start(ACTOR)
        conv.stage = Stage.AWAITING_TEAM
        assert store.save(conv) is True
        turn = store.get(ACTOR)
        assert store.take(ACTOR, Stage.AWAITING_TEAM) is not None
        assert store.save(turn) is False
        assert store.get(ACTOR) is None

    def test_take_only_at_requested_stage(self, store):
        store.start(ACTOR)
        assert store.take(ACTOR, Stage.AWAITING_TEAM) is None
        assert store.get(ACTOR) is not None

    def test_restore_yields_to_newer_conversation(self, store):
        conv = store.start(ACTOR)
        conv.stage = Stage.AWAITING_TEAM
        store.save(conv)
        taken = store.take(ACTOR, Stage.AWAITING_TEAM)
        store.start(ACTOR)
        assert store.restore(taken) is False
        assert store.get(ACTOR).stage is Stage.AWAITING_NAME


class TestDuplicatedTeamPress:
    def _to_team_stage(self, onboarding):
        onboarding.start(say("/start"))
        onboarding.handle_text(say("Ann"))
        onboarding.handle_text(say("15.06.1995"))
        onboarding.handle_text(say(contact=Contact(phone_number="+7111", owner_id=ACTOR)))

    def test_second_delivery_while_first_is_saving(self, onboarding, members, messenger, catalogue):
        self._to_team_stage(onboarding)
        inserting, release = threading.Event(), threading.Event()
        real_create = members.create_member

        def slow_create(**kwargs):
            inserting.set()
            release.wait(timeout=10)
            return real_create(**kwargs)

        created = []
        with patch.object(members, "create_member", side_effect=slow_create):
            first = threading.Thread(target=lambda: created.append(onboarding.select_team(press(7), 7)))
            first.start()
            assert inserting.wait(timeout=10)
            assert onboarding.select_team(press(7), 7) is None
            release.set()
            first.join(timeout=10)

        assert created[0]["name"] == "Ann"
        assert [m["name"] for m in members.list_members()] == ["Ann"]
        assert messenger.texts_to(ACTOR).count(messages.REGISTERED) == 1

    def test_store_keeps_one_member_per_user(self, members, catalogue):
        first = members.create_member("Ann", date(1995, 6, 15), "+7111", 7, ACTOR, user_id=ACTOR)
        again = members.create_member("Ann", date(1995, 6, 15), "+7111", 7, ACTOR, user_id=ACTOR)
        assert again["id"] == first["id"]
        assert len(members.list_members()) == 1
