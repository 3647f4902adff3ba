# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Onboarding conversation.

Linear state machine collecting name → birth date → own contact → team
across separate messages. Invalid input re-prompts the same stage; the
member is created only at team selection, against a still-active team.

    AWAITING_NAME ─► AWAITING_BIRTHDAY ─► AWAITING_PHONE ─► AWAITING_TEAM ─► (member created)
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from birthday_fund.core.errors import InactiveTeam, InvalidInput
from birthday_fund.core.logging import get_logger
from birthday_fund.metrics import MEMBERS_REGISTERED
from birthday_fund.models.domain import (
    Button,
    ContactRequest,
    ControlActivated,
    InlineKeyboard,
    RemoveKeyboard,
    Stage,
    TextMessage,
)
from birthday_fund.repositories.member_repository import MemberRepository
from birthday_fund.repositories.team_repository import TeamRepository
from birthday_fund.services import messages
from birthday_fund.services.control_tokens import SelectTeam
from birthday_fund.services.conversation_store import Conversation, ConversationStore
from birthday_fund.services.telegram_client import TelegramClient

logger = get_logger(__name__)


def parse_birthday(raw: str) -> date:
    try:
        return datetime.strptime(raw.strip(), messages.DATE_FORMAT).date()
    except ValueError as exc:
        raise InvalidInput(f"Invalid date {raw!r}") from exc


class OnboardingService:
    def __init__(
        self,
        store: ConversationStore,
        team_repo: TeamRepository,
        member_repo: MemberRepository,
        messenger: TelegramClient,
    ) -> None:
        self._store = store
        self._teams = team_repo
        self._members = member_repo
        self._messenger = messenger

    def start(self, event: TextMessage) -> Conversation:
        conv = self._store.start(event.actor_id)
        self._messenger.send_text(event.chat_id, messages.GREETING)
        return conv

    def stage_of(self, actor_id: int) -> Optional[Stage]:
        conv = self._store.get(actor_id)
        return conv.stage if conv else None

    def handle_text(self, event: TextMessage) -> Optional[Stage]:
        """Feed one inbound message; returns the stage afterwards."""
        conv = self._store.get(event.actor_id)
        if conv is None:
            self._messenger.send_text(event.chat_id, messages.NOT_STARTED)
            return None
        handler = {
            Stage.AWAITING_NAME: self._on_name,
            Stage.AWAITING_BIRTHDAY: self._on_birthday,
            Stage.AWAITING_PHONE: self._on_phone,
            Stage.AWAITING_TEAM: self._on_team_text,
        }[conv.stage]
        try:
            handler(conv, event)
        except InvalidInput as exc:
            logger.info("Onboarding input rejected actor=%s stage=%s: %s",
                        event.actor_id, conv.stage.value, exc)
        if not self._store.save(conv):
            logger.info("Stale onboarding turn discarded actor=%s", event.actor_id)
            return self.stage_of(event.actor_id)
        return conv.stage

    def select_team(self, event: ControlActivated, team_id: int) -> Optional[dict]:
        """Terminal transition. Returns the created member, or None."""
        conv = self._store.take(event.actor_id, Stage.AWAITING_TEAM)
        if conv is None:
            logger.info("Team selection without matching conversation actor=%s", event.actor_id)
            return None
        try:
            member = self._members.create_member(
                name=conv.name,
                birthday=conv.birthday,
                phone_number=conv.phone_number,
                team_id=team_id,
                chat_id=event.chat_id,
                user_id=event.actor_id,
            )
        except InactiveTeam:
            logger.info("Inactive team selected actor=%s team=%s", event.actor_id, team_id)
            self._store.restore(conv)
            self._offer_teams(event.chat_id, messages.TEAM_INACTIVE)
            return None
        except SQLAlchemyError as exc:
            logger.error("Member insert failed actor=%s team=%s: %s", event.actor_id, team_id, exc)
            self._store.restore(conv)
            self._offer_teams(event.chat_id, messages.REGISTRATION_FAILED)
            return None
        MEMBERS_REGISTERED.inc()
        logger.info("Onboarding complete actor=%s member=%s", event.actor_id, member["id"])
        self._messenger.send_text(event.chat_id, messages.REGISTERED)
        if event.origin is not None:
            self._messenger.clear_controls(event.origin)
        return member

    # ── Stage handlers ──

    def _on_name(self, conv: Conversation, event: TextMessage) -> None:
        name = event.text.strip()
        if not name:
            self._messenger.send_text(event.chat_id, messages.EMPTY_NAME)
            raise InvalidInput("Empty name")
        conv.name = name
        conv.stage = Stage.AWAITING_BIRTHDAY
        self._messenger.send_text(event.chat_id, messages.ASK_BIRTHDAY)

    def _on_birthday(self, conv: Conversation, event: TextMessage) -> None:
        try:
            conv.birthday = parse_birthday(event.text)
        except InvalidInput:
            self._messenger.send_text(event.chat_id, messages.BAD_BIRTHDAY)
            raise
        conv.stage = Stage.AWAITING_PHONE
        self._messenger.send_text_with_control(
            event.chat_id, messages.ASK_PHONE, ContactRequest(label=messages.SHARE_PHONE_LABEL),
        )

    def _on_phone(self, conv: Conversation, event: TextMessage) -> None:
        if event.contact is None:
            self._messenger.send_text(event.chat_id, messages.PHONE_NOT_CONTACT)
            raise InvalidInput("No contact attached")
        if event.contact.owner_id != event.actor_id:
            self._messenger.send_text(event.chat_id, messages.PHONE_NOT_OWN)
            raise InvalidInput("Contact belongs to another user")
        conv.phone_number = event.contact.phone_number
        conv.stage = Stage.AWAITING_TEAM
        self._messenger.send_text_with_control(event.chat_id, messages.PHONE_RECEIVED, RemoveKeyboard())
        self._offer_teams(event.chat_id, messages.CHOOSE_TEAM)

    def _on_team_text(self, conv: Conversation, event: TextMessage) -> None:
        self._offer_teams(event.chat_id, messages.CHOOSE_TEAM)
        raise InvalidInput("Team must be chosen with a button")

    def _offer_teams(self, chat_id: int, prompt: str) -> None:
        teams = self._teams.list_teams(active_only=True)
        if not teams:
            self._messenger.send_text(chat_id, messages.NO_TEAMS)
            return
        keyboard = InlineKeyboard(rows=[
            [Button(label=t["name"], token=SelectTeam(team_id=t["id"]).encode())] for t in teams
        ])
        self._messenger.send_text_with_control(chat_id, prompt, keyboard)
