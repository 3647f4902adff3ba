# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Inbound update routing.

Turns raw Telegram updates into domain events and hands them to onboarding,
the confirmation reconciler or the trigger service.
"""

from typing import Any, Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from birthday_fund.core.errors import InvalidControlToken, TransportError
from birthday_fund.core.logging import get_logger
from birthday_fund.models.domain import (
    Button,
    ConfirmationOutcome,
    Contact,
    ControlActivated,
    InlineKeyboard,
    MessageHandle,
    TextMessage,
)
from birthday_fund.repositories.journal_repository import JournalRepository
from birthday_fund.repositories.team_repository import TeamRepository
from birthday_fund.services import messages
from birthday_fund.services.control_tokens import (
    AdminTrigger,
    ConfirmPayout,
    ConfirmRequest,
    SelectTeam,
    parse_token,
)
from birthday_fund.services.lifecycle_service import LifecycleService
from birthday_fund.services.onboarding import OnboardingService
from birthday_fund.services.reconciler import ConfirmationReconciler
from birthday_fund.services.telegram_client import TelegramClient
from birthday_fund.services.triggers import TRIGGER_NAMES, TriggerService

logger = get_logger(__name__)

Event = Union[TextMessage, ControlActivated]


def parse_update(update: Dict[str, Any]) -> Optional[Event]:
    """Map a Telegram Update object to an event; None for unsupported kinds."""
    callback = update.get("callback_query")
    if callback:
        origin = None
        message = callback.get("message")
        if message:
            origin = MessageHandle(chat_id=message["chat"]["id"], message_id=message["message_id"])
        actor_id = callback["from"]["id"]
        return ControlActivated(
            actor_id=actor_id,
            chat_id=origin.chat_id if origin else actor_id,
            token=callback.get("data") or "",
            origin=origin,
            callback_id=callback.get("id"),
        )

    message = update.get("message")
    if not message or "from" not in message:
        return None
    contact = None
    if message.get("contact"):
        contact = Contact(
            phone_number=message["contact"]["phone_number"],
            owner_id=message["contact"].get("user_id"),
        )
    return TextMessage(
        actor_id=message["from"]["id"],
        chat_id=message["chat"]["id"],
        text=message.get("text") or "",
        contact=contact,
    )


class UpdateRouter:
    def __init__(
        self,
        onboarding: OnboardingService,
        reconciler: ConfirmationReconciler,
        triggers: TriggerService,
        lifecycle: LifecycleService,
        team_repo: TeamRepository,
        journal_repo: JournalRepository,
        messenger: TelegramClient,
    ) -> None:
        self._onboarding = onboarding
        self._reconciler = reconciler
        self._triggers = triggers
        self._lifecycle = lifecycle
        self._teams = team_repo
        self._journal = journal_repo
        self._messenger = messenger
        self._commands = {
            "/start": self._cmd_start,
            "/help": self._cmd_help,
            "/teamleads": self._cmd_teamleads,
            "/birthdays": self._cmd_birthdays,
            "/admin": self._cmd_admin,
        }

    def handle_update(self, update: Dict[str, Any]) -> None:
        event = parse_update(update)
        if event is None:
            logger.debug("Ignoring unsupported update id=%s", update.get("update_id"))
            return
        try:
            if isinstance(event, ControlActivated):
                self.handle_control(event)
            else:
                self.handle_message(event)
        except TransportError as exc:
            logger.error("Reply failed actor=%s: %s", event.actor_id, exc)

    # ── Messages ──

    def handle_message(self, event: TextMessage) -> None:
        command = event.text.strip().split(" ", 1)[0].split("@", 1)[0] if event.text else ""
        handler = self._commands.get(command)
        if handler is not None:
            handler(event)
            return
        self._onboarding.handle_text(event)

    def _cmd_start(self, event: TextMessage) -> None:
        self._onboarding.start(event)

    def _cmd_help(self, event: TextMessage) -> None:
        self._messenger.send_text(event.chat_id, messages.HELP)

    def _cmd_teamleads(self, event: TextMessage) -> None:
        self._messenger.send_text(event.chat_id, messages.team_leads(self._teams.list_leads()))

    def _cmd_birthdays(self, event: TextMessage) -> None:
        if not self._teams.is_lead(event.chat_id):
            self._messenger.send_text(event.chat_id, messages.LEADS_ONLY)
            return
        entries = self._lifecycle.upcoming_birthdays(self._triggers.today())
        self._messenger.send_text(event.chat_id, messages.upcoming_birthdays(entries))

    def _cmd_admin(self, event: TextMessage) -> None:
        if not self._triggers.is_privileged(event.chat_id):
            self._messenger.send_text(event.chat_id, messages.ADMINS_ONLY)
            return
        keyboard = InlineKeyboard(rows=[
            [Button(label=messages.ADMIN_BUTTONS[name], token=AdminTrigger(name=name).encode())]
            for name in TRIGGER_NAMES
        ])
        self._messenger.send_text_with_control(event.chat_id, messages.ADMIN_PANEL, keyboard)

    # ── Controls ──

    def handle_control(self, event: ControlActivated) -> None:
        if event.origin is not None:
            self._annotate_safely(event.origin, event.token)
        if event.callback_id:
            try:
                self._messenger.answer_control(event.callback_id)
            except TransportError as exc:
                logger.warning("Could not acknowledge control %s: %s", event.callback_id, exc)
        try:
            token = parse_token(event.token)
        except InvalidControlToken as exc:
            logger.warning("Dropping control actor=%s: %s", event.actor_id, exc)
            return

        if isinstance(token, ConfirmRequest):
            outcome = self._reconciler.confirm_request(token.action_id)
            self._reply_confirmation(event, outcome, messages.REQUEST_CONFIRMED)
        elif isinstance(token, ConfirmPayout):
            outcome = self._reconciler.confirm_payout(token.action_id, token.obligation_id)
            self._reply_confirmation(event, outcome, messages.PAYOUT_CONFIRMED)
        elif isinstance(token, SelectTeam):
            self._onboarding.select_team(event, token.team_id)
        elif isinstance(token, AdminTrigger):
            self._run_admin_trigger(event, token.name)

    def _annotate_safely(self, origin: MessageHandle, token: str) -> None:
        try:
            self._journal.annotate_confirmation(origin, token)
        except SQLAlchemyError as exc:
            logger.error("Journal annotation failed chat=%s message=%s: %s",
                         origin.chat_id, origin.message_id, exc)

    def _reply_confirmation(self, event: ControlActivated, outcome: ConfirmationOutcome, text: str) -> None:
        if outcome is ConfirmationOutcome.REJECTED:
            return
        if outcome is ConfirmationOutcome.DUPLICATE:
            text = messages.ALREADY_CONFIRMED
        self._messenger.send_text(event.chat_id, text)
        if event.origin is not None:
            self._messenger.clear_controls(event.origin)

    def _run_admin_trigger(self, event: ControlActivated, name: str) -> None:
        if not self._triggers.is_privileged(event.chat_id):
            self._messenger.send_text(event.chat_id, messages.ADMINS_ONLY)
            return
        if name not in TRIGGER_NAMES:
            logger.warning("Unknown admin trigger %s from chat=%s", name, event.chat_id)
            return
        self._messenger.send_text(event.chat_id, messages.ADMIN_STARTED)
        try:
            result = self._triggers.run(name)
        except Exception:
            logger.exception("Admin trigger %s crashed", name)
            self._messenger.send_text(event.chat_id, messages.ADMIN_FAILED)
            return
        if result.nothing_to_do:
            self._messenger.send_text(event.chat_id, messages.NOTHING_TO_DO[name])
        else:
            self._messenger.send_text(
                event.chat_id,
                messages.pass_summary(name, result.affected, result.failed, len(result.gaps)),
            )
