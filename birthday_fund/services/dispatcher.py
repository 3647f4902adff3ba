# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notification dispatcher.

Each pass reads the candidates its licence condition selects, sends through
the messaging client, journals what went out, and flips the governing flag
for exactly the obligation it just served.
"""

from datetime import date
from itertools import groupby
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from birthday_fund.core.config import settings
from birthday_fund.core.errors import TransportError
from birthday_fund.core.logging import get_logger
from birthday_fund.metrics import INTEGRITY_GAPS, MESSAGES_SENT, PASS_DURATION
from birthday_fund.models.domain import (
    InlineKeyboard,
    JournalKind,
    MessageHandle,
    PassResult,
    WishPassResult,
)
from birthday_fund.repositories.action_repository import ActionRepository
from birthday_fund.repositories.journal_repository import JournalRepository
from birthday_fund.repositories.member_repository import MemberRepository
from birthday_fund.repositories.obligation_repository import ObligationRepository
from birthday_fund.services import messages
from birthday_fund.services.control_tokens import ConfirmPayout, ConfirmRequest
from birthday_fund.services.telegram_client import TelegramClient

logger = get_logger(__name__)


class NotificationDispatcher:
    """Sends the four notification kinds and records them in the journal."""

    def __init__(
        self,
        obligation_repo: ObligationRepository,
        action_repo: ActionRepository,
        member_repo: MemberRepository,
        journal_repo: JournalRepository,
        messenger: TelegramClient,
        mark_on_partial_failure: Optional[bool] = None,
    ) -> None:
        self._obligations = obligation_repo
        self._actions = action_repo
        self._members = member_repo
        self._journal = journal_repo
        self._messenger = messenger
        self._mark_on_partial_failure = (
            settings.MARK_NOTIFIED_ON_PARTIAL_FAILURE
            if mark_on_partial_failure is None else mark_on_partial_failure
        )

    # ── Helpers ──

    def _journal_safely(self, kind: JournalKind, handle: MessageHandle, content: str, **refs) -> None:
        try:
            self._journal.record(kind, handle, content, **refs)
        except SQLAlchemyError as exc:
            logger.error("Journal write failed kind=%s chat=%s: %s", kind.value, handle.chat_id, exc)

    def _mark_safely(self, obligation_id: int, flag: str) -> None:
        try:
            self._obligations.mark(obligation_id, flag)
        except SQLAlchemyError as exc:
            logger.error("Flag update failed obligation=%s flag=%s: %s", obligation_id, flag, exc)

    def _gap(self, result: PassResult, reason: str, **context) -> None:
        result.gaps.append({"reason": reason, **context})
        INTEGRITY_GAPS.labels(pass_name=result.kind).inc()
        logger.error("Data integrity gap: %s", reason, extra=context)

    # ── Pre-counts ──

    def count_member_requests(self) -> int:
        return len({c["obligation_id"] for c in self._obligations.member_request_candidates()})

    def count_teamlead_notices(self) -> int:
        return len(self._obligations.teamlead_candidates())

    def count_birthdays(self, today: date) -> int:
        return len(self._members.birthdays_on(today))

    def count_payout_reminders(self) -> int:
        return len(self._obligations.payout_candidates())

    # ── Member requests ──

    def send_member_requests(self) -> PassResult:
        """Ask every assignee with an undone request to contribute.

        The ``members_notified`` flag is flipped per obligation only after
        every recipient of that obligation was attempted.
        """
        result = PassResult(kind="send_member_notifications")
        with PASS_DURATION.labels(pass_name=result.kind).time():
            candidates = self._obligations.member_request_candidates()
            for obligation_id, group in groupby(candidates, key=lambda c: c["obligation_id"]):
                batch = list(group)
                head = batch[0]
                if head["lead_phone"] is None:
                    self._gap(result, "Team has no lead", obligation_id=obligation_id,
                              member_id=head["subject_id"], team_id=head["team_id"])
                    continue
                failures = self._send_request_batch(batch, result)
                if failures and not self._mark_on_partial_failure:
                    logger.warning(
                        "Leaving members_notified unset obligation=%s failed=%d",
                        obligation_id, failures,
                    )
                    continue
                self._mark_safely(obligation_id, "members_notified")
        logger.info("Member requests sent=%d failed=%d gaps=%d",
                    result.affected, result.failed, len(result.gaps))
        return result

    def _send_request_batch(self, batch: List[Dict[str, Any]], result: PassResult) -> int:
        failures = 0
        for c in batch:
            content = messages.member_request(
                c["subject_name"], c["team_name"], c["lead_name"], c["lead_phone"],
            )
            token = ConfirmRequest(action_id=c["action_id"]).encode()
            try:
                handle = self._messenger.send_text_with_control(
                    c["recipient_chat_id"], content,
                    InlineKeyboard.single(messages.CONFIRM_BUTTON, token),
                )
            except TransportError as exc:
                failures += 1
                result.failed += 1
                MESSAGES_SENT.labels(kind=JournalKind.MEMBER_REQUEST.value, status="failed").inc()
                logger.warning("Member request failed action=%s recipient=%s: %s",
                               c["action_id"], c["recipient_id"], exc)
                continue
            result.affected += 1
            MESSAGES_SENT.labels(kind=JournalKind.MEMBER_REQUEST.value, status="sent").inc()
            self._journal_safely(JournalKind.MEMBER_REQUEST, handle, content, control_token=token,
                                 action_id=c["action_id"], obligation_id=c["obligation_id"])
        return failures

    # ── Team-lead pre-notification ──

    def send_teamlead_notices(self) -> PassResult:
        """Tell the lead contributions are arriving, once per obligation."""
        result = PassResult(kind="send_teamlead_notifications")
        with PASS_DURATION.labels(pass_name=result.kind).time():
            for c in self._obligations.teamlead_candidates():
                if c["lead_chat_id"] is None:
                    self._gap(result, "Team has no lead", obligation_id=c["obligation_id"],
                              member_id=c["subject_id"], team_id=c["team_id"])
                    continue
                content = messages.teamlead_notice(c["lead_name"], c["subject_name"])
                try:
                    handle = self._messenger.send_text(c["lead_chat_id"], content)
                except TransportError as exc:
                    result.failed += 1
                    MESSAGES_SENT.labels(kind=JournalKind.TEAMLEAD_NOTICE.value, status="failed").inc()
                    logger.warning("Team lead notice failed obligation=%s: %s", c["obligation_id"], exc)
                    continue
                result.affected += 1
                MESSAGES_SENT.labels(kind=JournalKind.TEAMLEAD_NOTICE.value, status="sent").inc()
                self._journal_safely(JournalKind.TEAMLEAD_NOTICE, handle, content,
                                     obligation_id=c["obligation_id"])
                self._mark_safely(c["obligation_id"], "teamlead_notified")
        return result

    # ── Same-day wishes ──

    def send_birthday_wishes(self, today: date) -> WishPassResult:
        """Wish everyone whose birthday is today.

        Does not create payout actions itself: obligations still lacking one
        are returned in ``pending_payouts`` for the caller to hand over.
        """
        result = WishPassResult(kind="send_birthday_wishes")
        with PASS_DURATION.labels(pass_name=result.kind).time():
            for member in self._members.birthdays_on(today):
                self._wish(member, today, result)
        return result

    def _wish(self, member: Dict[str, Any], today: date, result: WishPassResult) -> None:
        content = messages.birthday_wish(member["name"])
        try:
            obligation = self._obligations.find(member["id"], today.year)
            if obligation and not self._actions.has_payout(obligation["id"]):
                result.pending_payouts.append(obligation)
        except SQLAlchemyError as exc:
            obligation = None
            logger.error("Obligation lookup failed member=%s: %s", member["id"], exc)
        try:
            handle = self._messenger.send_text(member["chat_id"], content)
        except TransportError as exc:
            result.failed += 1
            MESSAGES_SENT.labels(kind=JournalKind.BIRTHDAY_WISH.value, status="failed").inc()
            logger.warning("Birthday wish failed member=%s: %s", member["id"], exc)
            return
        result.affected += 1
        MESSAGES_SENT.labels(kind=JournalKind.BIRTHDAY_WISH.value, status="sent").inc()
        self._journal_safely(JournalKind.BIRTHDAY_WISH, handle, content,
                             obligation_id=obligation["id"] if obligation else None)

    # ── Payout reminders ──

    def send_payout_reminders(self) -> PassResult:
        """Remind leads holding an undone payout; repeats until confirmed."""
        result = PassResult(kind="send_payout_reminders")
        with PASS_DURATION.labels(pass_name=result.kind).time():
            for c in self._obligations.payout_candidates():
                content = messages.payout_reminder(c["subject_name"], c["subject_phone"])
                token = ConfirmPayout(action_id=c["action_id"], obligation_id=c["obligation_id"]).encode()
                try:
                    handle = self._messenger.send_text_with_control(
                        c["lead_chat_id"], content,
                        InlineKeyboard.single(messages.CONFIRM_BUTTON, token),
                    )
                except TransportError as exc:
                    result.failed += 1
                    MESSAGES_SENT.labels(kind=JournalKind.PAYOUT_REMINDER.value, status="failed").inc()
                    logger.warning("Payout reminder failed action=%s: %s", c["action_id"], exc)
                    continue
                result.affected += 1
                MESSAGES_SENT.labels(kind=JournalKind.PAYOUT_REMINDER.value, status="sent").inc()
                self._journal_safely(JournalKind.PAYOUT_REMINDER, handle, content, control_token=token,
                                     action_id=c["action_id"], obligation_id=c["obligation_id"])
        return result
