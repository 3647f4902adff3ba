# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Obligation lifecycle.
Derives which yearly obligations must exist, creates them, and fans out
their request/payout actions.
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from birthday_fund.core.config import settings
from birthday_fund.core.errors import DataIntegrityGap
from birthday_fund.core.logging import get_logger
from birthday_fund.metrics import ACTIONS_CREATED, OBLIGATIONS_CREATED
from birthday_fund.models.domain import ActionKind, PassResult
from birthday_fund.repositories.action_repository import ActionRepository
from birthday_fund.repositories.member_repository import MemberRepository
from birthday_fund.repositories.obligation_repository import ObligationRepository
from birthday_fund.repositories.team_repository import TeamRepository

logger = get_logger(__name__)


def matches_birthday(birthday: date, day: date) -> bool:
    """Month/day match only; Feb 29 birthdays match only in leap years."""
    return (birthday.month, birthday.day) == (day.month, day.day)


def window(today: date, days: int) -> Iterator[date]:
    for offset in range(days + 1):
        yield today + timedelta(days=offset)


class LifecycleService:
    """Business logic for creating obligations and their actions."""

    def __init__(
        self,
        member_repo: MemberRepository,
        obligation_repo: ObligationRepository,
        action_repo: ActionRepository,
        team_repo: TeamRepository,
        lookahead_days: Optional[int] = None,
    ) -> None:
        self._members = member_repo
        self._obligations = obligation_repo
        self._actions = action_repo
        self._teams = team_repo
        self._lookahead = settings.LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days

    # ── Obligations ──

    def _due(self, today: date) -> List[Tuple[Dict[str, Any], date]]:
        """(member, day) pairs whose birthday falls in the lookahead window."""
        members = self._members.list_members(active_only=True)
        return [
            (member, day)
            for day in window(today, self._lookahead)
            for member in members
            if matches_birthday(member["birthday"], day)
        ]

    def count_pending_obligations(self, today: date) -> int:
        return sum(
            1 for member, day in self._due(today)
            if self._obligations.find(member["id"], day.year) is None
        )

    def scan_and_create_obligations(self, today: date) -> PassResult:
        """Insert one obligation per (member, year) due within the window.

        Safe to race with itself: the unique constraint rejects duplicates,
        which count as a benign no-op for that row.
        """
        result = PassResult(kind="scan_obligations")
        for member, day in self._due(today):
            try:
                created = self._obligations.insert_if_absent(member["id"], day.year)
            except SQLAlchemyError as exc:
                result.failed += 1
                logger.error(
                    "Obligation insert failed member=%s year=%s: %s", member["id"], day.year, exc
                )
                continue
            if created:
                result.affected += 1
                OBLIGATIONS_CREATED.inc()
                logger.info(
                    "Obligation created member=%s year=%s birthday=%s",
                    member["id"], day.year, day.isoformat(),
                )
        logger.info("Obligation scan done created=%d failed=%d", result.affected, result.failed)
        return result

    # ── Request fan-out ──

    def count_missing_requests(self) -> int:
        return len(self._obligations.list_missing_requests())

    def scan_and_create_request_actions(self) -> PassResult:
        """Fan out request actions for every obligation that has none yet."""
        result = PassResult(kind="fan_out_requests")
        for obligation in self._obligations.list_missing_requests():
            try:
                inserted = self._actions.create_request_batch(obligation["id"], obligation["member_id"])
            except SQLAlchemyError as exc:
                result.failed += 1
                logger.error("Request fan-out failed obligation=%s: %s", obligation["id"], exc)
                continue
            if inserted:
                result.affected += 1
                ACTIONS_CREATED.labels(kind=ActionKind.REQUEST.value).inc(inserted)
                logger.info("Request actions created obligation=%s count=%d", obligation["id"], inserted)
        return result

    # ── Payout ──

    def create_payout_action(self, obligation: Dict[str, Any]) -> bool:
        """Create the payout action for the subject's team lead.

        Returns False when the obligation already has one. Raises
        ``DataIntegrityGap`` when the subject has no team or the team no lead.
        """
        subject = self._members.get_member(obligation["member_id"])
        if subject is None or subject["team_id"] is None:
            raise DataIntegrityGap(
                "Birthday member has no team",
                obligation_id=obligation["id"], member_id=obligation["member_id"],
            )
        lead = self._teams.get_lead_for_team(subject["team_id"])
        if lead is None:
            raise DataIntegrityGap(
                "Team has no lead",
                obligation_id=obligation["id"], member_id=subject["id"], team_id=subject["team_id"],
            )
        created = self._actions.insert_payout(obligation["id"], lead["member_id"])
        if created:
            ACTIONS_CREATED.labels(kind=ActionKind.PAYOUT.value).inc()
            logger.info("Payout action created obligation=%s lead=%s", obligation["id"], lead["member_id"])
        return created

    # ── Read side ──

    def upcoming_birthdays(self, today: date, days: Optional[int] = None) -> List[Dict[str, Any]]:
        span = settings.UPCOMING_LIST_DAYS if days is None else days
        members = self._members.list_members(active_only=True)
        return [
            {**member, "next_birthday": day}
            for day in window(today, span)
            for member in members
            if matches_birthday(member["birthday"], day)
        ]
