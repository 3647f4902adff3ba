# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Named passes shared by the daily scheduler and the admin surface.
"""

from datetime import date, datetime
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from birthday_fund.core.config import settings
from birthday_fund.core.errors import DataIntegrityGap
from birthday_fund.core.logging import get_logger
from birthday_fund.metrics import INTEGRITY_GAPS
from birthday_fund.models.domain import PassResult, WishPassResult
from birthday_fund.repositories.admin_repository import AdminRepository
from birthday_fund.services.dispatcher import NotificationDispatcher
from birthday_fund.services.lifecycle_service import LifecycleService

logger = get_logger(__name__)

TRIGGER_NAMES = (
    "scan_obligations",
    "fan_out_requests",
    "send_member_notifications",
    "send_teamlead_notifications",
    "send_birthday_wishes",
    "send_payout_reminders",
)


class TriggerService:
    """Runs a pass by name; a zero pre-count short-circuits to nothing-to-do."""

    def __init__(
        self,
        lifecycle: LifecycleService,
        dispatcher: NotificationDispatcher,
        admin_repo: AdminRepository,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._dispatcher = dispatcher
        self._admins = admin_repo
        self._today = today or (lambda: datetime.now(ZoneInfo(settings.TIMEZONE)).date())
        self._passes: Dict[str, Callable[[], PassResult]] = {
            "scan_obligations": lambda: self._lifecycle.scan_and_create_obligations(self.today()),
            "fan_out_requests": self._lifecycle.scan_and_create_request_actions,
            "send_member_notifications": self._dispatcher.send_member_requests,
            "send_teamlead_notifications": self._dispatcher.send_teamlead_notices,
            "send_birthday_wishes": self.run_birthday_wishes,
            "send_payout_reminders": self._dispatcher.send_payout_reminders,
        }
        self._counts: Dict[str, Callable[[], int]] = {
            "scan_obligations": lambda: self._lifecycle.count_pending_obligations(self.today()),
            "fan_out_requests": self._lifecycle.count_missing_requests,
            "send_member_notifications": self._dispatcher.count_member_requests,
            "send_teamlead_notifications": self._dispatcher.count_teamlead_notices,
            "send_birthday_wishes": lambda: self._dispatcher.count_birthdays(self.today()),
            "send_payout_reminders": self._dispatcher.count_payout_reminders,
        }

    def today(self) -> date:
        return self._today()

    def is_privileged(self, chat_id: int) -> bool:
        return self._admins.is_admin(chat_id)

    def run(self, name: str, precount: bool = True) -> PassResult:
        if name not in self._passes:
            raise KeyError(f"Unknown trigger '{name}'")
        if precount:
            pending = self._counts[name]()
            logger.info("Trigger %s pre-count=%d", name, pending)
            if pending == 0:
                return PassResult(kind=name)
        logger.info("Trigger %s started", name)
        result = self._passes[name]()
        logger.info(
            "Trigger %s finished affected=%d failed=%d gaps=%d",
            name, result.affected, result.failed, len(result.gaps),
        )
        return result

    def run_birthday_wishes(self) -> WishPassResult:
        """Send today's wishes, then create the payout actions they uncovered."""
        result = self._dispatcher.send_birthday_wishes(self.today())
        for obligation in result.pending_payouts:
            try:
                self._lifecycle.create_payout_action(obligation)
            except DataIntegrityGap as gap:
                result.gaps.append({"reason": str(gap), **gap.context})
                INTEGRITY_GAPS.labels(pass_name=result.kind).inc()
                logger.error("Data integrity gap: %s", gap, extra=gap.context)
            except SQLAlchemyError as exc:
                result.failed += 1
                logger.error("Payout action failed obligation=%s: %s", obligation["id"], exc)
        return result
