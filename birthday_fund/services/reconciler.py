# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Confirmation reconciler.
Applies button confirmations to action/obligation state. Duplicates are
silent no-ops; unknown or mismatched pairs are logged and dropped.
"""

from sqlalchemy.exc import SQLAlchemyError

from birthday_fund.core.errors import StaleConfirmation
from birthday_fund.core.logging import get_logger
from birthday_fund.metrics import CONFIRMATIONS
from birthday_fund.models.domain import ConfirmationOutcome
from birthday_fund.repositories.action_repository import ActionRepository

logger = get_logger(__name__)


class ConfirmationReconciler:
    def __init__(self, action_repo: ActionRepository) -> None:
        self._actions = action_repo

    def confirm_request(self, action_id: int) -> ConfirmationOutcome:
        try:
            outcome = self._actions.confirm_request(action_id)
        except StaleConfirmation as exc:
            logger.warning("Stale or forged request confirmation dropped: %s", exc)
            outcome = ConfirmationOutcome.REJECTED
        except SQLAlchemyError as exc:
            logger.error("Request confirmation failed action=%s: %s", action_id, exc)
            outcome = ConfirmationOutcome.REJECTED
        self._log("request", outcome, action_id=action_id)
        return outcome

    def confirm_payout(self, action_id: int, obligation_id: int) -> ConfirmationOutcome:
        try:
            outcome = self._actions.confirm_payout(action_id, obligation_id)
        except StaleConfirmation as exc:
            logger.warning("Stale or forged payout confirmation dropped: %s", exc)
            outcome = ConfirmationOutcome.REJECTED
        except SQLAlchemyError as exc:
            logger.error("Payout confirmation failed action=%s obligation=%s: %s",
                         action_id, obligation_id, exc)
            outcome = ConfirmationOutcome.REJECTED
        self._log("payout", outcome, action_id=action_id, obligation_id=obligation_id)
        return outcome

    @staticmethod
    def _log(kind: str, outcome: ConfirmationOutcome, **ids) -> None:
        CONFIRMATIONS.labels(kind=kind, outcome=outcome.value).inc()
        if outcome is ConfirmationOutcome.DUPLICATE:
            logger.info("Duplicate %s confirmation ignored", kind, extra=ids)
        elif outcome is ConfirmationOutcome.APPLIED:
            logger.info("%s confirmed", kind.capitalize(), extra=ids)
