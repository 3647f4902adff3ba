# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for actions (request / payout) and their confirmations."""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from birthday_fund.core.errors import StaleConfirmation
from birthday_fund.core.logging import get_logger
from birthday_fund.models.domain import ActionKind, ConfirmationOutcome
from birthday_fund.repositories._rows import as_bool

logger = get_logger(__name__)

ACTION_COLS = "a.id, a.obligation_id, a.member_id, a.kind, a.is_done, m.name AS member_name"


def _action(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "obligation_id": row["obligation_id"],
        "member_id": row["member_id"],
        "member_name": row["member_name"],
        "kind": row["kind"],
        "is_done": as_bool(row["is_done"]),
    }


class ActionRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def create_request_batch(self, obligation_id: int, subject_id: int) -> int:
        """Fan out one ``request`` per active member except the subject.

        Runs as one transaction and one statement: either the whole batch
        lands or nothing does. Returns the number of actions inserted.
        """
        with self._engine.begin() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM actions WHERE obligation_id = :oid AND kind = 'request'"),
                {"oid": obligation_id},
            ).first()
            if exists:
                return 0
            result = conn.execute(
                text("""
                    INSERT INTO actions (obligation_id, member_id, kind)
                    SELECT :oid, m.id, 'request'
                    FROM members m
                    JOIN teams t ON t.id = m.team_id
                    WHERE t.is_active = TRUE AND m.id <> :subject_id
                    ON CONFLICT DO NOTHING
                """),
                {"oid": obligation_id, "subject_id": subject_id},
            )
        return result.rowcount

    def insert_payout(self, obligation_id: int, lead_member_id: int) -> bool:
        """Create the single payout action; False when one already exists."""
        with self._engine.begin() as conn:
            result = conn.execute(
                text("""
                    INSERT INTO actions (obligation_id, member_id, kind)
                    VALUES (:oid, :member_id, 'payout')
                    ON CONFLICT DO NOTHING
                """),
                {"oid": obligation_id, "member_id": lead_member_id},
            )
        return result.rowcount == 1

    def confirm_request(self, action_id: int) -> ConfirmationOutcome:
        with self._engine.begin() as conn:
            result = conn.execute(
                text("""
                    UPDATE actions SET is_done = TRUE
                    WHERE id = :id AND kind = 'request' AND is_done = FALSE
                """),
                {"id": action_id},
            )
            if result.rowcount == 1:
                return ConfirmationOutcome.APPLIED
            known = conn.execute(
                text("SELECT 1 FROM actions WHERE id = :id AND kind = 'request'"), {"id": action_id}
            ).first()
        if known is None:
            raise StaleConfirmation(f"Request action {action_id} not found")
        return ConfirmationOutcome.DUPLICATE

    def confirm_payout(self, action_id: int, obligation_id: int) -> ConfirmationOutcome:
        """Close the payout action and its obligation together, or neither.

        The action must belong to ``obligation_id``; a mismatched pair
        touches nothing.
        """
        with self._engine.begin() as conn:
            result = conn.execute(
                text("""
                    UPDATE actions SET is_done = TRUE
                    WHERE id = :id AND obligation_id = :oid
                    AND kind = 'payout' AND is_done = FALSE
                """),
                {"id": action_id, "oid": obligation_id},
            )
            if result.rowcount == 1:
                conn.execute(
                    text("UPDATE yearly_obligations SET money_transferred = TRUE WHERE id = :oid"),
                    {"oid": obligation_id},
                )
                return ConfirmationOutcome.APPLIED
            known = conn.execute(
                text("""
                    SELECT 1 FROM actions
                    WHERE id = :id AND obligation_id = :oid AND kind = 'payout'
                """),
                {"id": action_id, "oid": obligation_id},
            ).first()
        if known is None:
            raise StaleConfirmation(f"Payout action {action_id} does not belong to obligation {obligation_id}")
        return ConfirmationOutcome.DUPLICATE

    # ── Read ───────────────────────────────────────────────────────────

    def get(self, action_id: int) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {ACTION_COLS} FROM actions a JOIN members m ON m.id = a.member_id WHERE a.id = :id"),
                {"id": action_id},
            ).mappings().first()
        return _action(row) if row else None

    def list_for_obligation(self, obligation_id: int,
                            kind: Optional[ActionKind] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"oid": obligation_id}
        kind_filter = ""
        if kind is not None:
            kind_filter = " AND a.kind = :kind"
            params["kind"] = kind.value
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {ACTION_COLS} FROM actions a
                    JOIN members m ON m.id = a.member_id
                    WHERE a.obligation_id = :oid{kind_filter}
                    ORDER BY a.id
                """),
                params,
            ).mappings().all()
        return [_action(r) for r in rows]

    def has_payout(self, obligation_id: int) -> bool:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT 1 FROM actions WHERE obligation_id = :oid AND kind = 'payout'"),
                {"oid": obligation_id},
            ).first()
        return row is not None
