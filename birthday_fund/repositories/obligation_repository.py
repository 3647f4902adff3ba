# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for yearly obligations and the notification read models."""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from birthday_fund.core.logging import get_logger
from birthday_fund.repositories._rows import as_bool, as_iso

logger = get_logger(__name__)

OBLIGATION_COLS = (
    "o.id, o.member_id, o.year, o.members_notified, o.teamlead_notified, "
    "o.money_transferred, o.created_at, m.name AS member_name"
)
FLAGS = ("members_notified", "teamlead_notified", "money_transferred")

MEMBER_REQUEST_SQL = """
    SELECT a.id AS action_id, o.id AS obligation_id,
           r.id AS recipient_id, r.chat_id AS recipient_chat_id,
           s.id AS subject_id, s.name AS subject_name, s.team_id AS team_id,
           t.name AS team_name, tl.phone_number AS lead_phone, lm.name AS lead_name
    FROM actions a
    JOIN yearly_obligations o ON o.id = a.obligation_id
    JOIN members r ON r.id = a.member_id
    JOIN members s ON s.id = o.member_id
    LEFT JOIN teams t ON t.id = s.team_id
    LEFT JOIN team_leads tl ON tl.team_id = s.team_id
    LEFT JOIN members lm ON lm.id = tl.member_id
    WHERE a.kind = 'request' AND a.is_done = FALSE
    AND o.members_notified = FALSE
    ORDER BY o.id, a.id
"""

TEAMLEAD_SQL = """
    SELECT o.id AS obligation_id, s.id AS subject_id, s.name AS subject_name,
           s.team_id AS team_id, lm.id AS lead_member_id, lm.name AS lead_name,
           lm.chat_id AS lead_chat_id
    FROM yearly_obligations o
    JOIN members s ON s.id = o.member_id
    LEFT JOIN team_leads tl ON tl.team_id = s.team_id
    LEFT JOIN members lm ON lm.id = tl.member_id
    WHERE o.teamlead_notified = FALSE
    AND EXISTS (
        SELECT 1 FROM actions a
        WHERE a.obligation_id = o.id AND a.kind = 'request' AND a.is_done = TRUE
    )
    ORDER BY o.id
"""

PAYOUT_SQL = """
    SELECT a.id AS action_id, o.id AS obligation_id,
           lm.id AS lead_member_id, lm.chat_id AS lead_chat_id,
           s.name AS subject_name, s.phone_number AS subject_phone
    FROM actions a
    JOIN yearly_obligations o ON o.id = a.obligation_id
    JOIN members s ON s.id = o.member_id
    JOIN members lm ON lm.id = a.member_id
    WHERE a.kind = 'payout' AND a.is_done = FALSE
    AND o.money_transferred = FALSE
    ORDER BY o.id
"""


def _obligation(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "member_id": row["member_id"],
        "member_name": row["member_name"],
        "year": row["year"],
        "members_notified": as_bool(row["members_notified"]),
        "teamlead_notified": as_bool(row["teamlead_notified"]),
        "money_transferred": as_bool(row["money_transferred"]),
        "created_at": as_iso(row["created_at"]),
    }


class ObligationRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def insert_if_absent(self, member_id: int, year: int) -> bool:
        """Create the (member, year) obligation; False when it already exists.

        The unique constraint decides, so a concurrent duplicate is rejected
        rather than inserted.
        """
        with self._engine.begin() as conn:
            result = conn.execute(
                text("""
                    INSERT INTO yearly_obligations (member_id, year)
                    VALUES (:member_id, :year)
                    ON CONFLICT DO NOTHING
                """),
                {"member_id": member_id, "year": year},
            )
        return result.rowcount == 1

    def mark(self, obligation_id: int, flag: str) -> bool:
        """Flip one progress flag false→true; False when it was already set."""
        if flag not in FLAGS:
            raise ValueError(f"Unknown obligation flag '{flag}'")
        with self._engine.begin() as conn:
            result = conn.execute(
                text(f"UPDATE yearly_obligations SET {flag} = TRUE WHERE id = :id AND {flag} = FALSE"),
                {"id": obligation_id},
            )
        return result.rowcount == 1

    # ── Read ───────────────────────────────────────────────────────────

    def get(self, obligation_id: int) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"""
                    SELECT {OBLIGATION_COLS} FROM yearly_obligations o
                    JOIN members m ON m.id = o.member_id WHERE o.id = :id
                """),
                {"id": obligation_id},
            ).mappings().first()
        return _obligation(row) if row else None

    def find(self, member_id: int, year: int) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"""
                    SELECT {OBLIGATION_COLS} FROM yearly_obligations o
                    JOIN members m ON m.id = o.member_id
                    WHERE o.member_id = :member_id AND o.year = :year
                """),
                {"member_id": member_id, "year": year},
            ).mappings().first()
        return _obligation(row) if row else None

    def list_obligations(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        where = " WHERE o.year = :year" if year is not None else ""
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {OBLIGATION_COLS} FROM yearly_obligations o
                    JOIN members m ON m.id = o.member_id{where}
                    ORDER BY o.year DESC, o.id
                """),
                {"year": year} if year is not None else {},
            ).mappings().all()
        return [_obligation(r) for r in rows]

    def list_missing_requests(self) -> List[Dict[str, Any]]:
        """Obligations that have no ``request`` actions yet but someone to ask.

        An obligation whose subject is the only active member has nobody to
        ask and is left out.
        """
        with self._engine.connect() as conn:
            rows = conn.execute(text("""
                SELECT o.id, o.member_id FROM yearly_obligations o
                WHERE NOT EXISTS (
                    SELECT 1 FROM actions a WHERE a.obligation_id = o.id AND a.kind = 'request'
                )
                AND EXISTS (
                    SELECT 1 FROM members m JOIN teams t ON t.id = m.team_id
                    WHERE t.is_active = TRUE AND m.id <> o.member_id
                )
                ORDER BY o.id
            """)).mappings().all()
        return [dict(r) for r in rows]

    def member_request_candidates(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(text(MEMBER_REQUEST_SQL)).mappings().all()]

    def teamlead_candidates(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(text(TEAMLEAD_SQL)).mappings().all()]

    def payout_candidates(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(text(PAYOUT_SQL)).mappings().all()]
