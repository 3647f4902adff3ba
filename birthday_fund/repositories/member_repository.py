# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for members."""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import Date, bindparam, text
from sqlalchemy.engine import Engine

from birthday_fund.core.errors import InactiveTeam
from birthday_fund.core.logging import get_logger
from birthday_fund.repositories._rows import as_date

logger = get_logger(__name__)

MEMBER_COLS = (
    "m.id, m.name, m.birthday, m.phone_number, m.team_id, m.chat_id, m.user_id, "
    "t.name AS team_name, t.is_active AS team_active"
)
MEMBER_FROM = "FROM members m LEFT JOIN teams t ON t.id = m.team_id"


def _member(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "birthday": as_date(row["birthday"]),
        "phone_number": row["phone_number"],
        "team_id": row["team_id"],
        "team_name": row["team_name"],
        "chat_id": row["chat_id"],
        "user_id": row["user_id"],
    }


class MemberRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create_member(self, name: str, birthday: date, phone_number: str,
                      team_id: int, chat_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        """Insert a member, but only while ``team_id`` is an active team.

        The activity check and the insert are one statement, so a team
        deactivated after it was offered is rejected here. A Telegram user
        registers once: a second insert for the same ``user_id`` returns the
        member already on file.
        """
        stmt = text("""
            INSERT INTO members (name, birthday, phone_number, team_id, chat_id, user_id)
            SELECT :name, :birthday, :phone, t.id, :chat_id, :user_id
            FROM teams t
            WHERE t.id = :team_id AND t.is_active = TRUE
            ON CONFLICT DO NOTHING
            RETURNING id
        """).bindparams(bindparam("birthday", type_=Date))
        with self._engine.begin() as conn:
            member_id = conn.execute(stmt, {
                "name": name, "birthday": birthday, "phone": phone_number,
                "team_id": team_id, "chat_id": chat_id, "user_id": user_id,
            }).scalar()
        if member_id is None:
            existing = self.find_by_user(user_id) if user_id is not None else None
            if existing is not None:
                logger.info("Member already registered id=%s user=%s", existing["id"], user_id)
                return existing
            raise InactiveTeam(team_id)
        logger.info("Member created id=%s team=%s", member_id, team_id)
        return self.get_member(member_id)

    def find_by_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {MEMBER_COLS} {MEMBER_FROM} WHERE m.user_id = :uid"), {"uid": user_id}
            ).mappings().first()
        return _member(row) if row else None

    def get_member(self, member_id: int) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {MEMBER_COLS} {MEMBER_FROM} WHERE m.id = :id"), {"id": member_id}
            ).mappings().first()
        return _member(row) if row else None

    def list_members(self, active_only: bool = False) -> List[Dict[str, Any]]:
        """All members; ``active_only`` keeps members of active teams."""
        where = " WHERE t.is_active = TRUE" if active_only else ""
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"SELECT {MEMBER_COLS} {MEMBER_FROM}{where} ORDER BY m.id")
            ).mappings().all()
        return [_member(r) for r in rows]

    def birthdays_on(self, day: date) -> List[Dict[str, Any]]:
        """Active members whose birth month/day equals ``day``'s, any year."""
        return [
            m for m in self.list_members(active_only=True)
            if (m["birthday"].month, m["birthday"].day) == (day.month, day.day)
        ]
