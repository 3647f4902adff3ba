# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for teams and team leads."""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from birthday_fund.core.logging import get_logger
from birthday_fund.repositories._rows import as_bool

logger = get_logger(__name__)

LEAD_SELECT = """
    SELECT tl.id, tl.team_id, tl.member_id, tl.phone_number,
           m.name AS member_name, m.chat_id AS member_chat_id, t.name AS team_name
    FROM team_leads tl
    JOIN members m ON m.id = tl.member_id
    JOIN teams t ON t.id = tl.team_id
"""


def _team(row) -> Dict[str, Any]:
    return {"id": row["id"], "name": row["name"], "is_active": as_bool(row["is_active"])}


class TeamRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Teams ──────────────────────────────────────────────────────────

    def create_team(self, name: str, is_active: bool = True,
                    team_id: Optional[int] = None) -> Dict[str, Any]:
        params = {"name": name, "active": is_active}
        if team_id is None:
            sql = "INSERT INTO teams (name, is_active) VALUES (:name, :active) RETURNING id"
        else:
            sql = "INSERT INTO teams (id, name, is_active) VALUES (:id, :name, :active) RETURNING id"
            params["id"] = team_id
        with self._engine.begin() as conn:
            new_id = conn.execute(text(sql), params).scalar_one()
        logger.info("Team created id=%s name=%s", new_id, name)
        return {"id": new_id, "name": name, "is_active": is_active}

    def get_team(self, team_id: int) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT id, name, is_active FROM teams WHERE id = :id"), {"id": team_id}
            ).mappings().first()
        return _team(row) if row else None

    def list_teams(self, active_only: bool = False) -> List[Dict[str, Any]]:
        where = " WHERE is_active = TRUE" if active_only else ""
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"SELECT id, name, is_active FROM teams{where} ORDER BY name")
            ).mappings().all()
        return [_team(r) for r in rows]

    def set_active(self, team_id: int, is_active: bool) -> Dict[str, Any]:
        with self._engine.begin() as conn:
            result = conn.execute(
                text("UPDATE teams SET is_active = :active WHERE id = :id"),
                {"active": is_active, "id": team_id},
            )
        if result.rowcount == 0:
            raise KeyError(f"Team {team_id} not found")
        logger.info("Team id=%s is_active=%s", team_id, is_active)
        return self.get_team(team_id)

    # ── Team leads ─────────────────────────────────────────────────────

    def list_leads(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(LEAD_SELECT + " WHERE t.is_active = TRUE ORDER BY t.name, m.name")
            ).mappings().all()
        return [dict(r) for r in rows]

    def get_lead_for_team(self, team_id: Optional[int]) -> Optional[Dict[str, Any]]:
        if team_id is None:
            return None
        with self._engine.connect() as conn:
            row = conn.execute(
                text(LEAD_SELECT + " WHERE tl.team_id = :team_id"), {"team_id": team_id}
            ).mappings().first()
        return dict(row) if row else None

    def is_lead(self, chat_id: int) -> bool:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("""
                    SELECT 1 FROM team_leads tl
                    JOIN members m ON m.id = tl.member_id
                    WHERE m.chat_id = :chat_id
                """),
                {"chat_id": chat_id},
            ).first()
        return row is not None

    def assign_lead(self, team_id: int, member_id: int, phone_number: str) -> Dict[str, Any]:
        """Assign a lead to an active team that has none yet."""
        with self._engine.begin() as conn:
            if conn.execute(text("SELECT 1 FROM members WHERE id = :id"), {"id": member_id}).first() is None:
                raise KeyError(f"Member {member_id} not found")
            active = conn.execute(
                text("SELECT 1 FROM teams WHERE id = :id AND is_active = TRUE"), {"id": team_id}
            ).first()
            if active is None:
                raise ValueError(f"Team {team_id} does not exist or is not active")
            result = conn.execute(
                text("""
                    INSERT INTO team_leads (team_id, member_id, phone_number)
                    VALUES (:team_id, :member_id, :phone)
                    ON CONFLICT DO NOTHING
                """),
                {"team_id": team_id, "member_id": member_id, "phone": phone_number},
            )
            if result.rowcount == 0:
                raise ValueError(f"Team {team_id} already has a lead")
        logger.info("Team lead assigned team=%s member=%s", team_id, member_id)
        return self.get_lead_for_team(team_id)

    def update_lead_phone(self, lead_id: int, phone_number: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                text("UPDATE team_leads SET phone_number = :phone WHERE id = :id"),
                {"phone": phone_number, "id": lead_id},
            )
        if result.rowcount == 0:
            raise KeyError(f"Team lead {lead_id} not found")

    def remove_lead(self, lead_id: int) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(text("DELETE FROM team_leads WHERE id = :id"), {"id": lead_id})
        if result.rowcount == 0:
            raise KeyError(f"Team lead {lead_id} not found")
        logger.info("Team lead removed id=%s", lead_id)
