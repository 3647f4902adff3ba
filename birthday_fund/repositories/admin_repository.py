# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository: administrator endpoints."""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine


class AdminRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def is_admin(self, chat_id: int) -> bool:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT 1 FROM admins WHERE chat_id = :chat_id"), {"chat_id": chat_id}
            ).first()
        return row is not None

    def add_admin(self, chat_id: int, name: Optional[str] = None) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(
                text("INSERT INTO admins (chat_id, name) VALUES (:chat_id, :name) ON CONFLICT DO NOTHING"),
                {"chat_id": chat_id, "name": name},
            )
        return result.rowcount == 1

    def remove_admin(self, chat_id: int) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(text("DELETE FROM admins WHERE chat_id = :chat_id"), {"chat_id": chat_id})
        if result.rowcount == 0:
            raise KeyError(f"Admin {chat_id} not found")

    def list_admins(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(text("SELECT chat_id, name FROM admins ORDER BY chat_id")).mappings().all()
        return [dict(r) for r in rows]
