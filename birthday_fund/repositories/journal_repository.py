# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: outbound message journal.
Append-only; the only mutation is the one-time confirmation annotation.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Engine

from birthday_fund.core.config import settings
from birthday_fund.core.logging import get_logger
from birthday_fund.models.domain import JournalKind, MessageHandle
from birthday_fund.repositories._rows import as_iso

logger = get_logger(__name__)

JOURNAL_COLS = (
    "id, kind, recipient, message_handle, content, control_token, action_id, "
    "obligation_id, sent_at, confirmation_token, confirmed_at"
)


def _entry(row) -> Dict[str, Any]:
    entry = dict(row)
    entry["sent_at"] = as_iso(entry["sent_at"])
    entry["confirmed_at"] = as_iso(entry["confirmed_at"])
    return entry


class JournalRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def record(self, kind: JournalKind, handle: MessageHandle, content: str,
               control_token: Optional[str] = None, action_id: Optional[int] = None,
               obligation_id: Optional[int] = None) -> int:
        stmt = text("""
            INSERT INTO notification_journal
                (kind, recipient, message_handle, content, control_token,
                 action_id, obligation_id, sent_at)
            VALUES
                (:kind, :recipient, :handle, :content, :token, :action_id, :oid, :sent_at)
            RETURNING id
        """).bindparams(bindparam("sent_at", type_=DateTime(timezone=True)))
        with self._engine.begin() as conn:
            return conn.execute(stmt, {
                "kind": kind.value, "recipient": handle.chat_id, "handle": handle.message_id,
                "content": content, "token": control_token, "action_id": action_id,
                "oid": obligation_id, "sent_at": datetime.now(timezone.utc),
            }).scalar_one()

    def annotate_confirmation(self, origin: MessageHandle, token: str) -> bool:
        """Attach the first reply to the message that carried the control."""
        stmt = text("""
            UPDATE notification_journal
            SET confirmation_token = :token, confirmed_at = :at
            WHERE recipient = :chat_id AND message_handle = :message_id
            AND confirmed_at IS NULL
        """).bindparams(bindparam("at", type_=DateTime(timezone=True)))
        with self._engine.begin() as conn:
            result = conn.execute(stmt, {
                "token": token, "at": datetime.now(timezone.utc),
                "chat_id": origin.chat_id, "message_id": origin.message_id,
            })
        return result.rowcount > 0

    def list_entries(self, kind: Optional[str] = None, action_id: Optional[int] = None,
                     limit: Optional[int] = None) -> List[Dict[str, Any]]:
        conditions: list[str] = []
        params: Dict[str, Any] = {"limit": limit or settings.DEFAULT_JOURNAL_LIMIT}
        if kind:
            conditions.append("kind = :kind")
            params["kind"] = kind
        if action_id is not None:
            conditions.append("action_id = :action_id")
            params["action_id"] = action_id
        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"SELECT {JOURNAL_COLS} FROM notification_journal{where} ORDER BY id DESC LIMIT :limit"),
                params,
            ).mappings().all()
        return [_entry(r) for r in rows]

    def verify_connection(self) -> None:
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))
