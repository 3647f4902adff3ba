# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Table definitions.

Uniqueness invariants live here as constraints so concurrent passes can
rely on ``ON CONFLICT DO NOTHING`` instead of check-then-insert.
"""
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    false,
    func,
    text,
    true,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

teams = Table(
    "teams",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)

members = Table(
    "members",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("birthday", Date, nullable=False),
    Column("phone_number", String(32), nullable=False),
    Column("team_id", Integer, ForeignKey("teams.id"), nullable=True),
    Column("chat_id", BigInteger, nullable=False),
    Column("user_id", BigInteger, nullable=True, unique=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)

team_leads = Table(
    "team_leads",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("team_id", Integer, ForeignKey("teams.id"), nullable=False, unique=True),
    Column("member_id", Integer, ForeignKey("members.id"), nullable=False),
    Column("phone_number", String(32), nullable=False),
)

admins = Table(
    "admins",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("chat_id", BigInteger, nullable=False, unique=True),
    Column("name", String(255), nullable=True),
)

yearly_obligations = Table(
    "yearly_obligations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("member_id", Integer, ForeignKey("members.id"), nullable=False),
    Column("year", Integer, nullable=False),
    Column("members_notified", Boolean, nullable=False, server_default=false()),
    Column("teamlead_notified", Boolean, nullable=False, server_default=false()),
    Column("money_transferred", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("member_id", "year", name="uq_obligation_member_year"),
)

actions = Table(
    "actions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("obligation_id", Integer, ForeignKey("yearly_obligations.id"), nullable=False),
    Column("member_id", Integer, ForeignKey("members.id"), nullable=False),
    Column("kind", String(16), nullable=False),
    Column("is_done", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("obligation_id", "member_id", "kind", name="uq_action_assignment"),
    Index(
        "uq_action_one_payout",
        "obligation_id",
        unique=True,
        postgresql_where=text("kind = 'payout'"),
        sqlite_where=text("kind = 'payout'"),
    ),
)

notification_journal = Table(
    "notification_journal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("kind", String(32), nullable=False),
    Column("recipient", BigInteger, nullable=False),
    Column("message_handle", BigInteger, nullable=True),
    Column("content", Text, nullable=False),
    Column("control_token", String(64), nullable=True),
    Column("action_id", Integer, ForeignKey("actions.id"), nullable=True),
    Column("obligation_id", Integer, ForeignKey("yearly_obligations.id"), nullable=True),
    Column("sent_at", DateTime(timezone=True), server_default=func.now()),
    Column("confirmation_token", String(64), nullable=True),
    Column("confirmed_at", DateTime(timezone=True), nullable=True),
    Index("ix_journal_message", "recipient", "message_handle"),
)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
