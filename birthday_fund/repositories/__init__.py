# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package — SQL data access, one class per aggregate."""
from birthday_fund.repositories.action_repository import ActionRepository
from birthday_fund.repositories.admin_repository import AdminRepository
from birthday_fund.repositories.journal_repository import JournalRepository
from birthday_fund.repositories.member_repository import MemberRepository
from birthday_fund.repositories.obligation_repository import ObligationRepository
from birthday_fund.repositories.team_repository import TeamRepository

__all__ = [
    "ActionRepository",
    "AdminRepository",
    "JournalRepository",
    "MemberRepository",
    "ObligationRepository",
    "TeamRepository",
]
