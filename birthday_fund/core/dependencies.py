# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""FastAPI dependency injection wiring."""
from birthday_fund.core.config import settings
from birthday_fund.core.database import engine
from birthday_fund.repositories import (
    ActionRepository,
    AdminRepository,
    JournalRepository,
    MemberRepository,
    ObligationRepository,
    TeamRepository,
)
from birthday_fund.services.conversation_store import ConversationStore
from birthday_fund.services.dispatcher import NotificationDispatcher
from birthday_fund.services.inbound_router import UpdateRouter
from birthday_fund.services.lifecycle_service import LifecycleService
from birthday_fund.services.onboarding import OnboardingService
from birthday_fund.services.reconciler import ConfirmationReconciler
from birthday_fund.services.telegram_client import TelegramClient
from birthday_fund.services.triggers import TriggerService

_teams = TeamRepository(engine)
_members = MemberRepository(engine)
_admins = AdminRepository(engine)
_obligations = ObligationRepository(engine)
_actions = ActionRepository(engine)
_journal = JournalRepository(engine)

_messenger = TelegramClient()
_store = ConversationStore(settings.CONVERSATION_IDLE_SECONDS)

_lifecycle = LifecycleService(_members, _obligations, _actions, _teams)
_dispatcher = NotificationDispatcher(_obligations, _actions, _members, _journal, _messenger)
_reconciler = ConfirmationReconciler(_actions)
_onboarding = OnboardingService(_store, _teams, _members, _messenger)
_triggers = TriggerService(_lifecycle, _dispatcher, _admins)
_router = UpdateRouter(_onboarding, _reconciler, _triggers, _lifecycle, _teams, _journal, _messenger)


def get_team_repo() -> TeamRepository:
    return _teams


def get_member_repo() -> MemberRepository:
    return _members


def get_admin_repo() -> AdminRepository:
    return _admins


def get_obligation_repo() -> ObligationRepository:
    return _obligations


def get_action_repo() -> ActionRepository:
    return _actions


def get_journal_repo() -> JournalRepository:
    return _journal


def get_conversation_store() -> ConversationStore:
    return _store


def get_trigger_service() -> TriggerService:
    return _triggers


def get_update_router() -> UpdateRouter:
    return _router


def get_lifecycle_service() -> LifecycleService:
    return _lifecycle
