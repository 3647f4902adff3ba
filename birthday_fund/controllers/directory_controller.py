# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Directory endpoints — teams, members, team leads, obligations, journal.
Thin HTTP layer over the repositories.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError

from birthday_fund.controllers.admin_controller import require_api_key
from birthday_fund.core.dependencies import (
    get_action_repo,
    get_journal_repo,
    get_lifecycle_service,
    get_member_repo,
    get_obligation_repo,
    get_team_repo,
    get_trigger_service,
)
from birthday_fund.repositories import (
    ActionRepository,
    JournalRepository,
    MemberRepository,
    ObligationRepository,
    TeamRepository,
)
from birthday_fund.schemas import (
    JournalEntryResponse,
    LeadCreateRequest,
    LeadResponse,
    LeadUpdateRequest,
    MemberResponse,
    ObligationDetail,
    ObligationResponse,
    TeamCreateRequest,
    TeamResponse,
    UpcomingBirthday,
)
from birthday_fund.services.lifecycle_service import LifecycleService
from birthday_fund.services.triggers import TriggerService

router = APIRouter(prefix="/api/v1", tags=["Directory"], dependencies=[Depends(require_api_key)])


# ── Teams ──

@router.get("/teams", response_model=list[TeamResponse])
def list_teams(active_only: bool = False, repo: TeamRepository = Depends(get_team_repo)):
    return repo.list_teams(active_only=active_only)


@router.post("/teams", status_code=201, response_model=TeamResponse)
def create_team(payload: TeamCreateRequest, repo: TeamRepository = Depends(get_team_repo)):
    try:
        return repo.create_team(payload.name, is_active=payload.is_active)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"Team '{payload.name}' already exists")


@router.post("/teams/{team_id}/activate", response_model=TeamResponse)
def activate_team(team_id: int, repo: TeamRepository = Depends(get_team_repo)):
    try:
        return repo.set_active(team_id, True)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/teams/{team_id}/deactivate", response_model=TeamResponse)
def deactivate_team(team_id: int, repo: TeamRepository = Depends(get_team_repo)):
    try:
        return repo.set_active(team_id, False)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Members ──

@router.get("/members", response_model=list[MemberResponse])
def list_members(active_only: bool = False, repo: MemberRepository = Depends(get_member_repo)):
    return repo.list_members(active_only=active_only)


@router.get("/members/upcoming", response_model=list[UpcomingBirthday])
def upcoming_birthdays(
    days: Optional[int] = Query(default=None, ge=1, le=366),
    triggers: TriggerService = Depends(get_trigger_service),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    return lifecycle.upcoming_birthdays(triggers.today(), days)


@router.get("/members/{member_id}", response_model=MemberResponse)
def get_member(member_id: int, repo: MemberRepository = Depends(get_member_repo)):
    member = repo.get_member(member_id)
    if not member:
        raise HTTPException(status_code=404, detail=f"Member {member_id} not found")
    return member


# ── Team leads ──

@router.get("/leads", response_model=list[LeadResponse])
def list_leads(repo: TeamRepository = Depends(get_team_repo)):
    return repo.list_leads()


@router.post("/leads", status_code=201, response_model=LeadResponse)
def assign_lead(payload: LeadCreateRequest, repo: TeamRepository = Depends(get_team_repo)):
    try:
        return repo.assign_lead(payload.team_id, payload.member_id, payload.phone_number)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/leads/{lead_id}", status_code=204)
def update_lead(lead_id: int, payload: LeadUpdateRequest, repo: TeamRepository = Depends(get_team_repo)):
    try:
        repo.update_lead_phone(lead_id, payload.phone_number)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/leads/{lead_id}", status_code=204)
def remove_lead(lead_id: int, repo: TeamRepository = Depends(get_team_repo)):
    try:
        repo.remove_lead(lead_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Obligations ──

@router.get("/obligations", response_model=list[ObligationResponse])
def list_obligations(
    year: Optional[int] = Query(default=None, ge=1900, le=3000),
    repo: ObligationRepository = Depends(get_obligation_repo),
):
    return repo.list_obligations(year)


@router.get("/obligations/{obligation_id}", response_model=ObligationDetail)
def get_obligation(
    obligation_id: int,
    repo: ObligationRepository = Depends(get_obligation_repo),
    actions: ActionRepository = Depends(get_action_repo),
):
    obligation = repo.get(obligation_id)
    if not obligation:
        raise HTTPException(status_code=404, detail=f"Obligation {obligation_id} not found")
    return {**obligation, "actions": actions.list_for_obligation(obligation_id)}


# ── Journal ──

@router.get("/journal", response_model=list[JournalEntryResponse])
def list_journal(
    kind: Optional[str] = None,
    action_id: Optional[int] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    repo: JournalRepository = Depends(get_journal_repo),
):
    return repo.list_entries(kind=kind, action_id=action_id, limit=limit)
