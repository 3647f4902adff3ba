# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Admin endpoints — manual triggers and the admin registry.
Guarded by ``X-API-Key`` when API_KEYS is configured.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from birthday_fund.core.config import settings
from birthday_fund.core.dependencies import get_admin_repo, get_trigger_service
from birthday_fund.repositories.admin_repository import AdminRepository
from birthday_fund.schemas import AdminCreateRequest, AdminResponse, TriggerResponse
from birthday_fund.services.triggers import TRIGGER_NAMES, TriggerService


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    if not settings.API_KEYS:
        return
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing API key. Provide X-API-Key header.")
    if x_api_key not in settings.API_KEYS:
        raise HTTPException(status_code=403, detail="Invalid API key.")


router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_api_key)])


@router.get("/triggers")
def list_triggers():
    return {"triggers": list(TRIGGER_NAMES)}


@router.post("/triggers/{name}", response_model=TriggerResponse)
def run_trigger(
    name: str,
    precount: bool = Query(default=True),
    triggers: TriggerService = Depends(get_trigger_service),
):
    """Run one pass now. With ``precount`` a pass with nothing pending is skipped."""
    try:
        result = triggers.run(name, precount=precount)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return TriggerResponse(
        trigger=name,
        nothing_to_do=result.nothing_to_do,
        affected=result.affected,
        failed=result.failed,
        gaps=result.gaps,
    )


@router.get("/admins", response_model=list[AdminResponse])
def list_admins(repo: AdminRepository = Depends(get_admin_repo)):
    return repo.list_admins()


@router.post("/admins", status_code=201, response_model=AdminResponse)
def add_admin(payload: AdminCreateRequest, repo: AdminRepository = Depends(get_admin_repo)):
    if not repo.add_admin(payload.chat_id, payload.name):
        raise HTTPException(status_code=409, detail=f"Admin {payload.chat_id} already registered")
    return AdminResponse(chat_id=payload.chat_id, name=payload.name)


@router.delete("/admins/{chat_id}", status_code=204)
def remove_admin(chat_id: int, repo: AdminRepository = Depends(get_admin_repo)):
    try:
        repo.remove_admin(chat_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
