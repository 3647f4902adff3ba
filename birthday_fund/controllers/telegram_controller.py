# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: Telegram webhook — inbound updates from the bot API."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException

from birthday_fund.core.config import settings
from birthday_fund.core.dependencies import get_update_router
from birthday_fund.services.inbound_router import UpdateRouter

router = APIRouter(prefix="/api/v1/telegram", tags=["Telegram"])


@router.post("/webhook")
def telegram_webhook(
    update: Dict[str, Any] = Body(...),
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
    updates: UpdateRouter = Depends(get_update_router),
):
    if settings.TELEGRAM_WEBHOOK_SECRET and x_telegram_bot_api_secret_token != settings.TELEGRAM_WEBHOOK_SECRET:
        raise HTTPException(status_code=403, detail="Invalid webhook secret.")
    updates.handle_update(update)
    return {"ok": True}
