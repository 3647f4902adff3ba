# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Daily clock: one cron job per pass, in the configured timezone."""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from birthday_fund.core.config import settings
from birthday_fund.core.logging import get_logger
from birthday_fund.services.triggers import TriggerService

logger = get_logger(__name__)


def job_times() -> dict[str, str]:
    return {
        "scan_obligations": settings.SCAN_OBLIGATIONS_AT,
        "fan_out_requests": settings.FAN_OUT_REQUESTS_AT,
        "send_member_notifications": settings.MEMBER_NOTIFY_AT,
        "send_teamlead_notifications": settings.TEAMLEAD_NOTIFY_AT,
        "send_birthday_wishes": settings.BIRTHDAY_WISH_AT,
        "send_payout_reminders": settings.PAYOUT_REMINDER_AT,
    }


def _run_job(triggers: TriggerService, name: str) -> None:
    try:
        triggers.run(name, precount=False)
    except Exception:
        logger.exception("Scheduled pass %s crashed", name)


def build_scheduler(triggers: TriggerService) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone=settings.TIMEZONE)
    for name, at in job_times().items():
        hour, minute = (int(part) for part in at.split(":"))
        scheduler.add_job(
            _run_job,
            CronTrigger(hour=hour, minute=minute, timezone=settings.TIMEZONE),
            args=(triggers, name),
            id=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled %s daily at %s %s", name, at, settings.TIMEZONE)
    return scheduler
