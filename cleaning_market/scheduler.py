"""APScheduler setup: runs the auto-completion sweep on a fixed interval."""

import logging
from datetime import datetime

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from cleaning_market.booking.clock import Clock
from cleaning_market.booking.sweeper import sweep

logger = logging.getLogger("cleaning_market.scheduler")

SWEEP_JOB_ID = "auto_complete_sweep"

_scheduler: BackgroundScheduler | None = None
_last_sweep: dict = {}


def _sweep_listener(event):
    """Record the outcome of each sweep run; failures wait for the next tick."""
    if event.code == EVENT_JOB_MISSED:
        logger.warning("Sweep %s missed its fire time (scheduled %s)", event.job_id, event.scheduled_run_time)
        return

    _last_sweep["finished_at"] = datetime.now().isoformat(timespec="seconds")
    if event.exception:
        _last_sweep["completed"] = None
        _last_sweep["error"] = repr(event.exception)
        logger.error("Sweep %s failed: %s\n%s", event.job_id, event.exception, event.traceback)
    else:
        _last_sweep["completed"] = event.retval
        _last_sweep["error"] = None


def run_sweep(session_factory: sessionmaker, clock: Clock) -> int:
    """One timer-driven sweep in its own session. Returns the completed count."""
    db = session_factory()
    try:
        count = sweep(db, clock.now())
        logger.info("Sweep finished: %d request(s) auto-completed", count)
        return count
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_scheduler(session_factory: sessionmaker, clock: Clock, interval_minutes: int = 5) -> None:
    """Start the background scheduler; the first sweep fires immediately."""
    global _scheduler
    if interval_minutes <= 0:
        raise ValueError(f"Sweep interval must be positive, got {interval_minutes}")
    if _scheduler is not None:
        return
    _scheduler = BackgroundScheduler()
    _scheduler.add_listener(_sweep_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)
    _scheduler.add_job(
        run_sweep,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[session_factory, clock],
        id=SWEEP_JOB_ID,
        name="Auto-complete past-due requests",
        next_run_time=datetime.now(),
        coalesce=True,
        max_instances=1,
        replace_existing=True,
    )
    _scheduler.start()
    logger.info("Sweep scheduler started, every %d minute(s) in %s", interval_minutes, clock.tz_name)


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        _last_sweep.clear()
        logger.info("Sweep scheduler stopped")


def get_scheduler_info() -> dict:
    """Scheduler state for the diagnostics endpoint."""
    if _scheduler is None:
        return {"running": False, "next_sweep": None, "last_sweep": None}
    job = _scheduler.get_job(SWEEP_JOB_ID)
    return {
        "running": _scheduler.running,
        "next_sweep": job.next_run_time.isoformat() if job and job.next_run_time else None,
        "trigger": str(job.trigger) if job else None,
        "last_sweep": dict(_last_sweep) or None,
    }
