"""
Background Job Scheduler

Manages the suggestion refresh sweeps using APScheduler: a lightweight
hourly sweep that queues regeneration jobs and a nightly sweep that
regenerates inline. Every run is recorded in job_execution_logs.
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import async_sessionmaker

from devcollab.core.config import settings
from devcollab.core.database import AsyncSessionLocal
from devcollab.models.job_execution_log import JobExecutionLog
from devcollab.services.suggestion_refresh_service import SuggestionRefreshService

logger = logging.getLogger(__name__)

HOURLY_REFRESH_JOB = "refresh-stale-suggestions"
NIGHTLY_REFRESH_JOB = "nightly-refresh-suggestions"


class BackgroundScheduler:
    """Manages background job scheduling"""

    def __init__(
        self,
        refresh_service: SuggestionRefreshService,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        hourly_cron: Optional[str] = None,
        nightly_cron: Optional[str] = None,
    ):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.refresh_service = refresh_service
        self.session_factory = session_factory
        self.hourly_cron = hourly_cron or settings.REFRESH_HOURLY_CRON
        self.nightly_cron = nightly_cron or settings.REFRESH_NIGHTLY_CRON
        self.is_running = False

        self._jobs: Dict[str, Callable[[], Awaitable[dict]]] = {
            HOURLY_REFRESH_JOB: self.refresh_service.enqueue_stale_users,
            NIGHTLY_REFRESH_JOB: self.refresh_service.refresh_stale_users,
        }

    async def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler = AsyncIOScheduler(
                timezone='UTC',
                job_defaults={
                    'coalesce': True,  # Combine multiple pending executions into one
                    'max_instances': 1,  # Only one instance of each job at a time
                    'misfire_grace_time': 300  # 5 minutes grace period
                }
            )

            self.scheduler.add_listener(self._job_executed_listener, EVENT_JOB_EXECUTED)
            self.scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)

            self.scheduler.add_job(
                func=self.run_refresh_job,
                trigger=CronTrigger.from_crontab(self.hourly_cron, timezone='UTC'),
                args=[HOURLY_REFRESH_JOB],
                id=HOURLY_REFRESH_JOB,
                name='Hourly Stale Suggestions Refresh',
                replace_existing=True
            )

            self.scheduler.add_job(
                func=self.run_refresh_job,
                trigger=CronTrigger.from_crontab(self.nightly_cron, timezone='UTC'),
                args=[NIGHTLY_REFRESH_JOB],
                id=NIGHTLY_REFRESH_JOB,
                name='Nightly Suggestions Refresh',
                replace_existing=True
            )

            self.scheduler.start()
            self.is_running = True

            logger.info("Background scheduler started successfully")
            logger.info(f"Scheduled jobs: {[job.id for job in self.scheduler.get_jobs()]}")

        except Exception as e:
            logger.error(f"Failed to start background scheduler: {str(e)}", exc_info=True)
            raise

    async def stop(self):
        """Stop the background scheduler"""
        if not self.is_running or not self.scheduler:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Background scheduler stopped successfully")

        except Exception as e:
            logger.error(f"Error stopping background scheduler: {str(e)}", exc_info=True)

    async def run_refresh_job(self, job_id: str, triggered_manually: bool = False) -> dict:
        """Run one sweep and record it in job_execution_logs"""
        sweep = self._jobs[job_id]
        job_start = datetime.now(timezone.utc)
        logger.info(f"Starting {job_id} job")

        log_entry = JobExecutionLog(
            job_name=job_id,
            job_id=job_id,
            started_at=job_start,
            status="running",
            triggered_manually=triggered_manually
        )

        result = {}
        try:
            result = await sweep()

            log_entry.users_total = result.get('total', 0)
            log_entry.users_processed = result.get('processed', 0)
            log_entry.users_failed = result.get('errors', 0)
            log_entry.batches = result.get('batches', 0)
            log_entry.status = 'success' if result.get('success') else 'error'
            if not result.get('success'):
                log_entry.error_message = result.get('message', 'Unknown error')

            if result.get('failed_users'):
                logger.warning(f"Users that failed to refresh: {result['failed_users']}")

        except Exception as e:
            log_entry.status = 'error'
            log_entry.error_message = str(e)
            result = {"success": False, "message": str(e)}
            logger.error(f"{job_id} job failed: {str(e)}", exc_info=True)

        finally:
            job_end = datetime.now(timezone.utc)
            log_entry.completed_at = job_end
            log_entry.duration_seconds = (job_end - job_start).total_seconds()
            await self._save_job_log(log_entry)

        return result

    def _job_executed_listener(self, event):
        """Listener for successful job executions"""
        logger.info(f"Job '{event.job_id}' executed successfully")

    def _job_error_listener(self, event):
        """Listener for job execution errors"""
        logger.error(
            f"Job '{event.job_id}' failed: {event.exception}",
            exc_info=event.exception
        )

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs"""
        if not self.scheduler:
            return {"status": "not_started", "jobs": []}

        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            })

        return {
            "status": "running" if self.is_running else "stopped",
            "jobs": jobs,
            "scheduler_state": str(self.scheduler.state)
        }

    async def trigger_job(self, job_id: str) -> dict:
        """Run a sweep now, outside its schedule"""
        if job_id not in self._jobs:
            return {"success": False, "message": f"Unknown job '{job_id}'"}

        logger.info(f"Manually triggered {job_id} job")
        result = await self.run_refresh_job(job_id, triggered_manually=True)
        return {"success": bool(result.get("success")), "message": result.get("message"), "result": result}

    async def _save_job_log(self, log_entry: JobExecutionLog):
        """Save job execution log to database"""
        try:
            async with self.session_factory() as db:
                db.add(log_entry)
                await db.commit()
                logger.debug(f"Saved job execution log: {log_entry.job_name} - {log_entry.status}")
        except Exception as e:
            logger.error(f"Failed to save job execution log: {str(e)}", exc_info=True)

    async def get_recent_job_logs(self, limit: int = 10) -> List[dict]:
        """Get recent job execution logs"""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(JobExecutionLog)
                    .order_by(desc(JobExecutionLog.started_at))
                    .limit(limit)
                )
                logs = result.scalars().all()
                return [log.execution_summary for log in logs]
        except Exception as e:
            logger.error(f"Failed to get job logs: {str(e)}")
            return []
