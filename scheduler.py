"""Daily scheduling of the MySideline sync."""
import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import SyncConfig
from logging_setup import setup_logging
from processor.models import SyncResult, TriggerSource
from sync_service import JOB_KIND, SyncService, create_sync_service

logger = logging.getLogger(__name__)

GATE_CHECK_RETRIES = 3
GATE_RETRY_DELAY_SECONDS = 3


class SyncScheduler:
    """Registers the daily sync and the startup interval-gate check."""

    def __init__(
        self,
        sync_service: SyncService,
        config: SyncConfig,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.sync_service = sync_service
        self.config = config
        self.scheduler = scheduler or BackgroundScheduler()

    def every(self, cron: str, task: Callable[[], object], job_id: str) -> None:
        """Run task on a five-field crontab expression, local time."""
        self.scheduler.add_job(
            task,
            CronTrigger.from_crontab(cron),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def after(self, delay_seconds: float, task: Callable[[], object], job_id: str) -> None:
        """Run task once after a delay."""
        self.scheduler.add_job(
            task,
            'date',
            run_date=datetime.now() + timedelta(seconds=delay_seconds),
            id=job_id,
            replace_existing=True,
        )

    def start(self) -> None:
        self.every(self.config.sync_cron, self.run_scheduled_sync, job_id='mysideline-daily')
        self.after(
            self.config.startup_delay_seconds,
            self.check_and_run_startup_sync,
            job_id='mysideline-startup',
        )
        self.scheduler.start()
        logger.info(
            f"Scheduled MySideline sync with cron '{self.config.sync_cron}'",
            extra={'startup_delay_seconds': self.config.startup_delay_seconds},
        )

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("MySideline sync scheduler stopped")

    def run_scheduled_sync(self) -> SyncResult:
        logger.info("Starting scheduled MySideline sync")
        return self.sync_service.run_sync(trigger=TriggerSource.SCHEDULED.value)

    def trigger_manual(self) -> SyncResult:
        logger.info("Starting manual MySideline sync")
        return self.sync_service.run_sync(trigger=TriggerSource.MANUAL.value)

    def should_run_startup_sync(self) -> bool:
        """
        Consult the interval gate.

        Retries while the sync log store is not ready.

        Raises:
            Exception: The last store error once retries are exhausted
        """
        sync_logs = self.sync_service.sync_log_repository
        hours = self.config.sync_interval_hours

        for attempt in range(1, GATE_CHECK_RETRIES + 1):
            try:
                should_sync = sync_logs.should_run_sync(JOB_KIND, hours)
                last_sync = sync_logs.get_last_successful_sync(JOB_KIND)
                break
            except Exception as e:
                if attempt == GATE_CHECK_RETRIES:
                    raise
                logger.warning(
                    f"Sync log store not ready, retrying in {GATE_RETRY_DELAY_SECONDS} seconds "
                    f"({attempt}/{GATE_CHECK_RETRIES}): {e}"
                )
                time.sleep(GATE_RETRY_DELAY_SECONDS)

        if last_sync is None:
            logger.info("No previous MySideline sync found")
        else:
            hours_since = (datetime.now() - last_sync.completed_at).total_seconds() / 3600
            logger.info(f"Last MySideline sync was {hours_since:.1f} hours ago")

        return should_sync

    def check_and_run_startup_sync(self) -> Optional[SyncResult]:
        try:
            if not self.should_run_startup_sync():
                logger.info("MySideline startup sync skipped - recent sync found")
                return None
        except Exception as e:
            logger.error(f"Failed to check for startup sync: {e}")
            logger.info("Startup MySideline sync skipped; it can still be triggered manually")
            return None

        return self.sync_service.run_sync(trigger=TriggerSource.STARTUP.value)


def main() -> None:
    """Run the scheduler until interrupted."""
    config = SyncConfig.from_env()
    setup_logging(config.log_level)

    sync_scheduler = SyncScheduler(create_sync_service(config), config)
    sync_scheduler.start()
    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down MySideline sync scheduler")
    finally:
        sync_scheduler.shutdown()


if __name__ == '__main__':
    main()
