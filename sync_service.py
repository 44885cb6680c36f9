"""Orchestrates one MySideline synchronisation run."""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import boto3

from config import SyncConfig
from media.image_naming import LOGO
from media.logo_downloader import LogoDownloader
from processor.event_validator import EventValidator
from processor.models import LogoRequest, ReconcileResult, SyncResult, TriggerSource
from processor.reconciler import CarnivalReconciler, is_remote_url
from scraper.mysideline_scraper import MySidelineScraper
from storage.carnival_repository import CarnivalRepository
from storage.sync_log_repository import SyncLogRepository

logger = logging.getLogger(__name__)

JOB_KIND = 'mysideline'
CREATED_WINDOW = timedelta(minutes=1)


class SyncService:
    """Runs scrape, validate, reconcile and logo download under a single-writer lock."""

    def __init__(
        self,
        config: SyncConfig,
        scraper: MySidelineScraper,
        validator: EventValidator,
        reconciler: CarnivalReconciler,
        logo_downloader: LogoDownloader,
        carnival_repository: CarnivalRepository,
        sync_log_repository: SyncLogRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.scraper = scraper
        self.validator = validator
        self.reconciler = reconciler
        self.logo_downloader = logo_downloader
        self.carnival_repository = carnival_repository
        self.sync_log_repository = sync_log_repository
        self.clock = clock
        self.last_sync_date: Optional[datetime] = None
        self._run_lock = threading.Lock()

        logger.info(
            "MySideline sync service initialized",
            extra={'sync_enabled': config.sync_enabled, 'environment': config.environment},
        )

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def get_sync_status(self) -> Dict[str, Any]:
        return {
            'is_running': self.is_running,
            'last_sync': self.last_sync_date,
            'sync_enabled': self.config.sync_enabled,
        }

    def run_sync(self, trigger: str = TriggerSource.SCHEDULED.value) -> SyncResult:
        """
        Run one synchronisation.

        Args:
            trigger: scheduled, manual or startup

        Returns:
            SyncResult; failures are reported, never raised
        """
        if not self.config.sync_enabled:
            logger.info("MySideline sync is disabled via MYSIDELINE_SYNC_ENABLED configuration")
            return SyncResult(success=True, message='disabled')

        if not self._run_lock.acquire(blocking=False):
            logger.info("MySideline sync already running, skipping")
            return SyncResult(success=True, skipped=True, message='already running')

        try:
            return self._run_locked(trigger)
        finally:
            self._run_lock.release()

    def _run_locked(self, trigger: str) -> SyncResult:
        logger.info("Starting MySideline carnival synchronisation", extra={'trigger': trigger})

        try:
            sync_log = self.sync_log_repository.start_sync(
                JOB_KIND, trigger_source=trigger, environment=self.config.environment
            )
        except Exception as e:
            logger.error(f"Unable to open sync log: {e}", exc_info=True)
            return SyncResult(success=False, error=str(e))

        try:
            result = self._run_pipeline()
            result.sync_log_id = sync_log.id

            sync_log.mark_completed(
                events_processed=result.events_processed,
                events_created=result.events_created,
                events_updated=result.events_updated,
            )

            logger.info(
                f"MySideline sync completed. Processed {result.events_processed} events "
                f"({result.events_created} new, {result.events_updated} updated)",
                extra={
                    'sync_log_id': sync_log.id,
                    'events_processed': result.events_processed,
                    'events_created': result.events_created,
                    'events_updated': result.events_updated,
                },
            )
            return result

        except Exception as e:
            logger.error(
                f"MySideline sync failed: {e}",
                extra={'sync_log_id': sync_log.id, 'error_type': type(e).__name__},
                exc_info=True,
            )
            try:
                sync_log.mark_failed(str(e))
            except Exception as log_error:
                logger.error(f"Unable to mark sync log {sync_log.id} failed: {log_error}")
            return SyncResult(success=False, error=str(e), sync_log_id=sync_log.id)

    def _run_pipeline(self) -> SyncResult:
        deactivation = self.reconciler.deactivate_past_carnivals()
        if not deactivation.success:
            logger.warning(f"Past carnival deactivation failed: {deactivation.error}")

        raw_events = self.scraper.scrape()
        if not raw_events:
            logger.info("No events found from MySideline scraper")
            return SyncResult(
                success=True,
                past_carnivals_deactivated=deactivation.deactivated_count,
                message='No events found',
            )

        cleaned_events = self.validator.validate_events(raw_events)
        if not cleaned_events:
            logger.info("No events passed validation checks")
            return SyncResult(
                success=True,
                past_carnivals_deactivated=deactivation.deactivated_count,
                message='No events passed validation',
            )

        reconciled = self.reconciler.reconcile(cleaned_events)
        processed = reconciled.processed

        created_since = self.clock() - CREATED_WINDOW
        events_created = sum(
            1 for carnival in processed
            if carnival.created_at and carnival.created_at >= created_since
        )

        downloaded, failed = self._localise_logos(reconciled)
        self.last_sync_date = self.clock()

        return SyncResult(
            success=True,
            events_processed=len(processed),
            events_created=events_created,
            events_updated=len(processed) - events_created,
            past_carnivals_deactivated=deactivation.deactivated_count,
            logos_downloaded=downloaded,
            logos_failed=failed,
            message='Sync completed',
            last_sync=self.last_sync_date,
        )

    def _localise_logos(self, reconciled: ReconcileResult):
        requests: List[LogoRequest] = [
            LogoRequest(
                logo_url=item.logo_url,
                entity_type='carnival',
                entity_id=item.carnival.id,
                image_type=LOGO,
            )
            for item in reconciled.items
            if item.carnival and is_remote_url(item.logo_url)
        ]
        if not requests:
            return 0, 0

        logger.info(f"Downloading logos for {len(requests)} carnivals")
        results = self.logo_downloader.download_many(requests)
        downloaded = failed = 0

        for result in results:
            carnival_id = result.request.entity_id
            new_url = result.public_url if result.success else None
            if result.success:
                downloaded += 1
            else:
                failed += 1
                logger.warning(f"Failed to download logo for carnival {carnival_id}: {result.error}")

            try:
                self.carnival_repository.update(carnival_id, {'club_logo_url': new_url})
            except Exception as e:
                logger.error(f"Failed to update logo URL for carnival {carnival_id}: {e}")

        return downloaded, failed


def create_sync_service(config: SyncConfig, dynamodb=None) -> SyncService:
    """
    Wire a SyncService from configuration.

    Args:
        config: Sync configuration
        dynamodb: Optional boto3 DynamoDB resource

    Returns:
        SyncService
    """
    dynamodb = dynamodb or boto3.resource('dynamodb')
    carnival_repository = CarnivalRepository(config.carnival_table_name, dynamodb=dynamodb)
    sync_log_repository = SyncLogRepository(config.sync_log_table_name, dynamodb=dynamodb)

    return SyncService(
        config=config,
        scraper=MySidelineScraper(config.scraper),
        validator=EventValidator(),
        reconciler=CarnivalReconciler(carnival_repository),
        logo_downloader=LogoDownloader(config.logo),
        carnival_repository=carnival_repository,
        sync_log_repository=sync_log_repository,
    )
