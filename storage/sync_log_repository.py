"""DynamoDB-backed sync log used for interval gating and observability."""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.errors import SyncLogStateError
from processor.models import SyncLogRecord, SyncStatus

logger = logging.getLogger(__name__)


class SyncLogHandle:
    """A RUNNING sync log that can be moved to a terminal state once."""

    def __init__(self, repository: 'SyncLogRepository', record: SyncLogRecord):
        self.repository = repository
        self.record = record

    @property
    def id(self) -> str:
        return self.record.id

    def mark_completed(
        self, events_processed: int = 0, events_created: int = 0, events_updated: int = 0
    ) -> SyncLogRecord:
        self.record = self.repository.mark_completed(
            self.record.id,
            events_processed=events_processed,
            events_created=events_created,
            events_updated=events_updated,
        )
        return self.record

    def mark_failed(self, error_message: str) -> SyncLogRecord:
        self.record = self.repository.mark_failed(self.record.id, error_message)
        return self.record


class SyncLogRepository:
    """Sync log store backed by a DynamoDB table keyed by ``id``."""

    def __init__(
        self,
        table_name: str,
        dynamodb=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the DynamoDB table
            dynamodb: Optional boto3 DynamoDB resource
            clock: Returns the current local time
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self.clock = clock

    def start_sync(
        self, job_kind: str, trigger_source: str = 'scheduled', environment: str = 'development'
    ) -> SyncLogHandle:
        """
        Create a RUNNING sync log.

        Args:
            job_kind: Kind of job, e.g. "mysideline"
            trigger_source: scheduled, manual or startup
            environment: Deployment environment name

        Returns:
            SyncLogHandle for the new record
        """
        record = SyncLogRecord(
            id=str(uuid.uuid4()),
            job_kind=job_kind,
            started_at=self.clock(),
            trigger_source=trigger_source,
            environment=environment,
        )
        self.table.put_item(Item=self._record_to_item(record))
        logger.info(
            f"Started {job_kind} sync log {record.id}",
            extra={'sync_log_id': record.id, 'trigger': trigger_source},
        )
        return SyncLogHandle(self, record)

    def mark_completed(
        self,
        log_id: str,
        events_processed: int = 0,
        events_created: int = 0,
        events_updated: int = 0,
    ) -> SyncLogRecord:
        return self._transition(
            log_id,
            SyncStatus.COMPLETED,
            {
                'events_processed': events_processed,
                'events_created': events_created,
                'events_updated': events_updated,
            },
        )

    def mark_failed(self, log_id: str, error_message: str) -> SyncLogRecord:
        return self._transition(
            log_id, SyncStatus.FAILED, {'error_message': error_message or 'Unknown error'}
        )

    def get(self, log_id: str) -> Optional[SyncLogRecord]:
        item = self.table.get_item(Key={'id': log_id}).get('Item')
        return self._item_to_record(item) if item else None

    def get_last_successful_sync(self, job_kind: str) -> Optional[SyncLogRecord]:
        """Most recently completed sync of a kind, or None."""
        completed = [
            record for record in self._records_of_kind(job_kind)
            if record.status == SyncStatus.COMPLETED and record.completed_at
        ]
        if not completed:
            return None
        return max(completed, key=lambda record: record.completed_at)

    def should_run_sync(self, job_kind: str, interval_hours: int = 24) -> bool:
        """
        True iff no sync of this kind completed within the last interval.

        Args:
            job_kind: Kind of job
            interval_hours: Minimum hours between successful syncs

        Returns:
            Whether a sync is due
        """
        last_sync = self.get_last_successful_sync(job_kind)
        if last_sync is None:
            return True

        elapsed = self.clock() - last_sync.completed_at
        return elapsed >= timedelta(hours=interval_hours)

    def get_sync_stats(self, job_kind: str, days: int = 30) -> Dict[str, Any]:
        """
        Summarise the syncs of a kind started within the last ``days`` days.

        Returns:
            Totals of syncs, successes and failures, summed counters and
            the latest successful and failed completion times
        """
        since = self.clock() - timedelta(days=days)
        syncs = sorted(
            (record for record in self._records_of_kind(job_kind) if record.started_at >= since),
            key=lambda record: record.started_at,
            reverse=True,
        )
        successful = [s for s in syncs if s.status == SyncStatus.COMPLETED]
        failed = [s for s in syncs if s.status == SyncStatus.FAILED]

        return {
            'total_syncs': len(syncs),
            'successful_syncs': len(successful),
            'failed_syncs': len(failed),
            'total_events_processed': sum(s.events_processed for s in syncs),
            'total_events_created': sum(s.events_created for s in syncs),
            'total_events_updated': sum(s.events_updated for s in syncs),
            'last_successful_sync': successful[0].completed_at if successful else None,
            'last_failed_sync': failed[0].completed_at if failed else None,
        }

    def _transition(self, log_id: str, status: SyncStatus, fields: Dict[str, Any]) -> SyncLogRecord:
        fields = dict(fields)
        fields['completed_at'] = self.clock().isoformat()

        names = {f"#f{i}": name for i, name in enumerate(fields)}
        names['#status'] = 'status'
        values = {f":v{i}": value for i, value in enumerate(fields.values())}
        values[':status'] = status.value
        values[':running'] = SyncStatus.RUNNING.value
        assignments = [f"#f{i} = :v{i}" for i in range(len(fields))]
        assignments.append('#status = :status')

        try:
            response = self.table.update_item(
                Key={'id': log_id},
                UpdateExpression='SET ' + ', '.join(assignments),
                ConditionExpression='#status = :running',
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues='ALL_NEW',
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
                raise SyncLogStateError(
                    f"Sync log {log_id} is not running; cannot mark {status.value}"
                ) from e
            raise

        record = self._item_to_record(response['Attributes'])
        logger.info(
            f"Sync log {log_id} marked {status.value}",
            extra={'sync_log_id': log_id, 'status': status.value},
        )
        return record

    def _records_of_kind(self, job_kind: str) -> List[SyncLogRecord]:
        kwargs = {'FilterExpression': Attr('job_kind').eq(job_kind)}
        response = self.table.scan(**kwargs)
        items = response.get('Items', [])

        while 'LastEvaluatedKey' in response:
            response = self.table.scan(ExclusiveStartKey=response['LastEvaluatedKey'], **kwargs)
            items.extend(response.get('Items', []))

        return [self._item_to_record(item) for item in items]

    def _record_to_item(self, record: SyncLogRecord) -> dict:
        item = {
            'id': record.id,
            'job_kind': record.job_kind,
            'started_at': record.started_at.isoformat(),
            'status': record.status.value,
            'trigger_source': record.trigger_source,
            'environment': record.environment,
            'events_processed': record.events_processed,
            'events_created': record.events_created,
            'events_updated': record.events_updated,
        }
        if record.completed_at:
            item['completed_at'] = record.completed_at.isoformat()
        if record.error_message:
            item['error_message'] = record.error_message
        return item

    def _item_to_record(self, item: dict) -> SyncLogRecord:
        completed_at = item.get('completed_at')
        return SyncLogRecord(
            id=item['id'],
            job_kind=item['job_kind'],
            started_at=datetime.fromisoformat(item['started_at']),
            status=SyncStatus(item['status']),
            trigger_source=item.get('trigger_source', 'scheduled'),
            environment=item.get('environment', 'development'),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            events_processed=int(item.get('events_processed', 0)),
            events_created=int(item.get('events_created', 0)),
            events_updated=int(item.get('events_updated', 0)),
            error_message=item.get('error_message'),
        )
