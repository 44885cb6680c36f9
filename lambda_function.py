"""AWS Lambda handler for a single MySideline carnival sync."""
import json
import logging
import time
from typing import Any, Dict

from config import SyncConfig
from logging_setup import setup_logging
from processor.models import TriggerSource
from sync_service import create_sync_service

_TRIGGERS = {trigger.value for trigger in TriggerSource}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Run one MySideline sync.

    Args:
        event: EventBridge or manual invocation payload; ``trigger``
            selects manual or scheduled (default scheduled)
        context: Lambda context object

    Returns:
        Response dict with statusCode and the sync result
    """
    config = SyncConfig.from_env()

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    trigger = (event or {}).get('trigger') or TriggerSource.SCHEDULED.value
    if trigger not in _TRIGGERS:
        logger.warning(f"Unknown trigger '{trigger}', treating as scheduled")
        trigger = TriggerSource.SCHEDULED.value

    logger.info(
        "Lambda execution started",
        extra={
            'trigger': trigger,
            'carnival_table': config.carnival_table_name,
            'sync_log_table': config.sync_log_table_name,
        }
    )

    try:
        sync_service = create_sync_service(config)
        result = sync_service.run_sync(trigger=trigger)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Sync failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time
    body = result.to_dict()
    body['duration_seconds'] = round(duration, 2)

    if not result.success:
        logger.error(
            "Lambda execution completed with a failed sync",
            extra={'duration_seconds': round(duration, 2), 'error': result.error}
        )
        body['message'] = 'Sync failed'
        return {'statusCode': 500, 'body': json.dumps(body)}

    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events_processed': result.events_processed,
            'events_created': result.events_created,
            'events_updated': result.events_updated
        }
    )
    return {'statusCode': 200, 'body': json.dumps(body)}
