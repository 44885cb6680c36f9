"""Integration tests for Lambda handler."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest

from lambda_function import lambda_handler
from logging_setup import JsonFormatter, setup_logging
from processor.models import SyncResult


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'MYSIDELINE_SYNC_ENABLED': 'true',
        'CARNIVAL_TABLE_NAME': 'test-carnivals',
        'SYNC_LOG_TABLE_NAME': 'test-sync-logs',
        'LOG_LEVEL': 'INFO',
        'NODE_ENV': 'production',
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.memory_limit_in_mb = 1024
    context.invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test-function'
    context.aws_request_id = 'test-request-id'
    return context


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    @patch('lambda_function.create_sync_service')
    def test_successful_sync(self, mock_create_service, mock_env, mock_context):
        """Test successful end-to-end sync process."""
        mock_service = Mock()
        mock_service.run_sync.return_value = SyncResult(
            success=True,
            events_processed=3,
            events_created=1,
            events_updated=2,
            logos_downloaded=1,
            message='Sync completed',
            sync_log_id='log-1',
        )
        mock_create_service.return_value = mock_service

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['message'] == 'Sync completed'
        assert body['events_processed'] == 3
        assert body['events_created'] == 1
        assert body['events_updated'] == 2
        assert body['sync_log_id'] == 'log-1'
        assert 'duration_seconds' in body

        config = mock_create_service.call_args.args[0]
        assert config.sync_enabled is True
        assert config.carnival_table_name == 'test-carnivals'
        mock_service.run_sync.assert_called_once_with(trigger='scheduled')

    @patch('lambda_function.create_sync_service')
    def test_manual_trigger(self, mock_create_service, mock_env, mock_context):
        mock_create_service.return_value.run_sync.return_value = SyncResult(success=True)

        lambda_handler({'trigger': 'manual'}, mock_context)

        mock_create_service.return_value.run_sync.assert_called_once_with(trigger='manual')

    @patch('lambda_function.create_sync_service')
    def test_unknown_trigger_treated_as_scheduled(self, mock_create_service, mock_env, mock_context):
        mock_create_service.return_value.run_sync.return_value = SyncResult(success=True)

        lambda_handler({'trigger': 'webhook'}, mock_context)

        mock_create_service.return_value.run_sync.assert_called_once_with(trigger='scheduled')

    @patch('lambda_function.create_sync_service')
    def test_failed_sync(self, mock_create_service, mock_env, mock_context):
        mock_create_service.return_value.run_sync.return_value = SyncResult(
            success=False, error='browser exploded', sync_log_id='log-2'
        )

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Sync failed'
        assert body['error'] == 'browser exploded'
        assert body['sync_log_id'] == 'log-2'

    @patch('lambda_function.create_sync_service')
    def test_unexpected_exception(self, mock_create_service, mock_env, mock_context):
        mock_create_service.side_effect = Exception('DynamoDB unavailable')

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Sync failed'
        assert body['error'] == 'DynamoDB unavailable'
        assert body['error_type'] == 'Exception'

    @patch('lambda_function.create_sync_service')
    def test_disabled_sync_is_success(self, mock_create_service, mock_env, mock_context):
        mock_create_service.return_value.run_sync.return_value = SyncResult(success=True, message='disabled')

        response = lambda_handler(None, mock_context)

        assert response['statusCode'] == 200
        assert json.loads(response['body'])['message'] == 'disabled'


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_unknown_level(self):
        setup_logging('LOUD')
        assert logging.getLogger().level == logging.INFO

    def test_json_formatter_includes_extra(self):
        record = logging.LogRecord('sync', logging.INFO, __file__, 1, 'Sync started', (), None)
        record.sync_log_id = 'log-1'

        output = json.loads(JsonFormatter().format(record))

        assert output['message'] == 'Sync started'
        assert output['level'] == 'INFO'
        assert output['logger'] == 'sync'
        assert output['sync_log_id'] == 'log-1'
