"""Shared fixtures for the MySideline sync tests."""
import os
from datetime import datetime
from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from storage.carnival_repository import CarnivalRepository
from storage.sync_log_repository import SyncLogRepository

NOW = datetime(2025, 6, 1, 10, 0, 0)

CARNIVAL_TABLE = 'test-carnivals'
SYNC_LOG_TABLE = 'test-sync-logs'


def fixed_clock():
    return NOW


@pytest.fixture
def aws_env():
    """Fake AWS credentials so boto3 never reaches a real account."""
    env_vars = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1',
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def dynamodb(aws_env):
    """Mocked DynamoDB resource with the carnival and sync log tables."""
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name='us-east-1')

        for table_name in (CARNIVAL_TABLE, SYNC_LOG_TABLE):
            resource.create_table(
                TableName=table_name,
                KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
                AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
                BillingMode='PAY_PER_REQUEST',
            )

        yield resource


@pytest.fixture
def carnival_repository(dynamodb):
    return CarnivalRepository(CARNIVAL_TABLE, dynamodb=dynamodb, clock=fixed_clock)


@pytest.fixture
def sync_log_repository(dynamodb):
    return SyncLogRepository(SYNC_LOG_TABLE, dynamodb=dynamodb, clock=fixed_clock)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return fixed_clock
