"""
Shared fixtures: fake AWS credentials, moto-backed tables, buckets and SES.
"""
import json
import os
import sys

import boto3
import pytest
from moto import mock_aws

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import config  # noqa: E402
from models import INDEX_KEYS  # noqa: E402
from services.dynamodb_service import DynamoDBService  # noqa: E402

TABLE_NAME = 'test-projecthub-table'
IDEMPOTENCY_TABLE_NAME = 'test-idempotency-table'
ATTACHMENTS_BUCKET = 'test-attachments-bucket'
EXPORT_BUCKET = 'test-export-bucket'
FROM_EMAIL = 'noreply@projecthub.com'


@pytest.fixture(autouse=True)
def aws_environment(monkeypatch):
    """Fake credentials and the environment every handler reads."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.setenv('DYNAMODB_TABLE', TABLE_NAME)
    monkeypatch.setenv('IDEMPOTENCY_TABLE', IDEMPOTENCY_TABLE_NAME)
    monkeypatch.setenv('ATTACHMENTS_BUCKET', ATTACHMENTS_BUCKET)
    monkeypatch.setenv('EXPORT_BUCKET', EXPORT_BUCKET)
    monkeypatch.setenv('SES_FROM_EMAIL', FROM_EMAIL)
    monkeypatch.setenv('APP_URL', 'https://app.example.com')
    monkeypatch.delenv('SLACK_WEBHOOK_URL', raising=False)
    # Reset config module to pick up new env vars
    config._config = None
    yield
    config._config = None


def create_app_table(client):
    client.create_table(
        TableName=TABLE_NAME,
        AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}] + [
            {'AttributeName': key, 'AttributeType': 'S'} for key in INDEX_KEYS.values()
        ],
        KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
        GlobalSecondaryIndexes=[
            {
                'IndexName': index_name,
                'KeySchema': [{'AttributeName': key, 'KeyType': 'HASH'}],
                'Projection': {'ProjectionType': 'ALL'},
            }
            for index_name, key in INDEX_KEYS.items()
        ],
        BillingMode='PAY_PER_REQUEST'
    )


@pytest.fixture
def aws():
    """moto with the application table, idempotency table, buckets and a verified sender."""
    with mock_aws():
        dynamodb = boto3.client('dynamodb', region_name='us-east-1')
        create_app_table(dynamodb)
        dynamodb.create_table(
            TableName=IDEMPOTENCY_TABLE_NAME,
            AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
            KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
            BillingMode='PAY_PER_REQUEST'
        )
        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket=ATTACHMENTS_BUCKET)
        s3.create_bucket(Bucket=EXPORT_BUCKET)
        boto3.client('ses', region_name='us-east-1').verify_email_identity(EmailAddress=FROM_EMAIL)
        yield


@pytest.fixture
def db(aws):
    return DynamoDBService(TABLE_NAME)


@pytest.fixture
def mock_context():
    """Mock Lambda context."""
    class MockContext:
        def __init__(self):
            self.function_name = 'test-function'
            self.memory_limit_in_mb = 512
            self.invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test'
            self.aws_request_id = 'test-request-id'

    return MockContext()


def api_event(body=None, user_id='user-1', email='owner@example.com', method='POST',
              path='/', query=None):
    """API Gateway proxy event with Cognito authorizer claims."""
    claims = {}
    if user_id:
        claims['sub'] = user_id
    if email:
        claims['email'] = email
    return {
        'httpMethod': method,
        'path': path,
        'queryStringParameters': query,
        'body': json.dumps(body) if body is not None else None,
        'requestContext': {'authorizer': {'claims': claims}},
    }
