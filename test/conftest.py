import os

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# the app reads these at import time, so they are set before anything from the project is imported
TEST_ENV = {
    'AWS_ACCESS_KEY_ID': 'testing',
    'AWS_SECRET_ACCESS_KEY': 'testing',
    'AWS_SECURITY_TOKEN': 'testing',
    'AWS_SESSION_TOKEN': 'testing',
    'AWS_DEFAULT_REGION': 'us-east-1',
    'AWS_REGION': 'us-east-1',
    'SES_REGION': 'us-east-1',
    'DEFAULT_REGION': 'us-east-1',
    'GEN_TABLE_NAME': 'grubz-test',
    'ORDERS_TABLE_STREAM_ARN': 'arn:aws:dynamodb:us-east-1:123456789012:table/grubz-test/stream/2024-01-01T00:00:00.000',
    'IMAGES_BUCKET_NAME': 'grubz-test-images',
    'ORDER_EMAIL_FROM': 'orders@grubz.example.com',
    'ALL_ORDERS_EMAIL': 'all-orders@grubz.example.com',
    'AUTH_MODE': 'local',
    'LOCAL_JWT_SECRET': 'grubz-test-secret',
    'LOCAL_JWT_AUDIENCE': 'grubz-local',
    'TAX_RATE': '0.08',
    'DEFAULT_DELIVERY_FEE': '2.99',
    'ESTIMATED_DELIVERY_MINUTES': '45',
    'MAX_IMG_WIDTH': '400',
    'MAX_THUMBNAIL_WIDTH': '100',
    'MAX_DB_RETRIES': '3',
    'LOG_LEVEL': 'DEBUG'
}
os.environ.update(TEST_ENV)
os.environ.pop('ENDPOINT_URL', None)

import boto3  # noqa: E402
import pytest  # noqa: E402
from chalice.test import Client  # noqa: E402
from moto import mock_aws  # noqa: E402

from app import app  # noqa: E402
from chalicelib.constants.constants import DATE_CREATED_INDEX  # noqa: E402
from chalicelib.utils import boto_clients, db  # noqa: E402
from utils import seed_data  # noqa: E402


def create_table():
    boto3.client('dynamodb').create_table(
        TableName=os.environ['GEN_TABLE_NAME'],
        KeySchema=[
            {'AttributeName': 'partkey', 'KeyType': 'HASH'},
            {'AttributeName': 'sortkey', 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'partkey', 'AttributeType': 'S'},
            {'AttributeName': 'sortkey', 'AttributeType': 'S'},
            {'AttributeName': 'date_created', 'AttributeType': 'S'}
        ],
        GlobalSecondaryIndexes=[{
            'IndexName': DATE_CREATED_INDEX,
            'KeySchema': [
                {'AttributeName': 'partkey', 'KeyType': 'HASH'},
                {'AttributeName': 'date_created', 'KeyType': 'RANGE'}
            ],
            'Projection': {'ProjectionType': 'ALL'}
        }],
        BillingMode='PAY_PER_REQUEST'
    )


def create_user_pool():
    cognito = boto3.client('cognito-idp')
    pool_id = cognito.create_user_pool(
        PoolName='grubz-test',
        Schema=[{'Name': 'role', 'AttributeDataType': 'String', 'Mutable': True}]
    )['UserPool']['Id']
    client_id = cognito.create_user_pool_client(UserPoolId=pool_id, ClientName='grubz-test')['UserPoolClient'][
        'ClientId']
    os.environ['COGNITO_USER_POOL_ID'] = pool_id
    os.environ['COGNITO_CLIENT_ID'] = client_id


@pytest.fixture
def aws():
    with mock_aws():
        db.reset_tables()
        boto_clients.reset_clients()
        create_table()
        boto3.client('s3').create_bucket(Bucket=os.environ['IMAGES_BUCKET_NAME'], ObjectOwnership='ObjectWriter')
        boto3.client('ses').verify_email_identity(EmailAddress=os.environ['ORDER_EMAIL_FROM'])
        create_user_pool()
        yield
        db.reset_tables()
        boto_clients.reset_clients()
        os.environ.pop('COGNITO_USER_POOL_ID', None)
        os.environ.pop('COGNITO_CLIENT_ID', None)


@pytest.fixture
def chalice_gateway(aws):
    with Client(app, stage_name='test', project_dir=ROOT_DIR) as client:
        yield client


@pytest.fixture
def users(aws):
    seed_data.create_test_users()
    return seed_data
