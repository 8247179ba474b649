import os
from functools import lru_cache

import boto3

from botocore.config import Config


def main_boto_region():
    return os.environ.get('AWS_DEFAULT_REGION', 'eu-central-1')


def aws_config_ddb():
    return Config(retries={'max_attempts': 30}, region_name=os.environ.get('AWS_REGION', main_boto_region()))


# Clients are created on first use, so that the region and endpoint settings of the current stage are respected.

# Simple Email Service Client.
# SES is not available in every region, so it has its own setting.
@lru_cache(maxsize=None)
def ses_client():
    return boto3.client('ses', config=Config(retries={'max_attempts': 30},
                                             region_name=os.environ.get('SES_REGION', 'us-east-1')))


# S3 Client.
# Clients provide a low-level interface to AWS services whose methods map close to 1:1 with service APIs.
@lru_cache(maxsize=None)
def s3_client():
    return boto3.client('s3', region_name=main_boto_region())


def reset_clients():
    for client in (ses_client, s3_client):
        client.cache_clear()
