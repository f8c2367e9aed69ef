"""Shared pytest configuration and fixtures."""

from unittest import mock

import boto3
import pytest
import responses
from moto import mock_aws
from rest_framework.test import APIClient

pytest_plugins = [
    "reservations.tests.fixtures",
]


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()


@pytest.fixture(autouse=True)
def _fake_redis():
    """Keep push_event off the network; tests can inspect the mock's xadd calls."""
    client = mock.MagicMock()
    client.xadd.return_value = b"1-0"
    with mock.patch("core.redis.get_redis_client", return_value=client):
        yield client


@pytest.fixture(autouse=True)
def mocked_http():
    """
    Route outbound ``requests`` traffic through ``responses``.

    Unregistered URLs fail with a connection error, so geocoding stays
    offline unless a test registers a reply.
    """
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def s3_bucket(settings):
    settings.AWS_S3_ENDPOINT_URL = None
    with mock_aws():
        s3 = boto3.client("s3", region_name=settings.AWS_S3_REGION_NAME)
        create_kwargs = {"Bucket": settings.AWS_STORAGE_BUCKET_NAME}
        region = settings.AWS_S3_REGION_NAME
        if region and region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        s3.create_bucket(**create_kwargs)
        yield s3
