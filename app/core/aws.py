# AWS clients

from functools import lru_cache
import boto3
from botocore.config import Config
from app.core.config import settings


@lru_cache
def get_session() -> boto3.session.Session:
    """Process-wide boto3 session (clients are created once per service)"""
    return boto3.session.Session(region_name=settings.aws_region)


def _client_config() -> Config:
    # Bounded timeouts, no retries: a failed call is reported to the caller as-is
    return Config(
        connect_timeout=settings.aws_connect_timeout,
        read_timeout=settings.aws_read_timeout,
        retries={"mode": "standard", "total_max_attempts": settings.aws_max_attempts}
    )


@lru_cache
def get_client(service: str):
    """Get a low-level boto3 client for the given service"""
    return get_session().client(
        service,
        endpoint_url=settings.aws_endpoint_url,
        config=_client_config()
    )


@lru_cache
def get_resource(service: str):
    """Get a boto3 resource (used for DynamoDB item serialization)"""
    return get_session().resource(
        service,
        endpoint_url=settings.aws_endpoint_url,
        config=_client_config()
    )
