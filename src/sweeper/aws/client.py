"""boto3 session and client construction."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 25


def create_session(profile_name: Optional[str] = None, region_name: Optional[str] = None) -> boto3.Session:
    """Create a boto3 session from the shared AWS config.

    Args:
        profile_name: AWS profile name (optional)
        region_name: AWS region (optional, falls back to the profile's region)

    Returns:
        boto3 Session
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    logger.debug(f"Using region: {session.region_name}")
    return session


def client_config(max_retries: int = DEFAULT_MAX_RETRIES) -> Config:
    """Build botocore client config with the per-request retry bound."""
    return Config(retries={"max_attempts": max_retries, "mode": "standard"})


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    session: Optional[boto3.Session] = None,
) -> Any:
    """Create a boto3 client.

    Args:
        service_name: AWS service name (e.g. "ec2")
        region_name: AWS region (optional)
        profile_name: AWS profile name, used when no session is given (optional)
        max_retries: Maximum attempts for each API request
        session: Existing session to create the client from (optional)

    Returns:
        boto3 client for the service
    """
    if session is None:
        session = boto3.Session(profile_name=profile_name, region_name=region_name)

    return session.client(service_name, region_name=region_name, config=client_config(max_retries))
