"""Shared AWS helpers for service clients."""

from __future__ import annotations

from typing import Any

import boto3

from talktopost.config.settings import S3Config, settings


def create_boto3_client(
    service_name: str,
    *,
    config: S3Config | None = None,
    region_name: str | None = None,
) -> boto3.client:
    """Instantiate a boto3 client using configured credentials if available."""

    s3_config = config or settings.s3
    client_kwargs: dict[str, Any] = {"region_name": region_name or s3_config.region}
    if s3_config.access_key and s3_config.secret_key:
        client_kwargs["aws_access_key_id"] = s3_config.access_key
        client_kwargs["aws_secret_access_key"] = s3_config.secret_key
    if s3_config.endpoint_url:
        # S3-compatible providers (Supabase, MinIO, R2) expose a custom endpoint.
        client_kwargs["endpoint_url"] = s3_config.endpoint_url
    return boto3.client(service_name, **client_kwargs)


__all__ = ["create_boto3_client"]
