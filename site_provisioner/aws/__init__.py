"""boto3-backed capabilities."""

import boto3

from ..orchestrator import Orchestrator
from .cdn import CloudFrontCdn
from .dns import Route53Dns
from .storage import S3Storage


def build_orchestrator(region: str = "us-east-1") -> Orchestrator:
  """Orchestrator wired to S3, CloudFront and Route 53 via the default credentials."""
  return Orchestrator(
    storage=S3Storage(boto3.client("s3", region_name=region)),
    cdn=CloudFrontCdn(boto3.client("cloudfront")),
    dns=Route53Dns(boto3.client("route53")),
  )


__all__ = ["CloudFrontCdn", "Route53Dns", "S3Storage", "build_orchestrator"]
