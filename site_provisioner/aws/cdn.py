"""CloudFront implementation of the CDN capability."""

import logging
import time
from typing import Any

from botocore.exceptions import ClientError

from ..capabilities import DistributionHandle, Origin, OriginIdentity
from ..descriptors import DistributionSettings
from ..errors import CertificateRegionError, DomainConflictError, InvalidationQuotaError
from .client_errors import error_code, provider_error

logger = logging.getLogger(__name__)

_QUOTA_ERRORS = ("TooManyInvalidationsInProgress", "BatchTooLarge", "Throttling")


def _items(values: list[Any] | tuple[Any, ...]) -> dict[str, Any]:
  return {"Quantity": len(values), "Items": list(values)}


def distribution_config(origin: Origin, settings: DistributionSettings) -> dict[str, Any]:
  """CloudFront DistributionConfig for a single-origin, single-behavior site."""
  return {
    "CallerReference": settings.caller_reference,
    "Comment": settings.comment,
    "Enabled": True,
    "Aliases": _items(settings.domain_names),
    "DefaultRootObject": settings.default_root_object,
    "Origins": _items(
      [
        {
          "Id": origin.origin_id,
          "DomainName": origin.storage.regional_domain_name,
          "OriginPath": "",
          "S3OriginConfig": {
            "OriginAccessIdentity": f"origin-access-identity/cloudfront/{origin.identity.id}"
          },
        }
      ]
    ),
    "DefaultCacheBehavior": {
      "TargetOriginId": origin.origin_id,
      "ViewerProtocolPolicy": "redirect-to-https",
      "AllowedMethods": {
        **_items(settings.allowed_methods),
        "CachedMethods": _items(settings.cached_methods),
      },
      "CachePolicyId": settings.cache_policy_id,
      "Compress": True,
    },
    "CustomErrorResponses": _items(
      [
        {
          "ErrorCode": rule["http_status"],
          "ResponsePagePath": rule["response_page_path"],
          "ResponseCode": str(rule["response_http_status"]),
          "ErrorCachingMinTTL": 10,
        }
        for rule in settings.error_responses
      ]
    ),
    "ViewerCertificate": {
      "ACMCertificateArn": settings.certificate_ref,
      "SSLSupportMethod": "sni-only",
      "MinimumProtocolVersion": settings.minimum_protocol_version,
    },
    "HttpVersion": "http2",
  }


def config_matches(current: Any, desired: Any) -> bool:
  """Whether every value in desired is present in current.

  CloudFront echoes back extra defaults and may reorder method lists, so
  dicts compare by desired keys only and scalar lists compare as sets.
  """
  if isinstance(desired, dict):
    if not isinstance(current, dict):
      return False
    return all(k in current and config_matches(current[k], v) for k, v in desired.items())
  if isinstance(desired, list):
    if not isinstance(current, list) or len(current) != len(desired):
      return False
    if all(not isinstance(v, dict | list) for v in desired):
      return sorted(map(str, current)) == sorted(map(str, desired))
    return all(config_matches(c, d) for c, d in zip(current, desired, strict=True))
  return bool(current == desired)


class CloudFrontCdn:
  """Distribution management through the CloudFront API."""

  def __init__(self, cloudfront_client: Any) -> None:
    self.cloudfront = cloudfront_client

  def ensure_origin_identity(self, comment: str) -> OriginIdentity:
    """Find the origin access identity with this comment, creating it if needed."""
    try:
      marker = ""
      while True:
        kwargs = {"Marker": marker} if marker else {}
        listing = self.cloudfront.list_cloud_front_origin_access_identities(**kwargs)
        page = listing["CloudFrontOriginAccessIdentityList"]
        for item in page.get("Items", []):
          if item.get("Comment") == comment:
            return OriginIdentity(item["Id"], item.get("S3CanonicalUserId", ""))
        if not page.get("IsTruncated"):
          break
        marker = page["NextMarker"]

      logger.info("Creating origin access identity %r", comment)
      response = self.cloudfront.create_cloud_front_origin_access_identity(
        CloudFrontOriginAccessIdentityConfig={"CallerReference": comment, "Comment": comment}
      )
    except ClientError as e:
      raise provider_error(e, "Origin access identity") from e
    identity = response["CloudFrontOriginAccessIdentity"]
    return OriginIdentity(identity["Id"], identity.get("S3CanonicalUserId", ""))

  def _find_by_alias(self, domain_name: str) -> dict[str, Any] | None:
    paginator = self.cloudfront.get_paginator("list_distributions")
    for page in paginator.paginate():
      for summary in page.get("DistributionList", {}).get("Items", []):
        if domain_name in summary.get("Aliases", {}).get("Items", []):
          return dict(summary)
    return None

  def create_distribution(
    self, origin: Origin, settings: DistributionSettings
  ) -> DistributionHandle:
    """Create the distribution, or bring ours up to date if it exists."""
    desired = distribution_config(origin, settings)
    try:
      existing = self._find_by_alias(settings.domain_names[0])
      if existing is None:
        logger.info("Creating distribution for %s", ", ".join(settings.domain_names))
        response = self.cloudfront.create_distribution(DistributionConfig=desired)
        created = response["Distribution"]
        return DistributionHandle(created["Id"], created["DomainName"])

      handle = DistributionHandle(existing["Id"], existing["DomainName"])
      current = self.cloudfront.get_distribution_config(Id=handle.id)
      config = current["DistributionConfig"]
      if config.get("CallerReference") != settings.caller_reference:
        raise DomainConflictError(
          f"{settings.domain_names[0]} is bound to distribution {handle.id}"
          " owned by another deployment"
        )
      if config_matches(config, desired):
        logger.debug("Distribution %s already up to date", handle.id)
        return handle

      logger.info("Updating distribution %s", handle.id)
      self.cloudfront.update_distribution(
        Id=handle.id,
        IfMatch=current["ETag"],
        DistributionConfig={**config, **desired},
      )
      return handle
    except ClientError as e:
      code = error_code(e)
      if code in ("CNAMEAlreadyExists", "IllegalUpdate"):
        raise DomainConflictError(
          f"{settings.domain_names[0]} is bound to another distribution"
        ) from e
      if code == "InvalidViewerCertificate":
        raise CertificateRegionError(
          f"Certificate {settings.certificate_ref} cannot be used by CloudFront"
        ) from e
      raise provider_error(e, "Distribution") from e

  def invalidate(self, handle: DistributionHandle, patterns: list[str]) -> str:
    """Purge patterns from edge caches; returns the invalidation id."""
    try:
      response = self.cloudfront.create_invalidation(
        DistributionId=handle.id,
        InvalidationBatch={
          "Paths": _items(patterns),
          "CallerReference": str(time.time()),
        },
      )
    except ClientError as e:
      if error_code(e) in _QUOTA_ERRORS:
        raise InvalidationQuotaError(list(patterns), error_code(e)) from e
      raise provider_error(e, f"CreateInvalidation {handle.id}") from e
    return str(response["Invalidation"]["Id"])

  def stable_domain_of(self, handle: DistributionHandle) -> str:
    return handle.domain_name
