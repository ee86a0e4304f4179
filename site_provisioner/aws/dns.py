"""Route 53 implementation of the DNS capability."""

import logging
from typing import Any

from botocore.exceptions import ClientError

from ..capabilities import AliasHandle, ZoneHandle
from ..config import normalize_domain, within_zone
from ..errors import NotFoundError, RecordConflictError, ZoneMismatchError
from .client_errors import error_code, provider_error

logger = logging.getLogger(__name__)

# CloudFront's fixed hosted zone ID for alias targets
CLOUDFRONT_HOSTED_ZONE_ID = "Z2FDTNDATAQYW2"

ALIAS_RECORD_TYPES = ("A", "AAAA")


class Route53Dns:
  """Hosted zone lookup and alias records in Route 53."""

  def __init__(self, route53_client: Any) -> None:
    self.route53 = route53_client

  def resolve_zone(self, zone_id: str, zone_name: str) -> ZoneHandle:
    try:
      response = self.route53.get_hosted_zone(Id=zone_id)
    except ClientError as e:
      if error_code(e) in ("NoSuchHostedZone", "InvalidInput"):
        raise NotFoundError(f"Hosted zone {zone_id} not found") from e
      raise provider_error(e, f"GetHostedZone {zone_id}") from e

    actual = normalize_domain(response["HostedZone"]["Name"])
    if actual != normalize_domain(zone_name):
      raise ZoneMismatchError(f"Hosted zone {zone_id} is {actual}, not {zone_name}")
    return ZoneHandle(zone_id=zone_id.split("/")[-1], name=actual)

  def _existing_records(self, zone: ZoneHandle, record_name: str) -> list[dict[str, Any]]:
    """Every record set at record_name, following truncated listings."""
    records: list[dict[str, Any]] = []
    kwargs: dict[str, Any] = {"StartRecordName": record_name}
    while True:
      response = self.route53.list_resource_record_sets(
        HostedZoneId=zone.zone_id, MaxItems="100", **kwargs
      )
      records.extend(
        record
        for record in response.get("ResourceRecordSets", [])
        if normalize_domain(record["Name"]) == record_name
      )
      # Listings are sorted by name, so a page ending past ours is the last one needed
      next_name = response.get("NextRecordName")
      if not response.get("IsTruncated") or normalize_domain(next_name or "") != record_name:
        return records
      kwargs = {"StartRecordName": next_name, "StartRecordType": response["NextRecordType"]}
      if "NextRecordIdentifier" in response:
        kwargs["StartRecordIdentifier"] = response["NextRecordIdentifier"]

  def upsert_alias(self, zone: ZoneHandle, record_name: str, target: str) -> AliasHandle:
    """Point A and AAAA alias records at target, creating or updating them.

    Raises:
      ZoneMismatchError: record_name is outside the zone.
      RecordConflictError: A non-alias record already occupies the name.
    """
    record_name = normalize_domain(record_name)
    if not within_zone(record_name, zone.name):
      raise ZoneMismatchError(f"{record_name} is outside the authority of zone {zone.name}")

    try:
      existing = self._existing_records(zone, record_name)
    except ClientError as e:
      raise provider_error(e, f"ListResourceRecordSets {zone.zone_id}") from e

    current: set[str] = set()
    for record in existing:
      record_type = record["Type"]
      if record_type == "CNAME":
        raise RecordConflictError(f"{record_name} already has a CNAME record")
      if record_type not in ALIAS_RECORD_TYPES:
        continue
      alias = record.get("AliasTarget")
      if alias is None:
        raise RecordConflictError(f"{record_name} already has a non-alias {record_type} record")
      if normalize_domain(alias["DNSName"]) == normalize_domain(target):
        current.add(record_type)

    handle = AliasHandle(record_name=record_name, target=target)
    if current == set(ALIAS_RECORD_TYPES):
      logger.debug("Alias %s -> %s already in place", record_name, target)
      return handle

    logger.info("Upserting alias %s -> %s", record_name, target)
    try:
      self.route53.change_resource_record_sets(
        HostedZoneId=zone.zone_id,
        ChangeBatch={
          "Comment": f"Alias {record_name} to CloudFront",
          "Changes": [
            {
              "Action": "UPSERT",
              "ResourceRecordSet": {
                "Name": record_name,
                "Type": record_type,
                "AliasTarget": {
                  "HostedZoneId": CLOUDFRONT_HOSTED_ZONE_ID,
                  "DNSName": target,
                  "EvaluateTargetHealth": False,
                },
              },
            }
            for record_type in ALIAS_RECORD_TYPES
          ],
        },
      )
    except ClientError as e:
      if error_code(e) == "InvalidChangeBatch":
        raise RecordConflictError(f"Route 53 rejected alias for {record_name}") from e
      raise provider_error(e, f"ChangeResourceRecordSets {zone.zone_id}") from e
    return handle
