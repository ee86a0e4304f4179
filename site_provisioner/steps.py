"""Provisioning steps, one per descriptor kind."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .capabilities import (
  AccessBinding,
  AliasHandle,
  CdnCapability,
  DistributionHandle,
  DnsCapability,
  Origin,
  StorageCapability,
  StorageHandle,
  ZoneHandle,
)
from .config import within_zone
from .descriptors import Kind, ResourceDescriptor
from .errors import CapabilityMismatchError, ZoneMismatchError
from .sync import ContentSynchronizer, SyncReport


@dataclass(frozen=True)
class Capabilities:
  storage: StorageCapability
  cdn: CdnCapability
  dns: DnsCapability


@dataclass(frozen=True)
class StepOutput:
  """Handle produced by a completed step, tagged with the step's kind."""

  kind: Kind
  value: Any


StepFunction = Callable[[Capabilities, ResourceDescriptor, Mapping[str, StepOutput]], Any]


def _dependency(resolved: Mapping[str, StepOutput], kind: Kind) -> Any:
  for output in resolved.values():
    if output.kind is kind:
      return output.value
  raise KeyError(f"No resolved dependency of kind {kind.value}")


def apply_storage(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> StorageHandle:
  attrs = descriptor.attributes
  return caps.storage.create(attrs["bucket_name"], attrs["deployment_id"], attrs["region"])


def apply_access_binding(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> AccessBinding:
  """Grant the CDN identity read access to the bucket."""
  bucket: StorageHandle = _dependency(resolved, Kind.STORAGE)
  identity = caps.cdn.ensure_origin_identity(descriptor.attributes["identity_comment"])
  return AccessBinding(storage=caps.storage.grant_read(bucket, identity), identity=identity)


def apply_origin(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> Origin:
  """Wrap the bound bucket into an origin. Makes no external call."""
  binding: AccessBinding = _dependency(resolved, Kind.ACCESS_BINDING)
  required = frozenset(descriptor.attributes["access_levels"])
  missing = required - binding.storage.capabilities_for(binding.identity)
  if missing:
    raise CapabilityMismatchError(
      f"Bucket {binding.storage.name} does not grant {', '.join(sorted(missing))}"
      f" to origin identity {binding.identity.id}"
    )
  return Origin(storage=binding.storage, identity=binding.identity)


def apply_zone_lookup(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> ZoneHandle:
  attrs = descriptor.attributes
  return caps.dns.resolve_zone(attrs["zone_id"], attrs["zone_name"])


def apply_distribution(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> DistributionHandle:
  origin: Origin = _dependency(resolved, Kind.ORIGIN)
  return caps.cdn.create_distribution(origin, descriptor.attributes["settings"])


def apply_content_sync(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> SyncReport:
  bucket: StorageHandle = _dependency(resolved, Kind.STORAGE)
  distribution: DistributionHandle = _dependency(resolved, Kind.DISTRIBUTION)
  synchronizer = ContentSynchronizer(
    caps.storage,
    caps.cdn,
    invalidation_path_limit=descriptor.attributes["invalidation_path_limit"],
  )
  return synchronizer.sync(descriptor.attributes["content_path"], bucket, distribution)


def apply_alias_record(
  caps: Capabilities, descriptor: ResourceDescriptor, resolved: Mapping[str, StepOutput]
) -> AliasHandle:
  zone: ZoneHandle = _dependency(resolved, Kind.ZONE_LOOKUP)
  distribution: DistributionHandle = _dependency(resolved, Kind.DISTRIBUTION)
  record_name = descriptor.attributes["record_name"]
  if not within_zone(record_name, zone.name):
    raise ZoneMismatchError(f"{record_name} is outside the authority of zone {zone.name}")
  return caps.dns.upsert_alias(zone, record_name, caps.cdn.stable_domain_of(distribution))


STEPS: dict[Kind, StepFunction] = {
  Kind.STORAGE: apply_storage,
  Kind.ACCESS_BINDING: apply_access_binding,
  Kind.ORIGIN: apply_origin,
  Kind.ZONE_LOOKUP: apply_zone_lookup,
  Kind.DISTRIBUTION: apply_distribution,
  Kind.CONTENT_SYNC: apply_content_sync,
  Kind.ALIAS_RECORD: apply_alias_record,
}
