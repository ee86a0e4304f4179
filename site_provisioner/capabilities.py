"""Capability contracts consumed by the provisioning steps.

The steps never talk to a cloud API directly; they go through these
protocols. ``site_provisioner.aws`` implements them with boto3.
"""

from dataclasses import dataclass, field
from typing import Protocol

from .descriptors import DistributionSettings


@dataclass(frozen=True)
class OriginIdentity:
  """CDN identity allowed to read from the content bucket."""

  id: str
  canonical_user: str = ""

  @property
  def principal_arn(self) -> str:
    return f"arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity {self.id}"


@dataclass(frozen=True)
class StorageHandle:
  """A private content bucket.

  ``grants`` maps an identity id to the capabilities granted to it.
  """

  name: str
  region: str = "us-east-1"
  grants: dict[str, frozenset[str]] = field(default_factory=dict)

  @property
  def regional_domain_name(self) -> str:
    return f"{self.name}.s3.{self.region}.amazonaws.com"

  def capabilities_for(self, identity: OriginIdentity) -> frozenset[str]:
    return self.grants.get(identity.id, frozenset())


@dataclass(frozen=True)
class AccessBinding:
  storage: StorageHandle
  identity: OriginIdentity


@dataclass(frozen=True)
class Origin:
  """Bucket plus identity, ready to be fronted by a distribution."""

  storage: StorageHandle
  identity: OriginIdentity
  origin_id: str = "s3-origin"


@dataclass(frozen=True)
class ZoneHandle:
  zone_id: str
  name: str


@dataclass(frozen=True)
class DistributionHandle:
  """Opaque distribution reference plus its stable public domain."""

  id: str
  domain_name: str


@dataclass(frozen=True)
class AliasHandle:
  record_name: str
  target: str


class StorageCapability(Protocol):
  def create(self, name: str, deployment_id: str, region: str) -> StorageHandle: ...

  def grant_read(self, handle: StorageHandle, identity: OriginIdentity) -> StorageHandle: ...

  def put(self, handle: StorageHandle, path: str, body: bytes, content_type: str) -> None: ...

  def delete(self, handle: StorageHandle, path: str) -> None: ...

  def list(self, handle: StorageHandle) -> list[tuple[str, str]]: ...


class CdnCapability(Protocol):
  def ensure_origin_identity(self, comment: str) -> OriginIdentity: ...

  def create_distribution(
    self, origin: Origin, settings: DistributionSettings
  ) -> DistributionHandle: ...

  def invalidate(self, handle: DistributionHandle, patterns: list[str]) -> str: ...

  def stable_domain_of(self, handle: DistributionHandle) -> str: ...


class DnsCapability(Protocol):
  def resolve_zone(self, zone_id: str, zone_name: str) -> ZoneHandle: ...

  def upsert_alias(self, zone: ZoneHandle, record_name: str, target: str) -> AliasHandle: ...
