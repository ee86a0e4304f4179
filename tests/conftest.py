"""Pytest fixtures for provisioner and CDK construct tests."""

import hashlib
from pathlib import Path

import aws_cdk as cdk
import pytest

from site_provisioner.capabilities import (
  AliasHandle,
  DistributionHandle,
  Origin,
  OriginIdentity,
  StorageHandle,
  ZoneHandle,
)
from site_provisioner.config import DeploymentConfig
from site_provisioner.descriptors import DistributionSettings
from site_provisioner.errors import (
  DomainConflictError,
  InvalidationQuotaError,
  NameConflictError,
  NotFoundError,
  ProviderError,
  RecordConflictError,
)

CERTIFICATE_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/abc-123"


def md5(data: bytes) -> str:
  return hashlib.md5(data).hexdigest()


class FakeStorage:
  """In-memory storage capability that records mutating calls."""

  def __init__(self) -> None:
    self.owners: dict[str, str] = {}
    self.objects: dict[str, dict[str, bytes]] = {}
    self.grants: dict[str, dict[str, frozenset[str]]] = {}
    self.mutations: list[tuple[str, str]] = []
    self.fail_paths: set[str] = set()

  def create(self, name: str, deployment_id: str, region: str) -> StorageHandle:
    if name in self.owners:
      if self.owners[name] != deployment_id:
        raise NameConflictError(f"{name} owned by {self.owners[name]}")
      return StorageHandle(name=name, region=region, grants=dict(self.grants[name]))
    self.owners[name] = deployment_id
    self.objects[name] = {}
    self.grants[name] = {}
    self.mutations.append(("create", name))
    return StorageHandle(name=name, region=region)

  def grant_read(self, handle: StorageHandle, identity: OriginIdentity) -> StorageHandle:
    if {"read", "list"} <= handle.capabilities_for(identity):
      return handle
    self.grants[handle.name][identity.id] = frozenset({"read", "list"})
    self.mutations.append(("grant_read", identity.id))
    return StorageHandle(handle.name, handle.region, dict(self.grants[handle.name]))

  def put(self, handle: StorageHandle, path: str, body: bytes, content_type: str) -> None:
    if path in self.fail_paths:
      raise ProviderError(f"PutObject {path} failed")
    self.objects[handle.name][path] = body
    self.mutations.append(("put", path))

  def delete(self, handle: StorageHandle, path: str) -> None:
    del self.objects[handle.name][path]
    self.mutations.append(("delete", path))

  def list(self, handle: StorageHandle) -> list[tuple[str, str]]:
    return [(path, md5(body)) for path, body in self.objects.get(handle.name, {}).items()]


class FakeCdn:
  """In-memory CDN capability that records mutating calls."""

  def __init__(self) -> None:
    self.identities: dict[str, OriginIdentity] = {}
    self.distributions: dict[str, tuple[DistributionHandle, str, Origin, DistributionSettings]] = {}
    self.foreign_domains: set[str] = set()
    self.invalidations: list[list[str]] = []
    self.mutations: list[tuple[str, str]] = []
    self.quota_exceeded = False

  def ensure_origin_identity(self, comment: str) -> OriginIdentity:
    if comment not in self.identities:
      self.identities[comment] = OriginIdentity(f"E{len(self.identities) + 1}OAI")
      self.mutations.append(("create_identity", comment))
    return self.identities[comment]

  def create_distribution(
    self, origin: Origin, settings: DistributionSettings
  ) -> DistributionHandle:
    domain = settings.domain_names[0]
    if domain in self.foreign_domains:
      raise DomainConflictError(f"{domain} bound elsewhere")
    if domain in self.distributions:
      handle, reference, current_origin, current = self.distributions[domain]
      if reference != settings.caller_reference:
        raise DomainConflictError(f"{domain} bound to {handle.id}")
      if (current_origin, current) == (origin, settings):
        return handle
      self.mutations.append(("update_distribution", handle.id))
    else:
      number = len(self.distributions) + 1
      handle = DistributionHandle(f"EDIST{number}", f"d{number}.cloudfront.net")
      self.mutations.append(("create_distribution", handle.id))
    self.distributions[domain] = (handle, settings.caller_reference, origin, settings)
    return handle

  def invalidate(self, handle: DistributionHandle, patterns: list[str]) -> str:
    if self.quota_exceeded:
      raise InvalidationQuotaError(list(patterns), "TooManyInvalidationsInProgress")
    self.invalidations.append(list(patterns))
    self.mutations.append(("invalidate", handle.id))
    return f"I{len(self.invalidations)}"

  def stable_domain_of(self, handle: DistributionHandle) -> str:
    return handle.domain_name


class FakeDns:
  """In-memory DNS capability; records map a name to an alias target or None."""

  def __init__(self) -> None:
    self.zones: dict[str, str] = {"Z1": "example.com"}
    self.records: dict[str, str | None] = {}
    self.mutations: list[tuple[str, str]] = []

  def resolve_zone(self, zone_id: str, zone_name: str) -> ZoneHandle:
    if zone_id not in self.zones:
      raise NotFoundError(f"Hosted zone {zone_id} not found")
    return ZoneHandle(zone_id, self.zones[zone_id])

  def upsert_alias(self, zone: ZoneHandle, record_name: str, target: str) -> AliasHandle:
    if record_name in self.records and self.records[record_name] is None:
      raise RecordConflictError(f"{record_name} has a non-alias record")
    if self.records.get(record_name) != target:
      self.records[record_name] = target
      self.mutations.append(("upsert_alias", record_name))
    return AliasHandle(record_name, target)


@pytest.fixture
def app() -> cdk.App:
  """Create a CDK App for testing."""
  return cdk.App()


@pytest.fixture
def stack(app: cdk.App) -> cdk.Stack:
  """Create a CDK Stack for testing."""
  return cdk.Stack(app, "TestStack", env=cdk.Environment(region="us-east-1"))


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
  """Local site content: index.html and style.css."""
  root = tmp_path / "site"
  root.mkdir()
  (root / "index.html").write_text("A")
  (root / "style.css").write_text("B")
  return root


@pytest.fixture
def site_config(content_dir: Path) -> DeploymentConfig:
  """Deployment of www.example.com from content_dir."""
  return DeploymentConfig(
    bucket_name="site-abc",
    domain_name="www.example.com",
    hosted_zone_id="Z1",
    zone_name="example.com",
    content_path=content_dir,
    certificate_ref=CERTIFICATE_ARN,
  )


@pytest.fixture
def storage() -> FakeStorage:
  return FakeStorage()


@pytest.fixture
def cdn() -> FakeCdn:
  return FakeCdn()


@pytest.fixture
def dns() -> FakeDns:
  return FakeDns()
