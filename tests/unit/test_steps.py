"""Tests for the per-kind provisioning steps."""

import pytest
from conftest import FakeCdn, FakeDns, FakeStorage

from site_provisioner.capabilities import (
  AccessBinding,
  DistributionHandle,
  OriginIdentity,
  StorageHandle,
  ZoneHandle,
)
from site_provisioner.config import DeploymentConfig
from site_provisioner.descriptors import (
  CACHING_OPTIMIZED_POLICY_ID,
  DEFAULT_ROOT_OBJECT,
  Kind,
  ResourceDescriptor,
  build_descriptors,
)
from site_provisioner.errors import CapabilityMismatchError, ZoneMismatchError
from site_provisioner.steps import STEPS, Capabilities, StepOutput


@pytest.fixture
def caps(storage: FakeStorage, cdn: FakeCdn, dns: FakeDns) -> Capabilities:
  return Capabilities(storage=storage, cdn=cdn, dns=dns)


@pytest.fixture
def descriptors(site_config: DeploymentConfig) -> dict[str, ResourceDescriptor]:
  return {d.logical_id: d for d in build_descriptors(site_config)}


class TestBuildDescriptors:
  """Tests for the declared deployment graph."""

  def test_every_kind_has_a_step(self, descriptors: dict[str, ResourceDescriptor]) -> None:
    assert {d.kind for d in descriptors.values()} == set(STEPS)

  def test_alias_record_is_the_single_sink(
    self, descriptors: dict[str, ResourceDescriptor]
  ) -> None:
    depended_on = {dep for d in descriptors.values() for dep in d.dependencies}
    assert set(descriptors) - depended_on == {"alias-record"}

  def test_distribution_settings(self, descriptors: dict[str, ResourceDescriptor]) -> None:
    """Default document, cache policy and the 404 rewrite are declared."""
    settings = descriptors["distribution"].attributes["settings"]

    assert settings.domain_names == ("www.example.com",)
    assert settings.default_root_object == DEFAULT_ROOT_OBJECT
    assert settings.cache_policy_id == CACHING_OPTIMIZED_POLICY_ID
    assert settings.allowed_methods == ("GET", "HEAD")
    assert settings.error_responses == (
      {"http_status": 404, "response_http_status": 200, "response_page_path": "/index.html"},
    )


class TestOriginStep:
  """Tests for the origin step."""

  def test_wraps_bound_bucket(
    self, caps: Capabilities, descriptors: dict[str, ResourceDescriptor]
  ) -> None:
    identity = OriginIdentity("E1")
    bucket = StorageHandle("site-abc", grants={"E1": frozenset({"read", "list"})})
    resolved = {
      "access-binding": StepOutput(Kind.ACCESS_BINDING, AccessBinding(bucket, identity))
    }

    origin = STEPS[Kind.ORIGIN](caps, descriptors["origin"], resolved)

    assert origin.storage == bucket
    assert origin.identity == identity

  def test_missing_list_capability_raises(
    self, caps: Capabilities, descriptors: dict[str, ResourceDescriptor]
  ) -> None:
    """A read-only grant cannot back an origin that needs listing."""
    identity = OriginIdentity("E1")
    bucket = StorageHandle("site-abc", grants={"E1": frozenset({"read"})})
    resolved = {
      "access-binding": StepOutput(Kind.ACCESS_BINDING, AccessBinding(bucket, identity))
    }

    with pytest.raises(CapabilityMismatchError, match="list"):
      STEPS[Kind.ORIGIN](caps, descriptors["origin"], resolved)


class TestAccessBindingStep:
  """Tests for the access binding step."""

  def test_reapplying_is_a_no_op(
    self,
    caps: Capabilities,
    storage: FakeStorage,
    descriptors: dict[str, ResourceDescriptor],
  ) -> None:
    bucket = storage.create("site-abc", "www.example.com", "us-east-1")
    resolved = {"storage": StepOutput(Kind.STORAGE, bucket)}
    first = STEPS[Kind.ACCESS_BINDING](caps, descriptors["access-binding"], resolved)
    storage.mutations.clear()

    resolved = {"storage": StepOutput(Kind.STORAGE, first.storage)}
    second = STEPS[Kind.ACCESS_BINDING](caps, descriptors["access-binding"], resolved)

    assert storage.mutations == []
    assert second == first


class TestAliasRecordStep:
  """Tests for the alias record step."""

  def test_points_record_at_distribution(
    self, caps: Capabilities, dns: FakeDns, descriptors: dict[str, ResourceDescriptor]
  ) -> None:
    resolved = {
      "hosted-zone": StepOutput(Kind.ZONE_LOOKUP, ZoneHandle("Z1", "example.com")),
      "distribution": StepOutput(
        Kind.DISTRIBUTION, DistributionHandle("EDIST1", "d1.cloudfront.net")
      ),
    }

    alias = STEPS[Kind.ALIAS_RECORD](caps, descriptors["alias-record"], resolved)

    assert alias.record_name == "www.example.com"
    assert dns.records == {"www.example.com": "d1.cloudfront.net"}

  def test_resolved_zone_must_cover_record(
    self, caps: Capabilities, dns: FakeDns, descriptors: dict[str, ResourceDescriptor]
  ) -> None:
    resolved = {
      "hosted-zone": StepOutput(Kind.ZONE_LOOKUP, ZoneHandle("Z2", "other.com")),
      "distribution": StepOutput(
        Kind.DISTRIBUTION, DistributionHandle("EDIST1", "d1.cloudfront.net")
      ),
    }

    with pytest.raises(ZoneMismatchError):
      STEPS[Kind.ALIAS_RECORD](caps, descriptors["alias-record"], resolved)
    assert dns.mutations == []
