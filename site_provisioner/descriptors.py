"""Resource descriptors declaring the static website topology."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import DeploymentConfig

DEFAULT_ROOT_OBJECT = "index.html"

# Managed "CachingOptimized" policy: no headers, cookies or query strings in the cache key.
CACHING_OPTIMIZED_POLICY_ID = "658327ea-f89d-4fab-a63d-7e88639e58f6"

MINIMUM_PROTOCOL_VERSION = "TLSv1.2_2021"

# Serve the default document for unknown paths so client-side routing works.
ERROR_RESPONSES: tuple[dict[str, Any], ...] = (
  {
    "http_status": 404,
    "response_http_status": 200,
    "response_page_path": f"/{DEFAULT_ROOT_OBJECT}",
  },
)


class Kind(Enum):
  """Tag identifying which step provisions a descriptor."""

  STORAGE = "storage"
  ACCESS_BINDING = "access-binding"
  ORIGIN = "origin"
  ZONE_LOOKUP = "zone-lookup"
  DISTRIBUTION = "distribution"
  CONTENT_SYNC = "content-sync"
  ALIAS_RECORD = "alias-record"


@dataclass(frozen=True)
class ResourceDescriptor:
  """One node of the deployment graph."""

  kind: Kind
  logical_id: str
  attributes: dict[str, Any] = field(default_factory=dict)
  dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class DistributionSettings:
  """Everything the CDN needs to declare the distribution besides its origin."""

  caller_reference: str
  domain_names: tuple[str, ...]
  certificate_ref: str
  default_root_object: str = DEFAULT_ROOT_OBJECT
  cache_policy_id: str = CACHING_OPTIMIZED_POLICY_ID
  allowed_methods: tuple[str, ...] = ("GET", "HEAD")
  cached_methods: tuple[str, ...] = ("GET", "HEAD")
  minimum_protocol_version: str = MINIMUM_PROTOCOL_VERSION
  error_responses: tuple[dict[str, Any], ...] = ERROR_RESPONSES
  comment: str = ""


def build_descriptors(config: DeploymentConfig) -> list[ResourceDescriptor]:
  """Declare the descriptors for one deployment, in declaration order."""
  return [
    ResourceDescriptor(
      Kind.STORAGE,
      "storage",
      {
        "bucket_name": config.bucket_name,
        "deployment_id": config.deployment_id,
        "region": config.region,
      },
    ),
    ResourceDescriptor(
      Kind.ACCESS_BINDING,
      "access-binding",
      {"identity_comment": f"CloudFront access to {config.bucket_name}"},
      ("storage",),
    ),
    ResourceDescriptor(
      Kind.ORIGIN,
      "origin",
      {"access_levels": ("read", "list")},
      ("access-binding",),
    ),
    ResourceDescriptor(
      Kind.ZONE_LOOKUP,
      "hosted-zone",
      {"zone_id": config.hosted_zone_id, "zone_name": config.zone_name},
    ),
    ResourceDescriptor(
      Kind.DISTRIBUTION,
      "distribution",
      {
        "settings": DistributionSettings(
          caller_reference=f"site-provisioner:{config.deployment_id}",
          domain_names=(config.domain_name,),
          certificate_ref=config.certificate_ref,
          comment=f"Static website {config.domain_name}",
        )
      },
      ("origin",),
    ),
    ResourceDescriptor(
      Kind.CONTENT_SYNC,
      "content-sync",
      {
        "content_path": config.content_path,
        "invalidation_path_limit": config.invalidation_path_limit,
      },
      ("storage", "distribution"),
    ),
    ResourceDescriptor(
      Kind.ALIAS_RECORD,
      "alias-record",
      {"record_name": config.domain_name},
      ("hosted-zone", "distribution", "content-sync"),
    ),
  ]
