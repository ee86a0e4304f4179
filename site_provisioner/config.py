"""Configuration loader for static website deployments."""

import ipaddress
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import (
  CertificateRegionError,
  ConfigError,
  InvalidNameError,
  ZoneMismatchError,
)

# CloudFront only accepts certificates issued in this region.
CERTIFICATE_REGION = "us-east-1"

DEFAULT_INVALIDATION_PATH_LIMIT = 1000

_BUCKET_NAME = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_DNS_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_ACM_ARN = re.compile(r"^arn:aws[a-z-]*:acm:(?P<region>[a-z0-9-]+):\d{12}:certificate/.+$")

_REQUIRED = (
  "bucket_name",
  "domain_name",
  "hosted_zone_id",
  "zone_name",
  "content_path",
  "certificate_ref",
)


def normalize_domain(name: str) -> str:
  """Lowercase a DNS name and drop any trailing dot."""
  return name.strip().lower().rstrip(".")


def validate_bucket_name(name: str) -> None:
  """Raise InvalidNameError unless name is a valid S3 bucket name."""
  if not _BUCKET_NAME.match(name):
    raise InvalidNameError(
      f"Bucket name {name!r} must be 3-63 lowercase letters, digits, '.' or '-'"
      " and start and end with a letter or digit"
    )
  if ".." in name or ".-" in name or "-." in name:
    raise InvalidNameError(f"Bucket name {name!r} has adjacent separators")
  if name.startswith("xn--") or name.endswith("-s3alias"):
    raise InvalidNameError(f"Bucket name {name!r} uses a reserved prefix or suffix")
  try:
    ipaddress.IPv4Address(name)
  except ValueError:
    return
  raise InvalidNameError(f"Bucket name {name!r} must not be an IP address")


def validate_domain_name(name: str) -> None:
  """Raise InvalidNameError unless name is a syntactically valid DNS name."""
  domain = normalize_domain(name)
  labels = domain.split(".")
  if len(domain) > 253 or len(labels) < 2:
    raise InvalidNameError(f"Domain name {name!r} is not a valid DNS name")
  for label in labels:
    if not _DNS_LABEL.match(label):
      raise InvalidNameError(f"Domain name {name!r} has invalid label {label!r}")


def within_zone(domain_name: str, zone_name: str) -> bool:
  """Whether domain_name is the zone apex or a name below it."""
  domain = normalize_domain(domain_name)
  zone = normalize_domain(zone_name)
  return domain == zone or domain.endswith(f".{zone}")


def certificate_region(certificate_ref: str) -> str | None:
  """Region encoded in an ACM certificate ARN, or None for opaque references."""
  match = _ACM_ARN.match(certificate_ref)
  return match.group("region") if match else None


@dataclass
class DeploymentConfig:
  """Configuration for one static website deployment.

  Validated once at construction; an instance that exists is provisionable.
  """

  bucket_name: str
  domain_name: str
  hosted_zone_id: str
  zone_name: str
  content_path: Path
  certificate_ref: str
  region: str = "us-east-1"
  invalidation_path_limit: int = DEFAULT_INVALIDATION_PATH_LIMIT
  deployment_id: str = ""

  def __post_init__(self) -> None:
    for name in _REQUIRED:
      value = getattr(self, name)
      if value is None or not str(value).strip():
        raise ConfigError(f"{name} must not be empty")

    self.content_path = Path(self.content_path)
    self.domain_name = normalize_domain(self.domain_name)
    self.zone_name = normalize_domain(self.zone_name)
    if not self.deployment_id:
      self.deployment_id = self.domain_name

    validate_bucket_name(self.bucket_name)
    validate_domain_name(self.domain_name)
    if not within_zone(self.domain_name, self.zone_name):
      raise ZoneMismatchError(
        f"{self.domain_name} is outside the authority of zone {self.zone_name}"
      )

    region = certificate_region(self.certificate_ref)
    if region is not None and region != CERTIFICATE_REGION:
      raise CertificateRegionError(
        f"Certificate {self.certificate_ref} is in {region};"
        f" distributions require {CERTIFICATE_REGION}"
      )

    if self.invalidation_path_limit < 1:
      raise ConfigError("invalidation_path_limit must be at least 1")
    if not self.content_path.is_dir():
      raise ConfigError(f"content_path {self.content_path} is not a directory")

  @property
  def website_url(self) -> str:
    return f"https://{self.domain_name}"

  @classmethod
  def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> "DeploymentConfig":
    """Build a config from a mapping, rejecting unknown and missing keys."""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
      raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")
    missing = [name for name in _REQUIRED if name not in data]
    if missing:
      raise ConfigError(f"Missing configuration key(s): {', '.join(missing)}")

    values = dict(data)
    content_path = Path(str(values["content_path"]))
    if base_dir is not None and not content_path.is_absolute():
      content_path = base_dir / content_path
    values["content_path"] = content_path
    return cls(**values)


@dataclass
class Config:
  """Multi-site configuration."""

  sites: list[DeploymentConfig] = field(default_factory=list)

  def site(self, domain_name: str) -> DeploymentConfig:
    """Return the site configured for domain_name."""
    wanted = normalize_domain(domain_name)
    for site in self.sites:
      if site.domain_name == wanted:
        return site
    raise ConfigError(f"No site configured for {domain_name}")

  @classmethod
  def from_yaml(cls, path: Path | str = "sites.yaml") -> "Config":
    """Load configuration from YAML file."""
    path = Path(path)
    with open(path) as f:
      data = yaml.safe_load(f) or {}

    defaults = data.get("defaults", {})
    sites: list[DeploymentConfig] = []

    for site_data in data.get("sites", []):
      # Merge defaults with site-specific config
      merged = {**defaults, **site_data}
      sites.append(DeploymentConfig.from_dict(merged, base_dir=path.parent))

    return cls(sites=sites)
