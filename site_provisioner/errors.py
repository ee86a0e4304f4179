"""Typed errors raised while provisioning a static website."""


class ProvisioningError(Exception):
  """Base class for every failure surfaced by the provisioner."""


# Configuration errors: detected before any external call.


class ConfigurationError(ProvisioningError):
  """Input that cannot be provisioned until the caller fixes it."""


class ConfigError(ConfigurationError):
  """Missing, empty or unknown configuration field."""


class InvalidNameError(ConfigurationError):
  """Bucket or domain name violates naming constraints."""


class ZoneMismatchError(ConfigurationError):
  """Domain name does not fall under the hosted zone's authority."""


class CertificateRegionError(ConfigurationError):
  """Certificate is not valid for the distribution's issuance region."""


class CapabilityMismatchError(ConfigurationError):
  """Storage handle lacks a capability the origin needs."""


# Conflict errors: the resource is owned elsewhere.


class ConflictError(ProvisioningError):
  """Name, domain or record already owned by something else."""


class NameConflictError(ConflictError):
  """Bucket name is owned by a different deployment."""


class DomainConflictError(ConflictError):
  """Domain is already bound to a different distribution."""


class RecordConflictError(ConflictError):
  """A non-alias record already occupies the record name."""


# Graph errors: defects in descriptor construction.


class GraphError(ProvisioningError):
  """Descriptor set cannot be ordered."""


class CycleError(GraphError):
  """Dependency graph contains a cycle."""

  def __init__(self, remaining: list[str]) -> None:
    self.remaining = remaining
    super().__init__(f"Dependency cycle among: {', '.join(remaining)}")


class UnknownDependencyError(GraphError):
  """Descriptor depends on an id absent from the descriptor set."""

  def __init__(self, logical_id: str, dependency: str) -> None:
    self.logical_id = logical_id
    self.dependency = dependency
    super().__init__(f"{logical_id} depends on unknown id {dependency!r}")


# Synchronization errors: already-applied changes are not reverted.


class SynchronizationError(ProvisioningError):
  """Content synchronization did not complete."""


class PartialUploadError(SynchronizationError):
  """Some paths could not be uploaded or deleted."""

  def __init__(self, failed: dict[str, str], applied: list[str]) -> None:
    self.failed = failed
    self.applied = applied
    super().__init__(
      f"{len(failed)} path(s) failed to synchronize: {', '.join(sorted(failed))}"
    )


class InvalidationQuotaError(SynchronizationError):
  """CDN rejected the cache purge request."""

  def __init__(self, paths: list[str], reason: str = "") -> None:
    self.paths = paths
    message = f"Invalidation of {len(paths)} path(s) rejected"
    super().__init__(f"{message}: {reason}" if reason else message)


# Everything else.


class NotFoundError(ProvisioningError):
  """Referenced external resource does not exist."""


class ProviderError(ProvisioningError):
  """Unexpected failure reported by a cloud provider API."""


class ProvisionCancelledError(ProvisioningError):
  """Provisioning stopped by cooperative cancellation."""
