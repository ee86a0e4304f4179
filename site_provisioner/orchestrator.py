"""Provision a static website by applying its descriptors in dependency order."""

import logging
import threading
from dataclasses import dataclass, field

from .capabilities import CdnCapability, DnsCapability, StorageCapability
from .config import DeploymentConfig
from .descriptors import Kind, build_descriptors
from .errors import ProvisionCancelledError, ProvisioningError, SynchronizationError
from .graph import order, resume_point
from .steps import STEPS, Capabilities, StepFunction, StepOutput

logger = logging.getLogger(__name__)


class CancellationToken:
  """Cooperative cancellation, checked between steps."""

  def __init__(self) -> None:
    self._event = threading.Event()

  def cancel(self) -> None:
    self._event.set()

  @property
  def cancelled(self) -> bool:
    return self._event.is_set()


@dataclass
class ProvisionResult:
  """What a provisioning run achieved.

  ``completed_ids`` lists the descriptors that succeeded, in the order they
  were applied. Passing the result back as ``resume`` continues from the
  first descriptor that did not complete.

  ``errors`` holds every failure in the order it happened. A content sync
  failure does not stop the run, so it can be followed by the error of a
  later step that did.
  """

  website_url: str = ""
  completed_ids: list[str] = field(default_factory=list)
  outputs: dict[str, StepOutput] = field(default_factory=dict)
  errors: list[ProvisioningError] = field(default_factory=list)

  @property
  def error(self) -> ProvisioningError | None:
    """The most recent failure, or None."""
    return self.errors[-1] if self.errors else None

  @property
  def ok(self) -> bool:
    return not self.errors


class Orchestrator:
  """Applies a deployment's descriptors one at a time.

  Steps run strictly sequentially. The first failing step halts the run;
  later steps are not attempted because their inputs do not exist. Content
  sync is the exception: its changes stay applied when it fails, so the
  error is recorded and the remaining steps still run.
  """

  def __init__(
    self,
    storage: StorageCapability,
    cdn: CdnCapability,
    dns: DnsCapability,
    *,
    steps: dict[Kind, StepFunction] | None = None,
  ) -> None:
    self.capabilities = Capabilities(storage=storage, cdn=cdn, dns=dns)
    self.steps = steps if steps is not None else STEPS

  def provision(
    self,
    config: DeploymentConfig,
    *,
    cancel: CancellationToken | None = None,
    resume: ProvisionResult | None = None,
  ) -> ProvisionResult:
    """Provision everything config declares and report how far it got."""
    result = ProvisionResult()
    if resume is not None:
      result.completed_ids = list(resume.completed_ids)
      result.outputs = {
        logical_id: output
        for logical_id, output in resume.outputs.items()
        if logical_id in resume.completed_ids
      }

    descriptors = build_descriptors(config)
    by_id = {d.logical_id: d for d in descriptors}
    try:
      plan = order(descriptors)
    except ProvisioningError as e:
      result.errors.append(e)
      return result

    pending = resume_point(plan, result.completed_ids)
    if len(pending) < len(plan):
      logger.info("Resuming %s at %s", config.domain_name, pending[0] if pending else "end")

    for logical_id in pending:
      if logical_id in result.outputs:
        continue
      if cancel is not None and cancel.cancelled:
        logger.warning("Provisioning of %s cancelled before %s", config.domain_name, logical_id)
        result.errors.append(ProvisionCancelledError(f"Cancelled before {logical_id}"))
        return result

      descriptor = by_id[logical_id]
      resolved = {dep: result.outputs[dep] for dep in descriptor.dependencies}
      logger.info("Applying %s (%s)", logical_id, descriptor.kind.value)
      try:
        value = self.steps[descriptor.kind](self.capabilities, descriptor, resolved)
      except ProvisioningError as e:
        result.errors.append(e)
        if descriptor.kind is Kind.CONTENT_SYNC and isinstance(e, SynchronizationError):
          # Not marked completed, so a resume synchronizes again
          logger.warning("Content sync for %s incomplete: %s", config.domain_name, e)
          result.outputs[logical_id] = StepOutput(descriptor.kind, e)
          continue
        logger.error("Step %s failed: %s", logical_id, e)
        return result

      result.outputs[logical_id] = StepOutput(descriptor.kind, value)
      done = {*result.completed_ids, logical_id}
      result.completed_ids = [lid for lid in plan if lid in done]

    result.website_url = config.website_url
    logger.info("Provisioned %s", result.website_url)
    return result
