"""Upload local content to the bucket and purge what changed from the CDN."""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from .capabilities import CdnCapability, DistributionHandle, StorageCapability, StorageHandle
from .config import DEFAULT_INVALIDATION_PATH_LIMIT
from .errors import InvalidationQuotaError, PartialUploadError, ProvisioningError
from .manifest import ChangeSet, build_manifest, diff_manifests, invalidation_patterns

logger = logging.getLogger(__name__)


def guess_content_type(path: str) -> str:
  content_type, _ = mimetypes.guess_type(path)
  return content_type or "application/octet-stream"


@dataclass(frozen=True)
class SyncReport:
  """Outcome of one synchronization run."""

  changes: ChangeSet
  invalidation_paths: tuple[str, ...] = ()
  invalidation_id: str | None = None

  @property
  def uploaded(self) -> tuple[str, ...]:
    return self.changes.uploads

  @property
  def deleted(self) -> tuple[str, ...]:
    return self.changes.removed


class ContentSynchronizer:
  """Make the bucket's content equal to a local directory tree.

  Unchanged files are never transferred, and a purge is only requested when
  at least one file was uploaded or deleted. Synchronization is not
  transactional: paths applied before a failure stay applied.
  """

  def __init__(
    self,
    storage: StorageCapability,
    cdn: CdnCapability,
    *,
    invalidation_path_limit: int = DEFAULT_INVALIDATION_PATH_LIMIT,
  ) -> None:
    self.storage = storage
    self.cdn = cdn
    self.invalidation_path_limit = invalidation_path_limit

  def plan(self, content_path: Path, bucket: StorageHandle) -> tuple[dict[str, str], ChangeSet]:
    """Build the local manifest and diff it against the deployed content."""
    current = build_manifest(content_path)
    previous = dict(self.storage.list(bucket))
    return current, diff_manifests(current, previous)

  def sync(
    self,
    content_path: Path,
    bucket: StorageHandle,
    distribution: DistributionHandle,
  ) -> SyncReport:
    """Run one synchronization.

    Raises:
      PartialUploadError: Some paths failed; the rest were applied and purged.
        A rejected purge is chained as ``__cause__``.
      InvalidationQuotaError: The CDN rejected the purge request and every
        path was applied.
    """
    root = Path(content_path)
    _, changes = self.plan(root, bucket)
    logger.info(
      "Content plan for %s: %d added, %d modified, %d removed, %d unchanged",
      bucket.name,
      len(changes.added),
      len(changes.modified),
      len(changes.removed),
      len(changes.unchanged),
    )

    failed: dict[str, str] = {}
    applied: list[str] = []

    for path in changes.uploads:
      try:
        self.storage.put(bucket, path, (root / path).read_bytes(), guess_content_type(path))
      except (OSError, ProvisioningError) as e:
        logger.warning("Upload of %s failed: %s", path, e)
        failed[path] = str(e)
      else:
        applied.append(path)

    for path in changes.removed:
      try:
        self.storage.delete(bucket, path)
      except ProvisioningError as e:
        logger.warning("Delete of %s failed: %s", path, e)
        failed[path] = str(e)
      else:
        applied.append(path)

    patterns = invalidation_patterns(applied, self.invalidation_path_limit)
    invalidation_id = None
    if patterns:
      try:
        invalidation_id = self.cdn.invalidate(distribution, patterns)
      except InvalidationQuotaError as e:
        if failed:
          raise PartialUploadError(failed, sorted(applied)) from e
        raise
      logger.info(
        "Invalidated %d pattern(s) on %s (%s)", len(patterns), distribution.id, invalidation_id
      )
    else:
      logger.info("Content of %s already up to date", bucket.name)

    if failed:
      raise PartialUploadError(failed, sorted(applied))

    return SyncReport(
      changes=changes,
      invalidation_paths=tuple(patterns),
      invalidation_id=invalidation_id,
    )
