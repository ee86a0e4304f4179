"""Content manifests and change detection."""

import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

WILDCARD_PATTERN = "/*"

_CHUNK_SIZE = 1024 * 1024


def file_digest(path: Path) -> str:
  """MD5 hex digest of a file's bytes.

  MD5 matches the ETag the storage service reports for single-part uploads,
  so local and remote manifests compare directly.
  """
  digest = hashlib.md5(usedforsecurity=False)
  with open(path, "rb") as f:
    for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
      digest.update(chunk)
  return digest.hexdigest()


def build_manifest(content_path: Path) -> dict[str, str]:
  """Map every file below content_path (relative POSIX path) to its digest."""
  root = Path(content_path)
  files = sorted(
    (p for p in root.rglob("*") if p.is_file()),
    key=lambda p: p.relative_to(root).as_posix(),
  )
  return {p.relative_to(root).as_posix(): file_digest(p) for p in files}


@dataclass(frozen=True)
class ChangeSet:
  """Difference between the deployed manifest and the local one."""

  added: tuple[str, ...] = ()
  modified: tuple[str, ...] = ()
  removed: tuple[str, ...] = ()
  unchanged: tuple[str, ...] = ()

  @property
  def uploads(self) -> tuple[str, ...]:
    return tuple(sorted(self.added + self.modified))

  @property
  def touched(self) -> tuple[str, ...]:
    return tuple(sorted(self.added + self.modified + self.removed))

  @property
  def is_empty(self) -> bool:
    return not (self.added or self.modified or self.removed)


def diff_manifests(current: Mapping[str, str], previous: Mapping[str, str]) -> ChangeSet:
  """Classify paths as added, modified, removed or unchanged."""
  added: list[str] = []
  modified: list[str] = []
  unchanged: list[str] = []
  for path, digest in current.items():
    if path not in previous:
      added.append(path)
    elif previous[path] != digest:
      modified.append(path)
    else:
      unchanged.append(path)
  removed = [path for path in previous if path not in current]
  return ChangeSet(
    added=tuple(sorted(added)),
    modified=tuple(sorted(modified)),
    removed=tuple(sorted(removed)),
    unchanged=tuple(sorted(unchanged)),
  )


def invalidation_patterns(paths: Iterable[str], limit: int) -> list[str]:
  """Cache-purge patterns for the given paths.

  More than ``limit`` paths collapse into a single wildcard.
  """
  patterns = sorted({"/" + quote(path.lstrip("/"), safe="/") for path in paths})
  if len(patterns) > limit:
    return [WILDCARD_PATTERN]
  return patterns
