"""Dependency ordering for resource descriptors.

Descriptors are applied only after every descriptor they depend on has
completed. Among descriptors that are ready at the same time, the one
declared first goes first, so the same input always yields the same plan.
"""

import heapq
from collections.abc import Iterable, Sequence

from .descriptors import ResourceDescriptor
from .errors import CycleError, GraphError, UnknownDependencyError


def order(descriptors: Sequence[ResourceDescriptor]) -> list[str]:
  """Return logical ids in a deterministic topological order.

  Raises:
    GraphError: Two descriptors share a logical id.
    UnknownDependencyError: A dependency id is not in the input set.
    CycleError: The dependency graph is not acyclic.
  """
  position: dict[str, int] = {}
  for index, descriptor in enumerate(descriptors):
    if descriptor.logical_id in position:
      raise GraphError(f"Duplicate logical id {descriptor.logical_id!r}")
    position[descriptor.logical_id] = index

  # Reverse edges: logical id -> descriptors that depend on it
  dependents: dict[str, list[str]] = {d.logical_id: [] for d in descriptors}
  in_degree: dict[str, int] = {}
  for descriptor in descriptors:
    prerequisites = set(descriptor.dependencies)
    for dependency in prerequisites:
      if dependency not in position:
        raise UnknownDependencyError(descriptor.logical_id, dependency)
      dependents[dependency].append(descriptor.logical_id)
    in_degree[descriptor.logical_id] = len(prerequisites)

  ready = [position[lid] for lid, degree in in_degree.items() if degree == 0]
  heapq.heapify(ready)
  result: list[str] = []

  while ready:
    logical_id = descriptors[heapq.heappop(ready)].logical_id
    result.append(logical_id)
    for dependent in dependents[logical_id]:
      in_degree[dependent] -= 1
      if in_degree[dependent] == 0:
        heapq.heappush(ready, position[dependent])

  if len(result) != len(descriptors):
    remaining = [d.logical_id for d in descriptors if in_degree[d.logical_id] > 0]
    raise CycleError(remaining)
  return result


def resume_point(full_order: Sequence[str], completed: Iterable[str]) -> list[str]:
  """Ids still to apply, starting at the first one not yet completed."""
  done = set(completed)
  for index, logical_id in enumerate(full_order):
    if logical_id not in done:
      return list(full_order[index:])
  return []
