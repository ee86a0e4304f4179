"""Tests for descriptor dependency ordering."""

import itertools
import random

import pytest

from site_provisioner.config import DeploymentConfig
from site_provisioner.descriptors import Kind, ResourceDescriptor, build_descriptors
from site_provisioner.errors import CycleError, GraphError, UnknownDependencyError
from site_provisioner.graph import order, resume_point


def node(logical_id: str, *dependencies: str) -> ResourceDescriptor:
  return ResourceDescriptor(Kind.STORAGE, logical_id, {}, tuple(dependencies))


def assert_topological(descriptors: list[ResourceDescriptor], result: list[str]) -> None:
  position = {logical_id: i for i, logical_id in enumerate(result)}
  assert sorted(result) == sorted(d.logical_id for d in descriptors)
  for descriptor in descriptors:
    for dependency in descriptor.dependencies:
      assert position[dependency] < position[descriptor.logical_id]


class TestOrder:
  """Tests for order()."""

  def test_deployment_graph_order(self, site_config: DeploymentConfig) -> None:
    """The site graph orders storage first and the alias record last."""
    assert order(build_descriptors(site_config)) == [
      "storage",
      "access-binding",
      "origin",
      "hosted-zone",
      "distribution",
      "content-sync",
      "alias-record",
    ]

  def test_ready_ties_break_by_declaration_order(self) -> None:
    """Independent descriptors keep their declaration order."""
    descriptors = [node("c"), node("a"), node("b")]
    assert order(descriptors) == ["c", "a", "b"]

  def test_dependency_declared_later_still_comes_first(self) -> None:
    """A descriptor waits for a dependency declared after it."""
    descriptors = [node("alias", "dist"), node("zone"), node("dist", "zone")]
    assert order(descriptors) == ["zone", "dist", "alias"]

  def test_newly_ready_descriptor_respects_declaration_order(self) -> None:
    """A descriptor unlocked later can still precede one declared after it."""
    descriptors = [node("root"), node("early", "root"), node("late")]
    assert order(descriptors) == ["root", "early", "late"]

  def test_random_dags_are_topological_and_deterministic(self) -> None:
    """For random acyclic graphs every id follows all its dependencies."""
    rng = random.Random(7)
    for _ in range(50):
      ids = [f"n{i}" for i in range(rng.randint(1, 12))]
      descriptors = []
      for index, logical_id in enumerate(ids):
        deps = [d for d in ids[:index] if rng.random() < 0.3]
        descriptors.append(node(logical_id, *deps))
      rng.shuffle(descriptors)

      result = order(descriptors)

      assert_topological(descriptors, result)
      assert order(descriptors) == result

  def test_duplicate_dependencies_are_counted_once(self) -> None:
    descriptors = [node("a"), node("b", "a", "a")]
    assert order(descriptors) == ["a", "b"]

  def test_cycle_raises(self) -> None:
    """Cycles are reported with the ids left on them."""
    descriptors = [node("a", "c"), node("b", "a"), node("c", "b"), node("d")]

    with pytest.raises(CycleError) as excinfo:
      order(descriptors)

    assert excinfo.value.remaining == ["a", "b", "c"]

  def test_self_dependency_is_a_cycle(self) -> None:
    with pytest.raises(CycleError):
      order([node("a", "a")])

  def test_every_rotation_of_a_cycle_raises(self) -> None:
    """Cycle detection does not depend on declaration order."""
    cycle = [node("x", "z"), node("y", "x"), node("z", "y")]
    for permutation in itertools.permutations(cycle):
      with pytest.raises(CycleError):
        order(list(permutation))

  def test_unknown_dependency_raises(self) -> None:
    with pytest.raises(UnknownDependencyError) as excinfo:
      order([node("a", "missing")])

    assert excinfo.value.logical_id == "a"
    assert excinfo.value.dependency == "missing"

  def test_duplicate_ids_raise(self) -> None:
    with pytest.raises(GraphError):
      order([node("a"), node("a")])

  def test_empty_input(self) -> None:
    assert order([]) == []


class TestResumePoint:
  """Tests for resume_point()."""

  def test_resumes_after_completed_prefix(self) -> None:
    full = ["storage", "access-binding", "origin", "distribution"]
    assert resume_point(full, ["storage", "access-binding"]) == ["origin", "distribution"]

  def test_nothing_completed(self) -> None:
    full = ["storage", "origin"]
    assert resume_point(full, []) == full

  def test_everything_completed(self) -> None:
    full = ["storage", "origin"]
    assert resume_point(full, full) == []

  def test_resumes_at_first_gap(self) -> None:
    """Completed ids after a gap do not move the resume point."""
    full = ["a", "b", "c", "d"]
    assert resume_point(full, ["a", "c"]) == ["b", "c", "d"]
