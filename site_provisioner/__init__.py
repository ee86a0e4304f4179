"""Dependency-ordered provisioning and content sync for static websites."""

from .config import Config, DeploymentConfig
from .descriptors import Kind, ResourceDescriptor, build_descriptors
from .graph import order, resume_point
from .orchestrator import CancellationToken, Orchestrator, ProvisionResult
from .sync import ContentSynchronizer, SyncReport

__all__ = [
  "CancellationToken",
  "Config",
  "ContentSynchronizer",
  "DeploymentConfig",
  "Kind",
  "Orchestrator",
  "ProvisionResult",
  "ResourceDescriptor",
  "SyncReport",
  "build_descriptors",
  "order",
  "resume_point",
]
