#!/usr/bin/env python3
"""Provision a static website and synchronize its content."""

import argparse
import logging
import sys

from site_provisioner.aws import build_orchestrator
from site_provisioner.config import Config
from site_provisioner.errors import ProvisioningError
from site_provisioner.orchestrator import ProvisionResult
from site_provisioner.sync import SyncReport


def print_result(result: ProvisionResult) -> None:
  """Print completed steps, sync summary and the outcome."""
  for logical_id in result.completed_ids:
    print(f"✓ {logical_id}")

  sync = result.outputs.get("content-sync")
  if sync is not None and isinstance(sync.value, SyncReport):
    report = sync.value
    print(
      f"  {len(report.uploaded)} uploaded, {len(report.deleted)} deleted,"
      f" {len(report.changes.unchanged)} unchanged"
    )
    if report.invalidation_id:
      print(f"  Invalidation {report.invalidation_id}: {', '.join(report.invalidation_paths)}")

  for error in result.errors:
    print(f"✗ {type(error).__name__}: {error}", file=sys.stderr)
  if result.website_url:
    print(f"\nWebsite: {result.website_url}")


def main() -> None:
  """Main entry point."""
  parser = argparse.ArgumentParser(description="Provision a static website")
  parser.add_argument(
    "--config",
    default="sites.yaml",
    help="Path to the sites configuration (default: sites.yaml)",
  )
  parser.add_argument(
    "--site",
    help="Domain of the site to provision (default: every configured site)",
  )
  parser.add_argument(
    "--verbose",
    action="store_true",
    help="Log every API decision",
  )
  args = parser.parse_args()

  logging.basicConfig(
    level=logging.DEBUG if args.verbose else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )

  try:
    config = Config.from_yaml(args.config)
    sites = [config.site(args.site)] if args.site else config.sites
  except (OSError, ProvisioningError) as e:
    print(f"Error loading configuration: {e}", file=sys.stderr)
    sys.exit(1)

  failed = []
  for site in sites:
    print(f"Provisioning {site.domain_name}...")
    result = build_orchestrator(site.region).provision(site)
    print_result(result)
    print()
    if not result.ok:
      failed.append(site.domain_name)

  if failed:
    print("Failed sites:")
    for domain in failed:
      print(f"  - {domain}")
    sys.exit(1)


if __name__ == "__main__":
  main()
