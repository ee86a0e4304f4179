#!/usr/bin/env python3
"""CDK application entry point for static website infrastructure."""

import aws_cdk as cdk
import boto3

from site_provisioner.config import Config
from site_provisioner.stacks.site_stack import StaticSiteStack


def get_account_id() -> str:
  """Get AWS account ID from current credentials."""
  sts = boto3.client("sts")
  return str(sts.get_caller_identity()["Account"])


def main() -> None:
  """Create CDK app with a stack for each configured site."""
  app = cdk.App()

  # Load configuration
  config_path = app.node.try_get_context("config") or "sites.yaml"
  config = Config.from_yaml(config_path)

  # Get account ID from credentials
  account_id = get_account_id()

  for site in config.sites:
    stack_name = f"StaticSite-{site.domain_name.replace('.', '-')}"
    StaticSiteStack(
      app,
      stack_name,
      site_config=site,
      env=cdk.Environment(
        account=account_id,
        region=site.region,
      ),
      description=f"Static website infrastructure for {site.domain_name}",
    )

  app.synth()


if __name__ == "__main__":
  main()
