"""CDK stack for a single static website."""

from typing import Any

import aws_cdk as cdk
from constructs import Construct

from site_provisioner.cdk_constructs import StaticWebsiteConstruct
from site_provisioner.config import DeploymentConfig


class StaticSiteStack(cdk.Stack):
  """Stack for a single static website."""

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    site_config: DeploymentConfig,
    removal_policy: cdk.RemovalPolicy = cdk.RemovalPolicy.RETAIN,
    **kwargs: Any,
  ) -> None:
    super().__init__(scope, id, **kwargs)

    self.site = StaticWebsiteConstruct(
      self,
      "Site",
      config=site_config,
      removal_policy=removal_policy,
    )

    # Tag resources with deployment info
    cdk.Tags.of(self).add("Project", "static-sites")
    cdk.Tags.of(self).add("Domain", site_config.domain_name)
    cdk.Tags.of(self).add("Deployment", site_config.deployment_id)

    # Outputs
    cdk.CfnOutput(
      self,
      "BucketName",
      value=self.site.bucket.bucket_name,
      description="S3 bucket name",
    )
    cdk.CfnOutput(
      self,
      "DistributionId",
      value=self.site.distribution.distribution_id,
      description="CloudFront distribution ID",
    )
    cdk.CfnOutput(
      self,
      "DistributionDomainName",
      value=self.site.distribution.distribution_domain_name,
      description="CloudFront distribution domain name",
    )
    cdk.CfnOutput(
      self,
      "WebsiteUrl",
      value=site_config.website_url,
      description="Public website URL",
    )
