"""Declarative CDK rendition of the static website descriptor graph."""

from collections.abc import Callable
from typing import Any

from aws_cdk import RemovalPolicy
from aws_cdk import aws_certificatemanager as acm
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_cloudfront_origins as origins
from aws_cdk import aws_route53 as route53
from aws_cdk import aws_route53_targets as targets
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_s3_deployment as s3_deploy
from constructs import Construct

from ..config import DeploymentConfig
from ..descriptors import DistributionSettings, Kind, ResourceDescriptor, build_descriptors
from ..graph import order
from ..manifest import WILDCARD_PATTERN

Declaration = Callable[["StaticWebsiteConstruct", ResourceDescriptor], Any]


class StaticWebsiteConstruct(Construct):
  """Private bucket, CloudFront distribution and alias record for one site.

  Declares the same descriptors the orchestrator provisions, in the same
  dependency order, and lets CloudFormation reconcile them. Content is
  deployed with a BucketDeployment that purges ``/*`` on every change.
  """

  def __init__(
    self,
    scope: Construct,
    id: str,
    *,
    config: DeploymentConfig,
    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
  ) -> None:
    super().__init__(scope, id)

    self.config = config
    self.removal_policy = removal_policy
    self.declared: dict[Kind, Any] = {}

    descriptors = build_descriptors(config)
    by_id = {d.logical_id: d for d in descriptors}
    for logical_id in order(descriptors):
      descriptor = by_id[logical_id]
      self.declared[descriptor.kind] = _DECLARATIONS[descriptor.kind](self, descriptor)

  @property
  def bucket(self) -> s3.Bucket:
    bucket: s3.Bucket = self.declared[Kind.STORAGE]
    return bucket

  @property
  def distribution(self) -> cloudfront.Distribution:
    distribution: cloudfront.Distribution = self.declared[Kind.DISTRIBUTION]
    return distribution

  @property
  def hosted_zone(self) -> route53.IHostedZone:
    zone: route53.IHostedZone = self.declared[Kind.ZONE_LOOKUP]
    return zone

  @property
  def distribution_url(self) -> str:
    return f"https://{self.distribution.distribution_domain_name}"

  def _declare_storage(self, descriptor: ResourceDescriptor) -> s3.Bucket:
    return s3.Bucket(
      self,
      "WebsiteBucket",
      bucket_name=descriptor.attributes["bucket_name"],
      access_control=s3.BucketAccessControl.PRIVATE,
      block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
      removal_policy=self.removal_policy,
      auto_delete_objects=self.removal_policy == RemovalPolicy.DESTROY,
    )

  def _declare_access_binding(
    self, descriptor: ResourceDescriptor
  ) -> cloudfront.S3OriginAccessControl:
    # The bucket policy granting it access is added by the origin
    return cloudfront.S3OriginAccessControl(
      self,
      "OriginAccessControl",
      description=descriptor.attributes["identity_comment"],
    )

  def _declare_origin(self, descriptor: ResourceDescriptor) -> cloudfront.IOrigin:
    levels = {
      "read": cloudfront.AccessLevel.READ,
      "list": cloudfront.AccessLevel.LIST,
    }
    return origins.S3BucketOrigin.with_origin_access_control(
      self.bucket,
      origin_access_control=self.declared[Kind.ACCESS_BINDING],
      origin_access_levels=[levels[level] for level in descriptor.attributes["access_levels"]],
    )

  def _declare_zone_lookup(self, descriptor: ResourceDescriptor) -> route53.IHostedZone:
    return route53.HostedZone.from_hosted_zone_attributes(
      self,
      "HostedZone",
      hosted_zone_id=descriptor.attributes["zone_id"],
      zone_name=descriptor.attributes["zone_name"],
    )

  def _declare_distribution(self, descriptor: ResourceDescriptor) -> cloudfront.Distribution:
    settings: DistributionSettings = descriptor.attributes["settings"]
    return cloudfront.Distribution(
      self,
      "Distribution",
      comment=settings.comment,
      default_behavior=cloudfront.BehaviorOptions(
        origin=self.declared[Kind.ORIGIN],
        viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
        allowed_methods=cloudfront.AllowedMethods.ALLOW_GET_HEAD,
        cached_methods=cloudfront.CachedMethods.CACHE_GET_HEAD,
        cache_policy=cloudfront.CachePolicy.CACHING_OPTIMIZED,
      ),
      default_root_object=settings.default_root_object,
      domain_names=list(settings.domain_names),
      certificate=acm.Certificate.from_certificate_arn(
        self, "Certificate", settings.certificate_ref
      ),
      minimum_protocol_version=cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021,
      error_responses=[
        cloudfront.ErrorResponse(
          http_status=rule["http_status"],
          response_http_status=rule["response_http_status"],
          response_page_path=rule["response_page_path"],
        )
        for rule in settings.error_responses
      ],
    )

  def _declare_content_sync(self, descriptor: ResourceDescriptor) -> s3_deploy.BucketDeployment:
    return s3_deploy.BucketDeployment(
      self,
      "DeployWebsite",
      sources=[s3_deploy.Source.asset(str(descriptor.attributes["content_path"]))],
      destination_bucket=self.bucket,
      distribution=self.distribution,
      distribution_paths=[WILDCARD_PATTERN],
    )

  def _declare_alias_record(self, descriptor: ResourceDescriptor) -> list[route53.RecordSet]:
    record_name = descriptor.attributes["record_name"]
    target = route53.RecordTarget.from_alias(targets.CloudFrontTarget(self.distribution))
    records: list[route53.RecordSet] = [
      route53.ARecord(
        self, "AliasRecord", zone=self.hosted_zone, record_name=record_name, target=target
      ),
      route53.AaaaRecord(
        self, "AliasRecordIpv6", zone=self.hosted_zone, record_name=record_name, target=target
      ),
    ]
    # Content must be in place before the name resolves to the distribution
    for record in records:
      record.node.add_dependency(self.declared[Kind.CONTENT_SYNC])
    return records


_DECLARATIONS: dict[Kind, Declaration] = {
  Kind.STORAGE: StaticWebsiteConstruct._declare_storage,
  Kind.ACCESS_BINDING: StaticWebsiteConstruct._declare_access_binding,
  Kind.ORIGIN: StaticWebsiteConstruct._declare_origin,
  Kind.ZONE_LOOKUP: StaticWebsiteConstruct._declare_zone_lookup,
  Kind.DISTRIBUTION: StaticWebsiteConstruct._declare_distribution,
  Kind.CONTENT_SYNC: StaticWebsiteConstruct._declare_content_sync,
  Kind.ALIAS_RECORD: StaticWebsiteConstruct._declare_alias_record,
}
