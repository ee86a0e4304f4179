"""S3 implementation of the storage capability."""

import json
import logging
from typing import Any

from botocore.exceptions import ClientError

from ..capabilities import OriginIdentity, StorageHandle
from ..errors import InvalidNameError, NameConflictError
from .client_errors import error_code, provider_error

logger = logging.getLogger(__name__)

DEPLOYMENT_TAG = "site-provisioner:deployment"

_READ_ACTIONS = {"s3:GetObject": "read", "s3:ListBucket": "list"}
_OAI_PREFIX = "arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity "


class S3Storage:
  """Private content bucket backed by S3."""

  def __init__(self, s3_client: Any) -> None:
    self.s3 = s3_client

  def create(self, name: str, deployment_id: str, region: str) -> StorageHandle:
    """Create the bucket, or verify an existing one belongs to this deployment."""
    try:
      self.s3.head_bucket(Bucket=name)
    except ClientError as e:
      code = error_code(e)
      if code in ("403", "AccessDenied", "Forbidden"):
        raise NameConflictError(f"Bucket {name} is owned by another account") from e
      if code not in ("404", "NoSuchBucket", "NotFound"):
        raise provider_error(e, f"HeadBucket {name}") from e
      self._create_bucket(name, deployment_id, region)
      return StorageHandle(name=name, region=region)

    owner = self._deployment_tag(name)
    if owner != deployment_id:
      raise NameConflictError(
        f"Bucket {name} belongs to deployment {owner or '(untagged)'}, not {deployment_id}"
      )
    logger.debug("Bucket %s already exists", name)
    return StorageHandle(name=name, region=region, grants=self._read_grants(name))

  def _create_bucket(self, name: str, deployment_id: str, region: str) -> None:
    logger.info("Creating bucket %s in %s", name, region)
    params: dict[str, Any] = {"Bucket": name}
    if region != "us-east-1":
      params["CreateBucketConfiguration"] = {"LocationConstraint": region}
    try:
      self.s3.create_bucket(**params)
    except ClientError as e:
      code = error_code(e)
      if code == "BucketAlreadyExists":
        raise NameConflictError(f"Bucket {name} is owned by another account") from e
      if code == "InvalidBucketName":
        raise InvalidNameError(f"Bucket name {name!r} was rejected") from e
      raise provider_error(e, f"CreateBucket {name}") from e

    try:
      self.s3.put_public_access_block(
        Bucket=name,
        PublicAccessBlockConfiguration={
          "BlockPublicAcls": True,
          "IgnorePublicAcls": True,
          "BlockPublicPolicy": True,
          "RestrictPublicBuckets": True,
        },
      )
      self.s3.put_bucket_tagging(
        Bucket=name,
        Tagging={"TagSet": [{"Key": DEPLOYMENT_TAG, "Value": deployment_id}]},
      )
    except ClientError as e:
      raise provider_error(e, f"Configuring bucket {name}") from e

  def _deployment_tag(self, name: str) -> str | None:
    try:
      response = self.s3.get_bucket_tagging(Bucket=name)
    except ClientError as e:
      if error_code(e) == "NoSuchTagSet":
        return None
      raise provider_error(e, f"GetBucketTagging {name}") from e
    for tag in response.get("TagSet", []):
      if tag["Key"] == DEPLOYMENT_TAG:
        return str(tag["Value"])
    return None

  def _policy(self, name: str) -> dict[str, Any]:
    try:
      response = self.s3.get_bucket_policy(Bucket=name)
    except ClientError as e:
      if error_code(e) == "NoSuchBucketPolicy":
        return {"Version": "2012-10-17", "Statement": []}
      raise provider_error(e, f"GetBucketPolicy {name}") from e
    policy: dict[str, Any] = json.loads(response["Policy"])
    return policy

  def _read_grants(self, name: str) -> dict[str, frozenset[str]]:
    """Capabilities granted to CloudFront origin access identities."""
    grants: dict[str, set[str]] = {}
    for statement in self._policy(name).get("Statement", []):
      if statement.get("Effect") != "Allow":
        continue
      principal = statement.get("Principal", {})
      principals = principal.get("AWS", []) if isinstance(principal, dict) else []
      if isinstance(principals, str):
        principals = [principals]
      actions = statement.get("Action", [])
      if isinstance(actions, str):
        actions = [actions]
      for arn in principals:
        if not arn.startswith(_OAI_PREFIX):
          continue
        identity_id = arn[len(_OAI_PREFIX) :]
        for action in actions:
          if action in _READ_ACTIONS:
            grants.setdefault(identity_id, set()).add(_READ_ACTIONS[action])
    return {identity_id: frozenset(caps) for identity_id, caps in grants.items()}

  def grant_read(self, handle: StorageHandle, identity: OriginIdentity) -> StorageHandle:
    """Allow the identity to get and list objects. No-op if already granted."""
    if {"read", "list"} <= handle.capabilities_for(identity):
      return handle

    bucket_arn = f"arn:aws:s3:::{handle.name}"
    sid = f"CloudFrontRead{identity.id}"
    policy = self._policy(handle.name)
    statements = [
      s for s in policy.get("Statement", []) if not str(s.get("Sid", "")).startswith(sid)
    ]
    statements.extend(
      [
        {
          "Sid": f"{sid}Objects",
          "Effect": "Allow",
          "Principal": {"AWS": identity.principal_arn},
          "Action": "s3:GetObject",
          "Resource": f"{bucket_arn}/*",
        },
        {
          "Sid": f"{sid}List",
          "Effect": "Allow",
          "Principal": {"AWS": identity.principal_arn},
          "Action": "s3:ListBucket",
          "Resource": bucket_arn,
        },
      ]
    )
    policy["Statement"] = statements

    logger.info("Granting %s read access to bucket %s", identity.id, handle.name)
    try:
      self.s3.put_bucket_policy(Bucket=handle.name, Policy=json.dumps(policy))
    except ClientError as e:
      raise provider_error(e, f"PutBucketPolicy {handle.name}") from e

    grants = dict(handle.grants)
    grants[identity.id] = frozenset({"read", "list"})
    return StorageHandle(name=handle.name, region=handle.region, grants=grants)

  def put(self, handle: StorageHandle, path: str, body: bytes, content_type: str) -> None:
    try:
      self.s3.put_object(Bucket=handle.name, Key=path, Body=body, ContentType=content_type)
    except ClientError as e:
      raise provider_error(e, f"PutObject {path}") from e

  def delete(self, handle: StorageHandle, path: str) -> None:
    try:
      self.s3.delete_object(Bucket=handle.name, Key=path)
    except ClientError as e:
      raise provider_error(e, f"DeleteObject {path}") from e

  def list(self, handle: StorageHandle) -> list[tuple[str, str]]:
    """(key, digest) for every object; the digest is the ETag without quotes."""
    objects: list[tuple[str, str]] = []
    try:
      paginator = self.s3.get_paginator("list_objects_v2")
      for page in paginator.paginate(Bucket=handle.name):
        for obj in page.get("Contents", []):
          objects.append((obj["Key"], obj["ETag"].strip('"')))
    except ClientError as e:
      raise provider_error(e, f"ListObjectsV2 {handle.name}") from e
    return objects
