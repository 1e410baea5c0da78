# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
S3 bucket storing the pipeline artifacts (and the source archive for the S3 source provider).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import AWS_ACCOUNT_ID, AWS_REGION, Sub
from troposphere.s3 import (
    Bucket,
    BucketEncryption,
    PublicAccessBlockConfiguration,
    ServerSideEncryptionByDefault,
    ServerSideEncryptionRule,
    VersioningConfiguration,
)

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.common.troposphere_tools import add_resource, set_removal_policy
from ecs_fargate_stack.pipeline.pipeline_params import ARTIFACTS_BUCKET_T


def define_bucket_name(definition: dict):
    """
    Function to automatically add Region and Account ID to the bucket name.
    If set, will use a user-defined separator, else, `-`

    :param dict definition: the ArtifactsBucket definition
    :return: The bucket name, or None to let CFN generate one
    """
    separator = set_else_none("NameSeparator", definition, alt_value="-")
    base_name = set_else_none("BucketName", definition)
    if not base_name:
        return None
    expand_region = keyisset("ExpandRegionToBucket", definition)
    expand_account_id = keyisset("ExpandAccountIdToBucket", definition)
    if expand_account_id and expand_region:
        return Sub(
            f"{base_name}{separator}${{{AWS_ACCOUNT_ID}}}{separator}${{{AWS_REGION}}}"
        )
    elif expand_region:
        return Sub(f"{base_name}{separator}${{{AWS_REGION}}}")
    elif expand_account_id:
        return Sub(f"{base_name}{separator}${{{AWS_ACCOUNT_ID}}}")
    LOG.warning(
        f"{base_name} - You defined the bucket without any extension. "
        "Bucket names must be unique. Make sure it is not already in-use"
    )
    return base_name


def add_artifacts_bucket(template: Template, definition: dict) -> Bucket:
    """
    Creates the versioned and encrypted artifacts bucket. Public access is blocked.

    :param troposphere.Template template:
    :param dict definition: the Pipeline.ArtifactsBucket definition
    :rtype: troposphere.s3.Bucket
    """
    props = {
        "VersioningConfiguration": VersioningConfiguration(Status="Enabled"),
        "BucketEncryption": BucketEncryption(
            ServerSideEncryptionConfiguration=[
                ServerSideEncryptionRule(
                    ServerSideEncryptionByDefault=ServerSideEncryptionByDefault(
                        SSEAlgorithm="AES256"
                    )
                )
            ]
        ),
        "PublicAccessBlockConfiguration": PublicAccessBlockConfiguration(
            BlockPublicAcls=True,
            BlockPublicPolicy=True,
            IgnorePublicAcls=True,
            RestrictPublicBuckets=True,
        ),
    }
    bucket_name = define_bucket_name(definition)
    if bucket_name:
        props["BucketName"] = bucket_name
    bucket = Bucket(ARTIFACTS_BUCKET_T, **props)
    removal_policy = set_else_none("RemovalPolicy", definition)
    set_removal_policy(bucket, removal_policy)
    if bucket.DeletionPolicy == "Delete":
        LOG.warning(
            f"{ARTIFACTS_BUCKET_T} - CloudFormation only deletes empty buckets."
            " Empty the bucket before deleting the stack."
        )
    add_resource(template, bucket)
    return bucket
