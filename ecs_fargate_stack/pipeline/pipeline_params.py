# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Logical IDs and defaults of the delivery pipeline resources.
"""

ARTIFACTS_BUCKET_T = "ArtifactsBucket"
BUILD_PROJECT_T = "BuildProject"
BUILD_ROLE_T = "BuildProjectRole"
PIPELINE_T = "Pipeline"
PIPELINE_ROLE_T = "PipelineRole"

BUILD_ROLE_POLICY_NAME = "BuildProjectPermissions"
PIPELINE_ROLE_POLICY_NAME = "PipelinePermissions"

PIPELINE_NAME_OUTPUT = "PipelineName"

SOURCE_STAGE = "Source"
BUILD_STAGE = "Build"
DEPLOY_STAGE = "Deploy"

SOURCE_ARTIFACT = "SourceOutput"
BUILD_ARTIFACT = "BuildOutput"

S3_SOURCE = "S3"
CODESTAR_SOURCE = "CodeStarSourceConnection"
SOURCE_PROVIDERS = [S3_SOURCE, CODESTAR_SOURCE]

DEFAULT_SOURCE_KEY = "source.zip"
DEFAULT_BRANCH = "main"
DEFAULT_IMAGE_DEFINITIONS_FILE = "imagedefinitions.json"

DEFAULT_BUILD_IMAGE = "aws/codebuild/standard:7.0"
DEFAULT_COMPUTE_TYPE = "BUILD_GENERAL1_SMALL"
DEFAULT_BUILD_TIMEOUT = 60
