# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
CodeBuild project building the image, and its IAM role.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecr import Repository
    from troposphere.s3 import Bucket

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Sub, Tags
from troposphere.codebuild import (
    Artifacts,
    Environment,
    EnvironmentVariable,
    Project,
    Source,
)
from troposphere.iam import Role

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.common.troposphere_tools import add_resource
from ecs_fargate_stack.ecr.ecr_params import PUSH_ACTIONS
from ecs_fargate_stack.ecs.ecs_params import ECR_AUTHORIZATION_ACTION
from ecs_fargate_stack.iam import add_policy_statements, service_role_trust_policy
from ecs_fargate_stack.pipeline.buildspec import define_buildspec, render_buildspec
from ecs_fargate_stack.pipeline.pipeline_params import (
    BUILD_PROJECT_T,
    BUILD_ROLE_POLICY_NAME,
    BUILD_ROLE_T,
    DEFAULT_BUILD_IMAGE,
    DEFAULT_BUILD_TIMEOUT,
    DEFAULT_COMPUTE_TYPE,
)


def define_build_statements(repository: Repository, bucket: Bucket) -> list:
    """
    Permissions of the build project: push to the repository, write its logs, read and write the artifacts.

    :param troposphere.ecr.Repository repository:
    :param troposphere.s3.Bucket bucket:
    :rtype: list[dict]
    """
    return [
        {
            "Sid": "AllowsEcrLogin",
            "Effect": "Allow",
            "Action": [ECR_AUTHORIZATION_ACTION],
            "Resource": ["*"],
        },
        {
            "Sid": "AllowsPushToRepository",
            "Effect": "Allow",
            "Action": PUSH_ACTIONS,
            "Resource": [GetAtt(repository, "Arn")],
        },
        {
            "Sid": "AllowsBuildLogs",
            "Effect": "Allow",
            "Action": [
                "logs:CreateLogGroup",
                "logs:CreateLogStream",
                "logs:PutLogEvents",
            ],
            "Resource": [
                Sub(
                    "arn:${AWS::Partition}:logs:${AWS::Region}:${AWS::AccountId}:log-group:/aws/codebuild/*"
                )
            ],
        },
        {
            "Sid": "AllowsArtifactsReadWrite",
            "Effect": "Allow",
            "Action": ["s3:GetObject", "s3:GetObjectVersion", "s3:PutObject"],
            "Resource": [Sub(f"${{{bucket.title}.Arn}}/*")],
        },
        {
            "Sid": "AllowsArtifactsBucketLocation",
            "Effect": "Allow",
            "Action": ["s3:GetBucketAcl", "s3:GetBucketLocation"],
            "Resource": [GetAtt(bucket, "Arn")],
        },
    ]


def add_build_role(template: Template, repository: Repository, bucket: Bucket) -> Role:
    role = Role(
        BUILD_ROLE_T,
        AssumeRolePolicyDocument=service_role_trust_policy("codebuild"),
        Description=Sub(f"{BUILD_ROLE_T} for ${{AWS::StackName}}"),
    )
    add_policy_statements(
        role, BUILD_ROLE_POLICY_NAME, define_build_statements(repository, bucket)
    )
    add_resource(template, role)
    return role


def define_build_environment(
    definition: dict, repository: Repository, container_name: str
) -> Environment:
    """
    Privileged Linux environment, required to run docker, exposing the repository URI and container name.
    """
    return Environment(
        ComputeType=set_else_none(
            "ComputeType", definition, alt_value=DEFAULT_COMPUTE_TYPE
        ),
        Image=set_else_none("Image", definition, alt_value=DEFAULT_BUILD_IMAGE),
        Type="LINUX_CONTAINER",
        PrivilegedMode=True,
        EnvironmentVariables=[
            EnvironmentVariable(
                Name="REPOSITORY_URI",
                Type="PLAINTEXT",
                Value=GetAtt(repository, "RepositoryUri"),
            ),
            EnvironmentVariable(
                Name="CONTAINER_NAME", Type="PLAINTEXT", Value=container_name
            ),
        ],
    )


def add_build_project(
    template: Template,
    definition: dict,
    repository: Repository,
    bucket: Bucket,
    container_name: str,
    image_definitions_file: str = None,
) -> Project:
    """
    Creates the CodeBuild project and its role

    :param troposphere.Template template:
    :param dict definition: the Pipeline.Build definition
    :param troposphere.ecr.Repository repository:
    :param troposphere.s3.Bucket bucket:
    :param str container_name: name of the container to update in the image definitions file
    :param str image_definitions_file:
    :rtype: troposphere.codebuild.Project
    """
    role = add_build_role(template, repository, bucket)
    buildspec = define_buildspec(
        set_else_none("BuildSpec", definition, alt_value={}), image_definitions_file
    )
    props = {
        "ServiceRole": GetAtt(role, "Arn"),
        "Source": Source(Type="CODEPIPELINE", BuildSpec=render_buildspec(buildspec)),
        "Artifacts": Artifacts(Type="CODEPIPELINE"),
        "Environment": define_build_environment(
            definition, repository, container_name
        ),
        "TimeoutInMinutes": set_else_none(
            "TimeoutInMinutes",
            definition,
            alt_value=DEFAULT_BUILD_TIMEOUT,
            eval_bool=True,
        ),
    }
    if keyisset("ProjectName", definition):
        props["Name"] = definition["ProjectName"]
        props["Tags"] = Tags(Name=definition["ProjectName"])
    project = Project(BUILD_PROJECT_T, **props)
    add_resource(template, project)
    LOG.info(
        f"{BUILD_PROJECT_T} - phases {list(buildspec['phases'].keys())},"
        f" artifacts {buildspec['artifacts']['files']}"
    )
    return project
