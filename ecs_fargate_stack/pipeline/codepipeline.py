# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
CodePipeline with the Source, Build and Deploy stages, and its IAM role.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.codebuild import Project
    from troposphere.ecs import Service
    from troposphere.iam import Role as RoleType
    from troposphere.s3 import Bucket
    from ecs_fargate_stack.ecs_cluster import EcsCluster

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Output, Ref, Sub, Tags
from troposphere.codepipeline import (
    Actions,
    ActionTypeId,
    ArtifactStore,
    InputArtifacts,
    OutputArtifacts,
    Pipeline,
    Stages,
)
from troposphere.iam import Role

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.common.troposphere_tools import add_resource
from ecs_fargate_stack.exceptions import IncompatibleOptions, InvalidStackDefinition
from ecs_fargate_stack.iam import add_policy_statements, service_role_trust_policy
from ecs_fargate_stack.pipeline.pipeline_params import (
    BUILD_ARTIFACT,
    BUILD_STAGE,
    CODESTAR_SOURCE,
    DEFAULT_BRANCH,
    DEFAULT_SOURCE_KEY,
    DEPLOY_STAGE,
    PIPELINE_NAME_OUTPUT,
    PIPELINE_ROLE_POLICY_NAME,
    PIPELINE_ROLE_T,
    PIPELINE_T,
    S3_SOURCE,
    SOURCE_ARTIFACT,
    SOURCE_PROVIDERS,
    SOURCE_STAGE,
)


def define_source_action(source_def: dict, bucket: Bucket) -> Actions:
    """
    Source action, either from an archive in the artifacts bucket or from a repository connection.

    :param dict source_def: the Pipeline.Source definition
    :param troposphere.s3.Bucket bucket:
    :rtype: troposphere.codepipeline.Actions
    """
    provider = set_else_none("Provider", source_def, alt_value=S3_SOURCE)
    if provider not in SOURCE_PROVIDERS:
        raise InvalidStackDefinition(
            f"{PIPELINE_T} - Source provider {provider} is invalid. Must be one of",
            SOURCE_PROVIDERS,
        )
    if provider == S3_SOURCE:
        configuration = {
            "S3Bucket": Ref(bucket),
            "S3ObjectKey": set_else_none(
                "S3ObjectKey", source_def, alt_value=DEFAULT_SOURCE_KEY
            ),
            "PollForSourceChanges": "true",
        }
    else:
        for key in ["ConnectionArn", "FullRepositoryId"]:
            if not keyisset(key, source_def):
                raise IncompatibleOptions(
                    f"{PIPELINE_T} - Source provider {CODESTAR_SOURCE} requires {key}"
                )
        configuration = {
            "ConnectionArn": source_def["ConnectionArn"],
            "FullRepositoryId": source_def["FullRepositoryId"],
            "BranchName": set_else_none(
                "BranchName", source_def, alt_value=DEFAULT_BRANCH
            ),
            "OutputArtifactFormat": "CODE_ZIP",
        }
    return Actions(
        Name=SOURCE_STAGE,
        ActionTypeId=ActionTypeId(
            Category="Source", Owner="AWS", Provider=provider, Version="1"
        ),
        Configuration=configuration,
        OutputArtifacts=[OutputArtifacts(Name=SOURCE_ARTIFACT)],
        RunOrder=1,
    )


def define_build_action(project: Project) -> Actions:
    return Actions(
        Name=BUILD_STAGE,
        ActionTypeId=ActionTypeId(
            Category="Build", Owner="AWS", Provider="CodeBuild", Version="1"
        ),
        Configuration={"ProjectName": Ref(project)},
        InputArtifacts=[InputArtifacts(Name=SOURCE_ARTIFACT)],
        OutputArtifacts=[OutputArtifacts(Name=BUILD_ARTIFACT)],
        RunOrder=1,
    )


def define_deploy_action(
    cluster: EcsCluster, service: Service, image_definitions_file: str
) -> Actions:
    return Actions(
        Name=DEPLOY_STAGE,
        ActionTypeId=ActionTypeId(
            Category="Deploy", Owner="AWS", Provider="ECS", Version="1"
        ),
        Configuration={
            "ClusterName": cluster.cluster_identifier,
            "ServiceName": GetAtt(service, "Name"),
            "FileName": image_definitions_file,
        },
        InputArtifacts=[InputArtifacts(Name=BUILD_ARTIFACT)],
        RunOrder=1,
    )


def define_stages(
    source_def: dict,
    bucket: Bucket,
    project: Project,
    cluster: EcsCluster,
    service: Service,
    image_definitions_file: str,
) -> list:
    """
    Returns the stages, always in the Source, Build, Deploy order.

    :rtype: list[troposphere.codepipeline.Stages]
    """
    return [
        Stages(Name=SOURCE_STAGE, Actions=[define_source_action(source_def, bucket)]),
        Stages(Name=BUILD_STAGE, Actions=[define_build_action(project)]),
        Stages(
            Name=DEPLOY_STAGE,
            Actions=[define_deploy_action(cluster, service, image_definitions_file)],
        ),
    ]


def define_pipeline_statements(
    source_def: dict,
    bucket: Bucket,
    project: Project,
    cluster: EcsCluster,
    service: Service,
    execution_role: RoleType,
) -> list:
    """
    Permissions of the pipeline: artifacts bucket, start the build, update the service and pass the task
    execution role to ECS.

    :rtype: list[dict]
    """
    statements = [
        {
            "Sid": "AllowsArtifactsReadWrite",
            "Effect": "Allow",
            "Action": [
                "s3:GetObject",
                "s3:GetObjectVersion",
                "s3:PutObject",
            ],
            "Resource": [Sub(f"${{{bucket.title}.Arn}}/*")],
        },
        {
            "Sid": "AllowsArtifactsBucketAccess",
            "Effect": "Allow",
            "Action": ["s3:GetBucketVersioning", "s3:GetBucketLocation"],
            "Resource": [GetAtt(bucket, "Arn")],
        },
        {
            "Sid": "AllowsStartBuild",
            "Effect": "Allow",
            "Action": ["codebuild:StartBuild", "codebuild:BatchGetBuilds"],
            "Resource": [GetAtt(project, "Arn")],
        },
        {
            "Sid": "AllowsServiceUpdate",
            "Effect": "Allow",
            "Action": ["ecs:UpdateService", "ecs:DescribeServices"],
            "Resource": [Ref(service)],
        },
        {
            "Sid": "AllowsClusterDescribe",
            "Effect": "Allow",
            "Action": ["ecs:DescribeClusters"],
            "Resource": [GetAtt(cluster.cfn_resource, "Arn")],
        },
        {
            "Sid": "AllowsTaskDefinitionRegistration",
            "Effect": "Allow",
            "Action": [
                "ecs:DescribeTaskDefinition",
                "ecs:RegisterTaskDefinition",
                "ecs:DescribeTasks",
                "ecs:ListTasks",
            ],
            "Resource": ["*"],
        },
        {
            "Sid": "AllowsPassExecutionRole",
            "Effect": "Allow",
            "Action": ["iam:PassRole"],
            "Resource": [GetAtt(execution_role, "Arn")],
            "Condition": {
                "StringEqualsIfExists": {"iam:PassedToService": "ecs-tasks.amazonaws.com"}
            },
        },
    ]
    if set_else_none("Provider", source_def, alt_value=S3_SOURCE) == CODESTAR_SOURCE:
        statements.append(
            {
                "Sid": "AllowsUseConnection",
                "Effect": "Allow",
                "Action": ["codestar-connections:UseConnection"],
                "Resource": [source_def["ConnectionArn"]],
            }
        )
    return statements


def add_codepipeline(
    template: Template,
    definition: dict,
    bucket: Bucket,
    project: Project,
    cluster: EcsCluster,
    service: Service,
    execution_role: RoleType,
    image_definitions_file: str,
) -> Pipeline:
    """
    Creates the pipeline and its role

    :param troposphere.Template template:
    :param dict definition: the Pipeline definition
    :param troposphere.s3.Bucket bucket: artifacts store
    :param troposphere.codebuild.Project project:
    :param EcsCluster cluster:
    :param troposphere.ecs.Service service: the service the Deploy stage updates
    :param troposphere.iam.Role execution_role: the task execution role
    :param str image_definitions_file:
    :rtype: troposphere.codepipeline.Pipeline
    """
    source_def = set_else_none("Source", definition, alt_value={})
    role = Role(
        PIPELINE_ROLE_T,
        AssumeRolePolicyDocument=service_role_trust_policy("codepipeline"),
        Description=Sub(f"{PIPELINE_ROLE_T} for ${{AWS::StackName}}"),
    )
    add_policy_statements(
        role,
        PIPELINE_ROLE_POLICY_NAME,
        define_pipeline_statements(
            source_def, bucket, project, cluster, service, execution_role
        ),
    )
    add_resource(template, role)
    props = {
        "RoleArn": GetAtt(role, "Arn"),
        "ArtifactStore": ArtifactStore(Type="S3", Location=Ref(bucket)),
        "RestartExecutionOnUpdate": False,
        "Stages": define_stages(
            source_def, bucket, project, cluster, service, image_definitions_file
        ),
    }
    if keyisset("PipelineName", definition):
        props["Name"] = definition["PipelineName"]
        props["Tags"] = Tags(Name=definition["PipelineName"])
    pipeline = Pipeline(PIPELINE_T, **props)
    add_resource(template, pipeline)
    LOG.info(f"{PIPELINE_T} - stages {[stage.Name for stage in pipeline.Stages]}")
    return pipeline


def pipeline_outputs(pipeline: Pipeline) -> list:
    return [Output(PIPELINE_NAME_OUTPUT, Value=Ref(pipeline))]
