# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Delivery pipeline of the service: image repository, artifacts bucket, build project and pipeline
with the Source, Build and Deploy stages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecr import Repository
    from troposphere.ecs import Service
    from troposphere.iam import Role
    from ecs_fargate_stack.ecs_cluster import EcsCluster

from compose_x_common.compose_x_common import set_else_none

from ecs_fargate_stack.ecr.ecr_repository import add_repository, repository_outputs
from ecs_fargate_stack.pipeline.artifacts_bucket import add_artifacts_bucket
from ecs_fargate_stack.pipeline.codebuild import add_build_project
from ecs_fargate_stack.pipeline.codepipeline import add_codepipeline, pipeline_outputs
from ecs_fargate_stack.pipeline.pipeline_params import DEFAULT_IMAGE_DEFINITIONS_FILE


class StackPipeline:
    """
    Groups the resources of the delivery pipeline.

    :ivar troposphere.ecr.Repository repository:
    :ivar troposphere.s3.Bucket bucket:
    :ivar troposphere.codebuild.Project project:
    :ivar troposphere.codepipeline.Pipeline pipeline:
    """

    def __init__(self, definition: dict):
        self.definition = definition
        self.image_definitions_file = set_else_none(
            "ImageDefinitionsFile",
            set_else_none("Deploy", definition, alt_value={}),
            alt_value=DEFAULT_IMAGE_DEFINITIONS_FILE,
        )
        self.repository = None
        self.bucket = None
        self.project = None
        self.pipeline = None

    @property
    def outputs(self) -> list:
        return repository_outputs(self.repository) + pipeline_outputs(self.pipeline)

    def add_to_template(
        self,
        template: Template,
        cluster: EcsCluster,
        service: Service,
        execution_role: Role,
        container_name: str,
        repository: Repository = None,
    ) -> None:
        """
        Adds the pipeline resources to the template, in the repository, bucket, project, pipeline order.

        :param troposphere.Template template:
        :param EcsCluster cluster:
        :param troposphere.ecs.Service service:
        :param troposphere.iam.Role execution_role:
        :param str container_name: the container the pipeline deploys new images of
        :param troposphere.ecr.Repository repository: repository already defined for the container image
        """
        self.repository = add_repository(
            template,
            set_else_none("Repository", self.definition, alt_value={}),
            repository,
        )
        self.bucket = add_artifacts_bucket(
            template, set_else_none("ArtifactsBucket", self.definition, alt_value={})
        )
        self.project = add_build_project(
            template,
            set_else_none("Build", self.definition, alt_value={}),
            self.repository,
            self.bucket,
            container_name,
            self.image_definitions_file,
        )
        self.pipeline = add_codepipeline(
            template,
            self.definition,
            self.bucket,
            self.project,
            cluster,
            service,
            execution_role,
            self.image_definitions_file,
        )


def add_pipeline(
    template: Template,
    definition: dict,
    cluster: EcsCluster,
    service: Service,
    execution_role: Role,
    container_name: str,
    repository: Repository = None,
) -> StackPipeline:
    """
    Creates the delivery pipeline of the service

    :rtype: StackPipeline
    """
    pipeline = StackPipeline(definition)
    pipeline.add_to_template(
        template, cluster, service, execution_role, container_name, repository
    )
    return pipeline
