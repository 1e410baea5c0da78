# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Output, Tags
from troposphere.ecr import ImageScanningConfiguration, LifecyclePolicy, Repository

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.common.troposphere_tools import add_resource, set_removal_policy
from ecs_fargate_stack.ecr.ecr_params import REPOSITORY_T, REPOSITORY_URI_OUTPUT


def define_lifecycle_policy(max_image_count: int) -> LifecyclePolicy:
    """
    Keeps only the most recent images in the repository.

    :param int max_image_count:
    :rtype: troposphere.ecr.LifecyclePolicy
    """
    policy = {
        "rules": [
            {
                "rulePriority": 1,
                "description": f"Keep the last {max_image_count} images",
                "selection": {
                    "tagStatus": "any",
                    "countType": "imageCountMoreThan",
                    "countNumber": max_image_count,
                },
                "action": {"type": "expire"},
            }
        ]
    }
    return LifecyclePolicy(LifecyclePolicyText=json.dumps(policy))


def define_repository(definition: dict) -> Repository:
    """
    Defines the ECR repository. The task definition can use it before it is added to the template.

    :param dict definition: the Pipeline.Repository definition
    :rtype: troposphere.ecr.Repository
    """
    props = {
        "ImageScanningConfiguration": ImageScanningConfiguration(
            ScanOnPush=set_else_none(
                "ScanOnPush", definition, alt_value=True, eval_bool=True
            )
        ),
        "ImageTagMutability": set_else_none(
            "ImageTagMutability", definition, alt_value="MUTABLE"
        ),
    }
    if keyisset("RepositoryName", definition):
        props["RepositoryName"] = definition["RepositoryName"]
        props["Tags"] = Tags(Name=definition["RepositoryName"])
    if keyisset("MaxImageCount", definition):
        props["LifecyclePolicy"] = define_lifecycle_policy(
            definition["MaxImageCount"]
        )
    repository = Repository(REPOSITORY_T, **props)
    set_removal_policy(repository, set_else_none("RemovalPolicy", definition))
    return repository


def add_repository(
    template: Template, definition: dict, repository: Repository = None
) -> Repository:
    """
    Adds the ECR repository to the template

    :param troposphere.Template template:
    :param dict definition: the Pipeline.Repository definition
    :param troposphere.ecr.Repository repository: already defined repository, if any
    :rtype: troposphere.ecr.Repository
    """
    if repository is None:
        repository = define_repository(definition)
    add_resource(template, repository)
    LOG.info(
        f"{REPOSITORY_T} - RemovalPolicy {repository.DeletionPolicy}, scan on push"
        f" {repository.ImageScanningConfiguration.ScanOnPush}"
    )
    return repository


def repository_outputs(repository: Repository) -> list:
    return [
        Output(REPOSITORY_URI_OUTPUT, Value=GetAtt(repository, "RepositoryUri")),
    ]
