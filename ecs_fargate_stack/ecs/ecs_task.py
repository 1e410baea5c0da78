# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Fargate Task Definition and the log group of its container.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecr import Repository
    from troposphere.iam import Role

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Tags
from troposphere.ecs import RuntimePlatform, TaskDefinition
from troposphere.logs import LogGroup

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.common.troposphere_tools import set_removal_policy
from ecs_fargate_stack.ecs import metadata
from ecs_fargate_stack.ecs.ecs_container import define_container, describe_image
from ecs_fargate_stack.ecs.ecs_params import (
    FARGATE_MODES,
    LOG_GROUP_RETENTION_VALUES,
    LOG_GROUP_T,
    TASK_T,
)
from ecs_fargate_stack.exceptions import InvalidStackDefinition


def get_closest_valid_log_retention_period(set_expiry):
    return min(
        LOG_GROUP_RETENTION_VALUES,
        key=lambda x: abs(x - max([set_expiry])),
    )


def validate_fargate_cpu_ram(cpu: int, ram: int) -> None:
    """
    Validates the CPU / RAM combination is supported by AWS Fargate

    :param int cpu: CPU units
    :param int ram: memory in MiB
    :raises InvalidStackDefinition:
    """
    if cpu not in FARGATE_MODES:
        raise InvalidStackDefinition(
            f"Cpu {cpu} is not valid for Fargate. Must be one of", list(FARGATE_MODES.keys())
        )
    if ram not in FARGATE_MODES[cpu]:
        raise InvalidStackDefinition(
            f"MemoryLimitMiB {ram} is not valid for Fargate with {cpu} CPU units. Must be one of",
            FARGATE_MODES[cpu],
        )


def add_log_group(template: Template, definition: dict) -> LogGroup:
    """
    Creates the log group the containers send their logs to.

    :param troposphere.Template template:
    :param dict definition: the Logging definition
    :rtype: troposphere.logs.LogGroup
    """
    retention = set_else_none("RetentionInDays", definition, alt_value=30)
    valid_retention = get_closest_valid_log_retention_period(retention)
    if valid_retention != retention:
        LOG.warning(
            f"{LOG_GROUP_T} - RetentionInDays {retention} is not valid. Using closest value {valid_retention}"
        )
    props = {"RetentionInDays": valid_retention}
    if keyisset("LogGroupName", definition):
        props["LogGroupName"] = definition["LogGroupName"]
    log_group = LogGroup(LOG_GROUP_T, **props)
    set_removal_policy(
        log_group, set_else_none("RemovalPolicy", definition, alt_value="destroy")
    )
    template.add_resource(log_group)
    return log_group


def add_task_definition(
    template: Template,
    definition: dict,
    execution_role: Role,
    log_group: LogGroup = None,
    repository: Repository = None,
) -> TaskDefinition:
    """
    Creates the Fargate task definition with its single container.

    :param troposphere.Template template:
    :param dict definition: the TaskDefinition definition
    :param troposphere.iam.Role execution_role:
    :param troposphere.logs.LogGroup log_group:
    :param troposphere.ecr.Repository repository: the stack repository
    :rtype: troposphere.ecs.TaskDefinition
    """
    cpu = int(definition["Cpu"])
    ram = int(definition["MemoryLimitMiB"])
    validate_fargate_cpu_ram(cpu, ram)
    container = define_container(definition["Container"], log_group, repository)
    props = {
        "Cpu": str(cpu),
        "Memory": str(ram),
        "NetworkMode": "awsvpc",
        "RequiresCompatibilities": ["FARGATE"],
        "ExecutionRoleArn": GetAtt(execution_role, "Arn"),
        "ContainerDefinitions": [container],
        "RuntimePlatform": RuntimePlatform(
            CpuArchitecture=set_else_none(
                "CpuArchitecture", definition, alt_value="X86_64"
            ),
            OperatingSystemFamily="LINUX",
        ),
        "Metadata": metadata,
    }
    if keyisset("Family", definition):
        props["Family"] = definition["Family"]
        props["Tags"] = Tags(Name=definition["Family"])
    task_definition = TaskDefinition(TASK_T, **props)
    template.add_resource(task_definition)
    LOG.info(
        f"{TASK_T} - {cpu} CPU / {ram} MiB, container {container.Name} ({describe_image(container.Image)})"
    )
    return task_definition
