# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM role used by the ECS agent to start the task: pull the image and ship the logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecr import Repository
    from troposphere.logs import LogGroup

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Sub
from troposphere.iam import Role

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.ecs.ecs_params import (
    DEFAULT_EXECUTION_ACTIONS,
    ECR_AUTHORIZATION_ACTION,
    EXEC_ROLE_POLICY_NAME,
    EXEC_ROLE_T,
)
from ecs_fargate_stack.iam import (
    add_policy_statements,
    add_role_boundaries,
    define_iam_policy,
    service_role_trust_policy,
)


def define_execution_statements(
    actions: list, repository: Repository = None, log_group: LogGroup = None
) -> list:
    """
    Groups the execution role actions into statements. When the image repository or the log group are part
    of the stack, the matching actions are restricted to them. Everything else applies to all resources.

    :param list[str] actions:
    :param troposphere.ecr.Repository repository:
    :param troposphere.logs.LogGroup log_group:
    :rtype: list[dict]
    """
    ecr_actions = [
        action
        for action in actions
        if action.startswith("ecr:") and action != ECR_AUTHORIZATION_ACTION
    ]
    logs_actions = [action for action in actions if action.startswith("logs:")]
    scoped = []
    statements = []
    if repository is not None and ecr_actions:
        statements.append(
            {
                "Sid": "AllowsPullFromStackRepository",
                "Effect": "Allow",
                "Action": ecr_actions,
                "Resource": [GetAtt(repository, "Arn")],
            }
        )
        scoped += ecr_actions
    if log_group is not None and logs_actions:
        statements.append(
            {
                "Sid": "AllowsLoggingToServicesLogGroup",
                "Effect": "Allow",
                "Action": logs_actions,
                "Resource": [GetAtt(log_group, "Arn")],
            }
        )
        scoped += logs_actions
    remaining = [action for action in actions if action not in scoped]
    if remaining:
        statements.insert(
            0,
            {
                "Sid": "AllowsEcsAgentActions",
                "Effect": "Allow",
                "Action": remaining,
                "Resource": ["*"],
            },
        )
    return statements


def add_execution_role(
    template: Template,
    definition: dict,
    repository: Repository = None,
    log_group: LogGroup = None,
) -> Role:
    """
    Creates the ECS Task Execution role with the permissions to pull the image and write logs.

    :param troposphere.Template template:
    :param dict definition: the ExecutionRole definition
    :param troposphere.ecr.Repository repository: the stack repository, if the image comes from it
    :param troposphere.logs.LogGroup log_group: the services log group
    :rtype: troposphere.iam.Role
    """
    props = {
        "AssumeRolePolicyDocument": service_role_trust_policy("ecs-tasks"),
        "Description": Sub(f"ECS Execution role for ${{AWS::StackName}}"),
    }
    if keyisset("RoleName", definition):
        props["RoleName"] = definition["RoleName"]
    if keyisset("ManagedPolicyArns", definition):
        props["ManagedPolicyArns"] = [
            define_iam_policy(policy) for policy in definition["ManagedPolicyArns"]
        ]
    role = Role(EXEC_ROLE_T, **props)
    actions = set_else_none("Actions", definition, alt_value=DEFAULT_EXECUTION_ACTIONS)
    add_policy_statements(
        role,
        EXEC_ROLE_POLICY_NAME,
        define_execution_statements(actions, repository, log_group),
    )
    if keyisset("PermissionsBoundary", definition):
        add_role_boundaries(role, definition["PermissionsBoundary"])
    LOG.debug(f"{EXEC_ROLE_T} - Actions {actions}")
    template.add_resource(role)
    return role
