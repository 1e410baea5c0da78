# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Helpers around troposphere Template manipulation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import AWSObject

from troposphere import Output, Template

from ecs_fargate_stack.common.logging import LOG

REMOVAL_POLICIES = {"retain": "Retain", "destroy": "Delete", "snapshot": "Snapshot"}


def init_template(description: str = None) -> Template:
    """
    Returns a new template with the format version and description set.

    :param str description:
    :rtype: troposphere.Template
    """
    template = Template(description if description else "Template generated by ecs-fargate-stack")
    template.set_version()
    return template


def add_resource(template: Template, resource: AWSObject, replace: bool = False) -> AWSObject:
    """
    Adds a resource to the template. Refuses duplicate logical IDs unless replace is set.

    :param troposphere.Template template:
    :param resource:
    :param bool replace:
    :return: the resource
    """
    if resource.title not in template.resources:
        template.add_resource(resource)
    elif replace:
        LOG.debug(f"Replacing {resource.title} in template")
        template.resources[resource.title] = resource
    else:
        raise KeyError(f"Resource {resource.title} is already defined in the template")
    return resource


def add_outputs(template: Template, outputs: list) -> None:
    """
    Adds (or replaces) outputs in the template

    :param troposphere.Template template:
    :param list[troposphere.Output] outputs:
    """
    for output in outputs:
        if not isinstance(output, Output):
            raise TypeError("Outputs must be of type", Output, "Got", type(output))
        if output.title in template.outputs:
            LOG.debug(f"Output {output.title} already set. Overriding")
        template.outputs[output.title] = output


def set_removal_policy(resource: AWSObject, policy: str = None) -> None:
    """
    Sets DeletionPolicy and UpdateReplacePolicy for resources holding data.

    :param resource: the CFN resource
    :param str policy: one of retain, destroy, snapshot. Defaults to retain
    """
    if policy is None:
        policy = "retain"
    if policy.lower() not in REMOVAL_POLICIES:
        raise ValueError(
            f"{resource.title} - RemovalPolicy {policy} is invalid. Must be one of",
            list(REMOVAL_POLICIES.keys()),
        )
    cfn_policy = REMOVAL_POLICIES[policy.lower()]
    setattr(resource, "DeletionPolicy", cfn_policy)
    setattr(resource, "UpdateReplacePolicy", cfn_policy)
