# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Container definition of the task: image, command, ports and logging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere.ecr import Repository
    from troposphere.logs import LogGroup

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import AWS_REGION, Ref, Sub
from troposphere.ecs import (
    ContainerDefinition,
    Environment,
    LogConfiguration,
    PortMapping,
)

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.exceptions import IncompatibleOptions, InvalidStackDefinition

DEFAULT_IMAGE_TAG = "latest"


def define_port_mappings(container_name: str, ports: list) -> list:
    """
    Defines the port mappings of the container. Tasks use the awsvpc network mode,
    in which the host port must be the same as the container port.

    :param str container_name:
    :param list[dict] ports:
    :rtype: list[PortMapping]
    """
    mappings = []
    for port in ports:
        container_port = port["ContainerPort"]
        host_port = set_else_none("HostPort", port, alt_value=container_port)
        if host_port != container_port:
            raise InvalidStackDefinition(
                f"{container_name} - HostPort {host_port} must be equal to ContainerPort {container_port}"
                " with the awsvpc network mode"
            )
        mappings.append(
            PortMapping(
                ContainerPort=container_port,
                HostPort=host_port,
                Protocol=set_else_none("Protocol", port, alt_value="tcp").lower(),
            )
        )
    return mappings


def define_container_image(definition: dict, repository: Repository = None):
    """
    Returns the image of the container. Either the image reference as is or, with UseRepository, the URI
    of the stack repository with the ImageTag.

    :param dict definition: the Container definition
    :param troposphere.ecr.Repository repository:
    """
    if keyisset("UseRepository", definition):
        if repository is None:
            raise IncompatibleOptions(
                "Container.UseRepository is set but no Pipeline.Repository is defined"
            )
        tag = set_else_none("ImageTag", definition, alt_value=DEFAULT_IMAGE_TAG)
        return Sub(f"${{{repository.title}.RepositoryUri}}:{tag}")
    if not keyisset("Image", definition):
        raise InvalidStackDefinition(
            "Container must define Image or UseRepository", definition
        )
    return definition["Image"]


def describe_image(image) -> str:
    """
    Printable value of the container image, the stack repository URI is only known once deployed.
    """
    if isinstance(image, str):
        return image
    return "stack repository"


def define_log_configuration(container_name: str, log_group: LogGroup) -> LogConfiguration:
    return LogConfiguration(
        LogDriver="awslogs",
        Options={
            "awslogs-group": Ref(log_group),
            "awslogs-region": Ref(AWS_REGION),
            "awslogs-stream-prefix": container_name,
        },
    )


def define_container(
    definition: dict, log_group: LogGroup = None, repository: Repository = None
) -> ContainerDefinition:
    """
    Creates the container definition from the Container definition

    :param dict definition:
    :param troposphere.logs.LogGroup log_group: when set, the container logs are sent to it
    :param troposphere.ecr.Repository repository: the stack repository
    :rtype: ContainerDefinition
    """
    name = definition["ContainerName"]
    props = {
        "Name": name,
        "Image": define_container_image(definition, repository),
        "Essential": set_else_none("Essential", definition, alt_value=True, eval_bool=True),
    }
    if keyisset("EntryPoint", definition):
        props["EntryPoint"] = definition["EntryPoint"]
    if keyisset("Command", definition):
        props["Command"] = definition["Command"]
    if keyisset("PortMappings", definition):
        props["PortMappings"] = define_port_mappings(name, definition["PortMappings"])
    if keyisset("Environment", definition):
        props["Environment"] = [
            Environment(Name=key, Value=str(value))
            for key, value in sorted(definition["Environment"].items())
        ]
    if log_group is not None:
        props["LogConfiguration"] = define_log_configuration(name, log_group)
    LOG.debug(f"Container {name} - Image {describe_image(props['Image'])}")
    return ContainerDefinition(**props)
