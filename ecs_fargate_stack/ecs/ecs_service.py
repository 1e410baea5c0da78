# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Service binding the task definition to the cluster.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecs import TaskDefinition
    from ecs_fargate_stack.ecs_cluster import EcsCluster
    from ecs_fargate_stack.elbv2.elbv2_stack import ServiceLoadBalancer
    from ecs_fargate_stack.vpc.vpc_template import StackVpc

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Ref, Tags
from troposphere.ecs import (
    AwsvpcConfiguration,
    CapacityProviderStrategyItem,
    DeploymentCircuitBreaker,
    DeploymentConfiguration,
)
from troposphere.ecs import LoadBalancer as EcsLoadBalancer
from troposphere.ecs import NetworkConfiguration, Service

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.ecs import metadata
from ecs_fargate_stack.ecs.ecs_params import SERVICE_T
from ecs_fargate_stack.exceptions import InvalidStackDefinition

DEFAULT_MIN_HEALTHY_PERCENT = 100
DEFAULT_MAX_PERCENT = 200


def define_deployment_configuration(definition: dict) -> DeploymentConfiguration:
    """
    Defines the health bounds the service keeps during a rolling update

    :param dict definition: the Service definition
    :raises InvalidStackDefinition: when the bounds are not consistent
    :rtype: DeploymentConfiguration
    """
    min_healthy = set_else_none(
        "MinHealthyPercent",
        definition,
        alt_value=DEFAULT_MIN_HEALTHY_PERCENT,
        eval_bool=True,
    )
    max_percent = set_else_none(
        "MaxHealthyPercent", definition, alt_value=DEFAULT_MAX_PERCENT, eval_bool=True
    )
    if max_percent < 100:
        raise InvalidStackDefinition(
            f"{SERVICE_T} - MaxHealthyPercent ({max_percent}) must be at least 100"
        )
    if min_healthy > max_percent:
        raise InvalidStackDefinition(
            f"{SERVICE_T} - MinHealthyPercent ({min_healthy}) cannot be greater than"
            f" MaxHealthyPercent ({max_percent})"
        )
    props = {"MinimumHealthyPercent": min_healthy, "MaximumPercent": max_percent}
    if keyisset("CircuitBreaker", definition):
        props["DeploymentCircuitBreaker"] = DeploymentCircuitBreaker(
            Enable=True,
            Rollback=set_else_none(
                "Rollback", definition["CircuitBreaker"], alt_value=True, eval_bool=True
            ),
        )
    return DeploymentConfiguration(**props)


def define_capacity_provider_strategy(definition: dict, cluster: EcsCluster) -> list:
    """
    Returns the capacity provider strategy of the service. The providers must be associated to the cluster.
    """
    strategy = []
    for provider in definition["CapacityProviderStrategy"]:
        if provider["CapacityProvider"] not in cluster.capacity_providers:
            raise InvalidStackDefinition(
                f"{SERVICE_T} - Capacity provider {provider['CapacityProvider']} is not enabled on",
                cluster,
                cluster.capacity_providers,
            )
        strategy.append(
            CapacityProviderStrategyItem(
                CapacityProvider=provider["CapacityProvider"],
                Weight=set_else_none("Weight", provider, alt_value=0, eval_bool=True),
                Base=set_else_none("Base", provider, alt_value=0, eval_bool=True),
            )
        )
    return strategy


def define_network_configuration(
    definition: dict, vpc: StackVpc, security_groups: list
) -> NetworkConfiguration:
    """
    Tasks run in the private subnets, or in the public subnets when AssignPublicIp is set.
    """
    assign_public_ip = keyisset("AssignPublicIp", definition)
    subnets = vpc.public_subnets if assign_public_ip else vpc.private_subnets
    return NetworkConfiguration(
        AwsvpcConfiguration=AwsvpcConfiguration(
            AssignPublicIp="ENABLED" if assign_public_ip else "DISABLED",
            SecurityGroups=[GetAtt(group, "GroupId") for group in security_groups],
            Subnets=[Ref(subnet) for subnet in subnets],
        )
    )


def add_service(
    template: Template,
    definition: dict,
    cluster: EcsCluster,
    task_definition: TaskDefinition,
    vpc: StackVpc,
    security_groups: list,
    load_balancer: ServiceLoadBalancer = None,
) -> Service:
    """
    Creates the ECS Service.

    :param troposphere.Template template:
    :param dict definition: the Service definition
    :param EcsCluster cluster:
    :param troposphere.ecs.TaskDefinition task_definition:
    :param StackVpc vpc:
    :param list[troposphere.ec2.SecurityGroup] security_groups:
    :param ServiceLoadBalancer load_balancer: the LB to register the tasks into, if any
    :rtype: troposphere.ecs.Service
    """
    desired_count = set_else_none("DesiredCount", definition, alt_value=1, eval_bool=True)
    depends_on = []
    props = {
        "Cluster": cluster.cluster_identifier,
        "TaskDefinition": Ref(task_definition),
        "DesiredCount": desired_count,
        "DeploymentConfiguration": define_deployment_configuration(definition),
        "NetworkConfiguration": define_network_configuration(
            definition, vpc, security_groups
        ),
        "PropagateTags": "SERVICE",
        "EnableECSManagedTags": True,
        "Metadata": metadata,
    }
    if keyisset("ServiceName", definition):
        props["ServiceName"] = definition["ServiceName"]
        props["Tags"] = Tags(Name=definition["ServiceName"])
    if keyisset("CapacityProviderStrategy", definition):
        props["CapacityProviderStrategy"] = define_capacity_provider_strategy(
            definition, cluster
        )
        depends_on.append(cluster.providers_association.title)
    else:
        props["LaunchType"] = "FARGATE"
        props["PlatformVersion"] = set_else_none(
            "PlatformVersion", definition, alt_value="LATEST"
        )
    if load_balancer is not None:
        props["LoadBalancers"] = [
            EcsLoadBalancer(
                ContainerName=load_balancer.container_name,
                ContainerPort=load_balancer.target_port,
                TargetGroupArn=Ref(load_balancer.target_group),
            )
        ]
        props["HealthCheckGracePeriodSeconds"] = set_else_none(
            "HealthCheckGracePeriodSeconds", definition, alt_value=60, eval_bool=True
        )
        depends_on.append(load_balancer.listener.title)
    if depends_on:
        props["DependsOn"] = depends_on
    service = Service(SERVICE_T, **props)
    template.add_resource(service)
    LOG.info(
        f"{SERVICE_T} - DesiredCount {desired_count}, health bounds"
        f" {service.DeploymentConfiguration.MinimumHealthyPercent}%"
        f"-{service.DeploymentConfiguration.MaximumPercent}%"
    )
    return service
