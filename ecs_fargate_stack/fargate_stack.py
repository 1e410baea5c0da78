# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Main module to generate the full stack: VPC, security group, cluster, task definition, service with its
load balancer and autoscaling, and the optional delivery pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_fargate_stack.common.settings import StackSettings

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Output

from ecs_fargate_stack.common import logical_id
from ecs_fargate_stack.common.graph import check_template_graph, topological_order
from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.common.outputs import export_outputs
from ecs_fargate_stack.common.stacks import StackTemplate
from ecs_fargate_stack.common.tagging import add_all_tags
from ecs_fargate_stack.common.troposphere_tools import add_outputs, init_template
from ecs_fargate_stack.ecr.ecr_repository import define_repository
from ecs_fargate_stack.ecs.ecs_iam import add_execution_role
from ecs_fargate_stack.ecs.ecs_service import add_service
from ecs_fargate_stack.ecs.ecs_task import add_log_group, add_task_definition
from ecs_fargate_stack.ecs.service_scaling import add_service_scaling
from ecs_fargate_stack.ecs_cluster import add_ecs_cluster
from ecs_fargate_stack.elbv2.elbv2_stack import ServiceLoadBalancer
from ecs_fargate_stack.pipeline import add_pipeline
from ecs_fargate_stack.vpc.security_groups import add_security_group
from ecs_fargate_stack.vpc.vpc_aws import assert_cidr_available
from ecs_fargate_stack.vpc.vpc_template import add_vpc

CLUSTER_NAME_OUTPUT = "ClusterName"
SERVICE_NAME_OUTPUT = "ServiceName"


def generate_full_template(settings: StackSettings) -> StackTemplate:
    """
    Function to generate the stack template from the stack definition.

    * VPC and security group
    * ECS Cluster
    * Execution role, log group, task definition and container
    * Load balancer (optional)
    * Service and its scaling target and policy
    * Repository, artifacts bucket, build project and pipeline (optional)

    Once all resources are declared, the references between them are checked and must resolve
    to resources of the template without cycles.

    :param ecs_fargate_stack.common.settings.StackSettings settings: The settings for the execution
    :return: the stack with its template
    :rtype: StackTemplate
    """
    definition = settings.definition
    template = init_template(
        f"ECS Fargate stack {settings.name} - VPC, ECS Cluster, Service"
        + (" and Pipeline" if keyisset("Pipeline", definition) else "")
    )
    vpc = add_vpc(template, definition["Vpc"])
    if settings.check_cidr:
        assert_cidr_available(vpc.cidr, settings.session)
    service_sg = add_security_group(template, vpc, definition["SecurityGroup"])
    cluster = add_ecs_cluster(template, definition["Cluster"])

    task_def = definition["TaskDefinition"]
    container_def = task_def["Container"]
    pipeline_def = set_else_none("Pipeline", definition)
    repository = (
        define_repository(set_else_none("Repository", pipeline_def, alt_value={}))
        if pipeline_def is not None
        else None
    )
    image_repository = (
        repository if keyisset("UseRepository", container_def) else None
    )
    if repository is not None and image_repository is None:
        LOG.warning(
            f"Container {container_def['ContainerName']} does not use the pipeline repository image."
            " Only the pipeline deployments will use it."
        )
    log_group = add_log_group(template, set_else_none("Logging", task_def, alt_value={}))
    execution_role = add_execution_role(
        template,
        set_else_none("ExecutionRole", task_def, alt_value={}),
        image_repository,
        log_group,
    )
    task_definition = add_task_definition(
        template, task_def, execution_role, log_group, image_repository
    )
    container = task_definition.ContainerDefinitions[0]

    service_def = definition["Service"]
    load_balancer = None
    if "LoadBalancer" in service_def:
        load_balancer = ServiceLoadBalancer(
            set_else_none("LoadBalancer", service_def, alt_value={}), container
        )
        load_balancer.add_to_template(template, vpc, service_sg)
    service = add_service(
        template,
        service_def,
        cluster,
        task_definition,
        vpc,
        [service_sg],
        load_balancer,
    )
    add_service_scaling(template, definition["Scaling"], service)

    outputs = [
        Output(CLUSTER_NAME_OUTPUT, Value=cluster.cluster_identifier),
        Output(SERVICE_NAME_OUTPUT, Value=GetAtt(service, "Name")),
    ]
    if load_balancer is not None:
        outputs += load_balancer.outputs
    if pipeline_def is not None:
        pipeline = add_pipeline(
            template,
            pipeline_def,
            cluster,
            service,
            execution_role,
            container.Name,
            repository,
        )
        outputs += pipeline.outputs
    add_outputs(template, outputs)
    export_outputs(template)
    add_all_tags(template, set_else_none("Tags", definition))

    check_template_graph(template)
    order = topological_order(template)
    LOG.info(f"{len(order)} resources to create for stack {settings.name}")
    LOG.debug(f"Creation order: {order}")
    return StackTemplate(
        logical_id(settings.name), template, file_name=settings.name
    )
