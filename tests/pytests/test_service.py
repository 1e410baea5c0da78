# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template

from ecs_fargate_stack.ecs.ecs_iam import add_execution_role
from ecs_fargate_stack.ecs.ecs_service import add_service, define_deployment_configuration
from ecs_fargate_stack.ecs.ecs_task import add_log_group, add_task_definition
from ecs_fargate_stack.ecs_cluster import add_ecs_cluster
from ecs_fargate_stack.elbv2.elbv2_stack import ServiceLoadBalancer
from ecs_fargate_stack.exceptions import InvalidStackDefinition
from ecs_fargate_stack.vpc.security_groups import add_security_group
from ecs_fargate_stack.vpc.vpc_template import add_vpc


@pytest.fixture
def stack_parts():
    template = Template()
    vpc = add_vpc(template, {"Cidr": "10.0.0.0/24"})
    security_group = add_security_group(template, vpc, {})
    cluster = add_ecs_cluster(template, {"ClusterName": "ClusterTest"})
    log_group = add_log_group(template, {})
    role = add_execution_role(template, {}, log_group=log_group)
    task = add_task_definition(
        template,
        {
            "Cpu": 256,
            "MemoryLimitMiB": 512,
            "Container": {
                "ContainerName": "httpd",
                "Image": "public.ecr.aws/docker/library/httpd:latest",
                "PortMappings": [{"ContainerPort": 80}],
            },
        },
        role,
        log_group,
    )
    return template, vpc, security_group, cluster, task


def test_deployment_configuration():
    config = define_deployment_configuration(
        {"MinHealthyPercent": 50, "MaxHealthyPercent": 200}
    ).to_dict()
    assert config == {"MinimumHealthyPercent": 50, "MaximumPercent": 200}


@pytest.mark.parametrize(
    "definition",
    [
        {"MinHealthyPercent": 100, "MaxHealthyPercent": 90},
        {"MinHealthyPercent": 150, "MaxHealthyPercent": 120},
    ],
)
def test_invalid_deployment_configuration(definition):
    with pytest.raises(InvalidStackDefinition):
        define_deployment_configuration(definition)


def test_circuit_breaker():
    config = define_deployment_configuration({"CircuitBreaker": {}}).to_dict()
    assert "DeploymentCircuitBreaker" not in config
    config = define_deployment_configuration(
        {"CircuitBreaker": {"Rollback": False}}
    ).to_dict()
    assert config["DeploymentCircuitBreaker"] == {"Enable": True, "Rollback": False}


def test_private_service(stack_parts):
    template, vpc, security_group, cluster, task = stack_parts
    service = add_service(template, {}, cluster, task, vpc, [security_group])
    props = template.to_dict()["Resources"][service.title]["Properties"]
    assert props["DesiredCount"] == 1
    assert props["Cluster"] == {"Ref": "EcsCluster"}
    assert props["TaskDefinition"] == {"Ref": task.title}
    assert props["LaunchType"] == "FARGATE"
    network = props["NetworkConfiguration"]["AwsvpcConfiguration"]
    assert network["AssignPublicIp"] == "DISABLED"
    assert network["Subnets"] == [{"Ref": "PrivateSubnetA"}, {"Ref": "PrivateSubnetB"}]


def test_service_with_load_balancer(stack_parts):
    template, vpc, security_group, cluster, task = stack_parts
    load_balancer = ServiceLoadBalancer({}, task.ContainerDefinitions[0])
    load_balancer.add_to_template(template, vpc, security_group)
    service = add_service(
        template,
        {"DesiredCount": 2},
        cluster,
        task,
        vpc,
        [security_group],
        load_balancer,
    )
    rendered = template.to_dict()["Resources"]
    props = rendered[service.title]["Properties"]
    assert props["DesiredCount"] == 2
    assert props["LoadBalancers"] == [
        {
            "ContainerName": "httpd",
            "ContainerPort": 80,
            "TargetGroupArn": {"Ref": "ServiceTargetGroup"},
        }
    ]
    assert rendered[service.title]["DependsOn"] == ["LoadBalancerListener"]
    assert rendered["LoadBalancer"]["Properties"]["Scheme"] == "internet-facing"
    assert rendered["LoadBalancer"]["Properties"]["Subnets"] == [
        {"Ref": "PublicSubnetA"},
        {"Ref": "PublicSubnetB"},
    ]
    assert rendered["ServiceTargetGroup"]["Properties"]["TargetType"] == "ip"


def test_load_balancer_target_port_must_be_mapped(stack_parts):
    template, vpc, security_group, cluster, task = stack_parts
    with pytest.raises(InvalidStackDefinition):
        ServiceLoadBalancer({"TargetPort": 8080}, task.ContainerDefinitions[0])


def test_service_capacity_provider_strategy(stack_parts):
    template, vpc, security_group, cluster, task = stack_parts
    service = add_service(
        template,
        {"CapacityProviderStrategy": [{"CapacityProvider": "FARGATE_SPOT", "Weight": 1}]},
        cluster,
        task,
        vpc,
        [security_group],
    )
    rendered = template.to_dict()["Resources"][service.title]
    assert "LaunchType" not in rendered["Properties"]
    assert rendered["DependsOn"] == ["EcsClusterCapacityProviders"]


def test_load_balancer_requires_two_azs(stack_parts):
    template, vpc, security_group, cluster, task = stack_parts
    single_az = add_vpc(Template(), {"Cidr": "10.0.0.0/24", "MaxAzs": 1})
    load_balancer = ServiceLoadBalancer({}, task.ContainerDefinitions[0])
    with pytest.raises(InvalidStackDefinition):
        load_balancer.add_to_template(Template(), single_az, security_group)
