# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

import boto3
import placebo
import pytest

from ecs_fargate_stack.common.graph import (
    check_template_graph,
    count_resources_by_type,
    topological_order,
)
from ecs_fargate_stack.common.settings import StackSettings, merge_definitions
from ecs_fargate_stack.exceptions import CidrOverlap, IncompatibleOptions
from ecs_fargate_stack.fargate_stack import generate_full_template

HERE = path.abspath(path.dirname(__file__))
USE_CASES = path.abspath(f"{HERE}/../../use-cases")


def get_settings(file_name, session=None, content=None, **kwargs):
    return StackSettings(
        content=content,
        session=session if session else boto3.session.Session(region_name="eu-west-1"),
        **{
            StackSettings.command_arg: StackSettings.render_arg,
            StackSettings.input_file_arg: [f"{USE_CASES}/{file_name}"],
            StackSettings.skip_validation_arg: True,
        },
        **kwargs,
    )


@pytest.fixture
def public_settings():
    return get_settings("httpd-public.yml")


@pytest.fixture
def pipeline_settings():
    return get_settings("httpd-pipeline.yml")


def test_public_stack_composition(public_settings):
    stack = generate_full_template(public_settings)
    assert stack.title == "httpdpublic"
    counts = count_resources_by_type(stack.stack_template)
    assert counts["AWS::EC2::VPC"] == 1
    assert counts["AWS::ECS::Cluster"] == 1
    assert counts["AWS::ECS::TaskDefinition"] == 1
    assert counts["AWS::ECS::Service"] == 1
    assert counts["AWS::ApplicationAutoScaling::ScalableTarget"] == 1
    assert counts["AWS::ApplicationAutoScaling::ScalingPolicy"] == 1
    assert counts["AWS::ElasticLoadBalancingV2::LoadBalancer"] == 1
    for pipeline_type in [
        "AWS::S3::Bucket",
        "AWS::CodeBuild::Project",
        "AWS::CodePipeline::Pipeline",
        "AWS::ECR::Repository",
    ]:
        assert counts[pipeline_type] == 0


def test_public_stack_values(public_settings):
    stack = generate_full_template(public_settings)
    template = stack.stack_template.to_dict()
    resources = template["Resources"]
    assert resources["Vpc"]["Properties"]["CidrBlock"] == "10.0.0.0/24"
    assert resources["EcsCluster"]["Properties"]["ClusterName"] == "ClusterTest"
    containers = resources["EcsTaskDefinition"]["Properties"]["ContainerDefinitions"]
    assert len(containers) == 1
    assert containers[0]["Image"] == "public.ecr.aws/docker/library/httpd:latest"
    assert containers[0]["PortMappings"] == [
        {"ContainerPort": 80, "HostPort": 80, "Protocol": "tcp"}
    ]
    assert resources["EcsService"]["Properties"]["DesiredCount"] == 1
    target = resources["ServiceScalingTarget"]["Properties"]
    assert (target["MinCapacity"], target["MaxCapacity"]) == (1, 3)
    policy = resources["ServiceCpuScalingPolicy"]["Properties"]
    assert policy["TargetTrackingScalingPolicyConfiguration"]["TargetValue"] == 50.0
    for output in [
        "ClusterName",
        "ServiceName",
        "LoadBalancerDnsName",
        "LoadBalancerUrl",
    ]:
        assert output in template["Outputs"]
        assert "Export" in template["Outputs"][output]


def test_creation_order(public_settings):
    stack = generate_full_template(public_settings)
    order = topological_order(stack.stack_template)
    for before, after in [
        ("Vpc", "ServiceSecurityGroup"),
        ("ServiceSecurityGroup", "EcsService"),
        ("EcsCluster", "EcsService"),
        ("EcsTaskDefinition", "EcsService"),
        ("EcsExecutionRole", "EcsTaskDefinition"),
        ("LoadBalancerListener", "EcsService"),
        ("EcsService", "ServiceScalingTarget"),
        ("ServiceScalingTarget", "ServiceCpuScalingPolicy"),
    ]:
        assert order.index(before) < order.index(after)


def test_composition_is_deterministic(public_settings):
    first = generate_full_template(public_settings).stack_template.to_json()
    second = generate_full_template(
        get_settings("httpd-public.yml")
    ).stack_template.to_json()
    assert first == second


def test_high_availability_variant():
    settings = get_settings("httpd-public-ha.yml")
    stack = generate_full_template(settings)
    resources = stack.stack_template.to_dict()["Resources"]
    assert resources["EcsService"]["Properties"]["DesiredCount"] == 2
    config = resources["EcsService"]["Properties"]["DeploymentConfiguration"]
    assert config["MinimumHealthyPercent"] == 50
    assert config["DeploymentCircuitBreaker"] == {"Enable": True, "Rollback": True}
    target = resources["ServiceScalingTarget"]["Properties"]
    assert (target["MinCapacity"], target["MaxCapacity"]) == (2, 4)
    tracking = resources["ServiceCpuScalingPolicy"]["Properties"][
        "TargetTrackingScalingPolicyConfiguration"
    ]
    assert tracking["ScaleInCooldown"] == tracking["ScaleOutCooldown"] == 30
    assert "NatGatewayAzB" not in resources
    vpc_tags = {tag["Key"]: tag["Value"] for tag in resources["Vpc"]["Properties"]["Tags"]}
    assert vpc_tags["Environment"] == "production"
    assert vpc_tags["Application"] == "httpd"


def test_pipeline_variant(pipeline_settings):
    stack = generate_full_template(pipeline_settings)
    counts = count_resources_by_type(stack.stack_template)
    assert counts["AWS::S3::Bucket"] == 1
    assert counts["AWS::CodeBuild::Project"] == 1
    assert counts["AWS::CodePipeline::Pipeline"] == 1
    assert counts["AWS::ECR::Repository"] == 1
    template = stack.stack_template.to_dict()
    stages = template["Resources"]["Pipeline"]["Properties"]["Stages"]
    assert [stage["Name"] for stage in stages] == ["Source", "Build", "Deploy"]
    container = template["Resources"]["EcsTaskDefinition"]["Properties"][
        "ContainerDefinitions"
    ][0]
    assert container["Image"] == {
        "Fn::Sub": "${ImageRepository.RepositoryUri}:latest"
    }
    assert "RepositoryUri" in template["Outputs"]
    assert "PipelineName" in template["Outputs"]
    order = topological_order(stack.stack_template)
    assert order.index("ImageRepository") < order.index("BuildProject")
    assert order.index("BuildProject") < order.index("Pipeline")
    assert order.index("EcsService") < order.index("Pipeline")


def test_permission_grants_resolve(pipeline_settings):
    stack = generate_full_template(pipeline_settings)
    dependencies = check_template_graph(stack.stack_template)
    assert {"ImageRepository", "ServicesLogGroup"} <= dependencies["EcsExecutionRole"]
    assert {"ImageRepository", "ArtifactsBucket"} <= dependencies["BuildProjectRole"]
    assert {
        "ArtifactsBucket",
        "BuildProject",
        "EcsService",
        "EcsCluster",
        "EcsExecutionRole",
    } <= dependencies["PipelineRole"]


def test_pipeline_with_public_image(pipeline_settings):
    definition = merge_definitions(
        pipeline_settings.original_content,
        {
            "TaskDefinition": {
                "Container": {
                    "UseRepository": False,
                    "Image": "public.ecr.aws/docker/library/httpd:latest",
                }
            }
        },
    )
    settings = StackSettings(
        content=definition,
        session=boto3.session.Session(region_name="eu-west-1"),
        **{
            StackSettings.command_arg: StackSettings.render_arg,
            StackSettings.skip_validation_arg: True,
        },
    )
    stack = generate_full_template(settings)
    dependencies = check_template_graph(stack.stack_template)
    assert "ImageRepository" not in dependencies["EcsExecutionRole"]
    assert "ImageRepository" in stack.stack_template.resources


def test_use_repository_without_pipeline():
    settings = get_settings(
        "httpd-public.yml",
        content={"TaskDefinition": {"Container": {"UseRepository": True}}},
    )
    with pytest.raises(IncompatibleOptions):
        generate_full_template(settings)


def test_cidr_overlap():
    session = boto3.session.Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=f"{HERE}/placebo/vpcs")
    pill.playback()
    overlapping = get_settings(
        "httpd-public.yml", session=session, **{StackSettings.check_cidr_arg: True}
    )
    with pytest.raises(CidrOverlap):
        generate_full_template(overlapping)
    available = get_settings(
        "httpd-public-ha.yml", session=session, **{StackSettings.check_cidr_arg: True}
    )
    generate_full_template(available)
