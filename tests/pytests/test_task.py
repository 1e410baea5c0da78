# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template
from troposphere.ecr import Repository

from ecs_fargate_stack.ecs.ecs_container import define_container, describe_image
from ecs_fargate_stack.ecs.ecs_iam import add_execution_role
from ecs_fargate_stack.ecs.ecs_task import (
    add_log_group,
    add_task_definition,
    validate_fargate_cpu_ram,
)
from ecs_fargate_stack.exceptions import IncompatibleOptions, InvalidStackDefinition


@pytest.fixture
def task_def():
    return {
        "Cpu": 256,
        "MemoryLimitMiB": 512,
        "Container": {
            "ContainerName": "httpd",
            "Image": "public.ecr.aws/docker/library/httpd:latest",
            "Command": ["httpd-foreground"],
            "PortMappings": [{"ContainerPort": 80}],
            "Environment": {"B_VAR": 2, "A_VAR": "a"},
        },
    }


@pytest.mark.parametrize(
    "cpu, ram", [(256, 512), (256, 2048), (512, 4096), (1024, 8192), (4096, 30720)]
)
def test_valid_fargate_cpu_ram(cpu, ram):
    validate_fargate_cpu_ram(cpu, ram)


@pytest.mark.parametrize(
    "cpu, ram", [(256, 4096), (512, 512), (1024, 1024), (128, 512), (4096, 4096)]
)
def test_invalid_fargate_cpu_ram(cpu, ram):
    with pytest.raises(InvalidStackDefinition):
        validate_fargate_cpu_ram(cpu, ram)


def test_container_definition(task_def):
    container = define_container(task_def["Container"]).to_dict()
    assert container["Name"] == "httpd"
    assert container["Image"] == "public.ecr.aws/docker/library/httpd:latest"
    assert container["Command"] == ["httpd-foreground"]
    assert container["PortMappings"] == [
        {"ContainerPort": 80, "HostPort": 80, "Protocol": "tcp"}
    ]
    assert container["Environment"] == [
        {"Name": "A_VAR", "Value": "a"},
        {"Name": "B_VAR", "Value": "2"},
    ]


def test_container_host_port_mismatch():
    with pytest.raises(InvalidStackDefinition):
        define_container(
            {
                "ContainerName": "app",
                "Image": "nginx",
                "PortMappings": [{"ContainerPort": 80, "HostPort": 8080}],
            }
        )


def test_container_without_image():
    with pytest.raises(InvalidStackDefinition):
        define_container({"ContainerName": "app"})


def test_container_use_repository():
    with pytest.raises(IncompatibleOptions):
        define_container({"ContainerName": "app", "UseRepository": True})
    repository = Repository("ImageRepository")
    container = define_container(
        {"ContainerName": "app", "UseRepository": True, "ImageTag": "v1"},
        repository=repository,
    ).to_dict()
    assert container["Image"] == {"Fn::Sub": "${ImageRepository.RepositoryUri}:v1"}


def test_describe_image():
    repository = Repository("ImageRepository")
    container = define_container(
        {"ContainerName": "app", "UseRepository": True}, repository=repository
    )
    assert describe_image(container.Image) == "stack repository"
    assert (
        describe_image("public.ecr.aws/docker/library/httpd:latest")
        == "public.ecr.aws/docker/library/httpd:latest"
    )


def test_log_group_retention():
    template = Template()
    log_group = add_log_group(template, {"RetentionInDays": 10})
    assert log_group.RetentionInDays == 7
    rendered = template.to_dict()["Resources"]["ServicesLogGroup"]
    assert rendered["DeletionPolicy"] == "Delete"


def test_task_definition(task_def):
    template = Template()
    log_group = add_log_group(template, {})
    role = add_execution_role(template, {}, log_group=log_group)
    task = add_task_definition(template, task_def, role, log_group)
    props = template.to_dict()["Resources"][task.title]["Properties"]
    assert props["Cpu"] == "256"
    assert props["Memory"] == "512"
    assert props["NetworkMode"] == "awsvpc"
    assert props["RequiresCompatibilities"] == ["FARGATE"]
    assert props["ExecutionRoleArn"] == {"Fn::GetAtt": ["EcsExecutionRole", "Arn"]}
    assert len(props["ContainerDefinitions"]) == 1
    log_options = props["ContainerDefinitions"][0]["LogConfiguration"]["Options"]
    assert log_options["awslogs-group"] == {"Ref": "ServicesLogGroup"}


def test_execution_role_scoped_statements():
    template = Template()
    log_group = add_log_group(template, {})
    repository = Repository("ImageRepository")
    role = add_execution_role(template, {}, repository, log_group)
    statements = role.to_dict()["Properties"]["Policies"][0]["PolicyDocument"][
        "Statement"
    ]
    per_sid = {statement["Sid"]: statement for statement in statements}
    assert per_sid["AllowsEcsAgentActions"]["Action"] == ["ecr:GetAuthorizationToken"]
    assert per_sid["AllowsEcsAgentActions"]["Resource"] == ["*"]
    assert per_sid["AllowsPullFromStackRepository"]["Resource"] == [
        {"Fn::GetAtt": ["ImageRepository", "Arn"]}
    ]
    assert per_sid["AllowsLoggingToServicesLogGroup"]["Resource"] == [
        {"Fn::GetAtt": ["ServicesLogGroup", "Arn"]}
    ]
