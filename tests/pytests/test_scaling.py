# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template
from troposphere.ecs import Service

from ecs_fargate_stack.ecs.service_scaling import ServiceScaling, add_service_scaling
from ecs_fargate_stack.ecs.service_scaling.helpers import (
    define_capacity_bounds,
    handle_range,
)
from ecs_fargate_stack.exceptions import InvalidStackDefinition


def test_handle_range():
    assert handle_range("1-3") == (1, 3)
    assert handle_range("0-10") == (0, 10)
    with pytest.raises(InvalidStackDefinition):
        handle_range("3")


def test_capacity_bounds():
    assert define_capacity_bounds({"Range": "2-4"}) == (2, 4)
    assert define_capacity_bounds({"MinCapacity": 1, "MaxCapacity": 3}) == (1, 3)
    assert define_capacity_bounds({"MinCapacity": 2}) == (2, 2)
    assert define_capacity_bounds({}) == (1, 1)
    with pytest.raises(InvalidStackDefinition):
        define_capacity_bounds({"Range": "4-2"})
    with pytest.raises(InvalidStackDefinition):
        define_capacity_bounds({"MinCapacity": 3, "MaxCapacity": 1})


def test_desired_count_within_bounds():
    scaling = ServiceScaling({"Range": "1-3", "CpuTarget": 50})
    scaling.validate_desired_count(1)
    scaling.validate_desired_count(3)
    with pytest.raises(InvalidStackDefinition):
        scaling.validate_desired_count(4)
    with pytest.raises(InvalidStackDefinition):
        scaling.validate_desired_count(0)


def test_scaling_resources():
    template = Template()
    service = template.add_resource(
        Service("EcsService", Cluster="cluster", DesiredCount=2)
    )
    add_service_scaling(
        template,
        {
            "MinCapacity": 2,
            "MaxCapacity": 4,
            "CpuTarget": 50,
            "ScaleInCooldown": 30,
            "ScaleOutCooldown": 30,
        },
        service,
    )
    resources = template.to_dict()["Resources"]
    target = resources["ServiceScalingTarget"]["Properties"]
    assert target["MinCapacity"] == 2
    assert target["MaxCapacity"] == 4
    assert target["ScalableDimension"] == "ecs:service:DesiredCount"
    assert target["ResourceId"] == {
        "Fn::Sub": "service/${EcsCluster}/${EcsService.Name}"
    }
    policy = resources["ServiceCpuScalingPolicy"]["Properties"]
    assert policy["PolicyType"] == "TargetTrackingScaling"
    assert policy["ScalingTargetId"] == {"Ref": "ServiceScalingTarget"}
    config = policy["TargetTrackingScalingPolicyConfiguration"]
    assert config["TargetValue"] == 50.0
    assert config["ScaleInCooldown"] == 30
    assert config["ScaleOutCooldown"] == 30
    assert config["PredefinedMetricSpecification"] == {
        "PredefinedMetricType": "ECSServiceAverageCPUUtilization"
    }


def test_default_cooldowns():
    template = Template()
    service = template.add_resource(
        Service("EcsService", Cluster="cluster", DesiredCount=1)
    )
    scaling = add_service_scaling(template, {"Range": "1-3", "CpuTarget": 75}, service)
    config = scaling.cpu_policy.TargetTrackingScalingPolicyConfiguration
    assert config.ScaleInCooldown == 60
    assert config.ScaleOutCooldown == 60
    assert config.DisableScaleIn is False
