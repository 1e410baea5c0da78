# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Tags, Template
from troposphere.applicationautoscaling import ScalableTarget
from troposphere.ec2 import VPC

from ecs_fargate_stack.common.tagging import add_all_tags, define_extended_tags


def test_tags_from_dict_and_list():
    from_dict = define_extended_tags({"Env": "dev", "Cost": 12})
    from_list = define_extended_tags(
        [{"Key": "Cost", "Value": 12}, {"Key": "Env", "Value": "dev"}]
    )
    assert from_dict.to_dict() == [
        {"Key": "Cost", "Value": "12"},
        {"Key": "Env", "Value": "dev"},
    ]
    assert from_list.to_dict() == from_dict.to_dict()
    assert define_extended_tags(None) is None
    assert define_extended_tags({}) is None


def test_invalid_tags_list():
    with pytest.raises(KeyError):
        define_extended_tags([{"Name": "Env", "Value": "dev"}])


def test_add_all_tags_keeps_resource_tags():
    template = Template()
    template.add_resource(
        VPC("Vpc", CidrBlock="10.0.0.0/24", Tags=Tags(Name="vpc", Env="vpc-env"))
    )
    template.add_resource(
        ScalableTarget(
            "Target",
            MinCapacity=1,
            MaxCapacity=3,
            ResourceId="service/cluster/service",
            ScalableDimension="ecs:service:DesiredCount",
            ServiceNamespace="ecs",
        )
    )
    add_all_tags(template, {"Env": "dev", "Team": "platform"})
    resources = template.to_dict()["Resources"]
    vpc_tags = {tag["Key"]: tag["Value"] for tag in resources["Vpc"]["Properties"]["Tags"]}
    assert vpc_tags == {"Name": "vpc", "Env": "vpc-env", "Team": "platform"}
    assert "Tags" not in resources["Target"]["Properties"]
