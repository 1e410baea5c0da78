# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import GetAtt, Output, Ref, Sub, Template
from troposphere.ec2 import VPC, SecurityGroup
from troposphere.logs import LogGroup

from ecs_fargate_stack.common.graph import (
    check_template_graph,
    find_references,
    order_table,
    resource_dependencies,
    topological_order,
)
from ecs_fargate_stack.exceptions import DanglingReference, DependencyCycle


def test_find_references():
    node = {
        "A": {"Ref": "Vpc"},
        "B": {"Fn::GetAtt": ["Role", "Arn"]},
        "C": {"Fn::Sub": "arn:${AWS::Partition}:s3:::${Bucket}/${Bucket.Arn}"},
        "D": {"Fn::Sub": ["${Local}-${Other}", {"Local": {"Ref": "Param"}}]},
        "E": [{"Ref": "AWS::Region"}, {"Fn::Sub": "${!Literal}"}],
    }
    assert find_references(node) == {"Vpc", "Role", "Bucket", "Other", "Param"}


def test_dependencies_and_order():
    template = Template()
    vpc = template.add_resource(VPC("Vpc", CidrBlock="10.0.0.0/24"))
    template.add_resource(
        SecurityGroup(
            "Sg",
            GroupDescription=Sub("SG in ${Vpc}"),
            VpcId=Ref(vpc),
            DependsOn="Logs",
        )
    )
    template.add_resource(LogGroup("Logs"))
    assert resource_dependencies(template) == {
        "Vpc": set(),
        "Sg": {"Vpc", "Logs"},
        "Logs": set(),
    }
    assert topological_order(template) == ["Logs", "Vpc", "Sg"]
    rows = order_table(template)
    assert rows[-1] == [3, "Sg", "AWS::EC2::SecurityGroup", "Logs, Vpc"]


def test_dangling_resource_reference():
    template = Template()
    template.add_resource(
        SecurityGroup("Sg", GroupDescription="test", VpcId=Ref("MissingVpc"))
    )
    with pytest.raises(DanglingReference) as error:
        check_template_graph(template)
    assert error.value.source == "Sg"
    assert error.value.target == "MissingVpc"


def test_dangling_output_reference():
    template = Template()
    template.add_resource(LogGroup("Logs"))
    template.add_output(Output("Missing", Value=GetAtt("MissingRole", "Arn")))
    with pytest.raises(DanglingReference) as error:
        check_template_graph(template)
    assert error.value.source == "Missing"


def test_dependency_cycle():
    template = Template()
    template.add_resource(LogGroup("LogsA", LogGroupName=Ref("LogsB")))
    template.add_resource(LogGroup("LogsB", LogGroupName=Ref("LogsA")))
    template.add_resource(LogGroup("LogsC"))
    with pytest.raises(DependencyCycle) as error:
        topological_order(template)
    assert error.value.resources == ["LogsA", "LogsB"]


def test_order_is_stable():
    template = Template()
    for name in ["Zeta", "Alpha", "Mu"]:
        template.add_resource(LogGroup(name))
    assert topological_order(template) == ["Alpha", "Mu", "Zeta"]
    assert topological_order(template.to_dict()) == ["Alpha", "Mu", "Zeta"]
