# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from troposphere import Export, Output, Ref, Template
from troposphere.logs import LogGroup

from ecs_fargate_stack.common.outputs import define_export_name, export_outputs
from ecs_fargate_stack.common.troposphere_tools import add_outputs


def test_export_name():
    assert define_export_name("ClusterName").to_dict() == {
        "Fn::Sub": "${AWS::StackName}::ClusterName"
    }
    assert define_export_name("ClusterName", "-").to_dict() == {
        "Fn::Sub": "${AWS::StackName}-ClusterName"
    }


def test_export_outputs():
    template = Template()
    template.add_resource(LogGroup("Logs"))
    add_outputs(
        template,
        [
            Output("LogGroupName", Value=Ref("Logs")),
            Output("Custom", Value=Ref("Logs"), Export=Export("custom-export")),
        ],
    )
    export_outputs(template)
    outputs = template.to_dict()["Outputs"]
    assert outputs["LogGroupName"]["Export"] == {
        "Name": {"Fn::Sub": "${AWS::StackName}::LogGroupName"}
    }
    assert outputs["Custom"]["Export"] == {"Name": "custom-export"}
