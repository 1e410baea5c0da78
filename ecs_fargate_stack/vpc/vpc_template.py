# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the VPC and its associated resources
"""

from __future__ import annotations

from compose_x_common.compose_x_common import set_else_none
from troposphere import Ref, Sub, Tags
from troposphere.ec2 import VPC as VPCType
from troposphere.ec2 import InternetGateway, VPCGatewayAttachment

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.exceptions import InvalidStackDefinition
from ecs_fargate_stack.vpc import metadata
from ecs_fargate_stack.vpc.vpc_maths import get_subnet_layers
from ecs_fargate_stack.vpc.vpc_params import (
    DEFAULT_MAX_AZS,
    IGW_ATTACHMENT_T,
    IGW_T,
    VPC_T,
)
from ecs_fargate_stack.vpc.vpc_subnets import add_private_subnets, add_public_subnets


def add_vpc_core(template, vpc_cidr, vpc_name=None):
    """
    Function to create the core resources of the VPC
    and add them to the template

    :param template: the Template()
    :param vpc_cidr: str of the VPC CIDR i.e. 10.0.0.0/24
    :param str vpc_name: value for the Name tag of the VPC

    :return: tuple() with the vpc and igw object
    """
    vpc = VPCType(
        VPC_T,
        template=template,
        CidrBlock=vpc_cidr,
        EnableDnsHostnames=True,
        EnableDnsSupport=True,
        Tags=Tags(Name=vpc_name if vpc_name else Sub("${AWS::StackName}")),
        Metadata=metadata,
    )
    igw = InternetGateway(
        IGW_T,
        template=template,
        Tags=Tags(Name=Sub(f"${{AWS::StackName}}-{IGW_T}")),
    )
    VPCGatewayAttachment(
        IGW_ATTACHMENT_T,
        template=template,
        InternetGatewayId=Ref(igw),
        VpcId=Ref(vpc),
        Metadata=metadata,
    )
    return vpc, igw


class StackVpc:
    """
    Class to keep track of the VPC resources that the other resources of the stack refer to.

    :ivar troposphere.ec2.VPC cfn_resource:
    :ivar list[troposphere.ec2.Subnet] public_subnets:
    :ivar list[troposphere.ec2.Subnet] private_subnets:
    """

    def __init__(self, definition: dict):
        self.definition = definition
        self.name = set_else_none("VpcName", definition)
        self.cidr = definition["Cidr"]
        self.max_azs = set_else_none("MaxAzs", definition, alt_value=DEFAULT_MAX_AZS)
        self.nat_gateways = set_else_none(
            "NatGateways", definition, alt_value=self.max_azs, eval_bool=True
        )
        if self.nat_gateways > self.max_azs:
            raise InvalidStackDefinition(
                f"Vpc - NatGateways ({self.nat_gateways}) cannot be more than MaxAzs ({self.max_azs})"
            )
        self.layers = get_subnet_layers(self.cidr, self.max_azs)
        self.cfn_resource = None
        self.igw = None
        self.public_subnets = []
        self.private_subnets = []
        self.nats = []

    def __repr__(self):
        return f"{VPC_T}({self.cidr})"

    def add_to_template(self, template) -> None:
        """
        Adds the VPC, gateways and subnets to the template.

        :param troposphere.Template template:
        """
        LOG.info(
            f"Vpc - {self.cidr} over {self.max_azs} AZs, {self.nat_gateways} NAT Gateway(s)."
            f" Public: {self.layers['public']} Private: {self.layers['private']}"
        )
        self.cfn_resource, self.igw = add_vpc_core(template, self.cidr, self.name)
        self.public_subnets, self.nats = add_public_subnets(
            template, self.cfn_resource, self.layers, self.igw, self.nat_gateways
        )
        self.private_subnets = add_private_subnets(
            template, self.cfn_resource, self.layers, self.nats
        )


def add_vpc(template, definition: dict) -> StackVpc:
    """
    Creates the VPC from its definition and adds it to the template

    :param troposphere.Template template:
    :param dict definition: the Vpc section of the stack definition
    :rtype: StackVpc
    """
    vpc = StackVpc(definition)
    vpc.add_to_template(template)
    return vpc
