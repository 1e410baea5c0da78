# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to add the two VPC layer type subnets:

* Public
* Private

RTB -> Route Table

Public subnet type: All subnets use the same RTB, route to 0.0.0.0/0 via InternetGateway
Private subnet type: Each subnet has its own RTB, each RTB points to a NAT Gateway, in its AZ when there
is one NAT Gateway per AZ.
"""

from troposphere import GetAtt, GetAZs, Ref, Select, Sub, Tags
from troposphere.ec2 import (
    EIP,
    NatGateway,
    Route,
    RouteTable,
    Subnet,
    SubnetRouteTableAssociation,
)

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.vpc import metadata
from ecs_fargate_stack.vpc.vpc_params import (
    IGW_ATTACHMENT_T,
    PUBLIC_ROUTE_T,
    PUBLIC_RTB_T,
)


def az_suffix(index: int) -> str:
    """Returns the letter used to name resources of the AZ at the given index"""
    return chr(ord("A") + index)


def add_public_subnets(template, vpc, layers, igw, nat_gateways):
    """
    Function to add public subnets for the VPC

    :param troposphere.Template template: the template
    :param troposphere.ec2.VPC vpc: Vpc() for Ref()
    :param dict layers: layers of subnets
    :param troposphere.ec2.InternetGateway igw: internet gateway to route to
    :param int nat_gateways: how many NAT Gateways to create, one per subnet at most.

    :return: tuple() list of subnets, list of nats
    """
    rtb = RouteTable(
        PUBLIC_RTB_T,
        template=template,
        VpcId=Ref(vpc),
        Tags=Tags(Name=Sub(f"${{AWS::StackName}}-{PUBLIC_RTB_T}"), Usage="public"),
        Metadata=metadata,
    )
    Route(
        PUBLIC_ROUTE_T,
        template=template,
        GatewayId=Ref(igw),
        RouteTableId=Ref(rtb),
        DestinationCidrBlock="0.0.0.0/0",
        DependsOn=[IGW_ATTACHMENT_T],
    )
    subnets = []
    nats = []
    for index, subnet_cidr in enumerate(layers["public"]):
        suffix = az_suffix(index)
        subnet = Subnet(
            f"PublicSubnet{suffix}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(index, GetAZs("")),
            MapPublicIpOnLaunch=True,
            Tags=Tags(
                Name=Sub(f"${{AWS::StackName}}-Public-{suffix.lower()}"),
                Usage="public",
            ),
            Metadata=metadata,
        )
        SubnetRouteTableAssociation(
            f"PublicSubnetRtbAssoc{suffix}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
        )
        if len(nats) < nat_gateways:
            eip = EIP(
                f"NatGatewayEip{suffix}",
                template=template,
                Domain="vpc",
                DependsOn=[IGW_ATTACHMENT_T],
            )
            nat = NatGateway(
                f"NatGatewayAz{suffix}",
                template=template,
                AllocationId=GetAtt(eip, "AllocationId"),
                SubnetId=Ref(subnet),
                Tags=Tags(Name=Sub(f"${{AWS::StackName}}-Nat-{suffix.lower()}")),
                Metadata=metadata,
            )
            nats.append(nat)
        subnets.append(subnet)
    return subnets, nats


def add_private_subnets(template, vpc, layers, nats):
    """
    Function to add private subnets to the VPC, where the services tasks run.

    :param troposphere.Template template: VPC Template()
    :param troposphere.ec2.VPC vpc: Vpc() for Ref()
    :param dict layers: layers of subnets
    :param list nats: list of NatGateway()

    :returns: list of subnets
    """
    subnets = []
    if not nats:
        LOG.warning(
            "No NAT Gateway defined. Private subnets won't have a route to the internet."
            " Tasks won't be able to pull images from public registries unless AssignPublicIp is set."
        )
    for index, subnet_cidr in enumerate(layers["private"]):
        suffix = az_suffix(index)
        subnet = Subnet(
            f"PrivateSubnet{suffix}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(index, GetAZs("")),
            Tags=Tags(
                Name=Sub(f"${{AWS::StackName}}-Private-{suffix.lower()}"),
                Usage="private",
            ),
            Metadata=metadata,
        )
        rtb = RouteTable(
            f"PrivateRtb{suffix}",
            template=template,
            VpcId=Ref(vpc),
            Tags=Tags(Name=Sub(f"${{AWS::StackName}}-PrivateRtb-{suffix.lower()}")),
            Metadata=metadata,
        )
        if nats:
            Route(
                f"PrivateDefaultRoute{suffix}",
                template=template,
                NatGatewayId=Ref(nats[index % len(nats)]),
                RouteTableId=Ref(rtb),
                DestinationCidrBlock="0.0.0.0/0",
            )
        SubnetRouteTableAssociation(
            f"PrivateSubnetRtbAssoc{suffix}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
            Metadata=metadata,
        )
        subnets.append(subnet)
    return subnets
