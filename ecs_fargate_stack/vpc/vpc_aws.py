# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Lookups of the VPCs already present in the account, to avoid overlapping networks.
"""

import ipaddress

from boto3.session import Session
from compose_x_common.compose_x_common import keyisset

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.exceptions import CidrOverlap


def get_vpcs_cidrs(session: Session = None) -> dict:
    """
    Lists the IPv4 CIDR blocks of all the VPCs of the region, primary and secondary.

    :param boto3.session.Session session:
    :return: the CIDRs per VPC ID
    :rtype: dict
    """
    if session is None:
        session = Session()
    client = session.client("ec2")
    cidrs = {}
    for page in client.get_paginator("describe_vpcs").paginate():
        for vpc in page["Vpcs"]:
            vpc_cidrs = [vpc["CidrBlock"]]
            if keyisset("CidrBlockAssociationSet", vpc):
                for association in vpc["CidrBlockAssociationSet"]:
                    if (
                        association["CidrBlock"] not in vpc_cidrs
                        and association["CidrBlockState"]["State"] == "associated"
                    ):
                        vpc_cidrs.append(association["CidrBlock"])
            cidrs[vpc["VpcId"]] = vpc_cidrs
    return cidrs


def assert_cidr_available(cidr: str, session: Session = None) -> None:
    """
    Checks that the CIDR does not overlap with any VPC of the account in the region

    :param str cidr:
    :param boto3.session.Session session:
    :raises CidrOverlap: when the CIDR overlaps an existing VPC
    """
    new_net = ipaddress.IPv4Network(cidr)
    overlaps = []
    for vpc_id, vpc_cidrs in get_vpcs_cidrs(session).items():
        for vpc_cidr in vpc_cidrs:
            if new_net.overlaps(ipaddress.IPv4Network(vpc_cidr)):
                overlaps.append(f"{vpc_id}({vpc_cidr})")
    if overlaps:
        raise CidrOverlap(f"VPC CIDR {cidr} overlaps with existing VPCs", overlaps)
    LOG.info(f"VPC CIDR {cidr} does not overlap with any existing VPC")
