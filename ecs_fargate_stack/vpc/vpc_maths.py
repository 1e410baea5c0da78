# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
2 Layers subnets calculator (public / private) for the VPC
"""

import ipaddress

from ecs_fargate_stack.common import nxtpow2
from ecs_fargate_stack.exceptions import InvalidStackDefinition
from ecs_fargate_stack.vpc.vpc_params import MAX_SUBNET_PREFIX, MIN_VPC_PREFIX


def validate_vpc_cidr(cidr: str) -> ipaddress.IPv4Network:
    """
    Validates the VPC CIDR is a valid IPv4 network, without host bits set, within the VPC size limits.

    :param str cidr: i.e. 10.0.0.0/24
    :raises InvalidStackDefinition:
    :rtype: ipaddress.IPv4Network
    """
    try:
        vpc_net = ipaddress.IPv4Network(cidr, strict=True)
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError, ValueError) as error:
        raise InvalidStackDefinition(f"VPC CIDR {cidr} is not valid: {error}")
    if not MIN_VPC_PREFIX <= vpc_net.prefixlen <= MAX_SUBNET_PREFIX:
        raise InvalidStackDefinition(
            f"VPC CIDR {cidr} prefix must be between /{MIN_VPC_PREFIX} and /{MAX_SUBNET_PREFIX}"
        )
    return vpc_net


def cut_per_az(az_cidr, layers_cidr):
    """Subdivide the range of an AZ in two: public and private

    :param az_cidr: CIDR to split
    :param layers_cidr: dict() getting updated with layers
    """
    public, private = list(az_cidr.subnets(prefixlen_diff=1))
    layers_cidr["public"].append(public)
    layers_cidr["private"].append(private)


def get_subnets(cidr, azs):
    """
    Get the lists of Subnets networks. The VPC is cut in a power of two number of equal ranges
    so that each AZ gets the same range, then each range is split in public and private.

    :param str cidr:
    :param int azs: number of AZs
    :raises InvalidStackDefinition: when the VPC is too small for the number of AZs
    :rtype: dict
    """
    vpc_net = validate_vpc_cidr(cidr)
    if azs < 1:
        raise InvalidStackDefinition("The VPC needs at least one AZ")
    blocks = nxtpow2(azs)
    azs_prefix = vpc_net.prefixlen + blocks.bit_length() - 1
    if azs_prefix + 1 > MAX_SUBNET_PREFIX:
        raise InvalidStackDefinition(
            f"VPC CIDR {cidr} is too small to create public and private subnets in {azs} AZs."
            f" Subnets would be /{azs_prefix + 1}, smallest allowed is /{MAX_SUBNET_PREFIX}"
        )
    layers_cidr = {"public": [], "private": []}
    subnets_per_az = list(vpc_net.subnets(new_prefix=azs_prefix))[:azs]
    for az in subnets_per_az:
        cut_per_az(az, layers_cidr)
    return layers_cidr


def get_subnet_layers(cidr, azs):
    """
    Get Subnets layers based on number of AZs, as strings
    """
    layers = get_subnets(cidr, azs)
    return {layer: [str(subnet) for subnet in layers[layer]] for layer in layers}
