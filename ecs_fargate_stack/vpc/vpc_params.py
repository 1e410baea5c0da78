# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Logical IDs and settings related to the VPC. Used by ecs_fargate_stack.vpc and others
"""

VPC_T = "Vpc"
IGW_T = "InternetGateway"
IGW_ATTACHMENT_T = "VpcGatewayAttachment"
PUBLIC_RTB_T = "PublicRtb"
PUBLIC_ROUTE_T = "PublicDefaultRoute"
SG_T = "ServiceSecurityGroup"

DEFAULT_MAX_AZS = 2
MIN_VPC_PREFIX = 16
MAX_SUBNET_PREFIX = 28
