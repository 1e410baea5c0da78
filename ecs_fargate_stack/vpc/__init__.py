# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
VPC module: the network and the security boundary the services run in.
"""

from ecs_fargate_stack import __version__ as version

metadata = {
    "Type": "FargateStack",
    "Properties": {
        "ecs_fargate_stack::module": "ecs_fargate_stack.vpc",
        "Version": version,
    },
}
