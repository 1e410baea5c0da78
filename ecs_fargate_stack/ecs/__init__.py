# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS module: task definition, container, service and its scaling.

* Task Definition
** Execution Role
** Container definition
** Logging (awslogs)

* Service Definition
** Network settings (VPC/SG)
** Load-balancer target
** Scaling
"""

from ecs_fargate_stack import __version__ as version

metadata = {
    "Type": "FargateStack",
    "Properties": {
        "ecs_fargate_stack::module": "ecs_fargate_stack.ecs",
        "Version": version,
    },
}
