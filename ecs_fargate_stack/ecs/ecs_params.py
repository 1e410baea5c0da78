# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Logical IDs and settings bound to ecs_fargate_stack.ecs
This is a crucial part as all the titles, marked `_T` are string which are then used the same way
across all imports, which gives consistency for CFN to use the same names,
which it heavily relies onto.

You can change the names *values* so you like so long as you keep it [a-zA-Z0-9]
"""

LOG_GROUP_T = "ServicesLogGroup"
EXEC_ROLE_T = "EcsExecutionRole"
SERVICE_T = "EcsService"
TASK_T = "EcsTaskDefinition"
SERVICE_SCALING_TARGET = "ServiceScalingTarget"
SERVICE_CPU_SCALING_POLICY = "ServiceCpuScalingPolicy"

EXEC_ROLE_POLICY_NAME = "EcsExecutionPermissions"

DEFAULT_EXECUTION_ACTIONS = [
    "ecr:GetAuthorizationToken",
    "ecr:BatchCheckLayerAvailability",
    "ecr:GetDownloadUrlForLayer",
    "ecr:BatchGetImage",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
]
ECR_AUTHORIZATION_ACTION = "ecr:GetAuthorizationToken"

LOG_GROUP_RETENTION_VALUES = [
    1,
    3,
    5,
    7,
    14,
    30,
    60,
    90,
    120,
    150,
    180,
    365,
    400,
    545,
    731,
    1827,
    3653,
]

FARGATE_MODES = {
    256: [2**i for i in [9, 10, 11]],
    512: [(2**10) * i for i in range(1, 5)],
    1024: [(2**10) * i for i in range(2, 9)],
    2048: [(2**10) * i for i in range(4, 17)],
    4096: [(2**10) * i for i in range(8, 33)],
    8192: [(2**10) * i for i in range(16, 61, 4)],
    16384: [(2**10) * i for i in range(32, 121, 8)],
}
