# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

CLUSTER_T = "EcsCluster"
CLUSTER_PROVIDERS_T = "EcsClusterCapacityProviders"

FARGATE_PROVIDER = "FARGATE"
FARGATE_SPOT_PROVIDER = "FARGATE_SPOT"
FARGATE_PROVIDERS = [FARGATE_PROVIDER, FARGATE_SPOT_PROVIDER]
DEFAULT_STRATEGY = [
    {"CapacityProvider": FARGATE_PROVIDER, "Weight": 1, "Base": 0},
]
