# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

LB_T = "LoadBalancer"
LB_SG_T = "LoadBalancerSecurityGroup"
LISTENER_T = "LoadBalancerListener"
TARGET_GROUP_T = "ServiceTargetGroup"

LB_DNS_NAME_OUTPUT = "LoadBalancerDnsName"
LB_URL_OUTPUT = "LoadBalancerUrl"

DEFAULT_LISTENER_PORT = 80
DEFAULT_HEALTHCHECK_PATH = "/"
