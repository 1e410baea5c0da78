# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import re

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import applicationautoscaling

from ecs_fargate_stack.exceptions import InvalidStackDefinition

RANGE_RE = re.compile(r"^(?P<min>\d+)-(?P<max>\d+)$")
DEFAULT_COOLDOWN = 60

TRACKING_SETTINGS = {
    "cpu": {
        "key": "CpuTarget",
        "property": "ECSServiceAverageCPUUtilization",
    },
}


def handle_range(new_range: str) -> tuple:
    """
    Function to handle Range, i.e. 1-3

    :param str new_range:
    :return: min and max capacity
    :rtype: tuple
    """
    parts = RANGE_RE.match(new_range)
    if not parts:
        raise InvalidStackDefinition(
            f"Scaling Range {new_range} is invalid. Must match", RANGE_RE.pattern
        )
    return int(parts.group("min")), int(parts.group("max"))


def define_capacity_bounds(scaling_def: dict) -> tuple:
    """
    Returns the replica bounds from Range or MinCapacity/MaxCapacity.

    :param dict scaling_def:
    :raises InvalidStackDefinition: when the bounds are not ordered
    :rtype: tuple
    """
    if keyisset("Range", scaling_def):
        min_capacity, max_capacity = handle_range(scaling_def["Range"])
    else:
        min_capacity = set_else_none("MinCapacity", scaling_def, alt_value=1, eval_bool=True)
        max_capacity = set_else_none(
            "MaxCapacity", scaling_def, alt_value=min_capacity, eval_bool=True
        )
    if min_capacity > max_capacity:
        raise InvalidStackDefinition(
            f"Scaling MinCapacity ({min_capacity}) cannot be greater than MaxCapacity ({max_capacity})"
        )
    return min_capacity, max_capacity


def define_tracking_target_configuration(target_scaling_config, config_key):
    """
    Function to create the configuration for target tracking scaling

    :param dict target_scaling_config:
    :param str config_key:
    :return:
    """
    if config_key not in TRACKING_SETTINGS.keys():
        raise KeyError(
            config_key, "Is invalid. Expected one of", TRACKING_SETTINGS.keys()
        )
    specification = applicationautoscaling.PredefinedMetricSpecification(
        PredefinedMetricType=TRACKING_SETTINGS[config_key]["property"]
    )

    return applicationautoscaling.TargetTrackingScalingPolicyConfiguration(
        DisableScaleIn=set_else_none(
            "DisableScaleIn", target_scaling_config, alt_value=False, eval_bool=True
        ),
        ScaleInCooldown=set_else_none(
            "ScaleInCooldown",
            target_scaling_config,
            alt_value=DEFAULT_COOLDOWN,
            eval_bool=True,
        ),
        ScaleOutCooldown=set_else_none(
            "ScaleOutCooldown",
            target_scaling_config,
            alt_value=DEFAULT_COOLDOWN,
            eval_bool=True,
        ),
        TargetValue=float(target_scaling_config[TRACKING_SETTINGS[config_key]["key"]]),
        PredefinedMetricSpecification=specification,
    )
