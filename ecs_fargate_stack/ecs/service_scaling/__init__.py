# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Service scaling: scalable target with the replica bounds and the CPU target tracking policy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecs import Service

from troposphere import Ref, Sub
from troposphere.applicationautoscaling import ScalableTarget, ScalingPolicy

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.ecs.ecs_params import (
    SERVICE_CPU_SCALING_POLICY,
    SERVICE_SCALING_TARGET,
)
from ecs_fargate_stack.ecs.service_scaling.helpers import (
    define_capacity_bounds,
    define_tracking_target_configuration,
)
from ecs_fargate_stack.ecs_cluster.ecs_cluster_params import CLUSTER_T
from ecs_fargate_stack.exceptions import InvalidStackDefinition


class ServiceScaling:
    """
    Class to group the scaling settings of the service.

    :ivar int min_capacity:
    :ivar int max_capacity:
    :ivar troposphere.applicationautoscaling.ScalableTarget scalable_target:
    :ivar troposphere.applicationautoscaling.ScalingPolicy cpu_policy:
    """

    def __init__(self, definition: dict):
        self.definition = definition
        self.min_capacity, self.max_capacity = define_capacity_bounds(definition)
        self.scalable_target = None
        self.cpu_policy = None

    def __repr__(self):
        return f"Scaling({self.min_capacity}-{self.max_capacity})"

    def validate_desired_count(self, desired_count: int) -> None:
        """
        The service desired count must be within the scaling bounds.
        """
        if not self.min_capacity <= desired_count <= self.max_capacity:
            raise InvalidStackDefinition(
                f"{SERVICE_SCALING_TARGET} - Service DesiredCount {desired_count} is not within"
                f" the scaling bounds [{self.min_capacity}, {self.max_capacity}]"
            )

    def define_scalable_target(self, service: Service) -> ScalableTarget:
        self.scalable_target = ScalableTarget(
            SERVICE_SCALING_TARGET,
            MinCapacity=self.min_capacity,
            MaxCapacity=self.max_capacity,
            ResourceId=Sub(f"service/${{{CLUSTER_T}}}/${{{service.title}.Name}}"),
            ScalableDimension="ecs:service:DesiredCount",
            ServiceNamespace="ecs",
        )
        return self.scalable_target

    def define_cpu_policy(self) -> ScalingPolicy:
        self.cpu_policy = ScalingPolicy(
            SERVICE_CPU_SCALING_POLICY,
            PolicyName=Sub(f"${{AWS::StackName}}-{SERVICE_CPU_SCALING_POLICY}"),
            PolicyType="TargetTrackingScaling",
            ScalingTargetId=Ref(self.scalable_target),
            TargetTrackingScalingPolicyConfiguration=define_tracking_target_configuration(
                self.definition, "cpu"
            ),
        )
        return self.cpu_policy

    def add_to_template(self, template: Template, service: Service) -> None:
        """
        :param troposphere.Template template:
        :param troposphere.ecs.Service service: the service to scale
        """
        self.validate_desired_count(service.DesiredCount)
        template.add_resource(self.define_scalable_target(service))
        template.add_resource(self.define_cpu_policy())
        LOG.info(
            f"{self} - CPU target {self.definition['CpuTarget']}%,"
            f" cooldowns in/out {self.cpu_policy.TargetTrackingScalingPolicyConfiguration.ScaleInCooldown}s"
            f"/{self.cpu_policy.TargetTrackingScalingPolicyConfiguration.ScaleOutCooldown}s"
        )


def add_service_scaling(
    template: Template, definition: dict, service: Service
) -> ServiceScaling:
    """
    Adds the scaling of the service to the template.

    :param troposphere.Template template:
    :param dict definition: the Scaling definition
    :param troposphere.ecs.Service service:
    :rtype: ServiceScaling
    """
    scaling = ServiceScaling(definition)
    scaling.add_to_template(template, service)
    return scaling
