# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The ECS Cluster the service is deployed into.
"""

from __future__ import annotations

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import Ref, Sub, Tags
from troposphere.ecs import (
    CapacityProviderStrategy,
    Cluster,
    ClusterCapacityProviderAssociations,
    ClusterSetting,
)

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.ecs import metadata
from ecs_fargate_stack.ecs_cluster.ecs_cluster_params import (
    CLUSTER_PROVIDERS_T,
    CLUSTER_T,
    DEFAULT_STRATEGY,
    FARGATE_PROVIDERS,
)
from ecs_fargate_stack.exceptions import InvalidStackDefinition


def get_default_capacity_strategy(cluster_def):
    strategy_providers = [
        cap["CapacityProvider"]
        for cap in set_else_none(
            "DefaultCapacityProviderStrategy", cluster_def, alt_value=DEFAULT_STRATEGY
        )
    ]
    return strategy_providers


class EcsCluster:
    """
    Class to make it easier to manipulate the ECS Cluster to use and its various properties

    :ivar troposphere.ecs.Cluster cfn_resource:
    :ivar ClusterCapacityProviderAssociations providers_association:
    """

    res_key = "Cluster"

    def __init__(self, definition: dict = None):
        self.definition = definition if definition else {}
        self.name = set_else_none("ClusterName", self.definition)
        self.container_insights = set_else_none(
            "ContainerInsights", self.definition, alt_value=False, eval_bool=True
        )
        self.capacity_providers = (
            list(FARGATE_PROVIDERS)
            if set_else_none(
                "EnableFargateCapacityProviders",
                self.definition,
                alt_value=True,
                eval_bool=True,
            )
            else []
        )
        self.default_strategy = set_else_none(
            "DefaultCapacityProviderStrategy",
            self.definition,
            alt_value=DEFAULT_STRATEGY,
        )
        self.cfn_resource = None
        self.providers_association = None
        self.evaluate_capacity_providers()

    def __repr__(self):
        return f"{self.res_key}({self.name if self.name else CLUSTER_T})"

    @property
    def cluster_identifier(self):
        return Ref(self.cfn_resource)

    def evaluate_capacity_providers(self) -> None:
        """
        The default strategy can only use providers associated to the cluster.
        """
        if not self.capacity_providers:
            if keyisset("DefaultCapacityProviderStrategy", self.definition):
                raise InvalidStackDefinition(
                    f"{self} - DefaultCapacityProviderStrategy is set but the Fargate capacity providers are disabled"
                )
            LOG.warning(
                f"{self} - No capacity providers enabled. Services will use the FARGATE launch type."
            )
            return
        for provider in get_default_capacity_strategy(self.definition):
            if provider not in self.capacity_providers:
                raise InvalidStackDefinition(
                    f"{self} - Capacity provider {provider} is not one of",
                    self.capacity_providers,
                )

    def define_cluster(self) -> Cluster:
        """
        Defines the ECS Cluster with Container Insights setting.

        :rtype: troposphere.ecs.Cluster
        """
        props = {
            "ClusterSettings": [
                ClusterSetting(
                    Name="containerInsights",
                    Value="enabled" if self.container_insights else "disabled",
                )
            ],
            "Tags": Tags(Name=self.name if self.name else Sub("${AWS::StackName}")),
            "Metadata": metadata,
        }
        if self.name:
            props["ClusterName"] = self.name
        self.cfn_resource = Cluster(CLUSTER_T, **props)
        return self.cfn_resource

    def define_capacity_providers(self) -> ClusterCapacityProviderAssociations:
        self.providers_association = ClusterCapacityProviderAssociations(
            CLUSTER_PROVIDERS_T,
            Cluster=Ref(self.cfn_resource),
            CapacityProviders=self.capacity_providers,
            DefaultCapacityProviderStrategy=[
                CapacityProviderStrategy(
                    CapacityProvider=strategy["CapacityProvider"],
                    Weight=set_else_none("Weight", strategy, alt_value=0, eval_bool=True),
                    Base=set_else_none("Base", strategy, alt_value=0, eval_bool=True),
                )
                for strategy in self.default_strategy
            ],
        )
        return self.providers_association

    def add_to_template(self, template) -> None:
        """
        :param troposphere.Template template:
        """
        template.add_resource(self.define_cluster())
        if self.capacity_providers:
            template.add_resource(self.define_capacity_providers())
        LOG.info(
            f"{self} - ContainerInsights: {self.container_insights}, Providers: {self.capacity_providers}"
        )


def add_ecs_cluster(template, definition: dict) -> EcsCluster:
    """
    Function to create the ECS Cluster.

    :param troposphere.Template template:
    :param dict definition: the Cluster definition
    :rtype: EcsCluster
    """
    cluster = EcsCluster(definition)
    cluster.add_to_template(template)
    return cluster
