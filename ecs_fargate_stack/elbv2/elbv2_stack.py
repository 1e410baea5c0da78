# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to define the Application Load Balancer, its listener and the target group of the service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ec2 import SecurityGroup
    from troposphere.ecs import ContainerDefinition
    from ecs_fargate_stack.vpc.vpc_template import StackVpc

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Output, Ref, Sub, Tags
from troposphere.ec2 import SecurityGroup as SecurityGroupType
from troposphere.ec2 import SecurityGroupRule
from troposphere.elasticloadbalancingv2 import (
    Action,
    Listener,
    LoadBalancer,
    LoadBalancerAttributes,
    Matcher,
    TargetGroup,
    TargetGroupAttribute,
)

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.elbv2.elbv2_params import (
    DEFAULT_HEALTHCHECK_PATH,
    DEFAULT_LISTENER_PORT,
    LB_DNS_NAME_OUTPUT,
    LB_SG_T,
    LB_T,
    LB_URL_OUTPUT,
    LISTENER_T,
    TARGET_GROUP_T,
)
from ecs_fargate_stack.exceptions import InvalidStackDefinition
from ecs_fargate_stack.vpc.security_groups import allow_ingress_from_security_group
from ecs_fargate_stack.vpc.vpc_params import PUBLIC_ROUTE_T


class ServiceLoadBalancer:
    """
    Class to represent the ALB dispatching traffic to the service tasks.

    :ivar troposphere.elasticloadbalancingv2.LoadBalancer lb:
    :ivar troposphere.ec2.SecurityGroup lb_sg:
    :ivar troposphere.elasticloadbalancingv2.TargetGroup target_group:
    :ivar troposphere.elasticloadbalancingv2.Listener listener:
    """

    def __init__(self, definition: dict, container: ContainerDefinition):
        self.definition = definition
        self.name = set_else_none("LoadBalancerName", definition)
        self.public = set_else_none(
            "PublicLoadBalancer", definition, alt_value=True, eval_bool=True
        )
        self.listener_port = set_else_none(
            "ListenerPort", definition, alt_value=DEFAULT_LISTENER_PORT
        )
        self.healthcheck_path = set_else_none(
            "HealthCheckPath", definition, alt_value=DEFAULT_HEALTHCHECK_PATH
        )
        self.container_name = container.Name
        self.target_port = self.define_target_port(container)
        self.lb = None
        self.lb_sg = None
        self.target_group = None
        self.listener = None

    def __repr__(self):
        return f"{LB_T}({self.name if self.name else LB_T})"

    @property
    def scheme(self) -> str:
        return "internet-facing" if self.public else "internal"

    def define_target_port(self, container: ContainerDefinition) -> int:
        """
        The target port is the ContainerPort of the first tcp port mapping, unless TargetPort is set.
        """
        if not hasattr(container, "PortMappings") or not container.PortMappings:
            raise InvalidStackDefinition(
                f"{self} - Container {container.Name} has no PortMappings to send traffic to"
            )
        ports = [
            mapping.ContainerPort
            for mapping in container.PortMappings
            if mapping.Protocol == "tcp"
        ]
        if not ports:
            raise InvalidStackDefinition(
                f"{self} - Container {container.Name} has no tcp port mapping"
            )
        if keyisset("TargetPort", self.definition):
            if self.definition["TargetPort"] not in ports:
                raise InvalidStackDefinition(
                    f"{self} - TargetPort {self.definition['TargetPort']} is not one of the container ports",
                    ports,
                )
            return self.definition["TargetPort"]
        return ports[0]

    def define_security_group(self, vpc: StackVpc) -> SecurityGroup:
        cidr = "0.0.0.0/0" if self.public else GetAtt(vpc.cfn_resource, "CidrBlock")
        self.lb_sg = SecurityGroupType(
            LB_SG_T,
            GroupDescription=Sub(f"SG for LB {LB_T} in ${{AWS::StackName}}"),
            VpcId=Ref(vpc.cfn_resource),
            SecurityGroupIngress=[
                SecurityGroupRule(
                    CidrIp=cidr,
                    IpProtocol="tcp",
                    FromPort=self.listener_port,
                    ToPort=self.listener_port,
                    Description=f"Allow from anyone on port {self.listener_port}"
                    if self.public
                    else f"Allow from VPC on port {self.listener_port}",
                )
            ],
            Tags=Tags(Name=Sub(f"elbv2-{LB_T}-${{AWS::StackName}}")),
        )
        return self.lb_sg

    def define_load_balancer(self, vpc: StackVpc) -> LoadBalancer:
        subnets = vpc.public_subnets if self.public else vpc.private_subnets
        if len(subnets) < 2:
            raise InvalidStackDefinition(
                f"{LB_T} - An application load balancer needs subnets in at least 2 AZs. Vpc.MaxAzs is",
                vpc.max_azs,
            )
        props = {
            "Scheme": self.scheme,
            "Type": "application",
            "Subnets": [Ref(subnet) for subnet in subnets],
            "SecurityGroups": [GetAtt(self.lb_sg, "GroupId")],
            "LoadBalancerAttributes": [
                LoadBalancerAttributes(
                    Key="deletion_protection.enabled", Value="false"
                )
            ],
        }
        if self.name:
            props["Name"] = self.name
        if self.public:
            props["DependsOn"] = [PUBLIC_ROUTE_T]
        self.lb = LoadBalancer(LB_T, **props)
        return self.lb

    def define_target_group(self, vpc: StackVpc) -> TargetGroup:
        self.target_group = TargetGroup(
            TARGET_GROUP_T,
            Port=self.target_port,
            Protocol="HTTP",
            TargetType="ip",
            VpcId=Ref(vpc.cfn_resource),
            HealthCheckEnabled=True,
            HealthCheckPath=self.healthcheck_path,
            HealthCheckProtocol="HTTP",
            Matcher=Matcher(HttpCode="200-399"),
            TargetGroupAttributes=[
                TargetGroupAttribute(
                    Key="deregistration_delay.timeout_seconds", Value="30"
                )
            ],
        )
        return self.target_group

    def define_listener(self) -> Listener:
        self.listener = Listener(
            LISTENER_T,
            LoadBalancerArn=Ref(self.lb),
            Port=self.listener_port,
            Protocol="HTTP",
            DefaultActions=[
                Action(Type="forward", TargetGroupArn=Ref(self.target_group))
            ],
        )
        return self.listener

    def add_to_template(
        self, template: Template, vpc: StackVpc, service_sg: SecurityGroup
    ) -> None:
        """
        Adds the LB, its security group, the target group and listener to the template,
        and opens the service security group to the LB on the target port.

        :param troposphere.Template template:
        :param StackVpc vpc:
        :param troposphere.ec2.SecurityGroup service_sg: the security group of the service
        """
        template.add_resource(self.define_security_group(vpc))
        template.add_resource(self.define_load_balancer(vpc))
        template.add_resource(self.define_target_group(vpc))
        template.add_resource(self.define_listener())
        allow_ingress_from_security_group(
            template, service_sg, self.lb_sg, self.target_port
        )
        LOG.info(
            f"{self} - {self.scheme} on port {self.listener_port} to {self.container_name}:{self.target_port}"
        )

    @property
    def outputs(self) -> list:
        return [
            Output(
                LB_DNS_NAME_OUTPUT,
                Description="DNS name of the load balancer",
                Value=GetAtt(self.lb, "DNSName"),
            ),
            Output(
                LB_URL_OUTPUT,
                Description="URL to access the service",
                Value=Sub(f"http://${{{LB_T}.DNSName}}:{self.listener_port}"),
            ),
        ]
