# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Security groups (security boundaries) of the stack and their ingress rules
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from ecs_fargate_stack.vpc.vpc_template import StackVpc

from compose_x_common.compose_x_common import keyisset, set_else_none
from troposphere import GetAtt, Ref, Sub, Tags
from troposphere.ec2 import SecurityGroup, SecurityGroupIngress, SecurityGroupRule

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.exceptions import InvalidStackDefinition
from ecs_fargate_stack.vpc.vpc_params import SG_T

PROTOCOLS = {"tcp": "tcp", "udp": "udp", "icmp": "icmp", "all": "-1", "-1": "-1"}

DENY_ALL_EGRESS = SecurityGroupRule(
    CidrIp="255.255.255.255/32",
    Description="Disallow all traffic",
    FromPort=252,
    IpProtocol="icmp",
    ToPort=86,
)


def define_ingress_rule(rule: dict) -> SecurityGroupRule:
    """
    Transforms an Ingress rule definition into a SecurityGroupRule

    :param dict rule: the rule, with Port or FromPort/ToPort, Protocol, Cidr and Description.
    :rtype: SecurityGroupRule
    """
    protocol = PROTOCOLS[str(set_else_none("Protocol", rule, alt_value="tcp")).lower()]
    if keyisset("Port", rule):
        from_port = to_port = rule["Port"]
    elif keyisset("FromPort", rule) and keyisset("ToPort", rule):
        from_port, to_port = rule["FromPort"], rule["ToPort"]
    elif protocol == "-1":
        from_port, to_port = -1, -1
    else:
        raise InvalidStackDefinition(
            "Ingress rule must define Port or FromPort and ToPort", rule
        )
    if from_port > to_port:
        raise InvalidStackDefinition(
            f"Ingress rule FromPort {from_port} is greater than ToPort {to_port}"
        )
    cidr = set_else_none("Cidr", rule, alt_value="0.0.0.0/0")
    return SecurityGroupRule(
        CidrIp=cidr,
        IpProtocol=protocol,
        FromPort=from_port,
        ToPort=to_port,
        Description=set_else_none(
            "Description", rule, alt_value=f"From {cidr} on {protocol}/{from_port}"
        ),
    )


def add_security_group(
    template: Template, vpc: StackVpc, definition: dict, title: str = None
) -> SecurityGroup:
    """
    Creates the security group attached to the services, in the stack VPC.

    :param troposphere.Template template:
    :param StackVpc vpc:
    :param dict definition: the SecurityGroup definition
    :param str title: override the logical ID of the security group
    :rtype: SecurityGroup
    """
    title = title if title else SG_T
    group_name = set_else_none("GroupName", definition)
    allow_all_outbound = set_else_none(
        "AllowAllOutbound", definition, alt_value=True, eval_bool=True
    )
    ingress = [
        define_ingress_rule(rule)
        for rule in set_else_none("Ingress", definition, alt_value=[])
    ]
    props = {
        "GroupDescription": set_else_none(
            "Description",
            definition,
            alt_value=Sub(f"Services security group in ${{AWS::StackName}}"),
        ),
        "VpcId": Ref(vpc.cfn_resource),
        "Tags": Tags(
            Name=group_name if group_name else Sub(f"${{AWS::StackName}}-{title}")
        ),
    }
    if group_name:
        props["GroupName"] = group_name
    if ingress:
        props["SecurityGroupIngress"] = ingress
    if not allow_all_outbound:
        LOG.info(f"{title} - Outbound traffic is not allowed.")
        props["SecurityGroupEgress"] = [DENY_ALL_EGRESS]
    security_group = SecurityGroup(title, **props)
    template.add_resource(security_group)
    return security_group


def allow_ingress_from_security_group(
    template: Template,
    target: SecurityGroup,
    source: SecurityGroup,
    port: int,
    protocol: str = "tcp",
) -> SecurityGroupIngress:
    """
    Adds an ingress rule to the target security group from the source security group.

    :param troposphere.Template template:
    :param SecurityGroup target: security group receiving the traffic
    :param SecurityGroup source: security group the traffic comes from
    :param int port:
    :param str protocol:
    :rtype: SecurityGroupIngress
    """
    rule = SecurityGroupIngress(
        f"From{source.title}To{target.title}On{port}",
        GroupId=GetAtt(target, "GroupId"),
        SourceSecurityGroupId=GetAtt(source, "GroupId"),
        FromPort=port,
        ToPort=port,
        IpProtocol=PROTOCOLS[protocol.lower()],
        Description=Sub(f"From ${{{source.title}}} to ${{{target.title}}} on {port}"),
    )
    template.add_resource(rule)
    return rule
