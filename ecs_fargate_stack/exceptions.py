# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ecs-fargate-stack
"""


class FargateStackException(Exception):
    """
    Top class for ecs-fargate-stack Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class InvalidStackDefinition(FargateStackException):
    """
    Exception when the stack definition passes the schema validation but is not consistent,
    i.e. a MinCapacity greater than the MaxCapacity
    """


class IncompatibleOptions(FargateStackException):
    """
    Exception when two settings conflict, i.e. using the pipeline repository image without a pipeline
    """


class CidrOverlap(FargateStackException):
    """
    Exception when the VPC CIDR overlaps with a VPC already present in the account
    """


class DanglingReference(FargateStackException):
    """
    Exception when a resource or output points to a logical ID that is not in the template
    """

    def __init__(self, msg, source=None, target=None, *args):
        self.source = source
        self.target = target
        super().__init__(msg, *args)


class DependencyCycle(FargateStackException):
    """
    Exception when resources depend on each other in a loop
    """

    def __init__(self, msg, resources=None, *args):
        self.resources = resources if resources else []
        super().__init__(msg, *args)
