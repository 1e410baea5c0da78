# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to format CFN template Outputs
"""

from os import environ

from troposphere import AWS_STACK_NAME, Export, Output, Sub, Template

from ecs_fargate_stack.common.logging import LOG

CFN_EXPORT_DELIMITER = environ.get("FARGATE_STACK_EXPORTS_SEPARATOR", r"::")


def define_export_name(output_name: str, delimiter: str = None) -> Sub:
    """
    Returns the export name of an output, `<StackName>::<OutputName>` by default

    :param str output_name:
    :param str delimiter:
    :rtype: troposphere.Sub
    """
    if delimiter is None:
        delimiter = CFN_EXPORT_DELIMITER
    return Sub(f"${{{AWS_STACK_NAME}}}{delimiter}{output_name}")


def export_outputs(template: Template, delimiter: str = None) -> None:
    """
    Sets the Export of all the outputs of the template which do not have one yet.

    :param troposphere.Template template:
    :param str delimiter:
    """
    for output_name, output in template.outputs.items():
        if not isinstance(output, Output):
            raise TypeError("Outputs must be of type", Output, "Got", type(output))
        if hasattr(output, "Export"):
            LOG.debug(f"Output {output_name} already has an Export set")
            continue
        output.Export = Export(define_export_name(output_name, delimiter))
