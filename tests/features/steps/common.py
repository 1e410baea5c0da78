#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import tempfile
from os import path

from behave import given, then, when
from pytest import raises

from ecs_fargate_stack.common.graph import count_resources_by_type, topological_order
from ecs_fargate_stack.common.settings import StackSettings
from ecs_fargate_stack.exceptions import FargateStackException
from ecs_fargate_stack.fargate_stack import generate_full_template


def here():
    return path.abspath(path.dirname(__file__))


def stack_settings(context, files: list) -> StackSettings:
    cases_paths = [path.abspath(f"{here()}/../../../{file_path}") for file_path in files]
    return StackSettings(
        profile_name=getattr(context, "profile_name")
        if hasattr(context, "profile_name")
        else None,
        **{
            StackSettings.name_arg: "test",
            StackSettings.command_arg: StackSettings.render_arg,
            StackSettings.input_file_arg: cases_paths,
            StackSettings.format_arg: "yaml",
            StackSettings.output_dir_arg: tempfile.mkdtemp(),
            StackSettings.skip_validation_arg: True,
        },
    )


@given("I use {file_path} as my stack definition file")
def step_impl(context, file_path):
    """
    Function to import the stack definition file from use-cases.

    :param context:
    :param str file_path:
    """
    context.settings = stack_settings(context, [file_path])


@given("I use {file_path} as my stack definition file and {override_file} as override file")
def step_impl(context, file_path, override_file):
    context.settings = stack_settings(context, [file_path, override_file])


@given("I want to use aws profile {profile_name}")
def step_impl(context, profile_name):
    """
    Function to change the session to a specific one.
    """
    context.profile_name = profile_name


@when("I generate the stack template")
def step_impl(context):
    context.stack = generate_full_template(context.settings)


@then("I render all files to verify execution")
def step_impl(context):
    if not hasattr(context, "stack"):
        context.stack = generate_full_template(context.settings)
    context.stack.render(context.settings)
    assert path.exists(context.stack.template_file.file_path)


@then("the template has {count:d} resources of type {resource_type}")
def step_impl(context, count, resource_type):
    counts = count_resources_by_type(context.stack.stack_template)
    assert counts.get(resource_type, 0) == count, counts


@then("{first} is created before {second}")
def step_impl(context, first, second):
    order = topological_order(context.stack.stack_template)
    assert order.index(first) < order.index(second), order


@then("the pipeline stages are {stages}")
def step_impl(context, stages):
    pipeline = context.stack.stack_template.resources["Pipeline"]
    assert [stage.Name for stage in pipeline.Stages] == [
        stage.strip() for stage in stages.split(",")
    ]


@then("the template has the output {output_name}")
def step_impl(context, output_name):
    assert output_name in context.stack.stack_template.outputs


@then("generating the stack template fails")
def step_impl(context):
    with raises(FargateStackException):
        generate_full_template(context.settings)
