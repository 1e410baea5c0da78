# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_fargate_stack.
"""

import argparse
import sys

from botocore.exceptions import ClientError
from jsonschema.exceptions import ValidationError
from tabulate import tabulate

from ecs_fargate_stack.common.aws import deploy, plan
from ecs_fargate_stack.common.graph import order_table
from ecs_fargate_stack.common.logging import LOG, VALID_LEVELS, set_log_level
from ecs_fargate_stack.common.settings import StackSettings
from ecs_fargate_stack.exceptions import FargateStackException
from ecs_fargate_stack.fargate_stack import generate_full_template


class ArgparseHelper(argparse._HelpAction):
    """
    Used to help print top level '--help' arguments from argparse
    when used with subparsers
    """

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        print()
        subparsers_actions = [
            action
            for action in parser._actions
            if isinstance(action, argparse._SubParsersAction)
        ]
        for subparsers_action in subparsers_actions:
            for choice, subparser in list(subparsers_action.choices.items()):
                if choice in [
                    cmd["name"] for cmd in StackSettings.active_commands
                ] or choice in [
                    cmd["name"] for cmd in StackSettings.validation_commands
                ]:
                    print(f"Command '{choice}'")
                    print(subparser.format_usage())


def main_parser():
    """
    Console script for ecs_fargate_stack.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )

    cmd_parsers = parser.add_subparsers(
        dest=StackSettings.command_arg, help="Command to execute."
    )
    base_command_parser = argparse.ArgumentParser(add_help=False)
    files_parser = argparse.ArgumentParser(add_help=False)
    files_parser.add_argument(
        "-f",
        "--stack-file",
        dest=StackSettings.input_file_arg,
        required=True,
        help="Path to the stack definition file. Repeat to merge several files, the last one wins",
        action="append",
    )
    files_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    base_command_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write the template to.",
        type=str,
        dest=StackSettings.output_dir_arg,
        default=StackSettings.default_output_dir,
    )
    base_command_parser.add_argument(
        "-n",
        "--name",
        help="Name of the CFN stack. Overrides Name from the stack definition",
        required=False,
        type=str,
        dest=StackSettings.name_arg,
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=StackSettings.format_arg,
        choices=StackSettings.allowed_formats,
        default=StackSettings.default_format,
    )
    base_command_parser.add_argument(
        "--region",
        required=False,
        dest=StackSettings.region_arg,
        help="Specify the region you want to build for"
        "default use default region from config or environment vars",
    )
    base_command_parser.add_argument(
        "-b",
        "--bucket-name",
        type=str,
        required=False,
        help="Bucket name to upload the template to",
        dest=StackSettings.bucket_arg,
    )
    base_command_parser.add_argument(
        "--role-arn",
        dest=StackSettings.arn_arg,
        help="Allow you to run API calls using a specific IAM role, within same or for cross-account",
        required=False,
    )
    base_command_parser.add_argument(
        "--disable-rollback",
        dest="DisableRollback",
        help="On create/plan, disable stack automatic rollback.",
        required=False,
        action="store_true",
    )
    base_command_parser.add_argument(
        "--check-cidr",
        dest=StackSettings.check_cidr_arg,
        help="Verifies the VPC CIDR does not overlap with the VPCs of the account. Always on for up and plan",
        required=False,
        action="store_true",
    )
    base_command_parser.add_argument(
        "--skip-validation",
        dest=StackSettings.skip_validation_arg,
        help="Skips the CFN ValidateTemplate call on the rendered template",
        required=False,
        action="store_true",
    )
    for command in StackSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[base_command_parser, files_parser],
        )
    for command in StackSettings.validation_commands:
        cmd_parsers.add_parser(
            name=command["name"], help=command["help"], parents=[files_parser]
        )

    for command in StackSettings.neutral_commands:
        cmd_parsers.add_parser(name=command["name"], help=command["help"])
    return parser


def main():
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit()
    args = parser.parse_args()
    if args.command == "version":
        print(StackSettings.version())
        return 0
    if args.loglevel and not set_log_level(args.loglevel):
        print(
            f"Log level value {args.loglevel} is invalid. Must me one of {VALID_LEVELS}"
        )
    LOG.debug(args)
    try:
        settings = StackSettings(**vars(args))
        if settings.command == StackSettings.config_render_arg:
            print(settings.render_config())
            return 0
        stack = generate_full_template(settings)
        if settings.command == StackSettings.graph_arg:
            print(
                tabulate(
                    order_table(stack.stack_template),
                    headers=["#", "LogicalId", "Type", "DependsOn"],
                    tablefmt="rst",
                )
            )
            return 0
        settings.set_bucket_name_from_account_id()
        LOG.debug(settings)
        stack.render(settings)
        if settings.deploy:
            deploy(settings, stack)
        elif settings.plan:
            plan(settings, stack)
    except (FargateStackException, ValidationError, ValueError, RuntimeError) as error:
        LOG.error(error)
        return 1
    except ClientError as error:
        LOG.error(error)
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
