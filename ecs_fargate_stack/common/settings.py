# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the StackSettings class
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime as dt

import boto3
import jsonschema
import yaml
from botocore.exceptions import ClientError
from cfn_flip.yaml_dumper import LongCleanDumper
from compose_x_common.aws import get_account_id, validate_iam_role_arn
from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_fargate_stack import __version__
from ecs_fargate_stack.common.aws import get_cross_role_session
from ecs_fargate_stack.common.envsubst import interpolate_content
from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.exceptions import InvalidStackDefinition
from ecs_fargate_stack.iam import ROLE_ARN_ARG
from ecs_fargate_stack.specs import REGISTRY, ROOT_SCHEMA_ID

BUILDSPEC_PATH = ("Pipeline", "Build", "BuildSpec")

DEFINITION_DEFAULTS = {
    "Vpc": {"Cidr": "10.0.0.0/24"},
    "SecurityGroup": {},
    "Cluster": {},
    "TaskDefinition": {"Cpu": 256, "MemoryLimitMiB": 512},
    "Service": {},
    "Scaling": {"CpuTarget": 50},
}


def merge_definitions(original: dict, override: dict) -> dict:
    """
    Deep merges override into a copy of original. Mappings are merged recursively,
    any other value (lists included) from override replaces the original one.

    :param dict original:
    :param dict override:
    :return: the merged definition
    :rtype: dict
    """
    merged = deepcopy(original)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_definitions(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def load_definition_files(files: list) -> dict:
    """
    Loads the YAML/JSON stack definition files and merges them in order, the latter ones override.

    :param list[str] files:
    :rtype: dict
    """
    content = {}
    for file_path in files:
        with open(file_path) as definition_fd:
            file_content = yaml.safe_load(definition_fd.read())
        if file_content is None:
            LOG.warning(f"{file_path} is empty. Skipping")
            continue
        if not isinstance(file_content, dict):
            raise InvalidStackDefinition(
                f"{file_path} - The stack definition must be a mapping. Got",
                type(file_content),
            )
        LOG.debug(f"Merging {file_path}")
        content = merge_definitions(content, file_content)
    return content


class StackSettings:
    """
    Class to handle the settings to use for the stack.

    :ivar dict definition: the merged, interpolated and validated stack definition
    :ivar dict original_content: the merged definition before defaults are applied
    """

    name_arg = "Name"
    command_arg = "command"
    region_arg = "RegionName"
    arn_arg = ROLE_ARN_ARG

    deploy_arg = "up"
    render_arg = "render"
    create_arg = "create"
    plan_arg = "plan"
    config_render_arg = "config"
    graph_arg = "graph"

    bucket_arg = "BucketName"
    input_file_arg = "StackDefinitionFile"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    check_cidr_arg = "CheckCidr"
    skip_validation_arg = "SkipValidation"
    default_format = "json"
    allowed_formats = ["json", "yaml"]

    default_output_dir = f"/tmp/ecs-fargate-stack/{dt.utcnow().strftime('%Y%m%d%H%M%S')}"

    active_commands = [
        {
            "name": deploy_arg,
            "help": "Generates & Validates the CFN template, Creates/Updates stack in CFN",
        },
        {
            "name": render_arg,
            "help": "Generates & Validates the CFN template locally. No upload to S3",
        },
        {
            "name": create_arg,
            "help": "Generates & Validates the CFN template locally. Uploads it to S3",
        },
        {
            "name": plan_arg,
            "help": "Creates a change-set to show the diff prior to an update",
        },
    ]
    validation_commands = [
        {
            "name": config_render_arg,
            "help": "Merges the definition files to provide with the final definition",
        },
        {
            "name": graph_arg,
            "help": "Prints the resources in their creation order with their dependencies",
        },
    ]
    neutral_commands = [
        {"name": "version", "help": "ECS Fargate Stack Version"},
    ]
    all_commands = active_commands + validation_commands + neutral_commands

    def __init__(
        self,
        content: dict = None,
        profile_name: str = None,
        session=None,
        **kwargs,
    ):
        """
        Class to init the configuration
        """
        self.__args = deepcopy(kwargs)
        self.session = boto3.session.Session()
        self.override_session(session, profile_name, kwargs)
        self.aws_region = (
            kwargs[self.region_arg]
            if keyisset(self.region_arg, kwargs)
            else self.session.region_name
        )
        self.bucket_name = set_else_none(self.bucket_arg, kwargs)
        self.account_id = None
        self.deploy = False
        self.plan = False
        self.no_upload = True
        self.upload = False
        self.parse_command(kwargs)
        self.validate = not keyisset(self.skip_validation_arg, kwargs)
        self.check_cidr = keyisset(self.check_cidr_arg, kwargs) or self.deploy or self.plan
        self.original_content = {}
        self.definition = {}
        self.set_content(kwargs, content)
        self.name = set_else_none(
            self.name_arg, kwargs, alt_value=set_else_none("Name", self.definition)
        )
        if not self.name and self.command in [cmd["name"] for cmd in self.active_commands]:
            raise InvalidStackDefinition(
                "The stack name must be set with --name or Name in the stack definition"
            )
        elif not self.name:
            self.name = "FargateStack"
        self.set_output_settings(kwargs)

    def __repr__(self):
        return f"StackSettings({self.name})"

    @property
    def disable_rollback(self) -> bool:
        return bool(set_else_none("DisableRollback", self.__args, alt_value=False))

    @property
    def command(self) -> str:
        return self.__args[self.command_arg]

    def parse_command(self, kwargs: dict) -> None:
        """
        Method to analyze the command and set execution settings accordingly.

        :param dict kwargs:
        """
        command = kwargs[self.command_arg]
        command_names = [cmd["name"] for cmd in self.all_commands]
        if command not in command_names:
            raise ValueError(f"Command {command} is invalid. Must be one of", command_names)
        if command == self.deploy_arg:
            self.deploy = True
        elif command == self.plan_arg:
            self.plan = True
        if command == self.create_arg:
            self.upload = True
        elif command in [self.deploy_arg, self.plan_arg]:
            self.upload = keyisset(self.bucket_arg, kwargs)
            if not self.upload:
                LOG.debug(f"{command} - No bucket name set. The template body is sent to CFN")
        self.no_upload = not self.upload

    def set_content(self, kwargs: dict, content: dict = None) -> None:
        """
        Method to load, merge, interpolate and validate the stack definition

        :param dict kwargs:
        :param dict content: definition to use in place of (or merged on top of) the files
        """
        files = set_else_none(self.input_file_arg, kwargs, alt_value=[])
        LOG.debug(f"Input files: {files}")
        merged = load_definition_files(files)
        if content:
            merged = merge_definitions(merged, content)
        self.original_content = interpolate_content(merged, skip_paths=[BUILDSPEC_PATH])
        self.definition = merge_definitions(DEFINITION_DEFAULTS, self.original_content)
        LOG.info(f"Validating against input schema {ROOT_SCHEMA_ID}")
        try:
            jsonschema.validate(
                self.definition,
                REGISTRY.contents(ROOT_SCHEMA_ID),
                registry=REGISTRY,
            )
        except jsonschema.exceptions.ValidationError as error:
            LOG.error(
                f"Stack definition is not valid at {'.'.join(str(part) for part in error.absolute_path)}"
                f" - {error.message}"
            )
            raise

    def render_config(self) -> str:
        """
        :return: the final definition, defaults included, as YAML
        :rtype: str
        """
        return yaml.dump(self.definition, Dumper=LongCleanDumper)

    @staticmethod
    def version() -> str:
        return f"ECS Fargate Stack {__version__}"

    def override_session(self, session, profile_name, kwargs):
        """
        Method to set the session based on input params

        :param boto3.session.Session session: The session to override the API calls with
        :param str profile_name: Name of a profile configured in .aws/config
        :param dict kwargs: CLI kwargs
        """
        if profile_name and not session:
            self.session = boto3.session.Session(profile_name=profile_name)
        elif session and not (profile_name or keyisset(self.arn_arg, kwargs)):
            self.session = session
        if keyisset(self.arn_arg, kwargs):
            validate_iam_role_arn(arn=kwargs[self.arn_arg])
            self.session = get_cross_role_session(
                session if session else self.session,
                kwargs[self.arn_arg],
                session_name=f"FargateStack@{kwargs[self.command_arg]}",
            )

    def set_output_settings(self, kwargs):
        """
        Method to set the output settings based on kwargs
        """
        self.format = self.default_format
        if (
            keyisset(self.format_arg, kwargs)
            and kwargs[self.format_arg] in self.allowed_formats
        ):
            self.format = kwargs[self.format_arg]

        self.output_dir = (
            kwargs[self.output_dir_arg]
            if keyisset(self.output_dir_arg, kwargs)
            else self.default_output_dir
        )

    def set_bucket_name_from_account_id(self):
        """
        Defines the default bucket name to use from the AWS Account ID, when uploading without --bucket-name
        """
        if self.bucket_name and isinstance(self.bucket_name, str):
            return
        if not self.upload:
            return
        if self.account_id is None:
            try:
                self.account_id = get_account_id(session=self.session)
                self.bucket_name = f"ecs-fargate-stack-{self.account_id}-{self.aws_region}"
            except ClientError as error:
                code = error.response["Error"]["Code"]
                message = error.response["Error"]["Message"]
                if code == "ExpiredToken":
                    LOG.error(message)
                    LOG.warning(
                        "Due to credentials error, we won't attempt to upload to S3."
                    )
                else:
                    LOG.error(error)
                self.bucket_name = None
                self.upload = False
                self.no_upload = True
