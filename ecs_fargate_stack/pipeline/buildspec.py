# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Renders the CodeBuild buildspec which builds the image, pushes it to the repository and writes the image
definitions file the ECS deploy action consumes.

Each phase can be overridden with a list of commands in the Build.BuildSpec definition.
An empty list removes the phase.
"""

import yaml
from cfn_flip.yaml_dumper import LongCleanDumper
from compose_x_common.compose_x_common import set_else_none

from ecs_fargate_stack.pipeline.pipeline_params import DEFAULT_IMAGE_DEFINITIONS_FILE

BUILDSPEC_VERSION = "0.2"

PHASES_KEYS = {
    "install": "Install",
    "pre_build": "PreBuild",
    "build": "Build",
    "post_build": "PostBuild",
}


def default_phases(image_definitions_file: str) -> dict:
    """
    Returns the default commands of each phase. The build environment must expose
    REPOSITORY_URI and CONTAINER_NAME.

    :param str image_definitions_file:
    :rtype: dict
    """
    return {
        "install": ["docker version"],
        "pre_build": [
            "echo Logging in to Amazon ECR",
            "aws ecr get-login-password --region $AWS_DEFAULT_REGION"
            " | docker login --username AWS --password-stdin ${REPOSITORY_URI%%/*}",
            "COMMIT_HASH=$(echo $CODEBUILD_RESOLVED_SOURCE_VERSION | cut -c 1-7)",
            "IMAGE_TAG=${COMMIT_HASH:=latest}",
        ],
        "build": [
            "echo Build started on `date`",
            "docker build -t $REPOSITORY_URI:latest .",
            "docker tag $REPOSITORY_URI:latest $REPOSITORY_URI:$IMAGE_TAG",
        ],
        "post_build": [
            "echo Build completed on `date`",
            "docker push $REPOSITORY_URI:latest",
            "docker push $REPOSITORY_URI:$IMAGE_TAG",
            "printf '[{\"name\":\"%s\",\"imageUri\":\"%s\"}]'"
            f" $CONTAINER_NAME $REPOSITORY_URI:$IMAGE_TAG > {image_definitions_file}",
        ],
    }


def define_buildspec(
    buildspec_def: dict = None, image_definitions_file: str = None
) -> dict:
    """
    Merges the user phases commands with the defaults.

    :param dict buildspec_def: the Build.BuildSpec definition
    :param str image_definitions_file: name of the image definitions file
    :return: the buildspec
    :rtype: dict
    """
    if buildspec_def is None:
        buildspec_def = {}
    if image_definitions_file is None:
        image_definitions_file = DEFAULT_IMAGE_DEFINITIONS_FILE
    phases = default_phases(image_definitions_file)
    buildspec = {"version": BUILDSPEC_VERSION, "phases": {}}
    for phase_name, phase_key in PHASES_KEYS.items():
        commands = set_else_none(
            phase_key, buildspec_def, alt_value=phases[phase_name], eval_bool=True
        )
        if commands:
            buildspec["phases"][phase_name] = {"commands": list(commands)}
    artifacts = set_else_none(
        "Artifacts", buildspec_def, alt_value=[image_definitions_file]
    )
    if image_definitions_file not in artifacts:
        artifacts = list(artifacts) + [image_definitions_file]
    buildspec["artifacts"] = {"files": list(artifacts)}
    return buildspec


def render_buildspec(buildspec: dict) -> str:
    """
    :param dict buildspec:
    :return: the buildspec as YAML
    :rtype: str
    """
    return yaml.dump(buildspec, Dumper=LongCleanDumper, sort_keys=False)
