# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to submit the stack to CloudFormation: create, update and change-sets.
"""

from __future__ import annotations

from datetime import datetime as dt
from time import sleep
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_fargate_stack.common.settings import StackSettings
    from ecs_fargate_stack.common.stacks import StackTemplate

from botocore.exceptions import ClientError
from compose_x_common.aws import get_assume_role_session
from compose_x_common.compose_x_common import keyisset
from tabulate import tabulate

from ecs_fargate_stack.common.logging import LOG

CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]
YES_ANSWERS = ["y", "Y", "YES", "Yes", "yes"]


def get_cross_role_session(session, arn, region_name=None, session_name=None):
    """
    Function to override the settings session with an assumed role session

    :param boto3.session.Session session: The original session fetching the credentials for X-Role
    :param str arn:
    :param str region_name: Name of region for session
    :param str session_name: Override name of the session
    :return: boto3 session from lookup settings
    :rtype: boto3.session.Session
    """
    if not session_name:
        session_name = "FargateStack@Deploy"
    try:
        return get_assume_role_session(
            session, arn, session_name=session_name, region=region_name
        )
    except ClientError:
        LOG.error(f"Failed to use the Role ARN {arn}")
        raise


def assert_can_create_stack(client, name):
    """
    Checks whether a stack already exists or not
    """
    try:
        stack_r = client.describe_stacks(StackName=name)
        if not keyisset("Stacks", stack_r):
            return True
        stacks = stack_r["Stacks"]
        if len(stacks) != 1:
            raise LookupError("Too many stacks found with machine name", name)
        stack = stacks[0]
        if stack["StackStatus"] == "REVIEW_IN_PROGRESS":
            return stack
        return False
    except ClientError as error:
        if (
            error.response["Error"]["Code"] == "ValidationError"
            and error.response["Error"]["Message"].find("does not exist") > 0
        ):
            return True
        raise error


def assert_can_update_stack(client, name):
    """
    Checks whether the stack is in a status allowing updates
    """
    can_update_statuses = [
        "CREATE_COMPLETE",
        "UPDATE_COMPLETE",
        "UPDATE_ROLLBACK_COMPLETE",
        "IMPORT_COMPLETE",
        "IMPORT_ROLLBACK_COMPLETE",
    ]
    res = client.describe_stacks(StackName=name)
    if not res["Stacks"]:
        return False
    stack = res["Stacks"][0]
    LOG.info(f"Stack {name} is {stack['StackStatus']}")
    if stack["StackStatus"] in can_update_statuses:
        return True
    return False


def validate_stack_availability(settings: StackSettings, stack: StackTemplate):
    """
    Function to check that the stack template can be sent to CFN
    """
    if stack.template_file is None:
        raise RuntimeError(f"Stack {stack.title} must be rendered before deployment")
    if stack.TemplateURL and not stack.TemplateURL.startswith("https://"):
        raise ValueError(
            f"The URL for the stack is incorrect.: {stack.TemplateURL}",
            "TemplateURL must be a s3 URL",
        )


def deploy(settings: StackSettings, stack: StackTemplate):
    """
    Function to deploy (create or update) the stack to CFN.

    :param StackSettings settings:
    :param StackTemplate stack:
    :return: the stack ID, None if nothing was submitted
    """
    validate_stack_availability(settings, stack)
    client = settings.session.client("cloudformation")
    if assert_can_create_stack(client, settings.name):
        res = client.create_stack(
            StackName=settings.name,
            Capabilities=CAPABILITIES,
            DisableRollback=settings.disable_rollback,
            **stack.template_args(),
        )
        LOG.info(f"Stack {settings.name} successfully deployed.")
        LOG.info(res["StackId"])
        return res["StackId"]
    elif assert_can_update_stack(client, settings.name):
        LOG.warning(f"Stack {settings.name} already exists. Updating.")
        try:
            res = client.update_stack(
                StackName=settings.name,
                Capabilities=CAPABILITIES,
                DisableRollback=settings.disable_rollback,
                **stack.template_args(),
            )
        except ClientError as error:
            if error.response["Error"]["Message"].startswith("No updates are to be performed"):
                LOG.info(f"Stack {settings.name} is already up to date.")
                return None
            LOG.error(error)
            raise
        LOG.info(f"Stack {settings.name} successfully updating.")
        LOG.info(res["StackId"])
        return res["StackId"]
    LOG.error(f"Stack {settings.name} cannot be created nor updated in its current status.")
    return None


def get_change_set_status(client, change_set_name, settings, wait=10):
    """
    Waits for the change-set to be created and prints the changes.

    :return: the change-set description, None if there is no change
    :rtype: dict
    """
    pending_statuses = [
        "CREATE_PENDING",
        "CREATE_IN_PROGRESS",
        "DELETE_PENDING",
        "DELETE_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
    ]
    success_statuses = ["CREATE_COMPLETE", "DELETE_COMPLETE"]
    failed_statuses = ["DELETE_FAILED", "FAILED"]
    ready = False
    status = None
    while not ready:
        status = client.describe_change_set(
            ChangeSetName=change_set_name, StackName=settings.name
        )
        if status["Status"] in failed_statuses:
            reason = status.get("StatusReason", "")
            if "didn't contain changes" in reason or "No updates" in reason:
                LOG.info(f"Change set {change_set_name} - No changes to apply")
                return None
            raise RuntimeError("Change set is unsuccessful", status["Status"], reason)
        if status["Status"] in pending_statuses:
            print(
                "ChangeSet creation in progress. Waiting 10 seconds",
                end="\r",
                flush=True,
            )
            sleep(wait)
        elif status["Status"] in success_statuses:
            ready = True

    print(
        tabulate(
            [
                [
                    change["ResourceChange"]["LogicalResourceId"],
                    change["ResourceChange"]["ResourceType"],
                    change["ResourceChange"]["Action"],
                    change["ResourceChange"].get("Replacement", ""),
                ]
                for change in status["Changes"]
            ],
            ["LogicalResourceId", "ResourceType", "Action", "Replacement"],
            tablefmt="rst",
        )
    )
    return status


def plan(settings: StackSettings, stack: StackTemplate, wait=10):
    """
    Function to create a change-set and return diffs. Prompts to apply it.

    :param StackSettings settings:
    :param StackTemplate stack:
    :param int wait: seconds between two change-set status checks
    :return: the change-set description
    """
    validate_stack_availability(settings, stack)
    client = settings.session.client("cloudformation")
    change_set_name = f"{settings.name}-{dt.utcnow().strftime('%Y%m%d%H%M%S')}"
    if assert_can_create_stack(client, settings.name):
        change_set_type = "CREATE"
    elif assert_can_update_stack(client, settings.name):
        change_set_type = "UPDATE"
    else:
        LOG.error(f"Stack {settings.name} cannot be updated in its current status.")
        return None
    client.create_change_set(
        StackName=settings.name,
        Capabilities=CAPABILITIES,
        UsePreviousTemplate=False,
        ChangeSetType=change_set_type,
        ChangeSetName=change_set_name,
        **stack.template_args(),
    )
    status = get_change_set_status(client, change_set_name, settings, wait=wait)
    if status:
        apply_q = input("Want to apply? [yN]: ")
        if apply_q in YES_ANSWERS:
            client.execute_change_set(
                ChangeSetName=change_set_name,
                StackName=settings.name,
                DisableRollback=settings.disable_rollback,
            )
            LOG.info(f"Change set {change_set_name} executing.")
            return status
    delete_q = input("Cleanup ChangeSet ? [yN]: ")
    if delete_q in YES_ANSWERS:
        client.delete_change_set(
            ChangeSetName=change_set_name, StackName=settings.name
        )
        if change_set_type == "CREATE":
            client.delete_stack(StackName=settings.name)
        LOG.info(f"Change set {change_set_name} deleted.")
    return status
