# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to manage a template and whether it should be stored in S3
"""

from __future__ import annotations

from os import makedirs
from os.path import abspath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_fargate_stack.common.settings import StackSettings

from botocore.exceptions import ClientError
from troposphere import Template

from ecs_fargate_stack.common import FILE_PREFIX
from ecs_fargate_stack.common.logging import LOG

JSON_MIME = "application/json"
YAML_MIME = "application/x-yaml"
TEMPLATE_BODY_MAX_SIZE = 51200


def upload_file(
    body,
    bucket_name,
    file_name,
    settings,
    prefix=None,
    mime=None,
):
    """Upload template_body to a file in s3 with given prefix and bucket_name

    :param body: Template body, would come from troposphere template to_json() or to_yaml()
    :type body: str
    :param bucket_name: name of the bucket to upload the file to
    :type bucket_name: str
    :param file_name: Name of the file
    :type file_name: str
    :param prefix: override default prefix for the file in S3
    :type prefix: str, optional
    :returns: url_path, the https://s3.amazonaws.com/ URL to the file
    :rtype: str
    """
    if mime is None:
        mime = JSON_MIME
    if prefix is None:
        prefix = FILE_PREFIX

    key = f"{prefix}/{file_name}"
    client = settings.session.client("s3")
    client.put_object(
        Body=body,
        Key=key,
        Bucket=bucket_name,
        ContentEncoding="utf-8",
        ContentType=mime,
        ServerSideEncryption="AES256",
    )
    return f"https://s3.amazonaws.com/{bucket_name}/{key}"


class FileArtifact:
    """
    Class to handle the template file. It will allow to upload the content to S3 or write to local filesystem.
    It also handles CloudFormation templates validation.

    :ivar str url: The URL in S3 where the file will be uploaded to or available from.
    :ivar str body: The content of the FileArtifact
    :ivar troposphere.Template template: the CFN template
    :ivar str file_name: the base name of the file
    :ivar str mime: MIME-type of the file
    :ivar str file_path: Output file path for the FileArtifact
    """

    mime = JSON_MIME

    def __init__(
        self, file_name: str, settings: StackSettings, template: Template, file_format=None
    ):
        if not isinstance(template, Template):
            raise TypeError("template must be of type", Template, "got", type(template))
        if file_format is None:
            file_format = settings.format
        if file_format not in settings.allowed_formats:
            raise ValueError(
                f"Format {file_format} is invalid. Must be one of",
                settings.allowed_formats,
            )
        self.template = template
        self.body = None
        self.url = None
        self.file_name = f"{file_name}.{file_format}"
        self.mime = YAML_MIME if file_format == "yaml" else JSON_MIME
        self.file_path = f"{settings.output_dir}/{self.file_name}"

    def __repr__(self):
        return self.file_path

    def define_body(self) -> str:
        """
        Method to define the body of the file artifact from the template.
        """
        if self.mime == YAML_MIME:
            self.body = self.template.to_yaml()
        else:
            self.body = self.template.to_json()
        return self.body

    def upload(self, settings: StackSettings) -> None:
        """
        Method to handle uploading the files to S3.
        """
        self.url = upload_file(
            body=self.body,
            settings=settings,
            bucket_name=settings.bucket_name,
            file_name=self.file_name,
            mime=self.mime,
        )
        LOG.info(f"{self.file_name} uploaded successfully to {self.url}")

    def write(self, settings: StackSettings) -> None:
        """
        Method to write the files to local filesystem based on parameters (directory name etc.)
        """
        makedirs(settings.output_dir, exist_ok=True)
        with open(self.file_path, "w") as template_fd:
            template_fd.write(self.body)
        LOG.info(
            f"Template {self.file_name} written successfully at {abspath(self.file_path)}"
        )

    def validate(self, settings: StackSettings) -> None:
        """
        Method to validate the CloudFormation template, either via URL once uploaded to S3 or via TemplateBody
        """
        client = settings.session.client("cloudformation")
        try:
            if self.url:
                client.validate_template(TemplateURL=self.url)
            elif len(self.body) >= TEMPLATE_BODY_MAX_SIZE:
                LOG.warning(
                    f"Template body for {self.file_name} is too big for local validation."
                    " Upload it to S3 with --bucket-name to validate it."
                )
                return
            else:
                LOG.debug(f"No upload - Validating template body - {self.file_path}")
                client.validate_template(TemplateBody=self.body)
            LOG.info(f"Template {self.file_name} was validated successfully by CFN")
        except ClientError as error:
            LOG.error(error)
            LOG.error(f"Failed validation template written at {abspath(self.file_path)}")
            raise
