# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to handle the stack template in memory before writing it on disk and uploading it into S3.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_fargate_stack.common.settings import StackSettings

from troposphere import Template

from ecs_fargate_stack.common.files import TEMPLATE_BODY_MAX_SIZE, FileArtifact
from ecs_fargate_stack.common.logging import LOG


class StackTemplate:
    """
    Class to define the stack as its template and where the rendered file lives.

    :ivar troposphere.Template stack_template:
    :ivar str file_name: base name of the template file
    :ivar ecs_fargate_stack.common.files.FileArtifact template_file:
    :ivar str TemplateURL: S3 URL of the template, once uploaded
    """

    def __init__(self, title: str, stack_template: Template, file_name: str = None):
        if not isinstance(stack_template, Template):
            raise TypeError(
                "stack_template must be of type", Template, "got", type(stack_template)
            )
        self.title = title
        self.stack_template = stack_template
        self.file_name = file_name if file_name else title
        self.template_file = None
        self.TemplateURL = None

    def __repr__(self):
        return self.title

    @property
    def template_body(self) -> str:
        if self.template_file is None:
            raise AttributeError(f"{self.title} - Template was not rendered yet")
        return self.template_file.body

    def template_args(self) -> dict:
        """
        Returns TemplateURL when the template was uploaded, TemplateBody otherwise.

        :raises ValueError: when the body is too big to be sent without upload
        :rtype: dict
        """
        if self.TemplateURL:
            return {"TemplateURL": self.TemplateURL}
        if len(self.template_body) >= TEMPLATE_BODY_MAX_SIZE:
            raise ValueError(
                f"{self.title} - Template body is over {TEMPLATE_BODY_MAX_SIZE} bytes."
                " Set --bucket-name to upload it to S3"
            )
        return {"TemplateBody": self.template_body}

    def render(self, settings: StackSettings) -> None:
        """
        Function to use when the template is finalized: writes it locally, uploads it to S3 if required
        and validates it.
        """
        LOG.debug(f"Rendering {self.title}")
        self.template_file = FileArtifact(
            self.file_name,
            settings,
            self.stack_template,
            file_format=settings.format,
        )
        self.template_file.define_body()
        self.template_file.write(settings)
        if settings.upload:
            self.template_file.upload(settings)
            self.TemplateURL = self.template_file.url
            LOG.debug(f"Rendered URL = {self.template_file.url}")
        if settings.validate:
            self.template_file.validate(settings)
