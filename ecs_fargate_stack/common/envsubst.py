# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to do a better env variables handling.

Only the ${VAR} form is interpolated, $VAR is left as is.
Escape with a backslash to keep ${VAR} untouched.
The pipeline build commands are skipped by the settings (see BUILDSPEC_PATH), they run in CodeBuild.
"""

import os
import re

ENV_VAR_REGEXP = r"\$\{(?!AWS::)([^}]*)\}"
SPECIAL_INTERPOLATION = r"(?<!\\)(\$(\{(((?!AWS::)[^}]+)(\:[+-]{1}))([^}]*)\}))"
IF_UNDEFINED = r":-"
IF_DEFINED = r":+"


def expandvars(value, default=None, skip_escaped=True):
    """
    Expand environment variables of form ${var}, ${var:-default} and ${var:+alternate}.
       If parameter 'skip_escaped' is True, all escaped variable references
       (i.e. preceded by backslashes) are skipped.
       Unknown variables are set to 'default'. If 'default' is None,
       they are left unchanged.
    """

    def replace_var(match):
        if re.match(SPECIAL_INTERPOLATION, match.group(0)):
            groups = re.findall(SPECIAL_INTERPOLATION, match.group(0))
            if groups[0][-2] == IF_UNDEFINED:
                return os.environ.get(groups[0][-3]) or expandvars(
                    groups[0][-1], default, skip_escaped
                )
            elif groups[0][-2] == IF_DEFINED:
                if os.environ.get(groups[0][-3]):
                    return expandvars(groups[0][-1], default, skip_escaped)
                return ""
        return os.environ.get(
            match.group(1),
            match.group(0) if default is None else default,
        )

    re_string = (r"(?<!\\)" if skip_escaped else "") + ENV_VAR_REGEXP
    return re.sub(re_string, replace_var, value)


def interpolate_content(content, skip_paths=None, _path=()):
    """
    Recursively expands the environment variables of all the string values of the definition

    :param content: the definition, or part of it
    :param list[tuple] skip_paths: keys paths (i.e. ("Pipeline", "Build", "BuildSpec")) kept as is
    :return: the interpolated content
    """
    if skip_paths and _path in skip_paths:
        return content
    if isinstance(content, dict):
        return {
            key: interpolate_content(value, skip_paths, _path + (key,))
            for key, value in content.items()
        }
    elif isinstance(content, list):
        return [interpolate_content(value, skip_paths, _path) for value in content]
    elif isinstance(content, str):
        return expandvars(content)
    return content
