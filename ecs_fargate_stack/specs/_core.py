# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Load all the JSON Schema specification's
"""

import json

from importlib_resources import files
from referencing import Resource


def _schemas():
    specs_folder = files("ecs_fargate_stack").joinpath("specs")
    for spec_file in sorted(specs_folder.iterdir(), key=lambda _file: _file.name):
        if not spec_file.name.endswith(".spec.json"):
            continue
        contents = json.loads(spec_file.read_text())
        yield Resource.from_contents(contents)
