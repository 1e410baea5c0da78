# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Explicit view of the resources graph of a template.

Every link between two resources of the template is one of

* ``{"Ref": "LogicalId"}``
* ``{"Fn::GetAtt": ["LogicalId", "Attribute"]}``
* ``${LogicalId}`` or ``${LogicalId.Attribute}`` within ``Fn::Sub``
* ``DependsOn``

From these we build the adjacency list, verify that no link points outside of the template
and compute the order in which the resources can be created.
"""

from __future__ import annotations

import heapq
import re
from collections import Counter
from typing import Union

from troposphere import Template

from ecs_fargate_stack.common.logging import LOG
from ecs_fargate_stack.exceptions import DanglingReference, DependencyCycle

PSEUDO_PREFIX = "AWS::"
SUB_VARIABLE_RE = re.compile(r"\$\{(?!!)([^}]+)\}")


def _template_dict(template: Union[Template, dict]) -> dict:
    if isinstance(template, Template):
        return template.to_dict()
    if isinstance(template, dict):
        return template
    raise TypeError("template must be one of", [Template, dict], "Got", type(template))


def _sub_references(sub_value, found: set) -> None:
    """
    Parses the Fn::Sub value (string or [string, variables]) for logical IDs.
    Variables defined in the Sub map are local and not references.
    """
    local_vars = {}
    if isinstance(sub_value, list):
        body = sub_value[0]
        if len(sub_value) > 1 and isinstance(sub_value[1], dict):
            local_vars = sub_value[1]
            for value in local_vars.values():
                find_references(value, found)
    else:
        body = sub_value
    if not isinstance(body, str):
        return
    for variable in SUB_VARIABLE_RE.findall(body):
        name = variable.split(".")[0].strip()
        if name in local_vars:
            continue
        found.add(name)


def find_references(node, found: set = None) -> set:
    """
    Recursively finds all the logical IDs referred to in a rendered template node.
    Pseudo parameters (AWS::) are left out.

    :param node: the dict/list/scalar to walk through
    :param set found: accumulator
    :return: set of logical IDs
    :rtype: set
    """
    if found is None:
        found = set()
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "Ref" and isinstance(value, str):
                found.add(value)
            elif key == "Fn::GetAtt":
                if isinstance(value, list) and value:
                    found.add(value[0])
                elif isinstance(value, str):
                    found.add(value.split(".")[0])
            elif key == "Fn::Sub":
                _sub_references(value, found)
            else:
                find_references(value, found)
    elif isinstance(node, list):
        for item in node:
            find_references(item, found)
    return {ref for ref in found if not ref.startswith(PSEUDO_PREFIX)}


def resource_dependencies(template: Union[Template, dict]) -> dict:
    """
    Builds the adjacency list of the template resources.

    :param template: the troposphere Template or its rendered dict
    :return: mapping of logical ID to the set of logical IDs (resources or parameters) it depends on
    :rtype: dict
    """
    body = _template_dict(template)
    dependencies = {}
    for name, definition in body.get("Resources", {}).items():
        refs = set()
        find_references(definition.get("Properties", {}), refs)
        find_references(definition.get("Metadata", {}), refs)
        depends_on = definition.get("DependsOn", [])
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        refs.update(depends_on)
        dependencies[name] = {
            ref for ref in refs if not ref.startswith(PSEUDO_PREFIX) and ref != name
        }
    return dependencies


def check_template_graph(template: Union[Template, dict]) -> dict:
    """
    Verifies that every reference in resources and outputs points to a resource or parameter of the template.

    :param template:
    :raises DanglingReference: when a reference has no target in the template
    :return: the resources dependencies restricted to resources
    :rtype: dict
    """
    body = _template_dict(template)
    resources = set(body.get("Resources", {}).keys())
    parameters = set(body.get("Parameters", {}).keys())
    dependencies = resource_dependencies(body)
    for source, targets in dependencies.items():
        for target in sorted(targets):
            if target not in resources and target not in parameters:
                raise DanglingReference(
                    f"Resource {source} refers to {target} which is not defined in the template",
                    source,
                    target,
                )
    for output_name, output in body.get("Outputs", {}).items():
        for target in sorted(find_references(output.get("Value", {}))):
            if target not in resources and target not in parameters:
                raise DanglingReference(
                    f"Output {output_name} refers to {target} which is not defined in the template",
                    output_name,
                    target,
                )
    return {
        name: {dep for dep in deps if dep in resources}
        for name, deps in dependencies.items()
    }


def topological_order(template: Union[Template, dict]) -> list:
    """
    Returns the resources logical IDs in an order where each resource comes after all of its dependencies.
    When several resources are ready at once, they come in alphabetical order, so the result is stable.

    :param template:
    :raises DependencyCycle: when the resources cannot be ordered
    :return: ordered list of logical IDs
    :rtype: list[str]
    """
    dependencies = check_template_graph(template)
    dependents = {name: set() for name in dependencies}
    pending = {}
    for name, deps in dependencies.items():
        pending[name] = len(deps)
        for dep in deps:
            dependents[dep].add(name)
    ready = [name for name, count in pending.items() if count == 0]
    heapq.heapify(ready)
    ordered = []
    while ready:
        name = heapq.heappop(ready)
        ordered.append(name)
        for dependent in dependents[name]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, dependent)
    if len(ordered) != len(dependencies):
        in_cycle = sorted(name for name, count in pending.items() if count > 0)
        raise DependencyCycle(
            f"Resources cannot be ordered, cycle between {in_cycle}", in_cycle
        )
    LOG.debug(f"Resources creation order: {ordered}")
    return ordered


def count_resources_by_type(template: Union[Template, dict]) -> Counter:
    """
    :return: number of resources for each CFN resource type
    :rtype: collections.Counter
    """
    body = _template_dict(template)
    return Counter(
        definition["Type"] for definition in body.get("Resources", {}).values()
    )


def order_table(template: Union[Template, dict]) -> list:
    """
    Rows of (position, logical ID, type, dependencies) following the creation order
    """
    body = _template_dict(template)
    dependencies = check_template_graph(body)
    rows = []
    for index, name in enumerate(topological_order(body), start=1):
        rows.append(
            [
                index,
                name,
                body["Resources"][name]["Type"],
                ", ".join(sorted(dependencies[name])),
            ]
        )
    return rows
