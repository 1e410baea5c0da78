# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
From the stack definition file, allows to add generic tags to all objects supporting AWS Tags from CFN

The tags set on a resource by its own definition (i.e. Name) take precedence over the top-level Tags.
"""

import copy

from troposphere import Tags, Template

from ecs_fargate_stack.common.logging import LOG


def define_extended_tags(tags) -> Tags:
    """
    Function to generate the tags to be added to objects from the top-level Tags

    :param tags: tags as defined in the stack definition file
    :type tags: list or dict
    :return: Tags() or None
    :rtype: troposphere.Tags or None
    """
    tags_keys = ["Key", "Value"]
    rendered_tags = []
    if isinstance(tags, list):
        for tag in tags:
            if not isinstance(tag, dict):
                raise TypeError("Tags must be of type", dict)
            elif not set(tag.keys()) == set(tags_keys):
                raise KeyError("Keys for tags must be", tags_keys)
            rendered_tags.append({tag["Key"]: str(tag["Value"])})
    elif isinstance(tags, dict):
        for key in sorted(tags.keys()):
            rendered_tags.append({key: str(tags[key])})
    if rendered_tags:
        return Tags(*rendered_tags)
    return None


def merge_tags_lists(x_data, y_data):
    x_keys = [x["Key"] for x in x_data]
    result = [{a["Key"]: a["Value"]} for a in x_data]
    for count, tag in enumerate(y_data):
        if tag["Key"] not in x_keys:
            result.append({y_data[count]["Key"]: y_data[count]["Value"]})
    return result


def add_object_tags(obj, tags):
    """
    Function to add tags to the object if the object supports it

    :param obj: Troposphere object to add the tags to
    :param troposphere.Tags tags: list of tags as defined in the stack definition file
    """
    if tags is None:
        return
    clean_tags = copy.deepcopy(tags)
    if hasattr(obj, "props") and "Tags" not in obj.props:
        LOG.debug(f"Item {obj.title} - {obj.resource_type} does not support tags")
        return
    if hasattr(obj, "Tags") and isinstance(getattr(obj, "Tags"), Tags):
        LOG.debug(f"Adding the new tags {clean_tags} to {obj.title}")
        existing_tags = getattr(obj, "Tags").to_dict()
        new_tags = clean_tags.to_dict()
        result = merge_tags_lists(existing_tags, new_tags)
        setattr(obj, "Tags", Tags(*result))
    elif not hasattr(obj, "Tags"):
        LOG.debug(f"No existing tags. Adding tags to {obj.title}")
        setattr(obj, "Tags", clean_tags)


def add_all_tags(template: Template, tags) -> None:
    """
    Adds the top-level tags to all the resources of the template supporting them

    :param troposphere.Template template:
    :param tags: the top-level Tags of the stack definition
    :type tags: list or dict
    """
    xtags = define_extended_tags(tags)
    if xtags is None:
        return
    LOG.info(f"Adding tags {[tag['Key'] for tag in xtags.to_dict()]} to all resources")
    for resource in template.resources.values():
        add_object_tags(resource, xtags)
