# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from ecs_fargate_stack.common.envsubst import expandvars, interpolate_content


def test_expandvars(monkeypatch):
    monkeypatch.setenv("HTTPD_TAG", "2.4")
    monkeypatch.delenv("UNSET_VAR", raising=False)
    assert expandvars("httpd:${HTTPD_TAG}") == "httpd:2.4"
    assert expandvars("httpd:${UNSET_VAR}") == "httpd:${UNSET_VAR}"
    assert expandvars("httpd:${UNSET_VAR:-latest}") == "httpd:latest"
    assert expandvars("httpd:${HTTPD_TAG:-latest}") == "httpd:2.4"
    assert expandvars("${HTTPD_TAG:+set}") == "set"
    assert expandvars("${UNSET_VAR:+set}") == ""
    assert expandvars("httpd:\\${HTTPD_TAG}") == "httpd:\\${HTTPD_TAG}"


def test_shell_and_cfn_variables_untouched(monkeypatch):
    monkeypatch.setenv("REPOSITORY_URI", "should-not-appear")
    assert expandvars("docker push $REPOSITORY_URI:latest") == (
        "docker push $REPOSITORY_URI:latest"
    )
    assert expandvars("${AWS::StackName}-logs") == "${AWS::StackName}-logs"


def test_interpolate_content(monkeypatch):
    monkeypatch.setenv("VPC_CIDR", "10.10.0.0/24")
    content = {
        "Vpc": {"Cidr": "${VPC_CIDR}"},
        "Service": {"DesiredCount": 2},
        "Commands": ["echo ${VPC_CIDR}", True],
    }
    assert interpolate_content(content) == {
        "Vpc": {"Cidr": "10.10.0.0/24"},
        "Service": {"DesiredCount": 2},
        "Commands": ["echo 10.10.0.0/24", True],
    }


def test_interpolate_content_skip_paths(monkeypatch):
    monkeypatch.setenv("IMAGE_TAG", "2.4")
    content = {
        "Image": "httpd:${IMAGE_TAG}",
        "Build": {"Commands": ["echo ${IMAGE_TAG}"], "Image": "${IMAGE_TAG}"},
    }
    assert interpolate_content(content, skip_paths=[("Build", "Commands")]) == {
        "Image": "httpd:2.4",
        "Build": {"Commands": ["echo ${IMAGE_TAG}"], "Image": "2.4"},
    }
