# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import sys
from os import path

import pytest
import yaml

from ecs_fargate_stack.cli import main, main_parser
from ecs_fargate_stack.common.settings import StackSettings

HERE = path.abspath(path.dirname(__file__))
USE_CASES = path.abspath(f"{HERE}/../../use-cases")


def test_parser_merges_stack_files():
    args = main_parser().parse_args(
        [
            "render",
            "-f",
            f"{USE_CASES}/httpd-public.yml",
            "-f",
            f"{USE_CASES}/httpd-public-ha.yml",
            "-n",
            "my-stack",
            "--format",
            "yaml",
            "--skip-validation",
        ]
    )
    assert args.command == "render"
    assert getattr(args, StackSettings.input_file_arg) == [
        f"{USE_CASES}/httpd-public.yml",
        f"{USE_CASES}/httpd-public-ha.yml",
    ]
    assert getattr(args, StackSettings.name_arg) == "my-stack"
    assert getattr(args, StackSettings.format_arg) == "yaml"
    assert getattr(args, StackSettings.skip_validation_arg) is True
    assert getattr(args, StackSettings.check_cidr_arg) is False


def test_parser_requires_stack_file():
    with pytest.raises(SystemExit):
        main_parser().parse_args(["render"])


def test_version(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["ecs-fargate-stack", "version"])
    assert main() == 0
    assert capsys.readouterr().out.startswith("ECS Fargate Stack")


def test_config(monkeypatch, capsys):
    monkeypatch.setattr(
        sys,
        "argv",
        ["ecs-fargate-stack", "config", "-f", f"{USE_CASES}/httpd-public.yml"],
    )
    assert main() == 0
    config = yaml.safe_load(capsys.readouterr().out)
    assert config["Name"] == "httpd-public"
    assert config["SecurityGroup"] == {"AllowAllOutbound": True}
    assert config["Scaling"]["CpuTarget"] == 50


def test_graph(monkeypatch, capsys):
    monkeypatch.setattr(
        sys,
        "argv",
        ["ecs-fargate-stack", "graph", "-f", f"{USE_CASES}/httpd-public.yml"],
    )
    assert main() == 0
    output = capsys.readouterr().out
    assert output.index("Vpc ") < output.index("EcsService ")
    assert "AWS::ApplicationAutoScaling::ScalingPolicy" in output


def test_render(monkeypatch, tmp_path):
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "ecs-fargate-stack",
            "render",
            "-f",
            f"{USE_CASES}/httpd-public.yml",
            "-d",
            str(tmp_path),
            "--format",
            "yaml",
            "--skip-validation",
            "--region",
            "eu-west-1",
        ],
    )
    assert main() == 0
    assert path.exists(f"{tmp_path}/httpd-public.yaml")


def test_invalid_definition(monkeypatch, tmp_path):
    definition = tmp_path / "invalid.yml"
    definition.write_text("Name: invalid\nTaskDefinition:\n  Cpu: 300\n")
    monkeypatch.setattr(
        sys,
        "argv",
        ["ecs-fargate-stack", "graph", "-f", str(definition)],
    )
    assert main() == 1


def test_missing_stack_name(monkeypatch, tmp_path):
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "ecs-fargate-stack",
            "render",
            "-f",
            f"{USE_CASES}/httpd-private.yml",
            "-d",
            str(tmp_path),
            "--skip-validation",
        ],
    )
    assert main() == 1


def test_failed_deployment(monkeypatch, tmp_path):
    def failed_deploy(settings, stack):
        raise RuntimeError("Change set is unsuccessful", "FAILED")

    monkeypatch.setattr(
        "ecs_fargate_stack.fargate_stack.assert_cidr_available",
        lambda *args, **kwargs: None,
    )
    monkeypatch.setattr("ecs_fargate_stack.cli.deploy", failed_deploy)
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "ecs-fargate-stack",
            "up",
            "-f",
            f"{USE_CASES}/httpd-public.yml",
            "-d",
            str(tmp_path),
            "--skip-validation",
            "--region",
            "eu-west-1",
        ],
    )
    assert main() == 1
    assert path.exists(f"{tmp_path}/httpd-public.json")
