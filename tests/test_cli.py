"""Tests for the vplan command."""

import logging

import pytest
import yaml
from click.testing import CliRunner

from volcano_planner.cli.vplan import cli, load_plan_document, plan_file
from volcano_planner.config import Config, PlannerConfig
from volcano_planner.utils.logging import ROOT_LOGGER

MERGE_PLAN = {
    "root": {
        "type": "filter",
        "predicate": {"op": "GT", "left": {"input": 0}, "right": {"literal": 2}},
        "input": {
            "type": "filter",
            "predicate": {"op": "GT", "left": {"input": 0}, "right": {"literal": 1}},
            "input": {"type": "scan", "table": "orders", "columns": ["amount"]},
        },
    }
}


@pytest.fixture(autouse=True)
def restore_package_logger():
    """The command configures the package logger; undo that after each test."""
    logger = logging.getLogger(ROOT_LOGGER)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def plan_path(tmp_path):
    path = tmp_path / "plan.yaml"
    path.write_text(yaml.safe_dump(MERGE_PLAN))
    return str(path)


def test_load_plan_document_unwraps_root(plan_path, tmp_path):
    """A plan may be given bare or under a top-level root key."""
    assert load_plan_document(plan_path)["type"] == "filter"
    bare = tmp_path / "bare.yaml"
    bare.write_text(yaml.safe_dump(MERGE_PLAN["root"]))
    assert load_plan_document(str(bare)) == MERGE_PLAN["root"]


def test_plan_file_uses_enabled_rules_from_config(plan_path):
    """Without -r, the rules listed in the config are enabled."""
    config = Config(planner=PlannerConfig(enabled_rules=["FilterMergeRule"]))
    planner, listener, calls = plan_file(config, plan_path, [], None)
    assert calls > 0
    assert listener.productions == 1
    assert len(planner.get_root().set.members) == 2


def test_cli_prints_graph_and_summary(plan_path):
    """Test a successful run."""
    runner = CliRunner()
    result = runner.invoke(cli, [plan_path, "-r", "FilterMergeRule"])

    assert result.exit_code == 0, result.output
    assert "Set#2 (root)" in result.output
    assert "rule calls, 1 attempts, 1 productions, 3 sets" in result.output


def test_cli_with_config_file(plan_path, tmp_path):
    """Test that the exclusion pattern from the config file applies."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({
        "planner": {"rule_exclusion": "FilterMerge.*", "enabled_rules": ["FilterMergeRule"]},
        "logging": {"level": "WARNING"},
    }))
    runner = CliRunner()
    result = runner.invoke(cli, [plan_path, "-c", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "0 attempts, 0 productions" in result.output


def test_cli_unknown_rule(plan_path):
    """Test error reporting for an unknown rule name."""
    runner = CliRunner()
    result = runner.invoke(cli, [plan_path, "-r", "NoSuchRule"])

    assert result.exit_code != 0
    assert "Unknown rule: NoSuchRule" in result.output


def test_cli_malformed_plan(tmp_path):
    """Test error reporting for a plan the loader cannot build."""
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"type": "window"}))
    runner = CliRunner()
    result = runner.invoke(cli, [str(path)])

    assert result.exit_code != 0
    assert "Unknown plan node type" in result.output


def test_cli_invalid_config(plan_path, tmp_path):
    """Test error reporting for a config file with an unknown setting."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"planner": {"max_iteration": 5}}))
    runner = CliRunner()
    result = runner.invoke(cli, [plan_path, "-c", str(config_path)])

    assert result.exit_code == 1
    assert "Invalid config" in result.output
    assert "max_iteration" in result.output
    assert not isinstance(result.exception, TypeError)
