"""Tests for planner event listeners."""

import logging

from volcano_planner.optimizer import (
    FilterMergeRule,
    LoggingListener,
    MulticastListener,
    VolcanoPlanner,
)
from volcano_planner.plan import Filter, PlanCluster, Scan
from tests.helpers import RecordingListener, gt


def _merge_plan(planner):
    scan = Scan(planner.cluster, "A", ["x"])
    planner.set_root(Filter(Filter(scan, gt(0, 1)), gt(0, 2)))


def test_multicast_forwards_in_order():
    """Every listener sees the same events, in the same order."""
    first, second = RecordingListener(), RecordingListener()
    planner = VolcanoPlanner(listener=MulticastListener([first, second]))
    planner.add_rule(FilterMergeRule())
    _merge_plan(planner)
    planner.run()

    assert first.events
    assert first.events == second.events
    assert first.events.count(("attempt", True)) == 1
    assert first.events.count(("production", False)) == 1


def test_logging_listener_counts_and_logs(caplog):
    """The logging listener counts attempts and tags records with the call."""
    listener = LoggingListener()
    planner = VolcanoPlanner(listener=listener, cluster=PlanCluster())
    planner.add_rule(FilterMergeRule())
    _merge_plan(planner)

    logger = logging.getLogger(listener.logger_name)
    logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.DEBUG, logger=listener.logger_name):
            planner.run()
    finally:
        logger.removeHandler(caplog.handler)

    assert listener.attempts == 1
    assert listener.productions == 1
    records = [r for r in caplog.records if r.name == listener.logger_name]
    assert any("rule attempt begin: FilterMergeRule" in r.getMessage() for r in records)
    attempt = next(r for r in records if r.getMessage().startswith("rule attempt"))
    assert attempt.rule == "FilterMergeRule"
    assert isinstance(attempt.call_id, int)
