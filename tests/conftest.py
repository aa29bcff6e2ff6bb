"""Shared fixtures for planner tests."""

import pytest

from volcano_planner.config import PlannerConfig
from volcano_planner.optimizer import VolcanoPlanner


@pytest.fixture
def planner():
    return VolcanoPlanner()


@pytest.fixture
def cluster(planner):
    return planner.cluster


@pytest.fixture
def no_dedup_planner():
    """Planner that fires a rule again on a binding it has already seen."""
    return VolcanoPlanner(PlannerConfig(deduplicate_matches=False))
