"""Tests for row-count metadata."""

from volcano_planner.optimizer.metadata import DEFAULT_ROW_COUNT, MetadataQuery
from volcano_planner.plan import (
    Aggregate,
    BinaryOp,
    BinaryOpType,
    Filter,
    InputRef,
    Join,
    JoinType,
    Limit,
    PlanCluster,
    Scan,
    Union,
)
from tests.helpers import gt


class TestRowCount:
    """Row-count estimation over plain trees and registered graphs."""

    def test_filter_on_default_scan(self):
        cluster = PlanCluster()
        filter_node = Filter(Scan(cluster, "A", ["x"]), gt(0, 1))
        assert MetadataQuery().row_count(filter_node) == int(DEFAULT_ROW_COUNT * 0.33)

    def test_equi_join(self):
        cluster = PlanCluster()
        left = Scan(cluster, "A", ["a"], row_count=100)
        right = Scan(cluster, "B", ["b"], row_count=10)
        condition = BinaryOp(op=BinaryOpType.EQ, left=InputRef(0), right=InputRef(1))
        join = Join(left, right, JoinType.INNER, condition)
        assert MetadataQuery().row_count(join) == 100

    def test_cross_join_multiplies(self):
        cluster = PlanCluster()
        join = Join(Scan(cluster, "A", ["a"], row_count=3), Scan(cluster, "B", ["b"], row_count=4))
        assert MetadataQuery().row_count(join) == 12

    def test_aggregate_limit_union(self):
        cluster = PlanCluster()
        scan = Scan(cluster, "A", ["x"], row_count=500)
        metadata = MetadataQuery()
        assert metadata.row_count(Aggregate(scan, [], [], ["c"])) == 1
        assert metadata.row_count(Aggregate(scan, [InputRef(0)], [], ["x"])) == 50
        assert metadata.row_count(Limit(scan, 10, 5)) == 15
        assert metadata.row_count(Union([scan, scan], distinct=True)) == 500

    def test_registered_inputs_estimated_through_subsets(self, planner, cluster):
        """Subset inputs are estimated from a member of their set."""
        scan = Scan(cluster, "A", ["x"], row_count=200)
        filter_node = Filter(scan, gt(0, 1))
        planner.ensure_registered(filter_node)

        assert cluster.metadata_query.row_count(filter_node) == 66
        assert cluster.metadata_query.row_count(planner.subset_of(filter_node)) == 66

    def test_self_referencing_set_terminates(self, planner, cluster):
        """A node whose set contains itself as an input still gets an estimate."""
        scan = Scan(cluster, "A", ["x"], row_count=40)
        planner.ensure_registered(scan)
        limit = Limit(planner.subset_of(scan), 1000)
        planner.ensure_registered(limit, scan)

        metadata = cluster.metadata_query
        assert metadata.row_count(scan) == 40
        assert metadata.row_count(limit) == 40


class TestInvalidation:
    """The cluster drops cached metadata on request."""

    def test_invalidate_replaces_instance(self):
        cluster = PlanCluster()
        first = cluster.metadata_query
        assert cluster.metadata_query is first

        first.row_count(Scan(cluster, "A", ["x"]))
        assert len(first.cache) == 1

        cluster.invalidate_metadata()
        assert first.cache == {}
        second = cluster.metadata_query
        assert second is not first
