"""
Tests for WorkingSet.
"""

import pytest

from keyqp import InequalityFactorGraph, InvalidInputError, LinearInequality, WorkingSet


@pytest.fixture
def inequalities():
    return InequalityFactorGraph([
        LinearInequality({"x": [1.0]}, 1.0, "l0"),
        LinearInequality({"x": [-1.0]}, 1.0, "l1"),
        LinearInequality({"y": [1.0]}, 2.0, "l2"),
    ])


class TestWorkingSet:
    """Persistent active-set value."""

    def test_empty(self, inequalities):
        """A new working set has no members."""
        ws = WorkingSet(inequalities)
        assert ws.size == 0
        assert len(ws) == 3
        assert not ws.is_active(0)
        assert [i for i, _ in ws.inactive_factors()] == [0, 1, 2]

    def test_add_and_remove_return_new_sets(self, inequalities):
        """with_added and with_removed leave the original unchanged."""
        ws = WorkingSet(inequalities)
        ws2 = ws.with_added(2).with_added(0)
        assert ws.size == 0
        assert ws2.active_indices == (0, 2)
        assert 2 in ws2
        assert [i for i, _ in ws2.active_factors()] == [0, 2]
        assert [i for i, _ in ws2.inactive_factors()] == [1]

        ws3 = ws2.with_removed(0)
        assert ws3.active_indices == (2,)
        assert ws2.active_indices == (0, 2)

    def test_members_are_the_original_factors(self, inequalities):
        """Indices refer to the factors of the original graph."""
        ws = WorkingSet(inequalities, [1])
        (i, factor), = ws.active_factors()
        assert factor is inequalities.at(1)
        assert ws.at(1) is inequalities.at(1)
        assert ws.graph is inequalities

    def test_noop_updates(self, inequalities):
        """Redundant updates return the same object."""
        ws = WorkingSet(inequalities, [0])
        assert ws.with_added(0) is ws
        assert ws.with_removed(1) is ws

    def test_equality_and_hash(self, inequalities):
        """Equal membership gives equal, equally hashed sets."""
        a = WorkingSet(inequalities, [0, 2])
        b = WorkingSet(inequalities, [2]).with_added(0)
        assert a == b
        assert hash(a) == hash(b)
        assert a != WorkingSet(inequalities, [0])

    def test_out_of_range(self, inequalities):
        """Indices outside the graph are rejected."""
        with pytest.raises(InvalidInputError):
            WorkingSet(inequalities, [3])

    def test_membership_decides_activeness(self, inequalities):
        """Factors are inactive on their own and active through membership."""
        ws = WorkingSet(inequalities, [1])
        assert not inequalities.at(1).active
        assert not inequalities.is_active(1)
        assert ws.is_active(1)
        assert not ws.is_active(0)
