"""
Missing-Record Filter Tests.

This module tests that unlinks are held back until a to-do has been
missing from the Things snapshot on two consecutive cycles.
"""

from __future__ import annotations

import pytest

from things_sync.engine import filter_premature_unlinks, reconcile
from things_sync.models import CompleteInRemote, CreateInRemote, UnlinkFromLocal


pytestmark = [pytest.mark.hysteresis, pytest.mark.unit]


def _unlink(scanned_factory, uuid: str) -> UnlinkFromLocal:
    scanned = scanned_factory.create(uuid=uuid)
    return UnlinkFromLocal(uuid=uuid, file_path=scanned.file_path, line=scanned.line, scanned_task=scanned)


class TestFilterPrematureUnlinks:
    """Tests for filter_premature_unlinks."""

    def test_first_miss_is_deferred(self, scanned_factory):
        """Test a first miss records the uuid but drops the unlink."""
        filtered, currently_missing = filter_premature_unlinks([_unlink(scanned_factory, "U1")], set())

        assert filtered == []
        assert currently_missing == {"U1"}

    def test_second_consecutive_miss_passes(self, scanned_factory):
        """Test the unlink passes once the uuid was missing last cycle too."""
        action = _unlink(scanned_factory, "U1")

        _, first = filter_premature_unlinks([action], set())
        filtered, second = filter_premature_unlinks([action], first)

        assert filtered == [action]
        assert second == {"U1"}

    def test_other_actions_pass_unchanged(self, scanned_factory):
        """Test non-unlink actions are never filtered."""
        scanned = scanned_factory.create(uuid=None)
        create = CreateInRemote(title="New", file_path="a.md", line=0, scanned_task=scanned)
        complete = CompleteInRemote(uuid="U2")

        filtered, currently_missing = filter_premature_unlinks([create, complete], {"U2"})

        assert filtered == [create, complete]
        assert currently_missing == set()

    def test_order_is_preserved(self, scanned_factory):
        """Test passing actions keep their relative order."""
        complete = CompleteInRemote(uuid="U2")
        unlink = _unlink(scanned_factory, "U1")
        later = CompleteInRemote(uuid="U3")

        filtered, _ = filter_premature_unlinks([complete, unlink, later], {"U1"})

        assert filtered == [complete, unlink, later]

    def test_stale_missing_entries_are_dropped(self, scanned_factory):
        """Test uuids no longer missing fall out of the returned set."""
        _, currently_missing = filter_premature_unlinks([_unlink(scanned_factory, "U1")], {"U1", "U9"})

        assert currently_missing == {"U1"}

    def test_input_set_is_not_mutated(self, scanned_factory):
        """Test the previous set is left as it was."""
        previously = {"U9"}

        filter_premature_unlinks([_unlink(scanned_factory, "U1")], previously)

        assert previously == {"U9"}


class TestHysteresisAcrossCycles:
    """Tests threading the missing set through reconcile cycles."""

    def test_reappearing_task_resets_counter(self, scanned_factory, things_factory, tracked_factory):
        """Test a to-do back in the snapshot clears its miss, so a later miss starts over."""
        scanned = [scanned_factory.create(uuid="U1", checked=False)]
        baseline = tracked_factory.baseline(tracked_factory.create(uuid="U1", checked=False))
        present = [things_factory.create(uuid="U1")]

        # Cycle 1: missing
        filtered, missing = filter_premature_unlinks(reconcile(scanned, [], baseline), set())
        assert filtered == []
        assert missing == {"U1"}

        # Cycle 2: back again, no candidate at all
        actions = reconcile(scanned, present, baseline)
        assert actions == []
        filtered, missing = filter_premature_unlinks(actions, missing)
        assert missing == set()

        # Cycle 3: missing again, deferred again
        filtered, missing = filter_premature_unlinks(reconcile(scanned, [], baseline), missing)
        assert filtered == []
        assert missing == {"U1"}

        # Cycle 4: second consecutive miss, unlink confirmed
        filtered, missing = filter_premature_unlinks(reconcile(scanned, [], baseline), missing)
        assert [a.type for a in filtered] == ["unlink-from-local"]
