"""
Tests for delta computation and the local state reader.
"""

import pytest

from conftest import PARTITION, InMemoryTicketStore
from tito_sync.sync.delta import cap_batch, compute_delta, read_local_ids


class TestComputeDelta:
    """Tests for compute_delta."""

    def test_concrete_scenario(self) -> None:
        """Test known ids are removed and duplicates collapse."""
        delta = compute_delta(["a", "b", "c", "c", "d"], {"a"})

        assert sorted(delta) == ["b", "c", "d"]

    def test_keeps_first_seen_order(self) -> None:
        """Test the delta keeps remote first-seen order."""
        delta = compute_delta(["z", "y", "z", "x", "y"], set())

        assert delta == ["z", "y", "x"]

    def test_everything_known_is_empty(self) -> None:
        """Test a fully synced remote yields an empty delta."""
        assert compute_delta(["a", "b", "a"], {"a", "b", "c"}) == []

    def test_empty_remote(self) -> None:
        """Test an empty remote yields an empty delta."""
        assert compute_delta([], {"a"}) == []

    def test_accepts_any_iterable(self) -> None:
        """Test remote ids may come from any iterable."""
        assert compute_delta(iter(["a", "b"]), {"b"}) == ["a"]

    def test_never_contains_local_or_duplicate_ids(self) -> None:
        """Test the delta is duplicate-free and disjoint from local ids."""
        remote = [str(i % 37) for i in range(500)]
        local = {str(i) for i in range(0, 37, 3)}

        delta = compute_delta(remote, local)

        assert len(delta) == len(set(delta))
        assert not set(delta) & local
        assert set(delta) | local == set(remote) | local


class TestCapBatch:
    """Tests for cap_batch."""

    def test_under_limit(self) -> None:
        """Test a short delta is selected whole."""
        assert cap_batch(["a", "b"], 100) == (["a", "b"], [])

    def test_over_limit(self) -> None:
        """Test ids past the limit are deferred in order."""
        delta = [str(i) for i in range(150)]

        selected, deferred = cap_batch(delta, 100)

        assert selected == delta[:100]
        assert deferred == delta[100:]

    def test_invalid_limit(self) -> None:
        """Test a non-positive limit is rejected."""
        with pytest.raises(ValueError):
            cap_batch(["a"], 0)


class TestReadLocalIds:
    """Tests for the local state reader."""

    @pytest.mark.asyncio
    async def test_reads_partition_ids(self, store: InMemoryTicketStore) -> None:
        """Test only ids of the requested partition are read."""
        store.seed(PARTITION, ["a", "b"])
        store.seed("dddperth-2025", ["old"])

        assert await read_local_ids(store, PARTITION) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_empty_store(self, store: InMemoryTicketStore) -> None:
        """Test an empty store reads as an empty set."""
        assert await read_local_ids(store, PARTITION) == set()
