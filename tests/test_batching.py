"""Tests for chunked batch lookups."""

import math

import pytest

from callwrapper.batching import chunked, resolve_batches


class TestChunked:
    """Partitioning of id lists."""

    @pytest.mark.parametrize("count,size", [(0, 20), (1, 20), (20, 20), (65, 20), (135, 50)])
    def test_chunks_cover_list_in_order_without_overlap(self, count, size):
        ids = [f"id-{i}" for i in range(count)]

        chunks = list(chunked(ids, size))

        assert len(chunks) == math.ceil(count / size)
        assert all(0 < len(chunk) <= size for chunk in chunks)
        assert [i for chunk in chunks for i in chunk] == ids

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            list(chunked(["a"], 0))


class TestResolveBatches:
    """Merging batched responses by record id."""

    def test_one_call_per_chunk(self):
        ids = [str(i) for i in range(65)]
        requested = []

        def fetch(chunk):
            requested.append(chunk)
            return [{"id": i} for i in chunk]

        resolved = resolve_batches(ids, 20, fetch)

        assert [len(chunk) for chunk in requested] == [20, 20, 20, 5]
        assert set(resolved) == set(ids)

    def test_empty_list_issues_no_calls(self):
        requested = []

        resolved = resolve_batches([], 50, lambda chunk: requested.append(chunk) or [])

        assert resolved == {}
        assert requested == []

    def test_null_slots_are_skipped(self):
        """A None slot means no audio analysis exists for that track."""
        def fetch(chunk):
            return [None if i == "b" else {"id": i, "tempo": 100.0} for i in chunk]

        resolved = resolve_batches(["a", "b", "c"], 50, fetch)

        assert set(resolved) == {"a", "c"}

    def test_merges_by_record_id_not_position(self):
        def fetch(chunk):
            return [{"id": i, "name": f"name {i}"} for i in reversed(chunk)]

        resolved = resolve_batches(["x", "y"], 50, fetch)

        assert resolved["x"]["name"] == "name x"
        assert resolved["y"]["name"] == "name y"

    def test_key_set_is_what_upstream_returned(self):
        """Omitted ids are absent, unrequested relinked ids are present."""
        def fetch(chunk):
            return [{"id": "a"}, {"id": "relinked-b"}]

        resolved = resolve_batches(["a", "b", "c"], 50, fetch)

        assert set(resolved) == {"a", "relinked-b"}
